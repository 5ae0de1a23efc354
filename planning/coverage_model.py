"""Coverage model: the cartesian key space and its target policy."""

from __future__ import annotations

from itertools import product
from typing import Dict, Iterator, Optional

from core import CoverageKey

from .catalog import Catalog, SkillNode


class CoverageModel:
    """Exposes every CoverageKey of a catalog and the per-bucket target."""

    def __init__(self, catalog: Catalog, *, target_per_bucket: Optional[int] = None) -> None:
        self.catalog = catalog
        target = catalog.target_per_bucket if target_per_bucket is None else int(target_per_bucket)
        if target < 0:
            raise ValueError("target_per_bucket must be >= 0")
        self.target_per_bucket = target
        self._nodes: Dict[str, SkillNode] = {node.id: node for node in catalog.skill_nodes}

    def keys(self) -> Iterator[CoverageKey]:
        """Yield keys in catalog order: node, difficulty, type, language."""
        for node, difficulty, qtype, language in product(
            self.catalog.skill_nodes,
            self.catalog.difficulties,
            self.catalog.question_types,
            self.catalog.languages,
        ):
            yield CoverageKey(
                skill_node=node.id,
                difficulty=difficulty,
                question_type=qtype,
                language=language,
            )

    @property
    def size(self) -> int:
        return (
            len(self.catalog.skill_nodes)
            * len(self.catalog.difficulties)
            * len(self.catalog.question_types)
            * len(self.catalog.languages)
        )

    def target_for(self, key: CoverageKey) -> int:
        return self.target_per_bucket

    def skill_node(self, node_id: str) -> Optional[SkillNode]:
        return self._nodes.get(node_id)

    def contains(self, key: CoverageKey) -> bool:
        return (
            key.skill_node in self._nodes
            and key.difficulty in self.catalog.difficulties
            and key.question_type in self.catalog.question_types
            and key.language in self.catalog.languages
        )

    def is_new_type(self, key: CoverageKey) -> bool:
        return key.question_type in self.catalog.new_question_types
