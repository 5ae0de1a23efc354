"""
Coverage catalog
Skill-node taxonomy and bucket domains, loaded from JSON configuration
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from config import DEFAULT_CATALOG_PATH
from core import Language, QuestionType
from utils.exceptions import CatalogError


logger = logging.getLogger(__name__)


class SkillNode(BaseModel):
    """Leaf topic of the curriculum taxonomy."""

    id: str
    name: str
    name_zh: str = ""
    unit: str = ""

    def display_name(self, language: Language) -> str:
        if language == Language.ZH and self.name_zh:
            return self.name_zh
        return self.name


class Catalog(BaseModel):
    """Enumerable domains of the coverage key space."""

    name: str = ""
    target_per_bucket: int = Field(default=10, ge=0)
    difficulties: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    question_types: List[QuestionType] = Field(default_factory=lambda: list(QuestionType))
    new_question_types: List[QuestionType] = Field(default_factory=list)
    languages: List[Language] = Field(default_factory=lambda: list(Language))
    skill_nodes: List[SkillNode] = Field(default_factory=list)

    @field_validator("difficulties")
    @classmethod
    def _difficulty_range(cls, value: List[int]) -> List[int]:
        bad = [d for d in value if not 1 <= int(d) <= 5]
        if bad:
            raise ValueError(f"difficulties must be within 1..5, got {bad}")
        return sorted(set(int(d) for d in value))

    @field_validator("skill_nodes")
    @classmethod
    def _unique_nodes(cls, value: List[SkillNode]) -> List[SkillNode]:
        seen = set()
        for node in value:
            if node.id in seen:
                raise ValueError(f"duplicate skill node id: {node.id}")
            seen.add(node.id)
        return value


def load_catalog(path: Optional[Union[str, Path]] = None) -> Catalog:
    """
    Load a coverage catalog

    Args:
        path: JSON file; the packaged default catalog when omitted

    Returns:
        Catalog

    Raises:
        CatalogError: file missing, unreadable or inconsistent
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        raw: Dict[str, Any] = json.loads(catalog_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise CatalogError("Catalog file not found", {"path": str(catalog_path)}) from exc
    except json.JSONDecodeError as exc:
        raise CatalogError("Catalog file is not valid JSON", {"path": str(catalog_path), "error": str(exc)}) from exc

    try:
        catalog = Catalog.model_validate(raw)
    except ValidationError as exc:
        raise CatalogError("Catalog is inconsistent", {"path": str(catalog_path), "error": str(exc)}) from exc

    if not catalog.skill_nodes:
        raise CatalogError("Catalog defines no skill nodes", {"path": str(catalog_path)})

    logger.debug(
        f"Loaded catalog {catalog.name or catalog_path.name}: "
        f"{len(catalog.skill_nodes)} skill nodes, target {catalog.target_per_bucket}"
    )
    return catalog
