"""Request planning: GapReport -> bounded, ordered WorkItems."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from core import GapReport, Language, Priority, QuestionType, WorkItem


@dataclass(frozen=True)
class PlanFilters:
    """Optional caller constraints; None means no constraint."""

    skill_node: Optional[str] = None
    difficulty: Optional[int] = None
    question_type: Optional[QuestionType] = None
    language: Optional[Language] = None

    def matches(self, key) -> bool:
        if self.skill_node and key.skill_node != self.skill_node:
            return False
        if self.difficulty is not None and key.difficulty != self.difficulty:
            return False
        if self.question_type is not None and key.question_type != self.question_type:
            return False
        if self.language is not None and key.language != self.language:
            return False
        return True


class RequestPlanner:
    """Caps deficits at per_run_cap and groups work by skill node."""

    def __init__(self, per_run_cap: int) -> None:
        if int(per_run_cap) < 1:
            raise ValueError("per_run_cap must be >= 1")
        self.per_run_cap = int(per_run_cap)

    def plan(
        self,
        report: GapReport,
        filters: Optional[PlanFilters] = None,
        *,
        min_priority: Optional[Priority] = None,
    ) -> List[WorkItem]:
        filters = filters or PlanFilters()
        selected = [
            entry
            for entry in report.entries
            if entry.deficit > 0
            and filters.matches(entry.key)
            and (min_priority is None or entry.priority.rank <= min_priority.rank)
        ]

        # group by skill node in order of first appearance; stable within a node
        node_rank: Dict[str, int] = {}
        for entry in selected:
            node_rank.setdefault(entry.key.skill_node, len(node_rank))
        selected.sort(key=lambda e: node_rank[e.key.skill_node])

        return [
            WorkItem(
                key=entry.key,
                requested_count=min(entry.deficit, self.per_run_cap),
                priority=entry.priority,
            )
            for entry in selected
        ]


class RoundShuffler:
    """Seedable per-round shuffle so tests can pin the order."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def shuffle(self, items: Sequence[WorkItem]) -> List[WorkItem]:
        shuffled = list(items)
        self._rng.shuffle(shuffled)
        return shuffled
