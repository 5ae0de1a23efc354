"""Gap analysis: current per-bucket counts against the coverage target."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from core import CoverageKey, GapEntry, GapReport, Priority
from storage import ContentStore

from .coverage_model import CoverageModel


logger = logging.getLogger(__name__)


class GapAnalyzer:
    """Computes deficits per CoverageKey. Read-only against the store."""

    def __init__(self, model: CoverageModel, store: ContentStore) -> None:
        self.model = model
        self.store = store

    def priority_for(self, key: CoverageKey) -> Priority:
        if self.model.is_new_type(key):
            return Priority.HIGH
        if key.difficulty == 3:
            return Priority.HIGH
        if key.difficulty in {2, 4}:
            return Priority.MEDIUM
        return Priority.LOW

    def analyze(self, counts: Optional[Mapping[CoverageKey, int]] = None) -> GapReport:
        """
        Build a GapReport

        Args:
            counts: grouped counts; read from the store when omitted

        Returns:
            GapReport listing only buckets with deficit > 0
        """
        current: Mapping[CoverageKey, int] = counts if counts is not None else self.store.count_by_key()

        ignored = [key for key in current if not self.model.contains(key)]
        if ignored:
            logger.debug(f"Ignoring {len(ignored)} stored buckets outside the catalog")

        entries: List[GapEntry] = []
        total = 0
        covered = 0
        order: Dict[CoverageKey, int] = {}
        for idx, key in enumerate(self.model.keys()):
            total += 1
            count = max(0, int(current.get(key, 0)))
            if count > 0:
                covered += 1
            node = self.model.skill_node(key.skill_node)
            entry = GapEntry(
                key=key,
                current_count=count,
                target_count=self.model.target_for(key),
                priority=self.priority_for(key),
                unit=node.unit if node else "",
            )
            if entry.deficit > 0:
                entries.append(entry)
                order[key] = idx

        entries.sort(key=lambda e: (e.priority.rank, -e.deficit, order[e.key]))

        return GapReport(
            target_per_bucket=self.model.target_per_bucket,
            total_buckets=total,
            covered_buckets=covered,
            entries=entries,
        )


def save_report(report: GapReport, path: Union[str, Path]) -> Path:
    """Write the report as JSON, with the high-priority actionable subset."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "generated_at": report.generated_at.isoformat(timespec="seconds"),
        "target_per_bucket": report.target_per_bucket,
        "total_buckets": report.total_buckets,
        "covered_buckets": report.covered_buckets,
        "questions_needed": report.questions_needed,
        "gaps": [
            {
                **entry.key.model_dump(mode="json"),
                "unit": entry.unit,
                "current": entry.current_count,
                "target": entry.target_count,
                "deficit": entry.deficit,
                "priority": entry.priority.value,
            }
            for entry in report.entries
        ],
        "actionable": [
            {**entry.key.model_dump(mode="json"), "count": entry.deficit}
            for entry in report.actionable(Priority.HIGH)
        ],
    }
    target.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return target
