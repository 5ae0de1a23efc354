"""Fill pipeline: generate -> validate -> (calibrate) -> persist, one item at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core import CoverageKey, ItemOutcome, RunSummary, WorkItem
from generation import GenerationClient, question_text, validate_candidate
from planning import CoverageModel
from storage import PersistenceWriter
from utils.clock import CancellationToken, Clock
from utils.exceptions import (
    BackendError,
    MalformedOutputError,
    PersistenceError,
    ValidationFailure,
)


logger = logging.getLogger(__name__)

OUTCOME_MARKERS = {
    ItemOutcome.STORED: "✅",
    ItemOutcome.VALIDATED: "🧪",
    ItemOutcome.JOB_TIMEOUT: "⏱️",
}


def progress_line(outcome: ItemOutcome, key: CoverageKey, detail: str = "") -> str:
    marker = OUTCOME_MARKERS.get(outcome, "❌")
    line = f"{marker} {outcome.value:<13} {key.label()}"
    return f"{line} | {detail}" if detail else line


@dataclass
class ItemResult:
    """Outcome of one generation attempt."""

    key: CoverageKey
    outcome: ItemOutcome
    item_id: Optional[str] = None
    message: str = ""


class FillPipeline:
    """
    Runs single items end to end

    Every failure except ConfigurationError becomes an ItemOutcome; the caller
    keeps going with the next item. Consecutive generation calls are spaced
    call_delay_s apart.
    """

    def __init__(
        self,
        client: GenerationClient,
        writer: PersistenceWriter,
        model: CoverageModel,
        *,
        calibrate: bool = False,
        call_delay_s: float = 0.0,
        clock: Optional[Clock] = None,
    ) -> None:
        self.client = client
        self.writer = writer
        self.model = model
        self.calibrate = calibrate
        self.call_delay_s = max(0.0, call_delay_s)
        self.clock = clock or Clock()

    async def pace(self, token: Optional[CancellationToken] = None) -> None:
        """Wait out the delay between two generation calls."""
        if not self.call_delay_s:
            return
        if token is not None:
            await token.sleep(self.call_delay_s)
        else:
            await self.clock.sleep(self.call_delay_s)

    async def process_one(self, key: CoverageKey) -> ItemResult:
        result = await self._process(key)
        log = logger.info if result.outcome.is_success else logger.warning
        log(progress_line(result.outcome, key, result.message))
        return result

    async def _process(self, key: CoverageKey) -> ItemResult:
        node = self.model.skill_node(key.skill_node)
        if node is None:
            return ItemResult(key, ItemOutcome.INVALID, message=f"unknown skill node {key.skill_node}")

        try:
            candidate = await self.client.generate(key, node)
        except MalformedOutputError as exc:
            return ItemResult(key, ItemOutcome.MALFORMED, message=exc.message)
        except BackendError as exc:
            return ItemResult(key, ItemOutcome.BACKEND_ERROR, message=exc.message)

        try:
            payload = validate_candidate(key.question_type, candidate.payload, key.difficulty)
        except ValidationFailure as exc:
            return ItemResult(key, ItemOutcome.INVALID, message=exc.message)

        calibrated = None
        if self.calibrate:
            try:
                calibrated = await self.client.calibrate_difficulty(question_text(payload))
            except BackendError as exc:
                logger.warning(f"Calibration skipped for {key.label()}: {exc.message}")

        try:
            item = self.writer.write(candidate, payload, calibrated_difficulty=calibrated)
        except PersistenceError as exc:
            return ItemResult(key, ItemOutcome.PERSIST_ERROR, message=exc.message)

        outcome = ItemOutcome.VALIDATED if self.writer.dry_run else ItemOutcome.STORED
        detail = item.id if calibrated is None else f"{item.id} (calibrated D{calibrated})"
        return ItemResult(key, outcome, item_id=item.id, message=detail)

    async def process_work_item(
        self,
        work_item: WorkItem,
        token: Optional[CancellationToken] = None,
    ) -> RunSummary:
        """Up to requested_count sequential items; stops early when the token fires."""
        summary = RunSummary()
        for index in range(work_item.requested_count):
            if index:
                await self.pace(token)
            if token is not None and token.expired:
                break
            result = await self.process_one(work_item.key)
            summary.record(result.outcome)
        return summary
