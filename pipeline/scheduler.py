"""Long-running scheduler: repeated analyze -> plan -> execute rounds under a deadline."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Callable, List, Optional

from core import RunSummary, WorkItem
from planning import GapAnalyzer, PlanFilters, RequestPlanner, RoundShuffler
from utils.clock import CancellationToken, Clock

from .executors import WorkItemExecutor


logger = logging.getLogger(__name__)


class SchedulerLoop:
    """
    Fills coverage gaps until the deadline, a shutdown request, or nothing left to do

    Each round re-reads the store through the analyzer, so items stored by
    earlier rounds (or by remote jobs that finished late) shrink the plan.
    The token is checked before every item; an in-flight item always finishes.
    """

    def __init__(
        self,
        analyzer: GapAnalyzer,
        planner: RequestPlanner,
        executor: WorkItemExecutor,
        *,
        clock: Optional[Clock] = None,
        inter_item_delay_s: float = 3.0,
        shuffler: Optional[RoundShuffler] = None,
    ) -> None:
        self.analyzer = analyzer
        self.planner = planner
        self.executor = executor
        self.clock = clock or Clock()
        self.inter_item_delay_s = max(0.0, inter_item_delay_s)
        self.shuffler = shuffler or RoundShuffler()

    async def run(
        self,
        token: CancellationToken,
        filters: Optional[PlanFilters] = None,
        *,
        max_rounds: Optional[int] = None,
    ) -> RunSummary:
        total = RunSummary()
        started = self.clock.now()
        executed_any = False

        while not token.expired:
            items = self._plan(filters)
            if not items:
                total.stop_reason = "complete"
                break
            items = self.shuffler.shuffle(items)
            total.rounds += 1
            logger.info(f"Round {total.rounds}: {len(items)} work items")

            round_summary, executed_any = await self._run_items(items, token, executed_any)
            round_summary.rounds = 1
            total.merge(round_summary)
            logger.info(
                f"Round {total.rounds} done: {round_summary.succeeded} ok, {round_summary.failed} failed "
                f"({total.succeeded} ok / {total.failed} failed overall)"
            )

            if max_rounds is not None and total.rounds >= max_rounds:
                total.stop_reason = "max_rounds"
                break

        if total.stop_reason is None:
            total.stop_reason = "time_up" if token.reason == "deadline" else (token.reason or "stopped")

        elapsed_min = (self.clock.now() - started) / 60.0
        logger.info(
            f"Run finished ({total.stop_reason}) after {elapsed_min:.1f} min: "
            f"{total.rounds} rounds, {total.succeeded}/{total.attempted} succeeded "
            f"({total.success_rate:.0%})"
        )
        if total.orphaned_job_ids:
            logger.warning(f"{len(total.orphaned_job_ids)} jobs were left running remotely")
        return total

    async def run_once(
        self,
        filters: Optional[PlanFilters] = None,
        token: Optional[CancellationToken] = None,
    ) -> RunSummary:
        """A single un-shuffled round with no deadline."""
        token = token or CancellationToken.unbounded(self.clock)
        items = self._plan(filters)
        if not items:
            logger.info("No gaps to fill")
            return RunSummary(stop_reason="complete")

        logger.info(f"Filling {sum(i.requested_count for i in items)} items across {len(items)} buckets")
        summary, _ = await self._run_items(items, token, False)
        summary.rounds = 1
        summary.stop_reason = token.reason or "complete"
        return summary

    def _plan(self, filters: Optional[PlanFilters]) -> List[WorkItem]:
        report = self.analyzer.analyze()
        return self.planner.plan(report, filters)

    async def _run_items(
        self,
        items: List[WorkItem],
        token: CancellationToken,
        executed_any: bool,
    ) -> tuple:
        summary = RunSummary()
        for work_item in items:
            if token.expired:
                break
            if executed_any and self.inter_item_delay_s:
                await token.sleep(self.inter_item_delay_s)
                if token.expired:
                    break
            summary.merge(await self.executor.execute(work_item, token))
            executed_any = True
        return summary, executed_any


def install_signal_handlers(
    token: CancellationToken,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> Callable[[], None]:
    """
    Route SIGINT/SIGTERM to token.request_shutdown

    Returns a callable that removes the handlers again.
    """
    loop = loop or asyncio.get_running_loop()
    installed = []

    def _handler(sig: signal.Signals) -> None:
        logger.warning(f"Received {sig.name}, finishing the current item")
        token.request_shutdown(f"signal:{sig.name}")

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handler, sig)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")

    def _remove() -> None:
        for sig in installed:
            loop.remove_signal_handler(sig)

    return _remove
