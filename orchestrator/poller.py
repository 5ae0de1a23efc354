"""Submit a work item as a job and wait for its terminal state."""

from __future__ import annotations

import logging
from typing import Optional

from core import JobResult, JobState, JobStatusSnapshot, PollOutcome, WorkItem
from utils.clock import CancellationToken, Clock
from utils.exceptions import BackendError, TransientBackendError

from .backend import JobBackend


logger = logging.getLogger(__name__)


class JobPoller:
    """
    Bounded status polling for one job at a time

    The job budget (timeout_s) is independent of the caller's token; the token
    is consulted before every poll so a run deadline or shutdown ends the wait
    early with PollOutcome.CANCELLED. Transport failures while polling are
    retried within the same budget; any other backend error ends the wait with
    PollOutcome.LOST. A job the caller stops tracking is handed back to the
    backend through abandon().
    """

    def __init__(
        self,
        backend: JobBackend,
        clock: Optional[Clock] = None,
        *,
        poll_interval_s: float = 2.0,
        max_poll_interval_s: float = 5.0,
        backoff_factor: float = 1.0,
        timeout_s: float = 180.0,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        if timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        self.backend = backend
        self.clock = clock or Clock()
        self.poll_interval_s = poll_interval_s
        self.max_poll_interval_s = max(poll_interval_s, max_poll_interval_s)
        self.backoff_factor = max(1.0, backoff_factor)
        self.timeout_s = timeout_s

    async def run(self, work_item: WorkItem, token: Optional[CancellationToken] = None) -> JobResult:
        """Submit then wait. Submission errors propagate to the caller."""
        token = token or CancellationToken.unbounded(self.clock)
        job_id = await self.backend.submit(work_item)
        logger.info(f"Submitted {job_id}: {work_item.key.label()} x{work_item.requested_count}")
        return await self.wait(job_id, work_item.requested_count, token)

    async def wait(
        self,
        job_id: str,
        requested_count: int,
        token: Optional[CancellationToken] = None,
    ) -> JobResult:
        token = token or CancellationToken.unbounded(self.clock)
        started = self.clock.now()
        interval = self.poll_interval_s
        last: Optional[JobStatusSnapshot] = None

        while True:
            elapsed = self.clock.now() - started
            if token.expired:
                logger.warning(f"Stopped waiting for {job_id} ({token.reason}) after {elapsed:.0f}s")
                return await self._abandon(job_id, PollOutcome.CANCELLED, requested_count, last, elapsed)
            if elapsed >= self.timeout_s:
                logger.warning(f"Job {job_id} timed out after {elapsed:.0f}s")
                return await self._abandon(job_id, PollOutcome.TIMEOUT, requested_count, last, elapsed)

            await token.sleep(min(interval, self.timeout_s - elapsed))
            interval = min(self.max_poll_interval_s, interval * self.backoff_factor)

            if token.expired:
                continue

            try:
                last = await self.backend.status(job_id)
            except TransientBackendError as exc:
                logger.debug(f"Status poll for {job_id} failed, retrying: {exc}")
                continue
            except BackendError as exc:
                elapsed = self.clock.now() - started
                logger.warning(f"Lost track of {job_id} after {elapsed:.0f}s: {exc.message}")
                return await self._abandon(
                    job_id, PollOutcome.LOST, requested_count, last, elapsed, error=exc.message
                )

            if last.status.is_terminal:
                elapsed = self.clock.now() - started
                outcome = PollOutcome.COMPLETED if last.status == JobState.COMPLETED else PollOutcome.FAILED
                return self._result(job_id, outcome, requested_count, last, elapsed)

    async def _abandon(
        self,
        job_id: str,
        outcome: PollOutcome,
        requested_count: int,
        snapshot: Optional[JobStatusSnapshot],
        elapsed: float,
        error: Optional[str] = None,
    ) -> JobResult:
        await self.backend.abandon(job_id)
        return self._result(job_id, outcome, requested_count, snapshot, elapsed, error)

    @staticmethod
    def _result(
        job_id: str,
        outcome: PollOutcome,
        requested_count: int,
        snapshot: Optional[JobStatusSnapshot],
        elapsed: float,
        error: Optional[str] = None,
    ) -> JobResult:
        return JobResult(
            job_id=job_id,
            outcome=outcome,
            requested_count=requested_count,
            completed_count=snapshot.completed_count if snapshot else 0,
            failed_count=snapshot.failed_count if snapshot else 0,
            elapsed_s=elapsed,
            error=error,
        )
