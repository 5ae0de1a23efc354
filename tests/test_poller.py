from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from conftest import FakeClock
from core import CoverageKey, JobState, JobStatusSnapshot, PollOutcome, WorkItem
from orchestrator import JobBackend, JobPoller
from utils.clock import CancellationToken
from utils.exceptions import BackendError, TransientBackendError


class _ScheduledBackend(JobBackend):
    """Job becomes terminal at a fixed virtual time; optional failing polls."""

    def __init__(
        self,
        clock: FakeClock,
        *,
        finish_at: Optional[float],
        final: JobState = JobState.COMPLETED,
        completed: int = 0,
        failed: int = 0,
        flaky_polls: int = 0,
        broken_after: Optional[float] = None,
    ) -> None:
        self.clock = clock
        self.finish_at = finish_at
        self.final = final
        self.completed = completed
        self.failed = failed
        self.flaky_polls = flaky_polls
        self.broken_after = broken_after
        self.poll_times: List[float] = []
        self.submitted: Dict[str, WorkItem] = {}
        self.abandoned: List[str] = []

    async def submit(self, work_item: WorkItem) -> str:
        job_id = f"job_{len(self.submitted) + 1}"
        self.submitted[job_id] = work_item
        return job_id

    async def status(self, job_id: str) -> JobStatusSnapshot:
        self.poll_times.append(self.clock.now())
        if self.flaky_polls > 0:
            self.flaky_polls -= 1
            raise TransientBackendError("connection reset", provider="fake")
        if self.broken_after is not None and self.clock.now() >= self.broken_after:
            raise BackendError("Job not found", provider="fake", status_code=404)
        if self.finish_at is not None and self.clock.now() >= self.finish_at:
            return JobStatusSnapshot(
                job_id=job_id, status=self.final, completed_count=self.completed, failed_count=self.failed
            )
        return JobStatusSnapshot(job_id=job_id, status=JobState.RUNNING, completed_count=1)

    async def abandon(self, job_id: str) -> None:
        self.abandoned.append(job_id)


def _work_item(count: int = 5) -> WorkItem:
    key = CoverageKey(skill_node="waves", difficulty=3, question_type="ordering", language="en")
    return WorkItem(key=key, requested_count=count)


@pytest.mark.asyncio
async def test_job_completing_within_budget(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=40, completed=5)
    poller = JobPoller(backend, clock, poll_interval_s=2, timeout_s=180)

    result = await poller.run(_work_item(5))

    assert result.outcome is PollOutcome.COMPLETED
    assert result.succeeded == 5
    assert result.failed == 0
    assert result.orphaned is False
    assert result.elapsed_s == pytest.approx(40)
    assert backend.poll_times[0] == pytest.approx(2)


@pytest.mark.asyncio
async def test_job_never_terminal_times_out(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=None)
    poller = JobPoller(backend, clock, poll_interval_s=2, timeout_s=180)

    result = await poller.run(_work_item(3))

    assert result.outcome is PollOutcome.TIMEOUT
    assert result.succeeded == 0
    assert result.failed == 3
    assert result.orphaned is True
    assert result.elapsed_s == pytest.approx(180)
    assert max(backend.poll_times) <= 180
    assert backend.abandoned == [result.job_id]


@pytest.mark.asyncio
async def test_failed_job_counts_all_unfinished_items(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=6, final=JobState.FAILED, completed=0, failed=2)
    result = await JobPoller(backend, clock, poll_interval_s=2, timeout_s=180).run(_work_item(4))

    assert result.outcome is PollOutcome.FAILED
    assert result.failed == 4


@pytest.mark.asyncio
async def test_transport_errors_while_polling_are_retried(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=0, completed=2, flaky_polls=3)
    result = await JobPoller(backend, clock, poll_interval_s=2, timeout_s=180).run(_work_item(2))

    assert result.outcome is PollOutcome.COMPLETED
    assert result.succeeded == 2
    assert len(backend.poll_times) == 4


@pytest.mark.asyncio
async def test_poll_interval_backs_off_to_ceiling(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=30, completed=1)
    poller = JobPoller(backend, clock, poll_interval_s=1, max_poll_interval_s=4, backoff_factor=2, timeout_s=180)

    await poller.run(_work_item(1))

    assert clock.sleeps[:5] == [1, 2, 4, 4, 4]


@pytest.mark.asyncio
async def test_run_deadline_cancels_the_wait(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=None)
    token = CancellationToken(clock, deadline_s=25)

    result = await JobPoller(backend, clock, poll_interval_s=2, timeout_s=180).run(_work_item(2), token)

    assert result.outcome is PollOutcome.CANCELLED
    assert result.failed == 2
    assert result.orphaned is True
    assert clock.now() == pytest.approx(25)
    assert all(t < 25 for t in backend.poll_times)


@pytest.mark.asyncio
async def test_shutdown_before_polling(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=0)
    token = CancellationToken(clock)
    token.request_shutdown("signal:SIGTERM")

    result = await JobPoller(backend, clock).wait("job_9", 3, token)

    assert result.outcome is PollOutcome.CANCELLED
    assert backend.poll_times == []


@pytest.mark.asyncio
async def test_job_executor_records_orphaned_jobs(clock: FakeClock) -> None:
    from pipeline import JobExecutor

    backend = _ScheduledBackend(clock, finish_at=None)
    executor = JobExecutor(JobPoller(backend, clock, poll_interval_s=5, timeout_s=30))

    summary = await executor.execute(_work_item(3), CancellationToken(clock, deadline_s=3600))

    assert summary.failed == 3
    assert summary.outcomes == {"job_timeout": 3}
    assert summary.orphaned_job_ids == ["job_1"]


@pytest.mark.asyncio
async def test_job_executor_counts_remote_results(clock: FakeClock) -> None:
    from pipeline import JobExecutor

    backend = _ScheduledBackend(clock, finish_at=10, completed=2, failed=1)
    executor = JobExecutor(JobPoller(backend, clock, poll_interval_s=5, timeout_s=30))

    summary = await executor.execute(_work_item(3), CancellationToken(clock, deadline_s=3600))

    assert (summary.succeeded, summary.failed) == (2, 1)
    assert summary.orphaned_job_ids == []


@pytest.mark.asyncio
async def test_permanent_status_error_loses_the_job(clock: FakeClock) -> None:
    backend = _ScheduledBackend(clock, finish_at=None, broken_after=6)
    poller = JobPoller(backend, clock, poll_interval_s=2, timeout_s=180)

    result = await poller.run(_work_item(4))

    assert result.outcome is PollOutcome.LOST
    assert result.job_id == "job_1"
    assert result.error == "Job not found"
    assert result.failed == 4
    assert result.orphaned is True
    assert backend.abandoned == ["job_1"]
    assert clock.now() == pytest.approx(6)


@pytest.mark.asyncio
async def test_job_executor_keeps_lost_jobs_as_orphans(clock: FakeClock) -> None:
    from pipeline import JobExecutor

    backend = _ScheduledBackend(clock, finish_at=None, broken_after=4)
    executor = JobExecutor(JobPoller(backend, clock, poll_interval_s=2, timeout_s=30))

    summary = await executor.execute(_work_item(2), CancellationToken(clock, deadline_s=3600))

    assert summary.outcomes == {"backend_error": 2}
    assert summary.orphaned_job_ids == ["job_1"]
