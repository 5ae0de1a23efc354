"""Work item executors: in-process fill or submit-and-poll jobs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from core import ItemOutcome, PollOutcome, RunSummary, WorkItem
from orchestrator import JobPoller
from utils.clock import CancellationToken
from utils.exceptions import BackendError, JobTimeout

from .runner import FillPipeline, progress_line


logger = logging.getLogger(__name__)


class WorkItemExecutor(ABC):
    @abstractmethod
    async def execute(self, work_item: WorkItem, token: CancellationToken) -> RunSummary:
        """Run one work item and report per-item outcomes."""

    async def aclose(self) -> None:
        return None


class DirectExecutor(WorkItemExecutor):
    """Calls the fill pipeline in-process."""

    def __init__(self, pipeline: FillPipeline) -> None:
        self.pipeline = pipeline

    async def execute(self, work_item: WorkItem, token: CancellationToken) -> RunSummary:
        return await self.pipeline.process_work_item(work_item, token)


class JobExecutor(WorkItemExecutor):
    """
    Submits each work item as a job and polls it

    A job that times out, is cancelled, or whose status can no longer be
    read counts every requested item as failed and is recorded as orphaned.
    Only submission errors leave no job behind.
    """

    def __init__(self, poller: JobPoller) -> None:
        self.poller = poller

    async def execute(self, work_item: WorkItem, token: CancellationToken) -> RunSummary:
        summary = RunSummary()
        try:
            result = await self.poller.run(work_item, token)
        except BackendError as exc:
            logger.warning(progress_line(ItemOutcome.BACKEND_ERROR, work_item.key, f"submit failed: {exc.message}"))
            summary.record(ItemOutcome.BACKEND_ERROR, work_item.requested_count)
            return summary

        if result.outcome is PollOutcome.LOST:
            logger.warning(progress_line(ItemOutcome.BACKEND_ERROR, work_item.key, f"{result.job_id}: {result.error}"))
            summary.record(ItemOutcome.BACKEND_ERROR, result.failed)
            summary.orphaned_job_ids.append(result.job_id)
            return summary

        if result.outcome.abandoned:
            timeout = JobTimeout(result.job_id, result.elapsed_s)
            logger.warning(
                progress_line(
                    ItemOutcome.JOB_TIMEOUT,
                    work_item.key,
                    f"{timeout.message} ({result.outcome.value}, {timeout.elapsed_s:.0f}s)",
                )
            )
            summary.record(ItemOutcome.JOB_TIMEOUT, result.failed)
            if result.orphaned:
                summary.orphaned_job_ids.append(result.job_id)
            return summary

        summary.record(ItemOutcome.STORED, result.succeeded)
        summary.record(ItemOutcome.BACKEND_ERROR, result.failed)
        logger.info(
            f"Job {result.job_id} {result.outcome.value}: "
            f"{result.succeeded} stored, {result.failed} failed in {result.elapsed_s:.0f}s"
        )
        return summary

    async def aclose(self) -> None:
        await self.poller.backend.aclose()
