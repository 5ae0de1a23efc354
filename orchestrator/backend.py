"""Job backends: in-process worker and the remote admin pregen API."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional, Set

import httpx

from core import JobState, JobStatusSnapshot, WorkItem
from utils.exceptions import BackendError, ConfigurationError, TransientBackendError

from .store import InMemoryJobStore

if TYPE_CHECKING:
    from pipeline.runner import FillPipeline


logger = logging.getLogger(__name__)


class JobBackend(ABC):
    """Submits work items as jobs and reports their status."""

    @abstractmethod
    async def submit(self, work_item: WorkItem) -> str:
        """Return the new job id."""

    @abstractmethod
    async def status(self, job_id: str) -> JobStatusSnapshot:
        """Current job state and counters."""

    async def abandon(self, job_id: str) -> None:
        """The caller stopped waiting for job_id. Remote jobs keep running."""
        return None

    async def aclose(self) -> None:
        return None


class LocalJobBackend(JobBackend):
    """
    In-process jobs drained one at a time by a single asyncio worker

    A job fails only when every one of its items failed. Items of one job are
    spaced by the pipeline's call delay. An abandoned job, or any job once the
    backend is closing, stops after its in-flight item; nothing is cancelled
    mid-call.
    """

    def __init__(self, pipeline: "FillPipeline", *, store: Optional[InMemoryJobStore] = None) -> None:
        self.pipeline = pipeline
        self.store = store or InMemoryJobStore()
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._abandoned: Set[str] = set()
        self._closing = False
        self._worker: Optional[asyncio.Task] = None
        self._fatal: Optional[BaseException] = None

    async def submit(self, work_item: WorkItem) -> str:
        if self._fatal is not None:
            raise self._fatal
        if self._closing:
            raise BackendError("local job backend is closed", provider="local")
        job_id = self.store.create(work_item)
        self._queue.put_nowait(job_id)
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._work())
        return job_id

    async def status(self, job_id: str) -> JobStatusSnapshot:
        if self._fatal is not None:
            raise self._fatal
        snapshot = self.store.snapshot(job_id)
        if snapshot is None:
            raise BackendError(f"unknown job: {job_id}", provider="local")
        return snapshot

    async def abandon(self, job_id: str) -> None:
        job = self.store.get(job_id)
        if job is not None and not job.status.is_terminal:
            self._abandoned.add(job_id)

    def _should_stop(self, job_id: str) -> bool:
        return self._closing or job_id in self._abandoned

    async def _work(self) -> None:
        while True:
            job_id = await self._queue.get()
            if job_id is None:
                return
            if self._closing:
                self.store.mark_failed(job_id, "backend closed before the job started")
                continue
            if job_id in self._abandoned:
                self.store.mark_failed(job_id, "abandoned before start")
                continue
            await self._run_job(job_id)

    async def _run_job(self, job_id: str) -> None:
        job = self.store.mark_running(job_id)
        work_item = job.work_item
        for index in range(work_item.requested_count):
            if index and not self._should_stop(job_id):
                await self.pipeline.pace()
            if self._should_stop(job_id):
                logger.info(f"Job {job_id} stopped after {index} of {work_item.requested_count} items")
                break
            try:
                result = await self.pipeline.process_one(work_item.key)
            except ConfigurationError as exc:
                self._fatal = exc
                self.store.mark_failed(job_id, str(exc))
                logger.error(f"Job {job_id} aborted: {exc}")
                return
            self.store.record_item(job_id, success=result.outcome.is_success, message=result.message)

        job = self.store.get(job_id)
        if job.completed_count == 0:
            self.store.mark_failed(job_id, "all items failed")
        else:
            self.store.mark_completed(job_id)

    async def aclose(self) -> None:
        """Let the in-flight item finish, then fail whatever is still queued."""
        self._closing = True
        if self._worker is not None and not self._worker.done():
            self._queue.put_nowait(None)
            await self._worker
        self._worker = None
        while not self._queue.empty():
            job_id = self._queue.get_nowait()
            if job_id is not None:
                self.store.mark_failed(job_id, "backend closed before the job started")


_REMOTE_STATES = {
    "queued": JobState.QUEUED,
    "pending": JobState.QUEUED,
    "running": JobState.RUNNING,
    "processing": JobState.RUNNING,
    "completed": JobState.COMPLETED,
    "done": JobState.COMPLETED,
    "failed": JobState.FAILED,
    "error": JobState.FAILED,
}


class HttpJobBackend(JobBackend):
    """Admin pregen endpoints: POST /api/admin/pregen, GET /api/admin/pregen-status."""

    submit_path = "/api/admin/pregen"
    status_path = "/api/admin/pregen-status"

    def __init__(
        self,
        base_url: str,
        session_cookie: str,
        *,
        timeout_s: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url or not session_cookie:
            raise ConfigurationError("Job API is not configured", {"base_url": bool(base_url)})
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Cookie": session_cookie, "Content-Type": "application/json"},
            timeout=timeout_s,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransientBackendError(f"job api timeout: {path}", provider="job_api") from exc
        except httpx.RequestError as exc:
            raise TransientBackendError(f"job api request failed: {exc}", provider="job_api") from exc

        if response.status_code in {401, 403}:
            raise ConfigurationError("Job API rejected the session cookie", {"status_code": response.status_code})
        if response.status_code == 429 or response.status_code >= 500:
            raise TransientBackendError(
                f"job api http {response.status_code}",
                provider="job_api",
                body=response.text[:200],
            )
        if response.status_code >= 400:
            raise BackendError(
                f"job api http {response.status_code}",
                provider="job_api",
                body=response.text[:200],
            )
        try:
            return dict(response.json() or {})
        except ValueError as exc:
            raise BackendError("job api returned non-JSON body", provider="job_api") from exc

    async def submit(self, work_item: WorkItem) -> str:
        key = work_item.key
        payload = await self._request(
            "POST",
            self.submit_path,
            json={
                "subtopic": key.skill_node,
                "language": key.language.value,
                "qtype": key.question_type.value,
                "difficulty": key.difficulty,
                "count": work_item.requested_count,
            },
        )
        job_id = str(payload.get("jobId") or "").strip()
        if not job_id:
            raise BackendError("job api response has no jobId", provider="job_api", body=str(payload)[:200])
        return job_id

    async def status(self, job_id: str) -> JobStatusSnapshot:
        payload = await self._request("GET", self.status_path, params={"jobId": job_id})
        job = dict(payload.get("job") or {})
        raw_status = str(job.get("status") or "").strip().lower()
        if raw_status not in _REMOTE_STATES:
            raise BackendError(f"unknown job status: {raw_status!r}", provider="job_api")
        return JobStatusSnapshot(
            job_id=job_id,
            status=_REMOTE_STATES[raw_status],
            completed_count=int(job.get("completedCount") or 0),
            failed_count=int(job.get("failedCount") or 0),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
