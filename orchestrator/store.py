"""In-memory job store enforcing the monotonic job lifecycle."""

from __future__ import annotations

from datetime import datetime, timezone
from threading import Lock
from typing import Dict, List, Optional
from uuid import uuid4

from core import GenerationJob, JobState, JobStatusSnapshot, WorkItem
from utils.exceptions import InvalidJobTransition


_ALLOWED_TRANSITIONS = {
    JobState.QUEUED: {JobState.RUNNING, JobState.FAILED},
    JobState.RUNNING: {JobState.COMPLETED, JobState.FAILED},
    JobState.COMPLETED: set(),
    JobState.FAILED: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return f"job_{_utcnow().strftime('%Y%m%d_%H%M%S')}_{uuid4().hex[:8]}"


class InMemoryJobStore:
    """Thread-safe store for generation jobs."""

    def __init__(self) -> None:
        self._jobs: Dict[str, GenerationJob] = {}
        self._lock = Lock()

    def create(self, work_item: WorkItem) -> str:
        with self._lock:
            job_id = new_job_id()
            job = GenerationJob(job_id=job_id, work_item=work_item)
            job.logs.append(self._log_line(f"queued {work_item.key.label()} x{work_item.requested_count}"))
            self._jobs[job_id] = job
            return job_id

    def get(self, job_id: str) -> Optional[GenerationJob]:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def snapshot(self, job_id: str) -> Optional[JobStatusSnapshot]:
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return None
            return JobStatusSnapshot(
                job_id=job.job_id,
                status=job.status,
                completed_count=job.completed_count,
                failed_count=job.failed_count,
            )

    def mark_running(self, job_id: str) -> GenerationJob:
        return self._transition(job_id, JobState.RUNNING, "running")

    def record_item(self, job_id: str, *, success: bool, message: str = "") -> GenerationJob:
        """Count one finished item of a running job."""
        with self._lock:
            job = self._require(job_id)
            if job.status != JobState.RUNNING:
                raise InvalidJobTransition(job_id, job.status.value, "record_item")
            if success:
                job.completed_count += 1
            else:
                job.failed_count += 1
            job.updated_at = _utcnow()
            if message:
                job.logs.append(self._log_line(message))
            return job.model_copy(deep=True)

    def mark_completed(self, job_id: str) -> GenerationJob:
        return self._transition(job_id, JobState.COMPLETED, "completed")

    def mark_failed(self, job_id: str, error: str = "") -> GenerationJob:
        return self._transition(job_id, JobState.FAILED, f"failed: {error}" if error else "failed", error=error)

    def _transition(self, job_id: str, target: JobState, message: str, *, error: str = "") -> GenerationJob:
        with self._lock:
            job = self._require(job_id)
            if target not in _ALLOWED_TRANSITIONS[job.status]:
                raise InvalidJobTransition(job_id, job.status.value, target.value)
            now = _utcnow()
            job.status = target
            job.updated_at = now
            if target.is_terminal:
                job.finished_at = now
            if error:
                job.error = error
            job.logs.append(self._log_line(message))
            return job.model_copy(deep=True)

    def _require(self, job_id: str) -> GenerationJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise KeyError(f"unknown job: {job_id}")
        return job

    @staticmethod
    def _log_line(message: str) -> str:
        return f"[{_utcnow().isoformat(timespec='seconds')}] {message}"
