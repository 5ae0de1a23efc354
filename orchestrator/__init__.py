"""Generation job primitives: store, backends and poller."""

from .backend import HttpJobBackend, JobBackend, LocalJobBackend
from .poller import JobPoller
from .store import InMemoryJobStore, new_job_id

__all__ = [
    "HttpJobBackend",
    "JobBackend",
    "LocalJobBackend",
    "JobPoller",
    "InMemoryJobStore",
    "new_job_id",
]
