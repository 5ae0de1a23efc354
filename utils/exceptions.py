"""
Custom Exceptions
Error taxonomy for the pre-generation pipeline
"""
from typing import List, Optional


class PregenError(Exception):
    """Base error for the pre-generation pipeline"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PregenError):
    """Missing or invalid credentials/configuration; aborts the run"""
    pass


class CatalogError(ConfigurationError):
    """Coverage catalog could not be loaded or is inconsistent"""
    pass


class BackendError(PregenError):
    """Generation or job backend rejected a request"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider


class TransientBackendError(BackendError):
    """Network/timeout/rate-limit failure; safe to retry"""
    pass


class MalformedOutputError(PregenError):
    """Backend response holds no parseable structured object"""

    def __init__(self, message: str, preview: str = "", **kwargs):
        if preview:
            kwargs["preview"] = preview[:200]
        super().__init__(message, kwargs)


class ValidationFailure(PregenError):
    """Candidate violates its question-type schema"""

    def __init__(self, issues: List[str], question_type: Optional[str] = None):
        self.issues = list(issues)
        self.question_type = question_type
        super().__init__(
            "; ".join(self.issues) or "invalid candidate",
            {"question_type": question_type} if question_type else None,
        )


class PersistenceError(PregenError):
    """Content store rejected a write"""
    pass


class JobTimeout(PregenError):
    """Polling budget exhausted before the job reached a terminal state"""

    def __init__(self, job_id: str, elapsed_s: float):
        super().__init__(f"job {job_id} timed out", {"elapsed_s": round(elapsed_s, 1)})
        self.job_id = job_id
        self.elapsed_s = elapsed_s


class InvalidJobTransition(PregenError):
    """Job status change would break the monotonic lifecycle"""

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"job {job_id}: cannot move {current} -> {target}")
        self.job_id = job_id
        self.current = current
        self.target = target
