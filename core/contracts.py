"""Canonical data contracts for the coverage/generation pipeline."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuestionType(str, Enum):
    """Question formats held in the pool."""

    MC = "mc"
    SHORT = "short"
    LONG = "long"
    FILL_IN = "fill-in"
    MATCHING = "matching"
    ORDERING = "ordering"


class Language(str, Enum):
    """Content languages."""

    EN = "en"
    ZH = "zh"


class Priority(str, Enum):
    """Gap priority, highest first."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class CoverageKey(BaseModel):
    """One bucket of the content catalog."""

    model_config = ConfigDict(frozen=True)

    skill_node: str
    difficulty: int = Field(ge=1, le=5)
    question_type: QuestionType
    language: Language

    @field_validator("skill_node", mode="before")
    @classmethod
    def _non_empty_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("skill_node is required")
        return text

    def label(self) -> str:
        return f"{self.skill_node} | D{self.difficulty} | {self.question_type.value} | {self.language.value}"


class GapEntry(BaseModel):
    """Current vs. target count for one CoverageKey."""

    key: CoverageKey
    current_count: int = Field(ge=0)
    target_count: int = Field(ge=0)
    priority: Priority = Priority.LOW
    unit: str = ""

    @property
    def deficit(self) -> int:
        return max(0, self.target_count - self.current_count)


class GapReport(BaseModel):
    """Snapshot of coverage deficits; recomputed, never edited."""

    generated_at: datetime = Field(default_factory=_utcnow)
    target_per_bucket: int
    total_buckets: int
    covered_buckets: int
    entries: List[GapEntry] = Field(default_factory=list)

    @property
    def questions_needed(self) -> int:
        return sum(entry.deficit for entry in self.entries)

    @property
    def by_unit(self) -> Dict[str, int]:
        totals: Counter = Counter()
        for entry in self.entries:
            totals[entry.unit or "-"] += entry.deficit
        return dict(totals)

    @property
    def by_difficulty(self) -> Dict[int, int]:
        totals: Counter = Counter()
        for entry in self.entries:
            totals[entry.key.difficulty] += entry.deficit
        return dict(sorted(totals.items()))

    @property
    def by_question_type(self) -> Dict[str, int]:
        totals: Counter = Counter()
        for entry in self.entries:
            totals[entry.key.question_type.value] += entry.deficit
        return dict(totals)

    def actionable(self, priority: Priority = Priority.HIGH) -> List[GapEntry]:
        return [entry for entry in self.entries if entry.priority == priority]

    def same_gaps(self, other: "GapReport") -> bool:
        """Equality ignoring the generation timestamp."""
        return self.model_dump(exclude={"generated_at"}) == other.model_dump(exclude={"generated_at"})


class WorkItem(BaseModel):
    """Bounded generation request for one bucket."""

    key: CoverageKey
    requested_count: int = Field(ge=1)
    priority: Priority = Priority.LOW


class ContentCandidate(BaseModel):
    """Raw structured object extracted from a generation response."""

    key: CoverageKey
    payload: Dict[str, Any]
    model_id: str = ""
    raw_text: str = ""


class ContentItem(BaseModel):
    """Validated, persisted question. Append-only."""

    model_config = ConfigDict(frozen=True)

    id: str
    skill_node: str
    difficulty: int = Field(ge=1, le=5)
    question_type: QuestionType
    language: Language
    payload: Dict[str, Any]
    model_id: str = ""
    created_at: datetime = Field(default_factory=_utcnow)
    status: str = "ready"
    calibrated_difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> CoverageKey:
        return CoverageKey(
            skill_node=self.skill_node,
            difficulty=self.difficulty,
            question_type=self.question_type,
            language=self.language,
        )


class JobState(str, Enum):
    """Lifecycle of a generation job."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {JobState.COMPLETED, JobState.FAILED}


class GenerationJob(BaseModel):
    """Asynchronous batch of work for one WorkItem."""

    job_id: str
    work_item: WorkItem
    status: JobState = JobState.QUEUED
    completed_count: int = 0
    failed_count: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)


class JobStatusSnapshot(BaseModel):
    """What a status poll reports."""

    job_id: str
    status: JobState
    completed_count: int = 0
    failed_count: int = 0


class PollOutcome(str, Enum):
    """Caller-side verdict on a submitted job."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    LOST = "lost"

    @property
    def abandoned(self) -> bool:
        """The caller stopped tracking the job before it reached a terminal state."""
        return self in {PollOutcome.TIMEOUT, PollOutcome.CANCELLED, PollOutcome.LOST}


class JobResult(BaseModel):
    """Result of submitting and polling one job."""

    job_id: Optional[str] = None
    outcome: PollOutcome
    requested_count: int = 0
    completed_count: int = 0
    failed_count: int = 0
    elapsed_s: float = 0.0
    error: Optional[str] = None

    @property
    def succeeded(self) -> int:
        if self.outcome.abandoned:
            return 0
        return self.completed_count

    @property
    def failed(self) -> int:
        if self.outcome.abandoned:
            return self.requested_count
        if self.outcome == PollOutcome.FAILED:
            return max(self.failed_count, self.requested_count - self.completed_count)
        return self.failed_count

    @property
    def orphaned(self) -> bool:
        """Remote job left running when the caller stopped waiting."""
        return bool(self.job_id) and self.outcome.abandoned


class ItemOutcome(str, Enum):
    """Per-item result marker."""

    STORED = "stored"
    VALIDATED = "validated"
    MALFORMED = "malformed"
    INVALID = "invalid"
    BACKEND_ERROR = "backend_error"
    PERSIST_ERROR = "persist_error"
    JOB_TIMEOUT = "job_timeout"

    @property
    def is_success(self) -> bool:
        return self in {ItemOutcome.STORED, ItemOutcome.VALIDATED}


class RunSummary(BaseModel):
    """Running counters for a round or a whole run."""

    rounds: int = 0
    succeeded: int = 0
    failed: int = 0
    outcomes: Dict[str, int] = Field(default_factory=dict)
    orphaned_job_ids: List[str] = Field(default_factory=list)
    stop_reason: Optional[str] = None

    @property
    def attempted(self) -> int:
        return self.succeeded + self.failed

    @property
    def success_rate(self) -> float:
        if not self.attempted:
            return 0.0
        return self.succeeded / self.attempted

    def record(self, outcome: ItemOutcome, count: int = 1) -> None:
        if count <= 0:
            return
        if outcome.is_success:
            self.succeeded += count
        else:
            self.failed += count
        self.outcomes[outcome.value] = self.outcomes.get(outcome.value, 0) + count

    def merge(self, other: "RunSummary") -> None:
        self.succeeded += other.succeeded
        self.failed += other.failed
        for name, count in other.outcomes.items():
            self.outcomes[name] = self.outcomes.get(name, 0) + count
        for job_id in other.orphaned_job_ids:
            if job_id not in self.orphaned_job_ids:
                self.orphaned_job_ids.append(job_id)
