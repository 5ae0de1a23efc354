"""Core contracts and shared types for the pre-generation pipeline."""

from .contracts import (
    ContentCandidate,
    ContentItem,
    CoverageKey,
    GapEntry,
    GapReport,
    GenerationJob,
    ItemOutcome,
    JobResult,
    JobState,
    JobStatusSnapshot,
    Language,
    PollOutcome,
    Priority,
    QuestionType,
    RunSummary,
    WorkItem,
)

__all__ = [
    "ContentCandidate",
    "ContentItem",
    "CoverageKey",
    "GapEntry",
    "GapReport",
    "GenerationJob",
    "ItemOutcome",
    "JobResult",
    "JobState",
    "JobStatusSnapshot",
    "Language",
    "PollOutcome",
    "Priority",
    "QuestionType",
    "RunSummary",
    "WorkItem",
]
