from __future__ import annotations

import pytest
from pydantic import ValidationError

from core import (
    CoverageKey,
    GapEntry,
    ItemOutcome,
    JobResult,
    Language,
    PollOutcome,
    QuestionType,
    RunSummary,
)


def _key(**overrides) -> CoverageKey:
    data = {"skill_node": "kinematics", "difficulty": 3, "question_type": "mc", "language": "en"}
    data.update(overrides)
    return CoverageKey(**data)


def test_coverage_key_is_hashable_and_validated() -> None:
    key = _key()
    assert key == _key()
    assert {key: 1}[_key()] == 1
    assert key.question_type is QuestionType.MC
    assert key.language is Language.EN

    with pytest.raises(ValidationError):
        _key(difficulty=6)
    with pytest.raises(ValidationError):
        _key(skill_node="  ")
    with pytest.raises(ValidationError):
        _key(question_type="essay")


def test_gap_entry_deficit_never_negative() -> None:
    assert GapEntry(key=_key(), current_count=3, target_count=10).deficit == 7
    assert GapEntry(key=_key(), current_count=12, target_count=10).deficit == 0


def test_job_result_timeout_counts_every_item_failed() -> None:
    result = JobResult(job_id="job_1", outcome=PollOutcome.TIMEOUT, requested_count=3, completed_count=2)
    assert result.succeeded == 0
    assert result.failed == 3
    assert result.orphaned is True


def test_job_result_failed_job_counts_missing_items_as_failed() -> None:
    result = JobResult(job_id="job_1", outcome=PollOutcome.FAILED, requested_count=3, failed_count=1)
    assert result.succeeded == 0
    assert result.failed == 3
    assert result.orphaned is False


def test_run_summary_record_and_merge() -> None:
    first = RunSummary()
    first.record(ItemOutcome.STORED, 2)
    first.record(ItemOutcome.INVALID)
    first.record(ItemOutcome.MALFORMED, 0)

    second = RunSummary(orphaned_job_ids=["job_x"])
    second.record(ItemOutcome.JOB_TIMEOUT, 3)

    first.merge(second)
    first.merge(second.model_copy(deep=True))

    assert first.succeeded == 2
    assert first.failed == 7
    assert first.outcomes == {"stored": 2, "invalid": 1, "job_timeout": 6}
    assert first.orphaned_job_ids == ["job_x"]
    assert first.success_rate == pytest.approx(2 / 9)
    assert RunSummary().success_rate == 0.0
