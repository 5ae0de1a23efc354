from __future__ import annotations

import pytest

from core import CoverageKey, GapEntry, GapReport, Language, Priority, QuestionType, WorkItem
from planning import PlanFilters, RequestPlanner, RoundShuffler


def _entry(node: str, difficulty: int, qtype: str = "mc", current: int = 0, priority=Priority.HIGH) -> GapEntry:
    return GapEntry(
        key=CoverageKey(skill_node=node, difficulty=difficulty, question_type=qtype, language="en"),
        current_count=current,
        target_count=10,
        priority=priority,
    )


def _report(*entries: GapEntry) -> GapReport:
    return GapReport(target_per_bucket=10, total_buckets=len(entries), covered_buckets=0, entries=list(entries))


def test_requested_count_is_capped() -> None:
    plan = RequestPlanner(per_run_cap=2).plan(_report(_entry("kinematics", 3, current=2), _entry("waves", 3, current=9)))

    assert [item.requested_count for item in plan] == [2, 1]


def test_cap_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RequestPlanner(per_run_cap=0)


def test_work_is_grouped_by_skill_node_in_first_seen_order() -> None:
    report = _report(
        _entry("waves", 3),
        _entry("kinematics", 3),
        _entry("waves", 2, priority=Priority.MEDIUM),
        _entry("kinematics", 4, priority=Priority.MEDIUM),
        _entry("waves", 1, priority=Priority.LOW),
    )
    plan = RequestPlanner(per_run_cap=3).plan(report)

    assert [(item.key.skill_node, item.key.difficulty) for item in plan] == [
        ("waves", 3),
        ("waves", 2),
        ("waves", 1),
        ("kinematics", 3),
        ("kinematics", 4),
    ]


def test_filters_and_min_priority() -> None:
    report = _report(
        _entry("waves", 3, "mc"),
        _entry("waves", 3, "ordering"),
        _entry("kinematics", 3, "ordering"),
        _entry("kinematics", 1, "ordering", priority=Priority.LOW),
    )
    planner = RequestPlanner(per_run_cap=3)

    only_ordering = planner.plan(report, PlanFilters(question_type=QuestionType.ORDERING))
    assert {item.key.question_type for item in only_ordering} == {QuestionType.ORDERING}
    assert len(only_ordering) == 3

    one_node = planner.plan(report, PlanFilters(skill_node="kinematics", difficulty=3))
    assert [item.key.skill_node for item in one_node] == ["kinematics"]

    assert planner.plan(report, PlanFilters(language=Language.ZH)) == []
    assert len(planner.plan(report, min_priority=Priority.MEDIUM)) == 3


def test_empty_report_gives_empty_plan() -> None:
    assert RequestPlanner(per_run_cap=3).plan(_report()) == []


def test_seeded_shuffle_is_reproducible() -> None:
    items = [
        WorkItem(key=CoverageKey(skill_node=f"node{i}", difficulty=3, question_type="mc", language="en"), requested_count=1)
        for i in range(10)
    ]
    first = RoundShuffler(seed=42).shuffle(items)
    second = RoundShuffler(seed=42).shuffle(items)

    assert first == second
    assert sorted(first, key=lambda w: w.key.skill_node) == sorted(items, key=lambda w: w.key.skill_node)
    assert [w.key.skill_node for w in items] == [f"node{i}" for i in range(10)]
