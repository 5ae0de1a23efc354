from __future__ import annotations

from pathlib import Path

import pytest

from core import ContentCandidate, ContentItem, CoverageKey
from storage import InMemoryContentStore, PersistenceWriter, SqlContentStore
from utils.exceptions import ConfigurationError, PersistenceError


KEY = CoverageKey(skill_node="kinematics", difficulty=3, question_type="mc", language="en")
OTHER = CoverageKey(skill_node="waves", difficulty=1, question_type="ordering", language="zh")


def _candidate(key: CoverageKey = KEY) -> ContentCandidate:
    return ContentCandidate(key=key, payload={"question": "原始"}, model_id="gpt-test")


def test_writer_assigns_fresh_ids_and_denormalizes_key() -> None:
    store = InMemoryContentStore()
    writer = PersistenceWriter(store)

    first = writer.write(_candidate(), {"question": "q1"})
    second = writer.write(_candidate(), {"question": "q1"}, calibrated_difficulty=4)

    assert first.id != second.id
    assert first.id.startswith("qb_")
    assert first.skill_node == "kinematics"
    assert first.key == KEY
    assert second.calibrated_difficulty == 4
    assert store.count(KEY) == 2


def test_dry_run_writer_skips_store() -> None:
    store = InMemoryContentStore()
    item = PersistenceWriter(store, dry_run=True).write(_candidate(), {"question": "q"})
    assert item.model_id == "gpt-test"
    assert len(store) == 0


def test_sql_store_round_trip_and_grouped_counts(tmp_path: Path) -> None:
    store = SqlContentStore(f"sqlite:///{tmp_path / 'nested' / 'bank.db'}")
    writer = PersistenceWriter(store)
    try:
        for _ in range(3):
            writer.write(_candidate(), {"question": "F = ___", "blanks": ["ma"]})
        written = writer.write(_candidate(OTHER), {"question": "排序"}, metadata={"source": "test"})
        store.append(
            ContentItem(
                id="qb_retired",
                skill_node="kinematics",
                difficulty=3,
                question_type="mc",
                language="en",
                payload={"question": "old"},
                status="retired",
            )
        )

        assert store.count_by_key() == {KEY: 3, OTHER: 1}

        [loaded] = store.list_items(OTHER)
        assert loaded.id == written.id
        assert loaded.payload == {"question": "排序"}
        assert loaded.metadata == {"source": "test"}
        assert len(store.list_items()) == 5
    finally:
        store.close()


def test_sql_store_rejects_duplicate_ids(tmp_path: Path) -> None:
    store = SqlContentStore(f"sqlite:///{tmp_path / 'bank.db'}")
    item = PersistenceWriter(store).write(_candidate(), {"question": "q"})
    try:
        with pytest.raises(PersistenceError):
            store.append(item)
    finally:
        store.close()


def test_invalid_store_url() -> None:
    with pytest.raises(ConfigurationError):
        SqlContentStore("not a url")
