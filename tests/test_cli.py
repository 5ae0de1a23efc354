from __future__ import annotations

import json
from pathlib import Path

import pytest

import main as cli
from config import Settings, get_settings
from pipeline import build_runtime
from utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for name in (
        "LLM_PROVIDER",
        "LLM_OPENAI_API_KEY",
        "LLM_GEMINI_API_KEY",
        "JOB_API_BASE_URL",
        "JOB_API_SESSION_COOKIE",
        "PREGEN_CATALOG_PATH",
        "PREGEN_TARGET_PER_BUCKET",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("STORE_URL", f"sqlite:///{tmp_path / 'bank.db'}")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_fill_without_credentials_exits_with_config_error() -> None:
    assert cli.main(["fill", "--dry-run"]) == cli.EXIT_CONFIG_ERROR


def test_run_with_unsupported_provider_exits_with_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")
    assert cli.main(["run", "--minutes", "1"]) == cli.EXIT_CONFIG_ERROR


def test_remote_jobs_need_job_api_settings() -> None:
    assert cli.main(["fill", "--executor", "remote-jobs"]) == cli.EXIT_CONFIG_ERROR
    with pytest.raises(ConfigurationError):
        build_runtime(Settings(), executor="remote-jobs", dry_run=True)


def test_missing_catalog_is_a_config_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PREGEN_CATALOG_PATH", str(tmp_path / "missing.json"))
    assert cli.main(["gaps"]) == cli.EXIT_CONFIG_ERROR


def test_gaps_reports_and_saves(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    output = tmp_path / "reports" / "gaps.json"

    assert cli.main(["gaps", "--json", "--output", str(output)]) == 0

    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["covered_buckets"] == 0
    assert summary["questions_needed"] == summary["total_buckets"] * 10
    saved = json.loads(output.read_text(encoding="utf-8"))
    assert saved["questions_needed"] == summary["questions_needed"]
    assert saved["actionable"]


def test_gaps_table_output(capsys: pytest.CaptureFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREGEN_TARGET_PER_BUCKET", "1")
    assert cli.main(["gaps", "--top", "5"]) == 0


def test_malformed_setting_exits_with_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PREGEN_PER_RUN_CAP", "abc")
    assert cli.main(["gaps"]) == cli.EXIT_CONFIG_ERROR

    with pytest.raises(ConfigurationError, match="per_run_cap"):
        Settings.load_from_env_file()


def test_count_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_OPENAI_API_KEY", "sk-test")
    assert cli.main(["fill", "--count", "0", "--dry-run"]) == cli.EXIT_CONFIG_ERROR
    with pytest.raises(ConfigurationError, match="--count"):
        build_runtime(Settings(), per_run_cap=0)
