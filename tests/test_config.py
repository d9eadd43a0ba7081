# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskflow.config import Settings

_VARS = (
    "APP_NAME",
    "LOG_LEVEL",
    "API_URL",
    "API_TOKEN",
    "CONNECT_TIMEOUT_SECONDS",
    "READ_TIMEOUT_SECONDS",
    "FALLBACK_ENABLED",
    "ROLLBACK_FAILED_UPDATES",
    "DATA_DIR",
    "SNAPSHOT_PATH",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _VARS:
        monkeypatch.delenv(f"TASKFLOW_{name}", raising=False)
    return monkeypatch


def test_defaults(clean_env) -> None:
    s = Settings.from_env()

    assert s.app_name == "taskflow"
    assert s.api_url == ""
    assert s.api_token is None
    assert (s.connect_timeout, s.read_timeout) == (5.0, 10.0)
    assert s.fallback_enabled is True
    assert s.rollback_failed_updates is False
    assert s.data_dir == Path(".local/taskflow")
    assert s.snapshot_path == Path(".local/taskflow/snapshot.json")


def test_env_overrides(clean_env, tmp_path) -> None:
    clean_env.setenv("TASKFLOW_API_URL", " https://tasks.example.test ")
    clean_env.setenv("TASKFLOW_API_TOKEN", "abc")
    clean_env.setenv("TASKFLOW_READ_TIMEOUT_SECONDS", "not-a-number")
    clean_env.setenv("TASKFLOW_CONNECT_TIMEOUT_SECONDS", "2.5")
    clean_env.setenv("TASKFLOW_FALLBACK_ENABLED", "off")
    clean_env.setenv("TASKFLOW_ROLLBACK_FAILED_UPDATES", "yes")
    clean_env.setenv("TASKFLOW_DATA_DIR", str(tmp_path))

    s = Settings.from_env()

    assert s.api_url == "https://tasks.example.test"
    assert s.api_token == "abc"
    assert s.read_timeout == 10.0
    assert s.connect_timeout == 2.5
    assert s.fallback_enabled is False
    assert s.rollback_failed_updates is True
    assert s.snapshot_path == tmp_path / "snapshot.json"
