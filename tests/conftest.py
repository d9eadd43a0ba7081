# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.core.state import AppState
from taskflow.tasks.task_store import TaskStore

from .fakes import FakeTaskBackend, MemorySnapshot, fixed_clock, make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap code.

    A SimpleNamespace instead of the real Settings keeps tests independent of
    the developer's environment and .env file.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        api_url="",
        api_token=None,
        connect_timeout=1.0,
        read_timeout=1.0,
        fallback_enabled=True,
        rollback_failed_updates=False,
        data_dir=tmp_path / "data",
        snapshot_path=tmp_path / "data" / "snapshot.json",
    )


@pytest.fixture()
def backend() -> FakeTaskBackend:
    return FakeTaskBackend(
        [
            make_task("a", "Write report", tags=["work"], order=0),
            make_task("b", "Buy milk", tags=["home"], order=1),
            make_task("c", "Call mom", order=2),
        ]
    )


@pytest.fixture()
def snapshot() -> MemorySnapshot:
    return MemorySnapshot()


@pytest.fixture()
def store(backend: FakeTaskBackend, snapshot: MemorySnapshot) -> TaskStore:
    return TaskStore(backend, snapshot=snapshot, clock=fixed_clock)


@pytest.fixture()
def state(settings: SimpleNamespace, backend: FakeTaskBackend, store: TaskStore) -> AppState:
    """AppState wired with the in-memory fake backend (nothing touches the network)."""
    return AppState(settings=settings, backend=backend, store=store)
