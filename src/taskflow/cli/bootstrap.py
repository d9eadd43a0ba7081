# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the task backend (HTTP API, or offline demo backend when no URL is set),
- wires backend + fallback + snapshot into a TaskStore and AppState.
"""

from __future__ import annotations

import logging

from ..api.client import HttpTaskBackend
from ..api.offline import OfflineTaskBackend
from ..config import get_settings
from ..core.ports import TaskBackend
from ..core.state import AppState
from ..tasks.snapshot import JsonFileSnapshot
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, transport=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    `transport` is handed to the HTTP backend (tests pass an httpx.MockTransport).
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    backend: TaskBackend
    fallback: TaskBackend | None = None
    if getattr(settings, "api_url", ""):
        backend = HttpTaskBackend(settings, transport=transport)
        if getattr(settings, "fallback_enabled", True):
            fallback = OfflineTaskBackend()
    else:
        logger.info("No task API configured; running with the offline demo backend.")
        backend = OfflineTaskBackend()

    store = TaskStore(
        backend,
        snapshot=JsonFileSnapshot(settings.snapshot_path),
        fallback=fallback,
        rollback_failed_updates=bool(getattr(settings, "rollback_failed_updates", False)),
    )
    return AppState(settings=settings, backend=backend, store=store)
