# src/taskflow/tasks/snapshot.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .task_models import Task, task_to_payload, tasks_from_payload

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "taskflow-tasks"


class JsonFileSnapshot:
    """
    Local durable snapshot of the task collection.

    The file is a small key/value JSON document; the collection lives under a
    single named key. Writes are best-effort (tmp file + atomic replace) and
    never raise: a lost snapshot is a lost cache, not a correctness problem.
    """

    def __init__(self, path: str | Path, *, key: str = SNAPSHOT_KEY) -> None:
        self._path = Path(path)
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, Any] | None:
        if not self._path.exists():
            return None
        data = json.loads(self._path.read_text("utf-8"))
        return data if isinstance(data, dict) else None

    def load(self) -> list[Task] | None:
        """Return the saved tasks, or None when there is no usable snapshot."""
        try:
            doc = self._read_document()
        except Exception:
            logger.exception("Failed to read task snapshot from %s", self._path)
            return None
        if doc is None or self._key not in doc:
            return None
        raw = doc[self._key]
        if not isinstance(raw, list):
            logger.warning("Task snapshot key %s is not a list; ignoring", self._key)
            return None
        tasks = tasks_from_payload(raw)
        logger.info("Loaded task snapshot: %d tasks from %s", len(tasks), self._path)
        return tasks

    def save(self, tasks: Sequence[Task]) -> None:
        try:
            try:
                doc = self._read_document() or {}
            except Exception:
                doc = {}
            doc[self._key] = [task_to_payload(t) for t in tasks]

            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(".tmp")
            tmp.write_text(json.dumps(doc, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
            with contextlib.suppress(Exception):
                os.chmod(self._path, 0o600)
            logger.debug("Saved task snapshot: %d tasks to %s", len(tasks), self._path)
        except Exception:
            logger.exception("Failed to save task snapshot to %s", self._path)
