# src/taskflow/tasks/task_models.py

"""
Task data structures and the JSON boundary.

Everything coming from the API (or from the local snapshot) goes through
task_from_payload / subtask_from_payload, so the rest of the app only ever sees
typed Task/Subtask values with timezone-aware UTC datetimes.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, fields, replace
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from ..core.errors import TaskPayloadError

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "temp-"

_UNSET: Any = object()


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_raw(cls, raw: Any) -> Priority:
        if isinstance(raw, cls):
            return raw
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            logger.debug("Unknown priority %r, using medium", raw)
            return cls.MEDIUM


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(task_id: str) -> bool:
    return task_id.startswith(TEMP_ID_PREFIX)


def normalize_tags(tags: Any) -> list[str]:
    """Trim + lowercase, drop empties and duplicates, keep first-seen order."""
    if not tags:
        return []
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, (list, tuple, set, frozenset)):
        raise TaskPayloadError(f"Tags must be a list of strings, got {type(tags).__name__}")
    out: list[str] = []
    for t in tags:
        if not isinstance(t, str):
            raise TaskPayloadError(f"Tag must be a string, got {type(t).__name__}")
        tag = t.strip().lower()
        if tag and tag not in out:
            out.append(tag)
    return out


@dataclass(slots=True)
class Subtask:
    id: str
    task_id: str
    title: str
    completed: bool = False
    created_at: datetime = field(default_factory=utcnow)
    order: int = 0


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str | None = None
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    due_date: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    subtasks: list[Subtask] = field(default_factory=list)
    order: int = 0

    def subtask(self, subtask_id: str) -> Subtask | None:
        for s in self.subtasks:
            if s.id == subtask_id:
                return s
        return None


@dataclass(slots=True)
class TaskDraft:
    """User input for a new task (before the server assigns an id)."""

    title: str
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    due_date: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": Priority.from_raw(self.priority).value,
            "category": self.category,
            "tags": list(self.tags),
            "dueDate": format_datetime(self.due_date),
        }


@dataclass(slots=True)
class TaskPatch:
    """
    Partial update for a task.

    Fields left unset are not sent and not applied; setting a field to None
    clears it (description/category/due_date).
    """

    title: Any = _UNSET
    description: Any = _UNSET
    completed: Any = _UNSET
    priority: Any = _UNSET
    category: Any = _UNSET
    tags: Any = _UNSET
    due_date: Any = _UNSET
    order: Any = _UNSET

    def changes(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is _UNSET:
                continue
            if f.name == "priority":
                value = Priority.from_raw(value)
            elif f.name == "tags":
                value = normalize_tags(value)
            out[f.name] = value
        return out

    def is_empty(self) -> bool:
        return not self.changes()

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for name, value in self.changes().items():
            if name == "due_date":
                out["dueDate"] = format_datetime(value)
            elif name == "priority":
                out["priority"] = value.value
            else:
                out[name] = value
        return out


@dataclass(slots=True)
class SubtaskPatch:
    title: Any = _UNSET
    completed: Any = _UNSET
    order: Any = _UNSET

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not _UNSET
        }

    def to_payload(self) -> dict[str, Any]:
        return dict(self.changes())


def apply_patch(task: Task, patch: TaskPatch, *, now: datetime) -> Task:
    """Return a new Task with the patch merged in and updated_at bumped."""
    changes = patch.changes()
    updated_at = max(now, task.created_at)
    return replace(task, **changes, updated_at=updated_at)


def apply_subtask_patch(subtask: Subtask, patch: SubtaskPatch) -> Subtask:
    return replace(subtask, **patch.changes())


# ---- JSON boundary ----


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_datetime(raw: Any) -> datetime | None:
    """
    Coerce a date-like value into an aware UTC datetime.

    Accepts ISO-8601 text (with or without time / trailing Z), date/datetime
    objects and JS-style epoch milliseconds. Empty values mean "no date".
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return _as_utc(raw)
    if isinstance(raw, date):
        return datetime(raw.year, raw.month, raw.day, tzinfo=UTC)
    if isinstance(raw, bool):
        raise TaskPayloadError(f"Invalid date value: {raw!r}")
    if isinstance(raw, (int, float)):
        try:
            return datetime.fromtimestamp(float(raw) / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise TaskPayloadError(f"Invalid date value: {raw!r}") from e
    if isinstance(raw, str):
        try:
            return _as_utc(datetime.fromisoformat(raw.strip()))
        except (OverflowError, ValueError) as e:
            raise TaskPayloadError(f"Invalid date value: {raw!r}") from e
    raise TaskPayloadError(f"Invalid date value: {raw!r}")


def format_datetime(value: datetime | None) -> str | None:
    if value is None:
        return None
    return _as_utc(value).isoformat().replace("+00:00", "Z")


def _str_or_none(raw: Any) -> str | None:
    if raw is None:
        return None
    s = str(raw)
    return s if s.strip() else None


def _int(raw: Any, default: int = 0) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return default


def _require_id(data: dict[str, Any], what: str) -> str:
    raw = data.get("id")
    if raw is None or isinstance(raw, bool) or str(raw).strip() == "":
        raise TaskPayloadError(f"{what} payload has no id")
    return str(raw)


def subtask_from_payload(data: Any, *, task_id: str | None = None) -> Subtask:
    if not isinstance(data, dict):
        raise TaskPayloadError(f"Subtask payload must be an object, got {type(data).__name__}")
    parent = data.get("taskId") or task_id
    if parent is None:
        raise TaskPayloadError("Subtask payload has no taskId")
    return Subtask(
        id=_require_id(data, "Subtask"),
        task_id=str(parent),
        title=str(data.get("title") or ""),
        completed=bool(data.get("completed", False)),
        created_at=parse_datetime(data.get("createdAt")) or utcnow(),
        order=_int(data.get("order")),
    )


def task_from_payload(data: Any) -> Task:
    """Validate and coerce one JSON task object. Raises TaskPayloadError."""
    if not isinstance(data, dict):
        raise TaskPayloadError(f"Task payload must be an object, got {type(data).__name__}")

    task_id = _require_id(data, "Task")
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise TaskPayloadError(f"Task {task_id} has no title")

    created_at = parse_datetime(data.get("createdAt")) or utcnow()
    updated_at = parse_datetime(data.get("updatedAt")) or created_at

    raw_subtasks = data.get("subtasks") or []
    if not isinstance(raw_subtasks, list):
        raise TaskPayloadError(f"Task {task_id} has malformed subtasks")

    return Task(
        id=task_id,
        title=title,
        description=_str_or_none(data.get("description")),
        completed=bool(data.get("completed", False)),
        priority=Priority.from_raw(data.get("priority")),
        category=_str_or_none(data.get("category")),
        tags=normalize_tags(data.get("tags")),
        due_date=parse_datetime(data.get("dueDate")),
        created_at=created_at,
        updated_at=max(updated_at, created_at),
        subtasks=[subtask_from_payload(s, task_id=task_id) for s in raw_subtasks],
        order=_int(data.get("order")),
    )


def tasks_from_payload(data: Any) -> list[Task]:
    """
    Coerce a JSON list of tasks.

    A non-list body yields an empty list; malformed items are skipped with a
    warning so one bad row does not hide the whole collection.
    """
    if not isinstance(data, list):
        logger.warning("Expected a JSON list of tasks, got %s", type(data).__name__)
        return []
    out: list[Task] = []
    for item in data:
        try:
            out.append(task_from_payload(item))
        except TaskPayloadError as e:
            logger.warning("Skipping malformed task payload: %s", e)
    return out


def subtask_to_payload(subtask: Subtask) -> dict[str, Any]:
    return {
        "id": subtask.id,
        "taskId": subtask.task_id,
        "title": subtask.title,
        "completed": subtask.completed,
        "createdAt": format_datetime(subtask.created_at),
        "order": subtask.order,
    }


def task_to_payload(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "completed": task.completed,
        "priority": task.priority.value,
        "category": task.category,
        "tags": list(task.tags),
        "dueDate": format_datetime(task.due_date),
        "createdAt": format_datetime(task.created_at),
        "updatedAt": format_datetime(task.updated_at),
        "subtasks": [subtask_to_payload(s) for s in task.subtasks],
        "order": task.order,
    }
