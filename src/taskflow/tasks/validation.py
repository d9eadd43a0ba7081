# src/taskflow/tasks/validation.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from ..core.errors import TaskPayloadError, TaskValidationError
from .task_models import (
    _UNSET,
    Priority,
    TaskDraft,
    TaskPatch,
    normalize_tags,
    parse_datetime,
    utcnow,
)

TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 500


def _start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _check_title(title: object, errors: dict[str, str]) -> None:
    if not isinstance(title, str) or not title.strip():
        errors["title"] = "Title is required"
    elif len(title.strip()) > TITLE_MAX_LEN:
        errors["title"] = f"Title must be at most {TITLE_MAX_LEN} characters"


def _check_description(description: object, errors: dict[str, str]) -> None:
    if description is not None and len(str(description).strip()) > DESCRIPTION_MAX_LEN:
        errors["description"] = f"Description must be at most {DESCRIPTION_MAX_LEN} characters"


def _check_due_date(raw: object, now: datetime, errors: dict[str, str]) -> datetime | None:
    try:
        due = parse_datetime(raw)
    except TaskPayloadError:
        errors["dueDate"] = "Due date is not a valid date"
        return None
    # Only checked when the user submits the form; stored tasks may go overdue.
    if due is not None and due < _start_of_day(now):
        errors["dueDate"] = "Due date cannot be in the past"
    return due


def _check_tags(raw: object, errors: dict[str, str]) -> list[str]:
    try:
        return normalize_tags(raw)
    except TaskPayloadError:
        errors["tags"] = "Tags must be a list of text values"
        return []


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    s = value.strip()
    return s or None


def validate_draft(draft: TaskDraft, *, clock: Callable[[], datetime] = utcnow) -> TaskDraft:
    """Validate a new-task form and return a normalized copy."""
    errors: dict[str, str] = {}
    _check_title(draft.title, errors)
    _check_description(draft.description, errors)
    due = _check_due_date(draft.due_date, clock(), errors)
    tags = _check_tags(draft.tags, errors)
    if errors:
        raise TaskValidationError(errors)

    return replace(
        draft,
        title=draft.title.strip(),
        description=_clean_text(draft.description),
        category=_clean_text(draft.category),
        priority=Priority.from_raw(draft.priority),
        tags=tags,
        due_date=due,
    )


def validate_patch(patch: TaskPatch, *, clock: Callable[[], datetime] = utcnow) -> TaskPatch:
    """Validate only the fields the patch actually sets."""
    errors: dict[str, str] = {}
    if patch.tags is not _UNSET:
        patch = replace(patch, tags=_check_tags(patch.tags, errors))
    changes = patch.changes()
    if "title" in changes:
        _check_title(changes["title"], errors)
    if "description" in changes:
        _check_description(changes["description"], errors)
    due = None
    if "due_date" in changes:
        due = _check_due_date(changes["due_date"], clock(), errors)
    if errors:
        raise TaskValidationError(errors)

    cleaned = dict(changes)
    if "due_date" in cleaned:
        cleaned["due_date"] = due
    if "title" in cleaned:
        cleaned["title"] = cleaned["title"].strip()
    for key in ("description", "category"):
        if key in cleaned:
            cleaned[key] = _clean_text(cleaned[key])
    return TaskPatch(**cleaned)
