# src/taskflow/tasks/projection.py

"""
Filter/sort projection: the visible task list derived from the store's state.

All functions here are pure and never mutate the tasks they are given.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, tzinfo
from enum import StrEnum
from typing import Any

from .task_models import Priority, Task

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

PRIORITY_RANK = {
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class StatusFilter(StrEnum):
    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"


class SortField(StrEnum):
    TITLE = "title"
    CREATED_AT = "createdAt"
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    ORDER = "order"


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True, slots=True)
class TaskFilters:
    status: StatusFilter = StatusFilter.ALL
    priority: Priority | None = None
    category: str | None = None
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TaskSort:
    field: SortField = SortField.CREATED_AT
    direction: SortDirection = SortDirection.DESC


def matches_search(task: Task, query: str) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    if q in task.title.lower():
        return True
    if task.description and q in task.description.lower():
        return True
    return any(q in tag.lower() for tag in task.tags)


def matches_filters(task: Task, filters: TaskFilters) -> bool:
    if filters.status == StatusFilter.COMPLETED and not task.completed:
        return False
    if filters.status == StatusFilter.PENDING and task.completed:
        return False
    if filters.priority and task.priority != filters.priority:
        return False
    if filters.category and task.category != filters.category:
        return False
    if filters.tags:
        wanted = {t.lower() for t in filters.tags}
        if not any(tag in wanted for tag in task.tags):
            return False
    return True


def sort_key(task: Task, field: SortField) -> Any:
    if field == SortField.TITLE:
        return task.title
    if field == SortField.CREATED_AT:
        return task.created_at or EPOCH
    if field == SortField.DUE_DATE:
        return task.due_date or EPOCH
    if field == SortField.PRIORITY:
        return PRIORITY_RANK.get(task.priority, 0)
    return task.order


def sort_tasks(tasks: Iterable[Task], sort: TaskSort) -> list[Task]:
    # sorted() is stable for reverse=True too: equal keys keep input order.
    return sorted(
        tasks,
        key=lambda t: sort_key(t, sort.field),
        reverse=sort.direction == SortDirection.DESC,
    )


def project(
        tasks: Sequence[Task],
        search: str = "",
        filters: TaskFilters | None = None,
        sort: TaskSort | None = None,
) -> list[Task]:
    """Visible list = search AND filters, then sorted."""
    filters = filters or TaskFilters()
    sort = sort or TaskSort()
    visible = [t for t in tasks if matches_search(t, search) and matches_filters(t, filters)]
    return sort_tasks(visible, sort)


# ---- derived views used by the front-end ----


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    high_priority: int


def task_stats(tasks: Sequence[Task]) -> TaskStats:
    completed = sum(1 for t in tasks if t.completed)
    return TaskStats(
        total=len(tasks),
        completed=completed,
        pending=len(tasks) - completed,
        high_priority=sum(1 for t in tasks if t.priority == Priority.HIGH and not t.completed),
    )


def unique_categories(tasks: Iterable[Task]) -> list[str]:
    return sorted({t.category for t in tasks if t.category})


def unique_tags(tasks: Iterable[Task]) -> list[str]:
    return sorted({tag for t in tasks for tag in t.tags})


def tasks_due_on(tasks: Iterable[Task], day: date, *, tz: tzinfo = UTC) -> list[Task]:
    return [t for t in tasks if t.due_date is not None and t.due_date.astimezone(tz).date() == day]


def move_task(tasks: Sequence[Task], task_id: str, new_index: int) -> list[Task]:
    """Drag-and-drop helper: return a copy of `tasks` with one task moved."""
    out = list(tasks)
    for i, t in enumerate(out):
        if t.id == task_id:
            moved = out.pop(i)
            out.insert(max(0, min(new_index, len(out))), moved)
            return out
    return out
