# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.projection import TaskFilters, TaskSort, project
from ..tasks.task_models import Task
from ..tasks.task_store import TaskStore
from .ports import TaskBackend


@dataclass
class ViewState:
    """What the user is currently looking at (search box + filter bar)."""

    search: str = ""
    filters: TaskFilters = field(default_factory=TaskFilters)
    sort: TaskSort = field(default_factory=TaskSort)


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: Any

    backend: TaskBackend
    store: TaskStore

    view: ViewState = field(default_factory=ViewState)

    # Ids of the last rendered listing, so commands can refer to tasks by row number.
    last_listing: list[str] = field(default_factory=list)

    def visible_tasks(self) -> list[Task]:
        return project(self.store.tasks, self.view.search, self.view.filters, self.view.sort)
