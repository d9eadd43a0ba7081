# src/taskflow/core/ports.py

"""
Ports (interfaces) used by the core.

The task store depends on Protocols instead of concrete implementations.
This keeps the HTTP client / offline backend / snapshot storage swappable and
lets tests inject deterministic fakes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Awaitable, Protocol

from ..tasks.task_models import Subtask, SubtaskPatch, Task, TaskDraft, TaskPatch


class TaskBackend(Protocol):
    """
    Remote task resource (REST API or an offline stand-in).

    Read methods return fully coerced Task objects. Failures raise
    TaskBackendError (or a subclass); implementations never return mock data
    on failure themselves, the store decides whether a fallback is used.
    """

    def list_tasks(self) -> Awaitable[list[Task]]: ...
    def create_task(self, draft: TaskDraft) -> Awaitable[Task]: ...
    def update_task(self, task_id: str, patch: TaskPatch) -> Awaitable[Task]: ...
    def delete_task(self, task_id: str) -> Awaitable[None]: ...
    def reorder_tasks(self, task_ids: Sequence[str]) -> Awaitable[list[Task]]: ...

    def add_subtask(self, task_id: str, title: str) -> Awaitable[Subtask]: ...
    def update_subtask(
            self,
            task_id: str,
            subtask_id: str,
            patch: SubtaskPatch,
    ) -> Awaitable[Subtask]: ...
    def delete_subtask(self, task_id: str, subtask_id: str) -> Awaitable[None]: ...

    # Server-side queries
    def search_tasks(self, query: str) -> Awaitable[list[Task]]: ...
    def tasks_by_category(self, category: str) -> Awaitable[list[Task]]: ...
    def tasks_by_priority(self, priority: str) -> Awaitable[list[Task]]: ...

    def aclose(self) -> Awaitable[None]: ...


class SnapshotStore(Protocol):
    """Durable copy of the last known task collection (read-only fallback)."""

    def load(self) -> list[Task] | None: ...
    def save(self, tasks: Sequence[Task]) -> None: ...
