# src/taskflow/api/offline.py

from __future__ import annotations

import copy
import itertools
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta

from ..core.errors import TaskBackendError
from ..tasks.projection import matches_search
from ..tasks.task_models import (
    Priority,
    Subtask,
    SubtaskPatch,
    Task,
    TaskDraft,
    TaskPatch,
    apply_patch,
    apply_subtask_patch,
    utcnow,
)

DAY = timedelta(days=1)


def demo_tasks(now: datetime) -> list[Task]:
    """The fixed demo collection shown when no API is reachable."""
    return [
        Task(
            id="1",
            title="Welcome to TaskFlow!",
            description="This is a demo task to showcase the todo manager features.",
            priority=Priority.HIGH,
            tags=["demo", "welcome"],
            category="Getting Started",
            due_date=now + 7 * DAY,
            created_at=now,
            updated_at=now,
            subtasks=[
                Subtask(id="sub1", task_id="1", title="Explore the interface", completed=True, created_at=now, order=0),
                Subtask(id="sub2", task_id="1", title="Try adding a new task", created_at=now, order=1),
            ],
            order=0,
        ),
        Task(
            id="2",
            title="Build amazing projects",
            description="Use this todo manager to organize your work and boost productivity.",
            priority=Priority.MEDIUM,
            tags=["productivity", "projects"],
            category="Work",
            created_at=now - 2 * DAY,
            updated_at=now,
            order=1,
        ),
        Task(
            id="3",
            title="Learn React and modern web development",
            description="Master the latest technologies and frameworks.",
            completed=True,
            priority=Priority.LOW,
            tags=["learning", "react", "javascript"],
            category="Study",
            due_date=now - DAY,
            created_at=now - 5 * DAY,
            updated_at=now,
            subtasks=[
                Subtask(id="sub3", task_id="3", title="Complete React tutorial", completed=True, created_at=now, order=0),
            ],
            order=2,
        ),
        Task(
            id="4",
            title="Prepare for Math Exam",
            description="Study calculus and linear algebra for the upcoming semester exam.",
            priority=Priority.HIGH,
            tags=["math", "exam", "calculus"],
            category="Study",
            due_date=now + 3 * DAY,
            created_at=now - DAY,
            updated_at=now,
            subtasks=[
                Subtask(id="sub4", task_id="4", title="Review chapter 1-5", created_at=now, order=0),
                Subtask(id="sub5", task_id="4", title="Practice problems", created_at=now, order=1),
            ],
            order=3,
        ),
    ]


class OfflineTaskBackend:
    """
    Offline deterministic task backend used when no API is configured, and as
    the store's fallback when the real API fails.

    Behavior:
    - starts with the demo collection (timestamps relative to `clock`)
    - keeps everything in memory; ids are "local-N" / "local-sub-N"
    - unknown task/subtask ids raise TaskBackendError(status_code=404),
      except delete_task, which succeeds silently like a lenient server
    """

    def __init__(self, *, clock: Callable[[], datetime] = utcnow, seed_demo: bool = True) -> None:
        self._clock = clock
        self._tasks: list[Task] = demo_tasks(clock()) if seed_demo else []
        self._ids = itertools.count(1)

    async def aclose(self) -> None:
        return

    def _find(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        raise TaskBackendError(f"Task not found: {task_id}", status_code=404)

    def _snapshot(self, tasks: Sequence[Task]) -> list[Task]:
        # Callers must never share objects with our internal list.
        return copy.deepcopy(list(tasks))

    # ---- tasks ----

    async def list_tasks(self) -> list[Task]:
        return self._snapshot(self._tasks)

    async def create_task(self, draft: TaskDraft) -> Task:
        now = self._clock()
        task = Task(
            id=f"local-{next(self._ids)}",
            title=draft.title,
            description=draft.description,
            completed=False,
            priority=Priority.from_raw(draft.priority),
            category=draft.category,
            tags=list(draft.tags),
            due_date=draft.due_date,
            created_at=now,
            updated_at=now,
            subtasks=[],
            order=len(self._tasks),
        )
        self._tasks.insert(0, task)
        return copy.deepcopy(task)

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        i = self._find(task_id)
        self._tasks[i] = apply_patch(self._tasks[i], patch, now=self._clock())
        return copy.deepcopy(self._tasks[i])

    async def delete_task(self, task_id: str) -> None:
        self._tasks = [t for t in self._tasks if t.id != task_id]

    async def reorder_tasks(self, task_ids: Sequence[str]) -> list[Task]:
        by_id = {t.id: t for t in self._tasks}
        ordered = [by_id[i] for i in dict.fromkeys(task_ids) if i in by_id]
        listed = {t.id for t in ordered}
        ordered.extend(t for t in self._tasks if t.id not in listed)
        self._tasks = [replace(t, order=n) for n, t in enumerate(ordered)]
        return self._snapshot(self._tasks)

    # ---- subtasks ----

    async def add_subtask(self, task_id: str, title: str) -> Subtask:
        i = self._find(task_id)
        parent = self._tasks[i]
        subtask = Subtask(
            id=f"local-sub-{next(self._ids)}",
            task_id=task_id,
            title=title,
            completed=False,
            created_at=self._clock(),
            order=len(parent.subtasks),
        )
        self._tasks[i] = replace(parent, subtasks=[*parent.subtasks, subtask])
        return replace(subtask)

    async def update_subtask(self, task_id: str, subtask_id: str, patch: SubtaskPatch) -> Subtask:
        i = self._find(task_id)
        parent = self._tasks[i]
        current = parent.subtask(subtask_id)
        if current is None:
            raise TaskBackendError(f"Subtask not found: {subtask_id}", status_code=404)
        saved = apply_subtask_patch(current, patch)
        self._tasks[i] = replace(
            parent,
            subtasks=[saved if s.id == subtask_id else s for s in parent.subtasks],
        )
        return replace(saved)

    async def delete_subtask(self, task_id: str, subtask_id: str) -> None:
        i = self._find(task_id)
        parent = self._tasks[i]
        if parent.subtask(subtask_id) is None:
            raise TaskBackendError(f"Subtask not found: {subtask_id}", status_code=404)
        self._tasks[i] = replace(parent, subtasks=[s for s in parent.subtasks if s.id != subtask_id])

    # ---- server-side queries ----

    async def search_tasks(self, query: str) -> list[Task]:
        return self._snapshot([t for t in self._tasks if matches_search(t, query)])

    async def tasks_by_category(self, category: str) -> list[Task]:
        return self._snapshot([t for t in self._tasks if t.category == category])

    async def tasks_by_priority(self, priority: str) -> list[Task]:
        wanted = Priority.from_raw(priority)
        return self._snapshot([t for t in self._tasks if t.priority == wanted])
