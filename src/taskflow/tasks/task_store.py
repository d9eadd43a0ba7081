# src/taskflow/tasks/task_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import replace
from datetime import datetime

from ..core.errors import TaskBackendError, TaskValidationError
from ..core.ports import SnapshotStore, TaskBackend
from .task_models import (
    Subtask,
    SubtaskPatch,
    Task,
    TaskDraft,
    TaskPatch,
    apply_patch,
    new_temp_id,
    utcnow,
)
from .transitions import (
    PENDING,
    Confirmed,
    CreateTask,
    Failed,
    RemoveTask,
    ReorderTasks,
    StoreState,
    UpdateTask,
    transition,
)
from .validation import validate_draft, validate_patch

logger = logging.getLogger(__name__)


class TaskStore:
    """
    Single source of truth for the task collection.

    Top-level mutations (create/update/remove/reorder) are optimistic: the
    local state changes first, then the backend call confirms or fails it and
    transitions.transition() decides the reconciled state.

    Failure policy:
    - load_all: error slot + restore from snapshot (else fallback backend, else empty)
    - create: error slot; provisional entry replaced by a fallback object if
      one is obtainable, otherwise dropped
    - update: optimistic edit kept (or rolled back with rollback_failed_updates)
    - remove / reorder: rolled back, error slot, exception re-raised
    - subtasks: not optimistic; errors propagate, error slot untouched

    Concurrency:
    - all operations run under one asyncio.Lock, so overlapping calls from the
      UI are applied in order instead of racing on the shared collection
    """

    def __init__(
            self,
            backend: TaskBackend,
            *,
            snapshot: SnapshotStore | None = None,
            fallback: TaskBackend | None = None,
            rollback_failed_updates: bool = False,
            clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._backend = backend
        self._snapshot = snapshot
        self._fallback = fallback
        self._rollback_failed_updates = rollback_failed_updates
        self._clock = clock
        self._state = StoreState()
        self._lock = asyncio.Lock()
        logger.info(
            "TaskStore ready backend=%s fallback=%s snapshot=%s",
            type(backend).__name__,
            type(fallback).__name__ if fallback is not None else None,
            "on" if snapshot is not None else "off",
        )

    # ---- read side ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._state.tasks)

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> Exception | None:
        return self._state.error

    def get(self, task_id: str) -> Task | None:
        for t in self._state.tasks:
            if t.id == task_id:
                return t
        return None

    def clear_error(self) -> None:
        self._set(error=None)

    # ---- low-level helpers ----

    def _set(self, **changes) -> None:
        self._state = replace(self._state, **changes)

    def _apply(self, action, outcome) -> None:
        self._state = transition(self._state, action, outcome)

    def _index_of(self, task_id: str) -> int | None:
        for i, t in enumerate(self._state.tasks):
            if t.id == task_id:
                return i
        return None

    def _persist(self) -> None:
        if self._snapshot is not None:
            self._snapshot.save(self._state.tasks)

    @contextlib.contextmanager
    def _busy(self) -> Iterator[None]:
        self._set(loading=True)
        try:
            yield
        finally:
            self._set(loading=False)

    def _map_subtasks(self, task_id: str, fn: Callable[[list[Subtask]], list[Subtask]]) -> None:
        parent = self.get(task_id)
        if parent is None:
            return
        updated = replace(parent, subtasks=fn(list(parent.subtasks)))
        self._set(tasks=tuple(updated if t.id == task_id else t for t in self._state.tasks))

    async def _recover_tasks(self) -> list[Task]:
        if self._snapshot is not None:
            saved = self._snapshot.load()
            if saved is not None:
                logger.info("Restored %d tasks from local snapshot", len(saved))
                return saved
        if self._fallback is not None:
            try:
                tasks = await self._fallback.list_tasks()
                logger.info("Using %d fallback tasks", len(tasks))
                return tasks
            except TaskBackendError:
                logger.exception("Fallback backend failed to list tasks")
        return []

    async def _fallback_create(self, draft: TaskDraft) -> Task | None:
        if self._fallback is None:
            return None
        try:
            return await self._fallback.create_task(draft)
        except TaskBackendError:
            logger.exception("Fallback backend failed to create task")
            return None

    # ---- public API ----

    async def load_all(self) -> None:
        """Replace the collection with the backend's list (retry affordance too)."""
        async with self._lock:
            with self._busy():
                self._set(error=None)
                try:
                    tasks = await self._backend.list_tasks()
                except TaskBackendError as e:
                    logger.warning("Loading tasks failed: %s", e)
                    self._set(error=e)
                    tasks = await self._recover_tasks()
                self._set(tasks=tuple(tasks))
                logger.debug("Loaded %d tasks", len(tasks))

    async def create(self, draft: TaskDraft) -> Task | None:
        """
        Add a task. Returns the confirmed (or fallback) task, or None when the
        backend failed and no fallback object was available.
        """
        draft = validate_draft(draft, clock=self._clock)

        async with self._lock:
            with self._busy():
                now = self._clock()
                provisional = Task(
                    id=new_temp_id(),
                    title=draft.title,
                    description=draft.description,
                    completed=False,
                    priority=draft.priority,
                    category=draft.category,
                    tags=list(draft.tags),
                    due_date=draft.due_date,
                    created_at=now,
                    updated_at=now,
                    subtasks=[],
                    order=len(self._state.tasks),
                )
                action = CreateTask(provisional)
                self._apply(action, PENDING)

                try:
                    created = await self._backend.create_task(draft)
                except TaskBackendError as e:
                    fallback = await self._fallback_create(draft)
                    self._apply(action, Failed(e, fallback=fallback))
                    if fallback is None:
                        logger.warning("Task creation failed: %s", e)
                        return None
                    logger.info("Using fallback task id=%s due to API error: %s", fallback.id, e)
                    self._persist()
                    return fallback

                self._apply(action, Confirmed(created))
                self._persist()
                logger.debug("Task created id=%s (temp=%s)", created.id, provisional.id)
                return created

    async def _update_locked(self, task_id: str, patch: TaskPatch) -> Task | None:
        original = self.get(task_id)
        if original is None:
            logger.debug("update: task_id=%s not found; ignoring", task_id)
            return None
        if patch.is_empty():
            return original

        optimistic = apply_patch(original, patch, now=self._clock())
        action = UpdateTask(
            original=original,
            optimistic=optimistic,
            rollback_on_failure=self._rollback_failed_updates,
        )
        self._apply(action, PENDING)

        try:
            saved = await self._backend.update_task(task_id, patch)
        except TaskBackendError as e:
            self._apply(action, Failed(e))
            if self._rollback_failed_updates:
                logger.warning("Task update failed, rolled back task_id=%s: %s", task_id, e)
                return original
            logger.info("Keeping local edit for task_id=%s after API error: %s", task_id, e)
            self._persist()
            return optimistic

        self._apply(action, Confirmed(saved))
        self._persist()
        return saved

    async def update(self, task_id: str, patch: TaskPatch) -> Task | None:
        patch = validate_patch(patch, clock=self._clock)
        async with self._lock:
            with self._busy():
                return await self._update_locked(task_id, patch)

    async def toggle_complete(self, task_id: str) -> Task | None:
        async with self._lock:
            task = self.get(task_id)
            if task is None:
                return None
            with self._busy():
                return await self._update_locked(task_id, TaskPatch(completed=not task.completed))

    async def remove(self, task_id: str) -> None:
        """Delete a task; on backend failure it reappears at its old position and the error is raised."""
        async with self._lock:
            index = self._index_of(task_id)
            if index is None:
                logger.debug("remove: task_id=%s not found; ignoring", task_id)
                return
            with self._busy():
                action = RemoveTask(task=self._state.tasks[index], index=index)
                self._apply(action, PENDING)
                try:
                    await self._backend.delete_task(task_id)
                except TaskBackendError as e:
                    self._apply(action, Failed(e))
                    logger.warning("Task delete failed, restored task_id=%s: %s", task_id, e)
                    raise
                self._apply(action, Confirmed())
                self._persist()

    async def reorder(self, ordered: Sequence[Task]) -> None:
        """Apply a full new ordering (drag-and-drop); restored and re-raised on failure."""
        async with self._lock:
            with self._busy():
                action = ReorderTasks(ordered=tuple(ordered), previous=self._state.tasks)
                self._apply(action, PENDING)
                try:
                    confirmed = await self._backend.reorder_tasks([t.id for t in action.ordered])
                except TaskBackendError as e:
                    self._apply(action, Failed(e))
                    logger.warning("Task reorder failed, previous order restored: %s", e)
                    raise
                self._apply(action, Confirmed(confirmed))
                self._persist()

    # ---- subtasks (non-optimistic) ----

    async def add_subtask(self, task_id: str, title: str) -> Subtask | None:
        title = (title or "").strip()
        if not title:
            raise TaskValidationError({"title": "Subtask title is required"})

        async with self._lock:
            if self.get(task_id) is None:
                return None
            with self._busy():
                subtask = await self._backend.add_subtask(task_id, title)
                self._map_subtasks(task_id, lambda subs: [*subs, subtask])
                self._persist()
                return subtask

    async def update_subtask(
            self,
            task_id: str,
            subtask_id: str,
            patch: SubtaskPatch,
    ) -> Subtask | None:
        async with self._lock:
            parent = self.get(task_id)
            if parent is None or parent.subtask(subtask_id) is None:
                return None
            with self._busy():
                saved = await self._backend.update_subtask(task_id, subtask_id, patch)
                self._map_subtasks(
                    task_id,
                    lambda subs: [saved if s.id == subtask_id else s for s in subs],
                )
                self._persist()
                return saved

    async def remove_subtask(self, task_id: str, subtask_id: str) -> None:
        async with self._lock:
            parent = self.get(task_id)
            if parent is None or parent.subtask(subtask_id) is None:
                return
            with self._busy():
                await self._backend.delete_subtask(task_id, subtask_id)
                self._map_subtasks(task_id, lambda subs: [s for s in subs if s.id != subtask_id])
                self._persist()
