# src/taskflow/tasks/transitions.py

"""
Optimistic-update state machine for the task store.

Every top-level mutation is described by an action and goes through two calls
of transition():

    state = transition(state, action, PENDING)          # optimistic
    state = transition(state, action, Confirmed(...))   # or Failed(...)

The function is pure: no I/O, no clock, no logging. Actions carry whatever
they need for rollback (the original task, its index, the previous order), so
a failed call can be undone against the *current* state.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .task_models import Task


@dataclass(frozen=True, slots=True)
class StoreState:
    tasks: tuple[Task, ...] = ()
    loading: bool = False
    error: Exception | None = None


# ---- actions ----


@dataclass(frozen=True, slots=True)
class CreateTask:
    provisional: Task


@dataclass(frozen=True, slots=True)
class UpdateTask:
    original: Task
    optimistic: Task
    rollback_on_failure: bool = False


@dataclass(frozen=True, slots=True)
class RemoveTask:
    task: Task
    index: int


@dataclass(frozen=True, slots=True)
class ReorderTasks:
    ordered: tuple[Task, ...]
    previous: tuple[Task, ...]


Action = CreateTask | UpdateTask | RemoveTask | ReorderTasks


# ---- outcomes ----


@dataclass(frozen=True, slots=True)
class Pending:
    pass


PENDING = Pending()


@dataclass(frozen=True, slots=True)
class Confirmed:
    result: Any = None


@dataclass(frozen=True, slots=True)
class Failed:
    error: Exception
    fallback: Task | None = None


Outcome = Pending | Confirmed | Failed


def _replace_by_id(tasks: tuple[Task, ...], task_id: str, new: Task) -> tuple[Task, ...]:
    return tuple(new if t.id == task_id else t for t in tasks)


def _without(tasks: tuple[Task, ...], task_id: str) -> tuple[Task, ...]:
    return tuple(t for t in tasks if t.id != task_id)


def _create(state: StoreState, action: CreateTask, outcome: Outcome) -> StoreState:
    temp_id = action.provisional.id
    if isinstance(outcome, Pending):
        return replace(state, tasks=(action.provisional, *state.tasks))
    if isinstance(outcome, Confirmed):
        return replace(state, tasks=_replace_by_id(state.tasks, temp_id, outcome.result))
    if outcome.fallback is not None:
        return replace(
            state,
            tasks=_replace_by_id(state.tasks, temp_id, outcome.fallback),
            error=outcome.error,
        )
    return replace(state, tasks=_without(state.tasks, temp_id), error=outcome.error)


def _update(state: StoreState, action: UpdateTask, outcome: Outcome) -> StoreState:
    task_id = action.original.id
    if isinstance(outcome, Pending):
        return replace(state, tasks=_replace_by_id(state.tasks, task_id, action.optimistic))
    if isinstance(outcome, Confirmed):
        return replace(state, tasks=_replace_by_id(state.tasks, task_id, outcome.result))
    if action.rollback_on_failure:
        return replace(
            state,
            tasks=_replace_by_id(state.tasks, task_id, action.original),
            error=outcome.error,
        )
    # Best-effort local edit: the optimistic version stays, the error slot is untouched.
    return state


def _remove(state: StoreState, action: RemoveTask, outcome: Outcome) -> StoreState:
    task_id = action.task.id
    if isinstance(outcome, Pending):
        return replace(state, tasks=_without(state.tasks, task_id))
    if isinstance(outcome, Confirmed):
        return state
    tasks = list(_without(state.tasks, task_id))
    index = max(0, min(action.index, len(tasks)))
    tasks.insert(index, action.task)
    return replace(state, tasks=tuple(tasks), error=outcome.error)


def _reorder(state: StoreState, action: ReorderTasks, outcome: Outcome) -> StoreState:
    if isinstance(outcome, Pending):
        return replace(state, tasks=action.ordered)
    if isinstance(outcome, Confirmed):
        return replace(state, tasks=tuple(outcome.result))
    return replace(state, tasks=action.previous, error=outcome.error)


def transition(state: StoreState, action: Action, outcome: Outcome) -> StoreState:
    """Return the state after applying `action` with the given `outcome`."""
    if isinstance(action, CreateTask):
        return _create(state, action, outcome)
    if isinstance(action, UpdateTask):
        return _update(state, action, outcome)
    if isinstance(action, RemoveTask):
        return _remove(state, action, outcome)
    if isinstance(action, ReorderTasks):
        return _reorder(state, action, outcome)
    raise TypeError(f"Unknown action: {action!r}")
