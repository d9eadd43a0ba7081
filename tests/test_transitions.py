# tests/test_transitions.py

from __future__ import annotations

from dataclasses import replace

import pytest

from taskflow.core.errors import TaskBackendError
from taskflow.tasks.transitions import (
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

from .fakes import make_task


@pytest.fixture()
def base() -> StoreState:
    return StoreState(tasks=(make_task("a"), make_task("b"), make_task("c")))


def _ids(state: StoreState) -> list[str]:
    return [t.id for t in state.tasks]


def test_create_pending_then_confirmed(base: StoreState) -> None:
    action = CreateTask(make_task("temp-1", "New"))

    pending = transition(base, action, PENDING)
    assert _ids(pending) == ["temp-1", "a", "b", "c"]

    confirmed = transition(pending, action, Confirmed(make_task("42", "New")))
    assert _ids(confirmed) == ["42", "a", "b", "c"]
    assert confirmed.error is None


def test_create_failed_drops_provisional_and_records_error(base: StoreState) -> None:
    action = CreateTask(make_task("temp-1"))
    err = TaskBackendError("down")

    state = transition(transition(base, action, PENDING), action, Failed(err))

    assert _ids(state) == ["a", "b", "c"]
    assert state.error is err


def test_create_failed_with_fallback_replaces_provisional(base: StoreState) -> None:
    action = CreateTask(make_task("temp-1"))
    err = TaskBackendError("down")

    state = transition(
        transition(base, action, PENDING),
        action,
        Failed(err, fallback=make_task("local-1")),
    )

    assert _ids(state) == ["local-1", "a", "b", "c"]
    assert state.error is err


def test_update_failure_keeps_optimistic_version_by_default(base: StoreState) -> None:
    original = base.tasks[1]
    action = UpdateTask(original=original, optimistic=replace(original, title="Edited"))

    pending = transition(base, action, PENDING)
    failed = transition(pending, action, Failed(TaskBackendError("down")))

    assert failed.tasks[1].title == "Edited"
    assert failed.error is None


def test_update_failure_rolls_back_when_requested(base: StoreState) -> None:
    original = base.tasks[1]
    action = UpdateTask(
        original=original,
        optimistic=replace(original, title="Edited"),
        rollback_on_failure=True,
    )
    err = TaskBackendError("down")

    failed = transition(transition(base, action, PENDING), action, Failed(err))

    assert failed.tasks[1] == original
    assert failed.error is err


def test_remove_failure_reinserts_at_original_index(base: StoreState) -> None:
    action = RemoveTask(task=base.tasks[1], index=1)

    pending = transition(base, action, PENDING)
    assert _ids(pending) == ["a", "c"]

    failed = transition(pending, action, Failed(TaskBackendError("down")))
    assert _ids(failed) == ["a", "b", "c"]
    assert failed.error is not None


def test_remove_failure_clamps_index_when_collection_shrank(base: StoreState) -> None:
    action = RemoveTask(task=base.tasks[2], index=2)
    shrunk = StoreState(tasks=(base.tasks[0],))

    failed = transition(shrunk, action, Failed(TaskBackendError("down")))

    assert _ids(failed) == ["a", "c"]


def test_reorder_confirmed_and_failed(base: StoreState) -> None:
    ordered = (base.tasks[2], base.tasks[0], base.tasks[1])
    action = ReorderTasks(ordered=ordered, previous=base.tasks)

    pending = transition(base, action, PENDING)
    assert _ids(pending) == ["c", "a", "b"]

    server = [replace(t, order=i) for i, t in enumerate(ordered)]
    assert [t.order for t in transition(pending, action, Confirmed(server)).tasks] == [0, 1, 2]

    failed = transition(pending, action, Failed(TaskBackendError("down")))
    assert failed.tasks == base.tasks
    assert failed.error is not None


def test_transition_does_not_touch_loading_flag(base: StoreState) -> None:
    busy = replace(base, loading=True)
    action = CreateTask(make_task("temp-1"))

    assert transition(busy, action, PENDING).loading is True


def test_unknown_action_is_rejected(base: StoreState) -> None:
    with pytest.raises(TypeError):
        transition(base, object(), PENDING)
