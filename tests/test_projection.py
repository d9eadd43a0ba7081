# tests/test_projection.py

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from taskflow.tasks.projection import (
    SortDirection,
    SortField,
    StatusFilter,
    TaskFilters,
    TaskSort,
    move_task,
    project,
    task_stats,
    tasks_due_on,
    unique_categories,
    unique_tags,
)
from taskflow.tasks.task_models import Priority

from .fakes import FIXED_NOW, make_task


@pytest.fixture()
def tasks():
    return [
        make_task(
            "1",
            "Write report",
            priority=Priority.HIGH,
            category="Work",
            tags=["work", "urgent"],
            due_date=FIXED_NOW + timedelta(days=2),
            created_at=FIXED_NOW - timedelta(days=3),
            order=2,
        ),
        make_task(
            "2",
            "Buy milk",
            description="Semi-skimmed",
            priority=Priority.LOW,
            category="Home",
            tags=["shopping"],
            created_at=FIXED_NOW - timedelta(days=1),
            order=0,
        ),
        make_task(
            "3",
            "Call plumber",
            completed=True,
            priority=Priority.HIGH,
            category="Home",
            tags=["Home"],
            due_date=FIXED_NOW + timedelta(days=1),
            created_at=FIXED_NOW - timedelta(days=2),
            order=1,
        ),
    ]


def _ids(tasks) -> list[str]:
    return [t.id for t in tasks]


def test_default_sort_is_newest_first(tasks) -> None:
    assert _ids(project(tasks)) == ["2", "3", "1"]


def test_priority_filter_is_independent_of_sort(tasks) -> None:
    filters = TaskFilters(priority=Priority.HIGH)
    for field in SortField:
        for direction in SortDirection:
            visible = project(tasks, filters=filters, sort=TaskSort(field, direction))
            assert sorted(_ids(visible)) == ["1", "3"]


def test_status_filter(tasks) -> None:
    assert _ids(project(tasks, filters=TaskFilters(status=StatusFilter.COMPLETED))) == ["3"]
    assert sorted(_ids(project(tasks, filters=TaskFilters(status=StatusFilter.PENDING)))) == ["1", "2"]


def test_category_filter_is_exact(tasks) -> None:
    assert sorted(_ids(project(tasks, filters=TaskFilters(category="Home")))) == ["2", "3"]
    assert project(tasks, filters=TaskFilters(category="home")) == []


def test_tag_filter_matches_any_of_the_selected_tags(tasks) -> None:
    visible = project(tasks, filters=TaskFilters(tags=("urgent", "shopping")))
    assert sorted(_ids(visible)) == ["1", "2"]


def test_search_covers_title_description_and_tags(tasks) -> None:
    assert _ids(project(tasks, search="REPORT")) == ["1"]
    assert _ids(project(tasks, search="skimmed")) == ["2"]
    assert _ids(project(tasks, search="  ")) == ["2", "3", "1"]


def test_tag_only_search_is_case_insensitive() -> None:
    task = make_task("x", "Plain title", tags=["groceries"])
    assert _ids(project([task], search="GROCER")) == ["x"]


def test_filters_and_search_combine_with_and(tasks) -> None:
    visible = project(tasks, search="call", filters=TaskFilters(status=StatusFilter.PENDING))
    assert visible == []


def test_due_date_ascending_puts_missing_dates_first(tasks) -> None:
    visible = project(tasks, sort=TaskSort(SortField.DUE_DATE, SortDirection.ASC))
    assert _ids(visible) == ["2", "3", "1"]


def test_priority_sort_and_stable_ties(tasks) -> None:
    desc = project(tasks, sort=TaskSort(SortField.PRIORITY, SortDirection.DESC))
    assert _ids(desc) == ["1", "3", "2"]

    asc = project(tasks, sort=TaskSort(SortField.PRIORITY, SortDirection.ASC))
    assert _ids(asc) == ["2", "1", "3"]


def test_title_and_order_sort(tasks) -> None:
    assert _ids(project(tasks, sort=TaskSort(SortField.TITLE, SortDirection.ASC))) == ["2", "3", "1"]
    assert _ids(project(tasks, sort=TaskSort(SortField.ORDER, SortDirection.ASC))) == ["2", "3", "1"]


def test_project_does_not_mutate_input(tasks) -> None:
    before = list(tasks)
    project(tasks, sort=TaskSort(SortField.TITLE, SortDirection.ASC))
    assert tasks == before


def test_task_stats(tasks) -> None:
    stats = task_stats(tasks)
    assert (stats.total, stats.completed, stats.pending, stats.high_priority) == (3, 1, 2, 1)


def test_unique_categories_and_tags(tasks) -> None:
    assert unique_categories(tasks) == ["Home", "Work"]
    assert unique_tags(tasks) == ["Home", "shopping", "urgent", "work"]


def test_tasks_due_on_respects_timezone() -> None:
    late = make_task("late", due_date=datetime(2030, 6, 15, 23, 30, tzinfo=UTC))

    assert _ids(tasks_due_on([late], date(2030, 6, 15))) == ["late"]
    plus_two = timezone(timedelta(hours=2))
    assert _ids(tasks_due_on([late], date(2030, 6, 16), tz=plus_two)) == ["late"]


def test_move_task(tasks) -> None:
    assert _ids(move_task(tasks, "1", 2)) == ["2", "3", "1"]
    assert _ids(move_task(tasks, "3", -5)) == ["3", "1", "2"]
    assert _ids(move_task(tasks, "missing", 0)) == ["1", "2", "3"]
    assert _ids(tasks) == ["1", "2", "3"]
