# tests/test_commands.py

from __future__ import annotations

import pytest

from taskflow.cli.commands import CommandRegistry, parse_task_tokens, registry
from taskflow.tasks.task_models import Priority

from .fakes import FakeTaskBackend, make_task


@pytest.mark.asyncio
async def test_command_registry_routes_aliases(state) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    async def handler(state, args):
        called.append(args)
        return "ok"

    reg.register("Hello", handler, "say hello", aliases=["hi"])

    assert await reg.handle(state, "/hello a b") == "ok"
    assert await reg.handle(state, '/HI "quoted words"') == "ok"
    assert called == [["a", "b"], ["quoted words"]]
    assert await reg.handle(state, "not a command") is None
    assert (await reg.handle(state, "/nope")).startswith("Unknown command: /nope")
    assert await reg.handle(state, "/") == "Empty command. Use /help to list available commands."
    assert (await reg.handle(state, '/hello "unbalanced')).startswith("Cannot parse command")
    assert reg.build_help() == "Available commands:\n  /hello - say hello"


def test_parse_task_tokens() -> None:
    fields = parse_task_tokens(["Buy", "eggs", "!high", "#Food", "#home", "@Errands", "desc:free range"])

    assert fields["title"] == "Buy eggs"
    assert fields["priority"] is Priority.HIGH
    assert fields["tags"] == ["Food", "home"]
    assert fields["category"] == "Errands"
    assert fields["description"] == "free range"
    assert parse_task_tokens(["due:"]) == {"due_date": None}


@pytest.mark.asyncio
async def test_help_lists_every_command(state) -> None:
    text = await registry.handle(state, "/help")

    for name in ("list", "add", "edit", "done", "rm", "move", "sub", "search", "find", "category", "priority", "filter", "sort", "retry"):
        assert f"/{name} - " in text


@pytest.mark.asyncio
async def test_add_and_list(state, backend: FakeTaskBackend) -> None:
    await state.store.load_all()

    reply = await registry.handle(state, "/add Buy eggs !high #Food @Home due:2030-07-01")

    assert reply.startswith("Added: [ ] Buy eggs (high) @Home #food due 2030-07-01")
    assert backend.called("create_task") == 1

    listing = await registry.handle(state, "/list")
    assert listing.splitlines()[0].startswith("  1. [ ] Buy eggs")
    assert len(state.last_listing) == 4


@pytest.mark.asyncio
async def test_add_validation_error_is_reported(state, backend: FakeTaskBackend) -> None:
    reply = await registry.handle(state, "/add #onlytag")

    assert reply == "Invalid input: Title is required"
    assert backend.called("create_task") == 0


@pytest.mark.asyncio
async def test_done_by_row_number(state) -> None:
    await state.store.load_all()
    await registry.handle(state, "/sort order asc")
    await registry.handle(state, "/list")

    assert await registry.handle(state, "/done 2") == "Completed: Buy milk"
    assert await registry.handle(state, "/done b") == "Reopened: Buy milk"
    assert (await registry.handle(state, "/done 99")).startswith("Invalid input: No such task")


@pytest.mark.asyncio
async def test_edit(state) -> None:
    await state.store.load_all()

    reply = await registry.handle(state, "/edit a Final report !low")

    assert reply.startswith("Updated: [ ] Final report (low)")
    assert await registry.handle(state, "/edit a") == (
        "Nothing to change. Example: /edit 2 New title !high #tag due:2030-01-01"
    )


@pytest.mark.asyncio
async def test_failed_delete_is_reported_and_task_restored(state, backend: FakeTaskBackend) -> None:
    await state.store.load_all()
    backend.fail.add("delete_task")

    reply = await registry.handle(state, "/rm b")

    assert reply == "Error: delete_task failed"
    assert state.store.get("b") is not None
    assert "(!) delete_task failed" in await registry.handle(state, "/list")
    assert await registry.handle(state, "/error") == "Last error (HTTP 500): delete_task failed"
    assert await registry.handle(state, "/error clear") == "Error cleared."
    assert await registry.handle(state, "/error") == "No errors."


@pytest.mark.asyncio
async def test_move(state) -> None:
    await state.store.load_all()

    assert await registry.handle(state, "/move c 1") == "Moved 'Call mom' to row 1."
    assert [t.id for t in state.store.tasks] == ["c", "a", "b"]
    assert await registry.handle(state, "/move c") == "Usage: /move <task> <row>"


@pytest.mark.asyncio
async def test_search_filter_sort(state) -> None:
    await state.store.load_all()

    assert "Buy milk" in await registry.handle(state, "/search MILK")
    assert await registry.handle(state, "/search") == "Search cleared."

    reply = await registry.handle(state, "/filter tags=Work status=pending")
    assert reply == "Filters: status=pending priority=- category=- tags=work"
    listing = await registry.handle(state, "/list")
    assert len(listing.splitlines()) == 1
    assert "Write report" in listing

    assert (await registry.handle(state, "/filter status=bogus")).startswith("Invalid input:")
    assert await registry.handle(state, "/filter clear") == "Filters cleared."

    assert await registry.handle(state, "/sort title") == "Sort: title asc"
    assert await registry.handle(state, "/sort due desc") == "Sort: dueDate desc"
    assert (await registry.handle(state, "/sort nonsense")).startswith("Usage: /sort")


@pytest.mark.asyncio
async def test_subtask_commands(state) -> None:
    await state.store.load_all()

    assert await registry.handle(state, "/sub a Outline") == "Subtask added to 'Write report': Outline"
    assert await registry.handle(state, "/subdone a 1") == "Subtask done: Outline"
    assert "[x] Outline" in await registry.handle(state, "/show a")
    assert await registry.handle(state, "/subrm a 1") == "Subtask deleted: Outline"
    assert state.store.get("a").subtasks == []


@pytest.mark.asyncio
async def test_stats_and_due(state) -> None:
    await state.store.load_all()

    stats = await registry.handle(state, "/stats")
    assert "Total: 3" in stats
    assert "Tags: home, work" in stats

    assert await registry.handle(state, "/due 2030-01-01") == "Nothing due on 2030-01-01."
    assert (await registry.handle(state, "/due someday")).startswith("Invalid input:")


@pytest.mark.asyncio
async def test_retry_reloads(state, backend: FakeTaskBackend) -> None:
    backend.fail.add("list_tasks")
    reply = await registry.handle(state, "/retry")
    assert reply.startswith("Loaded 0 tasks.")
    assert "(!)" in reply

    backend.fail.clear()
    assert await registry.handle(state, "/retry") == "Loaded 3 tasks."


@pytest.mark.asyncio
async def test_move_uses_rows_of_the_sorted_view(state) -> None:
    await state.store.load_all()
    assert await registry.handle(state, "/sort order desc") == "Sort: order desc"
    listing = await registry.handle(state, "/list")
    assert [line.split("id=")[1] for line in listing.splitlines()] == ["c", "b", "a"]

    assert await registry.handle(state, "/move a 1") == "Moved 'Write report' to row 1."

    assert [t.id for t in state.store.tasks] == ["b", "c", "a"]
    listing = await registry.handle(state, "/list")
    assert listing.splitlines()[0].endswith("id=a")


@pytest.mark.asyncio
async def test_move_past_the_last_row_goes_to_the_end(state) -> None:
    await state.store.load_all()
    await registry.handle(state, "/filter tags=work")

    assert await registry.handle(state, "/move a 5") == "Moved 'Write report' to row 5."
    assert [t.id for t in state.store.tasks] == ["b", "c", "a"]
    assert await registry.handle(state, "/move a 0") == "Usage: /move <task> <row>"


@pytest.mark.asyncio
async def test_server_side_queries(state, backend: FakeTaskBackend) -> None:
    backend.tasks.append(make_task("d", "Pay rent", category="Home", priority=Priority.HIGH))
    await state.store.load_all()

    assert await registry.handle(state, "/category") == "Categories: Home"
    reply = await registry.handle(state, "/category Home")
    assert reply == "  1. [ ] Pay rent (high) @Home id=d"
    assert await registry.handle(state, "/done 1") == "Completed: Pay rent"
    assert await registry.handle(state, "/category Garden") == "No tasks in category 'Garden'."

    assert "id=d" in await registry.handle(state, "/priority HIGH")
    assert await registry.handle(state, "/priority urgent") == "Usage: /priority low|medium|high"

    found = await registry.handle(state, "/find milk")
    assert found == "  1. [ ] Buy milk (medium) #home id=b"
    assert state.view.search == ""
    assert await registry.handle(state, "/find") == "Usage: /find <text>"
    assert [args for name, args in backend.calls if name == "search_tasks"] == [("milk",)]


@pytest.mark.asyncio
async def test_server_side_query_failure_is_reported(state, backend: FakeTaskBackend) -> None:
    await state.store.load_all()
    backend.fail.add("tasks_by_priority")

    reply = await registry.handle(state, "/priority low")

    assert reply == "Error: tasks_by_priority failed"
    assert state.store.error is None
