# src/taskflow/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime
from typing import Any

from ..api.client import friendly_error_message
from ..core.errors import TaskBackendError, TaskflowError, TaskValidationError
from ..core.state import AppState
from ..tasks.projection import (
    SortDirection,
    SortField,
    StatusFilter,
    TaskFilters,
    TaskSort,
    move_task,
    task_stats,
    tasks_due_on,
    unique_categories,
    unique_tags,
)
from ..tasks.task_models import Priority, SubtaskPatch, Task, TaskDraft, TaskPatch

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return await handler(state, args)
        except TaskValidationError as e:
            return "Invalid input: " + "; ".join(e.errors.values())
        except TaskflowError as e:
            logger.info("Command /%s failed: %s", name, e)
            return f"Error: {friendly_error_message(e)}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing / formatting helpers ----


def parse_day(raw: str) -> date:
    raw = raw.strip().lower()
    if raw == "today":
        return datetime.now(UTC).date()
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise TaskValidationError({"dueDate": f"Not a date (YYYY-MM-DD): {raw}"}) from e


def _due_from_token(raw: str) -> datetime | None:
    if not raw:
        return None
    d = parse_day(raw)
    return datetime(d.year, d.month, d.day, tzinfo=UTC)


def parse_task_tokens(args: list[str]) -> dict[str, Any]:
    """
    Turn console tokens into task fields.

      !high        priority
      #tag         tag (repeatable)
      @Category    category
      due:DATE     due date (YYYY-MM-DD or "today"; empty clears it)
      desc:TEXT    description
      anything else is part of the title
    """
    fields: dict[str, Any] = {}
    title: list[str] = []
    tags: list[str] = []
    for tok in args:
        if tok.startswith("!") and len(tok) > 1:
            fields["priority"] = Priority.from_raw(tok[1:])
        elif tok.startswith("#") and len(tok) > 1:
            tags.append(tok[1:])
        elif tok.startswith("@") and len(tok) > 1:
            fields["category"] = tok[1:]
        elif tok.startswith("due:"):
            fields["due_date"] = _due_from_token(tok[4:])
        elif tok.startswith("desc:"):
            fields["description"] = tok[5:]
        else:
            title.append(tok)
    if title:
        fields["title"] = " ".join(title)
    if tags:
        fields["tags"] = tags
    return fields


def resolve_task(state: AppState, ref: str) -> Task | None:
    """Accept a row number from the last /list or a raw task id."""
    if ref.isdigit():
        n = int(ref)
        if 1 <= n <= len(state.last_listing):
            return state.store.get(state.last_listing[n - 1])
    return state.store.get(ref)


def format_task(task: Task, row: int | None = None) -> str:
    mark = "x" if task.completed else " "
    parts = [f"[{mark}] {task.title}", f"({task.priority.value})"]
    if task.category:
        parts.append(f"@{task.category}")
    parts.extend(f"#{t}" for t in task.tags)
    if task.due_date is not None:
        parts.append(f"due {task.due_date.date().isoformat()}")
    if task.subtasks:
        done = sum(1 for s in task.subtasks if s.completed)
        parts.append(f"[{done}/{len(task.subtasks)} subtasks]")
    parts.append(f"id={task.id}")
    prefix = f"{row:>3}. " if row is not None else ""
    return prefix + " ".join(parts)


def _error_banner(state: AppState) -> str:
    err = state.store.error
    if err is None:
        return ""
    return f"\n(!) {friendly_error_message(err)} Use /retry or /error clear."


def _require_task(state: AppState, ref: str | None) -> Task:
    task = resolve_task(state, ref) if ref else None
    if task is None:
        raise TaskValidationError({"task": f"No such task: {ref or '(missing)'}"})
    return task


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    visible = state.visible_tasks()
    state.last_listing = [t.id for t in visible]
    if not visible:
        return "No tasks match the current search/filters." + _error_banner(state)
    lines = [format_task(t, row=i) for i, t in enumerate(visible, start=1)]
    return "\n".join(lines) + _error_banner(state)


async def cmd_show(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    lines = [format_task(task)]
    if task.description:
        lines.append(f"    {task.description}")
    for i, s in enumerate(sorted(task.subtasks, key=lambda s: s.order), start=1):
        lines.append(f"    {i}. [{'x' if s.completed else ' '}] {s.title} (id={s.id})")
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    fields = parse_task_tokens(args)
    draft = TaskDraft(
        title=fields.get("title", ""),
        description=fields.get("description"),
        priority=fields.get("priority", Priority.MEDIUM),
        category=fields.get("category"),
        tags=fields.get("tags", []),
        due_date=fields.get("due_date"),
    )
    task = await state.store.create(draft)
    if task is None:
        return "Task was not saved." + _error_banner(state)
    return "Added: " + format_task(task)


async def cmd_edit(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    fields = parse_task_tokens(args[1:])
    if not fields:
        return "Nothing to change. Example: /edit 2 New title !high #tag due:2030-01-01"
    updated = await state.store.update(task.id, TaskPatch(**fields))
    if updated is None:
        return f"No such task: {task.id}"
    return "Updated: " + format_task(updated)


async def cmd_done(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    updated = await state.store.toggle_complete(task.id)
    if updated is None:
        return f"No such task: {task.id}"
    return ("Completed: " if updated.completed else "Reopened: ") + updated.title


async def cmd_remove(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    await state.store.remove(task.id)
    return f"Deleted: {task.title}"


async def cmd_move(state: AppState, args: list[str]) -> str:
    """
    /move <task> <row>  -> drag-and-drop style reorder

    Rows are those of the current /list view (search, filters and sort
    applied). The task lands where the task shown on that row sits in the
    stored order; a row past the end moves it to the end.
    """
    if len(args) < 2 or not args[1].isdigit() or int(args[1]) < 1:
        return "Usage: /move <task> <row>"
    task = _require_task(state, args[0])
    row = int(args[1])
    tasks = state.store.tasks
    visible = state.visible_tasks()
    if row <= len(visible):
        anchor = visible[row - 1].id
        target = next(i for i, t in enumerate(tasks) if t.id == anchor)
    else:
        target = len(tasks) - 1
    await state.store.reorder(move_task(tasks, task.id, target))
    return f"Moved '{task.title}' to row {row}."


def _resolve_subtask(task: Task, ref: str | None):
    if not ref:
        return None
    subtasks = sorted(task.subtasks, key=lambda s: s.order)
    if ref.isdigit() and 1 <= int(ref) <= len(subtasks):
        return subtasks[int(ref) - 1]
    return task.subtask(ref)


async def cmd_sub(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    subtask = await state.store.add_subtask(task.id, " ".join(args[1:]))
    if subtask is None:
        return f"No such task: {task.id}"
    return f"Subtask added to '{task.title}': {subtask.title}"


async def cmd_subdone(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    sub = _resolve_subtask(task, args[1] if len(args) > 1 else None)
    if sub is None:
        return "Usage: /subdone <task> <subtask>"
    saved = await state.store.update_subtask(task.id, sub.id, SubtaskPatch(completed=not sub.completed))
    if saved is None:
        return f"No such subtask: {sub.id}"
    return ("Subtask done: " if saved.completed else "Subtask reopened: ") + saved.title


async def cmd_subrm(state: AppState, args: list[str]) -> str:
    task = _require_task(state, args[0] if args else None)
    sub = _resolve_subtask(task, args[1] if len(args) > 1 else None)
    if sub is None:
        return "Usage: /subrm <task> <subtask>"
    await state.store.remove_subtask(task.id, sub.id)
    return f"Subtask deleted: {sub.title}"


async def cmd_search(state: AppState, args: list[str]) -> str:
    state.view.search = " ".join(args).strip()
    if not state.view.search:
        return "Search cleared."
    return await cmd_list(state, [])


def _show_results(state: AppState, tasks: list[Task], empty: str) -> str:
    # Row numbers in the reply refer to these results until the next listing.
    state.last_listing = [t.id for t in tasks]
    if not tasks:
        return empty
    return "\n".join(format_task(t, row=i) for i, t in enumerate(tasks, start=1))


async def cmd_find(state: AppState, args: list[str]) -> str:
    """Server-side search; unlike /search it does not touch the local view."""
    query = " ".join(args).strip()
    if not query:
        return "Usage: /find <text>"
    found = await state.backend.search_tasks(query)
    return _show_results(state, found, f"No tasks found for '{query}'.")


async def cmd_category(state: AppState, args: list[str]) -> str:
    """
    /category         -> categories in use
    /category <name>  -> that category's tasks, as reported by the backend
    """
    name = " ".join(args).strip()
    if not name:
        names = unique_categories(state.store.tasks)
        return "Categories: " + (", ".join(names) or "-")
    found = await state.backend.tasks_by_category(name)
    return _show_results(state, found, f"No tasks in category '{name}'.")


async def cmd_priority(state: AppState, args: list[str]) -> str:
    level = args[0].strip().lower() if args else ""
    if level not in {p.value for p in Priority}:
        return "Usage: /priority low|medium|high"
    found = await state.backend.tasks_by_priority(level)
    return _show_results(state, found, f"No {level} priority tasks.")


def _parse_filters(args: list[str], current: TaskFilters) -> TaskFilters:
    status, priority, category, tags = current.status, current.priority, current.category, current.tags
    for arg in args:
        key, _, value = arg.partition("=")
        key = key.strip().lower()
        value = value.strip()
        if key == "status":
            try:
                status = StatusFilter(value.lower() or "all")
            except ValueError as e:
                raise TaskValidationError({"status": "status must be all, completed or pending"}) from e
        elif key == "priority":
            priority = Priority.from_raw(value) if value else None
        elif key == "category":
            category = value or None
        elif key == "tags":
            tags = tuple(t.strip().lower() for t in value.split(",") if t.strip())
        else:
            raise TaskValidationError({"filter": f"Unknown filter: {key}"})
    return TaskFilters(status=status, priority=priority, category=category, tags=tags)


async def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter                         -> show current filters
    /filter clear                   -> reset
    /filter status=pending priority=high category=Work tags=a,b
    """
    if args and args[0].lower() == "clear":
        state.view.filters = TaskFilters()
        return "Filters cleared."
    if args:
        state.view.filters = _parse_filters(args, state.view.filters)
    f = state.view.filters
    return (
        "Filters: "
        f"status={f.status.value} "
        f"priority={f.priority.value if f.priority else '-'} "
        f"category={f.category or '-'} "
        f"tags={','.join(f.tags) or '-'}"
    )


_SORT_ALIASES = {
    "title": SortField.TITLE,
    "created": SortField.CREATED_AT,
    "createdat": SortField.CREATED_AT,
    "due": SortField.DUE_DATE,
    "duedate": SortField.DUE_DATE,
    "priority": SortField.PRIORITY,
    "order": SortField.ORDER,
}


async def cmd_sort(state: AppState, args: list[str]) -> str:
    if not args:
        s = state.view.sort
        return f"Sort: {s.field.value} {s.direction.value}"
    field = _SORT_ALIASES.get(args[0].lower())
    if field is None:
        return "Usage: /sort title|createdAt|dueDate|priority|order [asc|desc]"
    direction = SortDirection.ASC
    if len(args) > 1:
        try:
            direction = SortDirection(args[1].lower())
        except ValueError:
            return "Direction must be asc or desc."
    state.view.sort = TaskSort(field=field, direction=direction)
    return f"Sort: {field.value} {direction.value}"


async def cmd_stats(state: AppState, args: list[str]) -> str:
    tasks = state.store.tasks
    s = task_stats(tasks)
    return (
        "Stats:\n"
        f"  Total: {s.total}\n"
        f"  Completed: {s.completed}\n"
        f"  Pending: {s.pending}\n"
        f"  High priority (open): {s.high_priority}\n"
        f"  Categories: {', '.join(unique_categories(tasks)) or '-'}\n"
        f"  Tags: {', '.join(unique_tags(tasks)) or '-'}"
    )


async def cmd_due(state: AppState, args: list[str]) -> str:
    day = parse_day(args[0] if args else "today")
    due = tasks_due_on(state.store.tasks, day)
    if not due:
        return f"Nothing due on {day.isoformat()}."
    return "\n".join(format_task(t) for t in due)


async def cmd_retry(state: AppState, args: list[str]) -> str:
    await state.store.load_all()
    return f"Loaded {len(state.store.tasks)} tasks." + _error_banner(state)


async def cmd_error(state: AppState, args: list[str]) -> str:
    if args and args[0].lower() == "clear":
        state.store.clear_error()
        return "Error cleared."
    err = state.store.error
    if err is None:
        return "No errors."
    if isinstance(err, TaskBackendError) and err.status_code is not None:
        return f"Last error (HTTP {err.status_code}): {friendly_error_message(err)}"
    return f"Last error: {friendly_error_message(err)}"


registry.register("help", cmd_help, "Show this help")
registry.register("list", cmd_list, "List visible tasks", aliases=["ls"])
registry.register("show", cmd_show, "Show a task with its subtasks")
registry.register("add", cmd_add, "Add a task: /add Title !high #tag @Category due:YYYY-MM-DD desc:\"...\"")
registry.register("edit", cmd_edit, "Edit a task: /edit <task> [title words] [!prio] [#tag] [@cat] [due:...]")
registry.register("done", cmd_done, "Toggle completion of a task")
registry.register("rm", cmd_remove, "Delete a task", aliases=["delete"])
registry.register("move", cmd_move, "Move a task to a row of the current /list view: /move <task> <row>")
registry.register("sub", cmd_sub, "Add a subtask: /sub <task> <title>")
registry.register("subdone", cmd_subdone, "Toggle a subtask: /subdone <task> <subtask>")
registry.register("subrm", cmd_subrm, "Delete a subtask: /subrm <task> <subtask>")
registry.register("search", cmd_search, "Search title/description/tags (empty clears)")
registry.register("find", cmd_find, "Ask the API for tasks matching text: /find <text>")
registry.register("category", cmd_category, "List categories, or the tasks of one: /category [name]")
registry.register("priority", cmd_priority, "Tasks of one priority from the API: /priority low|medium|high")
registry.register("filter", cmd_filter, "Filter: status= priority= category= tags=a,b | clear")
registry.register("sort", cmd_sort, "Sort by title|createdAt|dueDate|priority|order [asc|desc]")
registry.register("stats", cmd_stats, "Show task statistics")
registry.register("due", cmd_due, "Tasks due on a day: /due [YYYY-MM-DD|today]")
registry.register("retry", cmd_retry, "Reload tasks from the API")
registry.register("error", cmd_error, "Show or clear the last error: /error [clear]")
