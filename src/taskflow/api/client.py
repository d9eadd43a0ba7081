# src/taskflow/api/client.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

import httpx

from ..config import get_settings
from ..core.errors import TaskAuthError, TaskBackendError, TaskPayloadError
from ..tasks.task_models import (
    Subtask,
    SubtaskPatch,
    Task,
    TaskDraft,
    TaskPatch,
    format_datetime,
    subtask_from_payload,
    task_from_payload,
    tasks_from_payload,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(
        connect=connect_s,
        read=read_s,
        write=10.0,
        pool=connect_s,
    )


def _seg(value: str) -> str:
    return quote(str(value), safe="")


def _error_message(resp: httpx.Response) -> str:
    """Prefer the server's {"message": ...}; fall back to the status line."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get("message")
        if isinstance(msg, str) and msg.strip():
            return msg.strip()
    reason = (resp.reason_phrase or "").strip()
    if reason:
        return f"HTTP {resp.status_code} {reason}"
    return DEFAULT_ERROR_MESSAGE


def friendly_error_message(err: Exception) -> str:
    msg = str(err).strip() or DEFAULT_ERROR_MESSAGE
    if isinstance(err, TaskAuthError):
        return "Task API rejected the credentials. Check TASKFLOW_API_TOKEN in .env."
    if "Task API URL is not set" in msg:
        return "Task API is not configured. Set TASKFLOW_API_URL in .env (or run offline)."
    if isinstance(err, TaskBackendError) and err.status_code is None:
        return f"Task API is unreachable ({msg}). Try /retry later."
    return msg


class HttpTaskBackend:
    """
    REST client for the task API.

    - JSON bodies with camelCase keys; every response is coerced into
      Task/Subtask right here, nothing untyped leaves this class.
    - Transport errors and non-2xx responses raise TaskBackendError
      (TaskAuthError for 401). No retries and no mock data: the store
      decides what happens on failure.
    """

    def __init__(
            self,
            settings=None,
            *,
            transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if settings is None:
            settings = get_settings()

        base_url = (getattr(settings, "api_url", "") or "").strip()
        if not base_url:
            raise RuntimeError("Task API URL is not set. Set TASKFLOW_API_URL in your .env.")

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        token = getattr(settings, "api_token", None)
        if token:
            headers["Authorization"] = f"Bearer {token}"

        timeout = _make_timeout(
            connect_s=float(getattr(settings, "connect_timeout", 5.0)),
            read_s=float(getattr(settings, "read_timeout", 10.0)),
        )

        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        logger.info("HttpTaskBackend ready base_url=%s auth=%s", self._base_url, bool(token))

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---- low-level helpers ----

    async def _request(
            self,
            method: str,
            path: str,
            *,
            json: Any = None,
            params: dict[str, str] | None = None,
    ) -> Any:
        try:
            resp = await self._client.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            logger.info("Task API: %s %s failed (%s)", method, path, e.__class__.__name__)
            raise TaskBackendError(str(e) or DEFAULT_ERROR_MESSAGE) from e

        if resp.status_code == 401:
            raise TaskAuthError(_error_message(resp), status_code=401)
        if resp.is_error:
            logger.info("Task API: %s %s -> HTTP %s", method, path, resp.status_code)
            raise TaskBackendError(_error_message(resp), status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise TaskPayloadError(
                f"Task API returned invalid JSON for {method} {path}",
                status_code=resp.status_code,
            ) from e

    @staticmethod
    def _now() -> str | None:
        return format_datetime(utcnow())

    # ---- tasks ----

    async def list_tasks(self) -> list[Task]:
        return tasks_from_payload(await self._request("GET", "/tasks"))

    async def create_task(self, draft: TaskDraft) -> Task:
        body = {**draft.to_payload(), "createdAt": self._now(), "updatedAt": self._now()}
        return task_from_payload(await self._request("POST", "/tasks", json=body))

    async def update_task(self, task_id: str, patch: TaskPatch) -> Task:
        body = {**patch.to_payload(), "updatedAt": self._now()}
        return task_from_payload(await self._request("PUT", f"/tasks/{_seg(task_id)}", json=body))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{_seg(task_id)}")

    async def reorder_tasks(self, task_ids: Sequence[str]) -> list[Task]:
        body = {"taskIds": list(task_ids), "updatedAt": self._now()}
        data = await self._request("PUT", "/tasks/reorder", json=body)
        if not isinstance(data, list):
            raise TaskPayloadError("Reorder response must be a list of tasks")
        return [task_from_payload(item) for item in data]

    # ---- subtasks ----

    async def add_subtask(self, task_id: str, title: str) -> Subtask:
        body = {"title": title, "createdAt": self._now()}
        data = await self._request("POST", f"/tasks/{_seg(task_id)}/subtasks", json=body)
        return subtask_from_payload(data, task_id=task_id)

    async def update_subtask(self, task_id: str, subtask_id: str, patch: SubtaskPatch) -> Subtask:
        data = await self._request(
            "PUT",
            f"/tasks/{_seg(task_id)}/subtasks/{_seg(subtask_id)}",
            json=patch.to_payload(),
        )
        return subtask_from_payload(data, task_id=task_id)

    async def delete_subtask(self, task_id: str, subtask_id: str) -> None:
        await self._request("DELETE", f"/tasks/{_seg(task_id)}/subtasks/{_seg(subtask_id)}")

    # ---- server-side queries ----

    async def search_tasks(self, query: str) -> list[Task]:
        return tasks_from_payload(await self._request("GET", "/tasks/search", params={"q": query}))

    async def tasks_by_category(self, category: str) -> list[Task]:
        return tasks_from_payload(await self._request("GET", f"/tasks/category/{_seg(category)}"))

    async def tasks_by_priority(self, priority: str) -> list[Task]:
        return tasks_from_payload(await self._request("GET", f"/tasks/priority/{_seg(priority)}"))
