# src/taskflow/core/errors.py

from __future__ import annotations


class TaskflowError(Exception):
    """Base error for task operations."""


class TaskValidationError(TaskflowError):
    """
    Raised when task input fails client-side validation.

    `errors` maps the offending field name to a human-readable message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        super().__init__(detail or "Invalid task data")


class TaskBackendError(TaskflowError):
    """Raised for transport failures and non-2xx responses from the task API."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TaskAuthError(TaskBackendError):
    """Raised when the task API rejects our credentials (HTTP 401)."""


class TaskPayloadError(TaskBackendError):
    """Raised when a response body cannot be coerced into a Task/Subtask."""
