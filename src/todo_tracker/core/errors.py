# src/todo_tracker/core/errors.py

"""
Error taxonomy of the task core.

Every error here is recoverable: the API layer translates it into a response
(ValidationError -> 400, NotFoundError -> 404, ConflictError -> 409).
"""

from __future__ import annotations


class TaskTrackerError(Exception):
    """Base class for all errors raised by the core."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TaskTrackerError):
    """Malformed field value (empty title, past due date on create, bad filter)."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class NotFoundError(TaskTrackerError):
    """Task or subtask is absent, or is not owned by the caller."""


class ConflictError(TaskTrackerError):
    """Duplicate value of a unique field (e.g. user email)."""
