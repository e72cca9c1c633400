# src/todo_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the mail transport, auth provider and storage swappable and makes
testing easier.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Protocol


@dataclass(frozen=True, slots=True)
class SendResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class Identity:
    owner_id: str
    email: str


class Mailer(Protocol):
    """
    Outbound email transport.

    Timeouts and transport errors are the mailer's concern; callers only see
    a pass/fail SendResult. No queuing or retry is assumed.
    """

    def send(self, *, to_email: str, subject: str, html_body: str) -> Awaitable[SendResult]: ...


class AuthService(Protocol):
    """Resolves a request credential into the caller's identity (trusted verbatim)."""

    def resolve(self, credential: str) -> Identity: ...


class NotificationRepo(Protocol):
    # Reminder sweep API
    def find_due_within_window(self, window_start: float, window_end: float) -> list[Any]: ...
    def find_overdue_unnotified(self, now_ts: float | None = None) -> list[Any]: ...
    def mark_notified(self, task_id: int) -> bool: ...
