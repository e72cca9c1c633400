# src/todo_tracker/tasks/notification_sweeper.py

from __future__ import annotations

"""
Due-soon reminder sweep.

A small polling loop that, on every tick:
- scans for open, not yet notified tasks due within the reminder window,
- renders a reminder email per task,
- sends it via an injected Mailer port,
- marks the task notified only after a confirmed send.

A failed send leaves notification_sent untouched, so the next sweep retries it
naturally. Nothing is cached between sweeps; the store is always re-read.
"""

import asyncio
import html
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from ..core.ports import Mailer, NotificationRepo, SendResult
from .task_models import DueTask, Priority, Task

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 24 * 60 * 60

_PRIORITY_COLORS = {
    Priority.HIGH: "#ef4444",
    Priority.MEDIUM: "#f59e0b",
    Priority.LOW: "#10b981",
}


@dataclass(slots=True, frozen=True)
class ReminderEmail:
    to_email: str
    subject: str
    html_body: str


@dataclass(slots=True)
class SweepReport:
    scanned: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    notified_ids: list[int] = field(default_factory=list)


def _format_due(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M %Z")


def render_reminder_html(task: Task, *, client_url: str = "") -> str:
    """HTML body for a due-soon reminder. All task text is escaped."""
    color = _PRIORITY_COLORS.get(task.priority, _PRIORITY_COLORS[Priority.LOW])
    title = html.escape(task.title)

    description = ""
    if task.description:
        description = f"<p><strong>Description:</strong> {html.escape(task.description)}</p>"

    checklist = ""
    if task.subtasks:
        items = "".join(
            f"<li>{'&#9989;' if s.is_completed else '&#9203;'} {html.escape(s.title)}</li>"
            for s in task.subtasks
        )
        checklist = f"<div><strong>Subtasks:</strong><ul>{items}</ul></div>"

    link = ""
    if client_url:
        href = html.escape(client_url.rstrip("/") + "/dashboard", quote=True)
        link = f'<a href="{href}" class="btn">View in Todo App</a>'

    return f"""<!DOCTYPE html>
<html>
<head>
<style>
  body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
  .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
  .header {{ background: #4f46e5; color: white; padding: 20px; text-align: center; }}
  .task-card {{ background: white; padding: 15px; margin: 15px 0; border-left: 4px solid {color}; }}
  .priority-badge {{ padding: 4px 8px; border-radius: 4px; color: white; background: {color}; }}
  .btn {{ display: inline-block; padding: 10px 20px; background: #4f46e5; color: white; }}
</style>
</head>
<body>
<div class="container">
  <div class="header"><h1>Task Reminder</h1><p>You have a task due soon!</p></div>
  <div class="task-card">
    <h2>{title}</h2>
    {description}
    <p><strong>Due Date:</strong> {html.escape(_format_due(task.due_date))}</p>
    <p><strong>Priority:</strong> <span class="priority-badge">{task.priority.value}</span></p>
    {checklist}
  </div>
  <p>Don't forget to complete your task on time!</p>
  {link}
  <p style="font-size: 12px; color: #6b7280;">This is an automated reminder from your Todo App.</p>
</div>
</body>
</html>
"""


def build_reminder(due: DueTask, *, client_url: str = "") -> ReminderEmail | None:
    """Reminder for a due task, or None when the owner has no usable email."""
    email = (due.owner_email or "").strip()
    if not email:
        return None
    return ReminderEmail(
        to_email=email,
        subject=f'Reminder: "{due.task.title}" is due soon',
        html_body=render_reminder_html(due.task, client_url=client_url),
    )


async def _dispatch(mailer: Mailer, reminder: ReminderEmail) -> SendResult:
    try:
        return await mailer.send(
            to_email=reminder.to_email,
            subject=reminder.subject,
            html_body=reminder.html_body,
        )
    except Exception as exc:
        logger.exception("mailer.send raised to=%s", reminder.to_email)
        return SendResult(success=False, error=str(exc) or exc.__class__.__name__)


async def sweep_once(
        task_store: NotificationRepo,
        mailer: Mailer,
        *,
        now_ts: float | None = None,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        client_url: str = "",
) -> SweepReport:
    """
    One sweep over tasks due in [now, now + window_seconds].

    Each task is handled independently: a failure while rendering, sending or
    flagging one task is logged and the sweep moves on to the next.
    """
    if now_ts is None:
        now_ts = time.time()
    report = SweepReport()

    due_tasks = task_store.find_due_within_window(now_ts, now_ts + float(window_seconds))
    report.scanned = len(due_tasks)
    logger.info(
        "Reminder sweep: %d task(s) due soon", report.scanned, extra={"sweep_summary": True}
    )

    for due in due_tasks:
        task_id = due.task.id
        try:
            reminder = build_reminder(due, client_url=client_url)
        except Exception:
            logger.exception("build_reminder failed task_id=%s", task_id)
            report.failed += 1
            continue

        if reminder is None:
            logger.warning("Task %s has no resolvable owner email; skipping", task_id)
            report.skipped += 1
            continue

        result = await _dispatch(mailer, reminder)
        if not result.success:
            logger.error("Reminder send failed task_id=%s error=%s", task_id, result.error)
            report.failed += 1
            continue

        try:
            marked = task_store.mark_notified(task_id)
        except Exception:
            # Email went out but the flag did not stick: next sweep may send a duplicate.
            logger.exception("mark_notified failed task_id=%s", task_id)
            report.failed += 1
            continue

        if not marked:
            # Deleted or already flagged by an overlapping sweep since the scan.
            logger.warning("Reminder sent but task %s was no longer pending notification", task_id)
            report.skipped += 1
            continue

        report.sent += 1
        report.notified_ids.append(task_id)
        logger.info("Reminder sent task_id=%s", task_id)

    logger.info(
        "Reminder sweep done: sent=%d failed=%d skipped=%d",
        report.sent,
        report.failed,
        report.skipped,
        extra={"sweep_summary": True},
    )
    return report


async def run_notification_sweeper(
        task_store: NotificationRepo,
        mailer: Mailer,
        *,
        interval_seconds: float = 3600.0,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        client_url: str = "",
) -> None:
    """
    Simple polling loop around sweep_once.

    A sweep that fails as a whole (e.g. the scan query) is logged and retried
    on the next tick. To stop the sweeper, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))

    while True:
        try:
            await sweep_once(
                task_store,
                mailer,
                window_seconds=window_seconds,
                client_url=client_url,
            )
        except Exception:
            logger.exception("Reminder sweep failed")

        await asyncio.sleep(sleep_s)


async def send_test_email(mailer: Mailer, to_email: str) -> SendResult:
    """Send a configuration test email."""
    stamp = datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")
    body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        "<h2>Email Configuration Test</h2>"
        "<p>Your email notifications are working correctly!</p>"
        f"<p><strong>Timestamp:</strong> {stamp}</p>"
        "<p>You will receive task reminders at this email address when tasks are due soon.</p>"
        "</div>"
    )
    return await _dispatch(
        mailer,
        ReminderEmail(to_email=to_email, subject="Todo App - Email Configuration Test", html_body=body),
    )
