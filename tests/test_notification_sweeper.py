# tests/test_notification_sweeper.py

from __future__ import annotations

import asyncio
import time

import pytest

from todo_tracker.core.ports import SendResult
from todo_tracker.tasks.notification_sweeper import (
    build_reminder,
    run_notification_sweeper,
    send_test_email,
    sweep_once,
)
from todo_tracker.tasks.task_models import DueTask, Priority, Subtask, Task
from todo_tracker.tasks.task_service import TaskService
from todo_tracker.tasks.task_store import TaskStore
from todo_tracker.users.user_store import UserStore

from .fakes import FakeMailer

HOUR = 3600.0


def _owner(user_store: UserStore, email: str) -> str:
    return user_store.add_user(email).id


@pytest.mark.asyncio
async def test_sweep_sends_once_and_marks_task(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    task = service.create(
        owner,
        title="Pay rent",
        priority="High",
        due_date=time.time() + 12 * HOUR,
        subtasks=[{"title": "transfer"}],
    )

    report = await sweep_once(task_store, mailer)

    assert report.scanned == 1
    assert report.sent == 1
    assert report.notified_ids == [task.id]
    assert [m.to_email for m in mailer.sent] == ["alice@example.com"]
    assert "Pay rent" in mailer.sent[0].subject
    assert "transfer" in mailer.sent[0].html_body
    assert service.get(task.id, owner).notification_sent is True

    again = await sweep_once(task_store, mailer)
    assert again.scanned == 0
    assert len(mailer.sent) == 1


@pytest.mark.asyncio
async def test_notified_tasks_do_not_show_up_as_overdue_unnotified(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    now = time.time()
    service.create(owner, title="Soon", due_date=now + 2 * HOUR)

    await sweep_once(task_store, mailer, now_ts=now)

    # Later, after the due date has passed.
    assert task_store.find_overdue_unnotified(now_ts=now + 3 * HOUR) == []


@pytest.mark.asyncio
async def test_failed_send_leaves_flag_and_sweep_continues(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    bad = _owner(user_store, "bounce@example.com")
    boom = _owner(user_store, "boom@example.com")
    good = _owner(user_store, "good@example.com")
    now = time.time()
    t_bad = service.create(bad, title="Bounces", due_date=now + 1 * HOUR)
    t_boom = service.create(boom, title="Raises", due_date=now + 2 * HOUR)
    t_good = service.create(good, title="Works", due_date=now + 3 * HOUR)

    mailer.fail_for.add("bounce@example.com")
    mailer.raise_for.add("boom@example.com")

    report = await sweep_once(task_store, mailer, now_ts=now)

    assert report.failed == 2
    assert report.sent == 1
    assert mailer.attempts == ["bounce@example.com", "boom@example.com", "good@example.com"]
    assert service.get(t_bad.id, bad).notification_sent is False
    assert service.get(t_boom.id, boom).notification_sent is False
    assert service.get(t_good.id, good).notification_sent is True

    # Next run retries only the failed ones.
    mailer.fail_for.clear()
    mailer.raise_for.clear()
    retry = await sweep_once(task_store, mailer, now_ts=now)
    assert retry.scanned == 2
    assert retry.sent == 2


@pytest.mark.asyncio
async def test_sweep_skips_tasks_without_owner_email(
    service: TaskService, task_store: TaskStore, mailer: FakeMailer
) -> None:
    task = service.create("unknown-owner", title="Orphan", due_date=time.time() + HOUR)

    report = await sweep_once(task_store, mailer)

    assert report.skipped == 1
    assert mailer.attempts == []
    assert service.get(task.id, "unknown-owner").notification_sent is False


@pytest.mark.asyncio
async def test_sweep_ignores_completed_and_far_future_tasks(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    now = time.time()
    done = service.create(owner, title="Done", due_date=now + HOUR)
    service.toggle_task_completion(done.id, owner)
    service.create(owner, title="Next week", due_date=now + 7 * 24 * HOUR)

    report = await sweep_once(task_store, mailer, now_ts=now)

    assert report.scanned == 0
    assert mailer.attempts == []


@pytest.mark.asyncio
async def test_rescheduled_task_is_reminded_again(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    now = time.time()
    task = service.create(owner, title="Dentist", due_date=now + HOUR)

    await sweep_once(task_store, mailer, now_ts=now)
    service.update(task.id, owner, due_date=now + 5 * HOUR)
    await sweep_once(task_store, mailer, now_ts=now)

    assert len(mailer.sent) == 2


@pytest.mark.asyncio
async def test_flag_write_failure_does_not_abort_the_run(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    now = time.time()
    first = service.create(owner, title="First", due_date=now + HOUR)
    second = service.create(owner, title="Second", due_date=now + 2 * HOUR)

    class FlakyStore:
        def __init__(self, inner: TaskStore) -> None:
            self.inner = inner

        def find_due_within_window(self, start: float, end: float):
            return self.inner.find_due_within_window(start, end)

        def find_overdue_unnotified(self, now_ts=None):
            return self.inner.find_overdue_unnotified(now_ts)

        def mark_notified(self, task_id: int) -> bool:
            if task_id == first.id:
                raise RuntimeError("database is locked")
            return self.inner.mark_notified(task_id)

    report = await sweep_once(FlakyStore(task_store), mailer, now_ts=now)

    assert report.sent == 1
    assert report.failed == 1
    assert report.notified_ids == [second.id]


def test_reminder_escapes_user_text() -> None:
    task = Task(
        id=7,
        owner_id="u1",
        title="<script>alert(1)</script>",
        description="a & b",
        is_completed=False,
        priority=Priority.MEDIUM,
        due_date=time.time() + HOUR,
        subtasks=[Subtask(id="s", title="<b>bold</b>", is_completed=True)],
    )

    reminder = build_reminder(DueTask(task=task, owner_email="a@example.com"), client_url="https://app/")

    assert reminder is not None
    assert "<script>" not in reminder.html_body
    assert "&lt;script&gt;" in reminder.html_body
    assert "a &amp; b" in reminder.html_body
    assert "&lt;b&gt;bold&lt;/b&gt;" in reminder.html_body
    assert "https://app/dashboard" in reminder.html_body
    assert "Medium" in reminder.html_body

    assert build_reminder(DueTask(task=task, owner_email=None)) is None


@pytest.mark.asyncio
async def test_send_test_email(mailer: FakeMailer) -> None:
    result = await send_test_email(mailer, "ops@example.com")
    assert result == SendResult(success=True, message_id="fake-1")
    assert mailer.sent[0].subject == "Todo App - Email Configuration Test"


@pytest.mark.asyncio
async def test_sweeper_loop_runs_until_cancelled(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    service.create(owner, title="Loop", due_date=time.time() + HOUR)

    runner = asyncio.create_task(
        run_notification_sweeper(task_store, mailer, interval_seconds=0.01)
    )

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(mailer.sent) == 1, "Sweeper should remind exactly once across ticks"


@pytest.mark.asyncio
async def test_task_flagged_elsewhere_is_not_counted_as_sent(
    service: TaskService, task_store: TaskStore, user_store: UserStore, mailer: FakeMailer
) -> None:
    owner = _owner(user_store, "alice@example.com")
    now = time.time()
    raced = service.create(owner, title="Raced", due_date=now + HOUR)
    normal = service.create(owner, title="Normal", due_date=now + 2 * HOUR)

    class RacingStore:
        """Another sweep flags `raced` between our scan and our mark."""

        def __init__(self, inner: TaskStore) -> None:
            self.inner = inner

        def find_due_within_window(self, start: float, end: float):
            found = self.inner.find_due_within_window(start, end)
            self.inner.mark_notified(raced.id)
            return found

        def find_overdue_unnotified(self, now_ts=None):
            return self.inner.find_overdue_unnotified(now_ts)

        def mark_notified(self, task_id: int) -> bool:
            return self.inner.mark_notified(task_id)

    report = await sweep_once(RacingStore(task_store), mailer, now_ts=now)

    assert report.scanned == 2
    assert report.sent == 1
    assert report.skipped == 1
    assert report.notified_ids == [normal.id]
