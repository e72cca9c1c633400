# tests/test_task_store.py

from __future__ import annotations

import time

from todo_tracker.tasks.task_models import (
    Priority,
    SortField,
    SortOrder,
    Subtask,
    Task,
    TaskFilters,
)
from todo_tracker.tasks.task_store import TaskStore
from todo_tracker.users.user_store import UserStore


def _add(store: TaskStore, owner_id: str, title: str, **kw) -> Task:
    task = Task(
        id=0,
        owner_id=owner_id,
        title=title,
        description=kw.pop("description", ""),
        is_completed=kw.pop("is_completed", False),
        priority=kw.pop("priority", Priority.LOW),
        due_date=kw.pop("due_date", None),
        **kw,
    )
    return store.insert(task)


def test_insert_and_get_round_trip_with_subtasks(task_store: TaskStore) -> None:
    task = _add(
        task_store,
        "u1",
        "Ship release",
        subtasks=[Subtask(id="s1", title="tag"), Subtask(id="s2", title="notes", is_completed=True)],
    )
    assert task.id > 0
    assert task.created_at > 0

    loaded = task_store.get_for_owner(task.id, "u1")
    assert loaded is not None
    assert [(s.id, s.title, s.is_completed) for s in loaded.subtasks] == [
        ("s1", "tag", False),
        ("s2", "notes", True),
    ]
    assert loaded.to_dict()["subtasks"][1] == {"id": "s2", "title": "notes", "is_completed": True}


def test_get_is_owner_scoped(task_store: TaskStore) -> None:
    task = _add(task_store, "u1", "mine")
    assert task_store.get_for_owner(task.id, "u2") is None
    assert task_store.get_for_owner(task.id + 100, "u1") is None


def test_pagination_second_page(task_store: TaskStore) -> None:
    for i in range(15):
        _add(task_store, "u1", f"task {i}")
    _add(task_store, "u2", "someone else's")

    page = task_store.find_by_owner_with_filters("u1", TaskFilters(page=2, limit=10))

    assert len(page.tasks) == 5
    assert page.total_tasks == 15
    assert page.total_pages == 2
    assert page.has_next_page is False
    assert page.has_prev_page is True


def test_default_sort_is_newest_first(task_store: TaskStore) -> None:
    ids = [_add(task_store, "u1", f"t{i}").id for i in range(4)]
    page = task_store.find_by_owner_with_filters("u1", TaskFilters())
    assert [t.id for t in page.tasks] == list(reversed(ids))


def test_priority_sort_uses_stored_text_and_insertion_order_for_ties(task_store: TaskStore) -> None:
    low = _add(task_store, "u1", "low", priority=Priority.LOW)
    high1 = _add(task_store, "u1", "high1", priority=Priority.HIGH)
    med = _add(task_store, "u1", "med", priority=Priority.MEDIUM)
    high2 = _add(task_store, "u1", "high2", priority=Priority.HIGH)

    asc = task_store.find_by_owner_with_filters(
        "u1", TaskFilters(sort_by=SortField.PRIORITY, sort_order=SortOrder.ASC)
    )
    assert [t.id for t in asc.tasks] == [high1.id, high2.id, low.id, med.id]

    desc = task_store.find_by_owner_with_filters(
        "u1", TaskFilters(sort_by=SortField.PRIORITY, sort_order=SortOrder.DESC)
    )
    assert [t.id for t in desc.tasks] == [med.id, low.id, high1.id, high2.id]


def test_due_date_sort_and_range(task_store: TaskStore) -> None:
    now = time.time()
    a = _add(task_store, "u1", "a", due_date=now + 3 * 3600)
    b = _add(task_store, "u1", "b", due_date=now + 1 * 3600)
    c = _add(task_store, "u1", "c", due_date=now + 2 * 3600)
    _add(task_store, "u1", "no due")

    in_range = task_store.find_by_owner_with_filters(
        "u1",
        TaskFilters(
            due_date_from=now + 1 * 3600,
            due_date_to=now + 2 * 3600,
            sort_by=SortField.DUE_DATE,
            sort_order=SortOrder.ASC,
        ),
    )
    assert [t.id for t in in_range.tasks] == [b.id, c.id]

    desc = task_store.find_by_owner_with_filters(
        "u1", TaskFilters(due_date_from=now, sort_by=SortField.DUE_DATE, sort_order=SortOrder.DESC)
    )
    assert [t.id for t in desc.tasks] == [a.id, c.id, b.id]


def test_search_matches_title_or_description_case_insensitively(task_store: TaskStore) -> None:
    t1 = _add(task_store, "u1", "Quarterly REPORT")
    t2 = _add(task_store, "u1", "Email", description="attach the report draft")
    _add(task_store, "u1", "Groceries")
    _add(task_store, "u2", "report for someone else")

    page = task_store.find_by_owner_with_filters("u1", TaskFilters(search="report"))

    assert sorted(t.id for t in page.tasks) == sorted([t1.id, t2.id])
    assert page.total_tasks == 2


def test_search_treats_wildcards_literally(task_store: TaskStore) -> None:
    _add(task_store, "u1", "100% done")
    _add(task_store, "u1", "1000 items")

    page = task_store.find_by_owner_with_filters("u1", TaskFilters(search="0%"))
    assert [t.title for t in page.tasks] == ["100% done"]


def test_completion_and_priority_filters(task_store: TaskStore) -> None:
    _add(task_store, "u1", "open high", priority=Priority.HIGH)
    done = _add(task_store, "u1", "done high", priority=Priority.HIGH, is_completed=True)
    _add(task_store, "u1", "done low", is_completed=True)

    page = task_store.find_by_owner_with_filters(
        "u1", TaskFilters(priority=Priority.HIGH, is_completed=True)
    )
    assert [t.id for t in page.tasks] == [done.id]


def test_aggregate_stats(task_store: TaskStore) -> None:
    now = time.time()
    _add(
        task_store,
        "u1",
        "half done",
        subtasks=[Subtask(id="a", title="a", is_completed=True), Subtask(id="b", title="b")],
    )
    _add(task_store, "u1", "finished", is_completed=True, priority=Priority.HIGH)
    _add(task_store, "u1", "late", due_date=now - 3600, priority=Priority.HIGH)
    _add(task_store, "u1", "late but done", due_date=now - 3600, is_completed=True)
    _add(task_store, "u2", "other owner", due_date=now - 3600)

    stats = task_store.aggregate_stats("u1", now_ts=now)

    assert stats.total == 4
    assert stats.completed == 2
    assert stats.pending == 2
    assert stats.high_priority == 2
    assert stats.overdue == 1


def test_aggregate_stats_for_owner_without_tasks(task_store: TaskStore) -> None:
    stats = task_store.aggregate_stats("nobody")
    assert (stats.total, stats.completed, stats.pending, stats.high_priority, stats.overdue) == (
        0,
        0,
        0,
        0,
        0,
    )


def test_due_queries_join_owner_email(task_store: TaskStore, user_store: UserStore) -> None:
    now = time.time()
    alice = user_store.add_user("Alice@Example.com")
    late = _add(task_store, alice.id, "late", due_date=now - 60)
    soon = _add(task_store, alice.id, "soon", due_date=now + 3600)
    _add(task_store, alice.id, "late but done", due_date=now - 60, is_completed=True)
    orphan = _add(task_store, "ghost", "no owner row", due_date=now + 60)

    overdue = task_store.find_overdue_unnotified(now_ts=now)
    assert [(d.task.id, d.owner_email) for d in overdue] == [(late.id, "alice@example.com")]

    window = task_store.find_due_within_window(now, now + 24 * 3600)
    assert [(d.task.id, d.owner_email) for d in window] == [(orphan.id, None), (soon.id, "alice@example.com")]


def test_due_window_bounds_are_inclusive(task_store: TaskStore) -> None:
    start = time.time() + 1000
    end = start + 100
    at_start = _add(task_store, "u1", "start", due_date=start)
    at_end = _add(task_store, "u1", "end", due_date=end)
    _add(task_store, "u1", "after", due_date=end + 1)

    found = task_store.find_due_within_window(start, end)
    assert [d.task.id for d in found] == [at_start.id, at_end.id]


def test_inactive_owner_email_is_not_resolved(task_store: TaskStore, user_store: UserStore) -> None:
    user = user_store.add_user("bob@example.com")
    user_store.set_active(user.id, False)
    _add(task_store, user.id, "soon", due_date=time.time() + 60)

    found = task_store.find_due_within_window(time.time(), time.time() + 3600)
    assert [d.owner_email for d in found] == [None]


def test_mark_notified_is_one_shot_and_survives_plain_saves(task_store: TaskStore) -> None:
    task = _add(task_store, "u1", "soon", due_date=time.time() + 60)

    assert task_store.mark_notified(task.id) is True
    assert task_store.mark_notified(task.id) is False

    # A request-path save of a stale copy must not clear the flag.
    task.title = "renamed"
    assert task_store.save(task) is True
    reloaded = task_store.get_for_owner(task.id, "u1")
    assert reloaded is not None
    assert reloaded.title == "renamed"
    assert reloaded.notification_sent is True

    assert task_store.save(reloaded, reset_notification=True) is True
    again = task_store.get_for_owner(task.id, "u1")
    assert again is not None
    assert again.notification_sent is False


def test_delete_removes_task_with_subtasks(task_store: TaskStore) -> None:
    task = _add(task_store, "u1", "doomed", subtasks=[Subtask(id="s", title="s")])

    assert task_store.delete_for_owner(task.id, "u2") is False
    assert task_store.delete_for_owner(task.id, "u1") is True
    assert task_store.get_for_owner(task.id, "u1") is None
    assert task_store.count_tasks() == 0
