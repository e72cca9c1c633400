# src/todo_tracker/tasks/task_store.py

from __future__ import annotations

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from ..db import connect, ensure_schema
from .task_models import (
    DueTask,
    Priority,
    SortField,
    SortOrder,
    Subtask,
    Task,
    TaskFilters,
    TaskPage,
    TaskStats,
)

logger = logging.getLogger(__name__)

_DUE_TASK_SELECT = """
    SELECT t.*,
           CASE WHEN u.is_active = 1 THEN u.email END AS owner_email
    FROM tasks t
    LEFT JOIN users u ON u.id = t.owner_id
"""


class TaskStore:
    """
    SQLite task store.

    A task is stored as one document row; its subtasks live in a JSON column,
    so deleting a task removes its subtasks in the same statement.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        ensure_schema(self._db_path)
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        return connect(self._db_path)

    @staticmethod
    def _subtasks_to_str(subtasks: list[Subtask]) -> str:
        return json.dumps([s.to_dict() for s in subtasks], ensure_ascii=False)

    @staticmethod
    def _str_to_subtasks(s: str | None) -> list[Subtask]:
        if not s:
            return []
        try:
            raw = json.loads(s)
        except ValueError:
            logger.warning("Corrupt subtasks JSON; treating as empty.")
            return []
        if not isinstance(raw, list):
            return []
        out: list[Subtask] = []
        for item in raw:
            if not isinstance(item, dict) or not item.get("id"):
                continue
            out.append(
                Subtask(
                    id=str(item["id"]),
                    title=str(item.get("title") or ""),
                    is_completed=bool(item.get("is_completed", False)),
                )
            )
        return out

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            owner_id=str(row["owner_id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            is_completed=bool(row["is_completed"]),
            priority=Priority.from_db(row["priority"]),
            due_date=float(row["due_date"]) if row["due_date"] is not None else None,
            subtasks=self._str_to_subtasks(row["subtasks"]),
            notification_sent=bool(row["notification_sent"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    def _row_to_due_task(self, row: sqlite3.Row) -> DueTask:
        return DueTask(task=self._row_to_task(row), owner_email=row["owner_email"])

    @staticmethod
    def _filter_clause(owner_id: str, filters: TaskFilters) -> tuple[str, list[Any]]:
        where = ["owner_id = ?"]
        params: list[Any] = [owner_id]

        if filters.is_completed is not None:
            where.append("is_completed = ?")
            params.append(1 if filters.is_completed else 0)

        if filters.priority is not None:
            where.append("priority = ?")
            params.append(filters.priority.value)

        if filters.due_date_from is not None:
            where.append("due_date >= ?")
            params.append(float(filters.due_date_from))

        if filters.due_date_to is not None:
            where.append("due_date <= ?")
            params.append(float(filters.due_date_to))

        if filters.search:
            where.append("(icontains(title, ?) OR icontains(description, ?))")
            params.extend([filters.search, filters.search])

        return " AND ".join(where), params

    @staticmethod
    def _order_clause(filters: TaskFilters) -> str:
        direction = "DESC" if filters.sort_order == SortOrder.DESC else "ASC"
        if filters.sort_by == SortField.DUE_DATE:
            return f"due_date {direction}, id ASC"
        if filters.sort_by == SortField.PRIORITY:
            # Stored text order, not severity.
            return f"priority {direction}, id ASC"
        if filters.sort_by == SortField.CREATED_AT:
            return f"created_at {direction}, id {direction}"
        return "created_at DESC, id DESC"

    # ---- public API ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def count_for_owner(self, owner_id: str) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE owner_id = ?", (owner_id,)
            ).fetchone()
            return int(n)
        finally:
            conn.close()

    def insert(self, task: Task) -> Task:
        """Persist a new task; assigns id and timestamps on the given object."""
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO tasks(
                    owner_id, title, description, is_completed, priority,
                    due_date, subtasks, notification_sent, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.owner_id,
                    task.title,
                    task.description,
                    1 if task.is_completed else 0,
                    task.priority.value,
                    task.due_date,
                    self._subtasks_to_str(task.subtasks),
                    1 if task.notification_sent else 0,
                    now,
                    now,
                ),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for tasks insert")
        finally:
            conn.close()

        task.id = int(rowid)
        task.created_at = now
        task.updated_at = now
        logger.debug(
            "Task added id=%s owner=%s priority=%s due_date=%s",
            task.id,
            task.owner_id,
            task.priority.value,
            task.due_date,
        )
        return task

    def get_for_owner(self, task_id: int, owner_id: str) -> Task | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND owner_id = ?",
                (int(task_id), owner_id),
            ).fetchone()
            return self._row_to_task(row) if row else None
        finally:
            conn.close()

    def save(self, task: Task, *, reset_notification: bool = False) -> bool:
        """
        Write back a loaded task document (owner-scoped).

        notification_sent is only written when reset_notification is True;
        otherwise the column is left to the notification sweeper.
        """
        now = time.time()
        fields = [
            "title = ?",
            "description = ?",
            "is_completed = ?",
            "priority = ?",
            "due_date = ?",
            "subtasks = ?",
            "updated_at = ?",
        ]
        params: list[Any] = [
            task.title,
            task.description,
            1 if task.is_completed else 0,
            task.priority.value,
            task.due_date,
            self._subtasks_to_str(task.subtasks),
            now,
        ]
        if reset_notification:
            fields.append("notification_sent = 0")

        params.extend([int(task.id), task.owner_id])
        sql = f"UPDATE tasks SET {', '.join(fields)} WHERE id = ? AND owner_id = ?"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            updated = cur.rowcount == 1
        finally:
            conn.close()

        if updated:
            task.updated_at = now
            if reset_notification:
                task.notification_sent = False
        return updated

    def delete_for_owner(self, task_id: int, owner_id: str) -> bool:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND owner_id = ?",
                (int(task_id), owner_id),
            )
            conn.commit()
            deleted = cur.rowcount == 1
        finally:
            conn.close()
        logger.debug("Task delete id=%s owner=%s deleted=%s", task_id, owner_id, deleted)
        return deleted

    def find_by_owner_with_filters(self, owner_id: str, filters: TaskFilters | None = None) -> TaskPage:
        """
        One page of the owner's tasks.

        Pagination totals count the tasks matching the same filters.
        """
        if filters is None:
            filters = TaskFilters()

        where, params = self._filter_clause(owner_id, filters)
        order = self._order_clause(filters)

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT COUNT(*) FROM tasks WHERE {where}", params)
            (total,) = cur.fetchone()

            cur.execute(
                f"SELECT * FROM tasks WHERE {where} ORDER BY {order} LIMIT ? OFFSET ?",
                (*params, filters.limit, filters.offset),
            )
            tasks = [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

        return TaskPage.build(tasks, page=filters.page, limit=filters.limit, total=int(total))

    def find_overdue_unnotified(self, now_ts: float | None = None) -> list[DueTask]:
        if now_ts is None:
            now_ts = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                {_DUE_TASK_SELECT}
                WHERE t.due_date IS NOT NULL
                  AND t.due_date < ?
                  AND t.is_completed = 0
                  AND t.notification_sent = 0
                ORDER BY t.due_date ASC, t.id ASC
                """,
                (float(now_ts),),
            )
            return [self._row_to_due_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def find_due_within_window(self, window_start: float, window_end: float) -> list[DueTask]:
        """Open, not yet notified tasks with due_date in [window_start, window_end]."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                {_DUE_TASK_SELECT}
                WHERE t.due_date IS NOT NULL
                  AND t.due_date >= ?
                  AND t.due_date <= ?
                  AND t.is_completed = 0
                  AND t.notification_sent = 0
                ORDER BY t.due_date ASC, t.id ASC
                """,
                (float(window_start), float(window_end)),
            )
            return [self._row_to_due_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def find_due_between_for_owner(self, owner_id: str, start: float, end: float) -> list[Task]:
        """Owner's open tasks with due_date in [start, end), soonest first."""
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE owner_id = ?
                  AND due_date >= ?
                  AND due_date < ?
                  AND is_completed = 0
                ORDER BY due_date ASC, id ASC
                """,
                (owner_id, float(start), float(end)),
            )
            return [self._row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def aggregate_stats(self, owner_id: str, now_ts: float | None = None) -> TaskStats:
        if now_ts is None:
            now_ts = time.time()
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN is_completed = 1 THEN 1 ELSE 0 END) AS completed,
                    SUM(CASE WHEN is_completed = 0 THEN 1 ELSE 0 END) AS pending,
                    SUM(CASE WHEN priority = 'High' THEN 1 ELSE 0 END) AS high_priority,
                    SUM(
                        CASE WHEN due_date IS NOT NULL AND due_date < ? AND is_completed = 0
                        THEN 1 ELSE 0 END
                    ) AS overdue
                FROM tasks
                WHERE owner_id = ?
                """,
                (float(now_ts), owner_id),
            ).fetchone()
        finally:
            conn.close()

        return TaskStats(
            total=int(row["total"] or 0),
            completed=int(row["completed"] or 0),
            pending=int(row["pending"] or 0),
            high_priority=int(row["high_priority"] or 0),
            overdue=int(row["overdue"] or 0),
        )

    def mark_notified(self, task_id: int) -> bool:
        """
        Set notification_sent after a confirmed reminder send.

        Returns False when the task is gone or was already marked.
        """
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE tasks
                SET notification_sent = 1, updated_at = ?
                WHERE id = ? AND notification_sent = 0
                """,
                (time.time(), int(task_id)),
            )
            conn.commit()
            return cur.rowcount == 1
        finally:
            conn.close()
