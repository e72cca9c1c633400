# src/todo_tracker/db.py

"""
SQLite helpers shared by TaskStore and UserStore.

The schema is intentionally simple and migration-safe:
- create tables if missing
- use PRAGMA table_info to detect missing columns
- add columns with ALTER TABLE only when needed

Each store call opens its own short-lived connection.
"""

from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


def _icontains(haystack: str | None, needle: str | None) -> int:
    if not haystack or not needle:
        return 0
    return 1 if needle.casefold() in haystack.casefold() else 0


def connect(db_path: str | Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path), timeout=30.0)
    conn.row_factory = sqlite3.Row
    with contextlib.suppress(sqlite3.Error):
        conn.execute("PRAGMA journal_mode=WAL")
    # Unicode-aware substring match; SQLite's LIKE only folds ASCII.
    conn.create_function("icontains", 2, _icontains, deterministic=True)
    return conn


def _add_missing_columns(cur: sqlite3.Cursor, table: str, columns: dict[str, str]) -> None:
    cur.execute(f"PRAGMA table_info({table})")
    existing = {row["name"] for row in cur.fetchall()}
    for name, decl in columns.items():
        if name in existing:
            continue
        cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
        logger.info("Schema migration: added column %s.%s", table, name)


def ensure_schema(db_path: str | Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS users (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                is_completed INTEGER NOT NULL DEFAULT 0,
                priority TEXT NOT NULL DEFAULT 'Low',
                due_date REAL,
                subtasks TEXT NOT NULL DEFAULT '[]',
                notification_sent INTEGER NOT NULL DEFAULT 0,
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
            """
        )

        # Older databases may predate some columns.
        _add_missing_columns(
            cur,
            "tasks",
            {
                "description": "TEXT NOT NULL DEFAULT ''",
                "is_completed": "INTEGER NOT NULL DEFAULT 0",
                "priority": "TEXT NOT NULL DEFAULT 'Low'",
                "due_date": "REAL",
                "subtasks": "TEXT NOT NULL DEFAULT '[]'",
                "notification_sent": "INTEGER NOT NULL DEFAULT 0",
                "created_at": "REAL NOT NULL DEFAULT 0",
                "updated_at": "REAL NOT NULL DEFAULT 0",
            },
        )
        _add_missing_columns(
            cur,
            "users",
            {
                "is_active": "INTEGER NOT NULL DEFAULT 1",
                "updated_at": "REAL NOT NULL DEFAULT 0",
            },
        )

        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_created ON tasks(owner_id, created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_priority ON tasks(owner_id, priority)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_due ON tasks(owner_id, due_date)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_completed ON tasks(owner_id, is_completed)")
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_tasks_notify "
            "ON tasks(is_completed, notification_sent, due_date)"
        )

        conn.commit()
    finally:
        conn.close()
