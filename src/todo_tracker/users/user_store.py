# src/todo_tracker/users/user_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

from ..core.errors import ConflictError, ValidationError
from ..db import connect, ensure_schema

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str
    is_active: bool
    created_at: float


def normalize_email(email: str) -> str:
    clean = (email or "").strip().lower()
    local, sep, domain = clean.partition("@")
    if not local or not sep or "." not in domain or " " in clean:
        raise ValidationError("Please enter a valid email address", field="email")
    return clean


class UserStore:
    """
    Owner directory backing the reminder sweep.

    Registration, passwords and tokens belong to the auth service; this table
    only maps an owner id to a notification address.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        ensure_schema(self._db_path)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=str(row["id"]),
            email=str(row["email"]),
            is_active=bool(row["is_active"]),
            created_at=float(row["created_at"] or 0.0),
        )

    def add_user(self, email: str, *, user_id: str | None = None, is_active: bool = True) -> User:
        clean = normalize_email(email)
        uid = user_id or uuid.uuid4().hex
        now = time.time()

        conn = connect(self._db_path)
        try:
            conn.execute(
                """
                INSERT INTO users(id, email, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (uid, clean, 1 if is_active else 0, now, now),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            raise ConflictError("User already exists with this email") from None
        finally:
            conn.close()

        logger.debug("User added id=%s", uid)
        return User(id=uid, email=clean, is_active=is_active, created_at=now)

    def get_user(self, user_id: str) -> User | None:
        conn = connect(self._db_path)
        try:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def find_by_email(self, email: str) -> User | None:
        conn = connect(self._db_path)
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", ((email or "").strip().lower(),)
            ).fetchone()
            return self._row_to_user(row) if row else None
        finally:
            conn.close()

    def set_active(self, user_id: str, is_active: bool) -> None:
        conn = connect(self._db_path)
        try:
            conn.execute(
                "UPDATE users SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if is_active else 0, time.time(), user_id),
            )
            conn.commit()
        finally:
            conn.close()
