# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from todo_tracker.tasks.task_service import TaskService
from todo_tracker.tasks.task_store import TaskStore
from todo_tracker.users.user_store import UserStore

from .fakes import FakeMailer


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap helpers.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-tracker-test",
        environment="development",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        notify_interval_seconds=0.01,
        notify_window_hours=24.0,
        client_url="http://localhost:5173",
        email_host="",
    )


@pytest.fixture()
def task_store(settings: SimpleNamespace) -> TaskStore:
    return TaskStore(settings.tasks_db_path)


@pytest.fixture()
def user_store(settings: SimpleNamespace) -> UserStore:
    return UserStore(settings.tasks_db_path)


@pytest.fixture()
def service(task_store: TaskStore) -> TaskService:
    return TaskService(task_store)


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()
