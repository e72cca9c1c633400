# src/todo_tracker/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore
from ..users.user_store import UserStore
from .ports import Mailer


@dataclass
class AppState:
    # Settings live on the state so every component reads the same object.
    settings: Any

    task_store: TaskStore
    user_store: UserStore
    task_service: TaskService
    mailer: Mailer
