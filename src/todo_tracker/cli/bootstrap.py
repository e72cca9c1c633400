# src/todo_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (stores/service/mailer).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import Mailer
from ..core.state import AppState
from ..mail.offline import OfflineMailer
from ..mail.smtp_mailer import SmtpMailer
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore
from ..users.user_store import UserStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_mailer(settings) -> Mailer:
    if not getattr(settings, "email_host", ""):
        logger.warning("EMAIL_HOST is not set; reminders will be logged, not sent.")
        return OfflineMailer()
    try:
        return SmtpMailer.from_settings(settings)
    except ValueError:
        logger.exception("Invalid SMTP settings; falling back to the offline mailer.")
        return OfflineMailer()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)
    return AppState(
        settings=settings,
        task_store=task_store,
        user_store=UserStore(settings.tasks_db_path),
        task_service=TaskService(task_store),
        mailer=build_mailer(settings),
    )
