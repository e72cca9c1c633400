# src/todo_tracker/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- SMTP is optional: without EMAIL_HOST the offline mailer is used.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODO"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    environment: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Reminder sweep ----
    notify_interval_seconds: float
    notify_window_hours: float
    client_url: str

    # ---- Email / SMTP ----
    email_host: str
    email_port: int
    email_user: str
    email_pass: str
    email_from_name: str
    email_use_tls: bool
    email_timeout_seconds: float

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.email_host)

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo-tracker")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        environment = (_first_env(_k("ENVIRONMENT"), "NODE_ENV", default="development") or "").strip().lower()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")

        # Hourly in production, every 5 minutes otherwise.
        default_interval = 3600.0 if environment == "production" else 300.0
        notify_interval_seconds = _env_float(_k("NOTIFY_INTERVAL_SECONDS"), default_interval)
        notify_window_hours = _env_float(_k("NOTIFY_WINDOW_HOURS"), 24.0)
        client_url = (_first_env(_k("CLIENT_URL"), "CLIENT_URL", default="") or "").strip()

        email_host = (_first_env(_k("EMAIL_HOST"), "EMAIL_HOST", default="") or "").strip()
        email_port = _env_int(_k("EMAIL_PORT"), _env_int("EMAIL_PORT", 587))
        email_user = (_first_env(_k("EMAIL_USER"), "EMAIL_USER", default="") or "").strip()
        email_pass = _first_env(_k("EMAIL_PASS"), "EMAIL_PASS", default="") or ""
        email_from_name = _env(_k("EMAIL_FROM_NAME"), "Todo App")
        email_use_tls = _env_bool(_k("EMAIL_USE_TLS"), True)
        email_timeout_seconds = _env_float(_k("EMAIL_TIMEOUT_SECONDS"), 20.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            environment=environment,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            notify_interval_seconds=notify_interval_seconds,
            notify_window_hours=notify_window_hours,
            client_url=client_url,
            email_host=email_host,
            email_port=email_port,
            email_user=email_user,
            email_pass=email_pass,
            email_from_name=email_from_name,
            email_use_tls=email_use_tls,
            email_timeout_seconds=email_timeout_seconds,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
