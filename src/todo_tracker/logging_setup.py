# src/todo_tracker/logging_setup.py

"""
Logging for the reminder service.

Console: our records at the configured level. The sweeper's per-task lines
stay in the file unless the level is DEBUG; its per-sweep summary lines
(records carrying `sweep_summary`) always show. Other libraries only at ERROR+.

File: <data_dir>/logs/<app_name>.log, rotated, everything at DEBUG.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

APP_LOGGER = "todo_tracker"
SWEEPER_LOGGER = "todo_tracker.tasks.notification_sweeper"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3


def parse_level(raw: Any, default: int = logging.INFO) -> int:
    """'debug' / 'INFO' / 20 -> logging level; unknown names give `default`."""
    if isinstance(raw, int):
        return raw
    level = logging.getLevelName(str(raw).strip().upper())
    return level if isinstance(level, int) else default


class _ConsoleFilter(logging.Filter):
    def __init__(self, *, verbose: bool) -> None:
        super().__init__()
        self.verbose = verbose

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == SWEEPER_LOGGER and not self.verbose:
            return record.levelno >= logging.WARNING or getattr(record, "sweep_summary", False)

        if name.startswith(APP_LOGGER + ".") or name == "__main__":
            return True

        # py.warnings and third-party loggers.
        return record.levelno >= logging.ERROR


def setup_logging(settings: Any, *, file_level: int = logging.DEBUG) -> Path:
    """
    Install console + rotating file handlers on the root logger.

    Reads `log_level`, `data_dir` and `app_name` from settings. Replaces any
    handlers already on the root logger; returns the log file path.
    """
    console_level = parse_level(getattr(settings, "log_level", "INFO"))

    log_dir = Path(settings.data_dir) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{settings.app_name}.log"

    root = logging.getLogger()
    root.setLevel(min(console_level, file_level))
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleFilter(verbose=console_level <= logging.DEBUG))
    root.addHandler(ch)

    fh = RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)
    return log_file
