# src/todo_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then either:
- runs a single reminder sweep (--once),
- sends a configuration test email (--test-email ADDRESS),
- or runs the reminder sweeper until SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.notification_sweeper import run_notification_sweeper, send_test_email, sweep_once

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="todo-tracker", description="Task reminder service.")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--once", action="store_true", help="Run one reminder sweep and exit.")
    group.add_argument("--test-email", metavar="ADDRESS", help="Send a test email and exit.")
    return parser.parse_args(argv)


async def _serve(state: AppState) -> None:
    settings = state.settings
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms do not support signal handlers on the loop.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    sweeper = asyncio.create_task(
        run_notification_sweeper(
            state.task_store,
            state.mailer,
            interval_seconds=settings.notify_interval_seconds,
            window_seconds=settings.notify_window_hours * 3600.0,
            client_url=settings.client_url,
        )
    )
    logger.info(
        "Reminder sweeper started (every %.0fs, window %.1fh). Press Ctrl+C to stop.",
        settings.notify_interval_seconds,
        settings.notify_window_hours,
    )

    try:
        await stop.wait()
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()

    log_file = setup_logging(settings)

    logger.info("Starting %s (%s), logging to %s", settings.app_name, settings.environment, log_file)

    state = create_initial_state(settings=settings)

    try:
        if args.test_email:
            result = asyncio.run(send_test_email(state.mailer, args.test_email))
            if not result.success:
                logger.error("Test email failed: %s", result.error)
                return 1
            logger.info("Test email sent to %s", args.test_email)
            return 0

        if args.once:
            report = asyncio.run(
                sweep_once(
                    state.task_store,
                    state.mailer,
                    window_seconds=settings.notify_window_hours * 3600.0,
                    client_url=settings.client_url,
                )
            )
            logger.info(
                "Sweep done: scanned=%d sent=%d failed=%d skipped=%d",
                report.scanned,
                report.sent,
                report.failed,
                report.skipped,
            )
            return 0 if report.failed == 0 else 1

        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(_serve(state))
        return 0
    finally:
        state.task_store.close()
        logger.info("Bye.")


if __name__ == "__main__":
    raise SystemExit(main())
