# src/todo_tracker/mail/offline.py

from __future__ import annotations

import logging

from ..core.ports import SendResult

logger = logging.getLogger(__name__)


class OfflineMailer:
    """
    Mailer used when no SMTP server is configured (local runs, demos).

    Logs the reminder instead of sending it and reports success, so the sweep
    flow can be exercised end to end.
    """

    def __init__(self) -> None:
        self.sent_count = 0

    async def send(self, *, to_email: str, subject: str, html_body: str) -> SendResult:
        self.sent_count += 1
        logger.info("Offline mailer: would send to=%s subject=%r (%d bytes)", to_email, subject, len(html_body))
        return SendResult(success=True, message_id=f"offline-{self.sent_count}")
