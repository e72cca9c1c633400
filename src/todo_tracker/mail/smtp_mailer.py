# src/todo_tracker/mail/smtp_mailer.py

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from ..core.ports import SendResult

logger = logging.getLogger(__name__)


class SmtpMailer:
    """
    SMTP mailer.

    smtplib is blocking, so each send runs on a worker thread. Every failure
    (connect, auth, timeout, rejected recipient) is reported as a failed
    SendResult instead of an exception.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        from_name: str = "Todo App",
        use_tls: bool = True,
        timeout_seconds: float = 20.0,
    ) -> None:
        if not host:
            raise ValueError("SMTP host is required")
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout_seconds = float(timeout_seconds)

    @classmethod
    def from_settings(cls, settings) -> SmtpMailer:
        return cls(
            host=settings.email_host,
            port=settings.email_port,
            username=settings.email_user,
            password=settings.email_pass,
            from_name=settings.email_from_name,
            use_tls=settings.email_use_tls,
            timeout_seconds=settings.email_timeout_seconds,
        )

    def _build_message(self, to_email: str, subject: str, html_body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.from_name, self.username or f"no-reply@{self.host}"))
        msg["To"] = to_email
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _send_blocking(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

    async def send(self, *, to_email: str, subject: str, html_body: str) -> SendResult:
        msg = self._build_message(to_email, subject, html_body)
        try:
            await asyncio.to_thread(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email send error to=%s: %s", to_email, exc)
            return SendResult(success=False, error=str(exc) or exc.__class__.__name__)

        message_id = str(msg["Message-ID"])
        logger.info("Email sent to=%s message_id=%s", to_email, message_id)
        return SendResult(success=True, message_id=message_id)
