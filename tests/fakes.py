# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from todo_tracker.core.ports import Mailer, SendResult


@dataclass(slots=True)
class SentEmail:
    to_email: str
    subject: str
    html_body: str


@dataclass(slots=True)
class FakeMailer(Mailer):
    """
    Fake Mailer used by sweeper tests.

    - Captures successful sends for assertions
    - Addresses in fail_for get a failed SendResult
    - Addresses in raise_for make send() raise
    """

    sent: list[SentEmail] = field(default_factory=list)
    attempts: list[str] = field(default_factory=list)
    fail_for: set[str] = field(default_factory=set)
    raise_for: set[str] = field(default_factory=set)

    async def send(self, *, to_email: str, subject: str, html_body: str) -> SendResult:
        self.attempts.append(to_email)
        if to_email in self.raise_for:
            raise ConnectionError("smtp connection refused")
        if to_email in self.fail_for:
            return SendResult(success=False, error="550 mailbox unavailable")
        self.sent.append(SentEmail(to_email=to_email, subject=subject, html_body=html_body))
        return SendResult(success=True, message_id=f"fake-{len(self.sent)}")
