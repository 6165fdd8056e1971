from __future__ import annotations

from datetime import datetime, timezone

import pytest

from taskwhisper.errors import DeliveryFailed
from taskwhisper.models import Task
from taskwhisper.services.notify import normalize_phone
from taskwhisper.store import ReminderStore

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

TASKS = (
    Task(description="Call the dentist", suggested_date="Tomorrow 2pm", priority="urgent", category="health"),
    Task(description="Buy milk", suggested_date="Today evening", priority="low", category="shopping"),
)


class FakeEmailSender:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def send(self, to, subject, html):
        if to in self.fail_for:
            raise DeliveryFailed(f"Email to {to} failed: mailbox unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"email-{len(self.sent)}"


class FakeSmsSender:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, to, body):
        if self.fail:
            raise DeliveryFailed(f"SMS to {to} failed: carrier rejected")
        self.sent.append({"to": normalize_phone(to), "body": body})
        return f"sms-{len(self.sent)}"


@pytest.fixture
def store(tmp_path):
    s = ReminderStore(tmp_path / "test.db")
    s.init()
    return s
