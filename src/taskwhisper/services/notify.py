from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

import resend
from jinja2 import Environment, FileSystemLoader, select_autoescape
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client as TwilioClient

from taskwhisper.config import Settings
from taskwhisper.errors import ChannelUnavailable, DeliveryFailed
from taskwhisper.models import Task

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

DEFAULT_SUBJECT = "TaskWhisper Reminder"
REMINDER_SUBJECT = "TaskWhisper Reminder - Your Scheduled Tasks"
FOLLOWUP_SUBJECT = "TaskWhisper Follow-up - Did you complete this?"

# Twilio rejects bodies longer than this.
_MAX_SMS_LENGTH = 1600

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(["html"]),
)


def normalize_phone(raw: str) -> str:
    """Reduce a phone number to ``+1XXXXXXXXXX`` style international form."""
    digits = re.sub(r"\D", "", raw or "")
    if not digits:
        raise ValueError(f"Phone number {raw!r} contains no digits")
    if not digits.startswith("1"):
        digits = "1" + digits
    return "+" + digits


class EmailSender:
    """Sends HTML mail through Resend."""

    def __init__(self, api_key: str, sender: str) -> None:
        resend.api_key = api_key
        self.sender = sender

    def send(self, to: str, subject: str, html: str) -> str:
        try:
            data = resend.Emails.send(
                {"from": self.sender, "to": to, "subject": subject, "html": html}
            )
            email_id = data["id"]
        except Exception as exc:
            raise DeliveryFailed(f"Email to {to} failed: {exc}") from exc
        logger.info("Email sent to %s (%s)", to, email_id)
        return email_id


class SmsSender:
    """Sends text messages through Twilio."""

    def __init__(
        self, account_sid: str, auth_token: str, from_number: str, timeout: float | None = None
    ) -> None:
        self.client = TwilioClient(
            account_sid, auth_token, http_client=TwilioHttpClient(timeout=timeout)
        )
        self.from_number = from_number

    def send(self, to: str, body: str) -> str:
        try:
            number = normalize_phone(to)
            message = self.client.messages.create(body=body, from_=self.from_number, to=number)
        except Exception as exc:
            raise DeliveryFailed(f"SMS to {to} failed: {exc}") from exc
        logger.info("SMS sent to %s (%s)", number, message.sid)
        return message.sid


@dataclass(frozen=True)
class Channels:
    email: EmailSender | None = None
    sms: SmsSender | None = None

    @property
    def any(self) -> bool:
        return self.email is not None or self.sms is not None


def build_channels(settings: Settings) -> Channels:
    email = None
    if settings.email_available:
        email = EmailSender(settings.resend_api_key, settings.email_from)
    sms = None
    if settings.sms_available:
        sms = SmsSender(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_from_number,
            timeout=settings.request_timeout,
        )
    return Channels(email=email, sms=sms)


# -- rendering ---------------------------------------------------------------


def followup_links(reminder_id: str, base_url: str) -> tuple[str, str]:
    base = base_url.rstrip("/")
    return (
        f"{base}/reminders/{reminder_id}/complete",
        f"{base}/reminders/{reminder_id}/reschedule",
    )


def render_reminder_email(
    draft: str, tasks: Iterable[Task], include_category: bool = False, footer: str = "Sent from TaskWhisper"
) -> str:
    return _env.get_template("email/reminder.html").render(
        draft=draft or "Here are your tasks:",
        tasks=list(tasks or ()),
        include_category=include_category,
        footer=footer,
    )


def render_followup_email(reminder_id: str, draft: str, tasks: Iterable[Task], base_url: str) -> str:
    complete_url, reschedule_url = followup_links(reminder_id, base_url)
    return _env.get_template("email/followup.html").render(
        draft=draft,
        tasks=list(tasks or ()),
        complete_url=complete_url,
        reschedule_url=reschedule_url,
    )


def render_reminder_sms(draft: str, tasks: Iterable[Task]) -> str:
    lines = ["TaskWhisper Reminder"]
    if draft:
        lines.append(draft)
    for task in tasks or ():
        lines.append(f"- {task.description} ({task.suggested_date}, {task.priority})")
    body = "\n".join(lines)
    if len(body) > _MAX_SMS_LENGTH:
        body = body[: _MAX_SMS_LENGTH - 3] + "..."
    return body


def send_now(channels: Channels, to: str, subject: str | None, draft: str, tasks: Iterable[Task]) -> str:
    """One-shot email outside the reminder store; returns the provider's message id."""
    if channels.email is None:
        raise ChannelUnavailable("Email channel not configured")
    html = render_reminder_email(
        draft,
        tasks,
        include_category=True,
        footer="Sent from TaskWhisper - Your AI-powered voice memo assistant",
    )
    return channels.email.send(to, subject or DEFAULT_SUBJECT, html)
