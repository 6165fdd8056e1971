from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

from taskwhisper.config import Settings
from taskwhisper.errors import ConfigurationMissing, DeliveryFailed
from taskwhisper.models import Channel, Reminder, utc, utcnow
from taskwhisper.services.notify import (
    FOLLOWUP_SUBJECT,
    REMINDER_SUBJECT,
    Channels,
    render_followup_email,
    render_reminder_email,
    render_reminder_sms,
)
from taskwhisper.store import ReminderStore

logger = logging.getLogger(__name__)

FOLLOWUP_INTERVAL = timedelta(hours=24)


@dataclass
class DeliveryOutcome:
    id: str
    status: str  # "sent" or "failed"
    kind: str = "reminder"  # or "followup"
    error: str | None = None
    channels: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "sent"

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "status": self.status,
            "kind": self.kind,
            "channels": dict(self.channels),
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ProcessReport:
    results: list[DeliveryOutcome] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict:
        return {"processed": self.processed, "results": [r.to_dict() for r in self.results]}


class ReminderEngine:
    """Delivers due reminders and daily follow-ups, and applies user transitions.

    Holds no state between runs; everything is read from the store each time.
    Reminders are processed one at a time and a delivery failure is recorded
    against that reminder only.
    """

    def __init__(
        self,
        store: ReminderStore,
        channels: Channels,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or Settings()
        self.store = store
        self.channels = channels
        self.base_url = settings.app_base_url
        self.timeout = settings.request_timeout

    async def process_due(self, now: datetime | None = None) -> ProcessReport:
        if not self.channels.any:
            raise ConfigurationMissing("No notification channel configured")

        now = utc(now or utcnow())
        report = ProcessReport()

        due = self.store.due(now)
        logger.info("Found %d due reminders", len(due))
        for reminder in due:
            report.results.append(await self._deliver(reminder))

        followups = self.store.followups_due(now, FOLLOWUP_INTERVAL)
        logger.info("Found %d reminders needing a follow-up", len(followups))
        for reminder in followups:
            report.results.append(await self._follow_up(reminder, now))

        failed = sum(1 for r in report.results if not r.ok)
        logger.info("Processed %d reminders, %d failed", report.processed, failed)
        return report

    async def _call(self, fn: Callable[..., str], *args: Any) -> str:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise DeliveryFailed(f"Provider did not answer within {self.timeout:g}s") from exc

    async def _send_email(self, reminder: Reminder) -> None:
        if self.channels.email is None:
            raise DeliveryFailed("Email channel not configured")
        html = render_reminder_email(reminder.email_draft, reminder.tasks)
        await self._call(self.channels.email.send, reminder.email, REMINDER_SUBJECT, html)

    async def _send_sms(self, reminder: Reminder) -> None:
        if self.channels.sms is None:
            raise DeliveryFailed("SMS channel not configured")
        if not reminder.phone_number:
            raise DeliveryFailed("No phone number on reminder")
        body = render_reminder_sms(reminder.email_draft, reminder.tasks)
        await self._call(self.channels.sms.send, reminder.phone_number, body)

    async def _deliver(self, reminder: Reminder) -> DeliveryOutcome:
        senders = [
            (Channel.EMAIL, self._send_email),
            (Channel.SMS, self._send_sms),
        ]
        channels: dict[str, str] = {}
        errors: list[str] = []
        for channel, send in senders:
            if not reminder.wants(channel):
                continue
            try:
                await send(reminder)
            except DeliveryFailed as exc:
                logger.warning("%s delivery of reminder %s failed: %s", channel.value, reminder.id, exc)
                channels[channel.value] = "failed"
                errors.append(f"{channel.value}: {exc.message}")
            except Exception as exc:
                logger.exception("Unexpected error sending %s for reminder %s", channel.value, reminder.id)
                channels[channel.value] = "failed"
                errors.append(f"{channel.value}: {exc!r}")
            else:
                channels[channel.value] = "sent"

        # One delivered channel is enough to count the reminder as sent.
        if "sent" not in channels.values():
            error = "; ".join(errors) or "No notification method selected"
            logger.error("Failed to send reminder %s: %s", reminder.id, error)
            return DeliveryOutcome(reminder.id, "failed", error=error, channels=channels)

        sent = reminder.mark_sent()
        self.store.mark_sent(sent.id)
        logger.info("Sent reminder %s to %s", reminder.id, reminder.email)
        return DeliveryOutcome(reminder.id, "sent", channels=channels)

    async def _follow_up(self, reminder: Reminder, now: datetime) -> DeliveryOutcome:
        try:
            updated = reminder.record_followup(now)
            if self.channels.email is None:
                raise DeliveryFailed("Email channel not configured")
            html = render_followup_email(
                reminder.id, reminder.email_draft, reminder.tasks, self.base_url
            )
            await self._call(self.channels.email.send, reminder.email, FOLLOWUP_SUBJECT, html)
        except DeliveryFailed as exc:
            logger.error("Failed to send follow-up for reminder %s: %s", reminder.id, exc)
            return DeliveryOutcome(
                reminder.id, "failed", kind="followup", error=exc.message, channels={"email": "failed"}
            )
        except Exception as exc:
            logger.exception("Unexpected error sending follow-up for reminder %s", reminder.id)
            return DeliveryOutcome(
                reminder.id, "failed", kind="followup", error=repr(exc), channels={"email": "failed"}
            )

        self.store.record_followup(reminder.id, now)
        logger.info("Sent follow-up #%d for reminder %s", updated.followup_count, reminder.id)
        return DeliveryOutcome(reminder.id, "sent", kind="followup", channels={"email": "sent"})

    # -- user actions ------------------------------------------------------

    def complete(self, reminder_id: str) -> Reminder:
        reminder = self.store.get(reminder_id).complete()
        self.store.set_completed(reminder_id)
        logger.info("Reminder %s marked complete", reminder_id)
        return reminder

    def reschedule(self, reminder_id: str, scheduled_for: datetime) -> Reminder:
        reminder = self.store.get(reminder_id).reschedule(scheduled_for)
        self.store.reschedule(reminder_id, reminder.scheduled_for)
        logger.info("Reminder %s rescheduled to %s", reminder_id, reminder.scheduled_for)
        return reminder
