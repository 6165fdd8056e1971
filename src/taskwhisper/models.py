from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from taskwhisper.errors import InvalidTransition

PRIORITIES = ("urgent", "normal", "low")
CATEGORIES = ("work", "personal", "health", "shopping", "calls", "other")


class Channel(str, enum.Enum):
    EMAIL = "email"
    SMS = "sms"


class ReminderState(str, enum.Enum):
    SCHEDULED = "scheduled"
    AWAITING_FOLLOWUP = "awaiting_followup"
    COMPLETED = "completed"


def utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Task:
    description: str
    suggested_date: str = "Not specified"
    priority: str = "normal"
    category: str = "other"

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            description=data.get("description", ""),
            suggested_date=data.get("suggestedDate") or "Not specified",
            priority=data.get("priority") or "normal",
            category=data.get("category") or "other",
        )

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "suggestedDate": self.suggested_date,
            "priority": self.priority,
            "category": self.category,
        }


@dataclass(frozen=True)
class Reminder:
    id: str
    email: str
    scheduled_for: datetime
    transcript: str = ""
    tasks: tuple[Task, ...] = ()
    email_draft: str = ""
    phone_number: str | None = None
    notification_methods: frozenset[Channel] = frozenset({Channel.EMAIL})
    sent: bool = False
    completed: bool = False
    last_followup_sent: datetime | None = None
    followup_count: int = 0
    created_at: datetime = field(default_factory=utcnow)

    @property
    def state(self) -> ReminderState:
        # An unsent reminder is pending delivery even when completed, which is
        # how a rescheduled completed reminder becomes due again.
        if not self.sent:
            return ReminderState.SCHEDULED
        if self.completed:
            return ReminderState.COMPLETED
        return ReminderState.AWAITING_FOLLOWUP

    def wants(self, channel: Channel) -> bool:
        return channel in self.notification_methods

    # -- transitions -------------------------------------------------------

    def mark_sent(self) -> "Reminder":
        if self.state is not ReminderState.SCHEDULED:
            raise InvalidTransition(f"Reminder {self.id} is {self.state.value}, cannot mark sent")
        return replace(self, sent=True)

    def record_followup(self, now: datetime) -> "Reminder":
        if self.state is not ReminderState.AWAITING_FOLLOWUP:
            raise InvalidTransition(
                f"Reminder {self.id} is {self.state.value}, cannot record a follow-up"
            )
        return replace(self, last_followup_sent=utc(now), followup_count=self.followup_count + 1)

    def complete(self) -> "Reminder":
        return replace(self, completed=True)

    def reschedule(self, when: datetime) -> "Reminder":
        # ``completed`` is left alone: a completed reminder that is rescheduled
        # becomes due again.
        return replace(
            self,
            scheduled_for=utc(when),
            sent=False,
            last_followup_sent=None,
            followup_count=0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "transcript": self.transcript,
            "tasks": [t.to_dict() for t in self.tasks],
            "emailDraft": self.email_draft,
            "scheduledFor": self.scheduled_for.isoformat(),
            "notificationMethods": sorted(c.value for c in self.notification_methods),
            "sent": self.sent,
            "completed": self.completed,
            "lastFollowupSent": (
                self.last_followup_sent.isoformat() if self.last_followup_sent else None
            ),
            "followupCount": self.followup_count,
            "state": self.state.value,
            "createdAt": self.created_at.isoformat(),
        }
