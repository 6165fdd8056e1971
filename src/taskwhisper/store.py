from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Generator, Iterable

from taskwhisper.db import get_db, init_db
from taskwhisper.errors import NotFound, StoreUnavailable
from taskwhisper.models import Channel, Reminder, Task, utc, utcnow

logger = logging.getLogger(__name__)


def to_db_time(value: datetime) -> str:
    return utc(value).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return utc(datetime.fromisoformat(value))


def _row_to_reminder(row: sqlite3.Row) -> Reminder:
    tasks = json.loads(row["tasks"] or "[]") or []
    methods = json.loads(row["notification_methods"] or "[]") or ["email"]
    return Reminder(
        id=row["id"],
        email=row["email"],
        phone_number=row["phone_number"],
        transcript=row["transcript"],
        tasks=tuple(Task.from_dict(t) for t in tasks),
        email_draft=row["email_draft"],
        scheduled_for=from_db_time(row["scheduled_for"]),
        notification_methods=frozenset(Channel(m) for m in methods),
        sent=bool(row["sent"]),
        completed=bool(row["completed"]),
        last_followup_sent=from_db_time(row["last_followup_sent"]),
        followup_count=row["followup_count"],
        created_at=from_db_time(row["created_at"]),
    )


class ReminderStore:
    """CRUD over reminder records, backed by sqlite."""

    def __init__(self, db_path: Path | None = None) -> None:
        self.db_path = db_path

    def init(self) -> None:
        try:
            init_db(self.db_path)
        except sqlite3.DatabaseError as exc:
            raise StoreUnavailable(f"Reminder store unavailable: {exc}") from exc

    @contextmanager
    def _db(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            with get_db(self.db_path) as db:
                yield db
        except sqlite3.DatabaseError as exc:
            logger.exception("Reminder store operation failed")
            raise StoreUnavailable(f"Reminder store unavailable: {exc}") from exc

    def create(
        self,
        *,
        email: str,
        scheduled_for: datetime,
        transcript: str = "",
        tasks: Iterable[Task] = (),
        email_draft: str = "",
        phone_number: str | None = None,
        notification_methods: Iterable[Channel] = (Channel.EMAIL,),
    ) -> Reminder:
        reminder = Reminder(
            id=uuid.uuid4().hex,
            email=email,
            phone_number=phone_number,
            transcript=transcript,
            tasks=tuple(tasks),
            email_draft=email_draft,
            scheduled_for=utc(scheduled_for),
            notification_methods=frozenset(notification_methods) or frozenset({Channel.EMAIL}),
            created_at=utcnow(),
        )
        with self._db() as db:
            db.execute(
                """INSERT INTO reminders
                   (id, email, phone_number, transcript, tasks, email_draft,
                    scheduled_for, notification_methods, sent, completed,
                    last_followup_sent, followup_count, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, 0, NULL, 0, ?)""",
                (
                    reminder.id,
                    reminder.email,
                    reminder.phone_number,
                    reminder.transcript,
                    json.dumps([t.to_dict() for t in reminder.tasks]),
                    reminder.email_draft,
                    to_db_time(reminder.scheduled_for),
                    json.dumps(sorted(c.value for c in reminder.notification_methods)),
                    to_db_time(reminder.created_at),
                ),
            )
        logger.info("Reminder %s saved for %s, scheduled %s", reminder.id, email, reminder.scheduled_for)
        return reminder

    def get(self, reminder_id: str) -> Reminder:
        with self._db() as db:
            row = db.execute("SELECT * FROM reminders WHERE id = ?", (reminder_id,)).fetchone()
        if row is None:
            raise NotFound(f"Reminder {reminder_id} not found")
        return _row_to_reminder(row)

    def list_for_email(self, email: str) -> list[Reminder]:
        with self._db() as db:
            rows = db.execute(
                "SELECT * FROM reminders WHERE email = ? ORDER BY scheduled_for, created_at",
                (email,),
            ).fetchall()
        return [_row_to_reminder(r) for r in rows]

    def due(self, now: datetime) -> list[Reminder]:
        """Unsent reminders whose scheduled time has passed."""
        with self._db() as db:
            rows = db.execute(
                """SELECT * FROM reminders
                   WHERE sent = 0 AND scheduled_for <= ?
                   ORDER BY scheduled_for, created_at""",
                (to_db_time(now),),
            ).fetchall()
        return [_row_to_reminder(r) for r in rows]

    def followups_due(self, now: datetime, interval: timedelta) -> list[Reminder]:
        """Sent, incomplete reminders that are at least ``interval`` past due
        and have not had a follow-up within the last ``interval``."""
        cutoff = to_db_time(now - interval)
        with self._db() as db:
            rows = db.execute(
                """SELECT * FROM reminders
                   WHERE sent = 1 AND completed = 0
                     AND (last_followup_sent IS NULL OR last_followup_sent < ?)
                     AND scheduled_for <= ?
                   ORDER BY scheduled_for, created_at""",
                (cutoff, cutoff),
            ).fetchall()
        return [_row_to_reminder(r) for r in rows]

    def mark_sent(self, reminder_id: str) -> bool:
        """Set ``sent``; returns False when the record was already sent."""
        with self._db() as db:
            cur = db.execute(
                "UPDATE reminders SET sent = 1 WHERE id = ? AND sent = 0", (reminder_id,)
            )
        return cur.rowcount == 1

    def record_followup(self, reminder_id: str, now: datetime) -> None:
        with self._db() as db:
            db.execute(
                """UPDATE reminders
                   SET last_followup_sent = ?, followup_count = followup_count + 1
                   WHERE id = ?""",
                (to_db_time(now), reminder_id),
            )

    def set_completed(self, reminder_id: str) -> None:
        with self._db() as db:
            cur = db.execute("UPDATE reminders SET completed = 1 WHERE id = ?", (reminder_id,))
        if cur.rowcount == 0:
            raise NotFound(f"Reminder {reminder_id} not found")

    def reschedule(self, reminder_id: str, scheduled_for: datetime) -> None:
        with self._db() as db:
            cur = db.execute(
                """UPDATE reminders
                   SET scheduled_for = ?, sent = 0, last_followup_sent = NULL, followup_count = 0
                   WHERE id = ?""",
                (to_db_time(scheduled_for), reminder_id),
            )
        if cur.rowcount == 0:
            raise NotFound(f"Reminder {reminder_id} not found")
