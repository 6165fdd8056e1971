from __future__ import annotations

from datetime import timedelta

import pytest

from taskwhisper.db import get_db
from taskwhisper.errors import NotFound, StoreUnavailable
from taskwhisper.models import Channel
from taskwhisper.services.lifecycle import FOLLOWUP_INTERVAL
from taskwhisper.store import ReminderStore

from conftest import NOW, TASKS


def _sent_reminder(store, scheduled_for, last_followup=None):
    r = store.create(email="a@example.com", scheduled_for=scheduled_for, tasks=TASKS)
    store.mark_sent(r.id)
    if last_followup is not None:
        store.record_followup(r.id, last_followup)
    return r


def test_schema_creation(store):
    with get_db(store.db_path) as db:
        tables = db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        ).fetchall()
    assert "reminders" in [t["name"] for t in tables]


def test_create_and_get(store):
    created = store.create(
        email="a@example.com",
        phone_number="555-123-4567",
        transcript="call the dentist tomorrow",
        tasks=TASKS,
        email_draft="Don't forget!",
        scheduled_for=NOW,
        notification_methods=[Channel.EMAIL, Channel.SMS],
    )

    loaded = store.get(created.id)
    assert loaded.email == "a@example.com"
    assert loaded.phone_number == "555-123-4567"
    assert loaded.tasks == TASKS
    assert loaded.email_draft == "Don't forget!"
    assert loaded.scheduled_for == NOW
    assert loaded.notification_methods == {Channel.EMAIL, Channel.SMS}
    assert loaded.sent is False
    assert loaded.completed is False
    assert loaded.last_followup_sent is None
    assert loaded.followup_count == 0


def test_default_notification_method_is_email(store):
    r = store.create(email="a@example.com", scheduled_for=NOW, notification_methods=[])
    assert store.get(r.id).notification_methods == {Channel.EMAIL}


def test_get_unknown_raises(store):
    with pytest.raises(NotFound):
        store.get("does-not-exist")


def test_list_for_email_is_ordered_and_filtered(store):
    later = store.create(email="a@example.com", scheduled_for=NOW + timedelta(days=2))
    sooner = store.create(email="a@example.com", scheduled_for=NOW + timedelta(hours=1))
    store.create(email="b@example.com", scheduled_for=NOW)

    ids = [r.id for r in store.list_for_email("a@example.com")]
    assert ids == [sooner.id, later.id]


def test_due_selects_unsent_past_reminders(store):
    past = store.create(email="a@example.com", scheduled_for=NOW - timedelta(minutes=5))
    exactly_now = store.create(email="a@example.com", scheduled_for=NOW)
    store.create(email="a@example.com", scheduled_for=NOW + timedelta(minutes=5))
    already_sent = store.create(email="a@example.com", scheduled_for=NOW - timedelta(hours=1))
    store.mark_sent(already_sent.id)

    assert {r.id for r in store.due(NOW)} == {past.id, exactly_now.id}


def test_followup_eligibility_since_due_time(store):
    old = _sent_reminder(store, NOW - timedelta(hours=25))
    _sent_reminder(store, NOW - timedelta(hours=23))

    assert [r.id for r in store.followups_due(NOW, FOLLOWUP_INTERVAL)] == [old.id]


def test_followup_eligibility_since_last_followup(store):
    _sent_reminder(store, NOW - timedelta(days=3), last_followup=NOW - timedelta(hours=23))
    stale = _sent_reminder(store, NOW - timedelta(days=3), last_followup=NOW - timedelta(hours=25))

    assert [r.id for r in store.followups_due(NOW, FOLLOWUP_INTERVAL)] == [stale.id]


def test_followup_skips_completed_and_unsent(store):
    done = _sent_reminder(store, NOW - timedelta(days=2))
    store.set_completed(done.id)
    store.create(email="a@example.com", scheduled_for=NOW - timedelta(days=2))

    assert store.followups_due(NOW, FOLLOWUP_INTERVAL) == []


def test_mark_sent_is_conditional(store):
    r = store.create(email="a@example.com", scheduled_for=NOW)
    assert store.mark_sent(r.id) is True
    assert store.mark_sent(r.id) is False
    assert store.get(r.id).sent is True


def test_record_followup_increments(store):
    r = _sent_reminder(store, NOW - timedelta(days=2))
    store.record_followup(r.id, NOW - timedelta(days=1))
    store.record_followup(r.id, NOW)

    loaded = store.get(r.id)
    assert loaded.followup_count == 2
    assert loaded.last_followup_sent == NOW


def test_reschedule_resets_delivery_fields(store):
    r = _sent_reminder(store, NOW - timedelta(days=2), last_followup=NOW)
    store.set_completed(r.id)
    store.reschedule(r.id, NOW + timedelta(days=1))

    loaded = store.get(r.id)
    assert loaded.scheduled_for == NOW + timedelta(days=1)
    assert loaded.sent is False
    assert loaded.last_followup_sent is None
    assert loaded.followup_count == 0
    assert loaded.completed is True
    assert loaded.tasks == TASKS


def test_updates_on_unknown_id_raise(store):
    with pytest.raises(NotFound):
        store.set_completed("missing")
    with pytest.raises(NotFound):
        store.reschedule("missing", NOW)


def test_corrupt_database_raises_store_unavailable(tmp_path):
    path = tmp_path / "test.db"
    path.write_bytes(b"this is not a sqlite database" * 100)
    with pytest.raises(StoreUnavailable):
        ReminderStore(path).get("anything")


def test_unreachable_database_raises_store_unavailable(tmp_path):
    broken = ReminderStore(tmp_path / "no-such-dir" / "test.db")
    with pytest.raises(StoreUnavailable):
        broken.get("anything")
