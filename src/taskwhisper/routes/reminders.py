from __future__ import annotations

from fastapi import APIRouter, Request

from taskwhisper.schemas import CreateReminderRequest, RescheduleRequest
from taskwhisper.services.lifecycle import ReminderEngine

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


def _engine(request: Request) -> ReminderEngine:
    state = request.app.state
    return ReminderEngine(state.store, state.channels, state.settings)


@router.post("")
async def create_reminder(request: Request, body: CreateReminderRequest):
    reminder = request.app.state.store.create(
        email=str(body.email),
        phone_number=body.phone_number,
        transcript=body.transcript,
        tasks=[t.to_task() for t in body.tasks],
        email_draft=body.email_draft,
        scheduled_for=body.scheduled_for,
        notification_methods=body.channels(),
    )
    return {"success": True, "reminder": reminder.to_dict()}


@router.get("")
async def list_reminders(request: Request, email: str):
    reminders = request.app.state.store.list_for_email(email)
    return {"success": True, "reminders": [r.to_dict() for r in reminders]}


@router.post("/send-due")
async def send_due(request: Request):
    report = await _engine(request).process_due()
    return {"success": True, **report.to_dict()}


@router.get("/{reminder_id}")
async def get_reminder(request: Request, reminder_id: str):
    reminder = request.app.state.store.get(reminder_id)
    return {"success": True, "reminder": reminder.to_dict()}


@router.post("/{reminder_id}/complete")
async def complete_reminder(request: Request, reminder_id: str):
    reminder = _engine(request).complete(reminder_id)
    return {"success": True, "reminder": reminder.to_dict()}


@router.post("/{reminder_id}/reschedule")
async def reschedule_reminder(request: Request, reminder_id: str, body: RescheduleRequest):
    reminder = _engine(request).reschedule(reminder_id, body.scheduled_for)
    return {"success": True, "reminder": reminder.to_dict()}
