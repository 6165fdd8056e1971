"""Browser pages behind the links in follow-up emails."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Form, Request
from fastapi.responses import HTMLResponse

from taskwhisper.errors import NotFound
from taskwhisper.services.lifecycle import ReminderEngine

router = APIRouter(prefix="/reminders", tags=["pages"])


def _templates(request: Request):
    return request.app.state.templates


def _engine(request: Request) -> ReminderEngine:
    state = request.app.state
    return ReminderEngine(state.store, state.channels, state.settings)


def _not_found(request: Request) -> HTMLResponse:
    return _templates(request).TemplateResponse(
        request, "reminders/not_found.html", {}, status_code=404
    )


@router.get("/{reminder_id}/complete", response_class=HTMLResponse)
async def complete_page(request: Request, reminder_id: str):
    try:
        reminder = _engine(request).complete(reminder_id)
    except NotFound:
        return _not_found(request)
    return _templates(request).TemplateResponse(
        request, "reminders/completed.html", {"reminder": reminder}
    )


@router.get("/{reminder_id}/reschedule", response_class=HTMLResponse)
async def reschedule_form(request: Request, reminder_id: str):
    try:
        reminder = request.app.state.store.get(reminder_id)
    except NotFound:
        return _not_found(request)
    return _templates(request).TemplateResponse(
        request, "reminders/reschedule.html", {"reminder": reminder, "rescheduled": False}
    )


@router.post("/{reminder_id}/reschedule", response_class=HTMLResponse)
async def reschedule_submit(request: Request, reminder_id: str, scheduled_for: str = Form(...)):
    try:
        reminder = request.app.state.store.get(reminder_id)
    except NotFound:
        return _not_found(request)

    try:
        # datetime-local inputs carry no offset; they are taken as UTC.
        when = datetime.fromisoformat(scheduled_for)
    except ValueError:
        return _templates(request).TemplateResponse(
            request,
            "reminders/reschedule.html",
            {"reminder": reminder, "rescheduled": False, "error": "Please pick a valid date and time."},
            status_code=422,
        )

    reminder = _engine(request).reschedule(reminder_id, when)
    return _templates(request).TemplateResponse(
        request, "reminders/reschedule.html", {"reminder": reminder, "rescheduled": True}
    )
