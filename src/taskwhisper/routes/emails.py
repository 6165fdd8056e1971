from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from taskwhisper.schemas import SendEmailRequest
from taskwhisper.services.notify import send_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["emails"])


@router.post("/send-email")
async def send_email(request: Request, body: SendEmailRequest):
    logger.info("Sending email to %s", body.to)
    email_id = await run_in_threadpool(
        send_now,
        request.app.state.channels,
        str(body.to),
        body.subject,
        body.email_body,
        [t.to_task() for t in body.tasks],
    )
    return {"success": True, "emailId": email_id, "message": "Email sent successfully"}
