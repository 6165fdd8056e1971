from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from taskwhisper.config import Settings
from taskwhisper.errors import TaskWhisperError
from taskwhisper.models import utcnow
from taskwhisper.routes import emails, memos, pages, reminders
from taskwhisper.services.notify import Channels, build_channels
from taskwhisper.store import ReminderStore

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


def create_app(settings: Settings | None = None, channels: Channels | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    store = ReminderStore(settings.db_path)
    store.init()

    app = FastAPI(title="TaskWhisper")
    app.state.settings = settings
    app.state.store = store
    app.state.channels = channels if channels is not None else build_channels(settings)
    app.state.templates = Jinja2Templates(directory=BASE_DIR / "templates")

    app.include_router(memos.router)
    app.include_router(emails.router)
    app.include_router(reminders.router)
    app.include_router(pages.router)

    logger.info(
        "Whisper: %s, Claude: %s, Email: %s, SMS: %s, Database: %s",
        "enabled" if settings.whisper_available else "not configured (using mock)",
        "enabled" if settings.claude_available else "not configured",
        "enabled" if settings.email_available else "not configured",
        "enabled" if settings.sms_available else "not configured",
        settings.db_path,
    )

    @app.exception_handler(TaskWhisperError)
    async def taskwhisper_error(request: Request, exc: TaskWhisperError):
        return JSONResponse({"success": False, "error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse({"success": False, "error": message}, status_code=422)

    @app.get("/")
    async def index():
        return {
            "message": "TaskWhisper backend is running!",
            "endpoints": {
                "health": "/api/health",
                "transcribe": "/api/transcribe (POST with audio file)",
                "analyzeMemo": "/api/analyze-memo (POST with transcript)",
                "sendEmail": "/api/send-email (POST with email data)",
                "reminders": "/api/reminders (GET ?email=, POST to create)",
                "sendDue": "/api/reminders/send-due (POST, called by cron)",
            },
        }

    @app.get("/api/health")
    async def health():
        current = app.state.settings
        return {
            "status": "healthy",
            "timestamp": utcnow().isoformat(),
            "whisperAvailable": current.whisper_available,
            "claudeAvailable": current.claude_available,
            "emailAvailable": app.state.channels.email is not None,
            "smsAvailable": app.state.channels.sms is not None,
        }

    return app
