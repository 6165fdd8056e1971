from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from taskwhisper.db import DB_PATH

# Value shipped in the sample .env; treated the same as an unset key.
_PLACEHOLDER_KEYS = {"", "your-openai-api-key-here", "not-set"}


def _secret(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(name, "").strip()
    if value in _PLACEHOLDER_KEYS:
        return None
    return value


@dataclass(frozen=True)
class Settings:
    db_path: Path = DB_PATH
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    resend_api_key: str | None = None
    email_from: str = "TaskWhisper <noreply@taskwhisper.app>"
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_from_number: str | None = None
    app_base_url: str = "http://localhost:8000"
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings once from the process environment (or a given mapping)."""
        env = os.environ if env is None else env
        db_path = env.get("TASKWHISPER_DB_PATH")
        return cls(
            db_path=Path(db_path).expanduser() if db_path else DB_PATH,
            openai_api_key=_secret(env, "OPENAI_API_KEY"),
            anthropic_api_key=_secret(env, "ANTHROPIC_API_KEY"),
            anthropic_model=env.get("ANTHROPIC_MODEL") or cls.anthropic_model,
            resend_api_key=_secret(env, "RESEND_API_KEY"),
            email_from=env.get("EMAIL_FROM") or cls.email_from,
            twilio_account_sid=_secret(env, "TWILIO_ACCOUNT_SID"),
            twilio_auth_token=_secret(env, "TWILIO_AUTH_TOKEN"),
            twilio_from_number=_secret(env, "TWILIO_FROM_NUMBER"),
            app_base_url=(env.get("APP_BASE_URL") or cls.app_base_url).rstrip("/"),
            request_timeout=float(env.get("REQUEST_TIMEOUT_SECONDS") or cls.request_timeout),
        )

    @property
    def whisper_available(self) -> bool:
        return self.openai_api_key is not None

    @property
    def claude_available(self) -> bool:
        return self.anthropic_api_key is not None

    @property
    def email_available(self) -> bool:
        return self.resend_api_key is not None

    @property
    def sms_available(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_from_number)
