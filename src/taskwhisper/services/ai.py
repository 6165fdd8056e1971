from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime

import anthropic
from pydantic import ValidationError

from taskwhisper.config import Settings
from taskwhisper.errors import ConfigurationMissing, ExtractionFailed
from taskwhisper.models import Task, utc, utcnow
from taskwhisper.schemas import Analysis

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """\
You are an intelligent task analyzer. Analyze this voice memo transcript and extract \
actionable information.

Current date and time (UTC): {now}

Transcript: "{transcript}"

Classify the urgency of every task:
- "urgent" when the speaker says urgent, ASAP, immediately, right away, today, \
critical, emergency, or "don't forget"; for deadlines within 24 hours; for medical \
appointments, bill payments and anything with a penalty if missed
- "low" for "someday", "whenever", "eventually", "if I have time", nice-to-haves and \
open-ended ideas
- "normal" for everything else

Assign each task one category: "work", "personal", "health", "shopping", "calls" or \
"other". Doctor, dentist, pharmacy, prescriptions, gym and therapy are "health". \
Phoning someone is "calls" unless it is clearly a health appointment.

Suggest when the reminder email should go out:
- urgent: 1-2 hours before the deadline, or immediately if the deadline is close
- work: a weekday morning between 8:00 and 9:00 before the task is due
- personal: the evening before (18:00-20:00) or the morning of (7:00-9:00)
- health: the morning of the appointment or the evening before
- shopping: the morning of, or the day before if it must be done early
Never suggest a time in the past. If nothing is said about timing, suggest one hour \
from now.

Return a JSON object with exactly these keys:
1. "tasks": a non-empty array of task objects, each with
   - "description": clear task description
   - "suggestedDate": human-readable date/time hint (or "Not specified")
   - "priority": "urgent", "normal" or "low"
   - "category": "work", "personal", "health", "shopping", "calls" or "other"
2. "emailDraft": a short personalized reminder email for the first/main task
3. "suggestedSendTime": when to send the reminder, as an ISO-8601 UTC timestamp

Example format:
{{
  "tasks": [
    {{
      "description": "Call mom to check in",
      "suggestedDate": "Today evening",
      "priority": "normal",
      "category": "calls"
    }}
  ],
  "emailDraft": "Hi! Just a friendly reminder to call your mom this evening.",
  "suggestedSendTime": "2025-01-15T18:00:00Z"
}}

Respond ONLY with valid JSON, no other text.
"""


@dataclass(frozen=True)
class MemoAnalysis:
    tasks: tuple[Task, ...]
    email_draft: str
    suggested_send_time: datetime

    def to_dict(self) -> dict:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "emailDraft": self.email_draft,
            "suggestedSendTime": self.suggested_send_time.isoformat(),
        }


def _strip_fences(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("```"):
        raw = raw.split("\n", 1)[1] if "\n" in raw else ""
        raw = raw.rsplit("```", 1)[0]
    return raw.strip()


def parse_analysis(raw: str) -> MemoAnalysis:
    """Validate the model's answer; anything off-schema raises ExtractionFailed."""
    text = _strip_fences(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ExtractionFailed(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ExtractionFailed("Model response is not a JSON object")
    try:
        analysis = Analysis.model_validate(data)
    except ValidationError as exc:
        raise ExtractionFailed(f"Model response does not match the task schema: {exc}") from exc

    return MemoAnalysis(
        tasks=tuple(t.to_task() for t in analysis.tasks),
        email_draft=analysis.email_draft,
        suggested_send_time=utc(analysis.suggested_send_time),
    )


def extract_tasks(transcript: str, settings: Settings, now: datetime | None = None) -> MemoAnalysis:
    """Ask Claude for the tasks, a reminder draft and a send time."""
    if not settings.claude_available:
        raise ConfigurationMissing("Anthropic API key not configured")

    now = utc(now or utcnow())
    logger.info("Analyzing transcript with Claude (%d chars)", len(transcript))
    client = anthropic.Anthropic(api_key=settings.anthropic_api_key, timeout=settings.request_timeout)
    try:
        message = client.messages.create(
            model=settings.anthropic_model,
            max_tokens=1024,
            messages=[
                {
                    "role": "user",
                    "content": EXTRACTION_PROMPT.format(
                        now=now.strftime("%Y-%m-%dT%H:%M:%SZ (%A)"),
                        transcript=transcript,
                    ),
                }
            ],
        )
    except anthropic.APIError as exc:
        logger.exception("Claude request failed")
        raise ExtractionFailed(f"Language model request failed: {exc}") from exc

    if not message.content or not hasattr(message.content[0], "text"):
        raise ExtractionFailed("Language model returned no text")
    raw = message.content[0].text
    logger.debug("Claude raw response: %s", raw)
    try:
        return parse_analysis(raw)
    except ExtractionFailed:
        logger.exception("Could not parse Claude response")
        raise
