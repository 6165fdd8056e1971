from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import openai

from taskwhisper.config import Settings
from taskwhisper.errors import TranscriptionFailed

logger = logging.getLogger(__name__)

MOCK_TRANSCRIPT = (
    "This is a test transcription. Configure your OpenAI API key to enable real "
    "Whisper transcription."
)


@dataclass(frozen=True)
class TranscriptionResult:
    transcript: str
    mock: bool = False


def transcribe(audio: bytes, settings: Settings, filename: str | None = None) -> TranscriptionResult:
    """Turn recorded audio into text with Whisper.

    Without an OpenAI key a fixed placeholder comes back with ``mock=True``;
    callers have to check the flag before trusting the text.
    """
    if not settings.whisper_available:
        logger.warning("No OpenAI API key configured, using mock transcription")
        return TranscriptionResult(transcript=MOCK_TRANSCRIPT, mock=True)

    # Whisper infers the container format from the file extension.
    suffix = Path(filename).suffix if filename and Path(filename).suffix else ".webm"
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            tmp.write(audio)
            tmp_path = tmp.name

        logger.info("Sending %d bytes to Whisper", len(audio))
        client = openai.OpenAI(api_key=settings.openai_api_key, timeout=settings.request_timeout)
        with open(tmp_path, "rb") as fh:
            transcription = client.audio.transcriptions.create(
                file=fh,
                model="whisper-1",
                language="en",
            )
    except openai.OpenAIError as exc:
        logger.exception("Whisper transcription failed")
        raise TranscriptionFailed(f"Transcription failed: {exc}") from exc
    except OSError as exc:
        logger.exception("Could not stage audio for transcription")
        raise TranscriptionFailed(f"Transcription failed: {exc}") from exc
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)

    logger.info("Transcription successful (%d chars)", len(transcription.text))
    return TranscriptionResult(transcript=transcription.text, mock=False)
