from __future__ import annotations

import os
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import openai
import pytest

from taskwhisper.config import Settings
from taskwhisper.errors import TranscriptionFailed
from taskwhisper.services.transcription import MOCK_TRANSCRIPT, transcribe

CONFIGURED = Settings(openai_api_key="sk-test")


def test_mock_mode_without_key():
    result = transcribe(b"audio", Settings())
    assert result.mock is True
    assert result.transcript == MOCK_TRANSCRIPT


def test_placeholder_key_means_mock_mode():
    settings = Settings.from_env({"OPENAI_API_KEY": "your-openai-api-key-here"})
    assert transcribe(b"audio", settings).mock is True


@patch("taskwhisper.services.transcription.openai.OpenAI")
def test_transcribes_and_removes_temp_file(mock_client):
    seen = {}

    def fake_create(file, model, language):
        seen["path"] = file.name
        seen["exists"] = os.path.exists(file.name)
        seen["data"] = file.read()
        return SimpleNamespace(text="Call the dentist tomorrow")

    mock_client.return_value.audio.transcriptions.create.side_effect = fake_create

    result = transcribe(b"fake-audio", CONFIGURED, filename="memo.m4a")

    assert result.transcript == "Call the dentist tomorrow"
    assert result.mock is False
    assert seen["exists"] is True
    assert seen["data"] == b"fake-audio"
    assert seen["path"].endswith(".m4a")
    assert not os.path.exists(seen["path"])


@patch("taskwhisper.services.transcription.openai.OpenAI")
def test_defaults_to_webm_suffix(mock_client):
    seen = {}

    def fake_create(file, model, language):
        seen["path"] = file.name
        return SimpleNamespace(text="ok")

    mock_client.return_value.audio.transcriptions.create.side_effect = fake_create

    transcribe(b"fake-audio", CONFIGURED, filename="blob")

    assert seen["path"].endswith(".webm")


@patch("taskwhisper.services.transcription.openai.OpenAI")
def test_provider_failure_cleans_up(mock_client):
    seen = {}
    request = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")

    def fake_create(file, model, language):
        seen["path"] = file.name
        raise openai.APIConnectionError(request=request)

    mock_client.return_value.audio.transcriptions.create.side_effect = fake_create

    with pytest.raises(TranscriptionFailed, match="Transcription failed"):
        transcribe(b"fake-audio", CONFIGURED)

    assert not os.path.exists(seen["path"])
