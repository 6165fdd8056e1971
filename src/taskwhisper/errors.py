from __future__ import annotations


class TaskWhisperError(Exception):
    """Base class for errors reported back to the caller."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationMissing(TaskWhisperError):
    """A required credential or channel is not configured."""

    status_code = 503


class ChannelUnavailable(ConfigurationMissing):
    pass


class TranscriptionFailed(TaskWhisperError):
    status_code = 502


class ExtractionFailed(TaskWhisperError):
    """The language model's answer could not be parsed or validated."""

    status_code = 502


class DeliveryFailed(TaskWhisperError):
    status_code = 502


class NotFound(TaskWhisperError):
    status_code = 404


class StoreUnavailable(TaskWhisperError):
    status_code = 503


class InvalidTransition(TaskWhisperError):
    status_code = 409
