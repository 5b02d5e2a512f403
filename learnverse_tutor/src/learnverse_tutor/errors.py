"""
Error types shared by the session controller, the clients and the backend services.
"""

from typing import Optional


class LearnVerseError(Exception):
    """Base class for all application errors."""


class ConfigurationError(LearnVerseError):
    """A required setting is missing or invalid."""


class ChatBackendError(LearnVerseError):
    """The chat proxy could not be reached or returned an unusable reply."""

    def __init__(self, message: str, details: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        """Text shown to the user (`details || error`)."""
        return self.details or self.message


class UpstreamAPIError(LearnVerseError):
    """A hosted API (LLM, YouTube, TTS) failed or returned a malformed payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamAuthError(UpstreamAPIError):
    """The hosted API rejected our credentials."""


class VideoSuggestionError(LearnVerseError):
    """Video suggestions could not be fetched."""


class StudyFileError(LearnVerseError):
    """An uploaded study file is of an unsupported type or too large."""


class QuizParseError(LearnVerseError):
    """The LLM output did not contain a usable quiz."""


class TaskError(LearnVerseError):
    """A task command could not be resolved or executed."""


class MicrophoneAccessDenied(LearnVerseError):
    """The user or the platform denied microphone access."""


class RecognizerUnavailable(LearnVerseError):
    """No speech recognizer is available on this platform."""
