"""Error taxonomy shared by the summaries clients and service."""
from __future__ import annotations

from typing import Optional


class SummarizerError(RuntimeError):
    """Base error raised for summarizer failures."""


class ConfigurationError(SummarizerError):
    """Raised when required settings are missing or malformed."""


class HTTPStatusFailure(SummarizerError):
    """Base for failures caused by a non-success HTTP status."""

    def __init__(self, status_code: int, body: str = "", message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"request failed ({status_code})")


class AIServiceError(HTTPStatusFailure):
    """Raised when the completion endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(status_code, body, f"AI service error ({status_code})")


class InvalidAIResponseError(SummarizerError):
    """Raised when the completion response has no usable generated text."""


class BackendPersistError(HTTPStatusFailure):
    """Raised when the backend refuses to store a summary."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(status_code, body, f"Backend failed to save summary ({status_code})")


class HistoryFetchError(HTTPStatusFailure):
    """Raised when the backend listing endpoint answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "") -> None:
        super().__init__(status_code, body, f"Backend failed to list summaries ({status_code})")


class NetworkError(SummarizerError):
    """Raised for transport-level failures on any outbound call."""


class RequestTimeoutError(NetworkError):
    """Raised when an outbound call exceeds its bounded wait."""


class SessionError(SummarizerError):
    """Raised when the backend cannot resolve or end the caller's session."""
