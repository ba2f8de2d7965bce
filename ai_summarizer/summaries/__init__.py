"""Shared exports for the summaries feature."""
from __future__ import annotations

from .backend_client import BackendClient
from .errors import (
    AIServiceError,
    BackendPersistError,
    ConfigurationError,
    HistoryFetchError,
    InvalidAIResponseError,
    NetworkError,
    RequestTimeoutError,
    SessionError,
    SummarizerError,
)
from .history import (
    HistoryRow,
    HistoryView,
    SummaryHistory,
    filter_records,
    format_timestamp,
    truncate_text,
)
from .openrouter_client import ChatCompletionResult, OpenRouterClient
from .prompts import PromptDocument, PromptValidationError, load_prompt
from .service import SummaryService, dry_run_summary
from .types import SummaryRecord, SummaryRequest


__all__ = [
    "SummaryRequest",
    "SummaryRecord",
    "load_prompt",
    "PromptDocument",
    "PromptValidationError",
    "OpenRouterClient",
    "ChatCompletionResult",
    "BackendClient",
    "SummaryHistory",
    "HistoryView",
    "HistoryRow",
    "filter_records",
    "truncate_text",
    "format_timestamp",
    "SummaryService",
    "dry_run_summary",
    "SummarizerError",
    "ConfigurationError",
    "AIServiceError",
    "InvalidAIResponseError",
    "BackendPersistError",
    "HistoryFetchError",
    "NetworkError",
    "RequestTimeoutError",
    "SessionError",
]
