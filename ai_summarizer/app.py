"""Command handlers shared by the CLI and the interactive browser."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .config import SummarizerConfig
from .session import GateDecision, Session, gate
from .summaries import (
    AIServiceError,
    BackendClient,
    BackendPersistError,
    ConfigurationError,
    HistoryFetchError,
    HistoryView,
    InvalidAIResponseError,
    NetworkError,
    OpenRouterClient,
    SessionError,
    SummaryHistory,
    SummaryRecord,
    SummaryRequest,
    SummaryService,
)

logger = logging.getLogger(__name__)

ADVISORY_AI_UNAVAILABLE = "The AI service is unavailable right now. Please try again later."
ADVISORY_MALFORMED = "The AI service returned an unusable response. Please try again."
ADVISORY_SAVE_FAILED = "The summary was generated but could not be saved. Please try again."
ADVISORY_HISTORY = "Could not load your summary history. Please refresh."
ADVISORY_CONNECTIVITY = "Could not reach the server. Check your connection and try again."
ADVISORY_SESSION = "Could not check your sign-in with the server. Please try again later."
ADVISORY_CONFIGURATION = "The summarizer is not configured correctly: {detail}"
ADVISORY_GENERIC = "Failed to create summary. Please try again."


def advisory_for(exc: BaseException) -> str:
    """Translate an error into the message shown to the user."""
    if isinstance(exc, AIServiceError):
        return ADVISORY_AI_UNAVAILABLE
    if isinstance(exc, InvalidAIResponseError):
        return ADVISORY_MALFORMED
    if isinstance(exc, BackendPersistError):
        return ADVISORY_SAVE_FAILED
    if isinstance(exc, HistoryFetchError):
        return ADVISORY_HISTORY
    if isinstance(exc, SessionError):
        return ADVISORY_SESSION
    if isinstance(exc, NetworkError):
        return ADVISORY_CONNECTIVITY
    if isinstance(exc, ConfigurationError):
        return ADVISORY_CONFIGURATION.format(detail=exc)
    return ADVISORY_GENERIC


@dataclass
class SubmitResult:
    record: Optional[SummaryRecord] = None
    error: Optional[Exception] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped

    @property
    def advisory(self) -> Optional[str]:
        return advisory_for(self.error) if self.error is not None else None


class SubmissionPendingError(RuntimeError):
    """Raised when a summary is requested while another one is still running."""


class SummarizerApp:
    """Owns the session, the displayed summary and the history cache."""

    def __init__(
        self,
        config: SummarizerConfig,
        session: Session,
        service: SummaryService,
        history: SummaryHistory,
        backend: BackendClient,
        *,
        openrouter_client: Optional[OpenRouterClient] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.service = service
        self.history = history
        self.backend = backend
        self.model = config.model
        self.input_text = ""
        self.summary = ""
        self.pending = False
        self._openrouter_client = openrouter_client

    @classmethod
    def from_config(cls, config: SummarizerConfig, session: Optional[Session] = None) -> "SummarizerApp":
        backend = BackendClient(config.backend_url, timeout=config.backend_timeout)
        # Without a key the service refuses to summarize unless dry-run is on.
        client: Optional[OpenRouterClient] = None
        if config.api_key and not config.dry_run:
            client = OpenRouterClient(
                api_key=config.api_key,
                base_url=config.ai_base_url,
                referer=config.referer,
                title=config.title,
                timeout=config.ai_timeout,
            )
        history = SummaryHistory(backend)
        service = SummaryService(backend, history, openrouter_client=client)
        if session is None:
            session = Session.from_cookie_header(config.session_cookie)
        return cls(config, session, service, history, backend, openrouter_client=client)

    # ---- Session --------------------------------------------------------
    async def resolve_session(self) -> GateDecision:
        user = await self.backend.current_user(self.session)
        self.session = self.session.resolved(user)
        return self.gate()

    def gate(self) -> GateDecision:
        return gate(self.session, self.config.login_url)

    async def logout(self) -> None:
        try:
            await self.backend.logout(self.session)
        finally:
            self.session = self.session.signed_out()
            self.summary = ""

    # ---- Commands -------------------------------------------------------
    async def submit(self, input_text: str, model: Optional[str] = None) -> SubmitResult:
        if self.pending:
            raise SubmissionPendingError("Summary generation already in progress.")
        if not input_text.strip():
            return SubmitResult(skipped=True)

        self.input_text = input_text
        self.summary = ""
        self.pending = True
        request = SummaryRequest(
            input_text=input_text,
            model=model or self.model,
            dry_run=self.config.dry_run,
        )
        try:
            record = await self.service.summarize(request, self.session)
        except (AIServiceError, InvalidAIResponseError, BackendPersistError, NetworkError, ConfigurationError) as exc:
            logger.error("Failed to create summary: %s", exc)
            return SubmitResult(error=exc)
        finally:
            self.pending = False

        if record is not None:
            self.summary = record.summary_text
        return SubmitResult(record=record)

    async def refresh(self) -> List[SummaryRecord]:
        return await self.history.reload(self.session)

    def reset(self) -> None:
        self.input_text = ""
        self.summary = ""

    def delete(self, record_id: str) -> None:
        self.history.request_delete(record_id)

    def history_view(self, search_term: str = "") -> HistoryView:
        return HistoryView(self.history, search_term=search_term, max_length=self.config.max_length)

    async def aclose(self) -> None:
        await self.history.drain()
        await self.backend.aclose()
        if self._openrouter_client is not None:
            await self._openrouter_client.aclose()
