"""Orchestration layer: generate a summary, persist it, refresh the history."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Mapping, Optional

from .backend_client import BackendClient
from .errors import ConfigurationError
from .history import SummaryHistory
from .openrouter_client import OpenRouterClient
from .prompts import PromptDocument, load_prompt
from .types import SummaryRecord, SummaryRequest

if TYPE_CHECKING:
    from ..session import Session

DRY_RUN_PREVIEW_LENGTH = 50


def dry_run_summary(input_text: str) -> str:
    """Deterministic placeholder used instead of calling the AI endpoint."""
    preview = input_text[:DRY_RUN_PREVIEW_LENGTH]
    suffix = "..." if len(input_text) > DRY_RUN_PREVIEW_LENGTH else ""
    return f'Test summary for: "{preview}{suffix}"'


class SummaryService:
    """Public facade used by CLI commands and the TUI browser."""

    def __init__(
        self,
        backend: BackendClient,
        history: SummaryHistory,
        *,
        openrouter_client: Optional[OpenRouterClient] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._backend = backend
        self._history = history
        self._client = openrouter_client
        self._prompt: Optional[PromptDocument] = None
        self._logger = logger or logging.getLogger(__name__)

    async def summarize(self, request: SummaryRequest, session: "Session") -> Optional[SummaryRecord]:
        """Return the stored record, or ``None`` when the input is blank.

        The AI call completes before anything is persisted. After a successful
        save a history reload is scheduled but not awaited.
        """

        if not request.input_text.strip():
            return None

        if request.dry_run:
            generated = dry_run_summary(request.input_text)
        else:
            generated = await self._generate(request)

        draft = SummaryRecord(
            id="",
            input_text=request.input_text,
            summary_text=generated,
            model_used=request.model,
        )
        stored = await self._backend.create_summary(session, draft)
        record = self._merge_stored(draft, stored)
        self._log_debug(
            "persisted",
            request,
            {"record_id": record.id, "echoed": bool(stored.get("summaryText"))},
        )

        self._history.schedule_reload(session)
        return record

    async def _generate(self, request: SummaryRequest) -> str:
        client = self._require_client()
        result = await client.generate(request.model, self._messages(request.input_text))
        self._log_debug(
            "generated",
            request,
            {"usage": dict(result.usage), "finish_reason": result.finish_reason},
        )
        return result.content

    def _require_client(self) -> OpenRouterClient:
        if not self._client:
            raise ConfigurationError(
                "OpenRouter API key not found. Set OPENROUTER_API_KEY, place a key in "
                "~/.config/openrouter/key, or enable dry-run."
            )
        return self._client

    def _messages(self, input_text: str) -> List[Mapping[str, str]]:
        if self._prompt is None:
            self._prompt = load_prompt()
        return [{"role": "user", "content": self._prompt.render(input_text)}]

    def _merge_stored(self, draft: SummaryRecord, stored: Mapping[str, object]) -> SummaryRecord:
        echoed = SummaryRecord.from_payload(stored)
        return SummaryRecord(
            id=echoed.id,
            input_text=echoed.input_text or draft.input_text,
            summary_text=echoed.summary_text or draft.summary_text,
            model_used=echoed.model_used or draft.model_used,
            created_at=echoed.created_at,
        )

    def _log_debug(self, event: str, request: SummaryRequest, extra: Mapping[str, object]) -> None:
        payload = {
            "event": event,
            "model": request.model,
            "dry_run": request.dry_run,
            "input_length": len(request.input_text),
        }
        payload.update(dict(extra))
        self._logger.debug("summary-service", extra={"summary": payload})
