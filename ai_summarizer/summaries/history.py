"""Summary history cache and the filtering/formatting behind the history view."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence, Set

from .errors import HistoryFetchError, NetworkError
from .types import SummaryRecord

if TYPE_CHECKING:
    from ..session import Session
    from .backend_client import BackendClient

logger = logging.getLogger(__name__)

ELLIPSIS = "..."
DEFAULT_MAX_LENGTH = 100
_TIMESTAMP_FORMAT = "%d %b %Y %H:%M"


def filter_records(records: Sequence[SummaryRecord], term: Optional[str]) -> List[SummaryRecord]:
    """Return records whose input or summary contains ``term``, ignoring case."""
    if not term or not term.strip():
        return list(records)
    needle = term.lower()
    return [
        record
        for record in records
        if needle in record.input_text.lower() or needle in record.summary_text.lower()
    ]


def truncate_text(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length] + ELLIPSIS


def format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime(_TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class HistoryRow:
    """Display form of a record; the ``*_title`` fields keep the full text."""

    record_id: str
    created: str
    input_display: str
    input_title: str
    summary_display: str
    summary_title: str
    model_used: str

    @classmethod
    def from_record(cls, record: SummaryRecord, max_length: int = DEFAULT_MAX_LENGTH) -> "HistoryRow":
        return cls(
            record_id=record.id,
            created=format_timestamp(record.created_at),
            input_display=truncate_text(record.input_text, max_length),
            input_title=record.input_text,
            summary_display=truncate_text(record.summary_text, max_length),
            summary_title=record.summary_text,
            model_used=record.model_used,
        )


class SummaryHistory:
    """Client-side cache of the backend's summary listing.

    The list is only ever replaced wholesale by :meth:`reload`. Reloads
    scheduled with :meth:`schedule_reload` run as background tasks whose
    failures are logged rather than raised.
    """

    def __init__(self, backend: "BackendClient", logger_: Optional[logging.Logger] = None) -> None:
        self._backend = backend
        self._logger = logger_ or logger
        self._records: List[SummaryRecord] = []
        self._tasks: Set["asyncio.Task[None]"] = set()

    @property
    def records(self) -> List[SummaryRecord]:
        return list(self._records)

    async def reload(self, session: "Session") -> List[SummaryRecord]:
        records = await self._backend.list_summaries(session)
        self._records = records
        return self.records

    def schedule_reload(self, session: "Session") -> "asyncio.Task[None]":
        task = asyncio.get_running_loop().create_task(self._reload_quietly(session))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for any scheduled reloads to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def request_delete(self, record_id: str) -> None:
        # No backend delete contract exists yet; the cache is left untouched.
        self._logger.info("Delete not implemented yet for summary %s", record_id)

    async def _reload_quietly(self, session: "Session") -> None:
        try:
            await self.reload(session)
        except (HistoryFetchError, NetworkError) as exc:
            self._logger.warning("Failed to fetch history: %s", exc)


class HistoryView:
    """Search-filtered, display-ready projection of a :class:`SummaryHistory`."""

    def __init__(
        self,
        history: SummaryHistory,
        search_term: str = "",
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        self.history = history
        self.search_term = search_term
        self.max_length = max_length

    def visible_records(self) -> List[SummaryRecord]:
        return filter_records(self.history.records, self.search_term)

    def rows(self) -> List[HistoryRow]:
        return [HistoryRow.from_record(record, self.max_length) for record in self.visible_records()]

    def count_line(self) -> str:
        return f"Showing {len(self.visible_records())} of {len(self.history.records)} summaries"

    def empty_message(self) -> Optional[str]:
        if not self.history.records:
            return "No summaries yet. Create your first summary!"
        if not self.visible_records() and self.search_term:
            return f'No results found for "{self.search_term}"'
        return None
