"""Dataclasses shared across the summaries feature."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class SummaryRequest:
    """Immutable request payload used by both CLI and TUI callers."""

    input_text: str
    model: str
    dry_run: bool = False


@dataclass(frozen=True)
class SummaryRecord:
    """One completed summarization as stored by the backend."""

    id: str
    input_text: str
    summary_text: str
    model_used: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SummaryRecord":
        raw_id = payload.get("id", payload.get("_id"))
        return cls(
            id="" if raw_id is None else str(raw_id),
            input_text=str(payload.get("inputText") or ""),
            summary_text=str(payload.get("summaryText") or ""),
            model_used=str(payload.get("modelUsed") or ""),
            created_at=parse_timestamp(payload.get("createdAt")),
        )

    def to_payload(self) -> Dict[str, str]:
        """Return the body expected by the backend creation endpoint."""
        return {
            "inputText": self.input_text,
            "summaryText": self.summary_text,
            "modelUsed": self.model_used,
        }


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
