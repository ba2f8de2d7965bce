"""Async client for the summary persistence backend."""
from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

import httpx

from ..session import Session, User
from .errors import (
    BackendPersistError,
    HistoryFetchError,
    NetworkError,
    RequestTimeoutError,
    SessionError,
)
from .types import SummaryRecord

logger = logging.getLogger(__name__)


class BackendClient:
    """Talks to the backend that stores summaries and owns user sessions."""

    _DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------
    # Summaries
    # ------------------------------
    async def create_summary(self, session: Session, record: SummaryRecord) -> Mapping[str, Any]:
        """Persist ``record`` and return the stored record as echoed by the backend."""

        response = await self._request("POST", "/summarize", session, json=record.to_payload())
        if not response.is_success:
            raise BackendPersistError(response.status_code, response.text)
        return self._json_object(response)

    async def list_summaries(self, session: Session) -> List[SummaryRecord]:
        response = await self._request("GET", "/summaries", session)
        if not response.is_success:
            raise HistoryFetchError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise HistoryFetchError(response.status_code, response.text) from exc
        if isinstance(data, Mapping):
            data = data.get("summaries")
        if not isinstance(data, list):
            raise HistoryFetchError(response.status_code, response.text)
        return [SummaryRecord.from_payload(item) for item in data if isinstance(item, Mapping)]

    # ------------------------------
    # Session
    # ------------------------------
    async def current_user(self, session: Session) -> Optional[User]:
        """Return the signed-in user, or ``None`` when the backend does not recognise the session."""

        if not session.has_credentials:
            return None
        response = await self._request("GET", "/auth/me", session)
        if response.status_code in (401, 403):
            return None
        if not response.is_success:
            raise SessionError(f"Backend failed to resolve the session ({response.status_code})")
        return User.from_payload(self._json_object(response))

    async def logout(self, session: Session) -> None:
        response = await self._request("POST", "/auth/logout", session)
        if not response.is_success and response.status_code not in (401, 403):
            raise SessionError(f"Backend failed to log out ({response.status_code})")

    # ------------------------------
    # HTTP helpers
    # ------------------------------
    async def _request(self, method: str, path: str, session: Session, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, path, headers=session.credential_headers(), **kwargs
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"Backend {method} {path} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"Backend {method} {path} failed: {exc}") from exc
        logger.debug(
            "backend-request",
            extra={"summary": {"method": method, "path": path, "status_code": response.status_code}},
        )
        return response

    def _json_object(self, response: httpx.Response) -> Mapping[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, Mapping) else {}
