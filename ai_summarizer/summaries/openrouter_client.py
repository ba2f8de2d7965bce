"""Thin async OpenRouter API wrapper used by the summaries service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

import httpx

from .errors import (
    AIServiceError,
    ConfigurationError,
    InvalidAIResponseError,
    NetworkError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass
class ChatCompletionResult:
    """Simplified view of a chat completion response."""

    content: str
    usage: Mapping[str, Any]
    raw: Mapping[str, Any]
    finish_reason: Optional[str] = None


class OpenRouterClient:
    """Co-ordinates requests to OpenRouter's chat completions endpoint."""

    _DEFAULT_TIMEOUT = 60.0

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        *,
        referer: Optional[str] = None,
        title: Optional[str] = None,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("OpenRouter API key is required")

        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if referer:
            headers["HTTP-Referer"] = referer
        if title:
            headers["X-Title"] = title

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(
        self,
        model: str,
        messages: Sequence[Mapping[str, Any]],
        *,
        extra_payload: Optional[Mapping[str, Any]] = None,
    ) -> ChatCompletionResult:
        """Submit a completion request and return the normalized response payload."""

        payload: Dict[str, Any] = {
            "model": model,
            "messages": list(messages),
        }
        if extra_payload:
            payload.update(extra_payload)

        try:
            response = await self._client.post("/chat/completions", json=payload)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError(f"OpenRouter request timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(f"OpenRouter request failed: {exc}") from exc

        if not response.is_success:
            logger.debug(
                "openrouter-error",
                extra={"summary": {"status_code": response.status_code, "model": model}},
            )
            raise AIServiceError(response.status_code, response.text)

        return self._parse_chat_completion(response)

    def _parse_chat_completion(self, response: httpx.Response) -> ChatCompletionResult:
        try:
            data = response.json()
        except ValueError as exc:
            raise InvalidAIResponseError("OpenRouter returned a non-JSON response") from exc
        if not isinstance(data, Mapping):
            raise InvalidAIResponseError("OpenRouter response was not a JSON object")

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise InvalidAIResponseError("OpenRouter chat response missing choices")

        first_choice = choices[0]
        message = first_choice.get("message") if isinstance(first_choice, Mapping) else None
        if not isinstance(message, Mapping):
            raise InvalidAIResponseError("OpenRouter chat response missing message content")

        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise InvalidAIResponseError("OpenRouter chat response missing text content")

        usage = data.get("usage")
        finish_reason = first_choice.get("finish_reason")

        return ChatCompletionResult(
            content=content.strip(),
            usage=dict(usage) if isinstance(usage, Mapping) else {},
            finish_reason=finish_reason if isinstance(finish_reason, str) else None,
            raw=data,
        )
