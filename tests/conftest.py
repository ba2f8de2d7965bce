"""Shared fixtures: stubbed AI and backend HTTP endpoints."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

from ai_summarizer.session import Session, User
from ai_summarizer.summaries import BackendClient, OpenRouterClient, SummaryHistory, SummaryService

AI_BASE = "https://ai.test/api/v1"
BACKEND_BASE = "http://backend.test/api"

Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class Recorder:
    """MockTransport handler that records requests and answers from a route table."""

    def __init__(self, routes: Dict[Tuple[str, str], Handler]) -> None:
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": "not found"})
        if callable(handler):
            return handler(request)
        # Responses are single-use once a client has consumed them.
        return httpx.Response(handler.status_code, headers=handler.headers, content=handler.content)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def json_bodies(self, method: str, path: str) -> List[dict]:
        return [json.loads(r.content) for r in self.calls(method, path)]


def completion(content: str) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
            "usage": {"prompt_tokens": 12, "completion_tokens": 5},
        },
    )


def stored(summary_text: str = "Paris is the capital.", **extra: object) -> httpx.Response:
    payload = {
        "id": "rec-1",
        "inputText": "Paris is the capital of France and its largest city.",
        "summaryText": summary_text,
        "modelUsed": "model-x",
        "createdAt": "2024-05-01T10:30:00.000Z",
    }
    payload.update(extra)
    return httpx.Response(201, json=payload)


@dataclass
class Stack:
    ai: Recorder
    backend: Recorder
    ai_client: OpenRouterClient
    backend_client: BackendClient
    history: SummaryHistory
    service: SummaryService
    extra: dict = field(default_factory=dict)

    async def aclose(self) -> None:
        await self.history.drain()
        await self.ai_client.aclose()
        await self.backend_client.aclose()


@pytest.fixture
def session() -> Session:
    return Session(cookies={"connect.sid": "s3cret"}).resolved(User(name="Ada", email="ada@example.com"))


@pytest.fixture
def make_stack() -> Callable[..., Stack]:
    def factory(
        ai_routes: Dict[Tuple[str, str], Handler],
        backend_routes: Dict[Tuple[str, str], Handler],
    ) -> Stack:
        ai = Recorder(ai_routes)
        backend = Recorder(backend_routes)
        ai_client = OpenRouterClient(
            "test-key",
            AI_BASE,
            referer="https://example.com",
            title="ai-summarizer-tests",
            transport=httpx.MockTransport(ai),
        )
        backend_client = BackendClient(BACKEND_BASE, transport=httpx.MockTransport(backend))
        history = SummaryHistory(backend_client)
        service = SummaryService(backend_client, history, openrouter_client=ai_client)
        return Stack(ai, backend, ai_client, backend_client, history, service)

    return factory
