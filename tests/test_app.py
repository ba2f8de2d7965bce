"""Tests for the command handlers and user-facing advisories."""
from __future__ import annotations

import httpx
import pytest

from ai_summarizer.app import (
    ADVISORY_AI_UNAVAILABLE,
    ADVISORY_CONNECTIVITY,
    ADVISORY_GENERIC,
    ADVISORY_MALFORMED,
    ADVISORY_SAVE_FAILED,
    ADVISORY_SESSION,
    SubmissionPendingError,
    SummarizerApp,
    advisory_for,
)
from ai_summarizer.config import SummarizerConfig
from ai_summarizer.session import Admit, Redirect, Session
from ai_summarizer.summaries import (
    AIServiceError,
    BackendPersistError,
    ConfigurationError,
    InvalidAIResponseError,
    NetworkError,
    RequestTimeoutError,
    SessionError,
)
from conftest import completion, stored

CHAT = ("POST", "/api/v1/chat/completions")
CREATE = ("POST", "/api/summarize")
LIST = ("GET", "/api/summaries")
ME = ("GET", "/api/auth/me")
LOGOUT = ("POST", "/api/auth/logout")


def build_app(stack, session, **config):
    return SummarizerApp(
        SummarizerConfig(model="model-x", **config),
        session,
        stack.service,
        stack.history,
        stack.backend_client,
        openrouter_client=stack.ai_client,
    )


@pytest.mark.parametrize(
    "error, expected",
    [
        (AIServiceError(500, "boom"), ADVISORY_AI_UNAVAILABLE),
        (InvalidAIResponseError("empty"), ADVISORY_MALFORMED),
        (BackendPersistError(503), ADVISORY_SAVE_FAILED),
        (NetworkError("refused"), ADVISORY_CONNECTIVITY),
        (RequestTimeoutError("slow"), ADVISORY_CONNECTIVITY),
        (SessionError("Backend failed to resolve the session (500)"), ADVISORY_SESSION),
        (ValueError("other"), ADVISORY_GENERIC),
    ],
)
def test_each_failure_kind_has_its_own_advisory(error, expected):
    assert advisory_for(error) == expected


def test_configuration_advisory_includes_detail():
    assert "missing key" in advisory_for(ConfigurationError("missing key"))


@pytest.mark.asyncio
async def test_submit_success_updates_displayed_summary(make_stack, session):
    stack = make_stack(
        {CHAT: completion("Paris is the capital.")},
        {CREATE: stored("Paris is the capital."), LIST: httpx.Response(200, json=[])},
    )
    app = build_app(stack, session)

    result = await app.submit("Paris is the capital of France.")
    await app.aclose()

    assert result.ok
    assert result.advisory is None
    assert app.summary == "Paris is the capital."
    assert app.pending is False
    assert stack.ai.json_bodies(*CHAT)[0]["model"] == "model-x"
    assert len(stack.backend.calls(*LIST)) == 1


@pytest.mark.asyncio
async def test_submit_blank_leaves_summary_unchanged(make_stack, session):
    stack = make_stack({}, {})
    app = build_app(stack, session)
    app.summary = "previous summary"

    result = await app.submit("   ")
    await app.aclose()

    assert result.skipped
    assert not result.ok
    assert app.summary == "previous summary"
    assert stack.ai.requests == [] and stack.backend.requests == []


@pytest.mark.asyncio
async def test_submit_failure_returns_advisory(make_stack, session):
    stack = make_stack({CHAT: httpx.Response(429, text="rate limited")}, {CREATE: stored()})
    app = build_app(stack, session)
    app.summary = "previous summary"

    result = await app.submit("hello", model="other-model")
    await app.aclose()

    assert isinstance(result.error, AIServiceError)
    assert result.advisory == ADVISORY_AI_UNAVAILABLE
    assert app.summary == ""
    assert app.pending is False
    assert stack.ai.json_bodies(*CHAT)[0]["model"] == "other-model"


@pytest.mark.asyncio
async def test_submit_rejects_while_pending(make_stack, session):
    stack = make_stack({}, {})
    app = build_app(stack, session)
    app.pending = True

    with pytest.raises(SubmissionPendingError):
        await app.submit("hello")
    app.pending = False
    await app.aclose()


@pytest.mark.asyncio
async def test_dry_run_config_flows_into_requests(make_stack, session):
    stack = make_stack(
        {},
        {CREATE: lambda request: httpx.Response(201, content=request.content), LIST: httpx.Response(200, json=[])},
    )
    app = build_app(stack, session, dry_run=True)

    result = await app.submit("hello")
    await app.aclose()

    assert result.ok
    assert app.summary == 'Test summary for: "hello"'
    assert stack.ai.requests == []


@pytest.mark.asyncio
async def test_resolve_session_and_logout(make_stack):
    stack = make_stack(
        {},
        {ME: httpx.Response(200, json={"user": {"email": "ada@example.com"}}), LOGOUT: httpx.Response(200)},
    )
    app = build_app(stack, Session.from_cookie_header("connect.sid=abc"), login_url="/signin")

    decision = await app.resolve_session()
    assert isinstance(decision, Admit)
    assert decision.user.display_name == "ada@example.com"

    app.summary = "something"
    await app.logout()
    await app.aclose()

    assert app.summary == ""
    assert app.gate() == Redirect(location="/signin")
    assert len(stack.backend.calls(*LOGOUT)) == 1


@pytest.mark.asyncio
async def test_refresh_reset_and_delete(make_stack, session):
    listing = [{"id": "a", "inputText": "first text", "summaryText": "first", "modelUsed": "m"}]
    stack = make_stack({}, {LIST: httpx.Response(200, json=listing)})
    app = build_app(stack, session, max_length=5)

    records = await app.refresh()
    app.delete("a")
    app.input_text, app.summary = "typed", "shown"
    app.reset()
    view = app.history_view("FIRST")
    await app.aclose()

    assert [r.id for r in records] == ["a"]
    assert [r.id for r in app.history.records] == ["a"]
    assert (app.input_text, app.summary) == ("", "")
    assert view.rows()[0].input_display == "first..."


def test_from_config_without_key_still_builds():
    app = SummarizerApp.from_config(SummarizerConfig(api_key=None, session_cookie="connect.sid=abc"))
    assert app.session.cookies == {"connect.sid": "abc"}
    assert app._openrouter_client is None
