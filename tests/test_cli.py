"""Tests for the command line front end."""
from __future__ import annotations

import argparse
import io

import httpx
import pytest

from ai_summarizer import cli
from ai_summarizer.app import ADVISORY_AI_UNAVAILABLE, ADVISORY_GENERIC, ADVISORY_SESSION, SummarizerApp
from ai_summarizer.config import SummarizerConfig
from ai_summarizer.session import Session
from ai_summarizer.summaries import HistoryRow
from conftest import completion, stored

CHAT = ("POST", "/api/v1/chat/completions")
CREATE = ("POST", "/api/summarize")
LIST = ("GET", "/api/summaries")
ME = ("GET", "/api/auth/me")
LOGOUT = ("POST", "/api/auth/logout")

SIGNED_IN = httpx.Response(200, json={"name": "Ada", "email": "ada@example.com"})
LISTING = httpx.Response(
    200,
    json=[
        {"id": "r2", "inputText": "Notes about Paris", "summaryText": "Paris notes", "modelUsed": "model-x"},
        {"id": "r1", "inputText": "Rome travel diary", "summaryText": "Rome trip", "modelUsed": "model-y"},
    ],
)


@pytest.fixture
def install_app(monkeypatch, tmp_path):
    monkeypatch.setattr("ai_summarizer.config.get_openrouter_key_path", lambda: tmp_path / "missing-key")

    def install(stack, session=None):
        app = SummarizerApp(
            SummarizerConfig(model="model-x"),
            session or Session.from_cookie_header("connect.sid=abc"),
            stack.service,
            stack.history,
            stack.backend_client,
            openrouter_client=stack.ai_client,
        )
        monkeypatch.setattr(SummarizerApp, "from_config", classmethod(lambda cls, config, session=None: app))
        return app

    return install


def run(argv, tmp_path):
    return cli.main(["--config", str(tmp_path / "absent.yaml"), *argv])


def test_summarize_prints_summary(make_stack, install_app, tmp_path, capsys):
    stack = make_stack(
        {CHAT: completion("Paris is the capital.")},
        {ME: SIGNED_IN, CREATE: stored("Paris is the capital."), LIST: LISTING},
    )
    install_app(stack)

    code = run(["summarize", "Paris is the capital of France."], tmp_path)

    assert code == cli.EXIT_OK
    assert capsys.readouterr().out == "Paris is the capital.\n"
    assert len(stack.backend.calls(*LIST)) == 1


def test_summarize_failure_prints_advisory(make_stack, install_app, tmp_path, capsys):
    stack = make_stack({CHAT: httpx.Response(500)}, {ME: SIGNED_IN, CREATE: stored()})
    install_app(stack)

    code = run(["summarize", "hello"], tmp_path)

    assert code == cli.EXIT_FAILURE
    assert ADVISORY_AI_UNAVAILABLE in capsys.readouterr().err
    assert stack.backend.calls(*CREATE) == []


def test_unauthenticated_caller_is_redirected(make_stack, install_app, tmp_path, capsys):
    stack = make_stack({}, {ME: httpx.Response(401)})
    install_app(stack)

    code = run(["history"], tmp_path)

    assert code == cli.EXIT_UNAUTHENTICATED
    assert "Not signed in. Sign in at /login" in capsys.readouterr().err
    assert stack.backend.calls(*LIST) == []


def test_history_filters_and_prints_table(make_stack, install_app, tmp_path, capsys):
    stack = make_stack({}, {ME: SIGNED_IN, LIST: LISTING})
    install_app(stack)

    code = run(["history", "--search", "PARIS"], tmp_path)

    out = capsys.readouterr().out.splitlines()
    assert code == cli.EXIT_OK
    assert out[0] == "Showing 1 of 2 summaries"
    assert out[1].startswith("Date")
    assert "Notes about Paris" in out[2]
    assert out[2].endswith("r2")
    assert len(out) == 3


def test_history_without_matches(make_stack, install_app, tmp_path, capsys):
    stack = make_stack({}, {ME: SIGNED_IN, LIST: LISTING})
    install_app(stack)

    run(["history", "-s", "volcano"], tmp_path)

    assert capsys.readouterr().out.strip() == 'No results found for "volcano"'


def test_whoami_and_logout(make_stack, install_app, tmp_path, capsys):
    install_app(make_stack({}, {ME: SIGNED_IN}))
    assert run(["whoami"], tmp_path) == cli.EXIT_OK
    assert capsys.readouterr().out.strip() == "Welcome, Ada"

    # Each run closes its clients, so logout gets a fresh stack.
    stack = make_stack({}, {ME: SIGNED_IN, LOGOUT: httpx.Response(204)})
    install_app(stack)
    assert run(["logout"], tmp_path) == cli.EXIT_OK
    assert capsys.readouterr().out.strip() == "Signed out."
    assert len(stack.backend.calls(*LOGOUT)) == 1


def test_session_lookup_failure_prints_session_advisory(make_stack, install_app, tmp_path, capsys):
    install_app(make_stack({}, {ME: httpx.Response(500)}))

    assert run(["whoami"], tmp_path) == cli.EXIT_FAILURE
    err = capsys.readouterr().err
    assert ADVISORY_SESSION in err
    assert ADVISORY_GENERIC not in err


def test_delete_only_reports_intent(make_stack, install_app, tmp_path, capsys):
    stack = make_stack({}, {ME: SIGNED_IN})
    install_app(stack)

    assert run(["delete", "r1"], tmp_path) == cli.EXIT_OK
    assert "was kept" in capsys.readouterr().out
    assert [r.method for r in stack.backend.requests] == ["GET"]


def test_read_input_text_sources(tmp_path, monkeypatch):
    source = tmp_path / "input.txt"
    source.write_text("from file", encoding="utf-8")
    assert cli.read_input_text(argparse.Namespace(file=source, text=None)) == "from file"
    assert cli.read_input_text(argparse.Namespace(file=None, text="inline")) == "inline"

    monkeypatch.setattr("sys.stdin", io.StringIO("from stdin"))
    assert cli.read_input_text(argparse.Namespace(file=None, text="-")) == "from stdin"


def test_config_overrides_from_flags():
    args = cli.build_parser().parse_args(
        ["--backend-url", "http://b.test", "summarize", "--model", "m", "--dry-run", "hi"]
    )
    assert cli.config_overrides(args) == {
        "backend_url": "http://b.test",
        "session_cookie": None,
        "model": "m",
        "dry_run": True,
    }


def test_format_history_table_aligns_columns():
    rows = [
        HistoryRow("1", "01 May 2024 10:30", "short", "short", "tiny", "tiny", "m"),
        HistoryRow("22", "02 May 2024 11:00", "a bit\nlonger", "a bit\nlonger", "s", "s", "model-long"),
    ]
    header, lines = cli.format_history_table(rows)
    assert header.split() == ["Date", "Input", "Summary", "Model", "Id"]
    assert len(lines) == 2
    assert "a bit longer" in lines[1]
    model_column = header.index("Model")
    assert lines[0][model_column] == "m"
    assert lines[1].index("model-long") == model_column
