from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .app import SummarizerApp, advisory_for
from .config import DEFAULT_MODEL, SummarizerConfig, get_default_config_path, load_config
from .session import Admit, Loading, Redirect
from .summaries import HistoryRow, SummarizerError

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_UNAUTHENTICATED = 2


def format_history_table(rows: Sequence[HistoryRow]) -> tuple[str, list[str]]:
    if not rows:
        header = "Date  Input  Summary  Model  Id"
        return header, []

    date_width = max(len("Date"), max(len(row.created) for row in rows))
    input_width = max(len("Input"), max(len(_one_line(row.input_display)) for row in rows))
    summary_width = max(len("Summary"), max(len(_one_line(row.summary_display)) for row in rows))
    model_width = max(len("Model"), max(len(row.model_used) for row in rows))

    header = (
        f"{'Date'.ljust(date_width)}  "
        f"{'Input'.ljust(input_width)}  "
        f"{'Summary'.ljust(summary_width)}  "
        f"{'Model'.ljust(model_width)}  "
        "Id"
    )

    lines: list[str] = []
    for row in rows:
        line = (
            f"{row.created.ljust(date_width)}  "
            f"{_one_line(row.input_display).ljust(input_width)}  "
            f"{_one_line(row.summary_display).ljust(summary_width)}  "
            f"{row.model_used.ljust(model_width)}  "
            f"{row.record_id}"
        )
        lines.append(line)
    return header, lines


def _one_line(text: str) -> str:
    return " ".join(text.split())


def read_input_text(args: argparse.Namespace) -> str:
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    if args.text is None or args.text == "-":
        return sys.stdin.read()
    return args.text


def config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {
        "backend_url": args.backend_url,
        "session_cookie": args.session,
    }
    if getattr(args, "model", None):
        overrides["model"] = args.model
    if getattr(args, "dry_run", False):
        overrides["dry_run"] = True
    if getattr(args, "max_length", None) is not None:
        overrides["max_length"] = args.max_length
    return overrides


def handle_gate(app: SummarizerApp) -> Optional[int]:
    """Print the gate verdict when it blocks; return an exit code in that case."""
    decision = app.gate()
    if isinstance(decision, Admit):
        return None
    if isinstance(decision, Loading):
        print(decision.message, file=sys.stderr)
        return EXIT_UNAUTHENTICATED
    if isinstance(decision, Redirect):
        print(
            f"Not signed in. Sign in at {decision.location} and pass the session cookie "
            "with --session or AI_SUMMARIZER_SESSION.",
            file=sys.stderr,
        )
    return EXIT_UNAUTHENTICATED


async def handle_summarize(app: SummarizerApp, args: argparse.Namespace) -> int:
    text = read_input_text(args)
    result = await app.submit(text, model=args.model)
    if result.skipped:
        return EXIT_OK
    if result.advisory:
        print(result.advisory, file=sys.stderr)
        return EXIT_FAILURE
    sys.stdout.write(app.summary)
    if not app.summary.endswith("\n"):
        sys.stdout.write("\n")
    return EXIT_OK


async def handle_history(app: SummarizerApp, args: argparse.Namespace) -> int:
    await app.refresh()
    view = app.history_view(args.search or "")
    empty = view.empty_message()
    if empty:
        print(empty)
        return EXIT_OK

    print(view.count_line())
    header, lines = format_history_table(view.rows())
    print(header)
    for line in lines:
        print(line)
    return EXIT_OK


async def handle_delete(app: SummarizerApp, args: argparse.Namespace) -> int:
    app.delete(args.id)
    print(f"Delete is not available yet; summary {args.id} was kept.")
    return EXIT_OK


async def handle_whoami(app: SummarizerApp, args: argparse.Namespace) -> int:
    user = app.session.user
    print(f"Welcome, {user.display_name if user else '?'}")
    return EXIT_OK


async def handle_logout(app: SummarizerApp, args: argparse.Namespace) -> int:
    await app.logout()
    print("Signed out.")
    return EXIT_OK


async def run_command(config: SummarizerConfig, args: argparse.Namespace) -> int:
    app = SummarizerApp.from_config(config)
    try:
        await app.resolve_session()
        blocked = handle_gate(app)
        if blocked is not None:
            return blocked

        if args.cmd == "browse":
            try:
                from .browser import browse_history
            except ModuleNotFoundError as exc:
                if exc.name == "prompt_toolkit":
                    print(
                        "Interactive browsing requires optional dependency 'prompt_toolkit'. "
                        "Install it with `python -m pip install .[browser]`.",
                        file=sys.stderr,
                    )
                    return EXIT_FAILURE
                raise
            await app.refresh()
            return await browse_history(app)

        handler = _HANDLERS[args.cmd]
        return await handler(app, args)
    finally:
        await app.aclose()


_HANDLERS = {
    "summarize": handle_summarize,
    "history": handle_history,
    "delete": handle_delete,
    "whoami": handle_whoami,
    "logout": handle_logout,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ai-summarizer",
        description="Summarize text with an AI model and browse your saved summaries.",
    )
    p.add_argument(
        "--config",
        type=Path,
        default=get_default_config_path(),
        help="YAML config file (default: ~/.config/ai-summarizer/config.yaml)",
    )
    p.add_argument("--backend-url", help="Base URL of the summaries backend")
    p.add_argument("--session", help="Session cookie sent to the backend, e.g. 'connect.sid=...'")
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    p_summarize = sub.add_parser("summarize", help="Summarize text and save it to your history")
    p_summarize.add_argument("text", nargs="?", help="Text to summarize; '-' or omitted reads stdin")
    p_summarize.add_argument("-f", "--file", type=Path, help="Read the text to summarize from a file")
    p_summarize.add_argument(
        "--model",
        help=f"OpenRouter model identifier to use (default: {DEFAULT_MODEL})",
    )
    p_summarize.add_argument(
        "--dry-run",
        action="store_true",
        help="Skip the AI call and save a placeholder summary instead",
    )

    p_history = sub.add_parser("history", help="List saved summaries")
    p_history.add_argument("-s", "--search", help="Only show summaries containing this text (case-insensitive)")
    p_history.add_argument("--max-length", type=int, help="Truncate displayed text to this length (default: 100)")

    p_browse = sub.add_parser("browse", help="Interactively browse and create summaries")
    p_browse.add_argument("--model", help="Model used for summaries created in the browser")
    p_browse.add_argument("--dry-run", action="store_true", help="Save placeholder summaries without calling the AI")
    p_browse.add_argument("--max-length", type=int, help="Truncate displayed text to this length (default: 100)")

    p_delete = sub.add_parser("delete", help="Request deletion of a saved summary (not available yet)")
    p_delete.add_argument("id", help="Summary identifier as shown by 'history'")

    sub.add_parser("whoami", help="Show the signed-in user")
    sub.add_parser("logout", help="Sign out of the backend")

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config, config_overrides(args))
    except SummarizerError as exc:
        parser.error(str(exc))
        return EXIT_FAILURE

    try:
        return asyncio.run(run_command(config, args))
    except SummarizerError as exc:
        print(advisory_for(exc), file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
