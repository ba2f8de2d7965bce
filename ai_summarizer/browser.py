from __future__ import annotations

import asyncio
import pydoc
from typing import Awaitable, Callable, List, Optional

from prompt_toolkit.application import Application, run_in_terminal
from prompt_toolkit.data_structures import Point
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, ScrollOffsets, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import D
from prompt_toolkit.styles import Style

from .app import SubmissionPendingError, SummarizerApp, advisory_for
from .summaries import HistoryRow, HistoryView, SummarizerError


class HistoryBrowser:
    """Interactive history browser backed by prompt_toolkit."""

    PAGE_JUMP = 10

    def __init__(self, app: SummarizerApp) -> None:
        self.app = app
        self.view: HistoryView = app.history_view()
        self.selected_index = 0
        self.status: str = self.view.empty_message() or self.view.count_line()
        self._rows: List[HistoryRow] = self.view.rows()
        self._ui: Optional[Application] = None
        self._active_task: Optional["asyncio.Task[None]"] = None

    def _refresh_rows(self) -> None:
        self._rows = self.view.rows()
        if self._rows:
            self.selected_index = min(self.selected_index, len(self._rows) - 1)
        else:
            self.selected_index = 0
        if self._ui:
            self._ui.invalidate()

    def _current_row(self) -> Optional[HistoryRow]:
        if not self._rows:
            return None
        index = min(max(self.selected_index, 0), len(self._rows) - 1)
        return self._rows[index]

    def _set_status(self, text: str) -> None:
        self.status = text
        if self._ui:
            self._ui.invalidate()

    # ---- Layout helpers -------------------------------------------------
    def _header_fragment(self) -> list[tuple[str, str]]:
        user = self.app.session.user
        greeting = f"Welcome, {user.display_name}" if user else ""
        search = f" | search: {self.view.search_term!r}" if self.view.search_term else ""
        text = f"AI Summarizer | {greeting} | model: {self.app.model}{search}"
        return [("class:history.header", text)]

    def _entry_fragments(self) -> list[tuple[str, str]]:
        message = self.view.empty_message()
        if message:
            return [("class:history", message)]

        fragments: list[tuple[str, str]] = []
        for idx, row in enumerate(self._rows):
            style = "class:history.selected" if idx == self.selected_index else "class:history"
            line = f"{row.created}  {_one_line(row.input_display)}  [{row.model_used}]"
            fragments.append((style, line))
            if idx != len(self._rows) - 1:
                fragments.append(("", "\n"))
        return fragments

    def _detail_fragments(self) -> list[tuple[str, str]]:
        lines = [self.view.count_line()]
        if self.app.summary:
            lines.append(f"Latest summary: {self.app.summary}")
        row = self._current_row()
        if row is not None:
            lines.extend(
                [
                    f"Id: {row.record_id} | Created: {row.created} | Model: {row.model_used}",
                    f"Input: {row.input_title}",
                    f"Summary: {row.summary_title}",
                ]
            )
        return [("class:detail", "\n".join(lines))]

    def _instructions_fragment(self) -> list[tuple[str, str]]:
        text = (
            "Up/Down navigate | PgUp/PgDn jump | Enter view | n new summary | "
            "/ search | m model | r refresh | d delete | q quit"
        )
        return [("class:instructions", text)]

    def _status_fragment(self) -> list[tuple[str, str]]:
        return [("class:status", self.status)]

    # ---- Actions --------------------------------------------------------
    def _handle_view(self) -> None:
        row = self._current_row()
        if row is None:
            self._set_status("No summary selected.")
            return
        text = (
            f"Created: {row.created}\nModel: {row.model_used}\n\n"
            f"Input\n-----\n{row.input_title}\n\nSummary\n-------\n{row.summary_title}\n"
        )

        def display() -> None:  # pragma: no cover - interactive
            pydoc.pager(text)

        run_in_terminal(display)

    def _handle_delete(self) -> None:
        row = self._current_row()
        if row is None:
            self._set_status("No summary selected.")
            return
        self.app.delete(row.record_id)
        self._set_status(f"Delete is not available yet; summary {row.record_id} was kept.")

    def _handle_search(self) -> None:
        def task() -> None:  # pragma: no cover - interactive
            try:
                term = input(f"Search [{self.view.search_term}]: ")
            except (KeyboardInterrupt, EOFError):
                return
            self.apply_search(term)

        run_in_terminal(task)

    def _handle_model(self) -> None:
        def task() -> None:  # pragma: no cover - interactive
            try:
                model = input(f"Model [{self.app.model}]: ").strip()
            except (KeyboardInterrupt, EOFError):
                return
            if model:
                self.app.model = model
                self.status = f"Using model {model}"

        run_in_terminal(task)

    def apply_search(self, term: str) -> None:
        self.view.search_term = term
        self.selected_index = 0
        self._refresh_rows()
        self._set_status(self.view.empty_message() or self.view.count_line())

    def _start_task(self, label: str, work: Callable[[], Awaitable[None]]) -> None:
        if self._active_task and not self._active_task.done():
            self._set_status("Summary generation already in progress.")
            return
        if self._ui is None:  # pragma: no cover - defensive
            return

        self._set_status(f"{label}...")

        async def worker() -> None:
            try:
                await work()
            except SubmissionPendingError as exc:
                self.status = str(exc)
            except SummarizerError as exc:
                self.status = advisory_for(exc)
            finally:
                self._active_task = None
                self._refresh_rows()

        self._active_task = self._ui.create_background_task(worker())

    async def summarize_text(self, text: str) -> None:
        result = await self.app.submit(text)
        if result.skipped:
            self.status = "Nothing to summarize."
            return
        if result.advisory:
            self.status = result.advisory
            return
        # The service already scheduled a reload; wait for it so the list is current.
        await self.app.history.drain()
        self.selected_index = 0
        self.status = f"Summary saved ({self.app.model})."

    async def refresh(self) -> None:
        await self.app.refresh()
        self.status = self.view.empty_message() or self.view.count_line()

    def _handle_new_summary(self) -> None:
        async def work() -> None:
            text = await run_in_terminal(_prompt_for_text)
            if text is None:
                self.status = "Summary cancelled."
                return
            await self.summarize_text(text)

        self._start_task("Summarizing", work)

    # ---- Key bindings ---------------------------------------------------
    def _build_key_bindings(self) -> KeyBindings:
        kb = KeyBindings()

        @kb.add("up")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._move_selection(-1)

        @kb.add("down")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._move_selection(1)

        @kb.add("pageup")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._move_selection(-self.PAGE_JUMP)

        @kb.add("pagedown")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._move_selection(self.PAGE_JUMP)

        @kb.add("home")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._set_selection(0)

        @kb.add("end")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            if self._rows:
                self._set_selection(len(self._rows) - 1)

        @kb.add("enter")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._handle_view()

        @kb.add("n")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._handle_new_summary()

        @kb.add("/")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._handle_search()

        @kb.add("m")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._handle_model()

        @kb.add("r")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._start_task("Refreshing", self.refresh)

        @kb.add("d")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            self._handle_delete()

        @kb.add("q")
        @kb.add("Q")
        @kb.add("escape")
        @kb.add("c-c")
        def _(event) -> None:  # pragma: no cover - interactive behaviour
            event.app.exit(result=0)

        return kb

    # ---- Selection helpers ----------------------------------------------
    def _move_selection(self, delta: int) -> None:
        if not self._rows:
            return
        new_index = max(0, min(len(self._rows) - 1, self.selected_index + delta))
        self._set_selection(new_index)

    def _set_selection(self, index: int) -> None:
        if not self._rows or index == self.selected_index:
            return
        self.selected_index = index
        if self._ui is not None:
            self._ui.invalidate()

    # ---- Public API -----------------------------------------------------
    def build_application(self) -> Application:
        def cursor_position() -> Point:
            if not self._rows:
                return Point(0, 0)
            index = min(max(self.selected_index, 0), len(self._rows) - 1)
            return Point(0, index)

        header_window = Window(
            content=FormattedTextControl(self._header_fragment, focusable=False),
            height=1,
            always_hide_cursor=True,
        )
        body_window = Window(
            content=FormattedTextControl(
                self._entry_fragments,
                focusable=True,
                get_cursor_position=cursor_position,
            ),
            height=D(min=3),
            wrap_lines=False,
            always_hide_cursor=True,
            scroll_offsets=ScrollOffsets(top=2, bottom=2),
        )
        detail_window = Window(
            content=FormattedTextControl(self._detail_fragments, focusable=False),
            height=D(min=4),
            wrap_lines=True,
            always_hide_cursor=True,
        )
        instructions_window = Window(
            content=FormattedTextControl(self._instructions_fragment),
            height=1,
            always_hide_cursor=True,
        )
        status_window = Window(
            content=FormattedTextControl(self._status_fragment),
            height=1,
            always_hide_cursor=True,
        )

        layout = Layout(
            HSplit(
                [
                    header_window,
                    body_window,
                    Window(height=1, char="-", always_hide_cursor=True),
                    detail_window,
                    Window(height=1, char="-", always_hide_cursor=True),
                    instructions_window,
                    status_window,
                ]
            )
        )

        style = Style.from_dict(
            {
                "history": "",
                "history.selected": "reverse",
                "history.header": "bold",
                "instructions": "fg:#888888",
                "status": "fg:#000000 bg:#e5e5e5",
                "detail": "",
            }
        )

        self._ui = Application(
            layout=layout,
            key_bindings=self._build_key_bindings(),
            style=style,
            full_screen=True,
        )
        return self._ui

    async def run(self) -> int:
        ui = self.build_application()
        try:
            result = await ui.run_async()
        finally:
            if self._active_task and not self._active_task.done():
                self._active_task.cancel()
        return 0 if result is None else result


def _one_line(text: str) -> str:
    return " ".join(text.split())


END_OF_TEXT = "."


def read_text_block(read_line: Callable[[], str]) -> Optional[str]:
    """Collect lines until EOF or a line holding only ``END_OF_TEXT``.

    Blank lines are kept as paragraph breaks. Returns ``None`` when the
    user cancels with Ctrl-C or enters nothing.
    """
    lines: List[str] = []
    while True:
        try:
            line = read_line()
        except EOFError:
            break
        except KeyboardInterrupt:
            return None
        if line.strip() == END_OF_TEXT:
            break
        lines.append(line)
    text = "\n".join(lines).strip("\n")
    return text or None


def _prompt_for_text() -> Optional[str]:  # pragma: no cover - interactive
    print(f"Enter the text to summarize. Finish with a line containing only '{END_OF_TEXT}' or Ctrl-D.")
    return read_text_block(input)


async def browse_history(app: SummarizerApp) -> int:
    browser = HistoryBrowser(app)
    return await browser.run()
