#!/usr/bin/env python3
"""
Frame rendering.

Turns a SessionState and the terminal size into a rich renderable. Nothing
here mutates the session; the only state kept between frames is the
per-file highlighter cache. Only the visible slice of a buffer is
highlighted, so the work per frame is bounded by the pane height.
"""

import os
import time
from typing import Dict, Optional, Sequence

from rich import box
from rich.align import Align
from rich.console import Group, RenderableType
from rich.layout import Layout as RichLayout
from rich.panel import Panel
from rich.style import Style
from rich.text import Text

from ..editor import EditorMode, get_command_help
from ..editor.text import graphemes, offset_of
from ..highlight import Highlighter, language_for_path
from ..session.state import OutputKind, SessionState, ViewMode
from . import theme
from .layout import Rect, compute_layout


OUTPUT_STYLES = {
    OutputKind.INFO: Style(color=theme.TEXT),
    OutputKind.RUNNING: Style(color=theme.ACCENT),
    OutputKind.SUCCESS: Style(color=theme.SUCCESS),
    OutputKind.ERROR: Style(color=theme.ERROR),
    OutputKind.HINT: Style(color=theme.ACCENT),
}

KEY_HINTS = "i: edit │ :c check │ :h hint │ s: solution │ [/]: nav │ :help │ q: quit"
COMMAND_HINTS = "Enter: run │ Esc: cancel"


def output_window(total: int, visible: int, scroll: int):
    """
    Clamp an output scroll offset for a pane showing `visible` lines.
    Returns (first line shown, title).
    """
    visible = max(visible, 0)
    max_scroll = max(total - visible, 0)
    pos = min(max(scroll, 0), max_scroll)
    if pos > 0:
        title = f" Output [{pos + min(visible, total)}/{total}] "
    else:
        title = " Output "
    return pos, title


def progress_line(done: int, total: int, width: int, elapsed: float) -> Text:
    """`━━━●━━━ 40%` with a ball whose colour pulses with wall-clock time"""
    bar_width = max(width - 10, 0)
    filled = (done * bar_width) // total if total else 0
    empty = max(bar_width - filled, 0)
    percent = (done * 100) // total if total else 0

    line = Text(' ')
    if filled:
        line.append('━' * filled, style=Style(color=theme.PRIMARY))
    line.append('●', style=Style(color=theme.pulse_color(elapsed), bold=True))
    if empty:
        line.append('━' * empty, style=Style(color=theme.MUTED))
    line.append(f" {percent}% ", style=Style(color=theme.SUCCESS if percent == 100 else theme.TEXT_DIM))
    return line


class FrameRenderer:
    """Builds one frame per call to `render`"""

    def __init__(self, language: Optional[str] = None):
        self.language = language
        self._highlighters: Dict[str, Highlighter] = {}

    def highlighter_for(self, path: str) -> Highlighter:
        if path not in self._highlighters:
            self._highlighters[path] = Highlighter(language_for_path(path, self.language))
        return self._highlighters[path]

    def render(self, state: SessionState, width: int, height: int,
               now: Optional[float] = None) -> RenderableType:
        """Compose the whole screen"""
        now = time.monotonic() if now is None else now
        layout = compute_layout(width, height, split=state.view == ViewMode.SOLUTION)

        root = RichLayout(name='root')
        main = RichLayout(name='main', size=layout.editor.height)
        root.split_column(
            RichLayout(self.header(state), name='header', size=layout.header.height),
            main,
            RichLayout(self.output_pane(state, layout.output), name='output', size=layout.output.height),
            RichLayout(progress_line(state.done_count, state.total, width, now - state.started_at),
                       name='progress', size=layout.progress.height),
            RichLayout(self.status_line(state), name='status', size=layout.status.height),
        )

        if state.view == ViewMode.HELP:
            main.update(self.help_modal())
        elif layout.solution is not None:
            main.split_row(
                RichLayout(self.editor_pane(state, layout.editor), name='editor', size=layout.editor.width),
                RichLayout(self.solution_pane(state, layout.solution), name='solution'),
            )
        else:
            main.update(self.editor_pane(state, layout.editor))
        return root

    # -- header --

    def header(self, state: SessionState) -> Text:
        exercise = state.exercise
        name = os.path.basename(exercise.path)
        if state.editor.dirty:
            name += f" {theme.ICON_MODIFIED}"
        if state.progress.is_done(exercise.id):
            name_style = Style(color=theme.SUCCESS, bold=True, strike=True)
        else:
            name_style = Style(color=theme.TEXT, bold=True)
        sep = (" │ ", Style(color=theme.MUTED))

        return Text.assemble(
            (f" {theme.ICON_APP} STEPWISE", Style(color=theme.PRIMARY, bold=True)),
            sep,
            (name, name_style),
            sep,
            (f"Exercise {state.index + 1}/{state.total}", Style(color=theme.TEXT_DIM)),
            sep,
            (f"{state.done_count} done", Style(color=theme.SUCCESS, bold=True)),
            no_wrap=True,
            overflow='crop',
        )

    # -- editor and solution --

    def editor_pane(self, state: SessionState, rect: Rect) -> Panel:
        editor = state.editor
        rows = rect.inner().height
        top = editor.scroll_top
        body = self.code_lines(
            editor.lines, top, rows, state.exercise.path,
            cursor=editor.cursor if editor.mode != EditorMode.COMMAND else None,
            cursor_color=theme.CURSOR_COLORS[editor.mode],
            selection=editor.buffer.selection.ordered() if editor.buffer.selection else None,
        )
        active = state.view != ViewMode.HELP
        return Panel(
            body,
            title=Text(" Editor ", style=Style(color=theme.PRIMARY, bold=True)),
            title_align='left',
            box=box.ROUNDED,
            border_style=Style(color=theme.PRIMARY if active else theme.MUTED),
            padding=0,
        )

    def solution_pane(self, state: SessionState, rect: Rect) -> Panel:
        lines = (state.solution_text or '').split('\n')
        solution_path = state.exercise.solution_path or state.exercise.path
        body = self.code_lines(lines, 0, rect.inner().height, solution_path)
        return Panel(
            body,
            title=Text(f" {theme.ICON_SOLUTION} Solution ", style=Style(color=theme.SUCCESS, bold=True)),
            title_align='left',
            box=box.ROUNDED,
            border_style=Style(color=theme.SUCCESS),
            padding=0,
        )

    def code_lines(self, lines: Sequence[str], top: int, rows: int, path: str,
                   cursor=None, cursor_color: str = theme.PRIMARY, selection=None) -> Text:
        """Line-numbered, highlighted text for lines [top, top + rows)"""
        stop = min(top + max(rows, 0), len(lines))
        spans_by_line = self.highlighter_for(path).highlight_range(lines, top, stop)
        gutter = len(str(len(lines))) + 1

        out = Text(no_wrap=True, overflow='crop')
        for i, spans in enumerate(spans_by_line):
            row = top + i
            line = lines[row]
            if i:
                out.append('\n')
            out.append(f"{row + 1:>{gutter}} ", style=Style(color=theme.MUTED))
            base = len(out)
            out.append(line)
            for span in spans:
                out.stylize(theme.TOKEN_STYLES[span.token], base + span.start, base + span.end)

            if selection is not None:
                self._stylize_selection(out, base, line, row, selection)

            if cursor is not None and cursor.line == row:
                self._stylize_cursor(out, base, line, cursor.col, cursor_color)
        return out

    @staticmethod
    def _stylize_selection(out: Text, base: int, line: str, row: int, selection):
        start, end = selection
        if not start.line <= row <= end.line:
            return
        first = offset_of(line, start.col) if row == start.line else 0
        last = offset_of(line, end.col + 1) if row == end.line else len(line)
        if last > first:
            out.stylize(Style(bgcolor=theme.SELECTION), base + first, base + last)

    @staticmethod
    def _stylize_cursor(out: Text, base: int, line: str, col: int, color: str):
        style = Style(color=theme.BACKGROUND, bgcolor=color)
        clusters = graphemes(line)
        if col < len(clusters):
            start = offset_of(line, col)
            out.stylize(style, base + start, base + start + len(clusters[col]))
        else:
            out.append(' ', style=style)

    # -- footer --

    def output_pane(self, state: SessionState, rect: Rect) -> Panel:
        visible = rect.inner().height
        pos, title = output_window(len(state.output), visible, state.output_scroll)
        shown = state.output[pos:pos + visible]
        body = Text('\n'.join(shown), style=OUTPUT_STYLES[state.output_kind], no_wrap=True, overflow='crop')
        return Panel(
            body,
            title=Text(title, style=Style(color=theme.MUTED)),
            title_align='left',
            box=box.ROUNDED,
            border_style=Style(color=theme.MUTED),
            padding=0,
        )

    def status_line(self, state: SessionState) -> Text:
        editor = state.editor
        if editor.mode == EditorMode.COMMAND:
            label = f" :{editor.command} "
            hints = COMMAND_HINTS
        else:
            label = f" {editor.mode.value.upper()} "
            hints = KEY_HINTS

        line = Text(no_wrap=True, overflow='crop')
        line.append(label, style=theme.MODE_STYLES[editor.mode])
        line.append(' ')
        if state.running:
            line.append(f"{theme.ICON_RUNNING} ", style=Style(color=theme.ACCENT))
        if state.notice:
            line.append(state.notice, style=Style(color=theme.ERROR if state.notice_error else theme.SUCCESS))
        else:
            line.append(hints, style=Style(color=theme.TEXT_DIM))
        return line

    # -- help --

    def help_modal(self) -> RenderableType:
        body = Group(
            Text(get_command_help(), style=Style(color=theme.TEXT)),
            Text(''),
            Text("Press any key to close", style=Style(color=theme.MUTED, italic=True)),
        )
        panel = Panel(
            body,
            title=Text(" Help ", style=Style(color=theme.PRIMARY, bold=True)),
            box=box.ROUNDED,
            border_style=Style(color=theme.PRIMARY),
            expand=False,
        )
        return Align.center(panel, vertical='middle')
