#!/usr/bin/env python3
"""
Editor core: buffer editing, cursor motion and the Normal/Insert/Command
mode state machine.

All text mutation funnels through two primitives (`_insert_raw` and
`_delete_raw`) so every change marks the buffer dirty and is recorded in the
undo history. Motions clamp instead of failing.
"""

from contextlib import contextmanager
from typing import List, Optional, Tuple

from loguru import logger

from .commands import Action, ActionKind, parse_command
from .history import EditGroup, EditHistory, EditOp, RawPos
from .state import Buffer, Direction, EditorMode, Position, Selection, Unit
from .text import column_of, graphemes, grapheme_len, is_word_char, offset_of
from . import keys as k


# chars that auto-pair when typed in insert mode
AUTO_PAIR = {'(': ')', '{': '}', '[': ']', '"': '"', "'": "'"}

# typed closers step over an identical char at the cursor
SKIP_CHARS = (')', '}', ']', '"', "'")

BRACKETS = {'(': (')', True), '[': (']', True), '{': ('}', True), '<': ('>', True),
            ')': ('(', False), ']': ('[', False), '}': ('{', False), '>': ('<', False)}

TAB_WIDTH = 4
OUTPUT_STEP = 5
OUTPUT_PAGE = 10

# Normal-mode keys handed to the session rather than the buffer
SESSION_KEYS = {
    'q': Action(ActionKind.QUIT),
    's': Action(ActionKind.TOGGLE_SOLUTION),
    'n': Action(ActionKind.NEXT),
    ']': Action(ActionKind.NEXT),
    'p': Action(ActionKind.PREVIOUS),
    '[': Action(ActionKind.PREVIOUS),
    'J': Action(ActionKind.SCROLL_OUTPUT, amount=OUTPUT_STEP),
    'K': Action(ActionKind.SCROLL_OUTPUT, amount=-OUTPUT_STEP),
    k.PAGE_DOWN: Action(ActionKind.SCROLL_OUTPUT, amount=OUTPUT_PAGE),
    k.PAGE_UP: Action(ActionKind.SCROLL_OUTPUT, amount=-OUTPUT_PAGE),
    k.HOME: Action(ActionKind.OUTPUT_HOME),
    k.END: Action(ActionKind.OUTPUT_END),
}

_PENDING_PREFIXES = ('d', 'y', 'r', 'c', 'g', 'da', 'di', 'ca', 'ci')


class EditorCore:
    """Owns the buffer, cursor, selection and editor mode"""

    def __init__(self, text: str = ''):
        self.buffer = Buffer.from_text(text)
        self.mode = EditorMode.NORMAL
        self.command = ''
        self.pending = ''
        self.yank: Optional[Tuple[str, bool]] = None   # (text, linewise)
        self.scroll_top = 0
        self.history = EditHistory()
        self._group: Optional[EditGroup] = None

    # -- lifecycle --

    def load(self, text: str):
        """Replace the buffer with fresh content and reset editor state"""
        self.buffer = Buffer.from_text(text)
        self.mode = EditorMode.NORMAL
        self.command = ''
        self.pending = ''
        self.scroll_top = 0
        self.history.clear()

    def serialize(self) -> str:
        return self.buffer.text()

    def mark_saved(self):
        self.buffer.dirty = False

    @property
    def dirty(self) -> bool:
        return self.buffer.dirty

    @property
    def cursor(self) -> Position:
        return self.buffer.cursor

    @property
    def lines(self) -> List[str]:
        return self.buffer.lines

    # -- mode state machine --

    def set_mode(self, mode: EditorMode) -> bool:
        """
        Switch modes. INSERT and COMMAND can only be entered from NORMAL and
        both only leave to NORMAL. Returns False for a refused transition.
        """
        current = self.mode
        if mode == current:
            return True
        if current != EditorMode.NORMAL and mode != EditorMode.NORMAL:
            return False

        if EditorMode.COMMAND in (current, mode):
            self.command = ''
        self.pending = ''
        self.mode = mode
        self._set_cursor(self.buffer.cursor)
        return True

    def apply_command(self, action: Action) -> Action:
        """Leave command mode and hand the parsed action to the caller"""
        self.set_mode(EditorMode.NORMAL)
        return action

    # -- raw primitives --

    def _insert_raw(self, pos: RawPos, text: str) -> RawPos:
        lines = self.buffer.lines
        row, offset = pos
        line = lines[row]
        before, after = line[:offset], line[offset:]
        parts = text.split('\n')
        if len(parts) == 1:
            lines[row] = before + text + after
        else:
            lines[row] = before + parts[0]
            lines[row + 1:row + 1] = parts[1:-1] + [parts[-1] + after]
        self.buffer.dirty = True
        return EditOp('insert', pos, text).end()

    def _delete_raw(self, start: RawPos, end: RawPos) -> str:
        lines = self.buffer.lines
        (srow, soff), (erow, eoff) = start, end
        if srow == erow:
            line = lines[srow]
            removed = line[soff:eoff]
            lines[srow] = line[:soff] + line[eoff:]
        else:
            first, last = lines[srow], lines[erow]
            removed = '\n'.join([first[soff:]] + lines[srow + 1:erow] + [last[:eoff]])
            lines[srow:erow + 1] = [first[:soff] + last[eoff:]]
        self.buffer.dirty = True
        return removed

    def _insert(self, pos: RawPos, text: str) -> RawPos:
        if not text:
            return pos
        end = self._insert_raw(pos, text)
        if self._group is not None:
            self._group.ops.append(EditOp('insert', pos, text))
        return end

    def _delete(self, start: RawPos, end: RawPos) -> str:
        if start >= end:
            return ''
        removed = self._delete_raw(start, end)
        if self._group is not None:
            self._group.ops.append(EditOp('delete', start, removed))
        return removed

    @contextmanager
    def _edit(self):
        """Group every primitive inside one user action for undo"""
        if self._group is not None:
            yield
            return
        self._group = EditGroup(cursor_before=self.buffer.cursor)
        try:
            yield
        finally:
            group, self._group = self._group, None
            if group.ops:
                group.cursor_after = self.buffer.cursor
                self.history.record(group)
                self.buffer.selection = None

    # -- coordinate helpers --

    def _raw(self, pos: Position) -> RawPos:
        return (pos.line, offset_of(self.buffer.lines[pos.line], pos.col))

    def _from_raw(self, pos: RawPos) -> Position:
        line = self.buffer.lines[pos[0]]
        return Position(pos[0], column_of(line, pos[1]))

    def _line_len(self, row: int) -> int:
        return grapheme_len(self.buffer.lines[row])

    def clamp(self, pos: Position) -> Position:
        """Clamp a position into the buffer for the current mode"""
        last = len(self.buffer.lines) - 1
        row = min(max(pos.line, 0), last)
        length = self._line_len(row)
        limit = length if self.mode == EditorMode.INSERT else max(length - 1, 0)
        return Position(row, min(max(pos.col, 0), limit))

    def _set_cursor(self, pos: Position):
        self.buffer.cursor = self.clamp(pos)
        if self.buffer.selection is not None:
            self.buffer.selection.head = self.buffer.cursor

    def _place_cursor(self, pos: Position):
        """Set the cursor allowing the end-of-line column, as insert mode does"""
        row = min(max(pos.line, 0), len(self.buffer.lines) - 1)
        self.buffer.cursor = Position(row, min(max(pos.col, 0), self._line_len(row)))
        if self.mode != EditorMode.INSERT:
            self.buffer.cursor = self.clamp(self.buffer.cursor)

    def char_at_cursor(self) -> str:
        row, col = self.buffer.cursor
        clusters = graphemes(self.buffer.lines[row])
        return clusters[col] if col < len(clusters) else ''

    # -- public editing operations --

    def insert_char(self, ch: str):
        """Insert text at the cursor and move past it"""
        with self._edit():
            end = self._insert(self._raw(self.buffer.cursor), ch)
            self._place_cursor(self._from_raw(end))

    def delete_range(self, start: Position, end: Position) -> str:
        """
        Delete the text between two positions (end exclusive, either order).
        Out-of-range positions are clamped; returns the removed text.
        """
        a, b = sorted((self._clamp_any(start), self._clamp_any(end)))
        with self._edit():
            removed = self._delete(self._raw(a), self._raw(b))
            self._place_cursor(a)
        return removed

    def _clamp_any(self, pos: Position) -> Position:
        row = min(max(pos.line, 0), len(self.buffer.lines) - 1)
        return Position(row, min(max(pos.col, 0), self._line_len(row)))

    def replace_char(self, ch: str):
        row, col = self.buffer.cursor
        if col >= self._line_len(row):
            return
        with self._edit():
            self._delete(self._raw(Position(row, col)), self._raw(Position(row, col + 1)))
            self._insert(self._raw(Position(row, col)), ch)
            self._set_cursor(Position(row, col))

    def backspace(self):
        row, col = self.buffer.cursor
        if col > 0:
            self.delete_range(Position(row, col - 1), Position(row, col))
        elif row > 0:
            self.delete_range(Position(row - 1, self._line_len(row - 1)), Position(row, 0))

    def delete_forward(self):
        row, col = self.buffer.cursor
        if col < self._line_len(row):
            self.delete_range(Position(row, col), Position(row, col + 1))
        elif row < len(self.buffer.lines) - 1:
            cursor = self.buffer.cursor
            self.delete_range(cursor, Position(row + 1, 0))

    def newline(self):
        """Split the line at the cursor, keeping the current indentation"""
        line = self.buffer.lines[self.buffer.cursor.line]
        indent = line[:len(line) - len(line.lstrip())]
        self.insert_char('\n' + indent)

    def open_line(self, below: bool = True):
        row = self.buffer.cursor.line
        with self._edit():
            if below:
                self._insert((row, len(self.buffer.lines[row])), '\n')
                target = Position(row + 1, 0)
            else:
                self._insert((row, 0), '\n')
                target = Position(row, 0)
        self.set_mode(EditorMode.INSERT)
        self._place_cursor(target)

    def delete_line(self) -> str:
        """Delete the cursor line (clearing it when it's the only one)"""
        lines = self.buffer.lines
        row = self.buffer.cursor.line
        text = lines[row]
        with self._edit():
            if len(lines) == 1:
                self._delete((0, 0), (0, len(text)))
            elif row < len(lines) - 1:
                self._delete((row, 0), (row + 1, 0))
            else:
                self._delete((row - 1, len(lines[row - 1])), (row, len(text)))
            self._set_cursor(Position(row, self.buffer.cursor.col))
        self.yank = (text, True)
        return text

    def yank_line(self):
        self.yank = (self.buffer.lines[self.buffer.cursor.line], True)

    def paste(self):
        if not self.yank:
            return
        text, linewise = self.yank
        row = self.buffer.cursor.line
        with self._edit():
            if linewise:
                self._insert((row, len(self.buffer.lines[row])), '\n' + text)
                self._set_cursor(Position(row + 1, 0))
            else:
                end = self._insert(self._raw(self.buffer.cursor), text)
                pos = self._from_raw(end)
                self._set_cursor(Position(pos.line, pos.col - 1))

    # -- selection --

    def toggle_selection(self):
        if self.buffer.selection is None:
            self.buffer.selection = Selection(self.buffer.cursor, self.buffer.cursor)
        else:
            self.buffer.selection = None

    def selected_text(self) -> str:
        start, end = self._selection_bounds()
        a, b = self._raw(start), self._raw(end)
        lines = self.buffer.lines
        if a[0] == b[0]:
            return lines[a[0]][a[1]:b[1]]
        return '\n'.join([lines[a[0]][a[1]:]] + lines[a[0] + 1:b[0]] + [lines[b[0]][:b[1]]])

    def _selection_bounds(self) -> Tuple[Position, Position]:
        start, end = self.buffer.selection.ordered()
        # selections include the grapheme under the head
        return start, self._clamp_any(Position(end.line, end.col + 1))

    def delete_selection(self) -> str:
        if self.buffer.selection is None:
            return ''
        text = self.selected_text()
        start, end = self._selection_bounds()
        self.buffer.selection = None
        self.delete_range(start, end)
        self.yank = (text, False)
        return text

    def yank_selection(self):
        if self.buffer.selection is not None:
            self.yank = (self.selected_text(), False)
            self.buffer.selection = None

    # -- undo --

    def undo(self) -> bool:
        group = self.history.undo()
        if group is None:
            return False
        for op in reversed(group.ops):
            if op.kind == 'insert':
                self._delete_raw(op.start, op.end())
            else:
                self._insert_raw(op.start, op.text)
        self.buffer.selection = None
        self._set_cursor(group.cursor_before)
        return True

    def redo(self) -> bool:
        group = self.history.redo()
        if group is None:
            return False
        for op in group.ops:
            if op.kind == 'insert':
                self._insert_raw(op.start, op.text)
            else:
                self._delete_raw(op.start, op.end())
        self.buffer.selection = None
        self._set_cursor(group.cursor_after or group.cursor_before)
        return True

    # -- motions --

    def move_cursor(self, direction: Direction, unit: Unit = Unit.CHAR, count: int = 1):
        """Move the cursor; the result is always clamped into the buffer"""
        self.buffer.cursor = self.clamp(self.buffer.cursor)
        for _ in range(max(count, 1)):
            self._set_cursor(self._motion(direction, unit))

    def _motion(self, direction: Direction, unit: Unit) -> Position:
        row, col = self.buffer.cursor
        last = len(self.buffer.lines) - 1

        if unit == Unit.BUFFER:
            if direction in (Direction.UP, Direction.LEFT):
                return Position(0, 0 if direction == Direction.LEFT else col)
            return Position(last, self._line_len(last) if direction == Direction.RIGHT else col)

        if unit == Unit.WORD:
            if direction in (Direction.RIGHT, Direction.DOWN):
                return self._word_forward(row, col)
            return self._word_backward(row, col)

        if direction == Direction.UP:
            return Position(row - 1, col)
        if direction == Direction.DOWN:
            return Position(row + 1, col)

        if unit == Unit.LINE:
            return Position(row, 0 if direction == Direction.LEFT else self._line_len(row))

        limit = self.clamp(Position(row, self._line_len(row))).col
        if direction == Direction.LEFT:
            if col > 0:
                return Position(row, col - 1)
            if row > 0:
                return Position(row - 1, self._line_len(row - 1))
            return Position(row, col)
        if col < limit:
            return Position(row, col + 1)
        if row < last:
            return Position(row + 1, 0)
        return Position(row, col)

    def _first_non_blank(self, row: int) -> int:
        clusters = graphemes(self.buffer.lines[row])
        col = 0
        while col < len(clusters) and not is_word_char(clusters[col]):
            col += 1
        return col

    def _word_forward(self, row: int, col: int) -> Position:
        clusters = graphemes(self.buffer.lines[row])
        while col < len(clusters) and is_word_char(clusters[col]):
            col += 1
        while col < len(clusters) and not is_word_char(clusters[col]):
            col += 1
        if col >= len(clusters) and row < len(self.buffer.lines) - 1:
            return Position(row + 1, self._first_non_blank(row + 1))
        return Position(row, col)

    def _word_backward(self, row: int, col: int) -> Position:
        if col == 0 and row > 0:
            row -= 1
            col = self._line_len(row)
        clusters = graphemes(self.buffer.lines[row])
        col = max(col - 1, 0)
        while col > 0 and (col >= len(clusters) or not is_word_char(clusters[col])):
            col -= 1
        while col > 0 and is_word_char(clusters[col - 1]):
            col -= 1
        return Position(row, col)

    def find_matching_bracket(self) -> Optional[Position]:
        """Position of the bracket matching the one under the cursor"""
        here = self.char_at_cursor()
        if here not in BRACKETS:
            return None
        partner, forward = BRACKETS[here]
        depth = 0
        row, col = self.buffer.cursor
        rows = range(row, len(self.buffer.lines)) if forward else range(row, -1, -1)
        for r in rows:
            clusters = graphemes(self.buffer.lines[r])
            if r == row:
                cols = range(col, len(clusters)) if forward else range(col, -1, -1)
            else:
                cols = range(len(clusters)) if forward else range(len(clusters) - 1, -1, -1)
            for c in cols:
                if clusters[c] == here:
                    depth += 1
                elif clusters[c] == partner:
                    depth -= 1
                    if depth == 0:
                        return Position(r, c)
        return None

    # -- text objects --

    def _word_bounds(self, around: bool) -> Optional[Tuple[int, int]]:
        row, col = self.buffer.cursor
        clusters = graphemes(self.buffer.lines[row])
        if not clusters or col >= len(clusters):
            return None
        start = end = col
        while start > 0 and is_word_char(clusters[start - 1]):
            start -= 1
        while end < len(clusters) and is_word_char(clusters[end]):
            end += 1
        if around:
            word_end = end
            while end < len(clusters) and not is_word_char(clusters[end]):
                end += 1
            if end == word_end:
                while start > 0 and not is_word_char(clusters[start - 1]):
                    start -= 1
        return start, end

    def delete_word_object(self, around: bool) -> Optional[str]:
        bounds = self._word_bounds(around)
        if bounds is None:
            return None
        row = self.buffer.cursor.line
        removed = self.delete_range(Position(row, bounds[0]), Position(row, bounds[1]))
        self.yank = (removed, False)
        return removed

    # -- viewport --

    def scroll_into_view(self, height: int):
        """Keep the cursor line inside a window of `height` rows"""
        height = max(height, 1)
        row = self.buffer.cursor.line
        if row < self.scroll_top:
            self.scroll_top = row
        elif row >= self.scroll_top + height:
            self.scroll_top = row - height + 1
        self.scroll_top = max(0, min(self.scroll_top, len(self.buffer.lines) - 1))

    # -- key handling --

    def handle_key(self, key: k.Key) -> Optional[Action]:
        """
        Feed one key press to the editor. Returns an Action when the key
        asks for something beyond the buffer (a command, navigation, quit).
        """
        if self.mode == EditorMode.INSERT:
            self._insert_key(key)
            return None
        if self.mode == EditorMode.COMMAND:
            return self._command_key(key)
        return self._normal_key(key)

    def _command_key(self, key: k.Key) -> Optional[Action]:
        if key.name == k.ENTER:
            return self.apply_command(parse_command(self.command))
        if key.name == k.ESCAPE:
            self.set_mode(EditorMode.NORMAL)
        elif key.name == k.BACKSPACE:
            self.command = self.command[:-1]
            if not self.command:
                self.set_mode(EditorMode.NORMAL)
        elif key.char:
            self.command += key.char
        return None

    def _insert_key(self, key: k.Key):
        if key.ctrl:
            if key.name == 'z':
                self.undo()
            elif key.name == 'y':
                self.redo()
            return

        name = key.name
        if name == k.ESCAPE:
            self.set_mode(EditorMode.NORMAL)
        elif name == k.ENTER:
            self.newline()
        elif name == k.TAB:
            self.insert_char(' ' * TAB_WIDTH)
        elif name == k.BACKSPACE:
            self.backspace()
        elif name == k.DELETE:
            self.delete_forward()
        elif name in (k.LEFT, k.RIGHT, k.UP, k.DOWN):
            self.move_cursor(Direction(name))
        elif name == k.HOME:
            self.move_cursor(Direction.LEFT, Unit.LINE)
        elif name == k.END:
            self.move_cursor(Direction.RIGHT, Unit.LINE)
        elif key.char:
            self._type_char(key.char)

    def _type_char(self, ch: str):
        if ch in SKIP_CHARS and self.char_at_cursor() == ch:
            self.move_cursor(Direction.RIGHT)
            return
        with self._edit():
            if ch in AUTO_PAIR:
                self.insert_char(ch + AUTO_PAIR[ch])
                self._place_cursor(Position(self.cursor.line, self.cursor.col - 1))
            else:
                self.insert_char(ch)

    def _pending_key(self, key: k.Key) -> bool:
        """Resolve a multi-key sequence. Returns True when the key was consumed."""
        pending, self.pending = self.pending, ''
        ch = key.char
        if not ch:
            return False

        if pending == 'r':
            self.replace_char(ch)
        elif pending == 'd' and ch == 'd':
            self.delete_line()
        elif pending == 'y' and ch == 'y':
            self.yank_line()
        elif pending == 'g' and ch == 'g':
            self.move_cursor(Direction.UP, Unit.BUFFER)
        elif pending in ('d', 'c') and ch in ('a', 'i'):
            self.pending = pending + ch
        elif pending in ('da', 'di', 'ca', 'ci') and ch == 'w':
            self.delete_word_object(around=pending[1] == 'a')
            if pending[0] == 'c':
                self.set_mode(EditorMode.INSERT)
        else:
            logger.debug(f"Dropped key sequence {pending + ch!r}")
        return True

    def _normal_key(self, key: k.Key) -> Optional[Action]:
        if self.pending and self._pending_key(key):
            return None

        if key.ctrl:
            if key.name == 'r':
                self.redo()
            return None

        name = key.name
        if name in SESSION_KEYS:
            return SESSION_KEYS[name]

        if name == ':':
            self.set_mode(EditorMode.COMMAND)
        elif name == 'i':
            self.set_mode(EditorMode.INSERT)
        elif name == 'a':
            self.set_mode(EditorMode.INSERT)
            self._place_cursor(Position(self.cursor.line, self.cursor.col + 1))
        elif name == 'A':
            self.set_mode(EditorMode.INSERT)
            self.move_cursor(Direction.RIGHT, Unit.LINE)
        elif name in ('h', k.LEFT):
            self.move_cursor(Direction.LEFT)
        elif name in ('l', k.RIGHT):
            self.move_cursor(Direction.RIGHT)
        elif name in ('k', k.UP):
            self.move_cursor(Direction.UP)
        elif name in ('j', k.DOWN):
            self.move_cursor(Direction.DOWN)
        elif name == '0':
            self.move_cursor(Direction.LEFT, Unit.LINE)
        elif name == '$':
            self.move_cursor(Direction.RIGHT, Unit.LINE)
        elif name == 'w':
            self.move_cursor(Direction.RIGHT, Unit.WORD)
        elif name == 'b':
            self.move_cursor(Direction.LEFT, Unit.WORD)
        elif name == 'G':
            self.move_cursor(Direction.DOWN, Unit.BUFFER)
        elif name == '%':
            match = self.find_matching_bracket()
            if match is not None:
                self._set_cursor(match)
        elif name == 'x':
            self.delete_forward_in_line()
        elif name == 'o':
            self.open_line(below=True)
        elif name == 'O':
            self.open_line(below=False)
        elif name == 'P':
            self.paste()
        elif name == 'u':
            self.undo()
        elif name == 'v':
            self.toggle_selection()
        elif name == k.ESCAPE:
            self.buffer.selection = None
        elif name == 'd' and self.buffer.selection is not None:
            self.delete_selection()
        elif name == 'y' and self.buffer.selection is not None:
            self.yank_selection()
        elif name in _PENDING_PREFIXES:
            self.pending = name
        return None

    def delete_forward_in_line(self):
        row, col = self.buffer.cursor
        if col < self._line_len(row):
            self.delete_range(Position(row, col), Position(row, col + 1))
