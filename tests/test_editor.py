#!/usr/bin/env python3
"""
Test suite for the modal editor: command parsing, mode transitions,
motions, editing operations and undo.
"""

import pytest

from stepwise.editor import (
    Action,
    ActionKind,
    Direction,
    EditorCore,
    EditorMode,
    Key,
    Position,
    Unit,
    get_command_help,
    parse_command,
)
from stepwise.editor.commands import COMMANDS
from stepwise.editor.history import MAX_UNDO_HISTORY
from stepwise.editor.keys import BACKSPACE, ENTER, ESCAPE, TAB, keys_for
from stepwise.editor.text import column_of, grapheme_len, graphemes, offset_of


def feed(editor, *names):
    """Press keys by name, returning the last action produced"""
    action = None
    for name in names:
        result = editor.handle_key(Key(name))
        if result is not None:
            action = result
    return action


class TestCommandParsing:
    """Tests for the `:` command interpreter"""

    @pytest.mark.parametrize('text', ['', ' ', 'wat', 'w q', 'Q', '::', 'q!!', 'héllo', '\x00'])
    def test_unrecognized_is_unknown(self, text):
        """Test any unrecognized string becomes UNKNOWN carrying the text"""
        action = parse_command(text)
        assert action.kind == ActionKind.UNKNOWN
        assert action.text == text

    @pytest.mark.parametrize('alias,name', [
        ('h', 'hint'), ('s', 'solution'), ('sol', 'solution'),
        ('n', 'next'), ('p', 'prev'), ('r', 'reload'), ('x', 'wq'),
    ])
    def test_aliases_match_long_names(self, alias, name):
        """Test shorthands map to the same action as the full command"""
        assert parse_command(alias) == parse_command(name)

    def test_quit_variants(self):
        """Test q, q! and wq"""
        assert parse_command('q') == Action(ActionKind.QUIT)
        assert parse_command('q!') == Action(ActionKind.QUIT, force=True)
        assert parse_command('wq').kind == ActionKind.SAVE_AND_QUIT

    def test_surrounding_whitespace_ignored(self):
        """Test padding around a command is trimmed"""
        assert parse_command('  w ').kind == ActionKind.SAVE

    def test_every_command_parses_to_itself(self):
        """Test each table entry and alias resolves to its own action"""
        for name, spec in COMMANDS.items():
            for alias in [name] + spec['aliases']:
                assert parse_command(alias) == spec['action']

    def test_help_lists_all_commands(self):
        """Test the help text mentions every command"""
        text = get_command_help()
        for name in COMMANDS:
            assert f":{name}" in text
        assert 'hint' in get_command_help('hint')


class TestModes:
    """Tests for the Normal/Insert/Command state machine"""

    def test_starts_in_normal(self):
        """Test a new editor is in normal mode"""
        assert EditorCore('abc').mode == EditorMode.NORMAL

    def test_insert_and_command_only_from_normal(self):
        """Test insert cannot jump straight to command and vice versa"""
        editor = EditorCore('abc')
        assert editor.set_mode(EditorMode.INSERT)
        assert not editor.set_mode(EditorMode.COMMAND)
        assert editor.mode == EditorMode.INSERT

        assert editor.set_mode(EditorMode.NORMAL)
        assert editor.set_mode(EditorMode.COMMAND)
        assert not editor.set_mode(EditorMode.INSERT)

    def test_command_string_cleared_on_entry_and_exit(self):
        """Test the command buffer starts and ends empty"""
        editor = EditorCore('abc')
        feed(editor, ':', 'w')
        assert editor.command == 'w'
        feed(editor, ESCAPE)
        assert editor.mode == EditorMode.NORMAL
        assert editor.command == ''
        feed(editor, ':')
        assert editor.command == ''

    def test_enter_returns_parsed_action(self):
        """Test Enter in command mode yields the action and returns to normal"""
        editor = EditorCore('abc')
        action = feed(editor, ':', 'h', 'i', 'n', 't', ENTER)
        assert action.kind == ActionKind.SHOW_HINT
        assert editor.mode == EditorMode.NORMAL
        assert feed(editor, ':', 'h', ENTER) == action

    def test_backspace_on_empty_command_leaves(self):
        """Test deleting the last command character exits command mode"""
        editor = EditorCore('abc')
        feed(editor, ':', 'w', BACKSPACE)
        assert editor.mode == EditorMode.NORMAL

    def test_session_keys(self):
        """Test normal-mode keys that act on the session"""
        editor = EditorCore('abc')
        assert feed(editor, 'q').kind == ActionKind.QUIT
        assert feed(editor, 'n').kind == ActionKind.NEXT
        assert feed(editor, 'p').kind == ActionKind.PREVIOUS
        assert feed(editor, 's').kind == ActionKind.TOGGLE_SOLUTION
        assert feed(editor, 'J').amount > 0
        assert feed(editor, 'K').amount < 0


class TestCursor:
    """Tests for cursor motion and clamping"""

    @pytest.mark.parametrize('line,col', [(-5, -5), (0, 100), (100, 0), (100, 100), (1, 3)])
    @pytest.mark.parametrize('direction', list(Direction))
    @pytest.mark.parametrize('unit', list(Unit))
    def test_motion_always_in_bounds(self, line, col, direction, unit):
        """Test every motion from any position lands inside the buffer"""
        editor = EditorCore('first line\n\nthird\n')
        editor.buffer.cursor = Position(line, col)
        editor.move_cursor(direction, unit)
        row, column = editor.cursor
        assert 0 <= row < len(editor.lines)
        assert 0 <= column <= max(grapheme_len(editor.lines[row]) - 1, 0)

    def test_insert_mode_allows_end_of_line(self):
        """Test insert mode may sit just past the last character"""
        editor = EditorCore('abc')
        editor.set_mode(EditorMode.INSERT)
        editor.move_cursor(Direction.RIGHT, Unit.LINE)
        assert editor.cursor == Position(0, 3)

    def test_right_wraps_to_next_line(self):
        """Test moving right from the last column continues on the next line"""
        editor = EditorCore('ab\ncd')
        editor.move_cursor(Direction.RIGHT, count=2)
        assert editor.cursor == Position(1, 0)

    def test_word_motions(self):
        """Test w and b"""
        editor = EditorCore('let x = 5;')
        feed(editor, 'w')
        assert editor.cursor == Position(0, 4)
        feed(editor, 'w')
        assert editor.cursor == Position(0, 6)
        feed(editor, 'b')
        assert editor.cursor == Position(0, 4)

    def test_first_and_last_line(self):
        """Test gg and G"""
        editor = EditorCore('a\nb\nc')
        feed(editor, 'G')
        assert editor.cursor.line == 2
        feed(editor, 'g', 'g')
        assert editor.cursor.line == 0

    def test_bracket_matching(self):
        """Test % jumps between matching brackets"""
        editor = EditorCore('f(a, (b))')
        editor.buffer.cursor = Position(0, 1)
        feed(editor, '%')
        assert editor.cursor == Position(0, 8)
        feed(editor, '%')
        assert editor.cursor == Position(0, 1)

    def test_columns_count_graphemes(self):
        """Test a combining sequence is one cursor column"""
        line = 'e\u0301x'
        assert graphemes(line) == ['e\u0301', 'x']
        assert offset_of(line, 1) == 2
        assert column_of(line, 2) == 1
        assert column_of(line, 1) == 0
        editor = EditorCore(line)
        editor.move_cursor(Direction.RIGHT)
        assert editor.cursor == Position(0, 1)
        assert editor.char_at_cursor() == 'x'


class TestEditing:
    """Tests for editing operations"""

    def test_insert_marks_dirty(self):
        """Test typing marks the buffer dirty and save clears it"""
        editor = EditorCore('abc\n')
        feed(editor, 'i', 'x', ESCAPE)
        assert editor.serialize() == 'xabc\n'
        assert editor.dirty
        editor.mark_saved()
        assert not editor.dirty

    def test_load_and_serialize(self):
        """Test text round-trips, including a missing final newline"""
        for text in ['', 'a', 'a\n', 'a\n\nb\n', '\n']:
            assert EditorCore(text).serialize() == text

    def test_delete_range_either_order(self):
        """Test delete_range accepts reversed and out-of-range positions"""
        editor = EditorCore('hello\nworld')
        removed = editor.delete_range(Position(1, 2), Position(0, 3))
        assert removed == 'lo\nwo'
        assert editor.lines == ['helrld']
        assert editor.delete_range(Position(0, 4), Position(9, 99)) == 'ld'

    def test_enter_keeps_indent(self):
        """Test a new line inherits the current indentation"""
        editor = EditorCore('    foo')
        editor.set_mode(EditorMode.INSERT)
        editor.move_cursor(Direction.RIGHT, Unit.LINE)
        feed(editor, ENTER)
        assert editor.lines == ['    foo', '    ']
        assert editor.cursor == Position(1, 4)

    def test_tab_inserts_spaces(self):
        """Test Tab inserts four spaces"""
        editor = EditorCore('')
        feed(editor, 'i', TAB)
        assert editor.lines == ['    ']

    def test_auto_pair_and_skip(self):
        """Test brackets auto-close and typing the closer steps over it"""
        editor = EditorCore('')
        feed(editor, 'i', '(')
        assert editor.lines == ['()']
        assert editor.cursor == Position(0, 1)
        feed(editor, ')')
        assert editor.lines == ['()']
        assert editor.cursor == Position(0, 2)

    def test_backspace_joins_lines(self):
        """Test backspace at column 0 joins with the previous line"""
        editor = EditorCore('ab\ncd')
        editor.buffer.cursor = Position(1, 0)
        feed(editor, 'i', BACKSPACE)
        assert editor.lines == ['abcd']
        assert editor.cursor == Position(0, 2)

    def test_delete_line_and_paste(self):
        """Test dd yanks the line and P pastes it below"""
        editor = EditorCore('one\ntwo\nthree')
        feed(editor, 'd', 'd')
        assert editor.lines == ['two', 'three']
        feed(editor, 'P')
        assert editor.lines == ['two', 'one', 'three']

    def test_yank_line(self):
        """Test yy then P duplicates the line"""
        editor = EditorCore('one')
        feed(editor, 'y', 'y', 'P')
        assert editor.lines == ['one', 'one']

    def test_replace_char(self):
        """Test r replaces the character under the cursor"""
        editor = EditorCore('cat')
        feed(editor, 'r', 'b')
        assert editor.lines == ['bat']

    def test_word_text_objects(self):
        """Test diw and ciw"""
        editor = EditorCore('let value = 1;')
        editor.buffer.cursor = Position(0, 5)
        feed(editor, 'd', 'i', 'w')
        assert editor.lines == ['let  = 1;']

        editor = EditorCore('let value = 1;')
        editor.buffer.cursor = Position(0, 5)
        feed(editor, 'c', 'i', 'w')
        assert editor.mode == EditorMode.INSERT
        for key in keys_for('x'):
            editor.handle_key(key)
        assert editor.lines == ['let x = 1;']

    def test_open_line(self):
        """Test o and O enter insert mode on a new line"""
        editor = EditorCore('a')
        feed(editor, 'o')
        assert editor.lines == ['a', '']
        assert editor.mode == EditorMode.INSERT
        feed(editor, ESCAPE, 'O')
        assert editor.lines == ['a', '', '']

    def test_selection_delete(self):
        """Test v anchors a selection and d removes it"""
        editor = EditorCore('abcdef')
        editor.buffer.cursor = Position(0, 1)
        feed(editor, 'v', 'l', 'l', 'd')
        assert editor.lines == ['aef']
        assert editor.buffer.selection is None


class TestUndo:
    """Tests for undo/redo"""

    def test_undo_redo(self):
        """Test undo reverts one action and redo reapplies it"""
        editor = EditorCore('abc')
        feed(editor, 'x')
        feed(editor, 'x')
        assert editor.lines == ['c']
        feed(editor, 'u')
        assert editor.lines == ['bc']
        feed(editor, 'u')
        assert editor.lines == ['abc']
        assert editor.dirty
        editor.handle_key(Key.control('r'))
        assert editor.lines == ['bc']

    def test_undo_multiline_edit(self):
        """Test undoing a joined line restores both lines"""
        editor = EditorCore('ab\ncd')
        editor.delete_range(Position(0, 1), Position(1, 1))
        assert editor.lines == ['ad']
        editor.undo()
        assert editor.lines == ['ab', 'cd']

    def test_new_edit_clears_redo(self):
        """Test editing after undo discards the redo tail"""
        editor = EditorCore('abc')
        feed(editor, 'x', 'u', 'x')
        assert not editor.redo()

    def test_history_is_bounded(self):
        """Test only the most recent groups can be undone"""
        editor = EditorCore('x' * (MAX_UNDO_HISTORY + 20))
        for _ in range(MAX_UNDO_HISTORY + 10):
            feed(editor, 'x')
        undone = 0
        while editor.undo():
            undone += 1
        assert undone == MAX_UNDO_HISTORY

    def test_load_clears_history(self):
        """Test loading new content leaves nothing to undo"""
        editor = EditorCore('abc')
        feed(editor, 'x')
        editor.load('new')
        assert not editor.undo()
        assert not editor.dirty
