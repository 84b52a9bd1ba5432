#!/usr/bin/env python3
"""
Command definitions and parser for the editor's `:` command line.

Parsing is total: every string maps to exactly one Action, with anything
unrecognized becoming an UNKNOWN action that carries the original text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class ActionKind(Enum):
    """Structured actions produced by the command interpreter"""
    SAVE = 'save'
    QUIT = 'quit'
    SAVE_AND_QUIT = 'save_and_quit'
    CHECK = 'check'
    NEXT = 'next'
    PREVIOUS = 'previous'
    TOGGLE_SOLUTION = 'toggle_solution'
    TOGGLE_AUTO_ADVANCE = 'toggle_auto_advance'
    TOGGLE_WATCH = 'toggle_watch'
    RELOAD = 'reload'
    RESET = 'reset'
    SHOW_HINT = 'show_hint'
    HELP = 'help'
    SCROLL_OUTPUT = 'scroll_output'
    OUTPUT_HOME = 'output_home'
    OUTPUT_END = 'output_end'
    UNKNOWN = 'unknown'


@dataclass(frozen=True)
class Action:
    """
    A parsed command or session-level key action.

    `force` only applies to QUIT, `text` to UNKNOWN and `amount` (lines,
    negative scrolls up) to SCROLL_OUTPUT.
    """
    kind: ActionKind
    force: bool = False
    text: str = ''
    amount: int = 0

    @classmethod
    def unknown(cls, text: str) -> 'Action':
        return cls(ActionKind.UNKNOWN, text=text)


COMMANDS = {
    'w': {
        'action': Action(ActionKind.SAVE),
        'aliases': [],
        'help': 'Save the exercise file',
    },
    'c': {
        'action': Action(ActionKind.CHECK),
        'aliases': [],
        'help': 'Save and run the toolchain on the exercise',
    },
    'hint': {
        'action': Action(ActionKind.SHOW_HINT),
        'aliases': ['h'],
        'help': 'Show the hint for this exercise',
    },
    'solution': {
        'action': Action(ActionKind.TOGGLE_SOLUTION),
        'aliases': ['s', 'sol'],
        'help': 'Toggle the solution view',
    },
    'next': {
        'action': Action(ActionKind.NEXT),
        'aliases': ['n'],
        'help': 'Go to the next exercise',
    },
    'prev': {
        'action': Action(ActionKind.PREVIOUS),
        'aliases': ['p'],
        'help': 'Go to the previous exercise',
    },
    'auto': {
        'action': Action(ActionKind.TOGGLE_AUTO_ADVANCE),
        'aliases': [],
        'help': 'Toggle auto-advance after a passing run',
    },
    'watch': {
        'action': Action(ActionKind.TOGGLE_WATCH),
        'aliases': [],
        'help': 'Toggle watching the exercise file for outside edits',
    },
    'reload': {
        'action': Action(ActionKind.RELOAD),
        'aliases': ['r'],
        'help': 'Reload the exercise from disk',
    },
    'reset': {
        'action': Action(ActionKind.RESET),
        'aliases': [],
        'help': 'Restore the original exercise text',
    },
    'help': {
        'action': Action(ActionKind.HELP),
        'aliases': [],
        'help': 'Show available commands and keys',
    },
    'q': {
        'action': Action(ActionKind.QUIT),
        'aliases': [],
        'help': 'Quit (refuses when there are unsaved changes)',
    },
    'q!': {
        'action': Action(ActionKind.QUIT, force=True),
        'aliases': [],
        'help': 'Quit without saving',
    },
    'wq': {
        'action': Action(ActionKind.SAVE_AND_QUIT),
        'aliases': ['x'],
        'help': 'Save and quit',
    },
}


def _build_lookup() -> Dict[str, Action]:
    lookup = {}
    for name, spec in COMMANDS.items():
        for alias in [name] + spec['aliases']:
            assert alias not in lookup, f"duplicate command alias: {alias}"
            lookup[alias] = spec['action']
    return lookup


_LOOKUP = _build_lookup()


def parse_command(command: str) -> Action:
    """Map a command string (without the leading ':') to an Action"""
    return _LOOKUP.get(command.strip(), Action.unknown(command))


NORMAL_KEYS = [
    ('i', 'Insert mode'),
    (':', 'Command mode'),
    ('h j k l', 'Move cursor'),
    ('w b 0 $', 'Word / line motions'),
    ('gg G %', 'First / last line, matching bracket'),
    ('x dd yy P', 'Delete char / line, yank, paste'),
    ('diw daw ciw caw', 'Word text objects'),
    ('o O r', 'Open line below / above, replace char'),
    ('v', 'Toggle selection anchor'),
    ('u Ctrl-R', 'Undo / redo'),
    ('s', 'Toggle solution'),
    ('n p ] [', 'Next / previous exercise'),
    ('J K PgUp PgDn', 'Scroll output'),
    ('Home End', 'Output top / bottom'),
    ('q', 'Quit'),
]


def get_command_help(command: Optional[str] = None) -> str:
    """Get help text for a command or all commands"""
    if command and command in COMMANDS:
        spec = COMMANDS[command]
        names = ', '.join(f":{n}" for n in [command] + spec['aliases'])
        return f"  {names}: {spec['help']}"

    groups = {
        'Exercise': ['w', 'c', 'hint', 'solution', 'reload', 'reset'],
        'Navigation': ['next', 'prev'],
        'Toggles': ['auto', 'watch'],
        'Session': ['help', 'q', 'q!', 'wq'],
    }

    lines: List[str] = ["Commands:", ""]
    for group, names in groups.items():
        lines.append(f"  {group}:")
        for name in names:
            spec = COMMANDS[name]
            label = '/'.join([name] + spec['aliases'])
            lines.append(f"    :{label:14} {spec['help']}")
        lines.append("")

    lines.append("Normal mode keys:")
    lines.append("")
    for keys, desc in NORMAL_KEYS:
        lines.append(f"    {keys:16} {desc}")
    return '\n'.join(lines)
