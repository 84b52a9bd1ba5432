#!/usr/bin/env python3
"""
Embedded modal text editor.

Three modes:
- Normal: motions, vim-style editing keys, session keys (navigate, quit)
- Insert: typing with auto-pairs and indentation
- Command: an accumulating `:` command line parsed into Actions
"""

from .state import (
    EditorMode,
    Direction,
    Unit,
    Position,
    Selection,
    Buffer,
)
from .commands import Action, ActionKind, parse_command, get_command_help
from .core import EditorCore
from .keys import Key

__all__ = [
    'EditorMode',
    'Direction',
    'Unit',
    'Position',
    'Selection',
    'Buffer',
    'Action',
    'ActionKind',
    'parse_command',
    'get_command_help',
    'EditorCore',
    'Key',
]
