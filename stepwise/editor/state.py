#!/usr/bin/env python3
"""
State for the embedded modal editor.
Defines editor modes, cursor positions and the text buffer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple


class EditorMode(Enum):
    """Vim-style editor modes"""
    NORMAL = 'normal'
    INSERT = 'insert'
    COMMAND = 'command'


class Direction(Enum):
    """Cursor motion directions"""
    LEFT = 'left'
    RIGHT = 'right'
    UP = 'up'
    DOWN = 'down'


class Unit(Enum):
    """Granularity of a cursor motion"""
    CHAR = 'char'
    WORD = 'word'
    LINE = 'line'      # to line start/end for LEFT/RIGHT, one line for UP/DOWN
    BUFFER = 'buffer'  # to first/last line


class Position(NamedTuple):
    """A (line, column) pair; columns count graphemes"""
    line: int
    col: int


@dataclass
class Selection:
    """A range anchored at one position and extending to the cursor"""
    anchor: Position
    head: Position

    def ordered(self) -> Tuple[Position, Position]:
        """Return (start, end) with start <= end"""
        if self.anchor <= self.head:
            return self.anchor, self.head
        return self.head, self.anchor


@dataclass
class Buffer:
    """In-memory representation of one exercise's source text"""
    lines: List[str] = field(default_factory=lambda: [''])
    cursor: Position = Position(0, 0)
    selection: Optional[Selection] = None
    dirty: bool = False
    trailing_newline: bool = True

    @classmethod
    def from_text(cls, text: str) -> 'Buffer':
        """Build a clean buffer from file content"""
        lines = text.split('\n')
        trailing = text.endswith('\n')
        if trailing:
            lines.pop()
        if not lines:
            lines = ['']
        return cls(lines=lines, trailing_newline=trailing)

    def text(self) -> str:
        """Serialize the buffer back to file content"""
        content = '\n'.join(self.lines)
        return content + '\n' if self.trailing_newline else content
