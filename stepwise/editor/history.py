#!/usr/bin/env python3
"""
Bounded undo/redo history for the editor.

History is kept as a list of edit groups (one per user action), each a
sequence of primitive insert/delete operations. Undo applies the inverse of
each operation; nothing stores whole-buffer snapshots.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .state import Position


# don't grow without bound
MAX_UNDO_HISTORY = 100

# (line, code point offset) - raw buffer coordinates, unaffected by graphemes
RawPos = Tuple[int, int]


@dataclass(frozen=True)
class EditOp:
    """A primitive edit. `kind` is 'insert' or 'delete'."""
    kind: str
    start: RawPos
    text: str

    def end(self) -> RawPos:
        """Raw position just past `text` when it sits at `start`"""
        parts = self.text.split('\n')
        if len(parts) == 1:
            return (self.start[0], self.start[1] + len(self.text))
        return (self.start[0] + len(parts) - 1, len(parts[-1]))


@dataclass
class EditGroup:
    """Operations produced by a single user action"""
    cursor_before: Position
    ops: List[EditOp] = field(default_factory=list)
    cursor_after: Optional[Position] = None


class EditHistory:
    """Arena of edit groups plus an index of how many are applied"""

    def __init__(self, limit: int = MAX_UNDO_HISTORY):
        self.limit = limit
        self._groups: List[EditGroup] = []
        self._index = 0

    def record(self, group: EditGroup):
        """Append a group, discarding anything that was undone"""
        del self._groups[self._index:]
        self._groups.append(group)
        if len(self._groups) > self.limit:
            del self._groups[0]
        self._index = len(self._groups)

    def undo(self) -> Optional[EditGroup]:
        if self._index == 0:
            return None
        self._index -= 1
        return self._groups[self._index]

    def redo(self) -> Optional[EditGroup]:
        if self._index >= len(self._groups):
            return None
        group = self._groups[self._index]
        self._index += 1
        return group

    def clear(self):
        self._groups.clear()
        self._index = 0
