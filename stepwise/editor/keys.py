#!/usr/bin/env python3
"""
Terminal-independent key events consumed by the editor.
"""

from dataclasses import dataclass

ENTER = 'enter'
ESCAPE = 'escape'
BACKSPACE = 'backspace'
DELETE = 'delete'
TAB = 'tab'
UP = 'up'
DOWN = 'down'
LEFT = 'left'
RIGHT = 'right'
HOME = 'home'
END = 'end'
PAGE_UP = 'pageup'
PAGE_DOWN = 'pagedown'


@dataclass(frozen=True)
class Key:
    """A key press: either a printable character or a named key"""
    name: str
    ctrl: bool = False

    @property
    def char(self) -> str:
        """The printable character, or '' for named/control keys"""
        if self.ctrl or len(self.name) != 1:
            return ''
        return self.name

    @classmethod
    def control(cls, letter: str) -> 'Key':
        return cls(letter.lower(), ctrl=True)


def keys_for(text: str):
    """Key presses for typing `text` literally (test and macro helper)"""
    return [Key(ENTER) if ch == '\n' else Key(ch) for ch in text]
