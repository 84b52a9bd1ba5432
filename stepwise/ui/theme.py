#!/usr/bin/env python3
"""
Colours, styles and icons for the terminal UI.
"""

import math

from rich.style import Style

from ..editor import EditorMode
from ..highlight import TokenClass


# Palette
PRIMARY = '#ff793f'
ACCENT = '#ffb86c'
BACKGROUND = '#1e1f29'
SUCCESS = '#50fa7b'
ERROR = '#ff5555'
INFO = '#8be9fd'
TEXT = '#f8f8f2'
TEXT_DIM = '#bdc1d7'
MUTED = '#6272a4'
SELECTION = '#44475a'

# Icons
ICON_DONE = '✓'
ICON_ERROR = '✗'
ICON_RUNNING = '⚡'
ICON_HINT = '💡'
ICON_SOLUTION = '📖'
ICON_INFO = 'ℹ'
ICON_MODIFIED = '●'
ICON_APP = '▲'

TOKEN_STYLES = {
    TokenClass.PLAIN: Style(color=TEXT),
    TokenClass.KEYWORD: Style(color='#ff79c6', bold=True),
    TokenClass.TYPE: Style(color=INFO),
    TokenClass.STRING: Style(color='#f1fa8c'),
    TokenClass.COMMENT: Style(color=MUTED, italic=True),
    TokenClass.NUMBER: Style(color='#bd93f9'),
    TokenClass.PUNCTUATION: Style(color=TEXT_DIM),
}

MODE_STYLES = {
    EditorMode.NORMAL: Style(color=BACKGROUND, bgcolor=INFO, bold=True),
    EditorMode.INSERT: Style(color=BACKGROUND, bgcolor=SUCCESS, bold=True),
    EditorMode.COMMAND: Style(color=BACKGROUND, bgcolor=ACCENT, bold=True),
}

CURSOR_COLORS = {
    EditorMode.NORMAL: PRIMARY,
    EditorMode.INSERT: SUCCESS,
    EditorMode.COMMAND: MUTED,
}


def pulse_color(elapsed: float) -> str:
    """
    Colour of the progress ball `elapsed` seconds into the session.
    One full pulse per second of wall-clock time, whatever the redraw rate.
    """
    phase = (int(elapsed * 1000) % 1000) / 1000.0
    brightness = (math.sin(phase * math.pi * 2.0) + 1.0) / 2.0
    green = int(80 + brightness * 100)
    blue = int(30 + brightness * 80)
    return f'#ff{green:02x}{blue:02x}'
