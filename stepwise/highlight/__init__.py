#!/usr/bin/env python3
"""
Syntax highlighting for the editor and solution panes.
"""

from .syntax import (
    TokenClass,
    ScanState,
    LineState,
    HighlightSpan,
    LanguageSpec,
    LineHighlight,
    Highlighter,
    highlight_line,
)
from .languages import LANGUAGES, language_for_path

__all__ = [
    'TokenClass',
    'ScanState',
    'LineState',
    'HighlightSpan',
    'LanguageSpec',
    'LineHighlight',
    'Highlighter',
    'highlight_line',
    'LANGUAGES',
    'language_for_path',
]
