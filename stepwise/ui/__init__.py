#!/usr/bin/env python3
"""
Terminal UI: pane layout, theme, frame rendering and the terminal adapter.

`render` and `terminal` are imported directly by their users; they depend
on the session package, which itself uses the layout defined here.
"""

from .layout import Rect, Layout, compute_layout

__all__ = [
    'Rect',
    'Layout',
    'compute_layout',
]
