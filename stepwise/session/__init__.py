#!/usr/bin/env python3
"""
Tutoring session: the shared state, the controller that owns it and the
event loop that feeds it.
"""

from .state import (
    ViewMode,
    OutputKind,
    KeyPressed,
    FileChanged,
    WatchFailed,
    RunFinished,
    Resized,
    SessionState,
)
from .controller import SessionController
from .loop import EventLoop

__all__ = [
    'ViewMode',
    'OutputKind',
    'KeyPressed',
    'FileChanged',
    'WatchFailed',
    'RunFinished',
    'Resized',
    'SessionState',
    'SessionController',
    'EventLoop',
]
