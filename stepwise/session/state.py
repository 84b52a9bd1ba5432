#!/usr/bin/env python3
"""
Session state and the events that drive it.

SessionState is the single point of mutable truth for a tutoring session.
Only the SessionController writes to it; the renderer reads it.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..editor import EditorCore, Key
from ..tutoring import ExerciseDescriptor, ProgressRecord, RunResult


class ViewMode(Enum):
    """What occupies the main area"""
    EDITOR = 'editor'
    SOLUTION = 'solution'      # editor and solution side by side
    HELP = 'help'              # modal over the editor, any key dismisses


class OutputKind(Enum):
    """Colouring of the output pane"""
    INFO = 'info'
    RUNNING = 'running'
    SUCCESS = 'success'
    ERROR = 'error'
    HINT = 'hint'


# -- events (the merged queue carries these) --

@dataclass(frozen=True)
class KeyPressed:
    key: Key


@dataclass(frozen=True)
class FileChanged:
    """Debounced out-of-band change to a watched exercise file"""
    path: str


@dataclass(frozen=True)
class WatchFailed:
    message: str


@dataclass(frozen=True)
class RunFinished:
    """A toolchain run completed; `generation` identifies which run"""
    exercise_id: str
    generation: int
    result: RunResult


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


# -- state --

@dataclass
class SessionState:
    """Everything the frame is drawn from"""
    exercise: ExerciseDescriptor
    index: int
    total: int
    editor: EditorCore
    progress: ProgressRecord
    run_result: Optional[RunResult] = None
    run_generation: int = 0                 # generation whose result we accept
    output: Tuple[str, ...] = ()
    output_kind: OutputKind = OutputKind.INFO
    output_scroll: int = 0
    notice: str = ''                        # one-line status message
    notice_error: bool = False
    view: ViewMode = ViewMode.EDITOR
    solution_text: Optional[str] = None
    watch: bool = True
    auto_advance: bool = True
    all_done: bool = False
    quit: bool = False
    started_at: float = field(default_factory=time.monotonic)

    @property
    def done_count(self) -> int:
        return self.progress.done_count()

    @property
    def running(self) -> bool:
        return self.run_result is not None and not self.run_result.finished

    def set_output(self, lines, kind: OutputKind = OutputKind.INFO):
        """Replace the output pane contents and scroll back to the top"""
        if isinstance(lines, str):
            lines = lines.splitlines()
        self.output = tuple(lines)
        self.output_kind = kind
        self.output_scroll = 0

    def set_notice(self, text: str, error: bool = False):
        self.notice = text
        self.notice_error = error
