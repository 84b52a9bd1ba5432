#!/usr/bin/env python3
"""
Exercise pipeline: catalog, toolchain runner, file watcher and progress.

- Catalog: the ordered curriculum loaded from info.json
- Runner: `<toolchain> <check|test|lint> <path>` classified into a RunResult
- Watcher: debounced change events for the active exercise file
- Progress: done/pending per exercise, persisted atomically
"""

from .state import (
    RunMode,
    ProgressStatus,
    ExerciseDescriptor,
    RunResult,
    Pending,
    Success,
    Failure,
    ToolError,
    ProgressRecord,
)
from .catalog import ExerciseCatalog
from .runner import ExerciseRunner, RunHandle, classify
from .file_watcher import FileWatcher, Debouncer
from .progress import ProgressTracker

__all__ = [
    'RunMode',
    'ProgressStatus',
    'ExerciseDescriptor',
    'RunResult',
    'Pending',
    'Success',
    'Failure',
    'ToolError',
    'ProgressRecord',
    'ExerciseCatalog',
    'ExerciseRunner',
    'RunHandle',
    'classify',
    'FileWatcher',
    'Debouncer',
    'ProgressTracker',
]
