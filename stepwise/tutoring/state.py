#!/usr/bin/env python3
"""
Data types for the tutoring pipeline.
Exercise descriptors, toolchain run results and progress status.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class RunMode(Enum):
    """Toolchain subcommands an exercise can be validated with"""
    CHECK = 'check'
    TEST = 'test'
    LINT = 'lint'


class ProgressStatus(Enum):
    """Completion state of one exercise"""
    PENDING = 'pending'
    DONE = 'done'


@dataclass(frozen=True)
class ExerciseDescriptor:
    """One exercise in the curriculum. Immutable once loaded."""
    id: str
    path: str                              # working file the learner edits
    display_name: str
    ordinal: int                           # position in the curriculum
    hint: str = ''
    mode: RunMode = RunMode.CHECK
    template_path: Optional[str] = None    # pristine text, used by reset
    solution_path: Optional[str] = None


class RunResult:
    """
    Outcome of one toolchain invocation. Closed set of variants:
    Pending, Success, Failure, ToolError. Results are never mutated; a new
    run produces a new result.
    """
    label = ''

    @property
    def finished(self) -> bool:
        return not isinstance(self, Pending)

    def output_lines(self) -> Tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class Pending(RunResult):
    """A run is in flight"""
    mode: RunMode = RunMode.CHECK
    label = 'running'


@dataclass(frozen=True)
class Success(RunResult):
    """The toolchain reported success"""
    output: Tuple[str, ...] = ()
    label = 'passed'

    def output_lines(self) -> Tuple[str, ...]:
        return self.output


@dataclass(frozen=True)
class Failure(RunResult):
    """The toolchain ran and reported problems in the exercise"""
    lines: Tuple[str, ...] = ()
    label = 'failed'

    def output_lines(self) -> Tuple[str, ...]:
        return self.lines


@dataclass(frozen=True)
class ToolError(RunResult):
    """The toolchain could not be run or its result understood; retryable"""
    message: str = ''
    label = 'tool error'

    def output_lines(self) -> Tuple[str, ...]:
        return tuple(self.message.splitlines())


@dataclass
class ProgressRecord:
    """Exercise id -> status, plus the exercise the learner was on"""
    statuses: Dict[str, ProgressStatus] = field(default_factory=dict)
    current: Optional[str] = None

    def is_done(self, exercise_id: str) -> bool:
        return self.statuses.get(exercise_id) == ProgressStatus.DONE

    def done_count(self) -> int:
        return sum(1 for s in self.statuses.values() if s == ProgressStatus.DONE)
