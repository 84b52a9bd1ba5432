#!/usr/bin/env python3
"""
Exercise runner.
Invokes the external toolchain as a child process and classifies the outcome
into a RunResult. Background runs report through a callback; starting a new
run for an exercise terminates the one already in flight.
"""

import os
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from loguru import logger

from .state import ExerciseDescriptor, Failure, RunMode, RunResult, Success, ToolError


@dataclass
class RunHandle:
    """A background run. `generation` increases with every submitted run."""
    exercise_id: str
    generation: int
    mode: RunMode
    _process: Optional[subprocess.Popen] = field(default=None, repr=False)
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def attach(self, process: subprocess.Popen) -> bool:
        """Record the child; False if the run was cancelled before spawn"""
        with self._lock:
            if self.cancelled:
                return False
            self._process = process
            return True

    def cancel(self):
        """Best-effort: signal the child to terminate"""
        with self._lock:
            self._cancelled.set()
            process = self._process
        if process is not None and process.poll() is None:
            logger.debug("Terminating run #{} for {}", self.generation, self.exercise_id)
            try:
                process.terminate()
            except OSError:
                pass


def classify(returncode: Optional[int], output: str, success_marker: str) -> RunResult:
    """
    Map a finished process to a result:
    exit 0 with the marker -> Success, non-zero with diagnostics -> Failure,
    anything else (no marker, no output, killed by a signal) -> ToolError.
    """
    lines = tuple(output.rstrip('\n').splitlines()) if output.strip() else ()

    if returncode is None or returncode < 0:
        return ToolError(f"Toolchain was terminated (signal {-(returncode or 0)})")
    if returncode == 0:
        if not success_marker or success_marker in output:
            return Success(lines)
        return ToolError("Toolchain exited cleanly but did not report success")
    if lines:
        return Failure(lines)
    return ToolError(f"Toolchain exited with status {returncode} and no output")


class ExerciseRunner:
    """Spawns `<toolchain> <mode> <path>` in the exercise's directory"""

    def __init__(
        self,
        toolchain: List[str],
        success_marker: str = 'ok',
        timeout: float = 60.0,
        env: Optional[Dict[str, str]] = None,
    ):
        self.toolchain = list(toolchain)
        self.success_marker = success_marker
        self.timeout = timeout
        self.env = env or {}
        self._generation = 0
        self._active: Dict[str, RunHandle] = {}
        self._lock = threading.Lock()

    def command_for(self, exercise: ExerciseDescriptor, mode: RunMode) -> List[str]:
        return [*self.toolchain, mode.value, exercise.path]

    def run(self, exercise: ExerciseDescriptor, mode: Optional[RunMode] = None,
            handle: Optional[RunHandle] = None) -> RunResult:
        """Run the toolchain and block until it finishes or times out"""
        mode = mode or exercise.mode
        cmd = self.command_for(exercise, mode)
        cwd = os.path.dirname(os.path.abspath(exercise.path)) or None
        env = {**os.environ, **self.env} if self.env else None

        logger.debug("Spawning {}", cmd)
        try:
            process = subprocess.Popen(
                cmd,
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors='replace',
            )
        except FileNotFoundError:
            return ToolError(f"Toolchain not found: {cmd[0]}")
        except OSError as e:
            return ToolError(f"Could not start toolchain: {e}")

        if handle is not None and not handle.attach(process):
            process.kill()
            process.wait()
            return ToolError("Run cancelled")

        try:
            output, _ = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            logger.warning("Toolchain timed out after {}s on {}", self.timeout, exercise.path)
            return ToolError(f"Toolchain timed out after {self.timeout:g} seconds")

        result = classify(process.returncode, output or '', self.success_marker)
        logger.debug("Run of {} finished: {}", exercise.id, result.label)
        return result

    def submit(
        self,
        exercise: ExerciseDescriptor,
        on_done: Callable[[RunHandle, RunResult], None],
        mode: Optional[RunMode] = None,
    ) -> RunHandle:
        """
        Start a run on a worker thread and return its handle immediately.
        Any run already active for the same exercise is cancelled first.
        `on_done` is called from the worker thread.
        """
        mode = mode or exercise.mode
        with self._lock:
            self._generation += 1
            handle = RunHandle(exercise.id, self._generation, mode)
            previous = self._active.get(exercise.id)
            self._active[exercise.id] = handle
        if previous is not None:
            previous.cancel()

        def worker():
            try:
                result = self.run(exercise, mode, handle)
            except Exception as e:
                logger.exception("Runner crashed")
                result = ToolError(str(e))
            with self._lock:
                if self._active.get(exercise.id) is handle:
                    del self._active[exercise.id]
            on_done(handle, result)

        thread = threading.Thread(target=worker, name=f"run-{exercise.id}-{handle.generation}")
        thread.daemon = True
        thread.start()
        return handle

    def active(self, exercise_id: str) -> Optional[RunHandle]:
        with self._lock:
            return self._active.get(exercise_id)

    def cancel_all(self):
        with self._lock:
            handles = list(self._active.values())
            self._active.clear()
        for handle in handles:
            handle.cancel()
