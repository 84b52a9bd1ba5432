#!/usr/bin/env python3
"""
Test suite for the exercise runner: result classification, real child
processes against a scripted toolchain, and cancellation.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest

from stepwise.tutoring import (
    ExerciseDescriptor,
    ExerciseRunner,
    Failure,
    RunMode,
    Success,
    ToolError,
    classify,
)


class TestClassify:
    """Tests for mapping process outcomes to results"""

    def test_success_needs_marker(self):
        """Test exit 0 with the marker is Success, without it ToolError"""
        assert isinstance(classify(0, 'build ok\n', 'ok'), Success)
        assert isinstance(classify(0, 'built\n', 'ok'), ToolError)

    def test_success_keeps_output(self):
        """Test the output lines are carried on Success"""
        assert classify(0, 'a\nok\n', 'ok') == Success(('a', 'ok'))

    def test_failure_carries_lines(self):
        """Test non-zero exit with diagnostics is Failure"""
        result = classify(1, 'error: x\n  --> f.rs\n', 'ok')
        assert result == Failure(('error: x', '  --> f.rs'))

    def test_silent_failure_is_tool_error(self):
        """Test non-zero exit without output is a ToolError"""
        assert isinstance(classify(2, '', 'ok'), ToolError)
        assert isinstance(classify(2, '  \n', 'ok'), ToolError)

    def test_signal_is_tool_error(self):
        """Test a child killed by a signal is a ToolError"""
        assert isinstance(classify(-15, 'partial', 'ok'), ToolError)

    def test_results_are_immutable(self):
        """Test results cannot be mutated in place"""
        result = Failure(('x',))
        with pytest.raises(Exception):
            result.lines = ()


def exercise_at(path, mode=RunMode.CHECK):
    return ExerciseDescriptor(id='ex', path=str(path), display_name='ex.rs', ordinal=0, mode=mode)


class TestRun:
    """Tests for running the scripted toolchain"""

    def test_pass(self, tmp_path, toolchain):
        """Test a finished exercise passes"""
        source = tmp_path / 'ex.rs'
        source.write_text('// DONE\n')
        result = ExerciseRunner(toolchain, success_marker='ok').run(exercise_at(source))
        assert isinstance(result, Success)

    def test_fail(self, tmp_path, toolchain):
        """Test an unfinished exercise fails with the diagnostics"""
        source = tmp_path / 'ex.rs'
        source.write_text('// not yet\n')
        result = ExerciseRunner(toolchain, success_marker='ok').run(exercise_at(source))
        assert isinstance(result, Failure)
        assert result.lines[0] == 'error: exercise is not done yet'

    def test_mode_is_passed_through(self, tmp_path, toolchain):
        """Test the mode becomes the toolchain subcommand"""
        source = tmp_path / 'ex.rs'
        source.write_text('// DONE\n')
        result = ExerciseRunner(toolchain).run(exercise_at(source), RunMode.LINT)
        assert isinstance(result, ToolError)

    def test_timeout(self, tmp_path, toolchain):
        """Test a run exceeding the timeout is a ToolError"""
        source = tmp_path / 'ex.rs'
        source.write_text('// DONE\n')
        result = ExerciseRunner(toolchain, timeout=0.5).run(exercise_at(source, RunMode.TEST))
        assert isinstance(result, ToolError)
        assert 'timed out' in result.message

    def test_missing_toolchain(self, tmp_path):
        """Test a toolchain that cannot be spawned is a ToolError"""
        source = tmp_path / 'ex.rs'
        source.write_text('')
        result = ExerciseRunner(['definitely-not-a-real-tool-xyz']).run(exercise_at(source))
        assert isinstance(result, ToolError)
        assert 'not found' in result.message

    def test_runs_in_exercise_directory(self, tmp_path):
        """Test the child's working directory is the exercise's directory"""
        source = tmp_path / 'sub' / 'ex.rs'
        source.parent.mkdir()
        source.write_text('')
        process = MagicMock(returncode=0)
        process.communicate.return_value = ('ok\n', None)
        with patch('stepwise.tutoring.runner.subprocess.Popen', return_value=process) as popen:
            ExerciseRunner(['tool', '--flag']).run(exercise_at(source))
        args, kwargs = popen.call_args
        assert args[0] == ['tool', '--flag', 'check', str(source)]
        assert kwargs['cwd'] == str(source.parent)


class TestSubmit:
    """Tests for background runs and cancellation"""

    def test_callback_receives_result(self, tmp_path, toolchain):
        """Test submit reports the result through the callback"""
        source = tmp_path / 'ex.rs'
        source.write_text('// DONE\n')
        done = threading.Event()
        received = []

        def on_done(handle, result):
            received.append((handle.generation, result))
            done.set()

        handle = ExerciseRunner(toolchain).submit(exercise_at(source), on_done)
        assert done.wait(10)
        assert received[0][0] == handle.generation
        assert isinstance(received[0][1], Success)

    def test_new_run_cancels_previous(self, tmp_path, toolchain):
        """Test starting a second run terminates the first"""
        source = tmp_path / 'ex.rs'
        source.write_text('// DONE\n')
        runner = ExerciseRunner(toolchain, timeout=30)
        results = {}
        finished = threading.Event()

        def on_done(handle, result):
            results[handle.generation] = result
            if len(results) == 2:
                finished.set()

        first = runner.submit(exercise_at(source, RunMode.TEST), on_done)
        second = runner.submit(exercise_at(source, RunMode.CHECK), on_done)
        assert second.generation > first.generation
        assert first.cancelled
        assert finished.wait(10)
        assert isinstance(results[first.generation], ToolError)
        assert isinstance(results[second.generation], Success)

    def test_cancel_all(self, tmp_path, toolchain):
        """Test cancel_all stops every active run"""
        source = tmp_path / 'ex.rs'
        source.write_text('')
        runner = ExerciseRunner(toolchain, timeout=30)
        done = threading.Event()
        handle = runner.submit(exercise_at(source, RunMode.TEST), lambda h, r: done.set())
        runner.cancel_all()
        assert handle.cancelled
        assert done.wait(10)
        assert runner.active('ex') is None
