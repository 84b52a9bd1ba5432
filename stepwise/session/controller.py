#!/usr/bin/env python3
"""
Session controller.

The only writer of SessionState. Events from the keyboard, the file watcher
and the runner arrive one at a time through `handle()` and are turned into
state transitions. Background components never touch the state directly:
they report through `post`, which feeds the event loop's queue.
"""

import os
from typing import Callable, Dict, Optional

from loguru import logger

from ..config import Settings
from ..editor import Action, ActionKind, EditorCore
from ..tutoring import (
    ExerciseCatalog,
    ExerciseRunner,
    Failure,
    FileWatcher,
    Pending,
    ProgressTracker,
    Success,
    ToolError,
)
from ..ui.layout import compute_layout
from ..ui import theme
from .state import (
    FileChanged,
    KeyPressed,
    OutputKind,
    Resized,
    RunFinished,
    SessionState,
    ViewMode,
    WatchFailed,
)


class SessionController:
    """Dispatches events into state transitions for one tutoring session"""

    def __init__(
        self,
        catalog: ExerciseCatalog,
        tracker: ProgressTracker,
        runner: ExerciseRunner,
        watcher: Optional[FileWatcher] = None,
        settings: Optional[Settings] = None,
        post: Optional[Callable[[object], None]] = None,
    ):
        self.catalog = catalog
        self.tracker = tracker
        self.runner = runner
        self.watcher = watcher
        self.settings = settings or Settings()
        self.post = post or (lambda event: None)
        self.state: Optional[SessionState] = None
        self.width = 80
        self.height = 24
        self._last_written: Dict[str, str] = {}

        self._events = {
            KeyPressed: self._on_key,
            FileChanged: self._on_file_changed,
            WatchFailed: self._on_watch_failed,
            RunFinished: self._on_run_finished,
            Resized: self._on_resize,
        }
        self._actions = {
            ActionKind.SAVE: self.save,
            ActionKind.CHECK: self.check,
            ActionKind.QUIT: self._quit_action,
            ActionKind.SAVE_AND_QUIT: self.save_and_quit,
            ActionKind.NEXT: self.next_exercise,
            ActionKind.PREVIOUS: self.previous_exercise,
            ActionKind.TOGGLE_SOLUTION: self.toggle_solution,
            ActionKind.TOGGLE_AUTO_ADVANCE: self.toggle_auto_advance,
            ActionKind.TOGGLE_WATCH: self.toggle_watch,
            ActionKind.RELOAD: self.reload,
            ActionKind.RESET: self.reset,
            ActionKind.SHOW_HINT: self.show_hint,
            ActionKind.HELP: self.show_help,
            ActionKind.SCROLL_OUTPUT: self._scroll_output,
            ActionKind.OUTPUT_HOME: self._output_home,
            ActionKind.OUTPUT_END: self._output_end,
            ActionKind.UNKNOWN: self._unknown_command,
        }

    # -- lifecycle --

    def start(self) -> SessionState:
        """Load progress and open the exercise the learner was last on"""
        record = self.tracker.load()
        index = self._initial_index(record.current)
        exercise = self.catalog[index]
        text = self.catalog.read_exercise(exercise)

        self.state = SessionState(
            exercise=exercise,
            index=index,
            total=len(self.catalog),
            editor=EditorCore(text),
            progress=record,
            watch=self.settings.watch,
            auto_advance=self.settings.auto_advance,
        )
        self.state.set_output(f"{theme.ICON_INFO} {exercise.display_name}: press i to edit, :c to check")
        self.tracker.set_current(exercise.id)
        if self.state.watch and self.watcher is not None:
            self.watcher.watch(exercise.path)
        logger.info("Session started on {} ({}/{})", exercise.id, index + 1, len(self.catalog))
        return self.state

    def _initial_index(self, current: Optional[str]) -> int:
        if current is not None:
            index = self.catalog.index_of(current)
            if index is not None:
                return index
        for i, exercise in enumerate(self.catalog):
            if not self.tracker.is_done(exercise.id):
                return i
        return 0

    def handle(self, event):
        """Apply one event. Unknown event types are ignored."""
        handler = self._events.get(type(event))
        if handler is None:
            return
        handler(event)

    def set_viewport(self, width: int, height: int):
        self.width = width
        self.height = height
        self._follow_cursor()

    def _follow_cursor(self):
        if self.state is None:
            return
        split = self.state.view == ViewMode.SOLUTION
        rows = compute_layout(self.width, self.height, split).editor_rows
        self.state.editor.scroll_into_view(rows)

    def shutdown(self):
        """Stop background work and persist progress"""
        self.runner.cancel_all()
        if self.watcher is not None:
            self.watcher.stop()
        if self.state is not None:
            self.tracker.set_current(self.state.exercise.id)
        if not self.tracker.flush():
            logger.error("Progress could not be saved on exit")

    # -- events --

    def _on_key(self, event: KeyPressed):
        state = self.state
        if state.view == ViewMode.HELP:
            state.view = ViewMode.SOLUTION if state.solution_text is not None else ViewMode.EDITOR
            return

        action = state.editor.handle_key(event.key)
        if action is not None:
            self.perform(action)
        self._follow_cursor()

    def _on_resize(self, event: Resized):
        self.set_viewport(event.width, event.height)

    def _on_file_changed(self, event: FileChanged):
        state = self.state
        if not state.watch or os.path.abspath(event.path) != os.path.abspath(state.exercise.path):
            return
        try:
            text = self.catalog.read_exercise(state.exercise)
        except OSError as e:
            logger.warning("Could not read changed file {}: {}", event.path, e)
            return
        if text == state.editor.serialize() or text == self._last_written.get(state.exercise.path):
            # our own write, possibly reported after further typing
            return

        self._last_written.pop(state.exercise.path, None)
        self._discard_run()
        state.editor.load(text)
        state.set_output(f"{theme.ICON_INFO} File changed externally, reloaded!")
        logger.debug("Reloaded {} after an outside edit", state.exercise.id)
        if self.settings.run_on_change:
            self.run_current()

    def _on_watch_failed(self, event: WatchFailed):
        self.state.watch = False
        self.state.set_notice(f"{theme.ICON_ERROR} Stopped watching: {event.message}", error=True)

    def _on_run_finished(self, event: RunFinished):
        state = self.state
        if event.exercise_id != state.exercise.id or event.generation != state.run_generation:
            logger.debug("Discarding stale result for {} (run #{})", event.exercise_id, event.generation)
            return

        result = event.result
        state.run_result = result
        if isinstance(result, Success):
            self._passed()
        elif isinstance(result, Failure):
            state.set_output(result.lines, OutputKind.ERROR)
        elif isinstance(result, ToolError):
            state.set_output([f"{theme.ICON_ERROR} Could not run the toolchain"] + list(result.output_lines()),
                             OutputKind.ERROR)

    def _passed(self):
        state = self.state
        exercise = state.exercise
        self.tracker.mark_done(exercise.id)
        logger.info("Exercise {} passed", exercise.id)

        if not state.auto_advance:
            message = [f"{theme.ICON_DONE} Exercise passed! Press ']' for next."]
            if exercise.solution_path:
                message += ['', f"Solution available: {exercise.solution_path}"]
            state.set_output(message, OutputKind.SUCCESS)
            return

        next_index = self.find_next_pending()
        if next_index is None:
            state.all_done = True
            state.set_output([f"{theme.ICON_DONE} Congratulations! All exercises complete!", '',
                              self.catalog.final_message], OutputKind.SUCCESS)
            return
        if self.switch_to(next_index):
            state.set_output(f"{theme.ICON_DONE} Complete! Auto-advanced to: {state.exercise.display_name}",
                             OutputKind.SUCCESS)

    def find_next_pending(self) -> Optional[int]:
        """First pending exercise after the current one, wrapping around"""
        current = self.state.index
        order = list(range(current + 1, len(self.catalog))) + list(range(0, current))
        for i in order:
            if not self.tracker.is_done(self.catalog[i].id):
                return i
        return None

    # -- actions --

    def perform(self, action: Action):
        self.state.set_notice('')
        self._actions[action.kind](action)

    def save(self, action: Optional[Action] = None) -> bool:
        """Write the buffer to the exercise file"""
        state = self.state
        try:
            self._write(state.exercise.path, state.editor.serialize())
        except OSError as e:
            logger.error("Saving {} failed: {}", state.exercise.path, e)
            state.set_notice(f"{theme.ICON_ERROR} Could not save: {e}", error=True)
            return False
        state.editor.mark_saved()
        state.set_notice(f"{theme.ICON_DONE} File saved!")
        if action is not None and action.kind == ActionKind.SAVE and self.settings.run_on_save:
            self.run_current()
        return True

    def _write(self, path: str, text: str):
        """Write an exercise file and remember the text so the watcher echo is ignored"""
        with open(path, 'w', encoding='utf-8') as f:
            f.write(text)
        self._last_written[path] = text

    def _discard_run(self):
        """Cancel the active run; a late result for the old text no longer applies"""
        state = self.state
        active = self.runner.active(state.exercise.id)
        if active is not None:
            active.cancel()
        state.run_result = None
        state.run_generation = 0

    def check(self, action: Optional[Action] = None):
        if self.save():
            self.run_current()

    def run_current(self):
        """Start a toolchain run; any earlier run for this exercise is cancelled"""
        state = self.state
        exercise = state.exercise
        handle = self.runner.submit(
            exercise,
            lambda h, result: self.post(RunFinished(h.exercise_id, h.generation, result)),
        )
        state.run_generation = handle.generation
        state.run_result = Pending(handle.mode)
        state.set_output(f"{theme.ICON_RUNNING} Checking {os.path.basename(exercise.path)}...",
                         OutputKind.RUNNING)

    def _quit_action(self, action: Action):
        self.quit(force=action.force)

    def quit(self, force: bool = False) -> bool:
        state = self.state
        if state.editor.dirty and not force:
            state.set_notice(f"{theme.ICON_ERROR} Unsaved changes! Use :q! or :wq", error=True)
            return False
        self.shutdown()
        state.quit = True
        return True

    def save_and_quit(self, action: Optional[Action] = None):
        if self.save():
            self.quit()

    def next_exercise(self, action: Optional[Action] = None):
        if self.state.index + 1 >= len(self.catalog):
            self.state.set_notice("Already at the last exercise")
            return
        self.switch_to(self.state.index + 1)

    def previous_exercise(self, action: Optional[Action] = None):
        if self.state.index == 0:
            self.state.set_notice("Already at the first exercise")
            return
        self.switch_to(self.state.index - 1)

    def switch_to(self, index: int) -> bool:
        """
        Make exercise `index` current. The new file is read first so a
        failure leaves the session untouched; then exercise, buffer, view and
        run state are replaced together.
        """
        state = self.state
        exercise = self.catalog[index]
        try:
            text = self.catalog.read_exercise(exercise)
        except OSError as e:
            logger.error("Could not open {}: {}", exercise.path, e)
            state.set_notice(f"{theme.ICON_ERROR} Could not open {exercise.display_name}: {e}", error=True)
            return False

        self._discard_run()
        state.exercise = exercise
        state.index = index
        state.editor.load(text)
        state.view = ViewMode.EDITOR
        state.solution_text = None
        state.all_done = False
        state.set_output(f"{theme.ICON_INFO} {exercise.display_name}")

        self.tracker.set_current(exercise.id)
        if state.watch and self.watcher is not None:
            self.watcher.watch(exercise.path)
        self._follow_cursor()
        logger.debug("Switched to {}", exercise.id)
        return True

    def toggle_solution(self, action: Optional[Action] = None):
        state = self.state
        if state.view == ViewMode.SOLUTION:
            state.view = ViewMode.EDITOR
            state.solution_text = None
            return
        exercise = state.exercise
        if not exercise.solution_path:
            state.set_output(f"{theme.ICON_ERROR} No solution available for this exercise", OutputKind.ERROR)
            return
        text = self.catalog.read_solution(exercise)
        if text is None:
            state.set_output(f"{theme.ICON_ERROR} Could not read solution file", OutputKind.ERROR)
            return
        state.solution_text = text
        state.view = ViewMode.SOLUTION
        state.set_output(f"{theme.ICON_SOLUTION} Solution loaded: {exercise.solution_path}")

    def toggle_auto_advance(self, action: Optional[Action] = None):
        state = self.state
        state.auto_advance = not state.auto_advance
        state.set_notice(f"{theme.ICON_DONE} Auto-advance: {'ON' if state.auto_advance else 'OFF'}")

    def toggle_watch(self, action: Optional[Action] = None):
        state = self.state
        state.watch = not state.watch
        if self.watcher is not None:
            if state.watch:
                self.watcher.watch(state.exercise.path)
            else:
                self.watcher.stop()
        state.set_notice(f"{theme.ICON_DONE} Watching for file changes: {'ON' if state.watch else 'OFF'}")

    def reload(self, action: Optional[Action] = None):
        state = self.state
        try:
            text = self.catalog.read_exercise(state.exercise)
        except OSError as e:
            state.set_notice(f"{theme.ICON_ERROR} Could not reload: {e}", error=True)
            return
        self._discard_run()
        state.editor.load(text)
        state.set_output(f"{theme.ICON_INFO} Exercise reloaded from disk")

    def reset(self, action: Optional[Action] = None):
        """Restore the pristine exercise text and mark the exercise pending"""
        state = self.state
        exercise = state.exercise
        original = self.catalog.read_template(exercise)
        if original is None:
            state.set_notice(f"{theme.ICON_ERROR} No original text available for this exercise", error=True)
            return
        try:
            self._write(exercise.path, original)
        except OSError as e:
            state.set_notice(f"{theme.ICON_ERROR} Could not reset: {e}", error=True)
            return
        self._discard_run()
        self.tracker.mark_pending(exercise.id)
        state.editor.load(original)
        state.all_done = False
        state.set_output(f"{theme.ICON_DONE} Exercise reset to original")

    def show_hint(self, action: Optional[Action] = None):
        hint = self.state.exercise.hint
        if not hint:
            self.state.set_output(f"{theme.ICON_HINT} No hint for this exercise", OutputKind.HINT)
            return
        lines = hint.splitlines()
        lines[0] = f"{theme.ICON_HINT} {lines[0]}"
        self.state.set_output(lines, OutputKind.HINT)

    def show_help(self, action: Optional[Action] = None):
        self.state.view = ViewMode.HELP

    def _max_output_scroll(self) -> int:
        """Last scroll offset that still fills the visible output pane"""
        split = self.state.view == ViewMode.SOLUTION
        rows = compute_layout(self.width, self.height, split).output.inner().height
        return max(len(self.state.output) - rows, 0)

    def _scroll_output(self, action: Action):
        state = self.state
        state.output_scroll = min(max(state.output_scroll + action.amount, 0), self._max_output_scroll())

    def _output_home(self, action: Action):
        self.state.output_scroll = 0

    def _output_end(self, action: Action):
        self.state.output_scroll = self._max_output_scroll()

    def _unknown_command(self, action: Action):
        self.state.set_notice(f"{theme.ICON_ERROR} Unknown command: {action.text}", error=True)
