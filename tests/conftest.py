#!/usr/bin/env python3
"""
Shared fixtures: a small exercise directory, a scripted toolchain and a
runner stand-in that lets tests decide when runs finish.
"""

import json
import sys
import textwrap

import pytest

from stepwise.config import Settings
from stepwise.editor.keys import Key, ENTER, ESCAPE
from stepwise.session import KeyPressed, SessionController
from stepwise.tutoring import ExerciseCatalog, ProgressTracker, RunHandle


EXERCISES = {
    'intro1': 'fn main() {\n    // TODO\n}\n',
    'intro2': 'fn add(a: i32, b: i32) -> i32 {\n    todo!()\n}\n',
    'intro3': 'struct Point;\n',
}


@pytest.fixture
def exercise_dir(tmp_path):
    """Three exercises with templates; only intro1 ships a solution"""
    (tmp_path / 'exercises').mkdir()
    (tmp_path / 'templates').mkdir()
    (tmp_path / 'solutions').mkdir()
    entries = []
    for name, text in EXERCISES.items():
        (tmp_path / 'exercises' / f'{name}.rs').write_text(text)
        (tmp_path / 'templates' / f'{name}.rs').write_text(text)
        entry = {
            'name': name,
            'path': f'exercises/{name}.rs',
            'hint': f'Hint for {name}',
            'template': f'templates/{name}.rs',
        }
        if name == 'intro1':
            (tmp_path / 'solutions' / 'intro1.rs').write_text('fn main() {\n    println!("done");\n}\n')
            entry['solution'] = 'solutions/intro1.rs'
        entries.append(entry)

    (tmp_path / 'info.json').write_text(json.dumps({
        'exercises': entries,
        'final_message': 'You finished everything.',
    }))
    return tmp_path


@pytest.fixture
def catalog(exercise_dir):
    return ExerciseCatalog.from_directory(str(exercise_dir))


@pytest.fixture
def tracker(catalog, exercise_dir):
    return ProgressTracker(str(exercise_dir / '.progress.json'), [e.id for e in catalog])


@pytest.fixture
def toolchain(tmp_path):
    """
    A toolchain script: `check` passes when the file contains DONE, fails
    with diagnostics otherwise; `lint` prints nothing and exits 2; `test`
    sleeps long enough to hit a timeout.
    """
    script = tmp_path / 'fake_toolchain.py'
    script.write_text(textwrap.dedent('''
        import sys, time
        mode, path = sys.argv[1], sys.argv[2]
        text = open(path).read()
        if mode == 'lint':
            sys.exit(2)
        if mode == 'test':
            time.sleep(5)
        if 'DONE' in text:
            print('compiling... ok')
            sys.exit(0)
        print('error: exercise is not done yet')
        print('  --> ' + path)
        sys.exit(1)
    '''))
    return [sys.executable, str(script)]


class FakeRunner:
    """Records submitted runs; tests finish them explicitly"""

    def __init__(self):
        self.generation = 0
        self.submitted = []
        self.running = {}
        self.cancelled_all = False

    def submit(self, exercise, on_done, mode=None):
        self.generation += 1
        handle = RunHandle(exercise.id, self.generation, mode or exercise.mode)
        self.submitted.append((handle, on_done))
        self.running[exercise.id] = handle
        return handle

    def finish(self, index, result):
        handle, on_done = self.submitted[index]
        if self.running.get(handle.exercise_id) is handle:
            del self.running[handle.exercise_id]
        on_done(handle, result)

    def active(self, exercise_id):
        return self.running.get(exercise_id)

    def cancel_all(self):
        self.cancelled_all = True


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def posted():
    return []


@pytest.fixture
def controller(catalog, tracker, fake_runner, posted):
    settings = Settings(watch=False, run_on_change=True)
    ctrl = SessionController(catalog, tracker, fake_runner, None, settings, posted.append)
    ctrl.start()
    return ctrl


@pytest.fixture
def press(controller):
    """Send key presses to the controller"""
    def _press(*names):
        for name in names:
            controller.handle(KeyPressed(Key(name)))
    return _press


@pytest.fixture
def command(press):
    """Type `:text<Enter>` from normal mode"""
    def _command(text):
        press(ESCAPE, ':', *text, ENTER)
    return _command
