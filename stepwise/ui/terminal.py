#!/usr/bin/env python3
"""
Terminal adapter.
Reads raw key presses with prompt_toolkit on a background thread and draws
frames with a full-screen rich Live display.
"""

import select
import threading
from typing import Callable, List, Optional

from loguru import logger
from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys
from rich.console import Console, RenderableType
from rich.live import Live

from ..editor import keys as k
from ..editor.keys import Key


# how long a lone ESC waits for the rest of an escape sequence
ESCAPE_TIMEOUT = 0.05

_NAMED_KEYS = {
    Keys.Escape: k.ESCAPE,
    Keys.Enter: k.ENTER,
    Keys.ControlJ: k.ENTER,
    Keys.Tab: k.TAB,
    Keys.Backspace: k.BACKSPACE,
    Keys.Delete: k.DELETE,
    Keys.Up: k.UP,
    Keys.Down: k.DOWN,
    Keys.Left: k.LEFT,
    Keys.Right: k.RIGHT,
    Keys.Home: k.HOME,
    Keys.End: k.END,
    Keys.PageUp: k.PAGE_UP,
    Keys.PageDown: k.PAGE_DOWN,
}


def translate_key(press: KeyPress) -> Optional[Key]:
    """Map a prompt_toolkit key press to an editor Key (None to ignore it)"""
    key = press.key
    if key in _NAMED_KEYS:
        return Key(_NAMED_KEYS[key])
    if isinstance(key, Keys):
        name = key.value
        if name.startswith('c-') and len(name) == 3 and name[2].isalpha():
            return Key.control(name[2])
        return None
    if key and key.isprintable():
        return Key(key)
    return None


class KeyReader:
    """
    Background thread feeding translated keys to `on_key`.
    Start it inside a `Terminal` context so the tty is in raw mode.
    """

    def __init__(self, on_key: Callable[[Key], None], inp: Optional[Input] = None):
        self.on_key = on_key
        self.input = inp or create_input()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self._run, name='key-reader')
        self._thread.daemon = True
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=1.0)

    def _ready(self, timeout: float) -> bool:
        readable, _, _ = select.select([self.input.fileno()], [], [], timeout)
        return bool(readable)

    def _run(self):
        while not self._stop.is_set():
            try:
                if not self._ready(0.1):
                    continue
                presses: List[KeyPress] = self.input.read_keys()
                if not self._ready(ESCAPE_TIMEOUT):
                    presses += self.input.flush_keys()
            except (OSError, ValueError) as e:
                logger.error("Key reader stopped: {}", e)
                return
            for press in presses:
                key = translate_key(press)
                if key is not None:
                    self.on_key(key)


class Terminal:
    """Owns the console, the raw-mode input and the live display"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.input = create_input()
        self.live: Optional[Live] = None
        self._raw = None

    @property
    def size(self):
        size = self.console.size
        return size.width, size.height

    def __enter__(self) -> 'Terminal':
        self._raw = self.input.raw_mode()
        self._raw.__enter__()
        self.live = Live(console=self.console, screen=True, auto_refresh=False, transient=True)
        self.live.__enter__()
        return self

    def __exit__(self, *exc):
        try:
            if self.live is not None:
                self.live.__exit__(*exc)
        finally:
            self.live = None
            if self._raw is not None:
                self._raw.__exit__(*exc)
                self._raw = None
        return False

    def key_reader(self, on_key: Callable[[Key], None]) -> KeyReader:
        return KeyReader(on_key, self.input)

    def draw(self, renderable: RenderableType):
        if self.live is not None:
            self.live.update(renderable, refresh=True)
