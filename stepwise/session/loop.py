#!/usr/bin/env python3
"""
Event loop.

One queue merges key presses, watcher notifications and run completions.
The loop applies events one at a time through the controller and redraws on
a fixed tick, so the frame keeps animating even when nothing happens.
"""

import queue
import time
from typing import Callable, Optional, Tuple

from loguru import logger

from ..ui import theme
from .controller import SessionController
from .state import KeyPressed, Resized


class EventLoop:
    """Drives a SessionController until the session asks to quit"""

    def __init__(
        self,
        controller: SessionController,
        draw: Callable[[], None],
        size: Callable[[], Tuple[int, int]],
        tick_seconds: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.controller = controller
        self.draw = draw
        self.size = size
        self.tick_seconds = tick_seconds
        self.clock = clock
        self.events: 'queue.Queue' = queue.Queue()
        self._last_size: Optional[Tuple[int, int]] = None

    def post(self, event):
        """Thread-safe: hand an event to the main loop"""
        self.events.put(event)

    def post_key(self, key):
        self.events.put(KeyPressed(key))

    def dispatch(self, event):
        """Apply one event; a failing handler never takes the session down"""
        try:
            self.controller.handle(event)
        except Exception as e:
            logger.exception("Error while handling {}", type(event).__name__)
            if self.controller.state is not None:
                self.controller.state.set_notice(f"{theme.ICON_ERROR} {e}", error=True)

    def _check_size(self):
        size = self.size()
        if size != self._last_size:
            self._last_size = size
            self.dispatch(Resized(*size))

    def run_once(self, timeout: float) -> bool:
        """Wait up to `timeout` for one event and apply it; False on timeout"""
        try:
            event = self.events.get(timeout=max(timeout, 0))
        except queue.Empty:
            return False
        self.dispatch(event)
        return True

    def drain(self):
        """Apply everything already queued without waiting"""
        while self.run_once(0):
            pass

    def run(self):
        state = self.controller.state
        self._check_size()
        self.draw()
        next_tick = self.clock() + self.tick_seconds

        while not state.quit:
            self.run_once(next_tick - self.clock())
            if state.quit:
                break
            now = self.clock()
            if now >= next_tick:
                self._check_size()
                self.draw()
                next_tick += self.tick_seconds
                if next_tick <= now:
                    # skip missed ticks rather than bursting to catch up
                    next_tick = now + self.tick_seconds
        logger.info("Session ended")
