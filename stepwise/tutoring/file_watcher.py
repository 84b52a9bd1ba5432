#!/usr/bin/env python3
"""
File watcher for the active exercise.
Monitors exactly one file and reports out-of-band edits, coalescing bursts
of notifications (editors often write a file several times per save).
"""

import os
import threading
from typing import Callable, Optional

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer


class Debouncer:
    """
    Trailing-edge debounce: `trigger()` may be called many times; `callback`
    runs once, `delay` seconds after the last call.
    """

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def trigger(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self):
        with self._lock:
            self._timer = None
        self.callback()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None


class ExerciseFileHandler(FileSystemEventHandler):
    """Filters directory events down to the one watched path"""

    def __init__(self, filepath: str, on_event: Callable[[], None]):
        super().__init__()
        self.filepath = os.path.abspath(filepath)
        self.on_event = on_event

    def _matches(self, event) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, 'dest_path', '')]
        return any(p and os.path.abspath(p) == self.filepath for p in paths)

    def on_modified(self, event):
        """Called when a file in the watched directory is modified"""
        if self._matches(event):
            self.on_event()

    def on_created(self, event):
        # editors that save via rename show up as create or move
        if self._matches(event):
            self.on_event()

    def on_moved(self, event):
        if self._matches(event):
            self.on_event()

    def on_deleted(self, event):
        if self._matches(event):
            self.on_event()


class FileWatcher:
    """
    Manages the watching process for the active exercise.

    `on_change(path)` fires once per debounced burst. `on_error(message)`
    fires if the notification backend fails; watching is stopped first.
    Both callbacks run on background threads.
    """

    def __init__(
        self,
        on_change: Callable[[str], None],
        on_error: Optional[Callable[[str], None]] = None,
        debounce_seconds: float = 0.3,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.on_change = on_change
        self.on_error = on_error
        self.debounce_seconds = debounce_seconds
        self.observer_factory = observer_factory
        self.filepath: Optional[str] = None
        self.observer = None
        self.debouncer: Optional[Debouncer] = None
        self._lock = threading.RLock()

    @property
    def watching(self) -> bool:
        return self.observer is not None

    def watch(self, filepath: str):
        """Start watching `filepath`, replacing any previous subscription"""
        with self._lock:
            self._watch(filepath)

    def _watch(self, filepath: str):
        self._stop()
        self.filepath = os.path.abspath(filepath)
        path = self.filepath
        self.debouncer = Debouncer(self.debounce_seconds, lambda: self._settled(path))
        handler = ExerciseFileHandler(path, self.debouncer.trigger)

        observer = self.observer_factory()
        try:
            observer.schedule(handler, path=os.path.dirname(path), recursive=False)
            observer.start()
        except (OSError, RuntimeError) as e:
            self.debouncer.cancel()
            self.debouncer = None
            self._fail(f"Cannot watch {os.path.basename(path)}: {e}")
            return

        self.observer = observer
        logger.info("Watching {}", path)

    def stop(self):
        """Stop watching; safe to call when not watching"""
        with self._lock:
            self._stop()

    def _stop(self):
        if self.debouncer is not None:
            self.debouncer.cancel()
            self.debouncer = None
        observer, self.observer = self.observer, None
        if observer is not None:
            observer.stop()
            if observer.is_alive():
                observer.join(timeout=2.0)
            logger.debug("Stopped watching {}", self.filepath)

    def _settled(self, path: str):
        """End of a burst: report the change, or give up if the file is gone"""
        if path != self.filepath or not self.watching:
            return
        if not os.path.exists(path):
            self._fail(f"{os.path.basename(path)} was removed")
            return
        self.on_change(path)

    def _fail(self, message: str):
        logger.warning("File watcher stopped: {}", message)
        self.stop()
        if self.on_error is not None:
            self.on_error(message)
