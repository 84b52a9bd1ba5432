#!/usr/bin/env python3
"""
Progress tracking.
Maps exercise ids to pending/done and persists the record as a small JSON
file. Writes go to a temp file in the same directory and are renamed over
the old record, so an interrupted write never loses earlier progress.
"""

import json
import os
import tempfile
from typing import Iterable, Optional

from loguru import logger

from ..errors import PersistenceError
from .state import ProgressRecord, ProgressStatus


class ProgressTracker:
    """
    Owns the ProgressRecord.

    Every mutation persists immediately. If persisting fails the record stays
    dirty in memory and the write is retried on the next mutation or on
    `flush()` at shutdown.
    """

    def __init__(self, path: str, exercise_ids: Optional[Iterable[str]] = None):
        self.path = os.path.abspath(path)
        self.exercise_ids = list(exercise_ids or [])
        self.record = ProgressRecord()
        self.dirty = False
        self.last_error: Optional[str] = None

    def load(self) -> ProgressRecord:
        """Read the record from disk; a missing file is an empty record"""
        record = ProgressRecord()
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            data = {}
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Could not read progress from {}: {}", self.path, e)
            data = {}

        if not isinstance(data, dict):
            data = {}
        statuses = data.get('exercises', {})
        if isinstance(statuses, dict):
            for exercise_id, value in statuses.items():
                try:
                    record.statuses[str(exercise_id)] = ProgressStatus(value)
                except ValueError:
                    logger.warning("Ignoring unknown status {!r} for {}", value, exercise_id)
        current = data.get('current')
        record.current = current if isinstance(current, str) else None

        for exercise_id in self.exercise_ids:
            record.statuses.setdefault(exercise_id, ProgressStatus.PENDING)

        self.record = record
        self.dirty = False
        return record

    def is_done(self, exercise_id: str) -> bool:
        return self.record.is_done(exercise_id)

    def done_count(self) -> int:
        return self.record.done_count()

    def mark_done(self, exercise_id: str) -> bool:
        """Mark an exercise done. Idempotent; returns True if it changed."""
        return self._set(exercise_id, ProgressStatus.DONE)

    def mark_pending(self, exercise_id: str) -> bool:
        return self._set(exercise_id, ProgressStatus.PENDING)

    def set_current(self, exercise_id: Optional[str]):
        if self.record.current != exercise_id:
            self.record.current = exercise_id
            self.dirty = True
            self._try_persist()

    def _set(self, exercise_id: str, status: ProgressStatus) -> bool:
        changed = self.record.statuses.get(exercise_id) != status
        if changed:
            self.record.statuses[exercise_id] = status
            self.dirty = True
        if self.dirty:
            self._try_persist()
        return changed

    def _try_persist(self):
        try:
            self.persist()
        except PersistenceError as e:
            self.last_error = str(e)
            logger.error("{}", e)

    def flush(self) -> bool:
        """Persist if anything is unsaved; False if the write still fails"""
        if self.dirty:
            self._try_persist()
        return not self.dirty

    def persist(self):
        """Write the full record atomically; raises PersistenceError"""
        data = {
            'current': self.record.current,
            'exercises': {k: v.value for k, v in self.record.statuses.items()},
        }
        directory = os.path.dirname(self.path) or '.'
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix='.progress-', suffix='.tmp', dir=directory)
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise PersistenceError(f"Could not save progress to {self.path}: {e}")
        finally:
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        self.dirty = False
        self.last_error = None
        logger.debug("Progress saved ({} done)", self.done_count())
