#!/usr/bin/env python3
"""
Test suite for progress tracking and its on-disk record.
"""

import json
import os
from unittest.mock import patch

from stepwise.tutoring import ProgressStatus, ProgressTracker


IDS = ['intro1', 'intro2', 'intro3']


class TestLoad:
    """Tests for reading the progress file"""

    def test_missing_file_is_all_pending(self, tmp_path):
        """Test a fresh directory starts with every exercise pending"""
        tracker = ProgressTracker(str(tmp_path / 'progress.json'), IDS)
        record = tracker.load()
        assert record.statuses == {i: ProgressStatus.PENDING for i in IDS}
        assert record.current is None
        assert tracker.done_count() == 0

    def test_corrupt_file_is_empty(self, tmp_path):
        """Test an unreadable record falls back to an empty one"""
        path = tmp_path / 'progress.json'
        path.write_text('{not json')
        tracker = ProgressTracker(str(path), IDS)
        assert tracker.load().done_count() == 0

    def test_unknown_status_ignored(self, tmp_path):
        """Test unknown status values are dropped"""
        path = tmp_path / 'progress.json'
        path.write_text(json.dumps({'exercises': {'intro1': 'done', 'intro2': 'halfway'}}))
        tracker = ProgressTracker(str(path), IDS)
        tracker.load()
        assert tracker.is_done('intro1')
        assert tracker.record.statuses['intro2'] == ProgressStatus.PENDING


class TestPersist:
    """Tests for saving progress"""

    def test_round_trip(self, tmp_path):
        """Test a saved record reads back identically"""
        path = str(tmp_path / 'progress.json')
        tracker = ProgressTracker(path, IDS)
        tracker.load()
        tracker.mark_done('intro2')
        tracker.set_current('intro3')

        reloaded = ProgressTracker(path, IDS)
        record = reloaded.load()
        assert record.is_done('intro2')
        assert not record.is_done('intro1')
        assert record.current == 'intro3'

    def test_mark_done_is_idempotent(self, tmp_path):
        """Test marking twice changes nothing the second time"""
        tracker = ProgressTracker(str(tmp_path / 'progress.json'), IDS)
        tracker.load()
        assert tracker.mark_done('intro1') is True
        assert tracker.mark_done('intro1') is False
        assert tracker.done_count() == 1

    def test_mark_pending_after_done(self, tmp_path):
        tracker = ProgressTracker(str(tmp_path / 'progress.json'), IDS)
        tracker.load()
        tracker.mark_done('intro1')
        assert tracker.mark_pending('intro1') is True
        assert not tracker.is_done('intro1')

    def test_no_temp_files_left(self, tmp_path):
        """Test the atomic write leaves only the record behind"""
        tracker = ProgressTracker(str(tmp_path / 'progress.json'), IDS)
        tracker.load()
        tracker.mark_done('intro1')
        tracker.mark_done('intro3')
        assert os.listdir(tmp_path) == ['progress.json']

    def test_creates_missing_directory(self, tmp_path):
        """Test the record's directory is created on first save"""
        path = tmp_path / 'nested' / 'progress.json'
        tracker = ProgressTracker(str(path), IDS)
        tracker.load()
        tracker.mark_done('intro1')
        assert path.exists()


class TestFailedWrites:
    """Tests for keeping progress when the disk refuses a write"""

    def test_failed_write_keeps_old_record_and_retries(self, tmp_path):
        """Test a failed rename keeps the previous file and stays dirty"""
        path = tmp_path / 'progress.json'
        tracker = ProgressTracker(str(path), IDS)
        tracker.load()
        tracker.mark_done('intro1')
        before = path.read_text()

        with patch('stepwise.tutoring.progress.os.replace', side_effect=OSError('disk full')):
            assert tracker.mark_done('intro2') is True
            assert tracker.dirty
            assert 'disk full' in tracker.last_error
            assert tracker.flush() is False

        assert path.read_text() == before
        assert os.listdir(tmp_path) == ['progress.json']

        assert tracker.flush() is True
        assert not tracker.dirty
        assert ProgressTracker(str(path), IDS).load().is_done('intro2')

    def test_retry_on_next_mutation(self, tmp_path):
        """Test an unchanged mark still retries a pending write"""
        path = tmp_path / 'progress.json'
        tracker = ProgressTracker(str(path), IDS)
        tracker.load()
        with patch('stepwise.tutoring.progress.os.replace', side_effect=OSError('busy')):
            tracker.mark_done('intro1')
        assert tracker.mark_done('intro1') is False
        assert not tracker.dirty
        assert ProgressTracker(str(path), IDS).load().is_done('intro1')
