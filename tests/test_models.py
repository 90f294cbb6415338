"""Tests for models module."""

import pytest
import time
from pathlib import Path

from src.treewatch.models import (
    ChangeType,
    FileEvent,
    LogRecord,
    RawFSEvent,
)


class TestChangeType:
    """Tests for ChangeType enum."""

    def test_wire_values(self):
        assert ChangeType.CHANGED.value == 0
        assert ChangeType.CREATED.value == 1
        assert ChangeType.DELETED.value == 2
        assert ChangeType.LOG.value == 3

    def test_from_value(self):
        assert ChangeType(1) == ChangeType.CREATED

    def test_labels(self):
        assert ChangeType.CREATED.label == "[ADDED]"
        assert ChangeType.DELETED.label == "[DELETED]"
        assert ChangeType.CHANGED.label == "[CHANGED]"


class TestFileEvent:
    """Tests for FileEvent dataclass."""

    def test_to_line(self):
        event = FileEvent(ChangeType.DELETED, "/data/root/a.txt")
        assert event.to_line() == "2|/data/root/a.txt"

    def test_frozen(self):
        event = FileEvent(ChangeType.CREATED, "/a")
        with pytest.raises(AttributeError):
            event.path = "/b"

    def test_equality(self):
        assert FileEvent(ChangeType.CREATED, "/a") == FileEvent(ChangeType.CREATED, "/a")
        assert FileEvent(ChangeType.CREATED, "/a") != FileEvent(ChangeType.CHANGED, "/a")

    def test_log_type_rejected(self):
        with pytest.raises(ValueError):
            FileEvent(ChangeType.LOG, "/a")

    def test_dict_round_trip(self):
        event = FileEvent(ChangeType.CHANGED, "/a/b")
        data = event.to_dict()

        assert data == {"change_type": 0, "path": "/a/b"}
        assert FileEvent.from_dict(data) == event


class TestLogRecord:
    """Tests for LogRecord dataclass."""

    def test_change_type(self):
        assert LogRecord("hello").change_type is ChangeType.LOG

    def test_to_line(self):
        assert LogRecord("watch failed").to_line() == "3|watch failed"

    def test_multiline_message_kept_on_one_line(self):
        record = LogRecord("Traceback:\n  line one\n  line two")
        assert "\n" not in record.to_line()
        assert record.to_line().startswith("3|Traceback:")

    def test_to_dict(self):
        assert LogRecord("x").to_dict() == {"change_type": 3, "message": "x"}


class TestRawFSEvent:
    """Tests for RawFSEvent dataclass."""

    def test_defaults(self, tmp_path):
        before = time.time()
        event = RawFSEvent("created", tmp_path / "a.txt")

        assert event.dest_path is None
        assert event.is_directory is False
        assert event.timestamp >= before

    def test_unknown_type_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            RawFSEvent("opened", tmp_path / "a.txt")

    def test_moved_requires_dest(self, tmp_path):
        with pytest.raises(ValueError):
            RawFSEvent("moved", tmp_path / "a.txt")
