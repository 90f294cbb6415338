"""Tests for output sinks."""

import io
import threading

from src.treewatch.models import ChangeType, FileEvent, LogRecord
from src.treewatch.sink import CollectingSink, LineSink


class TestLineSink:
    """Tests for LineSink class."""

    def test_writes_event_line(self):
        stream = io.StringIO()
        sink = LineSink(stream)

        sink(FileEvent(ChangeType.CREATED, "/r/a.txt"))

        assert stream.getvalue() == "1|/r/a.txt\n"

    def test_writes_log_line(self):
        stream = io.StringIO()
        sink = LineSink(stream)

        sink(LogRecord("first\nsecond"))

        assert stream.getvalue() == "3|first second\n"

    def test_lines_in_order(self):
        stream = io.StringIO()
        sink = LineSink(stream)

        sink(FileEvent(ChangeType.DELETED, "/r/gone"))
        sink(FileEvent(ChangeType.CHANGED, "/r/mod"))

        assert stream.getvalue().splitlines() == ["2|/r/gone", "0|/r/mod"]

    def test_concurrent_writes_do_not_interleave(self):
        stream = io.StringIO()
        sink = LineSink(stream)

        def write(worker):
            for i in range(100):
                sink(FileEvent(ChangeType.CHANGED, f"/r/{worker}/{i}"))

        threads = [threading.Thread(target=write, args=(w,)) for w in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        lines = stream.getvalue().splitlines()
        assert len(lines) == 400
        assert all(line.startswith("0|/r/") for line in lines)


class TestCollectingSink:
    """Tests for CollectingSink class."""

    def test_collects_records(self):
        sink = CollectingSink()

        sink(FileEvent(ChangeType.CREATED, "/r/a"))
        sink(LogRecord("note"))

        assert len(sink) == 2
        assert sink.snapshot() == [FileEvent(ChangeType.CREATED, "/r/a"), LogRecord("note")]

    def test_snapshot_is_a_copy(self):
        sink = CollectingSink()
        sink(LogRecord("note"))

        snapshot = sink.snapshot()
        snapshot.clear()

        assert len(sink) == 1

    def test_clear(self):
        sink = CollectingSink()
        sink(LogRecord("note"))

        sink.clear()

        assert len(sink) == 0
