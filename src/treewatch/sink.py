"""Line-oriented output of records."""

import sys
import threading
from typing import List, Optional, TextIO

from .models import OutputRecord


class LineSink:
    """
    Writes each record as one `kind|payload` line and flushes.

    Calls may come from several threads; each line is written atomically.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def __call__(self, record: OutputRecord) -> None:
        line = record.to_line()
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()


class CollectingSink:
    """Keeps records in memory, for embedding and tests."""

    def __init__(self):
        self.records: List[OutputRecord] = []
        self._lock = threading.Lock()

    def __call__(self, record: OutputRecord) -> None:
        with self._lock:
            self.records.append(record)

    def snapshot(self) -> List[OutputRecord]:
        """Copy of the records received so far."""
        with self._lock:
            return list(self.records)

    def clear(self) -> None:
        with self._lock:
            self.records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self.records)
