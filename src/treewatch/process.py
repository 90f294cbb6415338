"""Main orchestrator wiring the watch tree to the event processor and a sink."""

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

from .config import WatcherConfig
from .event_processor import EventProcessor, Scheduler
from .exceptions import WatcherAlreadyRunningError
from .models import FileEvent, LogRecord, OutputRecord, RawFSEvent
from .normalizer import translate_raw_event
from .watch_tree import WatchTree


logger = logging.getLogger(__name__)


class TreeWatcher:
    """
    Watches one directory tree and delivers normalized records to a sink.

    Raw events flow from the watch tree into the event processor; the
    processor's normalized FileEvents and any diagnostics (watch failures,
    event spam warnings, verbose echoes) reach `sink` as output records.
    """

    def __init__(
        self,
        root: Union[str, Path],
        sink: Callable[[OutputRecord], None],
        config: Optional[WatcherConfig] = None,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize the watcher.

        Args:
            root: Directory to watch recursively
            sink: Receives every output record, one call per record
            config: Watcher configuration
            scheduler: Delayed-callback runner for the event processor
        """
        self.config = config or WatcherConfig()
        self.root = Path(root).absolute()
        self.sink = sink

        self._scheduler = scheduler
        self._processor = self._make_processor()
        self._tree = WatchTree(
            self._on_raw_event,
            self._on_error,
            self.config,
        )
        self._running = False
        self._lock = threading.Lock()

    def _make_processor(self) -> EventProcessor:
        return EventProcessor(
            self._on_normalized,
            self._on_log,
            self.config,
            root=self.root,
            scheduler=self._scheduler,
        )

    def _on_raw_event(self, raw_event: RawFSEvent) -> None:
        if self.config.verbose:
            for event in translate_raw_event(raw_event, self.root):
                self._processor.log(f"{event.change_type.label} {event.path}")
        self._processor.process(raw_event)

    def _on_normalized(self, event: FileEvent) -> None:
        self.sink(event)
        if self.config.verbose:
            self._on_log(f" >> normalized {event.change_type.label} {event.path}")

    def _on_log(self, message: str) -> None:
        self.sink(LogRecord(message))

    def _on_error(self, error: Exception) -> None:
        self._processor.log(str(error))

    def start(self) -> None:
        """
        Start watching.

        Raises:
            PathNotFoundError: If the root does not exist
            WatcherAlreadyRunningError: If already running
        """
        with self._lock:
            if self._running:
                raise WatcherAlreadyRunningError("Watcher is already running")
            if self._processor.is_closed:
                self._processor = self._make_processor()
            self._tree.start(self.root)
            self._running = True

    def stop(self) -> List[FileEvent]:
        """
        Stop watching and deliver any events still buffered.

        Returns:
            The events delivered by the final flush
        """
        with self._lock:
            if not self._running:
                return []
            self._running = False

        self._tree.stop()
        return self._processor.close()

    def wait_delivered(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every record produced so far has reached the sink.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely

        Returns:
            True if delivery caught up, False on timeout
        """
        return self._processor.wait_delivered(timeout)

    def get_watched_paths(self) -> List[Path]:
        """Directories with their own native watch, root first."""
        return self._tree.get_watched_paths()

    @property
    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
