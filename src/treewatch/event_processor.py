"""Debouncing of raw filesystem events into normalized batches."""

import functools
import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from .config import WatcherConfig
from .models import FileEvent, RawFSEvent
from .normalizer import normalize_events, translate_raw_event


logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], None]

_STOP = object()


def timer_scheduler(delay: float, callback: Callable[[], None]) -> None:
    """Run `callback` once after `delay` seconds on a daemon timer thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()


class EventProcessor:
    """
    Buffers file events and emits them once the tree has been quiet.

    Every incoming event is appended to a buffer. The first event of a
    window schedules a flush `debounce_ms` later. When the flush fires and
    events arrived in the meantime, it schedules itself again instead of
    flushing, so events are only delivered after a full quiet period. A
    flush normalizes the whole buffer.

    Normalized batches and log messages are posted to an outbox in the order
    they were produced. A single emitter thread drains the outbox and calls
    `on_event` / `on_log`, so a slow consumer never holds up the threads
    calling `add()`.
    """

    def __init__(
        self,
        on_event: Callable[[FileEvent], None],
        on_log: Optional[Callable[[str], None]] = None,
        config: Optional[WatcherConfig] = None,
        root: Optional[Union[str, Path]] = None,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Optional[Scheduler] = None,
    ):
        """
        Initialize the event processor.

        Args:
            on_event: Sink for normalized events
            on_log: Sink for diagnostic messages
            config: Watcher configuration
            root: Watched root, used to translate moves that cross its boundary
            clock: Monotonic time source in seconds
            scheduler: Function running a callback after a delay in seconds
        """
        self.on_event = on_event
        self.on_log = on_log
        self.config = config or WatcherConfig()
        self.root = str(root) if root is not None else None
        self._clock = clock
        self._schedule = scheduler or timer_scheduler

        self._lock = threading.Lock()
        self._events: List[FileEvent] = []

        # Tokens instead of timestamps: equal clock readings cannot hide an event
        self._last_event_seq = 0
        self._scheduled_seq: Optional[int] = None
        self._generation = 0
        self._closed = False

        self._spam_window_start = 0.0
        self._spam_warning_logged = False

        self._outbox: Optional[queue.Queue] = None
        self._emitter: Optional[threading.Thread] = None
        self._delivery = threading.Condition()
        self._posted = 0
        self._delivered = 0

    def process(self, raw_event: RawFSEvent) -> None:
        """
        Process a raw filesystem event.

        Args:
            raw_event: The raw event from the filesystem watcher
        """
        for event in translate_raw_event(raw_event, self.root):
            self.add(event)

    def add(self, event: FileEvent) -> None:
        """
        Buffer one event and make sure a flush is scheduled.

        Args:
            event: The event to buffer
        """
        with self._lock:
            now = self._clock()

            if not self._events:
                self._spam_window_start = now
                self._spam_warning_logged = False
            elif (
                not self._spam_warning_logged
                and now - self._spam_window_start >= self.config.spam_warning_seconds
            ):
                self._spam_warning_logged = True
                message = (
                    f"Warning: Watcher is busy catching up with {len(self._events)} file "
                    f"changes in {self.config.spam_warning_seconds:g} seconds. "
                    f"Latest path is '{event.path}'"
                )
                logger.warning(message)
                self._post(message)

            self._events.append(event)
            self._last_event_seq += 1

            if self._scheduled_seq is None and not self._closed:
                self._schedule_flush()

    def log(self, message: str) -> None:
        """
        Queue a diagnostic message for `on_log`, in order with the batches.

        Args:
            message: Text of the message
        """
        with self._lock:
            self._post(message)

    def _schedule_flush(self) -> None:
        """Internal: arm a flush timer for the current window. Lock must be held."""
        self._scheduled_seq = self._last_event_seq
        self._schedule(
            self.config.debounce_seconds,
            functools.partial(self._on_timer, self._generation),
        )

    def _on_timer(self, generation: int) -> None:
        """Timer callback: flush if quiet, otherwise wait another full delay."""
        with self._lock:
            if generation != self._generation or self._scheduled_seq is None:
                return

            if self._scheduled_seq != self._last_event_seq:
                logger.debug("New events during debounce window, rescheduling flush")
                self._schedule_flush()
                return

            batch = self._take_batch()
            if batch:
                self._post(batch)

    def _take_batch(self) -> List[FileEvent]:
        """Internal: normalize and clear the buffer. Lock must be held."""
        events = self._events
        self._events = []
        self._scheduled_seq = None
        normalized = normalize_events(events)
        logger.debug(f"Flushing {len(events)} raw events as {len(normalized)} normalized events")
        return normalized

    def _post(self, item) -> None:
        """Internal: queue a batch or a message for the emitter. Lock must be held."""
        if self._outbox is None:
            self._outbox = queue.Queue()
            self._emitter = threading.Thread(
                target=self._run_emitter,
                args=(self._outbox,),
                name="treewatch-emitter",
                daemon=True,
            )
            self._emitter.start()

        with self._delivery:
            self._posted += 1
        self._outbox.put(item)

    def _run_emitter(self, outbox: queue.Queue) -> None:
        """Emitter thread: deliver outbox items in order until told to stop."""
        while True:
            item = outbox.get()
            if item is _STOP:
                return

            try:
                if isinstance(item, str):
                    if self.on_log:
                        self.on_log(item)
                else:
                    for event in item:
                        self.on_event(event)
            except Exception as e:
                logger.error(f"Error delivering records: {e}")
            finally:
                with self._delivery:
                    self._delivered += 1
                    self._delivery.notify_all()

    def wait_delivered(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until everything posted so far has been delivered.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely

        Returns:
            True if delivery caught up, False on timeout
        """
        if threading.current_thread() is self._emitter:
            return True
        with self._delivery:
            target = self._posted
            return self._delivery.wait_for(lambda: self._delivered >= target, timeout)

    def flush(self) -> List[FileEvent]:
        """
        Normalize and emit everything buffered right now.

        A flush timer still in flight is invalidated. Returns once the batch
        has been delivered.

        Returns:
            The events that were emitted
        """
        with self._lock:
            self._generation += 1
            batch = self._take_batch()
            if batch:
                self._post(batch)

        self.wait_delivered()
        return batch

    def close(self) -> List[FileEvent]:
        """
        Stop scheduling flushes, emit whatever is still buffered and stop
        the emitter thread.

        Returns:
            The events emitted by the final flush
        """
        with self._lock:
            self._closed = True
        batch = self.flush()

        with self._lock:
            outbox, emitter = self._outbox, self._emitter
            self._outbox = None
            self._emitter = None
            if outbox is not None:
                outbox.put(_STOP)

        if emitter is not None and emitter is not threading.current_thread():
            emitter.join(timeout=self.config.join_timeout)
        return batch

    def pending_count(self) -> int:
        """Get number of raw events waiting in the current window."""
        with self._lock:
            return len(self._events)

    @property
    def is_flush_scheduled(self) -> bool:
        with self._lock:
            return self._scheduled_seq is not None

    @property
    def is_closed(self) -> bool:
        return self._closed
