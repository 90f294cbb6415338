"""File system watches using the watchdog library."""

import functools
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.events import (
    FileSystemEventHandler,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
)

from .config import WatcherConfig
from .exceptions import WatchInstallError, WatchLostError
from .models import RawFSEvent


logger = logging.getLogger(__name__)

WATCHED_EVENT_TYPES = (
    FileCreatedEvent,
    DirCreatedEvent,
    FileDeletedEvent,
    DirDeletedEvent,
    FileModifiedEvent,
    DirModifiedEvent,
    FileMovedEvent,
    DirMovedEvent,
)


class FSEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to RawFSEvent."""

    def __init__(
        self,
        callback: Callable[[RawFSEvent], None],
        config: WatcherConfig,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        super().__init__()
        self.callback = callback
        self.config = config
        self.on_error = on_error

    def dispatch(self, event):
        # An exception escaping here would kill the observer thread
        try:
            super().dispatch(event)
        except Exception as e:
            logger.error(f"Error handling {event.event_type} event for {event.src_path}: {e}")
            if self.on_error is None:
                raise
            self.on_error(e)

    def _should_ignore(self, path: str) -> bool:
        """Check if the path should be ignored."""
        return self.config.should_ignore(Path(path))

    def _emit(self, event_type: str, src_path: Path, dest_path: Optional[Path] = None, is_directory: bool = False):
        """Emit a RawFSEvent to the callback."""
        if self._should_ignore(str(src_path)):
            return
        if dest_path and self._should_ignore(str(dest_path)):
            return

        raw_event = RawFSEvent(
            event_type=event_type,
            src_path=src_path,
            dest_path=dest_path,
            is_directory=is_directory,
            timestamp=time.time(),
        )
        self.callback(raw_event)

    def on_created(self, event):
        is_dir = isinstance(event, DirCreatedEvent)
        self._emit("created", Path(event.src_path), is_directory=is_dir)

    def on_deleted(self, event):
        is_dir = isinstance(event, DirDeletedEvent)
        self._emit("deleted", Path(event.src_path), is_directory=is_dir)

    def on_modified(self, event):
        is_dir = isinstance(event, DirModifiedEvent)
        self._emit("modified", Path(event.src_path), is_directory=is_dir)

    def on_moved(self, event):
        is_dir = isinstance(event, DirMovedEvent)
        self._emit(
            "moved",
            Path(event.src_path),
            Path(event.dest_path),
            is_directory=is_dir,
        )


@dataclass
class WatchRegistration:
    """
    An active native watch on one directory.

    Attributes:
        path: Directory the watch is bound to, as reported in events
        observer: The watchdog observer thread owning the watch
        watch: The scheduled watch
    """
    path: Path
    observer: BaseObserver
    watch: ObservedWatch

    def stop(self) -> None:
        """Signal the observer to stop; does not wait."""
        self.observer.stop()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the observer thread to exit."""
        # Releasing from inside the observer's own dispatch thread cannot join
        if self.observer is threading.current_thread():
            return
        if self.observer.is_alive():
            self.observer.join(timeout=timeout)

    def release(self, timeout: Optional[float] = None) -> None:
        """Stop the observer and wait for it."""
        self.stop()
        self.join(timeout)

    @property
    def is_active(self) -> bool:
        return self.observer.is_alive()


def _run_supervised(run, emitter, path, on_error) -> None:
    try:
        run()
    except Exception as e:
        if not emitter.should_keep_running():
            logger.debug(f"Emitter for {path} failed while stopping: {e}")
            return
        error = WatchLostError(path, f"Watch on '{path}' stopped: {e}")
        logger.error(str(error))
        on_error(error)


def supervise_emitters(
    observer: BaseObserver,
    path: Path,
    on_error: Callable[[Exception], None],
) -> None:
    """
    Report emitters of `observer` that die while they should still be running.

    Must be called after scheduling and before the observer is started.
    """
    for emitter in observer.emitters:
        emitter.run = functools.partial(_run_supervised, emitter.run, emitter, path, on_error)


def install_watch(
    path: Path,
    handler: FileSystemEventHandler,
    recursive: bool = True,
    observer_factory: Callable[[], BaseObserver] = Observer,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> WatchRegistration:
    """
    Start a dedicated observer watching `path`.

    Args:
        path: Directory to watch
        handler: Handler receiving the observer's events
        recursive: Whether subdirectories are covered
        observer_factory: Creates the observer (overridable for tests)
        on_error: Receives a WatchLostError if the watch dies later on

    Returns:
        The registration owning the running observer

    Raises:
        WatchInstallError: If the native watch cannot be created
    """
    observer = observer_factory()
    observer.name = f"treewatch:{path}"

    try:
        # An explicit filter also keeps inotify following a symlinked watch root
        watch = observer.schedule(
            handler,
            str(path),
            recursive=recursive,
            event_filter=list(WATCHED_EVENT_TYPES),
        )
        if on_error is not None:
            supervise_emitters(observer, path, on_error)
        observer.start()
    except OSError as e:
        raise WatchInstallError(path, f"Failed to watch '{path}': {e}") from e

    logger.debug(f"Installed watch on {path}")
    return WatchRegistration(path=path, observer=observer, watch=watch)
