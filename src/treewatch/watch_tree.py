"""Thread-safe management of the watches covering one directory tree."""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from watchdog.observers import Observer

from .config import WatcherConfig
from .exceptions import PathNotFoundError, WatchInstallError, WatcherAlreadyRunningError
from .fs_watcher import FSEventHandler, WatchRegistration, install_watch
from .models import RawFSEvent
from .normalizer import is_within


logger = logging.getLogger(__name__)


def is_symlinked_dir(path: Union[str, Path]) -> bool:
    """Check whether `path` is a symbolic link that resolves to a directory."""
    return os.path.islink(path) and os.path.isdir(path)


class WatchTree:
    """
    Owns the native watches for one root directory.

    A recursive native watch does not descend into symbolic links, so every
    directory reachable through a symlink gets its own registration. New
    symlinked directories are picked up from created events and dropped on
    deleted events. All raw events are forwarded to `on_event` after the
    registrations have been updated.
    """

    def __init__(
        self,
        on_event: Callable[[RawFSEvent], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        config: Optional[WatcherConfig] = None,
        observer_factory: Callable = Observer,
    ):
        """
        Initialize the watch tree.

        Args:
            on_event: Receives every raw event from every registration
            on_error: Receives watch failures; they are never raised
            config: Watcher configuration
            observer_factory: Creates watchdog observers
        """
        self.on_event = on_event
        self.on_error = on_error
        self.config = config or WatcherConfig()
        self._observer_factory = observer_factory
        self._registrations: Dict[Path, WatchRegistration] = {}
        self._root: Optional[Path] = None
        self._running = False
        self._lock = threading.RLock()

    def start(self, root: Union[str, Path]) -> WatchRegistration:
        """
        Start watching a root directory and every symlinked directory below it.

        Args:
            root: Directory to watch

        Returns:
            The registration of the root watch

        Raises:
            PathNotFoundError: If root does not exist or is not a directory
            WatcherAlreadyRunningError: If the tree is already started
            WatchInstallError: If the root watch cannot be installed
        """
        root = Path(os.path.abspath(root))

        if not root.is_dir():
            raise PathNotFoundError(f"Path '{root}' does not exist.")

        with self._lock:
            if self._running:
                raise WatcherAlreadyRunningError(f"Already watching {self._root}")

            registration = install_watch(
                root,
                self._make_handler(),
                recursive=self.config.recursive,
                observer_factory=self._observer_factory,
                on_error=self._report,
            )
            self._root = root
            self._running = True
            self._registrations[root] = registration

            if self.config.follow_symlinks:
                self._scan(root, frozenset({os.path.realpath(root)}))

        logger.info(f"Watching {root} with {len(self)} registration(s)")
        return registration

    def stop(self) -> int:
        """
        Release every registration. Safe to call repeatedly.

        Returns:
            Number of registrations released
        """
        with self._lock:
            self._running = False
            released = list(self._registrations.values())
            self._registrations.clear()

        # Joins happen outside the lock; observer threads may be waiting on it
        for registration in released:
            registration.stop()
        for registration in released:
            registration.join(timeout=self.config.join_timeout)

        if released:
            logger.info(f"Released {len(released)} watch(es)")
        return len(released)

    def _make_handler(self) -> FSEventHandler:
        return FSEventHandler(self._on_raw_event, self.config, self._report)

    def _report(self, error: Exception) -> None:
        logger.error(str(error))
        if self.on_error:
            self.on_error(error)

    def _on_raw_event(self, raw_event: RawFSEvent) -> None:
        """Update registrations for the event, then forward it."""
        if raw_event.event_type == "created":
            self._on_created(raw_event.src_path)
        elif raw_event.event_type == "deleted":
            self._on_deleted(raw_event.src_path)
        elif raw_event.event_type == "moved":
            self._on_deleted(raw_event.src_path)
            self._on_created(raw_event.dest_path)

        self.on_event(raw_event)

    def _on_created(self, path: Path) -> None:
        if not self.config.follow_symlinks or not is_symlinked_dir(path):
            return

        with self._lock:
            if not self._running or path in self._registrations:
                return
            self._register(path, self._ancestor_chain(path))

    def _on_deleted(self, path: Path) -> None:
        with self._lock:
            doomed: List[WatchRegistration] = []

            registration = self._registrations.pop(path, None)
            if registration is not None:
                doomed.append(registration)

            if self.config.cascade_release:
                for nested in [p for p in self._registrations if is_within(p, path)]:
                    doomed.append(self._registrations.pop(nested))

        for registration in doomed:
            logger.info(f"Releasing watch on deleted path {registration.path}")
            registration.release(timeout=self.config.join_timeout)

    def _ancestor_chain(self, path: Path) -> FrozenSet[str]:
        """Canonical paths of the directories from the root down to path's parent."""
        chain = set()
        current = path.parent
        while True:
            chain.add(os.path.realpath(current))
            if self._root is None or current == self._root or current == current.parent:
                break
            current = current.parent
        return frozenset(chain)

    def _register(self, path: Path, chain: FrozenSet[str]) -> Optional[WatchRegistration]:
        """
        Install a watch on a symlinked directory and scan below it.

        Must be called with the lock held.

        Args:
            path: The symlinked directory
            chain: Canonical paths of the directories enclosing path

        Returns:
            The new registration, or None if it was skipped or failed
        """
        target = os.path.realpath(path)
        if target in chain:
            logger.warning(f"Not following symlink cycle at {path} -> {target}")
            return None

        try:
            registration = install_watch(
                path,
                self._make_handler(),
                recursive=self.config.recursive,
                observer_factory=self._observer_factory,
                on_error=self._report,
            )
        except WatchInstallError as e:
            self._report(e)
            return None

        self._registrations[path] = registration
        logger.info(f"Watching symlinked directory {path} -> {target}")

        self._scan(path, chain | {target})
        return registration

    def _scan(self, directory: Path, chain: FrozenSet[str]) -> None:
        """
        Register every symlinked directory below `directory`.

        Plain subdirectories are already covered by the enclosing recursive
        watch and are only descended into. Must be called with the lock held.

        The walk visits every directory below `directory`, so its cost grows
        with the size of the subtree. Registration changes and event
        interception on other threads wait for it to finish.

        Args:
            directory: Directory to scan
            chain: Canonical paths of directory and its enclosing directories
        """
        try:
            entries = list(os.scandir(directory))
        except OSError as e:
            logger.debug(f"Cannot scan {directory}: {e}")
            return

        for entry in entries:
            path = Path(entry.path)
            try:
                if not entry.is_dir(follow_symlinks=True):
                    continue
                is_link = entry.is_symlink()
            except OSError:
                continue

            if is_link:
                if path not in self._registrations:
                    self._register(path, chain)
            else:
                self._scan(path, chain | {os.path.realpath(path)})

    def is_watching(self, path: Union[str, Path]) -> bool:
        """
        Check if a directory has its own registration.

        Args:
            path: Path to check

        Returns:
            True if the path is registered
        """
        with self._lock:
            return Path(os.path.abspath(path)) in self._registrations

    def get_watched_paths(self) -> List[Path]:
        """
        Get the registered directories.

        Returns:
            List of registered paths, root first
        """
        with self._lock:
            return list(self._registrations.keys())

    @property
    def root(self) -> Optional[Path]:
        return self._root

    @property
    def is_running(self) -> bool:
        return self._running

    def __len__(self) -> int:
        """Return the number of active registrations."""
        with self._lock:
            return len(self._registrations)

    def __contains__(self, path) -> bool:
        return self.is_watching(path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False


def start_watch_tree(
    root: Union[str, Path],
    on_event: Callable[[RawFSEvent], None],
    on_error: Optional[Callable[[Exception], None]] = None,
    config: Optional[WatcherConfig] = None,
) -> WatchTree:
    """
    Create a WatchTree and start it on `root`.

    Raises:
        PathNotFoundError: If root does not exist
    """
    tree = WatchTree(on_event, on_error, config)
    tree.start(root)
    return tree
