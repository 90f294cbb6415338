"""
treewatch

Watches one directory tree and turns raw filesystem notifications into a
small, stable stream of change events.

Features:
- Recursive watch on the root plus one watch per symlinked directory
- Nested watches installed and released as symlinks come and go
- Debounced delivery after a quiet period
- Per-path collapsing of duplicate and contradictory events
- One DELETED for a removed folder instead of one per contained file
- Line protocol output: CHANGED=0, CREATED=1, DELETED=2, LOG=3
"""

from .models import (
    ChangeType,
    FileEvent,
    LogRecord,
    OutputRecord,
    RawFSEvent,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    PathNotFoundError,
    WatchInstallError,
    WatchLostError,
    WatcherAlreadyRunningError,
)

from .normalizer import normalize_events, translate_raw_event
from .fs_watcher import FSEventHandler, WatchRegistration
from .watch_tree import WatchTree, start_watch_tree
from .event_processor import EventProcessor
from .sink import LineSink, CollectingSink
from .process import TreeWatcher


__all__ = [
    # Models
    "ChangeType",
    "FileEvent",
    "LogRecord",
    "OutputRecord",
    "RawFSEvent",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "PathNotFoundError",
    "WatchInstallError",
    "WatchLostError",
    "WatcherAlreadyRunningError",
    # Components
    "normalize_events",
    "translate_raw_event",
    "FSEventHandler",
    "WatchRegistration",
    "WatchTree",
    "start_watch_tree",
    "EventProcessor",
    "LineSink",
    "CollectingSink",
    # Main
    "TreeWatcher",
]

__version__ = "0.1.0"
