"""Data models for the treewatch package."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union
import time


class ChangeType(Enum):
    """Kinds of output records. Values are part of the line protocol."""
    CHANGED = 0
    CREATED = 1
    DELETED = 2
    LOG = 3

    @property
    def label(self) -> str:
        """Short tag used in verbose diagnostics."""
        return _LABELS[self]


_LABELS = {
    ChangeType.CHANGED: "[CHANGED]",
    ChangeType.CREATED: "[ADDED]",
    ChangeType.DELETED: "[DELETED]",
    ChangeType.LOG: "[LOG]",
}


@dataclass(frozen=True)
class FileEvent:
    """
    A normalized change to a single path.

    Attributes:
        change_type: CHANGED, CREATED or DELETED
        path: Absolute path of the affected entry
    """
    change_type: ChangeType
    path: str

    def __post_init__(self):
        if self.change_type is ChangeType.LOG:
            raise ValueError("FileEvent cannot carry LOG; use LogRecord")

    def to_line(self) -> str:
        """Serialize as a `kind|path` protocol line (without newline)."""
        return f"{self.change_type.value}|{self.path}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "change_type": self.change_type.value,
            "path": self.path,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileEvent":
        """Create from dictionary."""
        return cls(
            change_type=ChangeType(data["change_type"]),
            path=data["path"],
        )


@dataclass(frozen=True)
class LogRecord:
    """A diagnostic message interleaved with the event stream."""
    message: str

    @property
    def change_type(self) -> ChangeType:
        return ChangeType.LOG

    def to_line(self) -> str:
        # Messages must stay on one protocol line
        return f"{ChangeType.LOG.value}|{' '.join(self.message.splitlines())}"

    def to_dict(self) -> dict:
        return {
            "change_type": ChangeType.LOG.value,
            "message": self.message,
        }


OutputRecord = Union[FileEvent, LogRecord]


@dataclass
class RawFSEvent:
    """
    Raw event from the filesystem watcher before processing.

    Attributes:
        event_type: Raw event type string (created, deleted, modified, moved)
        src_path: Source path of the event
        dest_path: Destination path (for move events)
        is_directory: Whether this is a directory event
        timestamp: Unix timestamp when the event occurred
    """
    event_type: str
    src_path: Path
    dest_path: Optional[Path] = None
    is_directory: bool = False
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.event_type not in RAW_EVENT_TYPES:
            raise ValueError(f"unknown raw event type: {self.event_type}")
        if self.event_type == "moved" and self.dest_path is None:
            raise ValueError("moved events need a dest_path")


RAW_EVENT_TYPES = frozenset({"created", "deleted", "modified", "moved"})
