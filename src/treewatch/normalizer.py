"""Normalization of the events collected during one debounce window."""

import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .models import ChangeType, FileEvent, RawFSEvent


_SIMPLE_TYPES = {
    "created": ChangeType.CREATED,
    "deleted": ChangeType.DELETED,
    "modified": ChangeType.CHANGED,
}


def is_within(path: Union[str, Path], root: Union[str, Path], sep: str = os.sep) -> bool:
    """
    Check whether `path` is `root` itself or lies below it.

    The comparison is on path strings and only matches at a separator
    boundary, so /data/foo is not considered inside /data/fo.
    """
    path_str = str(path)
    root_str = str(root).rstrip(sep) or sep
    if path_str == root_str:
        return True
    prefix = root_str if root_str.endswith(sep) else root_str + sep
    return path_str.startswith(prefix)


def translate_raw_event(
    raw_event: RawFSEvent,
    root: Optional[Union[str, Path]] = None,
    sep: str = os.sep,
) -> List[FileEvent]:
    """
    Convert a raw event into zero, one or two FileEvents.

    A move becomes a CREATED for the destination and a DELETED for the
    source, each only if that end lies within `root`. Without a root both
    halves are kept.

    Args:
        raw_event: Event reported by the filesystem watcher
        root: The watched root directory
        sep: Path separator used for the containment check

    Returns:
        FileEvents in the order they should be buffered
    """
    if raw_event.event_type != "moved":
        return [FileEvent(_SIMPLE_TYPES[raw_event.event_type], str(raw_event.src_path))]

    events = []
    dest = raw_event.dest_path
    if dest is not None and (root is None or is_within(dest, root, sep)):
        events.append(FileEvent(ChangeType.CREATED, str(dest)))
    if root is None or is_within(raw_event.src_path, root, sep):
        events.append(FileEvent(ChangeType.DELETED, str(raw_event.src_path)))
    return events


def _merge(existing: ChangeType, new: ChangeType) -> Optional[ChangeType]:
    """Combine two change types seen for one path; None drops the path."""
    if existing is ChangeType.CREATED and new is ChangeType.DELETED:
        return None
    if existing is ChangeType.DELETED and new is ChangeType.CREATED:
        # Replaced in place (e.g. atomic save)
        return ChangeType.CHANGED
    if existing is ChangeType.CREATED and new is ChangeType.CHANGED:
        return ChangeType.CREATED
    return new


def deduplicate(events: Iterable[FileEvent]) -> Dict[str, ChangeType]:
    """
    Collapse events to one change type per path.

    Rules, applied in arrival order:
    - CREATED then DELETED -> path dropped
    - DELETED then CREATED -> CHANGED
    - CREATED then CHANGED -> CREATED
    - anything else -> latest change type wins

    Returns:
        Mapping of path to change type, ordered by first appearance
    """
    merged: Dict[str, ChangeType] = {}

    for event in events:
        if event.path not in merged:
            merged[event.path] = event.change_type
            continue

        result = _merge(merged[event.path], event.change_type)
        if result is None:
            del merged[event.path]
        else:
            merged[event.path] = result

    return merged


def normalize_events(events: Iterable[FileEvent], sep: str = os.sep) -> List[FileEvent]:
    """
    Normalize the events of one debounce window.

    After per-path deduplication, DELETED entries that lie inside a directory
    which is itself reported deleted are dropped, so deleting a folder yields
    a single event rather than one per contained file.

    Args:
        events: Events in arrival order
        sep: Path separator used to detect parent directories

    Returns:
        Surviving deletions (shortest path first) followed by creations and
        changes in first-seen order
    """
    merged = deduplicate(events)

    deleted = []
    others = []
    for path, change_type in merged.items():
        if change_type is ChangeType.DELETED:
            deleted.append(path)
        else:
            others.append(FileEvent(change_type, path))

    deleted.sort(key=len)

    confirmed: List[str] = []
    kept = []
    for path in deleted:
        if any(path.startswith(parent + sep) for parent in confirmed):
            continue
        confirmed.append(path)
        kept.append(FileEvent(ChangeType.DELETED, path))

    return kept + others
