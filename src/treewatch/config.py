"""Configuration for the treewatch package."""

import fnmatch
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


ENV_PREFIX = "TREEWATCH_"


@dataclass
class WatcherConfig:
    """
    Configuration options for the watch tree and event processor.

    Attributes:
        debounce_ms: Quiet period required before buffered events are flushed
        spam_warning_seconds: Continuous activity span that triggers one warning
        recursive: Whether native watches cover subdirectories
        follow_symlinks: Whether symlinked directories get their own watch
        cascade_release: Release nested watches under a deleted directory
        ignore_patterns: Glob patterns for paths that never produce events
        join_timeout: Seconds to wait for an observer thread on release
        verbose: Echo raw and normalized events as log records
    """
    debounce_ms: int = 50
    spam_warning_seconds: float = 60.0
    recursive: bool = True
    follow_symlinks: bool = True
    cascade_release: bool = True
    ignore_patterns: List[str] = field(default_factory=list)
    join_timeout: float = 5.0
    verbose: bool = False

    def __post_init__(self):
        if self.debounce_ms <= 0:
            raise ValueError(f"debounce_ms must be positive: {self.debounce_ms}")
        if self.spam_warning_seconds < 0:
            raise ValueError(
                f"spam_warning_seconds must not be negative: {self.spam_warning_seconds}"
            )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    def should_ignore(self, path: Path) -> bool:
        """
        Check if a path should be ignored based on ignore patterns.

        Args:
            path: Path to check

        Returns:
            True if the path should be ignored
        """
        path_str = str(path)
        name = path.name

        for pattern in self.ignore_patterns:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(path_str, f"*/{pattern}"):
                return True
            if fnmatch.fnmatch(path_str, pattern):
                return True

        return False

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> "WatcherConfig":
        """
        Build a config from TREEWATCH_* environment variables.

        Recognized variables: TREEWATCH_DEBOUNCE_MS, TREEWATCH_SPAM_WARNING_SECONDS,
        TREEWATCH_FOLLOW_SYMLINKS, TREEWATCH_CASCADE_RELEASE,
        TREEWATCH_IGNORE_PATTERNS (comma separated) and TREEWATCH_VERBOSE.
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values = {}

        if f"{ENV_PREFIX}DEBOUNCE_MS" in env:
            values["debounce_ms"] = int(env[f"{ENV_PREFIX}DEBOUNCE_MS"])
        if f"{ENV_PREFIX}SPAM_WARNING_SECONDS" in env:
            values["spam_warning_seconds"] = float(env[f"{ENV_PREFIX}SPAM_WARNING_SECONDS"])
        if f"{ENV_PREFIX}FOLLOW_SYMLINKS" in env:
            values["follow_symlinks"] = _parse_bool(env[f"{ENV_PREFIX}FOLLOW_SYMLINKS"])
        if f"{ENV_PREFIX}CASCADE_RELEASE" in env:
            values["cascade_release"] = _parse_bool(env[f"{ENV_PREFIX}CASCADE_RELEASE"])
        if f"{ENV_PREFIX}VERBOSE" in env:
            values["verbose"] = _parse_bool(env[f"{ENV_PREFIX}VERBOSE"])
        if env.get(f"{ENV_PREFIX}IGNORE_PATTERNS"):
            values["ignore_patterns"] = [
                p.strip() for p in env[f"{ENV_PREFIX}IGNORE_PATTERNS"].split(",") if p.strip()
            ]

        values.update(overrides)
        return cls(**values)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")
