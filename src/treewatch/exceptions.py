"""Custom exceptions for the treewatch package."""


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class PathNotFoundError(WatcherError):
    """Root path to watch does not exist or is not a directory."""
    pass


class WatchInstallError(WatcherError):
    """A native watch could not be installed for a directory."""

    def __init__(self, path, message: str = ""):
        self.path = path
        super().__init__(message or f"Failed to install watch on {path}")


class WatchLostError(WatcherError):
    """A running native watch stopped delivering events."""

    def __init__(self, path, message: str = ""):
        self.path = path
        super().__init__(message or f"Lost watch on {path}")


class WatcherAlreadyRunningError(WatcherError):
    """Watch tree has already been started."""
    pass
