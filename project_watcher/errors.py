"""Exception types raised by Project Watcher."""

from __future__ import annotations


class ProjectWatcherError(Exception):
    """Base class for all Project Watcher errors."""


class AccessError(ProjectWatcherError):
    """A filesystem object is missing or cannot be read.

    The underlying ``OSError`` (when there is one) is kept as ``__cause__``.
    """

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Cannot access {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class BuildError(ProjectWatcherError):
    """An unexpected failure while building the tree below *path*."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Failed to build tree at {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
