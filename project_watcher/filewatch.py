"""Per-file watches layered on tree-changed notifications.

Files are only re-checked when the poll loop reports that the project tree
changed, so a watch costs nothing between changes.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from project_watcher.errors import AccessError
from project_watcher.lifecycle import SubscriptionLifecycle
from project_watcher.tree import DirectoryNode

logger = logging.getLogger(__name__)

CHANGED = "changed"
REMOVED = "removed"

FileWatchHandler = Callable[[str, str], Any]


@dataclass
class WatchRegistration:
    """Callbacks and the last observed modification time for one file."""

    uri: str
    last_modified: int
    callbacks: list[FileWatchHandler] = field(default_factory=list)
    # True once "removed" has been delivered for the current disappearance
    removed: bool = False


class FileWatchRegistry:
    """Lets callers watch individual files of a project."""

    def __init__(self, fs, lifecycle: SubscriptionLifecycle):
        self._fs = fs
        self._lifecycle = lifecycle
        self._registrations: dict[str, WatchRegistration] = {}
        self._subscribed = False

    @property
    def watched_uris(self) -> list[str]:
        return list(self._registrations)

    @property
    def callback_count(self) -> int:
        return sum(len(r.callbacks) for r in self._registrations.values())

    @property
    def subscribed(self) -> bool:
        """Whether the registry currently listens for tree changes."""
        return self._subscribed

    async def watch_file(self, uri: str, callback: FileWatchHandler) -> None:
        """Register *callback* for *uri*.

        The first registration for a uri stats the file to record a baseline;
        :class:`AccessError` propagates if the file does not exist.
        """
        if uri not in self._registrations:
            st = await self._fs.stat(self._fs.path_from_uri(uri))
            # Another watch_file for the same uri may have finished first
            self._registrations.setdefault(
                uri, WatchRegistration(uri=uri, last_modified=st.last_modified)
            )
        self._registrations[uri].callbacks.append(callback)
        logger.debug("Watching %s (%d callbacks)", uri, len(self._registrations[uri].callbacks))

        if not self._subscribed:
            self._lifecycle.subscribe(self._on_tree_changed)
            self._subscribed = True

    def unwatch_file(self, uri: str, callback: FileWatchHandler) -> None:
        """Remove the first registration of *callback* for *uri*."""
        registration = self._registrations.get(uri)
        if registration is not None:
            try:
                registration.callbacks.remove(callback)
            except ValueError:
                pass
            if not registration.callbacks:
                del self._registrations[uri]
                logger.debug("Stopped watching %s", uri)

        if self._subscribed and not self._registrations:
            self._subscribed = False
            self._lifecycle.unsubscribe(self._on_tree_changed)

    def clear(self) -> None:
        """Drop every watch and stop listening for tree changes."""
        self._registrations.clear()
        if self._subscribed:
            self._subscribed = False
            self._lifecycle.unsubscribe(self._on_tree_changed)

    async def _on_tree_changed(self, tree: DirectoryNode) -> None:
        for uri, registration in list(self._registrations.items()):
            # Unwatched by a callback earlier in this pass
            if self._registrations.get(uri) is not registration:
                continue
            try:
                st = await self._fs.stat(self._fs.path_from_uri(uri))
            except AccessError:
                if registration.removed:
                    continue
                registration.removed = True
                logger.info("Watched file removed: %s", uri)
                await self._notify(registration, REMOVED)
                continue

            if registration.removed or st.last_modified != registration.last_modified:
                registration.removed = False
                registration.last_modified = st.last_modified
                logger.info("Watched file changed: %s", uri)
                await self._notify(registration, CHANGED)

    async def _notify(self, registration: WatchRegistration, signal: str) -> None:
        for callback in list(registration.callbacks):
            try:
                result = callback(signal, registration.uri)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Error in file-watch callback for %s", registration.uri
                )
