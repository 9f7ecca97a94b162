"""Tree-changed subscribers and the poll loop they keep alive."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

from project_watcher.detector import ChangeDetector
from project_watcher.tree import DirectoryNode

logger = logging.getLogger(__name__)

TreeChangedHandler = Callable[[DirectoryNode], Any]


class SubscriptionLifecycle:
    """Owns the tree-changed subscriber list.

    The first subscriber starts the :class:`ChangeDetector`; removing the
    last one stops it.  Nothing else starts or stops the detector.
    """

    def __init__(self, detector: ChangeDetector):
        self._detector = detector
        self._handlers: list[TreeChangedHandler] = []

    @property
    def listener_count(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: TreeChangedHandler) -> None:
        """Add *handler*, arming the detector if it is idle.

        Raises ``RuntimeError`` (and registers nothing) when called without a
        running event loop.
        """
        if not self._detector.running:
            self._detector.start()
        self._handlers.append(handler)

    def unsubscribe(self, handler: TreeChangedHandler) -> None:
        """Remove the first registration of *handler*; unknown handlers are ignored."""
        try:
            self._handlers.remove(handler)
        except ValueError:
            return
        if not self._handlers:
            self._detector.stop()

    async def dispatch(self, tree: DirectoryNode) -> None:
        """Deliver *tree* to every subscriber in subscription order."""
        for handler in list(self._handlers):
            # Unsubscribed (or closed) by an earlier handler of this dispatch
            if handler not in self._handlers:
                continue
            try:
                result = handler(tree)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Error in tree-changed handler %r", handler)

    def close(self) -> None:
        """Stop polling and drop every subscriber.  Safe to call repeatedly."""
        self._detector.stop()
        self._handlers.clear()
