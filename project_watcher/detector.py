"""Polling change detector for Project Watcher.

Periodically rebuilds the project snapshot, compares it with the previous
one and reports the new snapshot when they differ.  Only polling is used;
there is no OS-level change notification.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from watchdog.events import FileSystemEvent

from project_watcher.tree import DirectoryNode
from project_watcher.treediff import diff_trees, summarize

logger = logging.getLogger(__name__)


class ChangeDetector:
    """Self-rescheduling poll loop.

    Usage:
        detector = ChangeDetector(rebuild, current, on_change)
        detector.start()
        ...
        detector.stop()

    *rebuild* returns a fresh snapshot, *current* returns the last stored
    one (or None) and *on_change* is awaited with each snapshot that
    differs from its predecessor.
    """

    def __init__(
        self,
        rebuild: Callable[[], Awaitable[DirectoryNode]],
        current: Callable[[], DirectoryNode | None],
        on_change: Callable[[DirectoryNode], Awaitable[None]],
        initial_delay: float = 1.0,
        interval: float = 5.0,
        path_from_uri: Callable[[str], str] | None = None,
    ):
        self._rebuild = rebuild
        self._current = current
        self._on_change = on_change
        self.initial_delay = initial_delay
        self.interval = interval
        self._path_from_uri = path_from_uri or (lambda uri: uri)
        self._task: asyncio.Task | None = None
        self.last_changes: list[FileSystemEvent] = []
        self.tick_count = 0

    # ---- lifecycle ----

    def start(self) -> None:
        """Arm the poll loop on the running event loop; no-op if armed."""
        if self._task is not None:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="ChangeDetector")
        logger.debug(
            "Change detection started (first poll in %.1fs, then every %.1fs)",
            self.initial_delay,
            self.interval,
        )

    def stop(self) -> None:
        """Cancel the pending poll; no-op if not armed."""
        task, self._task = self._task, None
        if task is None:
            return
        # A handler running inside the tick may stop us; the loop sees
        # ``_task`` reset and exits on its own instead of cancelling itself.
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug("Change detection stopped.")

    @property
    def running(self) -> bool:
        return self._task is not None

    # ---- polling ----

    async def _run(self) -> None:
        me = asyncio.current_task()
        delay = self.initial_delay
        while self._task is me:
            await asyncio.sleep(delay)
            if self._task is not me:
                break
            await self._tick(me)
            delay = self.interval

    async def _tick(self, owner: asyncio.Task | None) -> DirectoryNode | None:
        self.tick_count += 1
        previous = self._current()
        try:
            tree = await self._rebuild()
        except Exception:
            logger.warning("Poll failed; treating as no change.", exc_info=True)
            return None

        if owner is not None and self._task is not owner:
            # Stopped while the rebuild was in flight
            return None
        if tree == previous:
            return None

        self.last_changes = diff_trees(previous, tree, self._path_from_uri)
        logger.info("Project tree changed: %s", summarize(self.last_changes))
        for event in self.last_changes:
            logger.debug("  %s %s", event.event_type, event.src_path)

        try:
            await self._on_change(tree)
        except Exception:
            logger.exception("Error delivering tree change")
        return tree

    async def check(self) -> DirectoryNode | None:
        """Run one poll now; return the new snapshot if it changed, else None."""
        return await self._tick(None)
