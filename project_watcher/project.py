"""A project directory with a cached snapshot and change notifications."""

from __future__ import annotations

import asyncio
import logging

from project_watcher.config import WatchSettings
from project_watcher.copier import RecursiveCopier
from project_watcher.detector import ChangeDetector
from project_watcher.filewatch import FileWatchHandler, FileWatchRegistry
from project_watcher.fsaccess import LocalFilesystem
from project_watcher.lifecycle import SubscriptionLifecycle, TreeChangedHandler
from project_watcher.platform_utils import get_default_projects_dir
from project_watcher.tree import DirectoryNode, TreeBuilder

logger = logging.getLogger(__name__)

ICON_NAME = "thumbnail.png"


class Project:
    """
    Watches one project directory.

    Usage:
        project = await Project.open(uri)
        tree = await project.build_tree()
        project.on_tree_changed(handler)
        await project.watch_file(file_uri, callback)
        ...
        project.close()
    """

    def __init__(
        self,
        name: str,
        uri: str,
        icon: str | None = None,
        *,
        fs=None,
        settings: WatchSettings | None = None,
    ):
        self._fs = fs or LocalFilesystem()
        self.settings = settings or WatchSettings()

        self.name = name
        self.uri = uri
        self.path = self._fs.path_from_uri(uri)
        self.icon = icon
        self.icon_path = self._fs.path_from_uri(icon) if icon else None

        self._file_hierarchy: DirectoryNode | None = None
        self._builder = TreeBuilder(
            self._fs,
            expandable_extensions=self.settings.expandable_extensions,
            sort_entries=self.settings.sort_entries,
        )
        self._detector = ChangeDetector(
            rebuild=self._build_snapshot,
            current=lambda: self._file_hierarchy,
            on_change=self._on_tree_changed,
            initial_delay=self.settings.initial_poll_delay,
            interval=self.settings.poll_interval,
            path_from_uri=self._fs.path_from_uri,
        )
        self._lifecycle = SubscriptionLifecycle(self._detector)
        self._file_watches = FileWatchRegistry(self._fs, self._lifecycle)

    def __repr__(self) -> str:
        return f"Project(name={self.name!r}, uri={self.uri!r})"

    # ---- tree ----

    async def build_tree(self, force_rebuild: bool = False) -> DirectoryNode:
        """Return the cached snapshot, building it first if needed or forced.

        Raises :class:`AccessError` if the project directory is gone.
        """
        if self._file_hierarchy is not None and not force_rebuild:
            return self._file_hierarchy
        self._file_hierarchy = await self._build_snapshot()
        return self._file_hierarchy

    get_file_hierarchy = build_tree

    @property
    def file_hierarchy(self) -> DirectoryNode | None:
        """The last stored snapshot, without touching the disk."""
        return self._file_hierarchy

    async def _build_snapshot(self) -> DirectoryNode:
        return await self._builder.build(self.path, self.name, self.uri)

    async def _on_tree_changed(self, tree: DirectoryNode) -> None:
        self._file_hierarchy = tree
        await self._lifecycle.dispatch(tree)

    @property
    def last_changes(self):
        """watchdog events describing the most recent detected change."""
        return list(self._detector.last_changes)

    @property
    def detector(self) -> ChangeDetector:
        return self._detector

    # ---- subscriptions ----

    def on_tree_changed(self, handler: TreeChangedHandler) -> None:
        self._lifecycle.subscribe(handler)

    def off_tree_changed(self, handler: TreeChangedHandler) -> None:
        self._lifecycle.unsubscribe(handler)

    @property
    def tree_listener_count(self) -> int:
        return self._lifecycle.listener_count

    async def watch_file(self, uri: str, handler: FileWatchHandler) -> None:
        await self._file_watches.watch_file(uri, handler)

    def unwatch_file(self, uri: str, handler: FileWatchHandler) -> None:
        self._file_watches.unwatch_file(uri, handler)

    @property
    def file_watches(self) -> FileWatchRegistry:
        return self._file_watches

    def close(self) -> None:
        """Release the poll timer and every subscription."""
        self._file_watches.clear()
        self._lifecycle.close()
        self._file_hierarchy = None
        logger.debug("Closed %r", self)

    # ---- construction ----

    @classmethod
    async def open(
        cls,
        uri: str,
        *,
        fs=None,
        settings: WatchSettings | None = None,
    ) -> Project:
        """Open an existing project directory."""
        fs = fs or LocalFilesystem()
        path = fs.path_from_uri(uri)
        name = fs.basename(path)
        icon = await cls._find_icon(fs, path)
        return cls(name, uri, icon, fs=fs, settings=settings)

    @classmethod
    async def create_from_template(
        cls,
        name: str,
        template_uri: str,
        project_dir_uri: str | None = None,
        *,
        fs=None,
        settings: WatchSettings | None = None,
        copier: RecursiveCopier | None = None,
    ) -> Project:
        """Copy *template_uri* into a new project directory called *name*.

        The directory is created below *project_dir_uri*, or below the
        configured projects folder when that is not given.
        """
        fs = fs or LocalFilesystem()
        settings = settings or WatchSettings()
        copier = copier or RecursiveCopier(
            collision_mode=settings.collision_mode,
            verify=settings.verify_copies,
        )

        template_path = fs.path_from_uri(template_uri)
        if project_dir_uri:
            base_dir = fs.path_from_uri(project_dir_uri)
        else:
            base_dir = settings.projects_folder or str(get_default_projects_dir())
        project_path = fs.join(base_dir, name)

        await fs.make_dir(project_path)
        stats = await asyncio.to_thread(copier.copy_tree, template_path, project_path)
        for rec in stats.failures:
            logger.warning("Template file %s not copied: %s", rec.source, rec.error)

        icon = await cls._find_icon(fs, project_path)
        logger.info("Created project %s from %s", project_path, template_path)
        return cls(name, fs.path_to_uri(project_path), icon, fs=fs, settings=settings)

    @staticmethod
    async def _find_icon(fs, project_path: str) -> str | None:
        icon_path = fs.join(project_path, ICON_NAME)
        if await fs.exists(icon_path):
            return fs.path_to_uri(icon_path)
        return None
