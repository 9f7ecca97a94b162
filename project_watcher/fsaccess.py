"""Filesystem access for Project Watcher.

Every component receives a :class:`LocalFilesystem` (or anything with the
same async methods) at construction time.  Blocking ``os`` calls are pushed
to the default executor so a tree walk never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat as stat_module
from dataclasses import dataclass
from pathlib import Path, PurePath
from urllib.parse import urlparse
from urllib.request import url2pathname

from project_watcher.errors import AccessError
from project_watcher.platform_utils import LISTING_HAS_MTIME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatResult:
    """The subset of ``os.stat`` results the watcher relies on."""

    last_modified: int  # nanoseconds
    is_directory: bool = False


@dataclass(frozen=True)
class DirEntry:
    """One entry of a directory listing.

    ``last_modified`` is filled in when the listing itself reports it, and
    always for symbolic links (the link's own time, not its target's);
    otherwise callers must stat the entry.  A link is never a directory.
    """

    name: str
    path: str
    is_directory: bool
    last_modified: int | None = None


def get_file_extension(name: str) -> str | None:
    """Return the lower-cased extension of *name* without the dot, or None."""
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    return ext or None


class LocalFilesystem:
    """Accessor backed by the local disk."""

    async def stat(self, path: str) -> StatResult:
        """Stat *path*; raise :class:`AccessError` if it is missing or unreadable."""
        try:
            st = await asyncio.to_thread(os.stat, path)
        except OSError as exc:
            raise AccessError(path, exc.strerror or str(exc)) from exc
        return StatResult(
            last_modified=st.st_mtime_ns,
            is_directory=stat_module.S_ISDIR(st.st_mode),
        )

    async def list_directory_entries(self, path: str) -> list[DirEntry]:
        """Return the entries of *path* in the order the OS enumerates them."""
        try:
            return await asyncio.to_thread(self._scan, path)
        except OSError as exc:
            raise AccessError(path, exc.strerror or str(exc)) from exc

    @staticmethod
    def _scan(path: str) -> list[DirEntry]:
        entries = []
        with os.scandir(path) as it:
            for entry in it:
                # Links are leaves: never descend into them or stat their target
                try:
                    is_dir = entry.is_dir(follow_symlinks=False)
                    if LISTING_HAS_MTIME or entry.is_symlink():
                        mtime = entry.stat(follow_symlinks=False).st_mtime_ns
                    else:
                        mtime = None
                except OSError:
                    # Vanished while listing
                    logger.debug("Entry disappeared during listing: %s", entry.path)
                    continue
                entries.append(
                    DirEntry(
                        name=entry.name,
                        path=entry.path,
                        is_directory=is_dir,
                        last_modified=mtime,
                    )
                )
        return entries

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def make_dir(self, path: str) -> None:
        """Create *path* and its parents; an existing directory is fine."""
        try:
            await asyncio.to_thread(os.makedirs, path, exist_ok=True)
        except OSError as exc:
            raise AccessError(path, exc.strerror or str(exc)) from exc

    # ---- path helpers ----

    @staticmethod
    def path_from_uri(uri: str) -> str:
        parsed = urlparse(uri)
        # A one-letter scheme is a Windows drive, i.e. already a path
        if len(parsed.scheme) <= 1:
            return uri
        if parsed.scheme != "file":
            raise ValueError(f"Not a file URI: {uri}")
        return url2pathname(parsed.path)

    @staticmethod
    def path_to_uri(path: str) -> str:
        return Path(path).absolute().as_uri()

    @staticmethod
    def join(*parts: str) -> str:
        return os.path.join(*parts)

    @staticmethod
    def basename(path: str) -> str:
        return PurePath(path).name
