"""Snapshot tree of a project directory.

A snapshot is built fresh on every poll and never mutated afterwards, so
two snapshots can be compared with plain ``==``: the dataclasses compare
field by field, recursing through ``files`` and ``children`` in order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from project_watcher.config import DEFAULT_EXPANDABLE_EXTENSIONS
from project_watcher.errors import AccessError, BuildError
from project_watcher.fsaccess import DirEntry, LocalFilesystem, get_file_extension

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileNode:
    """A regular file in the snapshot."""

    name: str
    uri: str
    last_modified: int
    extension: str | None = None

    is_directory = False


@dataclass(frozen=True)
class DirectoryNode:
    """A directory in the snapshot.

    ``files`` holds every direct child in listing order; ``children`` is the
    subset that can be expanded in a tree view (directories and files with an
    expandable extension).
    """

    name: str
    uri: str
    last_modified: int
    children: tuple[Node, ...] = ()
    files: tuple[Node, ...] = ()

    is_directory = True


Node = FileNode | DirectoryNode


def walk(node: Node) -> Iterator[Node]:
    """Yield *node* and every node below it, depth first, via ``files``."""
    yield node
    if node.is_directory:
        for child in node.files:
            yield from walk(child)


class TreeBuilder:
    """Builds :class:`DirectoryNode` snapshots through a filesystem accessor."""

    def __init__(
        self,
        fs,
        expandable_extensions: Iterable[str] = DEFAULT_EXPANDABLE_EXTENSIONS,
        sort_entries: bool = False,
    ):
        self._fs = fs
        self._expandable = frozenset(
            ext.lower().lstrip(".") for ext in expandable_extensions
        )
        self._sort_entries = sort_entries

    @property
    def expandable_extensions(self) -> frozenset[str]:
        return self._expandable

    def is_expandable(self, node: Node) -> bool:
        return node.is_directory or node.extension in self._expandable

    async def build(
        self,
        root_path: str,
        name: str | None = None,
        uri: str | None = None,
    ) -> DirectoryNode:
        """Walk *root_path* and return its snapshot.

        Raises :class:`AccessError` if the root cannot be stat'd or listed.
        Entries that vanish mid-walk are skipped.
        """
        st = await self._fs.stat(root_path)
        return await self._build_directory(
            root_path,
            name or self._fs.basename(root_path),
            uri or self._fs.path_to_uri(root_path),
            st.last_modified,
        )

    async def _build_directory(
        self, path: str, name: str, uri: str, last_modified: int
    ) -> DirectoryNode:
        entries = await self._fs.list_directory_entries(path)
        if self._sort_entries:
            entries = sorted(entries, key=lambda e: e.name)

        # gather keeps results in listing order
        nodes = await asyncio.gather(*(self._build_entry(e) for e in entries))
        files = tuple(node for node in nodes if node is not None)
        children = tuple(node for node in files if self.is_expandable(node))
        return DirectoryNode(
            name=name,
            uri=uri,
            last_modified=last_modified,
            children=children,
            files=files,
        )

    async def _build_entry(self, entry: DirEntry) -> Node | None:
        try:
            last_modified = entry.last_modified
            if last_modified is None:
                last_modified = (await self._fs.stat(entry.path)).last_modified
            uri = self._fs.path_to_uri(entry.path)
            if entry.is_directory:
                return await self._build_directory(
                    entry.path, entry.name, uri, last_modified
                )
            return FileNode(
                name=entry.name,
                uri=uri,
                last_modified=last_modified,
                extension=get_file_extension(entry.name),
            )
        except AccessError as exc:
            logger.warning("Skipping entry that disappeared during build: %s", exc)
            return None
        except BuildError:
            raise
        except Exception as exc:
            raise BuildError(entry.path, str(exc)) from exc


async def build_tree(
    root_path: str,
    fs=None,
    *,
    expandable_extensions: Iterable[str] = DEFAULT_EXPANDABLE_EXTENSIONS,
    sort_entries: bool = False,
) -> DirectoryNode:
    """Build a one-off snapshot of *root_path* without any caching."""
    builder = TreeBuilder(
        fs or LocalFilesystem(),
        expandable_extensions=expandable_extensions,
        sort_entries=sort_entries,
    )
    return await builder.build(root_path)
