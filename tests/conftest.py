import asyncio
import posixpath

import pytest

from project_watcher.config import WatchSettings
from project_watcher.errors import AccessError
from project_watcher.fsaccess import DirEntry, StatResult
from project_watcher.project import Project


class MemoryFilesystem:
    """In-memory stand-in for LocalFilesystem with controllable timestamps."""

    def __init__(self, listing_mtime: bool = False):
        self.listing_mtime = listing_mtime
        # path -> [is_directory, mtime]; dict order is listing order
        self.nodes: dict[str, list] = {}
        self.vanish_on_stat: set[str] = set()
        self.explode_on_stat: set[str] = set()
        self.stat_calls = 0
        self.list_calls = 0
        self.list_gate: asyncio.Event | None = None
        self.list_entered = asyncio.Event()

    # ---- setup helpers ----

    def add_dir(self, path: str, mtime: int = 1) -> None:
        self.nodes[path] = [True, mtime]

    def add_file(self, path: str, mtime: int = 1) -> None:
        self.nodes[path] = [False, mtime]

    def touch(self, path: str, mtime: int) -> None:
        self.nodes[path][1] = mtime

    def remove(self, path: str) -> None:
        for p in list(self.nodes):
            if p == path or p.startswith(path + "/"):
                del self.nodes[p]

    def rename(self, old: str, new: str) -> None:
        self.nodes[new] = self.nodes.pop(old)

    # ---- accessor interface ----

    async def stat(self, path: str) -> StatResult:
        self.stat_calls += 1
        if path in self.explode_on_stat:
            raise RuntimeError("disk on fire")
        if path not in self.nodes or path in self.vanish_on_stat:
            raise AccessError(path, "No such file or directory")
        is_dir, mtime = self.nodes[path]
        return StatResult(last_modified=mtime, is_directory=is_dir)

    async def list_directory_entries(self, path: str) -> list[DirEntry]:
        self.list_calls += 1
        self.list_entered.set()
        if self.list_gate is not None:
            await self.list_gate.wait()
        if path not in self.nodes or not self.nodes[path][0]:
            raise AccessError(path, "Not a directory")
        return [
            DirEntry(
                name=posixpath.basename(p),
                path=p,
                is_directory=is_dir,
                last_modified=mtime if self.listing_mtime else None,
            )
            for p, (is_dir, mtime) in self.nodes.items()
            if posixpath.dirname(p) == path
        ]

    async def exists(self, path: str) -> bool:
        return path in self.nodes

    async def make_dir(self, path: str) -> None:
        self.nodes.setdefault(path, [True, 1])

    @staticmethod
    def path_from_uri(uri: str) -> str:
        return uri[len("file://"):] if uri.startswith("file://") else uri

    @staticmethod
    def path_to_uri(path: str) -> str:
        return "file://" + path

    @staticmethod
    def join(*parts: str) -> str:
        return posixpath.join(*parts)

    @staticmethod
    def basename(path: str) -> str:
        return posixpath.basename(path)


@pytest.fixture
def memfs():
    """A /proj directory holding a.gltf and b.txt."""
    fs = MemoryFilesystem()
    fs.add_dir("/proj", mtime=10)
    fs.add_file("/proj/a.gltf", mtime=11)
    fs.add_file("/proj/b.txt", mtime=12)
    return fs


@pytest.fixture
def fast_settings():
    return WatchSettings(initial_poll_delay=0.01, poll_interval=0.02)


@pytest.fixture
def project(memfs, fast_settings):
    # Tests close the project themselves, while their event loop is alive
    return Project("proj", "file:///proj", fs=memfs, settings=fast_settings)
