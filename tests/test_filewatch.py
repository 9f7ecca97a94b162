"""
Unit Tests for FileWatchRegistry

Per-file signals are evaluated whenever a poll reports a tree change.
"""
import asyncio

import pytest

from project_watcher.errors import AccessError
from project_watcher.filewatch import CHANGED, REMOVED

B_URI = "file:///proj/b.txt"


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, signal, uri):
        self.calls.append((signal, uri))


@pytest.mark.asyncio
async def test_rename_away_fires_removed_once(project, memfs):
    await project.build_tree()
    cb = Recorder()
    await project.watch_file(B_URI, cb)

    memfs.rename("/proj/b.txt", "/proj/c.txt")
    await project.detector.check()
    assert cb.calls == [(REMOVED, B_URI)]

    # Further tree changes do not repeat the signal
    memfs.touch("/proj/a.gltf", 90)
    await project.detector.check()
    assert cb.calls == [(REMOVED, B_URI)]
    assert project.file_watches.watched_uris == [B_URI]
    project.close()


@pytest.mark.asyncio
async def test_two_callbacks_both_get_removed(project, memfs):
    await project.build_tree()
    first, second = Recorder(), Recorder()
    await project.watch_file(B_URI, first)
    await project.watch_file(B_URI, second)

    memfs.remove("/proj/b.txt")
    await project.detector.check()

    assert first.calls == [(REMOVED, B_URI)]
    assert second.calls == [(REMOVED, B_URI)]
    project.close()


@pytest.mark.asyncio
async def test_modified_file_fires_changed(project, memfs):
    await project.build_tree()
    cb = Recorder()
    await project.watch_file(B_URI, cb)

    memfs.touch("/proj/b.txt", 13)
    await project.detector.check()
    assert cb.calls == [(CHANGED, B_URI)]

    # Another file changes; b.txt keeps its new baseline
    memfs.touch("/proj/a.gltf", 14)
    await project.detector.check()
    assert cb.calls == [(CHANGED, B_URI)]
    project.close()


@pytest.mark.asyncio
async def test_reappearing_file_fires_changed(project, memfs):
    await project.build_tree()
    cb = Recorder()
    await project.watch_file(B_URI, cb)

    memfs.remove("/proj/b.txt")
    await project.detector.check()
    memfs.add_file("/proj/b.txt", mtime=12)
    await project.detector.check()

    assert cb.calls == [(REMOVED, B_URI), (CHANGED, B_URI)]
    project.close()


@pytest.mark.asyncio
async def test_watch_missing_file_raises(project):
    with pytest.raises(AccessError):
        await project.watch_file("file:///proj/nope.txt", Recorder())
    assert project.file_watches.watched_uris == []
    assert project.tree_listener_count == 0
    assert not project.detector.running


@pytest.mark.asyncio
async def test_unwatch_last_callback_unsubscribes(project):
    first, second = Recorder(), Recorder()
    await project.watch_file(B_URI, first)
    await project.watch_file(B_URI, second)
    assert project.tree_listener_count == 1
    assert project.detector.running

    project.unwatch_file(B_URI, first)
    assert project.file_watches.callback_count == 1
    assert project.tree_listener_count == 1

    project.unwatch_file(B_URI, second)
    assert project.file_watches.watched_uris == []
    assert project.tree_listener_count == 0
    assert not project.file_watches.subscribed
    assert not project.detector.running
    project.close()


@pytest.mark.asyncio
async def test_unwatch_unknown_callback_is_noop(project):
    cb = Recorder()
    await project.watch_file(B_URI, cb)
    project.unwatch_file(B_URI, Recorder())
    project.unwatch_file("file:///proj/other", cb)

    assert project.file_watches.callback_count == 1
    assert project.tree_listener_count == 1
    project.close()


@pytest.mark.asyncio
async def test_duplicate_callback_removed_one_at_a_time(project, memfs):
    await project.build_tree()
    cb = Recorder()
    await project.watch_file(B_URI, cb)
    await project.watch_file(B_URI, cb)

    project.unwatch_file(B_URI, cb)
    memfs.touch("/proj/b.txt", 77)
    await project.detector.check()

    assert cb.calls == [(CHANGED, B_URI)]
    project.close()


@pytest.mark.asyncio
async def test_callback_unwatching_on_removal(project, memfs):
    await project.build_tree()
    calls = []

    async def handler(signal, uri):
        calls.append(signal)
        if signal == REMOVED:
            project.unwatch_file(uri, handler)

    await project.watch_file(B_URI, handler)
    memfs.remove("/proj/b.txt")
    await project.detector.check()

    assert calls == [REMOVED]
    assert project.file_watches.watched_uris == []
    assert not project.detector.running
    project.close()


@pytest.mark.asyncio
async def test_failing_callback_does_not_block_others(project, memfs):
    await project.build_tree()
    cb = Recorder()

    def broken(signal, uri):
        raise RuntimeError("boom")

    await project.watch_file(B_URI, broken)
    await project.watch_file(B_URI, cb)
    memfs.touch("/proj/b.txt", 31)
    await project.detector.check()

    assert cb.calls == [(CHANGED, B_URI)]
    project.close()


@pytest.mark.asyncio
async def test_removed_signal_from_polling_loop(project, memfs):
    await project.build_tree()
    removed = asyncio.Event()
    calls = []

    def handler(signal, uri):
        calls.append((signal, uri))
        removed.set()

    await project.watch_file(B_URI, handler)
    memfs.remove("/proj/b.txt")
    await asyncio.wait_for(removed.wait(), 2.0)
    await asyncio.sleep(0.1)

    assert calls == [(REMOVED, B_URI)]
    project.close()


@pytest.mark.asyncio
async def test_callback_unwatching_another_file_mid_pass(project, memfs):
    await project.build_tree()
    a_uri = "file:///proj/a.gltf"
    cb = Recorder()

    def first(signal, uri):
        project.unwatch_file(B_URI, cb)

    await project.watch_file(a_uri, first)
    await project.watch_file(B_URI, cb)
    memfs.touch("/proj/a.gltf", 90)
    memfs.touch("/proj/b.txt", 91)
    await project.detector.check()

    assert cb.calls == []
    assert project.file_watches.watched_uris == [a_uri]
    project.close()
