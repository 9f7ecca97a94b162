"""Describe the difference between two snapshots as watchdog events."""

from __future__ import annotations

from collections.abc import Callable

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileSystemEvent,
)

from project_watcher.tree import Node, walk


def _index(root: Node | None) -> dict[str, Node]:
    if root is None:
        return {}
    return {node.uri: node for node in walk(root)}


def diff_trees(
    old: Node | None,
    new: Node | None,
    path_from_uri: Callable[[str], str] = lambda uri: uri,
) -> list[FileSystemEvent]:
    """Return created, deleted and modified events turning *old* into *new*.

    Events are ordered: deletions (in *old* order), then creations and
    modifications (in *new* order).
    """
    before = _index(old)
    after = _index(new)
    events: list[FileSystemEvent] = []

    for uri, node in before.items():
        if uri not in after:
            cls = DirDeletedEvent if node.is_directory else FileDeletedEvent
            events.append(cls(path_from_uri(uri)))

    for uri, node in after.items():
        prev = before.get(uri)
        if prev is None:
            cls = DirCreatedEvent if node.is_directory else FileCreatedEvent
            events.append(cls(path_from_uri(uri)))
        elif prev.is_directory != node.is_directory:
            # Replaced by an object of the other kind
            gone = DirDeletedEvent if prev.is_directory else FileDeletedEvent
            made = DirCreatedEvent if node.is_directory else FileCreatedEvent
            events.append(gone(path_from_uri(uri)))
            events.append(made(path_from_uri(uri)))
        elif prev.last_modified != node.last_modified:
            cls = DirModifiedEvent if node.is_directory else FileModifiedEvent
            events.append(cls(path_from_uri(uri)))

    return events


def summarize(events: list[FileSystemEvent]) -> str:
    """Return e.g. ``"2 created, 1 modified"`` for log lines."""
    counts: dict[str, int] = {}
    for event in events:
        counts[event.event_type] = counts.get(event.event_type, 0) + 1
    if not counts:
        return "no structural changes"
    return ", ".join(f"{n} {kind}" for kind, n in counts.items())
