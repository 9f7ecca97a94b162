"""Project Watcher — polling snapshot and change notifications for project folders.

Builds an immutable tree of a project directory, polls it for structural
changes and notifies tree-level and per-file subscribers.
"""

__version__ = "1.0.0"
__app_name__ = "Project Watcher"

from project_watcher.errors import AccessError, BuildError, ProjectWatcherError  # noqa: E402
from project_watcher.filewatch import CHANGED, REMOVED  # noqa: E402
from project_watcher.project import Project  # noqa: E402
from project_watcher.tree import DirectoryNode, FileNode, build_tree  # noqa: E402

__all__ = [
    "AccessError",
    "BuildError",
    "CHANGED",
    "DirectoryNode",
    "FileNode",
    "Project",
    "ProjectWatcherError",
    "REMOVED",
    "build_tree",
]
