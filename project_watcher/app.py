"""
Command-line application for Project Watcher.

Ties together configuration, logging, and a :class:`Project`:

    project-watcher tree PATH [--all]
    project-watcher watch PATH [--file FILE ...]
    project-watcher create NAME TEMPLATE [--dest DIR]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import signal
import sys
from pathlib import Path

from project_watcher import __app_name__, __version__
from project_watcher.config import Config, get_log_path
from project_watcher.errors import ProjectWatcherError
from project_watcher.fsaccess import LocalFilesystem
from project_watcher.platform_utils import IS_WINDOWS
from project_watcher.project import Project
from project_watcher.tree import Node

logger = logging.getLogger(__name__)


def format_tree(node: Node, show_all: bool = False, indent: str = "") -> list[str]:
    """Render *node* as indented lines; ``children`` only unless *show_all*."""
    label = node.name + ("/" if node.is_directory else "")
    lines = [f"{indent}{label}"]
    if node.is_directory:
        for child in node.files if show_all else node.children:
            lines.extend(format_tree(child, show_all, indent + "  "))
    return lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="project-watcher",
        description="Snapshot and watch a project directory.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, help="Path to a JSON config file")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command", required=True)

    p_tree = sub.add_parser("tree", help="Print the project tree")
    p_tree.add_argument("path")
    p_tree.add_argument("--all", action="store_true", help="List every file, not only expandable ones")

    p_watch = sub.add_parser("watch", help="Poll the project until interrupted")
    p_watch.add_argument("path")
    p_watch.add_argument("--file", action="append", default=[], help="Also watch this file")

    p_create = sub.add_parser("create", help="Create a project from a template")
    p_create.add_argument("name")
    p_create.add_argument("template")
    p_create.add_argument("--dest", help="Parent folder (default: configured projects folder)")
    return parser


class App:
    """Central orchestrator for one CLI invocation."""

    def __init__(self, config: Config | None = None, log_path: Path | None = None) -> None:
        self.config = config or Config()
        self._log_path = log_path
        self._fs = LocalFilesystem()

    def run(self, argv: list[str] | None = None) -> int:
        args = build_parser().parse_args(argv)
        if args.config is not None:
            self.config = Config(args.config)
        if args.log_level:
            self.config.log_level = args.log_level
        self._setup_logging()
        logger.debug("%s %s starting.", __app_name__, __version__)

        try:
            if args.command == "tree":
                return asyncio.run(self.print_tree(args.path, args.all))
            if args.command == "watch":
                return asyncio.run(self.watch(args.path, args.file))
            return asyncio.run(self.create(args.name, args.template, args.dest))
        except ProjectWatcherError as exc:
            logger.error("%s", exc)
            return 1
        except KeyboardInterrupt:
            return 0

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def print_tree(self, path: str, show_all: bool = False) -> int:
        project = await self._open(path)
        tree = await project.build_tree()
        print("\n".join(format_tree(tree, show_all)))
        return 0

    async def watch(self, path: str, files: list[str], stop: asyncio.Event | None = None) -> int:
        """Poll *path* until *stop* is set (or SIGINT/SIGTERM arrives)."""
        project = await self._open(path)
        stop = stop or asyncio.Event()
        self._install_signal_handlers(stop)

        def on_tree(tree: Node) -> None:
            for event in project.last_changes:
                print(f"{event.event_type}: {event.src_path}")

        def on_file(kind: str, uri: str) -> None:
            print(f"file {kind}: {self._fs.path_from_uri(uri)}")

        await project.build_tree()
        project.on_tree_changed(on_tree)
        for file_path in files:
            await project.watch_file(self._fs.path_to_uri(file_path), on_file)

        print(f"Watching {project.path} (press Ctrl-C to stop)…")
        try:
            await stop.wait()
        finally:
            project.close()
        print("Stopped.")
        return 0

    async def create(self, name: str, template: str, dest: str | None) -> int:
        project = await Project.create_from_template(
            name,
            self._fs.path_to_uri(template),
            self._fs.path_to_uri(dest) if dest else None,
            fs=self._fs,
            settings=self.config.watch_settings(),
        )
        print(project.path)
        return 0

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _open(self, path: str) -> Project:
        return await Project.open(
            self._fs.path_to_uri(path),
            fs=self._fs,
            settings=self.config.watch_settings(),
        )

    @staticmethod
    def _install_signal_handlers(stop: asyncio.Event) -> None:
        if IS_WINDOWS:
            # No add_signal_handler on the Windows loop; Ctrl-C raises
            # KeyboardInterrupt instead.
            return
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

    def _setup_logging(self) -> None:
        """Configure rotating file log and stderr handler."""
        log_path = self._log_path or get_log_path()
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")

        # Rotating file handler
        max_bytes = self.config.max_log_size_mb * 1024 * 1024
        fh = logging.handlers.RotatingFileHandler(
            str(log_path),
            maxBytes=max_bytes,
            backupCount=self.config.log_backup_count,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(fmt)
        root_logger.addHandler(fh)

        # Stderr handler
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(level)
        sh.setFormatter(fmt)
        root_logger.addHandler(sh)
