"""Configuration management for Project Watcher.

Stores and retrieves user settings from a JSON config file
in the platform-appropriate application data directory.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from project_watcher.platform_utils import (
    get_config_dir as _platform_config_dir,
)
from project_watcher.platform_utils import (
    get_default_projects_dir,
)
from project_watcher.platform_utils import (
    get_log_path as _platform_log_path,
)

logger = logging.getLogger(__name__)

# Collision resolution strategies for template copies
COLLISION_OVERWRITE = "overwrite"
COLLISION_SKIP = "skip"

DEFAULT_EXPANDABLE_EXTENSIONS = ("gltf", "glb")

DEFAULT_CONFIG: dict[str, Any] = {
    "projects_folder": "",  # Empty = platform default
    "expandable_extensions": list(DEFAULT_EXPANDABLE_EXTENSIONS),
    "initial_poll_delay_seconds": 1.0,
    "poll_interval_seconds": 5.0,
    "sort_entries": False,
    # ---- project creation ----
    "collision_mode": COLLISION_OVERWRITE,  # overwrite | skip
    "verify_copies": True,  # SHA-256 checksum after copy
    # ---- logging ----
    "log_level": "INFO",
    "max_log_size_mb": 10,  # rotate log when it exceeds this size
    "log_backup_count": 3,  # number of rotated log files to keep
}


def get_config_dir() -> Path:
    """Return the platform-appropriate application config directory."""
    return _platform_config_dir()


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    return get_config_dir() / "config.json"


def get_log_path() -> Path:
    """Return the path to the log file."""
    return _platform_log_path()


def _normalise_extensions(values: Any) -> tuple[str, ...]:
    return tuple(
        str(ext).lower().strip().lstrip(".") for ext in values if str(ext).strip()
    )


@dataclass(frozen=True)
class WatchSettings:
    """Immutable view of the settings a Project needs while watching."""

    expandable_extensions: tuple[str, ...] = DEFAULT_EXPANDABLE_EXTENSIONS
    initial_poll_delay: float = 1.0
    poll_interval: float = 5.0
    sort_entries: bool = False
    projects_folder: str = ""
    collision_mode: str = COLLISION_OVERWRITE
    verify_copies: bool = True


class Config:
    """Configuration manager backed by a JSON file."""

    def __init__(self, path: Path | None = None):
        """Load config from *path*, falling back to the platform default."""
        self._path = path or get_config_path()
        self._data: dict[str, Any] = dict(DEFAULT_CONFIG)
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ---- persistence ----

    def load(self) -> None:
        """Load configuration from disk, applying defaults for missing keys."""
        if self._path.exists():
            try:
                with open(self._path, encoding="utf-8") as fh:
                    stored = json.load(fh)
                # Merge stored values over defaults so new keys get defaults
                self._data = {**DEFAULT_CONFIG, **stored}
                logger.info("Configuration loaded from %s", self._path)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Could not read config (%s); using defaults.", exc)
                self._data = dict(DEFAULT_CONFIG)
        else:
            self._data = dict(DEFAULT_CONFIG)
            self.save()
            logger.info("Created default configuration at %s", self._path)

    def save(self) -> None:
        """Persist the current configuration to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2)
            logger.info("Configuration saved.")
        except OSError as exc:
            logger.error("Failed to save configuration: %s", exc)

    # ---- accessors ----

    @property
    def projects_folder(self) -> str:
        """Return the folder new projects are created in."""
        return self._data["projects_folder"] or str(get_default_projects_dir())

    @projects_folder.setter
    def projects_folder(self, value: str) -> None:
        self._data["projects_folder"] = value.strip()

    @property
    def expandable_extensions(self) -> list[str]:
        """Return the extensions that appear in a directory's ``children``."""
        return list(_normalise_extensions(self._data["expandable_extensions"]))

    @expandable_extensions.setter
    def expandable_extensions(self, value: list[str]) -> None:
        """Set expandable extensions, normalising to lowercase."""
        self._data["expandable_extensions"] = list(_normalise_extensions(value))

    @property
    def initial_poll_delay(self) -> float:
        """Return the delay before the first poll after subscribing."""
        return float(self._data["initial_poll_delay_seconds"])

    @initial_poll_delay.setter
    def initial_poll_delay(self, value: float) -> None:
        """Set the first-poll delay (minimum 0 s)."""
        self._data["initial_poll_delay_seconds"] = max(0.0, float(value))

    @property
    def poll_interval(self) -> float:
        """Return the steady-state poll interval in seconds."""
        return float(self._data["poll_interval_seconds"])

    @poll_interval.setter
    def poll_interval(self, value: float) -> None:
        """Set the steady-state poll interval (minimum 0.1 s)."""
        self._data["poll_interval_seconds"] = max(0.1, float(value))

    @property
    def sort_entries(self) -> bool:
        """Return whether directory entries are sorted by name."""
        return bool(self._data.get("sort_entries", False))

    @sort_entries.setter
    def sort_entries(self, value: bool) -> None:
        self._data["sort_entries"] = bool(value)

    @property
    def log_level(self) -> str:
        """Return the current logging level name."""
        return self._data.get("log_level", "INFO")

    @log_level.setter
    def log_level(self, value: str) -> None:
        """Set the logging level name."""
        self._data["log_level"] = value

    # ---- project creation ----

    @property
    def collision_mode(self) -> str:
        """Return the collision strategy used when copying templates."""
        return self._data.get("collision_mode", COLLISION_OVERWRITE)

    @collision_mode.setter
    def collision_mode(self, value: str) -> None:
        if value not in (COLLISION_OVERWRITE, COLLISION_SKIP):
            value = COLLISION_OVERWRITE
        self._data["collision_mode"] = value

    @property
    def verify_copies(self) -> bool:
        """Return whether SHA-256 verification is enabled."""
        return bool(self._data.get("verify_copies", True))

    @verify_copies.setter
    def verify_copies(self, value: bool) -> None:
        self._data["verify_copies"] = value

    # ---- log rotation ----

    @property
    def max_log_size_mb(self) -> int:
        """Return the maximum log file size in MB before rotation."""
        return int(self._data.get("max_log_size_mb", 10))

    @max_log_size_mb.setter
    def max_log_size_mb(self, value: int) -> None:
        """Set the maximum log file size in MB (minimum 1)."""
        self._data["max_log_size_mb"] = max(1, int(value))

    @property
    def log_backup_count(self) -> int:
        """Return the number of rotated log backups to keep."""
        return int(self._data.get("log_backup_count", 3))

    @log_backup_count.setter
    def log_backup_count(self, value: int) -> None:
        """Set the number of rotated log backups to keep."""
        self._data["log_backup_count"] = max(0, int(value))

    # ---- convenience ----

    def watch_settings(self) -> WatchSettings:
        """Snapshot the watch-related settings for a Project."""
        return WatchSettings(
            expandable_extensions=tuple(self.expandable_extensions),
            initial_poll_delay=self.initial_poll_delay,
            poll_interval=self.poll_interval,
            sort_entries=self.sort_entries,
            projects_folder=self.projects_folder,
            collision_mode=self.collision_mode,
            verify_copies=self.verify_copies,
        )
