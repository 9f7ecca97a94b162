"""
Cross-platform utilities for Project Watcher.

Centralises all OS-detection logic so every other module can import
a single canonical set of helpers rather than scattering ``sys.platform``
checks throughout the codebase.

Supported platforms:
  - Windows 10/11
  - macOS 12+ (Monterey and newer)
  - Linux
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

# ---- platform flags ----------------------------------------------------

IS_WINDOWS: bool = sys.platform == "win32"
IS_MACOS: bool = sys.platform == "darwin"
IS_LINUX: bool = sys.platform.startswith("linux")

# On Windows the directory listing already carries each entry's
# last-write time, so a listing can skip the per-entry stat call.
LISTING_HAS_MTIME: bool = IS_WINDOWS

# ---- directories -------------------------------------------------------


def get_config_dir() -> Path:
    """
    Return the application config directory, created if needed.

    - Windows : ``%APPDATA%\\ProjectWatcher``
    - macOS   : ``~/Library/Application Support/ProjectWatcher``
    - Linux   : ``$XDG_CONFIG_HOME/ProjectWatcher`` (default ``~/.config``)
    """
    if IS_WINDOWS:
        base = os.environ.get("APPDATA", str(Path.home()))
    elif IS_MACOS:
        base = str(Path.home() / "Library" / "Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))

    config_dir = Path(base) / "ProjectWatcher"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_log_path() -> Path:
    """Return the path to the log file (inside the config directory)."""
    return get_config_dir() / "project_watcher.log"


def get_default_projects_dir() -> Path:
    """Return the folder new projects are created in when none is configured."""
    if IS_WINDOWS or IS_MACOS:
        return Path.home() / "Documents" / "Projects"
    return Path.home() / "Projects"
