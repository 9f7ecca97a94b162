"""Entry point for Project Watcher.

Usage:
    python -m project_watcher tree PATH       Print the project tree
    python -m project_watcher watch PATH      Poll for changes until Ctrl-C
    python -m project_watcher create NAME TEMPLATE
"""

import sys


def main() -> None:
    """Run the command-line application."""
    from project_watcher.app import App

    sys.exit(App().run())


if __name__ == "__main__":
    main()
