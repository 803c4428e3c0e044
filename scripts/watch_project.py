#!/usr/bin/env python3
"""
Asset Watcher Script.

Watches a project's www/ and merges/<platform>/ trees and logs every
file change that a live-reload host would push to the running app.
Requires Python 3.11+.

Usage:
    python scripts/watch_project.py /path/to/project --platform android
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from utils.config import get_settings
from utils.logger import configure_logging, get_logger
from watcher.file_watcher import ChangeWatcher, RootKind


configure_logging()
logger = get_logger("watch_project")


async def watch_project(project_root: Path, platform: str) -> None:
    """
    Run a change watcher until cancelled.

    Args:
        project_root: Project directory containing www/
        platform: Platform whose merges/ subtree overrides www/
    """

    def on_file_changed(relative_path: str, root: RootKind) -> None:
        logger.info("file_changed", path=relative_path, root=root.value)

    watcher = ChangeWatcher(project_root, platform, on_change=on_file_changed)
    watcher.start()
    try:
        await asyncio.Event().wait()
    finally:
        watcher.stop()


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Watch www/ and merges/<platform>/ for file changes"
    )
    parser.add_argument(
        "project_root",
        type=Path,
        nargs="?",
        default=settings.watcher.project_root,
        help="Project directory containing www/",
    )
    parser.add_argument(
        "--platform",
        default=settings.watcher.platform,
        help="Platform selecting the merges/<platform> override tree",
    )
    args = parser.parse_args()

    project_root = args.project_root.resolve()
    if not (project_root / "www").is_dir():
        logger.error("www_directory_missing", path=str(project_root / "www"))
        return 1

    try:
        asyncio.run(watch_project(project_root, args.platform))
    except KeyboardInterrupt:
        logger.info("interrupted")

    return 0


if __name__ == "__main__":
    sys.exit(main())
