"""
Asset Watcher Notifier.

Recursive directory watching on top of watchdog.
Requires Python 3.11+.
"""

import asyncio
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from utils.logger import LoggerMixin

# Callback receives (event_kind, path relative to the watched root or None)
NotificationCallback = Callable[[str, str | None], Any]

# Access-only events, nothing was written
IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class Subscription(Protocol):
    """Handle for an active recursive watch."""

    def close(self) -> None:
        """Stop delivering notifications. Safe to call more than once."""
        ...


class Notifier(Protocol):
    """Capability that watches a directory tree."""

    def subscribe(self, root: Path, callback: NotificationCallback) -> Subscription:
        """
        Start watching ``root`` recursively.

        ``callback`` is invoked on the event loop thread for every change.
        """
        ...


def relative_to_root(root: Path, path: str | bytes) -> str | None:
    """
    Express an absolute event path relative to the watched root.

    Returns None if the path is the root itself or lies outside it.
    """
    path = os.fsdecode(path)
    if not path:
        return None

    relative = os.path.relpath(path, root)
    if relative == os.curdir or relative == os.pardir or relative.startswith(os.pardir + os.sep):
        return None
    return relative


class _RelayHandler(FileSystemEventHandler, LoggerMixin):
    """Forwards watchdog events from the observer thread to the event loop."""

    def __init__(
        self,
        root: Path,
        callback: NotificationCallback,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self._root = root
        self._callback = callback
        self._loop = loop

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Relay every write-related event."""
        if event.event_type in IGNORED_EVENT_TYPES:
            return

        self._relay(event.event_type, event.src_path)

        # A rename touches both names
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            self._relay(event.event_type, dest_path)

    def _relay(self, event_kind: str, path: str | bytes) -> None:
        path = os.fsdecode(path)
        if path and os.path.relpath(path, self._root) == os.curdir:
            # The watched root itself, never a file
            return

        relative = relative_to_root(self._root, path)
        try:
            self._loop.call_soon_threadsafe(self._callback, event_kind, relative)
        except RuntimeError:
            # Loop closed while the observer was still shutting down
            self.log.debug("event_dropped_loop_closed", path=path)


class WatchSubscription(LoggerMixin):
    """A running watchdog observer for one root."""

    def __init__(self, root: Path, observer: Any) -> None:
        self._root = root
        self._observer: Any = observer

    @property
    def root(self) -> Path:
        """Directory being watched."""
        return self._root

    @property
    def is_active(self) -> bool:
        """Check if the observer is still running."""
        return self._observer is not None

    def close(self) -> None:
        """Stop the observer thread."""
        if self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self.log.debug("watch_closed", path=str(self._root))


class WatchdogNotifier(LoggerMixin):
    """
    Notifier backed by one watchdog observer per root.

    Must be used from a running event loop: the loop is captured at
    subscribe time and all callbacks are delivered on it.
    """

    def subscribe(self, root: Path, callback: NotificationCallback) -> WatchSubscription:
        """
        Start a recursive watch on ``root``.

        Raises:
            FileNotFoundError: If root is not an existing directory
            RuntimeError: If no event loop is running
        """
        root = Path(root)
        if not root.is_dir():
            raise FileNotFoundError(f"Cannot watch missing directory: {root}")

        loop = asyncio.get_running_loop()
        handler = _RelayHandler(root, callback, loop)

        observer = Observer()
        observer.schedule(handler, str(root), recursive=True)
        observer.start()

        self.log.debug("watch_started", path=str(root))
        return WatchSubscription(root, observer)
