"""
Asset Watcher Change Watcher.

Watches www/ and merges/<platform>/ and reports one event per edit.
Requires Python 3.11+.
"""

import asyncio
import inspect
import os
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from utils.logger import LoggerMixin
from watcher.debouncer import Debouncer
from watcher.notifier import Notifier, Subscription, WatchdogNotifier

EVENT_IGNORE_DURATION_MS = 150
WWW_ROOT = "www"
MERGES_ROOT = "merges"
UNKNOWN_FILE_ID = "__sim-unknown__"

FileChangedListener = Callable[[str, "RootKind"], Any]


class RootKind(str, Enum):
    """Tree a change came from."""

    ASSETS = WWW_ROOT
    OVERRIDES = MERGES_ROOT


def is_temporary_file(relative_path: str | None) -> bool:
    """Check for editor swap and backup files such as ``foo~.tmp`` or ``a.tm~p``."""
    if not relative_path:
        return False

    file_name = os.path.basename(relative_path)
    ext = os.path.splitext(file_name)[1]
    return (ext.lower() == ".tmp" and "~" in file_name) or "~" in ext


class ChangeWatcher(LoggerMixin):
    """
    Watches a project's asset tree and its platform override tree.

    Raw notifications from both trees pass through a filter pipeline
    (temporary files, unknown paths, directories, overridden assets,
    duplicates) and surviving changes are reported to listeners as
    ``(relative_path, root_kind)`` once the suppression window closes.
    """

    def __init__(
        self,
        project_root: Path | str,
        platform: str,
        on_change: FileChangedListener | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        """
        Initialize the change watcher.

        Args:
            project_root: Project directory containing www/
            platform: Platform whose merges/ subtree overrides www/
            on_change: Listener for file-changed events
            notifier: Recursive watch capability, defaults to watchdog
        """
        self._project_root = Path(project_root)
        self._platform = platform
        self._www_path = self._project_root / WWW_ROOT
        self._override_path = self._project_root / MERGES_ROOT / platform
        self._override_exists = self._check_override_exists()

        self._notifier: Notifier = notifier or WatchdogNotifier()
        self._debouncer = Debouncer(delay_ms=EVENT_IGNORE_DURATION_MS)
        self._listeners: list[FileChangedListener] = []
        if on_change is not None:
            self._listeners.append(on_change)

        self._listener_tasks: set[asyncio.Task[Any]] = set()
        self._www_subscription: Subscription | None = None
        self._override_subscription: Subscription | None = None

    def _check_override_exists(self) -> bool:
        try:
            return self._override_path.exists()
        except OSError as e:
            self.log.debug("override_check_failed", path=str(self._override_path), error=str(e))
            return False

    @property
    def project_root(self) -> Path:
        """Project directory."""
        return self._project_root

    @property
    def platform(self) -> str:
        """Platform identifier."""
        return self._platform

    @property
    def www_path(self) -> Path:
        """Root of the asset tree."""
        return self._www_path

    @property
    def override_path(self) -> Path:
        """Root of the platform override tree."""
        return self._override_path

    @property
    def override_exists(self) -> bool:
        """Whether the override tree existed at construction."""
        return self._override_exists

    @property
    def is_running(self) -> bool:
        """Check if any subscription is active."""
        return self._www_subscription is not None or self._override_subscription is not None

    @property
    def pending_count(self) -> int:
        """Get number of changes waiting for their suppression window."""
        return self._debouncer.pending_count

    def add_listener(self, callback: FileChangedListener) -> None:
        """Subscribe to file-changed events."""
        self._listeners.append(callback)

    def remove_listener(self, callback: FileChangedListener) -> None:
        """Unsubscribe from file-changed events."""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def start(self) -> None:
        """
        Start watching both trees.

        Must be called from a running event loop. Does nothing if the
        watcher is already running.

        Raises:
            FileNotFoundError: If www/ does not exist
            RuntimeError: If no event loop is running
        """
        if self.is_running:
            return

        self._www_subscription = self._notifier.subscribe(
            self._www_path, self._handle_www_event
        )

        if self._override_exists:
            try:
                self._override_subscription = self._notifier.subscribe(
                    self._override_path, self._handle_merges_event
                )
            except Exception:
                self.stop()
                raise

        self.log.info(
            "change_watcher_started",
            path=str(self._www_path),
            override_path=str(self._override_path) if self._override_exists else None,
        )

    def stop(self) -> None:
        """Stop watching and drop changes that have not been reported yet."""
        was_running = self.is_running

        if self._www_subscription is not None:
            self._www_subscription.close()
            self._www_subscription = None

        if self._override_subscription is not None:
            self._override_subscription.close()
            self._override_subscription = None

        self._debouncer.cancel_all()

        if was_running:
            self.log.info("change_watcher_stopped")

    def _handle_www_event(self, event_kind: str, relative_path: str | None) -> None:
        self.handle_notification(RootKind.ASSETS, relative_path)

    def _handle_merges_event(self, event_kind: str, relative_path: str | None) -> None:
        self.handle_notification(RootKind.OVERRIDES, relative_path)

    def handle_notification(self, root: RootKind, relative_path: str | None) -> None:
        """
        Run one raw notification through the filter pipeline.

        Args:
            root: Tree the notification came from
            relative_path: Changed path relative to that tree, if known
        """
        # Editors write swap and backup files next to the real ones
        if is_temporary_file(relative_path):
            return

        if not relative_path:
            self.log.warning(
                "file_path_unknown",
                root=root.value,
                message="Could not reload the modified file because the watcher did not report which file changed",
            )
            return

        prefix = self._www_path if root is RootKind.ASSETS else self._override_path
        if self._is_directory(prefix / relative_path):
            return

        # The running app uses the override, not the asset
        if root is RootKind.ASSETS and self._has_override(relative_path):
            return

        # Watchers often report a single write several times
        ignore_id = relative_path or UNKNOWN_FILE_ID
        if self._debouncer.is_suppressed(ignore_id):
            return

        self._debouncer.arm(ignore_id, lambda: self._emit(relative_path, root))

    def _is_directory(self, path: Path) -> bool:
        try:
            return path.is_dir()
        except OSError as e:
            self.log.debug("directory_check_failed", path=str(path), error=str(e))
            return False

    def _has_override(self, relative_path: str) -> bool:
        if not self._override_exists:
            return False

        override_file = self._override_path / relative_path
        try:
            return override_file.exists()
        except OSError as e:
            self.log.debug("override_check_failed", path=str(override_file), error=str(e))
            return False

    def _emit(self, relative_path: str, root: RootKind) -> None:
        self.log.debug("file_changed", path=relative_path, root=root.value)

        for listener in list(self._listeners):
            try:
                if inspect.iscoroutinefunction(listener):
                    task = asyncio.get_running_loop().create_task(listener(relative_path, root))
                    self._listener_tasks.add(task)
                    task.add_done_callback(self._log_listener_task)
                else:
                    listener(relative_path, root)
            except Exception as e:
                self.log.error("file_changed_listener_failed", path=relative_path, error=str(e))

    def _log_listener_task(self, task: "asyncio.Task[Any]") -> None:
        self._listener_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.error("file_changed_listener_failed", error=str(exc))

    def __enter__(self) -> "ChangeWatcher":
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.stop()
