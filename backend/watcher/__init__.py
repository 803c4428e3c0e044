"""
Asset Watcher Package.

Live-reload change detection for www/ and merges/<platform>/.
Requires Python 3.11+.
"""

from watcher.debouncer import Debouncer
from watcher.file_watcher import ChangeWatcher, RootKind
from watcher.notifier import WatchdogNotifier

__all__ = ["ChangeWatcher", "RootKind", "Debouncer", "WatchdogNotifier"]
