"""
Asset Watcher Debouncer.

Per-file suppression windows for duplicate file system events.
Requires Python 3.11+.
"""

import asyncio
from collections.abc import Callable
from typing import Any

from utils.logger import LoggerMixin


class Debouncer(LoggerMixin):
    """
    Suppresses repeated events for the same key within a fixed window.

    The first event for a key arms a single-shot timer. While the timer
    is pending the key is suppressed; when it fires the key is released
    and the callback given to ``arm`` runs. Later events in the window
    never reset the timer, so the first event of a burst wins.

    Timers run on the asyncio loop that is current when ``arm`` is called.
    """

    def __init__(self, delay_ms: int = 150) -> None:
        """
        Initialize the debouncer.

        Args:
            delay_ms: Suppression window in milliseconds
        """
        if delay_ms < 0:
            raise ValueError("Debounce delay must be non-negative")

        self._delay = delay_ms / 1000.0
        # Entries flip between True and False, they are never removed
        self._suppressed: dict[str, bool] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    @property
    def delay(self) -> float:
        """Suppression window in seconds."""
        return self._delay

    def is_suppressed(self, key: str) -> bool:
        """Check whether events for ``key`` are currently being dropped."""
        return self._suppressed.get(key, False)

    def arm(self, key: str, callback: Callable[[], Any]) -> None:
        """
        Suppress ``key`` and schedule ``callback`` after the window.

        Args:
            key: Suppression key (usually a relative file path)
            callback: Called once the key has been released
        """
        loop = asyncio.get_running_loop()
        self._suppressed[key] = True
        self._timers[key] = loop.call_later(self._delay, self._release, key, callback)

    def _release(self, key: str, callback: Callable[[], Any]) -> None:
        self._suppressed[key] = False
        self._timers.pop(key, None)
        callback()

    def cancel_all(self) -> None:
        """Cancel every pending timer and release its key."""
        if self._timers:
            self.log.debug("cancelling_pending_events", count=len(self._timers))

        for key, timer in self._timers.items():
            timer.cancel()
            self._suppressed[key] = False
        self._timers.clear()

    @property
    def pending_count(self) -> int:
        """Get number of keys waiting for their timer."""
        return len(self._timers)

    @property
    def pending_keys(self) -> list[str]:
        """Get keys waiting for their timer."""
        return list(self._timers.keys())
