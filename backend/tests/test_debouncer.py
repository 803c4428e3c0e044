"""
Tests for Debouncer.

Requires Python 3.11+.
"""

import asyncio

import pytest

from watcher.debouncer import Debouncer


class TestDebouncer:
    """Test cases for Debouncer."""

    def test_negative_delay_rejected(self):
        """Test that a negative window is invalid."""
        with pytest.raises(ValueError):
            Debouncer(delay_ms=-1)

    def test_unknown_key_not_suppressed(self):
        """Test that keys start out released."""
        debouncer = Debouncer()
        assert debouncer.is_suppressed("index.html") is False
        assert debouncer.delay == pytest.approx(0.15)

    @pytest.mark.asyncio
    async def test_arm_suppresses_until_fired(self):
        """Test that a key stays suppressed until its timer fires."""
        debouncer = Debouncer(delay_ms=50)
        fired: list[str] = []

        debouncer.arm("index.html", lambda: fired.append("index.html"))

        assert debouncer.is_suppressed("index.html")
        assert debouncer.pending_keys == ["index.html"]
        assert fired == []

        await asyncio.sleep(0.15)

        assert fired == ["index.html"]
        assert debouncer.is_suppressed("index.html") is False
        assert debouncer.pending_count == 0

    @pytest.mark.asyncio
    async def test_key_released_before_callback(self):
        """Test that the callback observes the key as released."""
        debouncer = Debouncer(delay_ms=10)
        seen: list[bool] = []

        debouncer.arm("a.js", lambda: seen.append(debouncer.is_suppressed("a.js")))
        await asyncio.sleep(0.1)

        assert seen == [False]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self):
        """Test that different keys have separate windows."""
        debouncer = Debouncer(delay_ms=50)
        debouncer.arm("a.js", lambda: None)

        assert debouncer.is_suppressed("a.js")
        assert debouncer.is_suppressed("b.js") is False

        await asyncio.sleep(0.15)

    @pytest.mark.asyncio
    async def test_cancel_all(self):
        """Test that cancelled timers never fire and keys are released."""
        debouncer = Debouncer(delay_ms=50)
        fired: list[str] = []

        debouncer.arm("a.js", lambda: fired.append("a.js"))
        debouncer.arm("b.js", lambda: fired.append("b.js"))
        assert debouncer.pending_count == 2

        debouncer.cancel_all()
        await asyncio.sleep(0.15)

        assert fired == []
        assert debouncer.pending_count == 0
        assert debouncer.is_suppressed("a.js") is False

    def test_arm_requires_running_loop(self):
        """Test that arming outside an event loop fails."""
        debouncer = Debouncer()
        with pytest.raises(RuntimeError):
            debouncer.arm("a.js", lambda: None)
