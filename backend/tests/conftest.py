"""
Asset Watcher Test Configuration.

Pytest fixtures and configuration.
Requires Python 3.11+.
"""

from pathlib import Path
from typing import Any

import pytest

from watcher.file_watcher import RootKind


class FakeSubscription:
    """Subscription handle recorded by FakeNotifier."""

    def __init__(self, root: Path, callback: Any) -> None:
        self.root = root
        self.callback = callback
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def close(self) -> None:
        self.close_calls += 1


class FakeNotifier:
    """Notifier driven by the test instead of the file system."""

    def __init__(self, fail_on: set[Path] | None = None) -> None:
        self.subscriptions: list[FakeSubscription] = []
        self._fail_on = fail_on or set()

    def subscribe(self, root: Path, callback: Any) -> FakeSubscription:
        if root in self._fail_on:
            raise FileNotFoundError(f"Cannot watch missing directory: {root}")
        subscription = FakeSubscription(root, callback)
        self.subscriptions.append(subscription)
        return subscription

    @property
    def active(self) -> list[FakeSubscription]:
        return [s for s in self.subscriptions if not s.closed]

    def notify(self, root: Path, relative_path: str | None, event_kind: str = "modified") -> None:
        """Deliver a raw notification to every open subscription on ``root``."""
        for subscription in self.active:
            if subscription.root == root:
                subscription.callback(event_kind, relative_path)


class Recorder:
    """Collects file-changed events."""

    def __init__(self) -> None:
        self.events: list[tuple[str, RootKind]] = []

    def __call__(self, relative_path: str, root: RootKind) -> None:
        self.events.append((relative_path, root))


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Project with www/ and no merges/ directory."""
    www = tmp_path / "www"
    (www / "css").mkdir(parents=True)
    (www / "images").mkdir()
    (www / "index.html").write_text("<html></html>")
    (www / "css" / "app.css").write_text("body {}")
    (www / "images" / "logo.png").write_bytes(b"\x89PNG")
    return tmp_path


@pytest.fixture
def project_with_merges(project_root: Path) -> Path:
    """Project whose android override tree shadows images/logo.png."""
    merges = project_root / "merges" / "android"
    (merges / "images").mkdir(parents=True)
    (merges / "images" / "logo.png").write_bytes(b"\x89PNG")
    return project_root


@pytest.fixture
def notifier() -> FakeNotifier:
    """Create a fake notifier."""
    return FakeNotifier()


@pytest.fixture
def recorder() -> Recorder:
    """Create an event recorder."""
    return Recorder()
