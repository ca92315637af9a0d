"""Pytest fixtures for relayhooks tests."""

import logging

import pytest

from relayhooks.foundation.config import reset_config
from relayhooks.hooks import Event, EventKind, HookEmitter, HookRegistry
from relayhooks.inbox import InboxMessage, InboxSnapshot


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user/project config and relay env vars out of every test."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for var in ("AGENT_RELAY_NAME", "AGENT_RELAY_DIR", "RELAYHOOKS_DEBUG", "RELAYHOOKS_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    reset_config()
    yield
    reset_config()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def registry() -> HookRegistry:
    return HookRegistry()


@pytest.fixture
def emitter(registry: HookRegistry) -> HookEmitter:
    return HookEmitter(registry)


@pytest.fixture
def make_event():
    """Factory for events of one trajectory with increasing sequence numbers."""
    counter = iter(range(1, 10_000))

    def _make(kind=EventKind.STEP_START, payload=None, trajectory_id="traj-1") -> Event:
        return Event(kind=kind, trajectory_id=trajectory_id, sequence=next(counter), payload=payload or {})

    return _make


@pytest.fixture
def snapshot_of():
    """Build a snapshot with one message per sender."""

    def _build(*senders: str, last_checked: int = 0) -> InboxSnapshot:
        return InboxSnapshot(
            messages=tuple(
                InboxMessage(sender=s, body=f"hello from {s}", sequence=i)
                for i, s in enumerate(senders, 1)
            ),
            last_checked_sequence=last_checked,
        )

    return _build
