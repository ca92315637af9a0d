"""Snapshot sources for inbox gates.

A source answers two questions: what the inbox looks like now, and (as an
awaitable) what it looks like once it changes. Transport mechanics stay on
the other side of this boundary.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol, runtime_checkable

from relayhooks.foundation.config import get_config
from relayhooks.inbox.types import EMPTY_SNAPSHOT, InboxSnapshot

logger = logging.getLogger(__name__)


@runtime_checkable
class SnapshotSource(Protocol):
    """Read-only access to inbox snapshots."""

    def latest(self) -> InboxSnapshot:
        """Current snapshot (pull)."""
        ...

    async def updated(self, since: InboxSnapshot) -> InboxSnapshot:
        """Resolve with the first snapshot that differs from ``since``."""
        ...


class InboxFeed:
    """Push-based source: the transport publishes, suspended gates wake up.

    Usage:
        feed = InboxFeed()
        gate = InboxGate(has_messages(), feed, timeout=5)

        # transport side
        feed.publish(InboxSnapshot(messages=(msg,)))
    """

    def __init__(self, initial: InboxSnapshot = EMPTY_SNAPSHOT) -> None:
        self._latest = initial
        self._version = 0
        self._changed = asyncio.Event()

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version

    def latest(self) -> InboxSnapshot:
        return self._latest

    def publish(self, snapshot: InboxSnapshot) -> None:
        """Replace the current snapshot and wake every waiting gate.

        Must be called from the event loop thread; use publish_threadsafe()
        from transport threads.
        """
        self._latest = snapshot
        self._version += 1
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        logger.debug("Inbox snapshot #%d published (%d messages)", self._version, len(snapshot))

    def publish_threadsafe(self, loop: asyncio.AbstractEventLoop, snapshot: InboxSnapshot) -> None:
        """Schedule publish() on ``loop`` from another thread."""
        loop.call_soon_threadsafe(self.publish, snapshot)

    async def updated(self, since: InboxSnapshot) -> InboxSnapshot:
        while self._latest is since:
            await self._changed.wait()
        return self._latest


class PollingSource:
    """Pull-based source: re-reads the inbox on a fixed interval.

    The reader runs in a worker thread during waits so file or network
    reads do not block the event loop.
    """

    def __init__(
        self,
        reader: Callable[[], InboxSnapshot],
        interval: float | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            reader: Returns the current snapshot
            interval: Seconds between reads (config gate.poll_interval_s when omitted)
        """
        self._reader = reader
        self.interval = interval if interval is not None else get_config().gate.poll_interval_s

    def latest(self) -> InboxSnapshot:
        return self._reader()

    async def updated(self, since: InboxSnapshot) -> InboxSnapshot:
        while True:
            await asyncio.sleep(self.interval)
            snapshot = await asyncio.to_thread(self._reader)
            if snapshot != since:
                return snapshot
