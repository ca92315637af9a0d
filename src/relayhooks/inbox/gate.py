"""Inbox-check gate.

A gate is a hook that holds an emission until an inbox predicate holds:

- predicate already true      -> Continue, no suspension
- a new snapshot satisfies it -> Continue
- timeout elapses             -> Retry(InboxTimeout), re-checking later is fine
- cancellation fires          -> Abort(Cancelled)

Gates only read snapshots; they never mutate the inbox.
"""

import asyncio
import logging
from contextlib import nullcontext

from relayhooks.foundation.config import get_config
from relayhooks.hooks.context import EmissionContext, current_emission
from relayhooks.hooks.types import CANCELLED, CONTINUE, Abort, Event, InboxTimeout, Outcome, Retry
from relayhooks.inbox.sources import PollingSource, SnapshotSource
from relayhooks.inbox.types import InboxPredicate, InboxSnapshot

logger = logging.getLogger(__name__)


class InboxGate:
    """Hook handler suspending an emission until the inbox is ready.

    Usage:
        feed = InboxFeed()
        hooks.on_step_start(InboxGate(has_messages(), feed, timeout=10))

    Inside an emission the gate uses the emit call's cancellation signal
    and marks the emission as suspended while it waits. Outside one, call
    check() directly.
    """

    def __init__(
        self,
        predicate: InboxPredicate,
        source: SnapshotSource,
        timeout: float | None = None,
    ) -> None:
        """Initialize the gate.

        Args:
            predicate: Condition on the snapshot that releases the gate
            source: Where snapshots come from
            timeout: Seconds to wait (config gate.timeout_s when omitted)
        """
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")
        self.predicate = predicate
        self.source = source
        self.timeout = timeout if timeout is not None else get_config().gate.timeout_s

    async def __call__(self, event: Event) -> Outcome:
        context = current_emission()
        return await self._run(context.cancel if context else None, context)

    async def check(self, *, cancel: asyncio.Event | None = None) -> Outcome:
        """Run the gate outside an emitter."""
        return await self._run(cancel, None)

    async def _run(
        self,
        cancel: asyncio.Event | None,
        context: EmissionContext | None,
    ) -> Outcome:
        # Polling readers do blocking I/O
        if isinstance(self.source, PollingSource):
            snapshot = await asyncio.to_thread(self.source.latest)
        else:
            snapshot = self.source.latest()
        if self.predicate(snapshot):
            return CONTINUE
        if cancel is not None and cancel.is_set():
            return Abort(CANCELLED)

        logger.debug("Inbox gate suspending for up to %.3gs", self.timeout)
        with context.suspended() if context is not None else nullcontext():
            return await self._wait(snapshot, cancel)

    async def _wait(self, snapshot: InboxSnapshot, cancel: asyncio.Event | None) -> Outcome:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        cancelled = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        update: asyncio.Future[InboxSnapshot] | None = None

        try:
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break

                update = asyncio.ensure_future(self.source.updated(snapshot))
                waiting = {update} if cancelled is None else {update, cancelled}
                done, _ = await asyncio.wait(
                    waiting, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )

                if cancelled is not None and cancelled in done:
                    logger.debug("Inbox gate cancelled")
                    return Abort(CANCELLED)
                if update not in done:
                    break

                snapshot = update.result()
                update = None
                if self.predicate(snapshot):
                    logger.debug("Inbox gate released (%d unread)", len(snapshot.unread))
                    return CONTINUE
        finally:
            if update is not None:
                update.cancel()
            if cancelled is not None:
                cancelled.cancel()

        logger.info("Inbox gate timed out after %.3gs", self.timeout)
        return Retry(InboxTimeout(self.timeout))


def gate(
    predicate: InboxPredicate,
    source: SnapshotSource,
    timeout: float | None = None,
) -> InboxGate:
    """Create an inbox gate hook handler."""
    return InboxGate(predicate, source, timeout)
