"""Lifecycle-phase hooks for one trajectory.

TrajectoryHooks owns (or is handed) a registry and emitter for a single
trajectory, validates every lifecycle event against the transition rules
before any hook runs, and exposes typed wrappers so callers attach by
phase instead of raw kind/priority pairs.

Hooks receive the Event, which carries the trajectory id, never the
TrajectoryHooks object itself.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable, Mapping
from typing import Any

from relayhooks.foundation.config import get_config
from relayhooks.hooks.emitter import HookEmitter
from relayhooks.hooks.registry import HookRegistry
from relayhooks.hooks.types import (
    Abort,
    Continue,
    Event,
    EventKey,
    EventKind,
    HookHandler,
    Outcome,
    Unregister,
    kind_label,
    normalize_kind,
)
from relayhooks.trajectory.state import TrajectoryState, TrajectoryTracker

logger = logging.getLogger(__name__)


class TrajectoryHooks:
    """Hook surface of one agent run.

    Usage:
        hooks = TrajectoryHooks()

        @hooks.on_tool_call(priority=-10)
        async def deny_shell(event: Event) -> Outcome:
            if event.payload.get("tool") == "shell":
                return Abort("shell disabled")
            return CONTINUE

        await hooks.fire(EventKind.RUN_START)
        outcome = await hooks.fire(EventKind.TOOL_CALL, {"tool": "shell"})
    """

    def __init__(
        self,
        trajectory_id: str | None = None,
        registry: HookRegistry | None = None,
        emitter: HookEmitter | None = None,
    ) -> None:
        """Initialize the trajectory hooks.

        Args:
            trajectory_id: Id stamped on built events (random when omitted)
            registry: Registry to attach hooks to (new one when omitted)
            emitter: Emitter to drive hooks (new one when omitted); must
                share ``registry``
        """
        if emitter is not None and registry is not None and emitter.registry is not registry:
            raise ValueError("emitter must be bound to the given registry")

        self.trajectory_id = trajectory_id or uuid.uuid4().hex[:12]
        self.registry = registry or (emitter.registry if emitter else HookRegistry())
        self.emitter = emitter or HookEmitter(self.registry)
        self._tracker = TrajectoryTracker(self.trajectory_id)
        self._issued = 0

    @property
    def state(self) -> TrajectoryState:
        """Current state; AWAITING_INBOX while a gate holds an emission."""
        state = self._tracker.state
        if not state.is_terminal and self.emitter.suspended:
            return TrajectoryState.AWAITING_INBOX
        return state

    @property
    def step_open(self) -> bool:
        return self._tracker.step_open

    # =========================================================================
    # Emission
    # =========================================================================

    def event(self, kind: EventKey, payload: Mapping[str, Any] | None = None) -> Event:
        """Build the next event of this trajectory with a fresh sequence number."""
        self._issued = max(self._issued, self._tracker.last_sequence or 0) + 1
        return Event(
            kind=kind,
            trajectory_id=self.trajectory_id,
            sequence=self._issued,
            payload=payload or {},
        )

    async def emit(self, event: Event, *, cancel: asyncio.Event | None = None) -> Outcome:
        """Validate and emit a lifecycle event.

        The transition is committed on Continue. Retry leaves the state as it
        was so the driver may emit the same kind again. Abort ends the
        trajectory.

        Raises:
            InvalidTransition: If the event violates the lifecycle rules. No
                hook runs in that case.
        """
        self._tracker.check(event)

        outcome = await self.emitter.emit(event, cancel=cancel)

        if isinstance(outcome, Continue):
            self._tracker.commit(event)
        elif isinstance(outcome, Abort):
            self._tracker.abort(event)
            if outcome.cancelled:
                logger.info("Trajectory %s cancelled at %s", self.trajectory_id, kind_label(event.kind))
            else:
                logger.warning(
                    "Trajectory %s aborted at %s: %s",
                    self.trajectory_id,
                    kind_label(event.kind),
                    outcome.describe(),
                )
        else:
            self._tracker.observe(event)
            logger.debug(
                "Trajectory %s asked to retry %s: %s",
                self.trajectory_id,
                kind_label(event.kind),
                outcome.hint,
            )
        return outcome

    async def fire(
        self,
        kind: EventKey,
        payload: Mapping[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> Outcome:
        """Build the next event of ``kind`` and emit it."""
        return await self.emit(self.event(kind, payload), cancel=cancel)

    # =========================================================================
    # Phase wrappers
    # =========================================================================

    def _attach(
        self,
        kind: EventKey,
        handler: HookHandler | None,
        priority: int | None,
        once: bool,
        hook_id: str | None,
        name: str | None,
    ) -> Any:
        if priority is None:
            priority = get_config().hooks.default_priority

        if handler is None:
            def decorator(fn: HookHandler) -> HookHandler:
                self.registry.on(kind, fn, priority=priority, once=once, hook_id=hook_id, name=name)
                return fn
            return decorator

        return self.registry.on(kind, handler, priority=priority, once=once, hook_id=hook_id, name=name)

    def on_custom(
        self,
        kind: str,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to a custom event kind.

        Returns an unregister handle, or a decorator when ``handler`` is omitted.
        """
        if isinstance(normalize_kind(kind), EventKind):
            raise ValueError(f"'{kind}' is a built-in kind; use its phase wrapper")
        return self._attach(kind, handler, priority, once, hook_id, name)

    def on_run_start(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to run start."""
        return self._attach(EventKind.RUN_START, handler, priority, once, hook_id, name)

    def on_step_start(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to step start. Gates usually go here."""
        return self._attach(EventKind.STEP_START, handler, priority, once, hook_id, name)

    def on_step_end(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to step end."""
        return self._attach(EventKind.STEP_END, handler, priority, once, hook_id, name)

    def on_tool_call(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to tool calls."""
        return self._attach(EventKind.TOOL_CALL, handler, priority, once, hook_id, name)

    def on_tool_result(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to tool results."""
        return self._attach(EventKind.TOOL_RESULT, handler, priority, once, hook_id, name)

    def on_error(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to driver errors."""
        return self._attach(EventKind.ERROR, handler, priority, once, hook_id, name)

    def on_run_end(
        self,
        handler: HookHandler | None = None,
        *,
        priority: int | None = None,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister | Callable[[HookHandler], HookHandler]:
        """Attach a hook to run end."""
        return self._attach(EventKind.RUN_END, handler, priority, once, hook_id, name)
