"""Hook emitter.

Drives the hooks resolved for one event:
- Handlers run strictly one after another, each awaited before the next
  starts, so later hooks observe earlier hooks' side effects
- A raising handler becomes Abort(HandlerFailure) instead of escaping
- The first Abort stops the rest of the snapshot
- ``once`` hooks are unregistered as soon as their handler finishes
- Cancellation is advisory and observed between handlers and inside gates
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass, field

from relayhooks.foundation.errors import ErrorCode, RelayHooksError
from relayhooks.hooks.context import EmissionContext, _enter, _exit
from relayhooks.hooks.registry import HookRegistry
from relayhooks.hooks.types import (
    CANCELLED,
    CONTINUE,
    Abort,
    Continue,
    Event,
    HandlerFailure,
    HookDescriptor,
    Outcome,
    Retry,
    fold,
    kind_label,
)

logger = logging.getLogger(__name__)


@dataclass
class HookEmitter:
    """Emit events to the hooks of a registry.

    Usage:
        registry = HookRegistry()
        emitter = HookEmitter(registry)

        outcome = await emitter.emit(event)
        if isinstance(outcome, Abort):
            ...  # driver halts
    """

    registry: HookRegistry
    """Registry the hooks are resolved from."""

    _suspensions: int = field(default=0, init=False)
    """Number of gates currently waiting inside an emission."""

    @property
    def suspended(self) -> bool:
        """Whether a gate is currently holding one of our emissions."""
        return self._suspensions > 0

    def _track_suspension(self, delta: int) -> None:
        self._suspensions += delta

    async def emit(self, event: Event, *, cancel: asyncio.Event | None = None) -> Outcome:
        """Emit an event to its hooks and fold their outcomes.

        Args:
            event: The event to emit
            cancel: Optional cancellation signal for this call

        Returns:
            Abort if a hook aborted, failed, or cancellation fired; else
            Retry if a hook asked for it; else Continue. Never raises for
            handler faults.
        """
        hooks = self.registry.resolve(event.kind)
        if not hooks:
            return CONTINUE

        logger.debug(
            "Emitting %s #%d of %s to %d hooks",
            kind_label(event.kind),
            event.sequence,
            event.trajectory_id,
            len(hooks),
        )

        context = EmissionContext(event=event, cancel=cancel, on_suspend=self._track_suspension)
        outcomes: list[Outcome] = []

        for hook in hooks:
            if context.cancelled:
                logger.debug("Emission of %s cancelled before hook %s", kind_label(event.kind), hook.label)
                return Abort(CANCELLED)

            outcome = await self._invoke(hook, event, context)

            if hook.once:
                self.registry.unregister(hook.id)

            if isinstance(outcome, Abort):
                logger.debug("Hook %s aborted %s: %s", hook.label, kind_label(event.kind), outcome.describe())
                return outcome

            outcomes.append(outcome)

            if context.cancelled:
                logger.debug("Emission of %s cancelled after hook %s", kind_label(event.kind), hook.label)
                return Abort(CANCELLED)

        return fold(outcomes)

    async def _invoke(
        self,
        hook: HookDescriptor,
        event: Event,
        context: EmissionContext,
    ) -> Outcome:
        """Run one handler, converting faults into Abort(HandlerFailure)."""
        context.hook_id = hook.id
        token = _enter(context)
        try:
            result = hook.handler(event)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.exception("Hook %s failed for event %s", hook.label, kind_label(event.kind))
            return Abort(HandlerFailure(hook.id, e), hook_id=hook.id)
        finally:
            _exit(token)
            context.hook_id = None

        if result is None:
            return CONTINUE
        if isinstance(result, Abort):
            return result if result.hook_id else Abort(result.reason, hook_id=hook.id)
        if isinstance(result, (Continue, Retry)):
            return result

        error = RelayHooksError(
            ErrorCode.HANDLER_INVALID_RESULT,
            {"hook_id": hook.id, "detail": type(result).__name__},
        )
        logger.error("%s", error)
        return Abort(HandlerFailure(hook.id, error), hook_id=hook.id)
