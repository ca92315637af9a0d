"""Hooks: registry and emitter for trajectory events.

Components:
- EventKind / Event: What gets emitted
- Continue / Retry / Abort: What hooks answer
- HookRegistry: Registration and ordered snapshots
- HookEmitter: Sequential dispatch with failure isolation

Usage:
    from relayhooks.hooks import Abort, EventKind, HookEmitter, HookRegistry

    registry = HookRegistry()
    registry.on(EventKind.TOOL_CALL, lambda event: Abort("no tools today"))

    outcome = await HookEmitter(registry).emit(event)
"""

from relayhooks.hooks.context import EmissionContext, current_emission
from relayhooks.hooks.emitter import HookEmitter
from relayhooks.hooks.registry import HookRegistry, new_hook_id
from relayhooks.hooks.types import (
    CANCELLED,
    CONTINUE,
    Abort,
    Cancelled,
    Continue,
    Event,
    EventKey,
    EventKind,
    HandlerFailure,
    HookDescriptor,
    HookHandler,
    HookResult,
    InboxTimeout,
    Outcome,
    Retry,
    Unregister,
    fold,
    normalize_kind,
)

__all__ = [
    # Types
    "EventKind",
    "EventKey",
    "Event",
    "HookDescriptor",
    "HookHandler",
    "HookResult",
    "Unregister",
    "normalize_kind",
    # Outcomes
    "Outcome",
    "Continue",
    "Retry",
    "Abort",
    "CONTINUE",
    "fold",
    "HandlerFailure",
    "Cancelled",
    "CANCELLED",
    "InboxTimeout",
    # Dispatch
    "HookRegistry",
    "HookEmitter",
    "EmissionContext",
    "current_emission",
    "new_hook_id",
]
