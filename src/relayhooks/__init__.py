"""relayhooks - Hook dispatch for agent trajectories.

Ordered, failure-isolated hooks on an agent run's lifecycle events, with
inbox-check gates that hold a trajectory until relay messages arrive.
"""

from relayhooks.foundation.errors import (
    ConfigError,
    DuplicateHookId,
    ErrorCode,
    InvalidTransition,
    RelayHooksError,
)
from relayhooks.hooks import (
    CANCELLED,
    CONTINUE,
    Abort,
    Cancelled,
    Continue,
    Event,
    EventKind,
    HandlerFailure,
    HookDescriptor,
    HookEmitter,
    HookRegistry,
    InboxTimeout,
    Outcome,
    Retry,
)
from relayhooks.inbox import (
    InboxFeed,
    InboxGate,
    InboxMessage,
    InboxSnapshot,
    MarkdownInbox,
    PollingSource,
    gate,
    has_message_from,
    has_messages,
)
from relayhooks.trajectory import TrajectoryHooks, TrajectoryState

__version__ = "0.1.0"

__all__ = [
    # Hooks
    "EventKind",
    "Event",
    "HookDescriptor",
    "HookRegistry",
    "HookEmitter",
    # Outcomes
    "Outcome",
    "Continue",
    "Retry",
    "Abort",
    "CONTINUE",
    "HandlerFailure",
    "Cancelled",
    "CANCELLED",
    "InboxTimeout",
    # Trajectory
    "TrajectoryHooks",
    "TrajectoryState",
    # Inbox
    "InboxMessage",
    "InboxSnapshot",
    "InboxFeed",
    "PollingSource",
    "InboxGate",
    "gate",
    "has_messages",
    "has_message_from",
    "MarkdownInbox",
    # Errors
    "RelayHooksError",
    "ErrorCode",
    "DuplicateHookId",
    "InvalidTransition",
    "ConfigError",
]
