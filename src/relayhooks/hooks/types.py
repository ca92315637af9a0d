"""Hook system types and event definitions.

Shared vocabulary for the registry, emitter, trajectory layer and inbox
gates. No behavior beyond small helpers lives here.
"""

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from time import time
from types import MappingProxyType
from typing import Any, TypeAlias


class EventKind(Enum):
    """Trajectory lifecycle points.

    Lifecycle events:
    - RUN_START/RUN_END: Run boundaries, at most once each
    - STEP_START/STEP_END: Step boundaries, strictly alternating

    Execution events:
    - TOOL_CALL/TOOL_RESULT: Tool invocation and its result
    - ERROR: The driver hit an error

    Any other non-empty string is accepted as a custom kind.
    """

    RUN_START = "run:start"
    STEP_START = "step:start"
    STEP_END = "step:end"
    TOOL_CALL = "tool:call"
    TOOL_RESULT = "tool:result"
    ERROR = "error"
    RUN_END = "run:end"


EventKey: TypeAlias = EventKind | str
"""A built-in EventKind or a custom kind string."""

_KIND_BY_VALUE: dict[str, EventKind] = {k.value: k for k in EventKind}


def normalize_kind(kind: EventKey) -> EventKey:
    """Map built-in kind strings (e.g. "step:start") to their EventKind member.

    Raises:
        ValueError: If ``kind`` is neither an EventKind nor a non-empty string.
    """
    if isinstance(kind, EventKind):
        return kind
    if not isinstance(kind, str) or not kind:
        raise ValueError(f"Event kind must be an EventKind or non-empty str, got {kind!r}")
    return _KIND_BY_VALUE.get(kind, kind)


def kind_label(kind: EventKey) -> str:
    """Display string for logs."""
    return kind.value if isinstance(kind, EventKind) else kind


@dataclass(frozen=True, slots=True)
class Event:
    """One lifecycle event of a trajectory. Immutable once built.

    Attributes:
        kind: The lifecycle point (or custom kind)
        trajectory_id: Owning trajectory
        sequence: Monotonic per trajectory_id
        payload: Event-specific data, exposed read-only
        timestamp: Epoch seconds
    """

    kind: EventKey
    trajectory_id: str
    sequence: int
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", normalize_kind(self.kind))
        if not isinstance(self.payload, MappingProxyType):
            object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))


# =============================================================================
# Outcome reasons
# =============================================================================


@dataclass(frozen=True, slots=True)
class HandlerFailure:
    """A hook raised (or returned garbage). Folded into Abort."""

    hook_id: str
    cause: BaseException

    def describe(self) -> str:
        return f"hook '{self.hook_id}' failed: {type(self.cause).__name__}: {self.cause}"


@dataclass(frozen=True, slots=True)
class Cancelled:
    """The emission's cancellation signal fired. Folded into Abort.

    Distinct from HandlerFailure so drivers can skip alerting on
    user-initiated cancellation.
    """

    def describe(self) -> str:
        return "cancelled"


@dataclass(frozen=True, slots=True)
class InboxTimeout:
    """A gate waited ``timeout`` seconds without its predicate holding."""

    timeout: float

    def describe(self) -> str:
        return f"inbox predicate not satisfied within {self.timeout:g}s"


CANCELLED = Cancelled()


# =============================================================================
# Outcome (closed sum type)
# =============================================================================


@dataclass(frozen=True, slots=True)
class Continue:
    """Proceed normally."""


@dataclass(frozen=True, slots=True)
class Retry:
    """Ask the driver to re-attempt later. Advisory only."""

    hint: Any = None


@dataclass(frozen=True, slots=True)
class Abort:
    """Stop the trajectory.

    Attributes:
        reason: A string, HandlerFailure, Cancelled, or any driver-defined value
        hook_id: Hook that produced the abort, filled in by the emitter
    """

    reason: Any = None
    hook_id: str | None = None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.reason, Cancelled)

    @property
    def failed(self) -> bool:
        return isinstance(self.reason, HandlerFailure)

    def describe(self) -> str:
        detail = self.reason.describe() if hasattr(self.reason, "describe") else str(self.reason)
        if self.hook_id and not self.failed:
            return f"aborted by hook '{self.hook_id}': {detail}"
        return detail


Outcome: TypeAlias = Continue | Retry | Abort

CONTINUE = Continue()

_SEVERITY: dict[type, int] = {Continue: 0, Retry: 1, Abort: 2}


def severity(outcome: Outcome) -> int:
    """Fold rank: Abort > Retry > Continue."""
    return _SEVERITY[type(outcome)]


def fold(outcomes: Iterable[Outcome]) -> Outcome:
    """Combine handler outcomes into one verdict.

    The first outcome of the highest severity wins, so the earliest Abort
    (or, failing that, the earliest Retry) is reported.
    """
    result: Outcome = CONTINUE
    for outcome in outcomes:
        if severity(outcome) > severity(result):
            result = outcome
    return result


# =============================================================================
# Handler contract
# =============================================================================

HookResult: TypeAlias = Outcome | None

HookHandler = Callable[[Event], Awaitable[HookResult] | HookResult]
"""Hook handler signature.

Args:
    event: The event that triggered the hook

Returns:
    An Outcome, or None (treated as Continue). May be sync or async.

Example:
    async def require_approval(event: Event) -> Outcome:
        if event.payload.get("tool") == "rm":
            return Abort("destructive tool")
        return CONTINUE
"""

Unregister = Callable[[], bool]
"""Handle returned by registration; removes the hook when called."""


@dataclass(frozen=True, slots=True)
class HookDescriptor:
    """A registered hook.

    Attributes:
        id: Unique within one registry
        kind: Event kind the hook listens to
        handler: Callable invoked with the Event
        priority: Ascending, lower runs earlier
        once: Unregister automatically after the first invocation
        name: Optional display name for logs
    """

    id: str
    kind: EventKey
    handler: HookHandler
    priority: int = 0
    once: bool = False
    name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", normalize_kind(self.kind))

    @property
    def label(self) -> str:
        return self.name or self.id
