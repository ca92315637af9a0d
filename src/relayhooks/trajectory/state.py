"""Trajectory state machine and transition rules.

Idle -> Running (RUN_START) -> {Stepping, AwaitingInbox, Erroring}
     -> Completed (RUN_END) | Aborted (an emission aborted)

The tracker only validates and commits transitions; it never runs hooks.
"""

from dataclasses import dataclass
from enum import Enum

from relayhooks.foundation.errors import InvalidTransition
from relayhooks.hooks.types import Event, EventKey, EventKind


class TrajectoryState(Enum):
    """Derived lifecycle state of one trajectory."""

    IDLE = "idle"
    RUNNING = "running"
    STEPPING = "stepping"
    AWAITING_INBOX = "awaiting_inbox"
    ERRORING = "erroring"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (TrajectoryState.COMPLETED, TrajectoryState.ABORTED)


@dataclass
class TrajectoryTracker:
    """Validates lifecycle events for one trajectory id.

    Rules:
    - RUN_START first, at most once
    - RUN_END at most once, nothing after a terminal state
    - STEP_START and STEP_END alternate
    - Sequence numbers strictly increase (custom kinds included)
    """

    trajectory_id: str
    state: TrajectoryState = TrajectoryState.IDLE
    step_open: bool = False
    last_sequence: int | None = None

    def check(self, event: Event) -> None:
        """Validate ``event`` against the current state without committing.

        Raises:
            InvalidTransition: If the event is out of order
        """
        if event.trajectory_id != self.trajectory_id:
            self._reject(event.kind, f"event belongs to trajectory '{event.trajectory_id}'")
        if self.last_sequence is not None and event.sequence <= self.last_sequence:
            self._reject(
                event.kind,
                f"sequence {event.sequence} not greater than {self.last_sequence}",
            )
        if self.state.is_terminal:
            self._reject(event.kind, "trajectory already finished")

        kind = event.kind
        if not isinstance(kind, EventKind):
            return

        if kind is EventKind.RUN_START:
            if self.state is not TrajectoryState.IDLE:
                self._reject(kind, "run already started")
            return
        if self.state is TrajectoryState.IDLE:
            self._reject(kind, "run not started")
        if kind is EventKind.STEP_START and self.step_open:
            self._reject(kind, "previous step not ended")
        if kind is EventKind.STEP_END and not self.step_open:
            self._reject(kind, "no step in progress")

    def observe(self, event: Event) -> None:
        """Record the event's sequence number without changing state.

        Used when an emission answered Retry, so the same kind may be
        emitted again with a fresh sequence number.
        """
        self.last_sequence = event.sequence

    def commit(self, event: Event) -> TrajectoryState:
        """Apply a validated event's transition."""
        self.observe(event)
        kind = event.kind
        if kind is EventKind.RUN_START:
            self.state = TrajectoryState.RUNNING
        elif kind is EventKind.STEP_START:
            self.step_open = True
            self.state = TrajectoryState.STEPPING
        elif kind is EventKind.STEP_END:
            self.step_open = False
            self.state = TrajectoryState.RUNNING
        elif kind is EventKind.ERROR:
            self.state = TrajectoryState.ERRORING
        elif kind in (EventKind.TOOL_CALL, EventKind.TOOL_RESULT):
            self.state = TrajectoryState.STEPPING if self.step_open else TrajectoryState.RUNNING
        elif kind is EventKind.RUN_END:
            self.step_open = False
            self.state = TrajectoryState.COMPLETED
        return self.state

    def abort(self, event: Event) -> TrajectoryState:
        """Move to the terminal ABORTED state."""
        self.observe(event)
        self.state = TrajectoryState.ABORTED
        return self.state

    def _reject(self, kind: EventKey, detail: str) -> None:
        raise InvalidTransition(self.trajectory_id, kind, self.state, detail)
