"""Trajectory lifecycle: legal transitions and phase-typed hook wrappers."""

from relayhooks.trajectory.hooks import TrajectoryHooks
from relayhooks.trajectory.state import TrajectoryState, TrajectoryTracker

__all__ = [
    "TrajectoryHooks",
    "TrajectoryState",
    "TrajectoryTracker",
]
