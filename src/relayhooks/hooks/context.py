"""Emission context for running hooks.

While the emitter drives a handler, the current emission is published via
contextvars (async-safe) so gates can see the cancellation signal and
report suspension without the handler signature growing extra arguments.
"""

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field

from relayhooks.hooks.types import Event


@dataclass(slots=True)
class EmissionContext:
    """State shared between the emitter and the handler it is running."""

    event: Event
    """Event being emitted."""

    cancel: asyncio.Event | None = None
    """Advisory cancellation signal for this emit call."""

    hook_id: str | None = None
    """Hook currently running."""

    on_suspend: Callable[[int], None] | None = field(default=None, repr=False)
    """Called with +1 when a gate suspends and -1 when it resumes."""

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    @contextmanager
    def suspended(self) -> Iterator[None]:
        """Mark the emission as waiting on an external condition."""
        if self.on_suspend is not None:
            self.on_suspend(1)
        try:
            yield
        finally:
            if self.on_suspend is not None:
                self.on_suspend(-1)


_current_emission: ContextVar[EmissionContext | None] = ContextVar(
    "relayhooks_emission", default=None
)


def current_emission() -> EmissionContext | None:
    """Get the emission driving the running handler, if any."""
    return _current_emission.get()


def _enter(context: EmissionContext) -> Token:
    return _current_emission.set(context)


def _exit(token: Token) -> None:
    _current_emission.reset(token)
