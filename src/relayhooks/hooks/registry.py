"""Hook registry.

Stores hooks per event kind and hands out ordered, immutable snapshots.
One registry per trajectory; there is no process-wide instance.
Thread-safe, so hooks may be (un)registered from other threads while an
emission runs.
"""

import bisect
import itertools
import logging
import threading
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from relayhooks.foundation.errors import DuplicateHookId, ErrorCode, RelayHooksError
from relayhooks.hooks.types import (
    EventKey,
    HookDescriptor,
    HookHandler,
    Unregister,
    kind_label,
    normalize_kind,
)

logger = logging.getLogger(__name__)


def new_hook_id() -> str:
    """Short random hook id."""
    return uuid.uuid4().hex[:12]


@dataclass
class HookRegistry:
    """Registry for trajectory hooks.

    Hooks of one kind are kept sorted by (priority, registration order).
    Registration order comes from a monotonic counter, so ties are never
    broken by id value.

    Usage:
        registry = HookRegistry()

        unregister = registry.on(EventKind.STEP_START, audit, priority=10)

        for hook in registry.resolve(EventKind.STEP_START):
            ...

        unregister()
    """

    _hooks: dict[str, HookDescriptor] = field(default_factory=dict)
    """All registered hooks by ID."""

    _order: dict[EventKey, list[tuple[int, int, str]]] = field(default_factory=dict)
    """Per-kind sort keys: (priority, registration seq, hook id)."""

    _snapshots: dict[EventKey, tuple[HookDescriptor, ...]] = field(default_factory=dict)
    """Cached resolve() results, dropped on mutation of that kind."""

    _counter: itertools.count = field(default_factory=itertools.count)
    """Registration order."""

    _lock: threading.Lock = field(default_factory=threading.Lock)
    """Lock for thread-safe access."""

    def register(self, descriptor: HookDescriptor) -> Unregister:
        """Register a hook.

        Args:
            descriptor: The hook to add

        Returns:
            Unregister handle removing exactly this hook

        Raises:
            DuplicateHookId: If a hook with the same id exists
            RelayHooksError: If the id is empty or the handler is not callable
        """
        if not descriptor.id:
            raise RelayHooksError(
                ErrorCode.HOOK_INVALID, {"hook_id": descriptor.id, "detail": "empty id"}
            )
        if not callable(descriptor.handler):
            raise RelayHooksError(
                ErrorCode.HOOK_INVALID,
                {"hook_id": descriptor.id, "detail": "handler is not callable"},
            )

        with self._lock:
            if descriptor.id in self._hooks:
                raise DuplicateHookId(descriptor.id)

            self._hooks[descriptor.id] = descriptor
            bisect.insort(
                self._order.setdefault(descriptor.kind, []),
                (descriptor.priority, next(self._counter), descriptor.id),
            )
            self._snapshots.pop(descriptor.kind, None)

        logger.debug(
            "Registered hook %s for %s (priority=%d, once=%s)",
            descriptor.label,
            kind_label(descriptor.kind),
            descriptor.priority,
            descriptor.once,
        )

        hook_id = descriptor.id
        return lambda: self.unregister(hook_id)

    def on(
        self,
        kind: EventKey,
        handler: HookHandler,
        *,
        priority: int = 0,
        once: bool = False,
        hook_id: str | None = None,
        name: str | None = None,
    ) -> Unregister:
        """Build a descriptor and register it.

        Args:
            kind: Event kind to listen to
            handler: Sync or async callable taking the Event
            priority: Lower runs earlier
            once: Remove after the first invocation
            hook_id: Explicit id (random when omitted)
            name: Optional display name

        Returns:
            Unregister handle
        """
        return self.register(
            HookDescriptor(
                id=hook_id if hook_id is not None else new_hook_id(),
                kind=kind,
                handler=handler,
                priority=priority,
                once=once,
                name=name,
            )
        )

    def unregister(self, hook_id: str) -> bool:
        """Remove a hook.

        An unknown id is a no-op so concurrent unregisters do not race into
        errors.

        Returns:
            True if a hook was removed
        """
        with self._lock:
            descriptor = self._hooks.pop(hook_id, None)
            if descriptor is None:
                return False

            entries = self._order.get(descriptor.kind, [])
            entries[:] = [entry for entry in entries if entry[2] != hook_id]
            if not entries:
                self._order.pop(descriptor.kind, None)
            self._snapshots.pop(descriptor.kind, None)

        logger.debug("Unregistered hook %s", descriptor.label)
        return True

    def resolve(self, kind: EventKey) -> tuple[HookDescriptor, ...]:
        """Point-in-time ordered view of the hooks for ``kind``.

        The returned tuple is never affected by later (un)registration.
        """
        kind = normalize_kind(kind)
        with self._lock:
            snapshot = self._snapshots.get(kind)
            if snapshot is None:
                snapshot = tuple(self._hooks[hid] for _, _, hid in self._order.get(kind, ()))
                self._snapshots[kind] = snapshot
            return snapshot

    def load(self, config: Mapping[EventKey, HookHandler | Sequence[HookHandler]]) -> list[Unregister]:
        """Register handlers from a mapping of kind -> handler(s).

        Handlers in a list are registered in list order with default priority.

        Returns:
            Unregister handles in registration order
        """
        handles: list[Unregister] = []
        for kind, handlers in config.items():
            if callable(handlers):
                handlers = [handlers]
            for handler in handlers:
                handles.append(self.on(kind, handler))
        return handles

    def get(self, hook_id: str) -> HookDescriptor | None:
        with self._lock:
            return self._hooks.get(hook_id)

    def kinds(self) -> list[EventKey]:
        """Kinds with at least one hook."""
        with self._lock:
            return list(self._order)

    def clear(self) -> None:
        """Remove all hooks."""
        with self._lock:
            self._hooks.clear()
            self._order.clear()
            self._snapshots.clear()

    def __contains__(self, hook_id: object) -> bool:
        with self._lock:
            return hook_id in self._hooks

    def __len__(self) -> int:
        with self._lock:
            return len(self._hooks)
