"""Inbox snapshot types and predicates.

Snapshots are produced by the transport and only ever read here.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class InboxMessage:
    """One relay message."""

    sender: str
    body: str
    timestamp: str = ""
    sequence: int = 0
    """Position in the inbox, 1-based. 0 means unset: the snapshot position is used."""


@dataclass(frozen=True, slots=True)
class InboxSnapshot:
    """Point-in-time view of an agent's inbox.

    Attributes:
        messages: All messages, oldest first
        last_checked_sequence: Highest sequence the consumer already handled
    """

    messages: tuple[InboxMessage, ...] = ()
    last_checked_sequence: int = 0

    @property
    def unread(self) -> tuple[InboxMessage, ...]:
        """Messages newer than ``last_checked_sequence``.

        Messages without a sequence number count by their position.
        """
        return tuple(
            m
            for position, m in enumerate(self.messages, 1)
            if (m.sequence or position) > self.last_checked_sequence
        )

    def __len__(self) -> int:
        return len(self.messages)


EMPTY_SNAPSHOT = InboxSnapshot()

InboxPredicate: TypeAlias = Callable[[InboxSnapshot], bool]


def has_messages(min_count: int = 1) -> InboxPredicate:
    """Predicate: at least ``min_count`` unread messages."""

    def predicate(snapshot: InboxSnapshot) -> bool:
        return len(snapshot.unread) >= min_count

    return predicate


def has_message_from(sender: str) -> InboxPredicate:
    """Predicate: an unread message from ``sender``."""

    def predicate(snapshot: InboxSnapshot) -> bool:
        return any(m.sender == sender for m in snapshot.unread)

    return predicate
