"""Inbox-check gates and snapshot sources.

Components:
- InboxSnapshot / InboxMessage: What the transport hands over
- InboxFeed / PollingSource: Push and pull snapshot sources
- InboxGate: Hook suspending an emission until the inbox is ready
- MarkdownInbox: The relay's file-based inbox.md

Usage:
    from relayhooks.inbox import InboxFeed, gate, has_messages

    feed = InboxFeed()
    hooks.on_step_start(gate(has_messages(), feed, timeout=30))
"""

from relayhooks.inbox.gate import InboxGate, gate
from relayhooks.inbox.markdown import MarkdownInbox, block_reason, format_preview, parse_messages
from relayhooks.inbox.sources import InboxFeed, PollingSource, SnapshotSource
from relayhooks.inbox.types import (
    EMPTY_SNAPSHOT,
    InboxMessage,
    InboxPredicate,
    InboxSnapshot,
    has_message_from,
    has_messages,
)

__all__ = [
    # Types
    "InboxMessage",
    "InboxSnapshot",
    "InboxPredicate",
    "EMPTY_SNAPSHOT",
    "has_messages",
    "has_message_from",
    # Sources
    "SnapshotSource",
    "InboxFeed",
    "PollingSource",
    # Gate
    "InboxGate",
    "gate",
    # File inbox
    "MarkdownInbox",
    "parse_messages",
    "format_preview",
    "block_reason",
]
