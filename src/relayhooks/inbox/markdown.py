"""File-based relay inbox.

The relay wrapper writes incoming messages to
``<inbox_dir>/<agent>/inbox.md``; the agent reads the file itself.
Each message is a block introduced by::

    ## Message from <sender> | <timestamp>
    <body>

This module is the transport side: it may write the file. Gates only ever
see the snapshots read() returns.
"""

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path

from relayhooks.foundation.config import get_config
from relayhooks.foundation.errors import inbox_agent_missing
from relayhooks.inbox.sources import PollingSource
from relayhooks.inbox.types import InboxMessage, InboxSnapshot

logger = logging.getLogger(__name__)

INBOX_HEADER = "# INBOX - CHECK AND RESPOND TO ALL MESSAGES\n"
MESSAGE_MARKER = "## Message from"

_BLOCK_SPLIT = re.compile(r"(?=^## Message from)", re.MULTILINE)
_HEADER_LINE = re.compile(r"^## Message from (\S+) \| (.+)\n?")
# Body lines that look like a header (or an already escaped one) get one more backslash
_ESCAPE_LINE = re.compile(r"^(\\*)(?=## Message from)", re.MULTILINE)
_UNESCAPE_LINE = re.compile(r"^\\(\\*)(?=## Message from)", re.MULTILINE)


def escape_body(body: str) -> str:
    """Escape body lines that would otherwise start a new message block."""
    return _ESCAPE_LINE.sub(r"\\\1", body)


def unescape_body(body: str) -> str:
    return _UNESCAPE_LINE.sub(r"\1", body)


def parse_messages(content: str) -> tuple[InboxMessage, ...]:
    """Parse message blocks from inbox file content, oldest first."""
    if not content or MESSAGE_MARKER not in content:
        return ()

    messages: list[InboxMessage] = []
    for block in _BLOCK_SPLIT.split(content):
        match = _HEADER_LINE.match(block)
        if match is None:
            continue
        sender, timestamp = match.groups()
        messages.append(
            InboxMessage(
                sender=sender,
                body=unescape_body(block[match.end():].strip()),
                timestamp=timestamp.strip(),
                sequence=len(messages) + 1,
            )
        )
    return tuple(messages)


def format_preview(message: InboxMessage, max_length: int = 50) -> str:
    """One-line preview: ``[sender]: body...``."""
    body = message.body
    if len(body) > max_length:
        body = body[:max_length] + "..."
    return f"[{message.sender}]: {body}"


def block_reason(snapshot: InboxSnapshot, inbox_path: str | Path) -> str:
    """Explain to the agent why it should not stop yet."""
    messages = snapshot.unread
    lines = [
        f"You have {len(messages)} unread relay message(s) in {inbox_path}.",
        "",
        "Messages:",
    ]
    lines.extend(f"  - {format_preview(m)}" for m in messages[:3])
    if len(messages) > 3:
        lines.append(f"  ... and {len(messages) - 3} more")
    lines.append("")
    lines.append("Please read the inbox file and respond to all messages before stopping.")
    return "\n".join(lines)


class MarkdownInbox:
    """An agent's inbox.md file.

    Usage:
        inbox = MarkdownInbox("worker-1")
        inbox.add_message("lead", "Rebase onto main please")

        gate = InboxGate(has_messages(), inbox.source(), timeout=30)
    """

    def __init__(self, agent_name: str | None = None, inbox_dir: str | Path | None = None) -> None:
        """Locate the inbox.

        Args:
            agent_name: Agent owning the inbox (AGENT_RELAY_NAME / config when omitted)
            inbox_dir: Root directory (AGENT_RELAY_DIR / config when omitted)

        Raises:
            RelayHooksError: If no agent name can be determined
        """
        config = get_config().inbox
        agent = agent_name or config.agent_name
        if not agent:
            raise inbox_agent_missing()
        self.agent_name = agent
        self.path = Path(inbox_dir or config.inbox_dir) / agent / "inbox.md"

    def exists(self) -> bool:
        return self.path.exists()

    def read_text(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8")

    def read(self, last_checked_sequence: int = 0) -> InboxSnapshot:
        """Snapshot of the file as it is now."""
        return InboxSnapshot(
            messages=parse_messages(self.read_text()),
            last_checked_sequence=last_checked_sequence,
        )

    def source(self, interval: float | None = None) -> PollingSource:
        """Polling snapshot source over this file."""
        return PollingSource(self.read, interval)

    def init(self) -> None:
        """Create the inbox directory and start with an empty inbox."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.clear()

    def add_message(self, sender: str, body: str, timestamp: str | None = None) -> None:
        """Append a message block (atomic write via temp file + rename)."""
        stamp = timestamp or datetime.now(timezone.utc).isoformat()
        content = self.read_text()
        if not content.strip():
            content = INBOX_HEADER
        content += f"\n{MESSAGE_MARKER} {sender} | {stamp}\n{escape_body(body)}\n"

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, self.path)
        logger.debug("Added message from %s to %s", sender, self.path)

    def clear(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")
