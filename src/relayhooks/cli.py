"""relayhooks CLI.

Provides:
- relayhooks inbox check: Print pending relay messages (agent hook friendly)
- relayhooks inbox wait: Block on an inbox gate until messages arrive
- relayhooks inbox send: Append a message to an agent's inbox
- relayhooks inbox clear: Empty an agent's inbox
"""


import asyncio
import json
import sys
from typing import NoReturn

import click
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from relayhooks.foundation.errors import RelayHooksError
from relayhooks.foundation.logging import configure_logging
from relayhooks.hooks.types import Continue, Outcome
from relayhooks.inbox.gate import InboxGate
from relayhooks.inbox.markdown import MarkdownInbox, block_reason, format_preview
from relayhooks.inbox.types import InboxSnapshot, has_messages

console = Console()

# Exit code when a gate answers Retry (timeout)
EXIT_RETRY = 2


def _fail(error: RelayHooksError) -> NoReturn:
    err_console = Console(stderr=True)
    header = Text()
    header.append(error.error_id, style="bold red")
    header.append(f" {error.message}")
    err_console.print(header)
    sys.exit(1)


def _open_inbox(agent: str | None, inbox_dir: str | None) -> MarkdownInbox:
    try:
        return MarkdownInbox(agent, inbox_dir)
    except RelayHooksError as e:
        _fail(e)


def _snapshot_dict(inbox: MarkdownInbox, snapshot: InboxSnapshot) -> dict:
    return {
        "agent": inbox.agent_name,
        "path": str(inbox.path),
        "count": len(snapshot.unread),
        "reason": block_reason(snapshot, inbox.path),
        "messages": [
            {"from": m.sender, "timestamp": m.timestamp, "body": m.body}
            for m in snapshot.unread
        ],
    }


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """relayhooks: trajectory hooks and relay inbox gates."""
    configure_logging(debug=debug)


@main.group()
def inbox() -> None:
    """Relay inbox utilities.

    Examples:

        relayhooks inbox check --agent worker-1
        relayhooks inbox wait --agent worker-1 --timeout 60
        relayhooks inbox send --agent worker-1 --from lead "Please rebase"
    """


@inbox.command()
@click.option("--agent", "-n", envvar="AGENT_RELAY_NAME", help="Agent name")
@click.option("--dir", "-d", "inbox_dir", envvar="AGENT_RELAY_DIR", help="Inbox root directory")
@click.option("--json", "json_output", is_flag=True, help="Output JSON")
def check(agent: str | None, inbox_dir: str | None, json_output: bool) -> None:
    """Print pending relay messages.

    Exits silently with status 0 when no agent is configured or the inbox
    is empty, so it can run after every tool call. The JSON form carries a
    ``reason`` suitable for blocking an agent from stopping.
    """
    try:
        relay_inbox = MarkdownInbox(agent, inbox_dir)
    except RelayHooksError:
        return

    snapshot = relay_inbox.read()
    if not snapshot.unread:
        return

    if json_output:
        click.echo(json.dumps(_snapshot_dict(relay_inbox, snapshot)))
        return

    body = Text()
    body.append(f"You have {len(snapshot.unread)} message(s) in your inbox!\n\n", style="bold")
    for message in snapshot.unread:
        body.append(f"{message.sender}", style="cyan")
        body.append(f" | {message.timestamp}\n", style="dim")
        body.append(f"{message.body}\n\n")
    body.append("ACTION REQUIRED: ", style="bold yellow")
    body.append(f"Respond to these messages, then clear the inbox with: relayhooks inbox clear -n {relay_inbox.agent_name}")
    console.print(Panel(body, title="RELAY NOTIFICATION"))


@inbox.command()
@click.option("--agent", "-n", envvar="AGENT_RELAY_NAME", help="Agent name")
@click.option("--dir", "-d", "inbox_dir", envvar="AGENT_RELAY_DIR", help="Inbox root directory")
@click.option("--timeout", "-t", type=float, default=None, help="Seconds to wait (default from config)")
@click.option("--min-count", type=int, default=1, show_default=True, help="Messages required")
@click.option("--interval", type=float, default=None, help="Polling interval in seconds")
def wait(
    agent: str | None,
    inbox_dir: str | None,
    timeout: float | None,
    min_count: int,
    interval: float | None,
) -> None:
    """Wait until the inbox holds messages.

    Exit status is 0 once messages are present and 2 on timeout.
    """
    relay_inbox = _open_inbox(agent, inbox_dir)
    inbox_gate = InboxGate(has_messages(min_count), relay_inbox.source(interval), timeout)

    outcome: Outcome = asyncio.run(inbox_gate.check())
    if not isinstance(outcome, Continue):
        console.print(f"[yellow]No messages after {inbox_gate.timeout:g}s[/yellow]")
        sys.exit(EXIT_RETRY)

    for message in relay_inbox.read().unread:
        console.print(format_preview(message), markup=False, highlight=False)


@inbox.command()
@click.option("--agent", "-n", envvar="AGENT_RELAY_NAME", help="Agent name")
@click.option("--dir", "-d", "inbox_dir", envvar="AGENT_RELAY_DIR", help="Inbox root directory")
@click.option("--from", "-f", "sender", required=True, help="Sender name")
@click.argument("body")
def send(agent: str | None, inbox_dir: str | None, sender: str, body: str) -> None:
    """Append a message to an agent's inbox."""
    relay_inbox = _open_inbox(agent, inbox_dir)
    relay_inbox.add_message(sender, body)
    console.print(f"[green]Delivered to {relay_inbox.agent_name}[/green]")


@inbox.command()
@click.option("--agent", "-n", envvar="AGENT_RELAY_NAME", help="Agent name")
@click.option("--dir", "-d", "inbox_dir", envvar="AGENT_RELAY_DIR", help="Inbox root directory")
def clear(agent: str | None, inbox_dir: str | None) -> None:
    """Empty an agent's inbox."""
    relay_inbox = _open_inbox(agent, inbox_dir)
    relay_inbox.clear()
