"""CLI commands for reading a conversation's messages."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

import click

from beeper_reader.cli.app import App, pass_app
from beeper_reader.cli.output import console, message_to_dict, messages_table, write_json
from beeper_reader.cli.params import FORMAT, TIMESTAMP
from beeper_reader.store import MessageFormat, MessageListOptions


@click.group("messages")
def messages_cli():
    """Read messages from a conversation."""
    pass


@messages_cli.command("list")
@click.argument("thread_arg", metavar="[THREAD_ID]", required=False)
@click.option("--thread", "thread_id", default="", help="Thread ID (room ID)")
@click.option("--limit", default=None, type=int, help="Max number of messages (default: 50)")
@click.option("--days", default=0, type=int, help="Only messages from the last N days")
@click.option("--after", type=TIMESTAMP, default=None,
              help="Only messages at or after this RFC3339 timestamp")
@click.option("--before", type=TIMESTAMP, default=None,
              help="Only messages at or before this RFC3339 timestamp")
@click.option("--format", "fmt", type=FORMAT, default=None, help="Message format: plain|rich")
@pass_app
def list_messages(app: App, thread_arg: Optional[str], thread_id: str, limit: Optional[int],
                  days: int, after: Optional[datetime], before: Optional[datetime],
                  fmt: Optional[MessageFormat]):
    """List recent messages in a thread, newest first.

    \b
    Examples:
        beeper-reader messages list '!abc:beeper.local' --limit 20
        beeper-reader messages list --thread '!abc:beeper.local' --days 7 --format plain
        beeper-reader messages list '!abc:beeper.local' --after 2024-01-01T00:00:00Z
    """
    thread_id = thread_id or thread_arg or ""
    if not thread_id:
        raise click.UsageError("thread ID is required")
    if after is None and days > 0:
        after = datetime.now().astimezone() - timedelta(days=days)

    store, _ = app.open_store()
    with store:
        messages = store.list_messages(MessageListOptions(
            thread_id=thread_id,
            limit=limit or app.config.limit,
            after=after,
            before=before,
            format=fmt or app.config.format,
        ))

    if app.json_output:
        write_json([message_to_dict(m) for m in messages])
        return
    console.print(messages_table(messages))
