"""CLI commands for listing and inspecting threads."""

from __future__ import annotations

from typing import Optional

import click
from rich.markup import escape

from beeper_reader.cli.app import App, pass_app
from beeper_reader.cli.output import (
    console,
    format_time,
    message_to_dict,
    messages_table,
    thread_to_dict,
    threads_table,
    write_json,
)
from beeper_reader.cli.params import FORMAT
from beeper_reader.store import MessageFormat, MessageListOptions, ThreadLabel, ThreadListOptions

LABEL_CHOICES = [label.value for label in ThreadLabel]


@click.group("threads")
def threads_cli():
    """List and inspect conversations."""
    pass


@threads_cli.command("list")
@click.option("--days", default=0, type=int, help="Only threads active in the last N days")
@click.option("--limit", default=None, type=int, help="Max number of threads (default: 50)")
@click.option("--account", "account_id", default="", help="Filter by account/platform ID")
@click.option("--label", type=click.Choice(LABEL_CHOICES), default=ThreadLabel.ALL.value,
              help="Filter by label")
@click.option("--include-low-priority", is_flag=True, default=False,
              help="Include low-priority threads")
@click.option("--with-participants", is_flag=True, default=False,
              help="Include participants in JSON output")
@click.option("--with-stats", is_flag=True, default=False,
              help="Include message stats in JSON output")
@pass_app
def list_threads(app: App, days: int, limit: Optional[int], account_id: str, label: str,
                 include_low_priority: bool, with_participants: bool, with_stats: bool):
    """List threads ordered by last activity.

    \b
    Examples:
        beeper-reader threads list --label inbox
        beeper-reader threads list --label favourite --include-low-priority
        beeper-reader --json threads list --account whatsapp --with-participants
    """
    store, _ = app.open_store()
    with store:
        threads = store.list_threads(ThreadListOptions(
            days=days,
            limit=limit or app.config.limit,
            account_id=account_id,
            label=ThreadLabel(label),
            include_low_priority=include_low_priority,
            with_participants=with_participants,
            with_stats=with_stats,
        ))

    if app.json_output:
        write_json([thread_to_dict(t) for t in threads])
        return
    console.print(threads_table(threads))


@threads_cli.command("show")
@click.argument("thread_arg", metavar="[THREAD_ID]", required=False)
@click.option("--id", "thread_id", default="", help="Thread ID (room ID)")
@click.option("--with-stats", is_flag=True, default=False, help="Include message stats")
@click.option("--with-last", default=0, type=int, help="Include the last N messages")
@click.option("--format", "fmt", type=FORMAT, default=None, help="Message format: plain|rich")
@pass_app
def show_thread(app: App, thread_arg: Optional[str], thread_id: str, with_stats: bool,
                with_last: int, fmt: Optional[MessageFormat]):
    """Show details for a single thread.

    \b
    Examples:
        beeper-reader threads show '!abc:beeper.local'
        beeper-reader threads show --id '!abc:beeper.local' --with-last 10
    """
    thread_id = thread_id or thread_arg or ""
    if not thread_id:
        raise click.UsageError("thread ID is required")
    fmt = fmt or app.config.format

    store, _ = app.open_store()
    with store:
        thread = store.get_thread(thread_id, with_stats=with_stats)
        messages = []
        if with_last > 0:
            messages = store.list_messages(MessageListOptions(
                thread_id=thread_id, limit=with_last, format=fmt,
            ))

    if app.json_output:
        if with_last > 0:
            write_json({
                "thread": thread_to_dict(thread),
                "messages": [message_to_dict(m) for m in messages],
            })
        else:
            write_json(thread_to_dict(thread))
        return

    fields = [
        ("ID", thread.id),
        ("Account", thread.account_id or "-"),
        ("Name", thread.display_name or "-"),
        ("Type", thread.type or "-"),
        ("Last Activity", format_time(thread.last_activity)),
        ("Archived", str(thread.is_archived).lower()),
        ("Low Priority", str(thread.is_low_priority).lower()),
        ("Unread", str(thread.is_unread).lower()),
        ("Unread Count", str(thread.unread_count)),
        ("Unread Mentions", str(thread.unread_mentions)),
    ]
    if with_stats:
        fields.append(("Total Messages", str(thread.total_messages)))
    if thread.tags:
        fields.append(("Tags", ",".join(thread.tags)))

    for name, value in fields:
        console.print(f"[bold]{name}:[/bold] {escape(value)}")

    if thread.participants:
        console.print()
        console.print("[bold]Participants:[/bold]")
        for p in thread.participants:
            suffix = " [dim](you)[/dim]" if p.is_self else ""
            console.print(f"  - {escape(p.name.strip())}{suffix}")

    if messages:
        console.print()
        console.print("[bold]Recent messages:[/bold]")
        console.print(messages_table(messages))
