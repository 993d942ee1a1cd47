"""CLI command for full-text search across messages."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Tuple

import click

from beeper_reader.cli.app import App, pass_app
from beeper_reader.cli.output import console, search_result_to_dict, search_table, write_json
from beeper_reader.cli.params import DURATION, FORMAT
from beeper_reader.store import MessageFormat, SearchOptions


@click.command("search")
@click.argument("terms", nargs=-1, required=True)
@click.option("--days", default=0, type=int, help="Only messages from the last N days")
@click.option("--limit", default=None, type=int, help="Max number of results (default: 50)")
@click.option("--thread", "thread_id", default="", help="Only search within a thread (room ID)")
@click.option("--account", "account_id", default="", help="Filter by account/platform ID")
@click.option("--context", "context_size", default=0, type=int,
              help="Include N messages before/after each match")
@click.option("--window", type=DURATION, default=None,
              help="Context time window, e.g. 60m (default: 1h)")
@click.option("--format", "fmt", type=FORMAT, default=None, help="Message format: plain|rich")
@pass_app
def search(app: App, terms: Tuple[str, ...], days: int, limit: Optional[int], thread_id: str,
           account_id: str, context_size: int, window: Optional[timedelta],
           fmt: Optional[MessageFormat]):
    """Full-text search across messages.

    Uses the FTS5 index when available and falls back to a substring scan
    otherwise.

    \b
    Examples:
        beeper-reader search invoice
        beeper-reader search "christmas party" --context 2
        beeper-reader --json search dinner --days 30 --window 30m
    """
    query = " ".join(terms).strip()
    if not query:
        raise click.UsageError("search query is required")

    opts = SearchOptions(
        query=query,
        thread_id=thread_id,
        days=days,
        limit=limit or app.config.limit,
        account_id=account_id,
        context=context_size,
        window=window,
        format=fmt or app.config.format,
    )

    store, _ = app.open_store()
    with store:
        results = store.search_messages(opts)

    if app.json_output:
        write_json([search_result_to_dict(r) for r in results])
        return
    console.print(search_table(results, show_context=opts.wants_context))
