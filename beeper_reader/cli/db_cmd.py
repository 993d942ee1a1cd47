"""CLI commands for inspecting the resolved database."""

from __future__ import annotations

import click
from rich.markup import escape

from beeper_reader.cli.app import App, pass_app
from beeper_reader.cli.output import console, write_json


@click.group("db")
def db_cli():
    """Database helpers."""
    pass


@db_cli.command("info")
@pass_app
def db_info(app: App):
    """Show the resolved DB path and its capabilities."""
    store, path = app.open_store()
    with store:
        has_fts = store.has_fts()
        bridges = store.bridge_paths()

    if app.json_output:
        info = {"path": str(path), "hasFts": has_fts, "readOnly": True}
        if bridges:
            info["bridgeDbs"] = bridges
        write_json(info)
        return

    console.print(f"[bold]Path:[/bold] {escape(str(path))}")
    console.print(f"[bold]FTS:[/bold] {str(has_fts).lower()}")
    console.print("[bold]Read-only:[/bold] true")
    if bridges:
        console.print(f"[bold]Bridge DBs:[/bold] {len(bridges)}")
        for bridge in bridges:
            console.print(f"  {escape(bridge)}", style="dim")
