"""Beeper Reader CLI — read-only access to local Beeper chats."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from beeper_reader import __version__
from beeper_reader.cli.app import App
from beeper_reader.cli.db_cmd import db_cli
from beeper_reader.cli.messages_cmd import messages_cli
from beeper_reader.cli.search_cmd import search
from beeper_reader.cli.threads_cmd import threads_cli
from beeper_reader.config import load_config
from beeper_reader.errors import BeeperReaderError

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    """Send log records to stderr through rich so stdout stays clean for JSON."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
    )


class ReaderGroup(click.Group):
    """Reports BeeperReaderError as a plain CLI error instead of a traceback."""

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except BeeperReaderError as exc:
            logger.debug("Command failed", exc_info=True)
            raise click.ClickException(str(exc)) from exc


@click.group(cls=ReaderGroup)
@click.option("--db", "db_path", default=None,
              help="Path to Beeper index.db (or set BEEPER_DB)")
@click.option("--json", "json_output", is_flag=True, default=False, help="Output JSON")
@click.option("--no-bridge", is_flag=True, default=False,
              help="Disable megabridge name lookups")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging to stderr")
@click.version_option(__version__, "--version", message="%(version)s")
@click.pass_context
def cli(ctx, db_path, json_output, no_bridge, verbose):
    """Read-only CLI for local Beeper chats.

    Lists threads, reads messages and searches the local Beeper index.db
    without ever writing to it.
    """
    configure_logging(verbose)
    ctx.obj = App(
        db_path=db_path,
        json_output=json_output,
        no_bridge=no_bridge,
        config=load_config(),
    )


@cli.command("version")
def version():
    """Print version."""
    click.echo(__version__)


cli.add_command(threads_cli)
cli.add_command(messages_cli)
cli.add_command(search)
cli.add_command(db_cli)


if __name__ == "__main__":
    cli()
