"""Main Typer application — imports and registers all CLI commands.

Entry point: ``indexwatch`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from indexwatch.cli.commands.health_cmd import health_cmd
from indexwatch.cli.commands.lookup_cmd import lookup_cmd
from indexwatch.cli.commands.watch_cmd import watch_cmd
from indexwatch.config import settings

app = typer.Typer(
    name="indexwatch",
    help="indexwatch: live monitor for a ledger indexing service.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="watch", help="Watch the indexer head live.")(watch_cmd)
app.command(name="lookup", help="Look up balance and UTXOs for an address.")(lookup_cmd)
app.command(name="health", help="Check indexer reachability.")(health_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Log level (defaults to INDEXWATCH_LOG_LEVEL).",
    ),
) -> None:
    """Configure logging before any command runs."""
    configure_logging(log_level or settings.log_level)


def configure_logging(level: str) -> None:
    """Route library logging through Rich at ``level``."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
