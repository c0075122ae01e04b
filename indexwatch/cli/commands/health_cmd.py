"""``indexwatch health`` — check that the indexer answers its health probe."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from indexwatch.bridge.indexer_client import ConnectionCheck, IndexerClient
from indexwatch.config import settings

console = Console()


def health_cmd(
    url: str = typer.Option(
        None,
        "--url",
        "-u",
        help="Indexer API base URL (defaults to INDEXWATCH_INDEXER_API_URL).",
    ),
) -> None:
    """Probe the indexer once and report reachability and response time."""
    base_url = url or settings.indexer_api_url
    check = asyncio.run(_check(base_url))

    table = Table(title="Indexer Health", show_header=True, header_style="bold cyan")
    table.add_column("Endpoint", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Details")
    if check.success:
        table.add_row(base_url, "[green]OK[/green]", f"{check.response_time_ms}ms")
    else:
        table.add_row(base_url, "[bold red]UNREACHABLE[/bold red]", check.error or "")
    console.print(table)

    if not check.success:
        raise typer.Exit(code=1)


async def _check(base_url: str) -> ConnectionCheck:
    async with IndexerClient(
        base_url,
        timeout=settings.request_timeout_seconds,
        retry_policy=settings.retry_policy,
    ) as client:
        return await client.test_connection()
