"""``indexwatch lookup ADDRESS`` — one-shot balance and UTXO lookup."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from indexwatch.bridge.indexer_client import IndexerClient, IndexerError
from indexwatch.config import settings
from indexwatch.models.blocks import AddressReport
from indexwatch.monitor.renderer import MonitorRenderer

console = Console()


def lookup_cmd(
    address: str = typer.Argument(
        ...,
        help="The address to look up.",
    ),
    url: str = typer.Option(
        None,
        "--url",
        "-u",
        help="Indexer API base URL (defaults to INDEXWATCH_INDEXER_API_URL).",
    ),
) -> None:
    """Show the balance and unspent outputs of an address."""
    address = address.strip()
    if not address:
        console.print("[bold red]Address must not be empty.[/bold red]")
        raise typer.Exit(code=1)

    try:
        report = asyncio.run(_lookup(url or settings.indexer_api_url, address))
    except IndexerError as exc:
        console.print(f"[bold red]Failed to fetch address data:[/bold red] {exc}")
        raise typer.Exit(code=1)

    renderer = MonitorRenderer(console=console)
    console.print(renderer.render_address_report(report))


async def _lookup(base_url: str, address: str) -> AddressReport:
    async with IndexerClient(
        base_url,
        timeout=settings.request_timeout_seconds,
        retry_policy=settings.retry_policy,
    ) as client:
        return await client.lookup_address(address)
