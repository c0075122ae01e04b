"""Rich terminal renderer for the indexwatch monitor.

Turns ``MonitorView`` into Rich renderables, one panel per connection
situation.

Color scheme
------------
- green     : ONLINE, newly observed blocks
- red       : OFFLINE, data errors
- yellow    : CONNECTING, overdue prediction
"""

from __future__ import annotations

from datetime import timezone
from typing import Any

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from indexwatch.models.blocks import AddressReport, Block
from indexwatch.models.connection import ConnectionState
from indexwatch.monitor.projection import MonitorView

_NA = "[dim]N/A[/dim]"

_STATE_LABELS: dict[ConnectionState, str] = {
    ConnectionState.CONNECTING: "[yellow]CONNECTING[/yellow]",
    ConnectionState.ONLINE: "[green]ONLINE[/green]",
    ConnectionState.OFFLINE: "[bold red]OFFLINE[/bold red]",
}


def format_value(value: Any) -> str:
    """Missing or zero optional fields render as N/A."""
    if value is None or value == 0 or value == "":
        return _NA
    return str(value)


def format_block_time(block: Block) -> str:
    """Block time as HH:MM:SS (UTC), or N/A when unparseable."""
    instant = block.instant
    if instant is None:
        return _NA
    return instant.astimezone(timezone.utc).strftime("%H:%M:%S")


class MonitorRenderer:
    """Renders ``MonitorView`` as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    max_blocks:
        Number of blocks shown in the table.
    explorer_url_template:
        ``str.format`` template with a ``{hash}`` field, used for the
        explorer link under each hash.  Empty disables links.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        max_blocks: int = 10,
        explorer_url_template: str = "",
    ) -> None:
        self.console = console or Console()
        self.max_blocks = max_blocks
        self.explorer_url_template = explorer_url_template

    def render_view(self, view: MonitorView) -> Panel:
        """Pick the panel matching the view's connection situation."""
        if view.connection_state == ConnectionState.OFFLINE:
            return self._render_offline(view)
        if view.connection_state == ConnectionState.CONNECTING or (
            view.is_loading and not view.blocks
        ):
            return self._render_connecting(view)
        if view.last_error:
            return self._render_error(view)
        return self._render_blocks(view)

    def print_view(self, view: MonitorView) -> None:
        self.console.print(self.render_view(view))

    # ------------------------------------------------------------------
    # Panels
    # ------------------------------------------------------------------

    def _render_offline(self, view: MonitorView) -> Panel:
        body = Text.from_markup(
            "Cannot connect to the indexer backend.\n\n"
            f"[bold]Reconnection attempts:[/bold] {view.reconnect_attempt_count}\n"
            f"[bold]Next attempt in:[/bold] {view.reconnect_countdown_seconds}s"
        )
        if view.last_error:
            body.append(f"\n\n{view.last_error}", style="red")
        return Panel(
            body,
            title="[bold red]Backend Offline[/bold red]",
            border_style="red",
            padding=(1, 2),
        )

    def _render_connecting(self, view: MonitorView) -> Panel:
        return Panel(
            Text("Connecting to backend...", style="yellow"),
            title=_STATE_LABELS[view.connection_state],
            border_style="yellow",
            padding=(1, 2),
        )

    def _render_error(self, view: MonitorView) -> Panel:
        return Panel(
            Text(view.last_error or "", style="red"),
            title="[bold red]Data Fetch Error[/bold red]",
            border_style="red",
            padding=(1, 2),
        )

    def _render_blocks(self, view: MonitorView) -> Panel:
        header: list[str] = []
        if view.tip_height is not None:
            header.append(f"[bold]Current Height:[/bold] {view.tip_height:,}")
        if view.is_overdue:
            header.append("[bold]Next block predicted in:[/bold] [yellow]Overdue[/yellow]")
        else:
            header.append(
                f"[bold]Next block predicted in:[/bold] {view.next_arrival_countdown_seconds}s"
            )
        if view.is_loading:
            header.append("[dim]Refreshing...[/dim]")

        if view.blocks:
            content: Any = self._build_block_table(view)
        else:
            content = Text("No blocks available", style="dim")

        return Panel(
            Group(Text.from_markup("  |  ".join(header)), Text(""), content),
            title="[bold]Recent Blocks[/bold]",
            subtitle=f"Last updated: {view.last_updated.strftime('%Y-%m-%d %H:%M:%S UTC')}",
            border_style="blue",
            padding=(1, 2),
        )

    def _build_block_table(self, view: MonitorView) -> Table:
        table = Table(
            show_header=True,
            header_style="bold cyan",
            expand=True,
            show_lines=False,
        )
        table.add_column("Height", justify="right", style="bold")
        table.add_column("Hash", min_width=20, overflow="fold")
        table.add_column("Time", justify="center")
        table.add_column("Txs", justify="right")
        table.add_column("UTXOs +", justify="right")
        table.add_column("UTXOs -", justify="right")
        table.add_column("Processing (ms)", justify="right")

        for index, block in enumerate(view.blocks[: self.max_blocks]):
            is_new = index in view.new_block_positions
            hash_cell = block.hash or _NA
            if block.hash and self.explorer_url_template:
                url = self.explorer_url_template.format(hash=block.hash)
                hash_cell = f"[link={url}]{block.hash}[/link]"
            table.add_row(
                f"#{block.height}",
                hash_cell,
                format_block_time(block),
                format_value(block.tx_count),
                format_value(block.utxo_created),
                format_value(block.utxo_spent),
                format_value(block.processing_time_ms),
                style="bold green" if is_new else None,
            )
        return table

    # ------------------------------------------------------------------
    # Address lookup
    # ------------------------------------------------------------------

    def render_address_report(self, report: AddressReport) -> Panel:
        """Render balance and UTXOs for one address."""
        balance = Table(show_header=False, box=None, pad_edge=False)
        balance.add_column("Label", style="bold")
        balance.add_column("Value", justify="right")
        balance.add_row("Available", str(report.balance.available))
        balance.add_row("Incoming", str(report.balance.incoming))
        balance.add_row("Current", str(report.balance.current))

        if report.utxos:
            utxos: Any = Table(
                title=f"UTXOs ({report.utxo_count})",
                show_header=True,
                header_style="bold cyan",
                expand=True,
            )
            utxos.add_column("Tx", overflow="fold")
            utxos.add_column("Vout", justify="right")
            utxos.add_column("Value", justify="right")
            utxos.add_column("Type")
            utxos.add_column("Script", overflow="fold")
            for utxo in report.utxos:
                utxos.add_row(
                    utxo.tx or _NA,
                    _NA if utxo.vout is None else str(utxo.vout),
                    _NA if utxo.value is None else str(utxo.value),
                    utxo.type or _NA,
                    utxo.script or _NA,
                )
        else:
            utxos = Text("No UTXOs found for this address", style="dim")

        return Panel(
            Group(balance, Text(""), utxos),
            title=f"[bold]Address:[/bold] {report.address}",
            border_style="blue",
            padding=(1, 2),
        )
