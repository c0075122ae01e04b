"""``indexwatch watch`` — live view of the indexer head.

Runs the ConnectionMachine under ``Rich.Live`` until Ctrl+C.  Sending
SIGUSR1 to the process requests a manual retry (where the platform has
that signal).
"""

from __future__ import annotations

import asyncio
import logging
import signal

import typer
from rich.console import Console
from rich.live import Live

from indexwatch.bridge.indexer_client import IndexerClient
from indexwatch.config import settings
from indexwatch.core.state_machine import ConnectionMachine
from indexwatch.models.config import MonitorConfig
from indexwatch.monitor.renderer import MonitorRenderer

logger = logging.getLogger(__name__)

console = Console()


def watch_cmd(
    url: str = typer.Option(
        None,
        "--url",
        "-u",
        help="Indexer API base URL (defaults to INDEXWATCH_INDEXER_API_URL).",
    ),
    poll_ms: int = typer.Option(
        None,
        "--poll-ms",
        help="Poll interval in milliseconds while online.",
    ),
    reconnect_ms: int = typer.Option(
        None,
        "--reconnect-ms",
        help="Reconnect probe interval in milliseconds while offline.",
    ),
    refresh_hz: float = typer.Option(
        4.0,
        "--refresh",
        "-r",
        help="Screen refresh rate in Hz.",
    ),
) -> None:
    """Watch the indexer head: blocks, tip height, next-block countdown.

    Reconnects automatically when the indexer goes away.
    """
    config = settings.to_monitor_config()
    overrides: dict[str, int] = {}
    if poll_ms is not None:
        overrides["poll_interval_ms"] = poll_ms
    if reconnect_ms is not None:
        overrides["reconnect_interval_ms"] = reconnect_ms
    if overrides:
        config = MonitorConfig.model_validate({**config.model_dump(), **overrides})

    base_url = url or settings.indexer_api_url
    console.print(
        f"[dim]Watching {base_url} every {config.poll_interval:g}s. Press Ctrl+C to exit.[/dim]"
    )
    try:
        asyncio.run(_watch(base_url, config, refresh_hz))
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


async def _watch(base_url: str, config: MonitorConfig, refresh_hz: float) -> None:
    renderer = MonitorRenderer(
        console=console,
        max_blocks=settings.max_blocks_display,
        explorer_url_template=settings.explorer_url_template,
    )
    pending: set[asyncio.Task[None]] = set()

    async with IndexerClient(
        base_url,
        timeout=settings.request_timeout_seconds,
        retry_policy=config.retry_policy,
    ) as client:
        with Live(
            console=console,
            refresh_per_second=refresh_hz,
            transient=False,
        ) as live:
            machine = ConnectionMachine(
                client,
                config,
                on_change=lambda view: live.update(renderer.render_view(view)),
            )

            def _manual_retry() -> None:
                task = asyncio.ensure_future(machine.request_manual_retry())
                pending.add(task)
                task.add_done_callback(pending.discard)

            loop = asyncio.get_running_loop()
            if hasattr(signal, "SIGUSR1"):
                try:
                    loop.add_signal_handler(signal.SIGUSR1, _manual_retry)
                except NotImplementedError:
                    logger.debug("Signal handlers unsupported on this event loop")

            try:
                await machine.start()
                await asyncio.Event().wait()
            finally:
                await machine.stop()
                for task in pending:
                    task.cancel()
