"""Live watch command for aiusage."""

from __future__ import annotations

import asyncio

import typer
from rich.live import Live

from aiusage.cli.app import ExitCode
from aiusage.cli.app import app
from aiusage.cli.app import make_console
from aiusage.config.settings import get_config
from aiusage.core.http import cleanup
from aiusage.core.store import UsageStore
from aiusage.display.rich import SnapshotDisplay
from aiusage.monitor import UsageMonitor
from aiusage.providers import create_enabled_clients


@app.command("watch")
async def watch_command(
    ctx: typer.Context,
    interval: float | None = typer.Option(
        None,
        "--interval",
        "-i",
        help="Seconds between refreshes (default: poll.interval_seconds from config)",
    ),
) -> None:
    """Poll every enabled provider and keep a live display up to date.

    Press Ctrl-C to stop.
    """
    console = make_console(ctx)
    config = get_config()

    poll_interval = interval if interval is not None else config.poll.interval_seconds
    if poll_interval <= 0:
        console.print("[red]Interval must be a positive number of seconds[/red]")
        raise typer.Exit(ExitCode.CONFIG_ERROR)

    store = UsageStore(create_enabled_clients(config), poll_interval)
    monitor = UsageMonitor(store)

    def render(snapshot) -> SnapshotDisplay:
        return SnapshotDisplay(
            snapshot,
            show_remaining=config.display.show_remaining,
            verbose=ctx.meta.get("verbose", False),
        )

    try:
        with Live(render(monitor.snapshot), console=console, refresh_per_second=1) as live:
            monitor.add_listener(lambda snapshot: live.update(render(snapshot)))
            async with monitor:
                # Runs until Ctrl-C cancels the task
                await asyncio.Event().wait()
    finally:
        await cleanup()
