"""One-shot usage command for aiusage."""

from __future__ import annotations

import typer
from rich.console import Console

from aiusage.cli.app import ExitCode
from aiusage.cli.app import app
from aiusage.cli.app import make_console
from aiusage.config.settings import get_config
from aiusage.core.http import cleanup
from aiusage.core.store import UsageStore
from aiusage.display.json import output_json_pretty
from aiusage.display.json import snapshot_to_dict
from aiusage.display.rich import SnapshotDisplay
from aiusage.display.rich import format_compact_line
from aiusage.models import ErrorKind
from aiusage.models import UsageSnapshot
from aiusage.providers import create_enabled_clients


def exit_code_for(snapshot: UsageSnapshot) -> ExitCode:
    """Pick the exit code for a finished snapshot.

    Stale results count as partial failures since their data is still shown.
    """
    failed = [r for r in snapshot.results if r.error_state is not None]
    if not failed:
        return ExitCode.SUCCESS
    if len(failed) < len(snapshot.results) or any(r.is_stale for r in failed):
        return ExitCode.PARTIAL_FAILURE

    kinds = {r.error_state.badge_kind for r in failed}
    if kinds <= {ErrorKind.AUTH_NEEDED, ErrorKind.TOKEN_EXPIRED}:
        return ExitCode.AUTH_ERROR
    if kinds == {ErrorKind.NETWORK_ERROR}:
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


async def fetch_snapshot() -> UsageSnapshot:
    """Run a single refresh cycle over every enabled provider."""
    config = get_config()
    store = UsageStore(create_enabled_clients(config), config.poll.interval_seconds)
    try:
        await store.refresh_now()
    finally:
        await cleanup()
    return store.snapshot


def display_snapshot(
    console: Console,
    snapshot: UsageSnapshot,
    json_mode: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Print a snapshot in the selected output mode."""
    if json_mode:
        output_json_pretty(snapshot_to_dict(snapshot))
        return

    if quiet:
        for result in snapshot.results:
            console.print(format_compact_line(result), highlight=False)
        return

    config = get_config()
    console.print(
        SnapshotDisplay(
            snapshot,
            show_remaining=config.display.show_remaining,
            verbose=verbose,
        )
    )


async def run_usage(ctx: typer.Context, json_output: bool = False) -> ExitCode:
    """Fetch once, print, and return the exit code."""
    console = make_console(ctx)
    snapshot = await fetch_snapshot()
    display_snapshot(
        console,
        snapshot,
        json_mode=json_output or ctx.meta.get("json", False),
        verbose=ctx.meta.get("verbose", False),
        quiet=ctx.meta.get("quiet", False),
    )
    return exit_code_for(snapshot)


@app.command("usage")
async def usage_command(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
    ),
) -> None:
    """Fetch usage for all enabled providers once and print it."""
    exit_code = await run_usage(ctx, json_output)
    if exit_code != ExitCode.SUCCESS:
        raise typer.Exit(exit_code)
