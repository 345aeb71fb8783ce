"""Main CLI application for aiusage."""

from __future__ import annotations

import asyncio
import logging
from enum import IntEnum

import typer
from rich.console import Console
from rich.logging import RichHandler

from aiusage.cli.atyper import ATyper

# Create the main app
app = ATyper(
    name="aiusage",
    help="Live quota monitor for AI coding-assistant subscriptions",
    add_completion=True,
    no_args_is_help=False,
    invoke_without_command=True,
)


class ExitCode(IntEnum):
    """Exit codes for aiusage."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 2
    NETWORK_ERROR = 3
    CONFIG_ERROR = 4
    PARTIAL_FAILURE = 5


def configure_logging(verbose: bool = False, quiet: bool = False, no_color: bool = False) -> None:
    """Send log records to stderr through Rich.

    --verbose shows DEBUG records, --quiet only errors, default warnings.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True, no_color=no_color),
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


def make_console(ctx: typer.Context) -> Console:
    """Create a console honouring --no-color."""
    return Console(no_color=ctx.meta.get("no_color", False))


@app.callback()
def main(
    ctx: typer.Context,
    json: bool = typer.Option(False, "--json", "-j", help="Enable JSON output mode"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Enable quiet mode"),
    version: bool = typer.Option(False, "--version", help="Show version and exit"),
) -> None:
    """aiusage - Live quota monitor for AI coding-assistant subscriptions."""
    if version:
        from aiusage import __version__

        typer.echo(f"aiusage {__version__}")
        raise typer.Exit()

    # Resolve conflicts: verbose and quiet are mutually exclusive, quiet takes precedence
    if verbose and quiet:
        verbose = False

    # Store options in context
    ctx.meta["json"] = json
    ctx.meta["no_color"] = no_color
    ctx.meta["verbose"] = verbose
    ctx.meta["quiet"] = quiet

    configure_logging(verbose=verbose, quiet=quiet, no_color=no_color)

    # If no command provided, run default usage command
    if ctx.invoked_subcommand is None:
        from aiusage.cli.commands.usage import run_usage

        exit_code = asyncio.run(run_usage(ctx))
        raise typer.Exit(exit_code)


def run_app() -> None:
    """Run the CLI app."""
    app()


# Import command modules - they register themselves via @app.command() decorators
# These imports must come after app is defined
from aiusage.cli.commands import usage  # noqa: E402, F401
from aiusage.cli.commands import watch  # noqa: E402, F401

# Import key and config modules and register their typer groups
from aiusage.cli.commands import config as config_cmd  # noqa: E402
from aiusage.cli.commands import key as key_cmd  # noqa: E402

app.add_typer(key_cmd.key_app, name="key")
app.add_typer(config_cmd.config_app, name="config")
