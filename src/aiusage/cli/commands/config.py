"""Config management commands for aiusage."""

from __future__ import annotations

import msgspec.toml
import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from aiusage.cli.atyper import ATyper
from aiusage.config.paths import config_dir
from aiusage.config.paths import config_file
from aiusage.config.paths import credentials_dir
from aiusage.config.settings import get_config

# Create config group
config_app = ATyper(help="Manage configuration settings.")


@config_app.command("show")
def config_show_command(ctx: typer.Context) -> None:
    """Display current settings."""
    console = Console()

    config = get_config()
    config_path = config_file()

    if ctx.meta.get("json", False):
        from aiusage.display.json import output_json_pretty

        data = msgspec.to_builtins(config)
        data["path"] = str(config_path)
        output_json_pretty(data)
        return

    # Quiet mode: minimal output
    if ctx.meta.get("quiet", False):
        console.print(str(config_path))
        return

    toml_data = msgspec.toml.encode(config).decode()
    console.print(
        Panel(
            Syntax(toml_data or "# all defaults", "toml"),
            title=f"Config: {config_path}",
        )
    )

    if ctx.meta.get("verbose", False) and not config_path.exists():
        console.print("[dim]Using default configuration (file not created yet)[/dim]")


@config_app.command("path")
def config_path_command(
    ctx: typer.Context,
    credentials: bool = typer.Option(
        False, "--credentials", "-r", help="Show credentials directory"
    ),
) -> None:
    """Show paths used by aiusage."""
    console = Console()

    if ctx.meta.get("json", False):
        from aiusage.display.json import output_json_pretty

        output_json_pretty(
            {
                "config_dir": str(config_dir()),
                "config_file": str(config_file()),
                "credentials_dir": str(credentials_dir()),
            }
        )
        return

    if credentials:
        console.print(str(credentials_dir()))
        return

    console.print(str(config_file()))
    if ctx.meta.get("verbose", False):
        console.print(f"[dim]Credentials: {credentials_dir()}[/dim]")
