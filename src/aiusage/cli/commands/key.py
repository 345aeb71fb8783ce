"""Key management commands for aiusage."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from aiusage.cli.app import ExitCode
from aiusage.cli.atyper import ATyper
from aiusage.config.credentials import API_KEY_ENV_VARS
from aiusage.config.credentials import STORED_CREDENTIAL_TYPES
from aiusage.config.credentials import check_provider_credentials
from aiusage.config.credentials import delete_stored_credential
from aiusage.config.credentials import get_all_credential_status
from aiusage.config.credentials import store_credential
from aiusage.models import ProviderID

# Create key group
key_app = ATyper(help="Manage stored API keys and tokens.")

SOURCE_LABELS = {
    "aiusage": "aiusage storage",
    "env": "environment variable",
}


def _global_flag(ctx: typer.Context, name: str) -> bool:
    """Look up a global option stored by the root callback."""
    return bool(ctx.meta.get(name, False))


def create_key_command(provider_id: str, credential_type: str) -> ATyper:
    """Factory for provider-specific key commands.

    Args:
        provider_id: The provider identifier (e.g., "zai", "claude")
        credential_type: The stored credential type (apikey, setup_token)

    Returns:
        A Typer app with set/delete commands for the provider
    """
    display_name = ProviderID(provider_id).display_name
    provider_app = ATyper(help=f"Manage the {display_name} {credential_type}.")

    @provider_app.callback(invoke_without_command=True)
    def show(ctx: typer.Context) -> None:
        """Show credential status for this provider."""
        if ctx.invoked_subcommand is not None:
            return

        console = Console()
        found, source = check_provider_credentials(provider_id)

        if _global_flag(ctx, "json"):
            from aiusage.display.json import output_json_pretty

            output_json_pretty(
                {"provider": provider_id, "configured": found, "source": source}
            )
            return

        if _global_flag(ctx, "quiet"):
            console.print(f"{provider_id}: {'configured' if found else 'not configured'}")
            return

        if found:
            source_label = SOURCE_LABELS.get(source or "", source or "unknown")
            console.print(f"[green]✓[/green] {display_name} {credential_type} configured ({source_label})")
        else:
            console.print(f"[yellow]✗[/yellow] {display_name} {credential_type} not configured")
            console.print(f"\n[dim]Run 'aiusage key {provider_id} set' to configure[/dim]")

    @provider_app.command("set")
    def set_key(
        value: str = typer.Argument(None, help="Credential value (or enter interactively)"),
    ) -> None:
        """Store a credential for this provider."""
        console = Console()

        if value is None:
            value = typer.prompt(f"Enter {display_name} {credential_type}", hide_input=True)

        if not value or not value.strip():
            console.print("[red]Credential cannot be empty[/red]")
            raise typer.Exit(ExitCode.CONFIG_ERROR)

        try:
            location = store_credential(provider_id, value, credential_type)
        except OSError as e:
            console.print(f"[red]Error saving credential:[/red] {e}")
            raise typer.Exit(ExitCode.GENERAL_ERROR) from e

        console.print(f"[green]✓[/green] {display_name} {credential_type} saved ({location})")

    @provider_app.command("delete")
    def delete_key(
        force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    ) -> None:
        """Delete the stored credential for this provider."""
        console = Console()

        if not force and not typer.confirm(f"Delete {display_name} {credential_type}?"):
            raise typer.Abort()

        if delete_stored_credential(provider_id, credential_type):
            console.print(f"[green]✓[/green] Deleted {credential_type} for {provider_id}")
        else:
            console.print(f"[yellow]No stored {credential_type} found for {provider_id}[/yellow]")

    return provider_app


@key_app.callback(invoke_without_command=True)
def key_callback(ctx: typer.Context) -> None:
    """Show credential status for all providers that accept stored keys."""
    if ctx.invoked_subcommand is not None:
        return

    display_all_credential_status(
        Console(),
        json_mode=_global_flag(ctx, "json"),
        verbose=_global_flag(ctx, "verbose"),
        quiet=_global_flag(ctx, "quiet"),
    )


def display_all_credential_status(
    console: Console,
    json_mode: bool = False,
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """Display credential status for all providers."""
    all_status = get_all_credential_status()

    if json_mode:
        from aiusage.display.json import output_json_pretty

        output_json_pretty(
            {
                provider_id: {
                    "configured": info["has_credentials"],
                    "source": info["source"],
                }
                for provider_id, info in all_status.items()
            }
        )
        return

    # Quiet mode: minimal output
    if quiet:
        for provider_id, info in all_status.items():
            status = "configured" if info["has_credentials"] else "not configured"
            console.print(f"{provider_id}: {status}")
        return

    table = Table(title="Credential Status", show_header=True, header_style="bold")
    table.add_column("Provider", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Source", style="dim")

    for provider_id, info in all_status.items():
        if info["has_credentials"]:
            status_text = "[green]✓ Configured[/green]"
            source_text = SOURCE_LABELS.get(info["source"], info["source"])
        else:
            status_text = "[yellow]✗ Not configured[/yellow]"
            source_text = "-"
        table.add_row(provider_id, status_text, source_text)

    console.print(table)
    console.print("\nSet credentials with:")
    console.print("  aiusage key <provider> set")

    # Verbose: show environment variables checked
    if verbose:
        console.print("\n[bold]Environment variables:[/bold]")
        for provider_id, names in API_KEY_ENV_VARS.items():
            console.print(f"  {provider_id}: {', '.join(names)}")


def _register_provider_key_commands() -> None:
    """Register provider-specific key commands."""
    for provider_id, credential_type in STORED_CREDENTIAL_TYPES.items():
        key_app.add_typer(create_key_command(provider_id, credential_type), name=provider_id)


# Register commands on module import
_register_provider_key_commands()
