"""Rich display components for aiusage."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone

from rich.console import Console
from rich.console import ConsoleOptions
from rich.console import RenderResult
from rich.table import Table
from rich.text import Text

from aiusage.errors.messages import get_remediation
from aiusage.models import ProviderUsageResult
from aiusage.models import UsageSnapshot
from aiusage.models import UsageWindow
from aiusage.models import last_updated_text
from aiusage.models import reset_text
from aiusage.models import usage_color

WINDOW_NAMES = {
    5 * 3600: "Session (5h)",
    86400: "Daily",
    7 * 86400: "Weekly",
}


def render_usage_bar(
    used_percent: float,
    width: int = 20,
    color: str | None = None,
) -> Text:
    """Render a usage progress bar.

    Args:
        used_percent: Usage percentage (0-100)
        width: Bar width in characters
        color: Optional color override

    Returns:
        Rich Text with the progress bar
    """
    filled = int(used_percent * width // 100)
    bar = "█" * filled + "░" * (width - filled)

    text = Text()
    text.append(bar, style=color or "default")
    return text


def window_name(window: UsageWindow, fallback: str) -> str:
    """Name a window by its duration, e.g. "Weekly"."""
    if window.window_seconds is None:
        return fallback
    return WINDOW_NAMES.get(window.window_seconds, fallback)


def format_window(
    window: UsageWindow,
    now: datetime,
    show_remaining: bool = False,
) -> tuple[Text, Text]:
    """Format the bar/percentage and reset columns for one window."""
    color = usage_color(window.used_percent)
    text = Text()
    text.append_text(render_usage_bar(window.used_percent, color=color))
    if show_remaining:
        text.append(f" {window.remaining_percent:3.0f}% left", style=color)
    else:
        text.append(f" {window.used_percent:3.0f}%", style=color)
    return text, Text(reset_text(window.reset_at, now), style="dim")


class ProviderResultDisplay:
    """Rich renderable for one provider's row group.

    Shows the provider name and account label, an error badge when the last
    fetch failed, one line per window, and a remediation hint for errors.
    """

    def __init__(
        self,
        result: ProviderUsageResult,
        now: datetime | None = None,
        show_remaining: bool = False,
        verbose: bool = False,
    ):
        self.result = result
        self.now = now
        self.show_remaining = show_remaining
        self.verbose = verbose

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        result = self.result
        now = self.now or datetime.now(timezone.utc)

        title = Text(result.provider.display_name, style="bold")
        if result.account_label:
            title.append(f"  {result.account_label}", style="dim")
        if result.error_state is not None:
            title.append("  ")
            title.append(f" {result.error_state.badge_text} ", style="bold white on red")
        if result.is_stale:
            title.append(
                f"  stale, from {last_updated_text(result.observed_at, now)}",
                style="yellow",
            )
        yield title

        grid = Table.grid(padding=(0, 2))
        grid.add_column(min_width=14, justify="left")
        grid.add_column(min_width=26, justify="left")
        grid.add_column(justify="left")

        rows = [
            (result.primary_window, "Primary"),
            (result.secondary_window, "Secondary"),
        ]
        for window, fallback in rows:
            if window is not None:
                grid.add_row(
                    Text(f"  {window_name(window, fallback)}"),
                    *format_window(window, now, self.show_remaining),
                )
        for model in result.model_windows:
            grid.add_row(
                Text(f"    {model.model_id}", style="dim"),
                *format_window(model.window, now, self.show_remaining),
            )
        if grid.row_count:
            yield grid

        if result.error_state is not None:
            yield Text(f"  {result.error_state.detail_text}", style="red")
            hint = get_remediation(result.provider, result.error_state)
            if hint and (self.verbose or not result.is_stale):
                yield Text.from_markup(f"  [dim]{hint}[/dim]")


class SnapshotDisplay:
    """Rich renderable for a whole usage snapshot."""

    def __init__(
        self,
        snapshot: UsageSnapshot,
        now: datetime | None = None,
        show_remaining: bool = False,
        verbose: bool = False,
    ):
        self.snapshot = snapshot
        self.now = now
        self.show_remaining = show_remaining
        self.verbose = verbose

    def __rich_console__(self, console: Console, options: ConsoleOptions) -> RenderResult:
        now = self.now or datetime.now(timezone.utc)
        if not self.snapshot.results:
            if self.snapshot.is_refreshing:
                yield Text("Fetching usage...", style="dim")
            else:
                yield Text("No providers enabled", style="yellow")
        for index, result in enumerate(self.snapshot.results):
            if index:
                yield Text()
            yield ProviderResultDisplay(
                result,
                now=now,
                show_remaining=self.show_remaining,
                verbose=self.verbose,
            )

        yield Text()
        footer = Text(
            f"Updated {last_updated_text(self.snapshot.last_updated, now)}",
            style="dim",
        )
        if self.snapshot.is_refreshing:
            footer.append("  refreshing...", style="cyan")
        yield footer


def format_compact_line(result: ProviderUsageResult) -> str:
    """Format a one-line summary for quiet mode."""
    name = result.provider.value
    if result.primary_window is not None:
        line = f"{name}: {result.primary_window.used_percent:.0f}%"
        if result.secondary_window is not None:
            line += f" / {result.secondary_window.used_percent:.0f}%"
    elif result.account_label:
        line = f"{name}: {result.account_label}"
    else:
        line = f"{name}: -"
    if result.error_state is not None:
        line += f" ({result.error_state.badge_text.lower()}{', stale' if result.is_stale else ''})"
    return line
