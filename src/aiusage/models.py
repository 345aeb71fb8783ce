"""Data models for aiusage.

Defines the normalized structures every provider client produces and the
aggregate snapshot the usage store publishes to its subscribers. All models
are immutable; the store builds new instances instead of mutating old ones.
"""

from __future__ import annotations

import math
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from enum import StrEnum

import msgspec


class ProviderID(StrEnum):
    """Known providers, in display order."""

    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"
    ZAI = "zai"
    CEREBRAS = "cerebras"
    KIMI = "kimi"
    MINIMAX = "minimax"

    @property
    def display_name(self) -> str:
        """Return the human-readable provider name."""
        match self:
            case ProviderID.CLAUDE:
                return "Claude"
            case ProviderID.CODEX:
                return "Codex"
            case ProviderID.GEMINI:
                return "Gemini"
            case ProviderID.ZAI:
                return "Z.AI"
            case ProviderID.CEREBRAS:
                return "Cerebras"
            case ProviderID.KIMI:
                return "Kimi"
            case ProviderID.MINIMAX:
                return "Minimax"


def clamp_percent(value: float) -> float:
    """Clamp a percentage into [0, 100]. NaN is treated as 0."""
    value = float(value)
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, value))


class UsageWindow(msgspec.Struct, frozen=True):
    """A quota window (e.g., 5-hour session, 7-day weekly)."""

    used_percent: float  # 0-100, clamped on construction
    reset_at: datetime | None = None  # When the window resets
    window_seconds: int | None = None  # Duration the window covers

    def __post_init__(self) -> None:
        msgspec.structs.force_setattr(
            self, "used_percent", clamp_percent(self.used_percent)
        )

    @property
    def remaining_percent(self) -> float:
        """Return percentage remaining (100 - used_percent)."""
        return clamp_percent(100.0 - self.used_percent)

    def time_until_reset(self, now: datetime | None = None) -> timedelta | None:
        """Return time remaining until reset."""
        if self.reset_at is None:
            return None
        now = now or datetime.now(self.reset_at.tzinfo)
        return max(timedelta(0), self.reset_at - now)


class ModelUsageWindow(msgspec.Struct, frozen=True):
    """A quota window scoped to a single model."""

    model_id: str
    window: UsageWindow


class ErrorKind(StrEnum):
    """Failure modes a provider client can report."""

    AUTH_NEEDED = "auth_needed"  # No usable credential found
    TOKEN_EXPIRED = "token_expired"  # Credential present but rejected
    ENDPOINT_ERROR = "endpoint_error"  # Non-success status from the service
    PARSE_ERROR = "parse_error"  # Payload did not match the expected shape
    NETWORK_ERROR = "network_error"  # Transport failure

    @property
    def badge_text(self) -> str:
        """Return the short badge label for this kind."""
        match self:
            case ErrorKind.AUTH_NEEDED:
                return "Auth needed"
            case ErrorKind.TOKEN_EXPIRED:
                return "Token expired"
            case ErrorKind.ENDPOINT_ERROR:
                return "API error"
            case ErrorKind.PARSE_ERROR:
                return "Parse error"
            case ErrorKind.NETWORK_ERROR:
                return "Network error"


# Substrings that make an endpoint error read as an authentication problem
AUTH_LIKE_MARKERS = ("401", "403", "rejected", "invalid")


class ErrorState(msgspec.Struct, frozen=True):
    """Why a provider fetch failed."""

    kind: ErrorKind
    message: str | None = None  # Detail for endpoint/parse/network errors

    @classmethod
    def auth_needed(cls) -> ErrorState:
        return cls(kind=ErrorKind.AUTH_NEEDED)

    @classmethod
    def token_expired(cls) -> ErrorState:
        return cls(kind=ErrorKind.TOKEN_EXPIRED)

    @classmethod
    def endpoint_error(cls, message: str) -> ErrorState:
        return cls(kind=ErrorKind.ENDPOINT_ERROR, message=message)

    @classmethod
    def parse_error(cls, message: str) -> ErrorState:
        return cls(kind=ErrorKind.PARSE_ERROR, message=message)

    @classmethod
    def network_error(cls, message: str) -> ErrorState:
        return cls(kind=ErrorKind.NETWORK_ERROR, message=message)

    @property
    def badge_kind(self) -> ErrorKind:
        """Return the kind used for display.

        Endpoint errors whose message looks like an auth rejection are
        shown as AUTH_NEEDED. The underlying kind is unchanged.
        """
        if self.kind == ErrorKind.ENDPOINT_ERROR and self.message:
            lowered = self.message.lower()
            if any(marker in lowered for marker in AUTH_LIKE_MARKERS):
                return ErrorKind.AUTH_NEEDED
        return self.kind

    @property
    def badge_text(self) -> str:
        """Return the short badge label."""
        return self.badge_kind.badge_text

    @property
    def detail_text(self) -> str:
        """Return the longer human-readable description."""
        match self.kind:
            case ErrorKind.AUTH_NEEDED:
                return "Add credentials to fetch usage"
            case ErrorKind.TOKEN_EXPIRED:
                return "Token expired, re-authenticate to fetch usage"
            case _:
                return self.message or self.kind.badge_text


class ProviderUsageResult(msgspec.Struct, frozen=True):
    """Usage data (or the failure) from one fetch for one provider."""

    provider: ProviderID
    observed_at: datetime  # When the fetch happened
    primary_window: UsageWindow | None = None
    secondary_window: UsageWindow | None = None
    model_windows: tuple[ModelUsageWindow, ...] = ()
    account_label: str | None = None  # Plan tier or account description
    error_state: ErrorState | None = None
    is_stale: bool = False  # Only ever set by the usage store

    @classmethod
    def failure(
        cls, provider: ProviderID, observed_at: datetime, error: ErrorState
    ) -> ProviderUsageResult:
        """Factory for a result carrying only an error."""
        return cls(provider=provider, observed_at=observed_at, error_state=error)

    @property
    def is_success(self) -> bool:
        """Check if this result came from a successful fetch."""
        return self.error_state is None

    @property
    def has_usage(self) -> bool:
        """Check if any usage window is populated."""
        return (
            self.primary_window is not None
            or self.secondary_window is not None
            or bool(self.model_windows)
        )

    def as_stale(self, error: ErrorState) -> ProviderUsageResult:
        """Return a copy of this result marked stale with a newer error.

        Data fields and observed_at are reused verbatim.
        """
        return msgspec.structs.replace(self, error_state=error, is_stale=True)


class UsageSnapshot(msgspec.Struct, frozen=True):
    """Aggregate state of every provider at one point in time."""

    results: tuple[ProviderUsageResult, ...] = ()  # Provider declaration order
    last_updated: datetime | None = None  # Start time of last completed cycle
    is_refreshing: bool = False

    @classmethod
    def empty(cls) -> UsageSnapshot:
        """Factory for the initial snapshot."""
        return cls()

    @property
    def minimum_remaining_percent(self) -> float | None:
        """Return the lowest primary-window remaining percentage.

        None if no provider has primary window data.
        """
        remaining = [
            r.primary_window.remaining_percent
            for r in self.results
            if r.primary_window is not None
        ]
        return min(remaining) if remaining else None

    @property
    def has_errors(self) -> bool:
        """Check if any provider currently reports an error."""
        return any(r.error_state is not None for r in self.results)

    def result_for(self, provider: ProviderID) -> ProviderUsageResult | None:
        """Return the result for a provider, if present."""
        for result in self.results:
            if result.provider == provider:
                return result
        return None


def format_countdown(delta: timedelta | None) -> str:
    """Format a duration as a compact countdown string."""
    if delta is None:
        return ""

    total_seconds = int(delta.total_seconds())
    if total_seconds <= 0:
        return "now"

    days, remainder = divmod(total_seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes = remainder // 60

    if days > 0:
        return f"{days}d {hours}h"
    elif hours > 0:
        return f"{hours}h {minutes}m"
    else:
        return f"{minutes}m"


def reset_text(reset_at: datetime | None, now: datetime | None = None) -> str:
    """Describe when a window resets."""
    if reset_at is None:
        return "Reset unknown"
    now = now or datetime.now(timezone.utc)
    if reset_at <= now:
        return "Resets soon"
    return f"Resets in {format_countdown(reset_at - now)}"


def last_updated_text(updated: datetime | None, now: datetime | None = None) -> str:
    """Describe how long ago a snapshot was last updated."""
    if updated is None:
        return "Never"
    now = now or datetime.now(timezone.utc)
    delta = now - updated
    if delta.total_seconds() < 60:
        return "just now"
    return f"{format_countdown(delta)} ago"


def usage_color(used_percent: float) -> str:
    """Pick a display color from the used percentage."""
    if used_percent < 50:
        return "green"
    elif used_percent < 80:
        return "yellow"
    else:
        return "red"
