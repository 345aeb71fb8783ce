"""Kimi Code provider for aiusage."""

from __future__ import annotations

import os
from datetime import datetime
from datetime import timedelta

from msgspec import Struct

from aiusage.config.credentials import find_api_key
from aiusage.core.http import get_http_client
from aiusage.models import ErrorState
from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult
from aiusage.models import UsageWindow
from aiusage.providers.base import ProviderClient
from aiusage.providers.base import ProviderError
from aiusage.providers.base import ProviderMetadata
from aiusage.providers.base import bearer_headers
from aiusage.providers.base import check_response
from aiusage.providers.base import parse_iso8601

USAGES_URL = "https://api.kimi.com/coding/v1/usages"
KIMI_ANTHROPIC_BASE = "api.kimi.com/coding"

DEFAULT_ACCOUNT_LABEL = "Model: kimi-for-coding (powered by kimi-k2.5)"

WEEK_SECONDS = 7 * 24 * 3600
# Windows at least this long count as weekly
WEEKLY_THRESHOLD = 6 * 24 * 3600

UNIT_SECONDS = {
    "MINUTE": 60,
    "HOUR": 3600,
    "DAY": 86400,
    "WEEK": 604800,
}


class KimiUsage(Struct, frozen=True):
    primary: UsageWindow | None = None
    secondary: UsageWindow | None = None
    account_label: str | None = None


def load_api_key() -> str | None:
    """Find a Kimi API key.

    Priority order:
    1. Key stored with `aiusage key kimi set`
    2. KIMI_API_KEY, KIMI_CODE_API_KEY, KIMI_KEY
    3. ANTHROPIC_API_KEY when ANTHROPIC_BASE_URL points at Kimi Code
    """
    if api_key := find_api_key("kimi"):
        return api_key

    base_url = os.environ.get("ANTHROPIC_BASE_URL", "").lower()
    if KIMI_ANTHROPIC_BASE in base_url:
        return os.environ.get("ANTHROPIC_API_KEY", "").strip() or None
    return None


def flexible_int(value) -> int | None:
    """Read an integer that may arrive as a number or a numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def duration_to_seconds(duration: int, time_unit: str | None) -> int | None:
    """Convert a duration in the given unit to seconds.

    Unknown units are treated as seconds.
    """
    if duration <= 0:
        return None
    unit = (time_unit or "").upper()
    for name, seconds in UNIT_SECONDS.items():
        if name in unit:
            return duration * seconds
    return duration


def is_weekly(label: str, window_seconds: int | None) -> bool:
    if window_seconds is not None and window_seconds >= WEEKLY_THRESHOLD:
        return True
    lowered = label.lower()
    return "week" in lowered or "7d" in lowered


def parse_reset_at(detail: dict, now: datetime) -> datetime | None:
    """Resolve a reset time from an ISO timestamp or a seconds countdown."""
    raw = detail.get("resetAt") or detail.get("resetTime")
    if isinstance(raw, str) and (parsed := parse_iso8601(raw)):
        return parsed

    seconds = flexible_int(detail.get("resetIn"))
    if seconds is None:
        seconds = flexible_int(detail.get("reset_in"))
    if seconds is not None and seconds > 0:
        return now + timedelta(seconds=seconds)
    return None


def _used_of(detail: dict, limit: int) -> int | None:
    used = flexible_int(detail.get("used"))
    if used is not None:
        return used
    remaining = flexible_int(detail.get("remaining"))
    if remaining is not None:
        return limit - remaining
    return None


def usage_window(detail: dict, window_seconds: int | None, now: datetime) -> UsageWindow | None:
    """Build a window from a limit detail, or None if it has no usable limit."""
    limit = flexible_int(detail.get("limit"))
    if limit is None or limit <= 0:
        return None
    used = _used_of(detail, limit)
    if used is None:
        return None
    return UsageWindow(
        used_percent=used / limit * 100,
        reset_at=parse_reset_at(detail, now),
        window_seconds=window_seconds,
    )


def parse_usage_response(data: dict, now: datetime) -> KimiUsage:
    """Parse the Kimi Code usages payload.

    Primary is the shortest window that is not weekly; secondary is the
    weekly window (from limits, or the top-level usage summary).
    """
    if not isinstance(data, dict):
        raise ProviderError(ErrorState.parse_error("Invalid Kimi usage payload"))

    parsed: list[tuple[str, UsageWindow]] = []
    for item in data.get("limits") or []:
        if not isinstance(item, dict):
            continue
        window_cfg = item.get("window") if isinstance(item.get("window"), dict) else {}
        duration = flexible_int(window_cfg.get("duration"))
        if duration is None:
            duration = flexible_int(item.get("duration"))
        time_unit = window_cfg.get("timeUnit") or item.get("timeUnit")
        seconds = duration_to_seconds(duration, time_unit) if duration is not None else None

        detail = item.get("detail")
        if not isinstance(detail, dict):
            continue
        label = (
            detail.get("name")
            or detail.get("title")
            or item.get("name")
            or item.get("title")
            or item.get("scope")
            or "Limit"
        )
        if window := usage_window(detail, seconds, now):
            parsed.append((label, window))

    weekly = next((w for label, w in parsed if is_weekly(label, w.window_seconds)), None)

    summary = data.get("usage") if isinstance(data.get("usage"), dict) else None
    summary_window = usage_window(summary, WEEK_SECONDS, now) if summary else None

    shorter = sorted(
        (w for label, w in parsed if not is_weekly(label, w.window_seconds)),
        key=lambda w: w.window_seconds if w.window_seconds is not None else float("inf"),
    )
    primary = shorter[0] if shorter else (weekly or summary_window)

    secondary = None
    if weekly is not None and weekly != primary:
        secondary = weekly
    elif summary_window is not None and summary_window != primary:
        secondary = summary_window

    account_label = DEFAULT_ACCOUNT_LABEL
    if summary:
        limit = flexible_int(summary.get("limit"))
        if limit is not None and limit > 0:
            used = flexible_int(summary.get("used"))
            if used is None:
                used = limit - (flexible_int(summary.get("remaining")) or 0)
            account_label = f"Kimi Code: {max(used, 0)}/{limit} requests"

    return KimiUsage(primary=primary, secondary=secondary, account_label=account_label)


class KimiClient(ProviderClient):
    """Client for Kimi Code subscription usage."""

    metadata = ProviderMetadata(
        id=ProviderID.KIMI,
        description="Moonshot's Kimi Code plan",
        homepage="https://www.kimi.com",
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        api_key = load_api_key()
        if not api_key:
            raise ProviderError(ErrorState.auth_needed())

        async with get_http_client() as client:
            response = await client.get(USAGES_URL, headers=bearer_headers(api_key))
        check_response(response)

        usage = parse_usage_response(response.json(), now)
        return self._result(
            now,
            primary_window=usage.primary,
            secondary_window=usage.secondary,
            account_label=usage.account_label,
        )
