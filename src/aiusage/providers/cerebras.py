"""Cerebras provider for aiusage."""

from __future__ import annotations

from datetime import datetime
from datetime import timedelta

import httpx
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

COMPLETIONS_URL = "https://api.cerebras.ai/v1/chat/completions"
PROBE_MODEL = "zai-glm-4.7"

DAY_SECONDS = 86400


class RateLimitResult(Struct, frozen=True):
    primary: UsageWindow | None = None
    account_label: str | None = None


def _float_header(headers: httpx.Headers, name: str) -> float | None:
    value = headers.get(name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_rate_limit_headers(headers: httpx.Headers, now: datetime) -> RateLimitResult:
    """Parse daily token limits from x-ratelimit-* response headers.

    Cerebras only reports a daily window; there is no weekly limit.
    """
    limit = _float_header(headers, "x-ratelimit-limit-tokens-day")
    remaining = _float_header(headers, "x-ratelimit-remaining-tokens-day")
    reset_seconds = _float_header(headers, "x-ratelimit-reset-tokens-day")

    if limit is None or remaining is None:
        return RateLimitResult()

    primary = None
    if limit > 0:
        primary = UsageWindow(
            used_percent=(limit - remaining) / limit * 100,
            reset_at=now + timedelta(seconds=reset_seconds) if reset_seconds is not None else None,
            window_seconds=DAY_SECONDS,
        )
    label = f"Day: {int(limit - remaining)}/{int(limit)} tokens"
    return RateLimitResult(primary=primary, account_label=label)


class CerebrasClient(ProviderClient):
    """Client for Cerebras inference rate limits.

    Sends a one-token completion and reads the rate limit headers.
    """

    metadata = ProviderMetadata(
        id=ProviderID.CEREBRAS,
        description="Cerebras inference API",
        homepage="https://cerebras.ai",
        dashboard_url="https://cloud.cerebras.ai",
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        api_key = find_api_key(self.provider_id)
        if not api_key:
            raise ProviderError(ErrorState.auth_needed())

        async with get_http_client() as client:
            response = await client.post(
                COMPLETIONS_URL,
                headers=bearer_headers(api_key),
                json={
                    "model": PROBE_MODEL,
                    "messages": [{"role": "user", "content": "hi"}],
                    "max_completion_tokens": 1,
                },
            )
        if response.status_code == 402:
            raise ProviderError(
                ErrorState.endpoint_error("Add payment method in Cerebras dashboard")
            )
        check_response(response)

        limits = parse_rate_limit_headers(response.headers, now)
        return self._result(now, primary_window=limits.primary, account_label=limits.account_label)
