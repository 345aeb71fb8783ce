"""Claude (Anthropic) provider for aiusage."""

from __future__ import annotations

from datetime import datetime

from msgspec import Struct

from aiusage.config.credentials import STORED_CREDENTIAL_TYPES
from aiusage.config.credentials import load_stored_credential
from aiusage.config.paths import claude_credentials_path
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
from aiusage.providers.base import from_epoch_ms
from aiusage.providers.base import parse_iso8601
from aiusage.providers.base import read_json_file

USAGE_URL = "https://api.anthropic.com/api/oauth/usage"
OAUTH_BETA = "oauth-2025-04-20"


class ClaudeCredentials(Struct, frozen=True):
    """Access token resolved from the Claude CLI or a stored setup token."""

    access_token: str
    expires_at: datetime | None = None
    rate_limit_tier: str | None = None


def load_credentials() -> ClaudeCredentials:
    """Load Claude credentials.

    Priority order:
    1. Claude CLI OAuth credentials (~/.claude/.credentials.json)
    2. Setup token stored with `aiusage key claude set`
    """
    data = read_json_file(claude_credentials_path())
    oauth = data.get("claudeAiOauth") if data else None
    if isinstance(oauth, dict):
        token = oauth.get("accessToken")
        if isinstance(token, str) and token.strip():
            expires_at = oauth.get("expiresAt")
            return ClaudeCredentials(
                access_token=token.strip(),
                expires_at=from_epoch_ms(expires_at) if isinstance(expires_at, (int, float)) else None,
                rate_limit_tier=oauth.get("rateLimitTier"),
            )

    setup_token = load_stored_credential("claude", STORED_CREDENTIAL_TYPES["claude"])
    if setup_token:
        return ClaudeCredentials(access_token=setup_token, rate_limit_tier="Setup token")

    raise ProviderError(ErrorState.auth_needed())


def _parse_window(data: dict | None) -> UsageWindow | None:
    if not isinstance(data, dict):
        return None
    utilization = data.get("utilization")
    if utilization is None:
        return None
    # utilization is a 0-1 fraction
    return UsageWindow(
        used_percent=float(utilization) * 100,
        reset_at=parse_iso8601(data.get("resets_at")),
    )


def parse_usage_response(data: dict) -> tuple[UsageWindow | None, UsageWindow | None]:
    """Parse the OAuth usage endpoint payload.

    Format:
    {
        "five_hour": { "utilization": 0.45, "resets_at": "2030-01-01T10:00:00Z" },
        "seven_day": { "utilization": 0.75, "resets_at": "2030-01-07T10:00:00Z" }
    }

    Returns:
        (five_hour window, seven_day window)
    """
    if not isinstance(data, dict):
        raise ProviderError(ErrorState.parse_error("Invalid Claude usage payload"))
    return _parse_window(data.get("five_hour")), _parse_window(data.get("seven_day"))


class ClaudeClient(ProviderClient):
    """Client for Claude (Anthropic) subscription usage."""

    metadata = ProviderMetadata(
        id=ProviderID.CLAUDE,
        description="Anthropic's Claude AI assistant",
        homepage="https://claude.ai",
        dashboard_url="https://claude.ai/settings/usage",
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        credentials = load_credentials()
        if credentials.expires_at is not None and credentials.expires_at <= now:
            raise ProviderError(ErrorState.token_expired())

        async with get_http_client() as client:
            response = await client.get(
                USAGE_URL,
                headers=bearer_headers(credentials.access_token, **{"anthropic-beta": OAUTH_BETA}),
            )
        check_response(response)

        five_hour, seven_day = parse_usage_response(response.json())
        return self._result(
            now,
            primary_window=five_hour,
            secondary_window=seven_day,
            account_label=credentials.rate_limit_tier,
        )
