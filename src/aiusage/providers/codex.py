"""Codex (OpenAI) provider for aiusage."""

from __future__ import annotations

import json
import logging
import tomllib
from datetime import datetime
from datetime import timedelta
from pathlib import Path

from msgspec import Struct

from aiusage.config.credentials import write_credential
from aiusage.config.paths import codex_home
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
from aiusage.providers.base import from_epoch
from aiusage.providers.base import parse_iso8601
from aiusage.providers.base import read_json_file

logger = logging.getLogger(__name__)

TOKEN_URL = "https://auth.openai.com/oauth/token"
CLIENT_ID = "app_EMoamEEZ73f0CkXaXp7hrann"
DEFAULT_BASE_URL = "https://chatgpt.com/backend-api"

# Tokens older than this are refreshed before fetching usage
REFRESH_AFTER = timedelta(days=8)


class CodexCredentials(Struct, frozen=True):
    """Tokens read from the Codex CLI auth file."""

    access_token: str
    refresh_token: str = ""
    account_id: str | None = None
    last_refresh: datetime | None = None

    def needs_refresh(self, now: datetime) -> bool:
        """Check if the token is due for refresh (older than 8 days)."""
        if not self.refresh_token:
            return False
        if self.last_refresh is None:
            return True
        return now - self.last_refresh > REFRESH_AFTER


def auth_path() -> Path:
    return codex_home() / "auth.json"


def load_credentials() -> CodexCredentials:
    """Load credentials from $CODEX_HOME/auth.json (or ~/.codex/auth.json).

    An OPENAI_API_KEY entry takes precedence over ChatGPT OAuth tokens.
    """
    data = read_json_file(auth_path())
    if data is None:
        raise ProviderError(ErrorState.auth_needed())

    api_key = data.get("OPENAI_API_KEY")
    if isinstance(api_key, str) and api_key:
        return CodexCredentials(access_token=api_key)

    tokens = data.get("tokens")
    if not isinstance(tokens, dict):
        raise ProviderError(ErrorState.auth_needed())
    access_token = tokens.get("access_token")
    refresh_token = tokens.get("refresh_token")
    if not isinstance(access_token, str) or not access_token or not isinstance(refresh_token, str):
        raise ProviderError(ErrorState.auth_needed())

    return CodexCredentials(
        access_token=access_token,
        refresh_token=refresh_token,
        account_id=tokens.get("account_id"),
        last_refresh=parse_iso8601(data.get("last_refresh")),
    )


def save_refreshed_tokens(credentials: CodexCredentials) -> None:
    """Write refreshed tokens back into the Codex CLI auth file."""
    path = auth_path()
    data = read_json_file(path) or {}
    tokens = data.get("tokens") if isinstance(data.get("tokens"), dict) else {}
    tokens["access_token"] = credentials.access_token
    tokens["refresh_token"] = credentials.refresh_token
    data["tokens"] = tokens
    if credentials.last_refresh is not None:
        data["last_refresh"] = credentials.last_refresh.isoformat().replace("+00:00", "Z")
    write_credential(path, json.dumps(data, indent=2).encode())


async def refresh_credentials(credentials: CodexCredentials, now: datetime) -> CodexCredentials:
    """Refresh the OAuth access token."""
    async with get_http_client() as client:
        response = await client.post(
            TOKEN_URL,
            json={
                "client_id": CLIENT_ID,
                "grant_type": "refresh_token",
                "refresh_token": credentials.refresh_token,
                "scope": "openid profile email",
            },
        )

    if response.status_code == 401:
        raise ProviderError(ErrorState.token_expired())
    if response.status_code != 200:
        raise ProviderError(ErrorState.endpoint_error(f"Refresh failed ({response.status_code})"))

    try:
        data = response.json()
    except json.JSONDecodeError:
        raise ProviderError(ErrorState.parse_error("Invalid refresh payload")) from None
    if not isinstance(data, dict):
        raise ProviderError(ErrorState.parse_error("Invalid refresh payload"))

    refreshed = CodexCredentials(
        access_token=data.get("access_token") or credentials.access_token,
        refresh_token=data.get("refresh_token") or credentials.refresh_token,
        account_id=credentials.account_id,
        last_refresh=now,
    )
    try:
        save_refreshed_tokens(refreshed)
    except (OSError, ProviderError) as e:
        logger.warning("Could not save refreshed Codex tokens: %s", e)
    return refreshed


def read_base_url() -> str | None:
    """Read chatgpt_base_url from the Codex CLI config.toml, if set."""
    path = codex_home() / "config.toml"
    if not path.exists():
        return None
    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.debug("Ignoring unreadable %s: %s", path, e)
        return None
    value = config.get("chatgpt_base_url")
    return value.strip() if isinstance(value, str) and value.strip() else None


def resolve_usage_url(base_url: str | None = None) -> str:
    """Derive the usage endpoint from a ChatGPT base URL.

    Backend API bases use /wham/usage; anything else uses /api/codex/usage.
    """
    base = (base_url or DEFAULT_BASE_URL).rstrip("/")
    if "/backend-api" in base:
        return f"{base}/wham/usage"
    return f"{base}/api/codex/usage"


def _parse_window(data: dict | None) -> UsageWindow | None:
    if data is None:
        return None
    if not isinstance(data, dict) or data.get("used_percent") is None:
        raise ProviderError(ErrorState.parse_error("Invalid usage payload"))
    return UsageWindow(
        used_percent=float(data["used_percent"]),
        reset_at=from_epoch(data.get("reset_at")),
        window_seconds=data.get("limit_window_seconds"),
    )


def parse_usage_response(data: dict) -> tuple[UsageWindow | None, UsageWindow | None, str | None]:
    """Parse the Codex usage payload.

    Format:
    {
        "plan_type": "plus",
        "rate_limit": {
            "primary_window": { "used_percent": 35, "reset_at": 2000000000, "limit_window_seconds": 18000 },
            "secondary_window": { "used_percent": 60, "reset_at": 2000003600, "limit_window_seconds": 604800 }
        }
    }

    Returns:
        (primary window, secondary window, plan type)
    """
    rate_limit = data.get("rate_limit") if isinstance(data, dict) else None
    if not isinstance(rate_limit, dict):
        raise ProviderError(ErrorState.parse_error("Invalid usage payload"))
    return (
        _parse_window(rate_limit.get("primary_window")),
        _parse_window(rate_limit.get("secondary_window")),
        data.get("plan_type"),
    )


class CodexClient(ProviderClient):
    """Client for Codex (OpenAI ChatGPT plan) usage."""

    metadata = ProviderMetadata(
        id=ProviderID.CODEX,
        description="OpenAI's Codex coding assistant",
        homepage="https://chatgpt.com/codex",
        dashboard_url="https://chatgpt.com/codex/settings/usage",
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        credentials = load_credentials()
        if credentials.needs_refresh(now):
            credentials = await refresh_credentials(credentials, now)

        headers = bearer_headers(credentials.access_token)
        if credentials.account_id:
            headers["ChatGPT-Account-Id"] = credentials.account_id

        async with get_http_client() as client:
            response = await client.get(resolve_usage_url(read_base_url()), headers=headers)
        check_response(response)

        primary, secondary, plan_type = parse_usage_response(response.json())
        return self._result(
            now,
            primary_window=primary,
            secondary_window=secondary,
            account_label=plan_type,
        )
