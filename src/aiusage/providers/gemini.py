"""Gemini (Google AI) provider for aiusage.

Uses the Gemini CLI OAuth credentials to query the Cloud Code API, which
reports per-model daily quota buckets.
"""

from __future__ import annotations

from datetime import datetime

from msgspec import Struct

from aiusage.config.paths import gemini_oauth_path
from aiusage.config.paths import gemini_settings_path
from aiusage.core.http import get_http_client
from aiusage.models import ErrorState
from aiusage.models import ModelUsageWindow
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

QUOTA_URL = "https://cloudcode-pa.googleapis.com/v1internal:retrieveUserQuota"
CODE_ASSIST_URL = "https://cloudcode-pa.googleapis.com/v1internal:loadCodeAssist"

DEFAULT_AUTH_TYPE = "oauth-personal"
# Auth types that never expose Code Assist quota
UNSUPPORTED_AUTH_TYPES = ("api-key", "vertex-ai")

DAY_SECONDS = 24 * 60 * 60

TIER_LABELS = {
    "standard-tier": "Paid",
    "free-tier": "Free",
    "legacy-tier": "Legacy",
}


class GeminiCredentials(Struct, frozen=True):
    access_token: str
    expires_at: datetime | None = None


class QuotaMapping(Struct, frozen=True):
    """Quota buckets reduced to display windows."""

    primary: UsageWindow | None = None
    secondary: UsageWindow | None = None
    model_windows: tuple[ModelUsageWindow, ...] = ()


def load_auth_type() -> str:
    """Read the selected auth type from the Gemini CLI settings."""
    data = read_json_file(gemini_settings_path())
    if not data:
        return DEFAULT_AUTH_TYPE
    security = data.get("security")
    auth = security.get("auth") if isinstance(security, dict) else None
    selected = auth.get("selectedType") if isinstance(auth, dict) else None
    return selected if isinstance(selected, str) else DEFAULT_AUTH_TYPE


def load_credentials() -> GeminiCredentials:
    """Load OAuth credentials from ~/.gemini/oauth_creds.json."""
    data = read_json_file(gemini_oauth_path())
    if data is None:
        raise ProviderError(ErrorState.auth_needed())

    access_token = data.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise ProviderError(ErrorState.auth_needed())

    expiry = data.get("expiry_date")
    return GeminiCredentials(
        access_token=access_token,
        expires_at=from_epoch_ms(expiry) if isinstance(expiry, (int, float)) else None,
    )


def parse_code_assist(data: dict) -> tuple[str | None, str | None]:
    """Parse a loadCodeAssist response.

    Returns:
        (cloud project id, tier label)
    """
    if not isinstance(data, dict):
        raise ProviderError(ErrorState.parse_error("Invalid loadCodeAssist payload"))
    tier = data.get("currentTier")
    tier_id = tier.get("id") if isinstance(tier, dict) else None
    return data.get("cloudaicompanionProject"), TIER_LABELS.get(tier_id)


def _most_used(windows: list[UsageWindow]) -> UsageWindow | None:
    return min(windows, key=lambda w: w.remaining_percent, default=None)


def map_buckets(buckets: list[dict]) -> QuotaMapping:
    """Reduce quota buckets to primary, secondary and per-model windows.

    Primary is the most used "pro" bucket (or the most used bucket of any
    model when there is none), secondary the most used "flash" bucket.
    Model windows cover gemini-3 models only, sorted by model id.
    """
    pro: list[UsageWindow] = []
    flash: list[UsageWindow] = []
    every: list[UsageWindow] = []
    model_windows: list[ModelUsageWindow] = []

    for bucket in buckets:
        fraction = bucket.get("remainingFraction")
        if fraction is None:
            continue
        window = UsageWindow(
            used_percent=(1 - float(fraction)) * 100,
            reset_at=parse_iso8601(bucket.get("resetTime")),
            window_seconds=DAY_SECONDS,
        )
        model_id = bucket.get("modelId")
        if model_id:
            model_windows.append(ModelUsageWindow(model_id=model_id, window=window))

        every.append(window)
        model = (model_id or "").lower()
        if "pro" in model:
            pro.append(window)
        if "flash" in model:
            flash.append(window)

    gemini_3 = sorted(
        (m for m in model_windows if m.model_id.lower().startswith("gemini-3")),
        key=lambda m: m.model_id,
    )
    return QuotaMapping(
        primary=_most_used(pro) or _most_used(every),
        secondary=_most_used(flash),
        model_windows=tuple(gemini_3),
    )


def parse_quota_response(data: dict) -> QuotaMapping:
    """Parse a retrieveUserQuota response.

    Format:
    {
        "buckets": [
            { "modelId": "gemini-2.5-pro", "remainingFraction": 0.40, "resetTime": "2030-01-01T10:00:00Z" },
            ...
        ]
    }
    """
    buckets = data.get("buckets") if isinstance(data, dict) else None
    if not isinstance(buckets, list):
        raise ProviderError(ErrorState.parse_error("Invalid quota payload"))
    return map_buckets([b for b in buckets if isinstance(b, dict)])


class GeminiClient(ProviderClient):
    """Client for Gemini Code Assist quota."""

    metadata = ProviderMetadata(
        id=ProviderID.GEMINI,
        description="Google's Gemini AI",
        homepage="https://gemini.google.com",
        dashboard_url="https://aistudio.google.com/app/usage",
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        if load_auth_type() in UNSUPPORTED_AUTH_TYPES:
            raise ProviderError(ErrorState.auth_needed())

        credentials = load_credentials()
        if credentials.expires_at is not None and credentials.expires_at <= now:
            raise ProviderError(ErrorState.token_expired())

        headers = bearer_headers(credentials.access_token)
        async with get_http_client() as client:
            response = await client.post(
                CODE_ASSIST_URL,
                headers=headers,
                json={"metadata": {"ideType": "GEMINI_CLI", "pluginType": "GEMINI"}},
            )
            check_response(response)
            project_id, tier_label = parse_code_assist(response.json())

            response = await client.post(
                QUOTA_URL,
                headers=headers,
                json={"project": project_id} if project_id else {},
            )
            check_response(response)
            quota = parse_quota_response(response.json())

        return self._result(
            now,
            primary_window=quota.primary,
            secondary_window=quota.secondary,
            model_windows=quota.model_windows,
            account_label=tier_label,
        )
