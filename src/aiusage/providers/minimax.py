"""Minimax provider for aiusage."""

from __future__ import annotations

from datetime import datetime

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
from aiusage.providers.base import from_epoch_ms

REMAINS_URL = "https://api.minimax.io/v1/api/openplatform/coding_plan/remains"
REFERER = "https://platform.minimax.com/user-center/payment/coding-plan"

FIVE_HOURS = 5 * 60 * 60


class CodingPlanUsage(Struct, frozen=True):
    primary: UsageWindow
    account_label: str


def parse_coding_plan(data: dict) -> CodingPlanUsage:
    """Parse the coding plan remains payload.

    Only the first model_remains entry is used. Despite its name,
    current_interval_usage_count holds the prompts remaining.

    Format:
    {
        "base_resp": { "status_code": 0, "status_msg": "success" },
        "model_remains": [
            {
                "model_name": "MiniMax-M2",
                "end_time": 1767232800000,
                "current_interval_total_count": 1500,
                "current_interval_usage_count": 1200
            }
        ]
    }
    """
    invalid = ProviderError(ErrorState.parse_error("Invalid Minimax coding plan payload"))
    if not isinstance(data, dict):
        raise invalid
    base_resp = data.get("base_resp")
    if not isinstance(base_resp, dict) or base_resp.get("status_code") != 0:
        raise invalid
    remains = data.get("model_remains")
    if not isinstance(remains, list) or not remains or not isinstance(remains[0], dict):
        raise invalid

    first = remains[0]
    remaining = int(first.get("current_interval_usage_count") or 0)
    total = int(first.get("current_interval_total_count") or 0)
    used = total - remaining

    window = UsageWindow(
        used_percent=used / total * 100 if total > 0 else 0.0,
        reset_at=from_epoch_ms(first.get("end_time")),
        window_seconds=FIVE_HOURS,
    )
    label = f"{used}/{total} prompts"
    if model_name := first.get("model_name"):
        label = f"{model_name}: {label}"
    return CodingPlanUsage(primary=window, account_label=label)


class MinimaxClient(ProviderClient):
    """Client for the Minimax coding plan."""

    metadata = ProviderMetadata(
        id=ProviderID.MINIMAX,
        description="Minimax coding plan",
        homepage="https://www.minimax.io",
        dashboard_url=REFERER,
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        api_key = find_api_key(self.provider_id)
        if not api_key:
            raise ProviderError(ErrorState.auth_needed())

        async with get_http_client() as client:
            response = await client.get(
                REMAINS_URL,
                headers=bearer_headers(
                    api_key,
                    Accept="application/json, text/plain, */*",
                    Referer=REFERER,
                ),
            )
        check_response(response)

        usage = parse_coding_plan(response.json())
        return self._result(now, primary_window=usage.primary, account_label=usage.account_label)
