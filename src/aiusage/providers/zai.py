"""Z.AI provider for aiusage."""

from __future__ import annotations

from datetime import datetime

from aiusage.config.credentials import find_api_key
from aiusage.models import ErrorState
from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult
from aiusage.providers.base import ProviderClient
from aiusage.providers.base import ProviderError
from aiusage.providers.base import ProviderMetadata


class ZaiClient(ProviderClient):
    """Client for Z.AI.

    Z.AI has no quota endpoint, so a successful fetch only confirms that an
    API key is configured.
    """

    metadata = ProviderMetadata(
        id=ProviderID.ZAI,
        description="Z.AI GLM coding plan",
        homepage="https://z.ai",
    )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        if not find_api_key(self.provider_id):
            raise ProviderError(ErrorState.auth_needed())
        return self._result(now, account_label="API key configured")
