"""Base provider client contract and shared helpers for aiusage."""

from __future__ import annotations

import json
import logging
import re
from abc import ABC
from abc import abstractmethod
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import ClassVar

import httpx
from msgspec import Struct

from aiusage.errors.classify import classify_exception
from aiusage.errors.classify import classify_http_status
from aiusage.errors.http import extract_error_message
from aiusage.models import ErrorState
from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult

logger = logging.getLogger(__name__)


class ProviderMetadata(Struct, frozen=True):
    """Metadata about a provider."""

    id: ProviderID
    description: str
    homepage: str
    dashboard_url: str | None = None

    @property
    def name(self) -> str:
        return self.id.display_name


class ProviderError(Exception):
    """Raised inside a provider client to report a typed failure.

    Never escapes fetch_usage(); the base class turns it into a failed
    ProviderUsageResult.
    """

    def __init__(self, error: ErrorState):
        super().__init__(error.detail_text)
        self.error = error


class ProviderClient(ABC):
    """Abstract base class for all provider clients.

    Each client must:
    1. Define metadata as a ClassVar
    2. Implement _fetch() to return a successful ProviderUsageResult, raising
       ProviderError (or letting library exceptions propagate) on failure

    fetch_usage() never raises. Every failure comes back as a result whose
    error_state is set.
    """

    # Subclasses must define this
    metadata: ClassVar[ProviderMetadata]

    @property
    def provider_id(self) -> ProviderID:
        """Get provider ID."""
        return self.metadata.id

    @property
    def name(self) -> str:
        """Get provider name."""
        return self.metadata.name

    async def fetch_usage(self, now: datetime) -> ProviderUsageResult:
        """Fetch current usage, stamping the result with ``now``."""
        try:
            return await self._fetch(now)
        except ProviderError as e:
            error = e.error
        except Exception as e:
            error = classify_exception(e)

        logger.debug("%s fetch failed: %s", self.provider_id, error.detail_text)
        return ProviderUsageResult.failure(self.provider_id, now, error)

    @abstractmethod
    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        """Fetch usage from the provider. May raise."""

    def _result(self, now: datetime, **fields) -> ProviderUsageResult:
        """Build a successful result for this provider."""
        return ProviderUsageResult(provider=self.provider_id, observed_at=now, **fields)

    def is_enabled(self) -> bool:
        """Check if this provider is enabled in configuration."""
        from aiusage.config.settings import get_config

        config = get_config()
        return config.is_provider_enabled(self.provider_id)


def check_response(response: httpx.Response) -> None:
    """Raise ProviderError for any non-2xx response."""
    if response.is_success:
        return
    detail = extract_error_message(response)
    raise ProviderError(classify_http_status(response.status_code, detail))


def bearer_headers(token: str, **extra: str) -> dict[str, str]:
    """Build request headers with a bearer token."""
    headers = {
        "Authorization": f"Bearer {token}",
        "Accept": "application/json",
    }
    headers.update(extra)
    return headers


def read_json_file(path: Path) -> dict | None:
    """Read a JSON object written by another tool.

    Returns:
        The decoded object, or None if the file does not exist

    Raises:
        ProviderError: If the file is not a JSON object
    """
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_bytes())
    except json.JSONDecodeError:
        raise ProviderError(ErrorState.parse_error(f"Could not parse {path.name}")) from None
    if not isinstance(data, dict):
        raise ProviderError(ErrorState.parse_error(f"Unexpected content in {path.name}"))
    return data


_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_iso8601(raw: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp, assuming UTC when no offset is given.

    Fractional seconds beyond microseconds are truncated.
    """
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(_LONG_FRACTION.sub(r"\1", raw.strip()))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def from_epoch(seconds: float | None) -> datetime | None:
    """Convert epoch seconds to an aware UTC datetime."""
    if seconds is None:
        return None
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def from_epoch_ms(millis: float | None) -> datetime | None:
    """Convert epoch milliseconds to an aware UTC datetime."""
    if millis is None:
        return None
    return from_epoch(millis / 1000.0)
