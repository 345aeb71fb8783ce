"""Pytest configuration and shared fixtures for aiusage tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

import aiusage.config.settings as settings_module
import aiusage.core.http as http_module
from aiusage.config.keyring import use_keyring
from aiusage.models import (
    ErrorState,
    ModelUsageWindow,
    ProviderID,
    ProviderUsageResult,
    UsageSnapshot,
    UsageWindow,
)
from aiusage.providers.base import ProviderClient, ProviderMetadata

# Every environment variable that can change what the code under test sees
AIUSAGE_ENV_VARS = (
    "AIUSAGE_CONFIG_DIR",
    "AIUSAGE_ENABLED_PROVIDERS",
    "AIUSAGE_POLL_INTERVAL",
    "CODEX_HOME",
    "ZAI_API_KEY",
    "CEREBRAS_API_KEY",
    "KIMI_API_KEY",
    "KIMI_CODE_API_KEY",
    "KIMI_KEY",
    "MINIMAX_KEY",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_BASE_URL",
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point config and home directories at a temp dir and clear key env vars."""
    for name in AIUSAGE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: home))
    monkeypatch.setenv("AIUSAGE_CONFIG_DIR", str(tmp_path / "config"))

    settings_module._config = None
    use_keyring.cache_clear()
    http_module._client = None
    yield home
    settings_module._config = None
    use_keyring.cache_clear()
    http_module._client = None


@pytest.fixture
def utc_now() -> datetime:
    """Fixed UTC datetime for consistent testing."""
    return datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_window(utc_now: datetime) -> UsageWindow:
    """Five-hour window at 65% used."""
    return UsageWindow(
        used_percent=65.0,
        reset_at=utc_now + timedelta(hours=3),
        window_seconds=18000,
    )


@pytest.fixture
def sample_weekly_window(utc_now: datetime) -> UsageWindow:
    """Weekly window at 30% used."""
    return UsageWindow(
        used_percent=30.0,
        reset_at=utc_now + timedelta(days=3),
        window_seconds=604800,
    )


@pytest.fixture
def sample_result(
    utc_now: datetime,
    sample_window: UsageWindow,
    sample_weekly_window: UsageWindow,
) -> ProviderUsageResult:
    """Successful Claude result with both windows."""
    return ProviderUsageResult(
        provider=ProviderID.CLAUDE,
        observed_at=utc_now,
        primary_window=sample_window,
        secondary_window=sample_weekly_window,
        account_label="default_claude_max_5x",
    )


@pytest.fixture
def sample_gemini_result(utc_now: datetime) -> ProviderUsageResult:
    """Successful Gemini result with model windows."""
    window = UsageWindow(used_percent=40.0, reset_at=utc_now + timedelta(hours=10))
    return ProviderUsageResult(
        provider=ProviderID.GEMINI,
        observed_at=utc_now,
        primary_window=window,
        model_windows=(ModelUsageWindow(model_id="gemini-3-pro-preview", window=window),),
        account_label="Paid",
    )


@pytest.fixture
def sample_failure(utc_now: datetime) -> ProviderUsageResult:
    """Failed Codex result."""
    return ProviderUsageResult.failure(
        ProviderID.CODEX, utc_now, ErrorState.network_error("Failed to connect to server")
    )


@pytest.fixture
def sample_snapshot(
    utc_now: datetime,
    sample_result: ProviderUsageResult,
    sample_failure: ProviderUsageResult,
) -> UsageSnapshot:
    """Snapshot with one success and one failure."""
    return UsageSnapshot(
        results=(sample_result, sample_failure),
        last_updated=utc_now,
    )


class StubClient(ProviderClient):
    """Provider client that returns scripted results.

    Each entry in ``script`` is an ErrorState (failure), a float (success
    with that used percentage), or an Exception (raised, breaking the
    never-raise contract). The last entry repeats once the script runs out.
    An optional ``gate`` event holds every fetch until it is set.
    """

    def __init__(self, provider: ProviderID, *script, gate: asyncio.Event | None = None):
        self.metadata = ProviderMetadata(id=provider, description="stub", homepage="https://example.com")
        self.script = list(script) or [50.0]
        self.gate = gate
        self.calls: list[datetime] = []

    async def fetch_usage(self, now: datetime) -> ProviderUsageResult:
        self.calls.append(now)
        if self.gate is not None:
            await self.gate.wait()
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, ErrorState):
            return ProviderUsageResult.failure(self.provider_id, now, step)
        return ProviderUsageResult(
            provider=self.provider_id,
            observed_at=now,
            primary_window=UsageWindow(used_percent=step),
        )

    async def _fetch(self, now: datetime) -> ProviderUsageResult:
        raise NotImplementedError


@pytest.fixture
def stub_client():
    """Factory for scripted provider clients."""
    return StubClient


class FakeClock:
    """Callable clock that advances a fixed step on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture
def fake_clock(utc_now: datetime) -> FakeClock:
    return FakeClock(utc_now)


@pytest.fixture
def mock_httpx_client() -> httpx.AsyncClient:
    """Mock httpx.AsyncClient."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.is_closed = False
    client.aclose = AsyncMock()
    return client


def _make_response(
    status_code: int = 200,
    json_data: object = None,
    headers: dict | None = None,
    url: str = "https://example.com",
) -> httpx.Response:
    """Build a real httpx.Response for client tests."""
    request = httpx.Request("GET", url)
    if json_data is None:
        return httpx.Response(status_code, headers=headers, request=request)
    return httpx.Response(status_code, json=json_data, headers=headers, request=request)


@pytest.fixture
def http_response():
    """Factory for real httpx.Response objects."""
    return _make_response


@pytest.fixture
def patch_http_client(mock_httpx_client):
    """Patch get_http_client in a provider module to yield the mock client.

    Usage:
        patch_http_client(claude_module)
    """
    patches = []

    def _patch(module):
        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=mock_httpx_client)
        context.__aexit__ = AsyncMock(return_value=False)
        patcher = patch.object(module, "get_http_client", return_value=context)
        patcher.start()
        patches.append(patcher)
        return mock_httpx_client

    yield _patch
    for patcher in patches:
        patcher.stop()
