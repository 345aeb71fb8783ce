"""Tests for Claude (Anthropic) provider."""

from __future__ import annotations

import json
from datetime import datetime
from datetime import timezone

import httpx
import pytest

from aiusage.config.credentials import store_credential
from aiusage.config.paths import claude_credentials_path
from aiusage.models import ErrorKind
from aiusage.models import ProviderID
from aiusage.providers import claude as claude_module
from aiusage.providers.base import ProviderError
from aiusage.providers.claude import OAUTH_BETA
from aiusage.providers.claude import USAGE_URL
from aiusage.providers.claude import ClaudeClient
from aiusage.providers.claude import load_credentials
from aiusage.providers.claude import parse_usage_response

FAR_FUTURE_MS = 4102444800000  # 2100-01-01


def write_cli_credentials(oauth: dict) -> None:
    path = claude_credentials_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"claudeAiOauth": oauth}))


class TestClaudeCredentials:
    """Tests for load_credentials."""

    def test_reads_cli_oauth_file(self):
        write_cli_credentials(
            {
                "accessToken": "sk-ant-oat01-abc",
                "expiresAt": FAR_FUTURE_MS,
                "rateLimitTier": "default_claude_max_5x",
            }
        )

        credentials = load_credentials()

        assert credentials.access_token == "sk-ant-oat01-abc"
        assert credentials.expires_at == datetime(2100, 1, 1, tzinfo=timezone.utc)
        assert credentials.rate_limit_tier == "default_claude_max_5x"

    def test_falls_back_to_setup_token(self):
        store_credential("claude", "setup-token", credential_type="setup_token")

        credentials = load_credentials()

        assert credentials.access_token == "setup-token"
        assert credentials.expires_at is None
        assert credentials.rate_limit_tier == "Setup token"

    def test_blank_cli_token_uses_setup_token(self):
        write_cli_credentials({"accessToken": "  "})
        store_credential("claude", "setup-token", credential_type="setup_token")
        assert load_credentials().access_token == "setup-token"

    def test_no_credentials(self):
        with pytest.raises(ProviderError) as excinfo:
            load_credentials()
        assert excinfo.value.error.kind == ErrorKind.AUTH_NEEDED

    def test_corrupt_file(self):
        path = claude_credentials_path()
        path.parent.mkdir(parents=True)
        path.write_text("{not json")

        with pytest.raises(ProviderError) as excinfo:
            load_credentials()
        assert excinfo.value.error.kind == ErrorKind.PARSE_ERROR


class TestParseUsageResponse:
    """Tests for parse_usage_response."""

    def test_both_windows(self):
        five_hour, seven_day = parse_usage_response(
            {
                "five_hour": {"utilization": 0.45, "resets_at": "2030-01-01T10:00:00Z"},
                "seven_day": {"utilization": 0.75, "resets_at": "2030-01-07T10:00:00.123456789Z"},
            }
        )

        assert five_hour.used_percent == pytest.approx(45.0)
        assert five_hour.reset_at == datetime(2030, 1, 1, 10, tzinfo=timezone.utc)
        assert seven_day.used_percent == pytest.approx(75.0)
        assert seven_day.reset_at.microsecond == 123456

    def test_missing_windows(self):
        assert parse_usage_response({"five_hour": None}) == (None, None)

    def test_window_without_utilization(self):
        five_hour, _ = parse_usage_response({"five_hour": {"resets_at": None}})
        assert five_hour is None

    def test_not_an_object(self):
        with pytest.raises(ProviderError):
            parse_usage_response([])


class TestClaudeClient:
    """Tests for ClaudeClient.fetch_usage."""

    def test_metadata(self):
        client = ClaudeClient()
        assert client.provider_id == ProviderID.CLAUDE
        assert client.name == "Claude"
        assert ClaudeClient.metadata.dashboard_url == "https://claude.ai/settings/usage"

    @pytest.mark.asyncio
    async def test_success(self, utc_now, patch_http_client, http_response):
        write_cli_credentials(
            {"accessToken": "tok", "expiresAt": FAR_FUTURE_MS, "rateLimitTier": "pro"}
        )
        http = patch_http_client(claude_module)
        http.get.return_value = http_response(
            200,
            {
                "five_hour": {"utilization": 0.2, "resets_at": "2025-01-15T15:00:00Z"},
                "seven_day": {"utilization": 0.5, "resets_at": "2025-01-20T00:00:00Z"},
            },
        )

        result = await ClaudeClient().fetch_usage(utc_now)

        assert result.is_success
        assert result.provider == ProviderID.CLAUDE
        assert result.observed_at == utc_now
        assert result.primary_window.used_percent == pytest.approx(20.0)
        assert result.secondary_window.used_percent == pytest.approx(50.0)
        assert result.account_label == "pro"

        args, kwargs = http.get.call_args
        assert args[0] == USAGE_URL
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert kwargs["headers"]["anthropic-beta"] == OAUTH_BETA

    @pytest.mark.asyncio
    async def test_expired_token_skips_request(self, utc_now, patch_http_client):
        write_cli_credentials({"accessToken": "tok", "expiresAt": 1000})
        http = patch_http_client(claude_module)

        result = await ClaudeClient().fetch_usage(utc_now)

        assert result.error_state.kind == ErrorKind.TOKEN_EXPIRED
        http.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_credentials(self, utc_now):
        result = await ClaudeClient().fetch_usage(utc_now)
        assert result.error_state.kind == ErrorKind.AUTH_NEEDED
        assert result.observed_at == utc_now

    @pytest.mark.asyncio
    async def test_unauthorized(self, utc_now, patch_http_client, http_response):
        write_cli_credentials({"accessToken": "tok"})
        http = patch_http_client(claude_module)
        http.get.return_value = http_response(401, {"error": {"message": "invalid token"}})

        result = await ClaudeClient().fetch_usage(utc_now)

        assert result.error_state.kind == ErrorKind.TOKEN_EXPIRED

    @pytest.mark.asyncio
    async def test_server_error(self, utc_now, patch_http_client, http_response):
        write_cli_credentials({"accessToken": "tok"})
        http = patch_http_client(claude_module)
        http.get.return_value = http_response(500, {"error": "overloaded"})

        result = await ClaudeClient().fetch_usage(utc_now)

        assert result.error_state.kind == ErrorKind.ENDPOINT_ERROR
        assert result.error_state.message == "HTTP 500: overloaded"

    @pytest.mark.asyncio
    async def test_network_failure(self, utc_now, patch_http_client):
        write_cli_credentials({"accessToken": "tok"})
        http = patch_http_client(claude_module)
        http.get.side_effect = httpx.ConnectError("refused")

        result = await ClaudeClient().fetch_usage(utc_now)

        assert result.error_state.kind == ErrorKind.NETWORK_ERROR
