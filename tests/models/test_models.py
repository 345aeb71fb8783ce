"""Tests for aiusage.models data structures."""
from __future__ import annotations

from datetime import datetime
from datetime import timedelta
from datetime import timezone

import msgspec
import pytest

from aiusage.models import ErrorKind
from aiusage.models import ErrorState
from aiusage.models import ModelUsageWindow
from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult
from aiusage.models import UsageSnapshot
from aiusage.models import UsageWindow
from aiusage.models import clamp_percent
from aiusage.models import format_countdown
from aiusage.models import last_updated_text
from aiusage.models import reset_text
from aiusage.models import usage_color


class TestProviderID:
    """Tests for ProviderID enum."""

    def test_declaration_order(self):
        """Providers are listed in display order."""
        assert list(ProviderID) == [
            ProviderID.CLAUDE,
            ProviderID.CODEX,
            ProviderID.GEMINI,
            ProviderID.ZAI,
            ProviderID.CEREBRAS,
            ProviderID.KIMI,
            ProviderID.MINIMAX,
        ]

    @pytest.mark.parametrize(
        "provider,name",
        [
            (ProviderID.CLAUDE, "Claude"),
            (ProviderID.ZAI, "Z.AI"),
            (ProviderID.MINIMAX, "Minimax"),
        ],
    )
    def test_display_name(self, provider, name):
        assert provider.display_name == name

    def test_string_value(self):
        """ProviderID compares equal to its raw id."""
        assert ProviderID("codex") is ProviderID.CODEX
        assert ProviderID.CODEX == "codex"


class TestUsageWindow:
    """Tests for UsageWindow."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (-5.0, 0.0),
            (0.0, 0.0),
            (42.5, 42.5),
            (100.0, 100.0),
            (150.0, 100.0),
            (float("nan"), 0.0),
            (float("inf"), 100.0),
        ],
    )
    def test_used_percent_clamped(self, raw, expected):
        """used_percent is clamped into [0, 100] on construction."""
        assert UsageWindow(used_percent=raw).used_percent == expected

    def test_remaining_percent(self):
        assert UsageWindow(used_percent=65.0).remaining_percent == 35.0
        assert UsageWindow(used_percent=130.0).remaining_percent == 0.0

    def test_clamped_when_decoded(self):
        """Clamping also applies when decoding from JSON."""
        window = msgspec.json.decode(b'{"used_percent": 120}', type=UsageWindow)
        assert window.used_percent == 100.0

    def test_time_until_reset(self, utc_now):
        window = UsageWindow(used_percent=10.0, reset_at=utc_now + timedelta(hours=2))
        assert window.time_until_reset(utc_now) == timedelta(hours=2)

    def test_time_until_reset_past(self, utc_now):
        """A reset in the past never yields a negative delta."""
        window = UsageWindow(used_percent=10.0, reset_at=utc_now - timedelta(hours=2))
        assert window.time_until_reset(utc_now) == timedelta(0)

    def test_time_until_reset_unknown(self):
        assert UsageWindow(used_percent=10.0).time_until_reset() is None

    def test_is_frozen(self):
        window = UsageWindow(used_percent=10.0)
        with pytest.raises(AttributeError):
            window.used_percent = 20.0

    def test_clamp_percent_accepts_ints(self):
        assert clamp_percent(7) == 7.0


class TestErrorState:
    """Tests for ErrorState."""

    def test_factories(self):
        assert ErrorState.auth_needed().kind == ErrorKind.AUTH_NEEDED
        assert ErrorState.token_expired().kind == ErrorKind.TOKEN_EXPIRED
        assert ErrorState.endpoint_error("x") == ErrorState(ErrorKind.ENDPOINT_ERROR, "x")
        assert ErrorState.parse_error("x").kind == ErrorKind.PARSE_ERROR
        assert ErrorState.network_error("x").kind == ErrorKind.NETWORK_ERROR

    @pytest.mark.parametrize(
        "message",
        ["HTTP 401", "HTTP 403: forbidden", "Token was rejected", "Invalid API key"],
    )
    def test_auth_like_endpoint_error_shown_as_auth(self, message):
        """Endpoint errors that read like auth failures get the auth badge."""
        error = ErrorState.endpoint_error(message)
        assert error.kind == ErrorKind.ENDPOINT_ERROR
        assert error.badge_kind == ErrorKind.AUTH_NEEDED
        assert error.badge_text == "Auth needed"

    def test_plain_endpoint_error_badge(self):
        error = ErrorState.endpoint_error("HTTP 500")
        assert error.badge_kind == ErrorKind.ENDPOINT_ERROR
        assert error.badge_text == "API error"

    def test_markers_only_apply_to_endpoint_errors(self):
        """A parse error mentioning 401 keeps its own badge."""
        error = ErrorState.parse_error("field 401 missing")
        assert error.badge_kind == ErrorKind.PARSE_ERROR

    @pytest.mark.parametrize(
        "error,text",
        [
            (ErrorState.auth_needed(), "Add credentials to fetch usage"),
            (ErrorState.token_expired(), "Token expired, re-authenticate to fetch usage"),
            (ErrorState.network_error("Request timed out"), "Request timed out"),
            (ErrorState(ErrorKind.PARSE_ERROR), "Parse error"),
        ],
    )
    def test_detail_text(self, error, text):
        assert error.detail_text == text


class TestProviderUsageResult:
    """Tests for ProviderUsageResult."""

    def test_failure_factory(self, utc_now):
        result = ProviderUsageResult.failure(ProviderID.ZAI, utc_now, ErrorState.auth_needed())
        assert result.provider == ProviderID.ZAI
        assert result.observed_at == utc_now
        assert not result.is_success
        assert not result.has_usage
        assert result.is_stale is False

    def test_success(self, sample_result):
        assert sample_result.is_success
        assert sample_result.has_usage

    def test_model_windows_count_as_usage(self, utc_now):
        result = ProviderUsageResult(
            provider=ProviderID.GEMINI,
            observed_at=utc_now,
            model_windows=(ModelUsageWindow("gemini-3-flash", UsageWindow(used_percent=1.0)),),
        )
        assert result.has_usage

    def test_as_stale_keeps_data(self, sample_result):
        """as_stale() copies data and observed_at, adding the new error."""
        error = ErrorState.network_error("Request timed out")
        stale = sample_result.as_stale(error)

        assert stale.is_stale
        assert stale.error_state == error
        assert stale.primary_window == sample_result.primary_window
        assert stale.secondary_window == sample_result.secondary_window
        assert stale.account_label == sample_result.account_label
        assert stale.observed_at == sample_result.observed_at
        assert sample_result.is_stale is False


class TestUsageSnapshot:
    """Tests for UsageSnapshot."""

    def test_empty(self):
        snapshot = UsageSnapshot.empty()
        assert snapshot.results == ()
        assert snapshot.last_updated is None
        assert snapshot.is_refreshing is False
        assert snapshot.minimum_remaining_percent is None
        assert not snapshot.has_errors

    def test_minimum_remaining_percent(self, utc_now):
        """Lowest primary-window remaining across providers."""
        snapshot = UsageSnapshot(
            results=(
                ProviderUsageResult(
                    provider=ProviderID.CLAUDE,
                    observed_at=utc_now,
                    primary_window=UsageWindow(used_percent=58.0),
                    secondary_window=UsageWindow(used_percent=99.0),
                ),
                ProviderUsageResult(
                    provider=ProviderID.CODEX,
                    observed_at=utc_now,
                    primary_window=UsageWindow(used_percent=20.0),
                ),
                ProviderUsageResult.failure(ProviderID.ZAI, utc_now, ErrorState.auth_needed()),
            )
        )
        assert snapshot.minimum_remaining_percent == 42.0

    def test_minimum_includes_stale_results(self, sample_result):
        """Stale data still counts toward the minimum."""
        stale = sample_result.as_stale(ErrorState.network_error("down"))
        snapshot = UsageSnapshot(results=(stale,))
        assert snapshot.minimum_remaining_percent == 35.0
        assert snapshot.has_errors

    def test_minimum_ignores_secondary_only(self, utc_now):
        snapshot = UsageSnapshot(
            results=(
                ProviderUsageResult(
                    provider=ProviderID.CLAUDE,
                    observed_at=utc_now,
                    secondary_window=UsageWindow(used_percent=50.0),
                ),
            )
        )
        assert snapshot.minimum_remaining_percent is None

    def test_result_for(self, sample_snapshot):
        assert sample_snapshot.result_for(ProviderID.CODEX).error_state is not None
        assert sample_snapshot.result_for(ProviderID.KIMI) is None


class TestFormatting:
    """Tests for display text helpers."""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (None, ""),
            (timedelta(0), "now"),
            (timedelta(minutes=45), "45m"),
            (timedelta(hours=2, minutes=15), "2h 15m"),
            (timedelta(days=3, hours=4), "3d 4h"),
        ],
    )
    def test_format_countdown(self, delta, expected):
        assert format_countdown(delta) == expected

    def test_reset_text(self, utc_now):
        assert reset_text(None, utc_now) == "Reset unknown"
        assert reset_text(utc_now - timedelta(minutes=1), utc_now) == "Resets soon"
        assert reset_text(utc_now + timedelta(hours=1, minutes=5), utc_now) == "Resets in 1h 5m"

    def test_last_updated_text(self, utc_now):
        assert last_updated_text(None, utc_now) == "Never"
        assert last_updated_text(utc_now - timedelta(seconds=20), utc_now) == "just now"
        assert last_updated_text(utc_now - timedelta(minutes=5), utc_now) == "5m ago"

    def test_last_updated_default_now(self):
        updated = datetime.now(timezone.utc)
        assert last_updated_text(updated) == "just now"

    @pytest.mark.parametrize(
        "used,color", [(0, "green"), (49.9, "green"), (50, "yellow"), (79, "yellow"), (80, "red")]
    )
    def test_usage_color(self, used, color):
        assert usage_color(used) == color
