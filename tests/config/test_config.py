"""Tests for configuration loading, saving and paths."""

from __future__ import annotations

from pathlib import Path

import msgspec
import pytest

from aiusage.config.paths import claude_credentials_path
from aiusage.config.paths import codex_home
from aiusage.config.paths import config_dir
from aiusage.config.paths import config_file
from aiusage.config.paths import credentials_dir
from aiusage.config.paths import ensure_directories
from aiusage.config.settings import Config
from aiusage.config.settings import PollConfig
from aiusage.config.settings import ProviderConfig
from aiusage.config.settings import get_config
from aiusage.config.settings import load_config
from aiusage.config.settings import reload_config
from aiusage.config.settings import save_config


class TestPaths:
    """Tests for config path helpers."""

    def test_config_dir_from_env(self, tmp_path):
        assert config_dir() == tmp_path / "config"
        assert config_file() == tmp_path / "config" / "config.toml"
        assert credentials_dir() == tmp_path / "config" / "credentials"

    def test_ensure_directories(self, tmp_path):
        ensure_directories()
        assert (tmp_path / "config" / "credentials").is_dir()

    def test_codex_home_default(self, isolated_environment):
        assert codex_home() == isolated_environment / ".codex"

    def test_codex_home_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CODEX_HOME", str(tmp_path / "codex"))
        assert codex_home() == tmp_path / "codex"

    def test_claude_credentials_path(self, isolated_environment):
        assert claude_credentials_path() == isolated_environment / ".claude" / ".credentials.json"


class TestConfig:
    """Tests for the Config struct."""

    def test_defaults(self):
        config = Config()
        assert config.enabled_providers == []
        assert config.poll.interval_seconds == 60.0
        assert config.fetch.timeout == 30.0
        assert config.display.show_remaining is True
        assert config.credentials.use_keyring is False

    def test_all_providers_enabled_by_default(self):
        assert Config().is_provider_enabled("claude")

    def test_enabled_providers_list(self):
        config = Config(enabled_providers=["codex"])
        assert config.is_provider_enabled("codex")
        assert not config.is_provider_enabled("claude")

    def test_provider_disabled_explicitly(self):
        config = Config(
            enabled_providers=["claude"],
            providers={"claude": ProviderConfig(enabled=False)},
        )
        assert not config.is_provider_enabled("claude")

    def test_rejects_non_positive_interval(self):
        with pytest.raises(msgspec.ValidationError):
            msgspec.convert({"poll": {"interval_seconds": 0}}, type=Config)


class TestLoadConfig:
    """Tests for load_config and save_config."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / "missing.toml") == Config()

    def test_loads_toml(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(
            'enabled_providers = ["claude", "gemini"]\n'
            "[poll]\ninterval_seconds = 120\n"
            "[providers.gemini]\nenabled = false\n"
        )

        config = load_config(path)

        assert config.enabled_providers == ["claude", "gemini"]
        assert config.poll.interval_seconds == 120.0
        assert not config.is_provider_enabled("gemini")

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "config.toml"
        config = Config(poll=PollConfig(interval_seconds=90.0))

        save_config(config, path)

        assert load_config(path) == config
        assert "interval_seconds = 90.0" in path.read_text()

    def test_save_updates_singleton(self, tmp_path):
        config = Config(enabled_providers=["zai"])
        save_config(config, tmp_path / "config.toml")
        assert get_config() is config

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reload_config_reads_disk(self):
        first = get_config()
        config_file().parent.mkdir(parents=True, exist_ok=True)
        config_file().write_text("[fetch]\ntimeout = 5\n")

        reloaded = reload_config()

        assert reloaded is not first
        assert reloaded.fetch.timeout == 5.0


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_enabled_providers(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AIUSAGE_ENABLED_PROVIDERS", "claude, codex,,")
        assert load_config(tmp_path / "none.toml").enabled_providers == ["claude", "codex"]

    def test_poll_interval(self, monkeypatch, tmp_path):
        monkeypatch.setenv("AIUSAGE_POLL_INTERVAL", "15")
        assert load_config(tmp_path / "none.toml").poll.interval_seconds == 15.0

    @pytest.mark.parametrize("value", ["abc", "0", "-3"])
    def test_invalid_poll_interval_ignored(self, monkeypatch, tmp_path, value):
        monkeypatch.setenv("AIUSAGE_POLL_INTERVAL", value)
        assert load_config(tmp_path / "none.toml").poll.interval_seconds == 60.0
