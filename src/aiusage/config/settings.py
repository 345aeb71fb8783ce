"""Configuration structures and loading for aiusage."""

import logging
import os
import tomllib
from pathlib import Path
from typing import Annotated

import msgspec

logger = logging.getLogger(__name__)

# Default values
DEFAULT_POLL_INTERVAL = 60.0
DEFAULT_TIMEOUT = 30.0

PositiveFloat = Annotated[float, msgspec.Meta(gt=0)]


# Polling configuration
class PollConfig(msgspec.Struct, omit_defaults=True):
    """Background refresh settings."""

    interval_seconds: PositiveFloat = DEFAULT_POLL_INTERVAL


# Fetch configuration
class FetchConfig(msgspec.Struct, omit_defaults=True):
    """Per-request settings for provider clients."""

    timeout: PositiveFloat = DEFAULT_TIMEOUT


# Display configuration
class DisplayConfig(msgspec.Struct, omit_defaults=True):
    """Display settings."""

    show_remaining: bool = True


# Credentials configuration
class CredentialsConfig(msgspec.Struct, omit_defaults=True):
    """Credential management settings."""

    use_keyring: bool = False


# Per-provider configuration
class ProviderConfig(msgspec.Struct, omit_defaults=True):
    """Configuration for a specific provider."""

    enabled: bool = True


# Main configuration
class Config(msgspec.Struct, omit_defaults=True):
    """Main configuration structure."""

    enabled_providers: list[str] = []
    poll: PollConfig = msgspec.field(default_factory=PollConfig)
    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    display: DisplayConfig = msgspec.field(default_factory=DisplayConfig)
    credentials: CredentialsConfig = msgspec.field(default_factory=CredentialsConfig)
    providers: dict[str, ProviderConfig] = msgspec.field(default_factory=dict)

    def get_provider_config(self, provider_id: str) -> ProviderConfig:
        """Get config for a provider, with defaults."""
        return self.providers.get(provider_id, ProviderConfig())

    def is_provider_enabled(self, provider_id: str) -> bool:
        """Check if a provider is enabled.

        A provider is enabled if:
        1. It's not explicitly disabled in providers config
        2. It's either in enabled_providers list OR enabled_providers is empty (all enabled)
        """
        provider_cfg = self.get_provider_config(provider_id)
        if not provider_cfg.enabled:
            return False
        if not self.enabled_providers:
            return True
        return provider_id in self.enabled_providers


def _load_from_toml(path: Path) -> dict:
    """Load configuration from TOML file."""
    if not path.exists():
        return {}

    with path.open("rb") as f:
        return tomllib.load(f)


def _save_to_toml(data: dict, path: Path) -> None:
    """Save configuration to TOML file."""
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)


def convert_config(data: dict) -> Config:
    """Convert raw dict to Config struct."""
    return msgspec.convert(data, type=Config)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config.

    AIUSAGE_ENABLED_PROVIDERS: Comma-separated list of providers
    AIUSAGE_POLL_INTERVAL: Poll interval in seconds
    """
    if "AIUSAGE_ENABLED_PROVIDERS" in os.environ:
        providers_str = os.environ["AIUSAGE_ENABLED_PROVIDERS"]
        enabled = [p.strip() for p in providers_str.split(",") if p.strip()]
        config = msgspec.structs.replace(config, enabled_providers=enabled)

    if interval := os.environ.get("AIUSAGE_POLL_INTERVAL"):
        try:
            seconds = float(interval)
        except ValueError:
            logger.warning("Ignoring invalid AIUSAGE_POLL_INTERVAL=%r", interval)
        else:
            if seconds > 0:
                poll = msgspec.structs.replace(config.poll, interval_seconds=seconds)
                config = msgspec.structs.replace(config, poll=poll)
            else:
                logger.warning("Ignoring non-positive AIUSAGE_POLL_INTERVAL=%r", interval)

    return config


# Config state storage
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (singleton)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    global _config
    _config = load_config()
    return _config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file with defaults."""
    from .paths import config_file

    config_path = path or config_file()

    raw_data = _load_from_toml(config_path)
    if not raw_data:
        config = Config()
    else:
        config = convert_config(raw_data)

    return _apply_env_overrides(config)


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file."""
    from .paths import config_file

    config_path = path or config_file()

    # omit_defaults keeps the file limited to what the user changed
    data = msgspec.to_builtins(config)
    _save_to_toml(data, config_path)

    global _config
    _config = config
