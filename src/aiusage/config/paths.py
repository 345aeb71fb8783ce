"""Platform-specific paths for aiusage configuration and credentials."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import user_config_dir

PACKAGE_NAME = "aiusage"


def _get_env_path(env_var: str, fallback: Path) -> Path:
    """Get path from environment variable or fallback."""
    if env_value := os.environ.get(env_var):
        return Path(env_value)
    return fallback


def config_dir() -> Path:
    """Get user config directory.

    Respects AIUSAGE_CONFIG_DIR environment variable.
    """
    base_dir = Path(user_config_dir(PACKAGE_NAME))
    return _get_env_path("AIUSAGE_CONFIG_DIR", base_dir)


def credentials_dir() -> Path:
    """Get credentials subdirectory."""
    return config_dir() / "credentials"


def config_file() -> Path:
    """Get main config.toml path."""
    return config_dir() / "config.toml"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    for directory in (config_dir(), credentials_dir()):
        directory.mkdir(parents=True, exist_ok=True)


def codex_home() -> Path:
    """Get the Codex CLI home directory.

    Respects CODEX_HOME environment variable.
    """
    home = os.environ.get("CODEX_HOME", "").strip()
    if home:
        return Path(home)
    return Path.home() / ".codex"


def claude_credentials_path() -> Path:
    """Get the Claude CLI OAuth credential file."""
    return Path.home() / ".claude" / ".credentials.json"


def gemini_settings_path() -> Path:
    """Get the Gemini CLI settings file."""
    return Path.home() / ".gemini" / "settings.json"


def gemini_oauth_path() -> Path:
    """Get the Gemini CLI OAuth credential file."""
    return Path.home() / ".gemini" / "oauth_creds.json"
