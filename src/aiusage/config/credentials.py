"""Credential file management for aiusage."""

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path

from aiusage.config.keyring import delete_from_keyring
from aiusage.config.keyring import get_from_keyring
from aiusage.config.keyring import store_in_keyring
from aiusage.config.paths import credentials_dir

logger = logging.getLogger(__name__)

# Environment variables checked for each API-key provider, in order
API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "zai": ("ZAI_API_KEY",),
    "cerebras": ("CEREBRAS_API_KEY",),
    "kimi": ("KIMI_API_KEY", "KIMI_CODE_API_KEY", "KIMI_KEY"),
    "minimax": ("MINIMAX_KEY",),
}

# Credential type stored by `aiusage key <provider> set`
STORED_CREDENTIAL_TYPES: dict[str, str] = {
    "claude": "setup_token",
    "zai": "apikey",
    "cerebras": "apikey",
    "kimi": "apikey",
    "minimax": "apikey",
}


def credential_path(provider_id: str, credential_type: str) -> Path:
    """Get the path for a provider's credential file."""
    return credentials_dir() / provider_id / f"{credential_type}.json"


def write_credential(path: Path, content: bytes) -> None:
    """Securely write credential to file with 0o600 permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file first, then rename for atomicity
    temp_path = path.with_suffix(".tmp")
    temp_path.write_bytes(content)
    temp_path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0o600
    temp_path.replace(path)


def read_credential(path: Path) -> bytes | None:
    """Read credential file if it exists and has secure permissions."""
    if not path.exists():
        return None

    if not check_credential_permissions(path):
        logger.warning("Ignoring %s: readable or writable by other users", path)
        return None

    return path.read_bytes()


def delete_credential(path: Path) -> bool:
    """Delete credential file.

    Returns:
        True if deleted, False if didn't exist
    """
    if not path.exists():
        return False

    path.unlink()
    return True


def check_credential_permissions(path: Path) -> bool:
    """Verify credential file has secure permissions (0o600 or stricter)."""
    if not path.exists():
        return True

    mode = path.stat().st_mode
    return not (mode & (stat.S_IRGRP | stat.S_IWGRP | stat.S_IROTH | stat.S_IWOTH))


def store_credential(provider_id: str, value: str, credential_type: str = "apikey") -> str:
    """Store a credential value, preferring the keyring when enabled.

    Returns:
        Where the credential was stored: 'keyring' or 'file'
    """
    value = value.strip()
    if store_in_keyring(provider_id, credential_type, value):
        return "keyring"

    content = json.dumps({"credential": value}).encode()
    write_credential(credential_path(provider_id, credential_type), content)
    return "file"


def load_stored_credential(provider_id: str, credential_type: str = "apikey") -> str | None:
    """Load a credential stored by aiusage (keyring first, then file)."""
    if value := get_from_keyring(provider_id, credential_type):
        return value.strip() or None

    content = read_credential(credential_path(provider_id, credential_type))
    if not content:
        return None

    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        logger.warning("Stored %s %s credential is not valid JSON", provider_id, credential_type)
        return None

    value = data.get("credential") if isinstance(data, dict) else None
    if not isinstance(value, str):
        return None
    return value.strip() or None


def delete_stored_credential(provider_id: str, credential_type: str = "apikey") -> bool:
    """Delete a stored credential from keyring and file storage.

    Returns:
        True if anything was deleted
    """
    deleted_keyring = delete_from_keyring(provider_id, credential_type)
    deleted_file = delete_credential(credential_path(provider_id, credential_type))
    return deleted_keyring or deleted_file


def env_credential(provider_id: str) -> str | None:
    """Return the first non-empty API key from the provider's env vars."""
    for name in API_KEY_ENV_VARS.get(provider_id, ()):
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return None


def find_api_key(provider_id: str) -> str | None:
    """Find an API key for a provider.

    Stored credentials take precedence over environment variables.
    """
    return load_stored_credential(provider_id, "apikey") or env_credential(provider_id)


def check_provider_credentials(provider_id: str) -> tuple[bool, str | None]:
    """Check if provider has a credential aiusage can see.

    Returns:
        (has_credentials, source) - source is 'aiusage', 'env', or None
    """
    credential_type = STORED_CREDENTIAL_TYPES.get(provider_id)
    if credential_type and load_stored_credential(provider_id, credential_type):
        return True, "aiusage"
    if env_credential(provider_id):
        return True, "env"
    return False, None


def get_all_credential_status() -> dict[str, dict]:
    """Get credential status for all providers that accept stored keys."""
    status = {}
    for provider_id in STORED_CREDENTIAL_TYPES:
        has_creds, source = check_provider_credentials(provider_id)
        status[provider_id] = {
            "has_credentials": has_creds,
            "source": source,
        }
    return status
