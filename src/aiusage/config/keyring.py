"""Optional system keyring integration for secure credential storage."""

import logging
from functools import lru_cache

import keyring
from keyring.backends.fail import Keyring as FailKeyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

SERVICE_NAME = "aiusage"


def _check_keyring_available() -> bool:
    """Check if a usable keyring backend is configured."""
    try:
        backend = keyring.get_keyring()
    except KeyringError:
        return False
    # keyring falls back to the fail backend when nothing else works
    return not isinstance(backend, FailKeyring)


@lru_cache(maxsize=1)
def use_keyring() -> bool:
    """Check if keyring should be used.

    Returns True only if:
    1. It's enabled in config
    2. A keyring backend is available
    """
    from .settings import get_config

    config = get_config()
    if not config.credentials.use_keyring:
        return False

    return _check_keyring_available()


def keyring_key(provider_id: str, credential_type: str) -> str:
    """Generate a keyring key for storage."""
    return f"{SERVICE_NAME}:{provider_id}:{credential_type}"


def store_in_keyring(provider_id: str, credential_type: str, value: str) -> bool:
    """Store credential in system keyring.

    Returns:
        True if stored successfully, False otherwise
    """
    if not use_keyring():
        return False

    try:
        keyring.set_password(SERVICE_NAME, keyring_key(provider_id, credential_type), value)
    except KeyringError as e:
        logger.warning("Could not store %s credential in keyring: %s", provider_id, e)
        return False
    return True


def get_from_keyring(provider_id: str, credential_type: str) -> str | None:
    """Retrieve credential from system keyring.

    Returns:
        Credential value if found, None otherwise
    """
    if not use_keyring():
        return None

    try:
        return keyring.get_password(SERVICE_NAME, keyring_key(provider_id, credential_type))
    except KeyringError as e:
        logger.debug("Keyring lookup failed for %s: %s", provider_id, e)
        return None


def delete_from_keyring(provider_id: str, credential_type: str) -> bool:
    """Delete credential from system keyring.

    Returns:
        True if deleted successfully, False otherwise
    """
    if not use_keyring():
        return False

    try:
        keyring.delete_password(SERVICE_NAME, keyring_key(provider_id, credential_type))
    except KeyringError:
        return False
    return True
