"""Provider registry for aiusage."""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiusage.models import ProviderID

if TYPE_CHECKING:
    from aiusage.config.settings import Config

# Provider registry, in registration order
_PROVIDERS: dict[ProviderID, type] = {}


def register_provider(cls: type) -> type:
    """Decorator to register a provider client class.

    Usage:
        @register_provider
        class ClaudeClient(ProviderClient):
            ...
    """
    if not hasattr(cls, "metadata"):
        raise ValueError(f"Provider {cls.__name__} must define metadata ClassVar")

    provider_id = cls.metadata.id
    _PROVIDERS[provider_id] = cls
    return cls


def get_provider(provider_id: str) -> type | None:
    """Get a provider client class by ID.

    Returns:
        Provider client class or None if not found
    """
    try:
        return _PROVIDERS.get(ProviderID(provider_id))
    except ValueError:
        return None


def get_all_providers() -> dict[ProviderID, type]:
    """Get all registered providers.

    Returns:
        Dict of provider_id to provider client class
    """
    return dict(_PROVIDERS)


def list_provider_ids() -> list[ProviderID]:
    """List all registered provider IDs in display order."""
    return sorted(_PROVIDERS, key=list(ProviderID).index)


def create_provider(provider_id: str):
    """Create an instance of a provider client.

    Args:
        provider_id: Provider identifier

    Returns:
        Provider client instance

    Raises:
        ValueError: If provider not found
    """
    provider_cls = get_provider(provider_id)
    if provider_cls is None:
        raise ValueError(f"Unknown provider: {provider_id}")
    return provider_cls()


def create_enabled_clients(config: Config | None = None) -> list:
    """Create one client per enabled provider, in display order."""
    if config is None:
        from aiusage.config.settings import get_config

        config = get_config()
    return [
        create_provider(provider_id)
        for provider_id in list_provider_ids()
        if config.is_provider_enabled(provider_id)
    ]


# Import and register providers
from aiusage.providers.base import ProviderClient, ProviderError, ProviderMetadata  # noqa: E402
from aiusage.providers.cerebras import CerebrasClient  # noqa: E402
from aiusage.providers.claude import ClaudeClient  # noqa: E402
from aiusage.providers.codex import CodexClient  # noqa: E402
from aiusage.providers.gemini import GeminiClient  # noqa: E402
from aiusage.providers.kimi import KimiClient  # noqa: E402
from aiusage.providers.minimax import MinimaxClient  # noqa: E402
from aiusage.providers.zai import ZaiClient  # noqa: E402

# Register providers
register_provider(ClaudeClient)
register_provider(CodexClient)
register_provider(GeminiClient)
register_provider(ZaiClient)
register_provider(CerebrasClient)
register_provider(KimiClient)
register_provider(MinimaxClient)

__all__ = [
    "ProviderClient",
    "ProviderError",
    "ProviderMetadata",
    "register_provider",
    "get_provider",
    "get_all_providers",
    "list_provider_ids",
    "create_provider",
    "create_enabled_clients",
]
