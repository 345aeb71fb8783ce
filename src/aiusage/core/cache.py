"""Last-known-good result cache for the usage store."""

from __future__ import annotations

from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult


class ResultCache:
    """In-memory store of the last successful result per provider.

    Lives for the lifetime of the process and is never persisted. Only the
    usage store reads or writes it, from its own event loop.
    """

    def __init__(self) -> None:
        self._entries: dict[ProviderID, ProviderUsageResult] = {}

    def get(self, provider: ProviderID) -> ProviderUsageResult | None:
        """Return the last successful result for a provider, if any."""
        return self._entries.get(provider)

    def put(self, provider: ProviderID, result: ProviderUsageResult) -> None:
        """Store a successful result, replacing any previous entry."""
        if result.error_state is not None:
            raise ValueError(f"Only successful results are cached, got error for {provider}")
        self._entries[provider] = result

    def clear(self) -> None:
        """Forget every cached result."""
        self._entries.clear()

    def __contains__(self, provider: object) -> bool:
        return provider in self._entries

    def __len__(self) -> int:
        return len(self._entries)
