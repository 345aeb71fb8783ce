"""View-model that keeps the latest snapshot for a live display."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Callable

from aiusage.core.hub import Subscription
from aiusage.core.store import UsageStore
from aiusage.models import UsageSnapshot

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[UsageSnapshot], None]


def format_title(minimum_remaining: float | None) -> str:
    """Format the compact status title, e.g. "AI 42%" or "AI --"."""
    if minimum_remaining is None:
        return "AI --"
    # Round half up
    return f"AI {math.floor(minimum_remaining + 0.5)}%"


class UsageMonitor:
    """Subscribes to a usage store and tracks its latest snapshot.

    Usage:
        async with UsageMonitor(store) as monitor:
            monitor.add_listener(render)
            ...
    """

    def __init__(self, store: UsageStore):
        self._store = store
        self._snapshot = store.snapshot
        self._listeners: list[SnapshotListener] = []
        self._subscription: Subscription | None = None
        self._listen_task: asyncio.Task | None = None

    @property
    def snapshot(self) -> UsageSnapshot:
        return self._snapshot

    @property
    def title(self) -> str:
        return format_title(self._snapshot.minimum_remaining_percent)

    @property
    def has_errors(self) -> bool:
        return self._snapshot.has_errors

    def add_listener(self, listener: SnapshotListener) -> None:
        """Call listener with every snapshot received from now on."""
        self._listeners.append(listener)

    def start(self) -> None:
        """Start the store's poll loop and begin listening for snapshots."""
        if self._listen_task is not None:
            return
        self._store.start()
        self._subscription = self._store.subscribe()
        self._listen_task = asyncio.create_task(self._listen(self._subscription))

    async def refresh_now(self) -> None:
        """Ask the store for an immediate refresh cycle."""
        await self._store.refresh_now()

    async def aclose(self) -> None:
        """Stop listening and stop the store's poll loop."""
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        if self._listen_task is not None:
            await asyncio.wait({self._listen_task})
            self._listen_task = None
        await self._store.aclose()

    async def __aenter__(self) -> UsageMonitor:
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _listen(self, subscription: Subscription) -> None:
        async for snapshot in subscription:
            self._snapshot = snapshot
            for listener in self._listeners:
                try:
                    listener(snapshot)
                except Exception:
                    logger.exception("Snapshot listener %r failed", listener)
