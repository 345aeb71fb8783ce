"""Polling and aggregation engine.

The usage store owns the current snapshot, the last-known-good cache and the
subscriber registry. Every mutation happens on the event loop that runs the
store, in synchronous code between awaits, so merges never interleave.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from collections.abc import Sequence
from datetime import datetime
from datetime import timezone

import msgspec

from aiusage.core.cache import ResultCache
from aiusage.core.hub import Subscription
from aiusage.core.hub import SubscriptionHub
from aiusage.errors.classify import classify_exception
from aiusage.models import ProviderID
from aiusage.models import ProviderUsageResult
from aiusage.models import UsageSnapshot
from aiusage.providers.base import ProviderClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class UsageStore:
    """Polls every provider client and publishes merged snapshots.

    A refresh cycle publishes ``is_refreshing=True``, fans out one fetch per
    client, merges each result as it completes and publishes after every
    merge, then publishes a final snapshot with ``last_updated`` set to the
    cycle start.

    A failed fetch for a provider that succeeded before keeps the cached
    data, marked stale and carrying the new error. A failed fetch with no
    cached success is shown as-is.
    """

    def __init__(
        self,
        clients: Sequence[ProviderClient],
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        provider_ids = [client.provider_id for client in clients]
        duplicates = sorted({pid for pid in provider_ids if provider_ids.count(pid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate provider clients: {', '.join(duplicates)}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self._clients = tuple(clients)
        self._order = {pid: index for index, pid in enumerate(provider_ids)}
        self._poll_interval = poll_interval
        self._clock = clock

        self._cache = ResultCache()
        self._hub = SubscriptionHub(UsageSnapshot.empty())
        self._results: dict[ProviderID, ProviderUsageResult] = {}
        self._merged_at: dict[ProviderID, datetime] = {}  # Cycle start of each merged result
        self._last_updated: datetime | None = None
        self._active_cycles = 0

        self._poll_task: asyncio.Task | None = None
        self._cycle_tasks: set[asyncio.Task] = set()

    @property
    def snapshot(self) -> UsageSnapshot:
        """The most recently published snapshot."""
        return self._hub.current

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    @property
    def provider_ids(self) -> tuple[ProviderID, ...]:
        return tuple(self._order)

    @property
    def is_running(self) -> bool:
        """Check if the periodic poll loop is active."""
        return self._poll_task is not None and not self._poll_task.done()

    def cached_result(self, provider: ProviderID) -> ProviderUsageResult | None:
        """Return the last successful result for a provider, if any."""
        return self._cache.get(provider)

    def subscribe(self) -> Subscription:
        """Open a live channel of snapshots, starting with the current one."""
        return self._hub.subscribe()

    def start(self) -> None:
        """Begin polling: one cycle now, then one per interval.

        Calling start() while already running does nothing. Must be called
        from a running event loop.
        """
        if self.is_running:
            return
        logger.debug(
            "Starting poll loop for %d providers every %.0fs",
            len(self._clients),
            self._poll_interval,
        )
        self._poll_task = asyncio.create_task(self._poll_loop(), name="aiusage-poll")

    def stop(self) -> None:
        """Stop the periodic timer.

        Fetches already in flight run to completion and their results are
        still merged and published.
        """
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        self._poll_task = None
        logger.debug("Poll loop stopped")

    async def aclose(self) -> None:
        """Stop polling and wait for the poll loop to exit."""
        task = self._poll_task
        self.stop()
        if task is not None:
            await asyncio.wait({task})

    async def wait_idle(self) -> None:
        """Wait until no refresh cycle is in flight."""
        while self._cycle_tasks:
            await asyncio.wait(set(self._cycle_tasks))

    async def refresh_now(self) -> None:
        """Run one refresh cycle immediately and wait for it to finish.

        May overlap with a cycle started by the poll loop. Cancelling the
        caller does not cancel the cycle.
        """
        await self._run_cycle()

    async def _poll_loop(self) -> None:
        while True:
            await self._run_cycle()
            await asyncio.sleep(self._poll_interval)

    async def _run_cycle(self) -> None:
        task = asyncio.create_task(self._refresh(), name="aiusage-refresh")
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        await asyncio.shield(task)

    async def _refresh(self) -> None:
        self._active_cycles += 1
        self._publish()
        now = self._clock()
        logger.debug("Refresh cycle started at %s", now.isoformat())

        try:
            fetches = [
                asyncio.create_task(
                    self._fetch(client, now), name=f"aiusage-fetch-{client.provider_id}"
                )
                for client in self._clients
            ]
            for next_done in asyncio.as_completed(fetches):
                result = await next_done
                self._merge(result, now)
                self._publish()
        finally:
            self._active_cycles -= 1

        if self._last_updated is None or now > self._last_updated:
            self._last_updated = now
        self._publish()
        logger.debug("Refresh cycle from %s finished", now.isoformat())

    async def _fetch(self, client: ProviderClient, now: datetime) -> ProviderUsageResult:
        provider = client.provider_id
        try:
            result = await client.fetch_usage(now)
        except Exception as e:
            logger.exception("Provider client %s raised instead of returning a result", provider)
            return ProviderUsageResult.failure(provider, now, classify_exception(e))

        if result.provider != provider:
            logger.error(
                "Provider client %s returned a result for %s", provider, result.provider
            )
            result = msgspec.structs.replace(result, provider=provider)
        if result.is_stale:
            result = msgspec.structs.replace(result, is_stale=False)
        return result

    def _merge(self, result: ProviderUsageResult, cycle_start: datetime) -> None:
        provider = result.provider
        merged_at = self._merged_at.get(provider)
        if merged_at is not None and cycle_start < merged_at:
            logger.debug(
                "Dropping %s result from cycle %s, already have one from %s",
                provider,
                cycle_start.isoformat(),
                merged_at.isoformat(),
            )
            return
        self._merged_at[provider] = cycle_start

        if result.error_state is None:
            self._cache.put(provider, result)
            self._results[provider] = result
            logger.debug("%s fetched successfully", provider)
            return

        cached = self._cache.get(provider)
        if cached is not None:
            self._results[provider] = cached.as_stale(result.error_state)
            logger.info(
                "%s fetch failed (%s), keeping data from %s",
                provider,
                result.error_state.badge_text,
                cached.observed_at.isoformat(),
            )
        else:
            self._results[provider] = result
            logger.info("%s fetch failed: %s", provider, result.error_state.detail_text)

    def _publish(self) -> None:
        results = sorted(self._results.values(), key=lambda r: self._order[r.provider])
        self._hub.publish(
            UsageSnapshot(
                results=tuple(results),
                last_updated=self._last_updated,
                is_refreshing=self._active_cycles > 0,
            )
        )
