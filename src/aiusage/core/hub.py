"""Fan-out of snapshot updates to any number of live subscribers."""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID
from uuid import uuid4

from aiusage.models import UsageSnapshot

logger = logging.getLogger(__name__)

# Queued after the last value to wake a subscriber blocked on close
_CLOSED = object()


class Subscription:
    """A live channel of snapshots for one subscriber.

    The first value is the snapshot that was current when the subscription
    was created; every later publish follows in order. Iterate with
    ``async for`` and call ``close()`` (or use ``async with``) to stop.
    """

    def __init__(self, hub: SubscriptionHub, subscription_id: UUID, queue: asyncio.Queue) -> None:
        self._hub = hub
        self._id = subscription_id
        self._queue = queue
        self._closed = False

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Return how many values are buffered and not yet consumed."""
        return self._queue.qsize()

    def get_nowait(self) -> UsageSnapshot | None:
        """Return the next buffered value without waiting, or None."""
        if self._closed or self._queue.empty():
            return None
        item = self._queue.get_nowait()
        if item is _CLOSED:
            self._closed = True
            return None
        return item

    async def get(self) -> UsageSnapshot:
        """Wait for the next value.

        Raises:
            StopAsyncIteration: If the subscription has been closed
        """
        if self._closed:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self._hub.unsubscribe(self._id)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> UsageSnapshot:
        return await self.get()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class SubscriptionHub:
    """Registry of subscriber queues keyed by subscription id.

    Publishing never blocks: each subscriber has an unbounded queue, so a
    slow consumer only grows its own backlog.
    """

    def __init__(self, initial: UsageSnapshot) -> None:
        self._current = initial
        self._queues: dict[UUID, asyncio.Queue] = {}

    @property
    def current(self) -> UsageSnapshot:
        """The most recently published snapshot."""
        return self._current

    def subscribe(self) -> Subscription:
        """Create a new subscription, primed with the current snapshot."""
        subscription_id = uuid4()
        queue: asyncio.Queue = asyncio.Queue()
        queue.put_nowait(self._current)
        self._queues[subscription_id] = queue
        logger.debug("Subscriber %s registered (%d live)", subscription_id, len(self._queues))
        return Subscription(self, subscription_id, queue)

    def unsubscribe(self, subscription_id: UUID) -> bool:
        """Remove a subscriber from the registry.

        Returns:
            True if the subscriber was registered
        """
        queue = self._queues.pop(subscription_id, None)
        if queue is None:
            return False
        queue.put_nowait(_CLOSED)
        logger.debug("Subscriber %s removed (%d live)", subscription_id, len(self._queues))
        return True

    def publish(self, snapshot: UsageSnapshot) -> None:
        """Make a snapshot current and push it to every live subscriber."""
        self._current = snapshot
        for queue in self._queues.values():
            queue.put_nowait(snapshot)

    def __len__(self) -> int:
        return len(self._queues)
