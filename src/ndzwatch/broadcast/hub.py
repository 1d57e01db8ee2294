"""In-process subscription hub.

Subscribers get their own bounded queue. Publishing never waits: when a
subscriber falls behind, its oldest pending snapshot is discarded, so a
slow consumer only ever misses intermediate states, never the latest one.
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import Any

from ndzwatch.exceptions import NdzSubscriptionClosed
from ndzwatch.state.store import StateSnapshot

_logger = logging.getLogger(__name__)

# Queued on close so a consumer blocked in get() wakes up.
_CLOSED: Any = object()


class Subscription:
    """A live feed of snapshots published after the subscription was made."""

    def __init__(self, hub: StateHub, maxsize: int) -> None:
        self._hub = hub
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, snapshot: StateSnapshot) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
        self._queue.put_nowait(snapshot)

    async def get(self) -> StateSnapshot:
        """Wait for the next snapshot.

        Raises :class:`NdzSubscriptionClosed` once the subscription is
        closed and every pending snapshot has been consumed.
        """
        if self._closed and self._queue.empty():
            raise NdzSubscriptionClosed("subscription closed")
        item = await self._queue.get()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise NdzSubscriptionClosed("subscription closed")
        return item

    def get_nowait(self) -> StateSnapshot | None:
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._hub._detach(self)
        # A waiting consumer implies an empty queue; a full one drains first.
        if not self._queue.full():
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> StateSnapshot:
        try:
            return await self.get()
        except NdzSubscriptionClosed:
            raise StopAsyncIteration from None

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class StateHub:
    """Fan a published snapshot out to every current subscriber."""

    def __init__(self, *, queue_size: int = 1) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self._queue_size = queue_size
        self._subscribers: list[Subscription] = []
        self._latest: StateSnapshot | None = None
        self.published = 0

    @property
    def latest(self) -> StateSnapshot | None:
        """The most recently published snapshot, if any."""
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, *, queue_size: int | None = None) -> Subscription:
        """Attach a new subscriber; earlier snapshots are not replayed."""
        subscription = Subscription(self, queue_size or self._queue_size)
        self._subscribers.append(subscription)
        _logger.debug("Subscriber attached (total=%d)", len(self._subscribers))
        return subscription

    def _detach(self, subscription: Subscription) -> None:
        try:
            self._subscribers.remove(subscription)
        except ValueError:
            return
        _logger.debug("Subscriber detached (total=%d)", len(self._subscribers))

    async def publish(self, snapshot: StateSnapshot) -> None:
        self._latest = snapshot
        self.published += 1
        for subscription in list(self._subscribers):
            subscription._offer(snapshot)

    def close(self) -> None:
        for subscription in list(self._subscribers):
            subscription.close()

    def stats(self) -> dict[str, Any]:
        return {
            "published": self.published,
            "subscribers": len(self._subscribers),
            "dropped": sum(subscription.dropped for subscription in self._subscribers),
        }
