"""In-memory broadcast hub fanning file change events out to subscribers."""

import asyncio
import uuid
from types import TracebackType
from typing import Final

import structlog

from kitbash.events.types import FileChangeEvent

logger = structlog.get_logger()

_CLOSED: Final = object()


class SubscriptionClosed(Exception):
    """Raised when receiving from a subscription whose hub has shut down."""


class SubscriptionLagged(Exception):
    """Raised once when a subscriber fell behind and events were dropped."""

    def __init__(self, missed: int) -> None:
        """Initialize lag error.

        Args:
            missed: Number of events dropped since the last receive.
        """
        super().__init__(f"Subscriber lagged behind by {missed} events")
        self.missed = missed


class Subscription:
    """Receive-only handle on a BroadcastHub.

    Receives every event published after its creation. Iterating with
    ``async for`` ends when the hub shuts down. Closing the subscription
    removes it from the hub.

    Attributes:
        id: Unique subscriber identifier.
        missed: Events dropped and not yet reported through a lag error.
    """

    def __init__(self, hub: "BroadcastHub", queue_size: int) -> None:
        self.id = str(uuid.uuid4())
        self.missed = 0
        self._hub = hub
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def pending(self) -> int:
        """Number of buffered events waiting to be received."""
        return self._queue.qsize()

    def _push(self, item: object) -> bool:
        """Buffer an item, dropping the oldest one when full.

        Returns:
            True if an older item had to be dropped.
        """
        try:
            self._queue.put_nowait(item)
            return False
        except asyncio.QueueFull:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
            self._queue.put_nowait(item)
            return True

    def _mark_closed(self) -> None:
        """Stop after the buffered events, waking a blocked receiver."""
        self._closed = True
        # a receiver can only be waiting on an empty queue
        if self._queue.empty():
            self._queue.put_nowait(_CLOSED)

    async def receive(self) -> FileChangeEvent:
        """Wait for the next event.

        Returns:
            Next published event.

        Raises:
            SubscriptionLagged: If events were dropped since the last call.
                Buffered events remain available afterwards.
            SubscriptionClosed: If the hub has shut down and the buffer is
                drained.
        """
        if self.missed:
            missed, self.missed = self.missed, 0
            raise SubscriptionLagged(missed)

        if self._closed and self._queue.empty():
            raise SubscriptionClosed()

        item = await self._queue.get()
        if item is _CLOSED:
            raise SubscriptionClosed()
        return item  # type: ignore[return-value]

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> FileChangeEvent:
        try:
            return await self.receive()
        except SubscriptionClosed:
            raise StopAsyncIteration from None

    def close(self) -> None:
        """Unsubscribe from the hub. Safe to call more than once."""
        self._hub.unsubscribe(self.id)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class BroadcastHub:
    """Single publication point for file change events.

    Each subscriber owns a bounded queue. Publishing never waits: when a
    subscriber's queue is full its oldest event is dropped and the
    subscriber is flagged as lagging, without affecting anyone else.

    Attributes:
        queue_size: Maximum buffered events per subscriber.
        max_subscribers: Maximum number of concurrent subscribers.
    """

    def __init__(
        self,
        queue_size: int = 100,
        max_subscribers: int = 100,
    ) -> None:
        """Initialize broadcast hub.

        Args:
            queue_size: Maximum items per subscriber queue.
            max_subscribers: Maximum concurrent subscribers allowed.
        """
        self._subscribers: dict[str, Subscription] = {}
        self._queue_size = queue_size
        self._max_subscribers = max_subscribers
        self._dropped_count = 0
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        """Number of active subscribers."""
        return len(self._subscribers)

    @property
    def dropped_events(self) -> int:
        """Total number of events dropped due to queue overflow."""
        return self._dropped_count

    @property
    def is_closed(self) -> bool:
        return self._closed

    def publish(self, event: FileChangeEvent) -> int:
        """Queue an event for every current subscriber.

        Args:
            event: Event to publish.

        Returns:
            Number of subscribers the event was queued for.
        """
        if self._closed:
            return 0

        delivered = 0
        for subscription in list(self._subscribers.values()):
            if subscription._push(event):
                subscription.missed += 1
                self._dropped_count += 1
                logger.warning(
                    "subscriber_lagged",
                    subscriber_id=subscription.id,
                    missed=subscription.missed,
                )
            delivered += 1

        return delivered

    def subscribe(self) -> Subscription:
        """Register a new subscriber.

        Returns:
            Subscription receiving events published from now on.

        Raises:
            ValueError: If maximum subscribers reached.
            SubscriptionClosed: If the hub has shut down.
        """
        if self._closed:
            raise SubscriptionClosed()
        if self.subscriber_count >= self._max_subscribers:
            raise ValueError("Maximum subscribers reached")

        subscription = Subscription(self, self._queue_size)
        self._subscribers[subscription.id] = subscription
        logger.debug(
            "subscriber_added",
            subscriber_id=subscription.id,
            subscriber_count=self.subscriber_count,
        )
        return subscription

    def unsubscribe(self, subscriber_id: str) -> None:
        """Remove a subscriber from the hub.

        Args:
            subscriber_id: ID of the subscriber to remove.
        """
        if self._subscribers.pop(subscriber_id, None) is not None:
            logger.debug(
                "subscriber_removed",
                subscriber_id=subscriber_id,
                subscriber_count=self.subscriber_count,
            )

    def close(self) -> None:
        """Shut the hub down.

        Subscribers drain what they already buffered and are then
        exhausted. Later publishes are discarded.
        """
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscribers.values()):
            subscription._mark_closed()

        logger.info(
            "broadcast_hub_shutdown",
            subscriber_count=self.subscriber_count,
            dropped_events=self._dropped_count,
        )
