"""Fan-out broadcast of state changes to connected terminals."""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from restaurant_order_service.models.event_models import ChangeEvent, EventTopic
from restaurant_order_service.observability.metrics import (
    record_event_broadcast,
    record_observer_change,
)

logger = logging.getLogger(__name__)


class SubscriptionClosed(Exception):
    """The notifier dropped this observer; it has to reconnect and resynchronise."""


class Subscription:
    """A single observer's view of the event stream.

    Events are buffered in a bounded queue until the observer reads them. A
    subscription closed by the notifier discards its buffer and raises
    SubscriptionClosed on the next read.
    """

    def __init__(self, max_queue_size: int) -> None:
        # One slot beyond the limit is kept free for the close marker
        self.queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=max_queue_size + 1)
        self.max_queue_size = max_queue_size
        self.closed = False

    def offer(self, event: ChangeEvent) -> bool:
        """Buffer an event without waiting.

        Returns:
            False if the buffer is full or the subscription is closed
        """
        if self.closed or self.queue.qsize() >= self.max_queue_size:
            return False
        self.queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Drop buffered events and wake up a pending reader."""
        if self.closed:
            return
        self.closed = True
        while not self.queue.empty():
            self.queue.get_nowait()
        self.queue.put_nowait(None)

    async def get(self) -> ChangeEvent:
        """Wait for the next event.

        Raises:
            SubscriptionClosed: If the notifier dropped this observer
        """
        return self._unwrap(await self.queue.get())

    def get_nowait(self) -> ChangeEvent:
        """Return the next buffered event.

        Raises:
            asyncio.QueueEmpty: If no event is buffered
            SubscriptionClosed: If the notifier dropped this observer
        """
        return self._unwrap(self.queue.get_nowait())

    def _unwrap(self, event: ChangeEvent | None) -> ChangeEvent:
        if event is None:
            # Keep the marker so every later read fails the same way
            self.queue.put_nowait(None)
            raise SubscriptionClosed("Observer was dropped by the notifier")
        return event


class ChangeNotifier:
    """Broadcast channel shared by every connected observer.

    There are no per-topic subscriptions: every observer receives every event
    and filters on the topic itself. Delivery is fire-and-forget; nothing is
    kept for observers that are not connected, so a reconnecting observer has
    to reload current state from the read endpoints.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        """Initialize the notifier.

        Args:
            max_queue_size: Events buffered per observer before it is dropped
        """
        self.max_queue_size = max_queue_size
        self._subscriptions: set[Subscription] = set()

    @property
    def observer_count(self) -> int:
        """Number of currently connected observers."""
        return len(self._subscriptions)

    def subscribe(self) -> Subscription:
        """Register a new observer.

        Returns:
            Subscription receiving every subsequent event
        """
        subscription = Subscription(self.max_queue_size)
        self._subscriptions.add(subscription)
        record_observer_change(1)
        logger.info(f"Observer connected ({self.observer_count} connected)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove an observer. Unknown subscriptions are ignored."""
        if subscription in self._subscriptions:
            self._subscriptions.discard(subscription)
            record_observer_change(-1)
            logger.info(f"Observer disconnected ({self.observer_count} connected)")

    async def broadcast(self, topic: EventTopic, payload: Any = None) -> int:
        """Deliver an event to every connected observer.

        Returns as soon as the event is queued for each observer; it does not
        wait for observers to read it. Observers whose queue is full are dropped
        and their subscription is closed.

        Args:
            topic: Event topic
            payload: Affected entity, bare id, or None

        Returns:
            Number of observers the event was queued for
        """
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json", by_alias=True)

        event = ChangeEvent(topic=topic, payload=payload, emitted_at=datetime.now(UTC))

        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.offer(event):
                delivered += 1
            else:
                logger.warning(f"Dropping observer with {self.max_queue_size} undelivered events")
                self.unsubscribe(subscription)
                subscription.close()

        record_event_broadcast(topic.value)
        logger.debug(f"Broadcast {topic.value} to {delivered} observers")
        return delivered
