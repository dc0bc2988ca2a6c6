"""In-process publish/subscribe channel keyed by user id.

Each subscriber owns a bounded queue. When a queue is full the oldest pending
event is dropped so a slow consumer never blocks publishers; clients that miss
events fall back to polling.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable
from uuid import UUID

from app.core.config import settings
from app.schemas.events import Event


logger = logging.getLogger(__name__)


class Subscription:
    """A single connected stream for one user."""

    def __init__(self, broker: "EventBroker", user_id: str, max_size: int):
        self.broker = broker
        self.user_id = user_id
        self.queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_size)
        self.dropped = 0

    def put(self, event: Event) -> None:
        if self.queue.full():
            self.queue.get_nowait()
            self.dropped += 1
        self.queue.put_nowait(event)

    async def get(self, timeout: float | None = None) -> Event | None:
        """Wait for the next event, or return None when ``timeout`` elapses."""
        try:
            return await asyncio.wait_for(self.queue.get(), timeout=timeout)
        except TimeoutError:
            return None

    def close(self) -> None:
        self.broker.unsubscribe(self)


class EventBroker:
    """Fan events out to every open subscription of the target users."""

    def __init__(self, max_queue_size: int | None = None):
        self.max_queue_size = max_queue_size or settings.event_queue_max_size
        self._subscriptions: dict[str, set[Subscription]] = defaultdict(set)

    def subscribe(self, user_id: UUID | str) -> Subscription:
        subscription = Subscription(self, str(user_id), self.max_queue_size)
        self._subscriptions[subscription.user_id].add(subscription)
        logger.debug(f"Event subscription opened for user {subscription.user_id}")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.user_id)
        if not subscriptions:
            return
        subscriptions.discard(subscription)
        if not subscriptions:
            del self._subscriptions[subscription.user_id]
        logger.debug(f"Event subscription closed for user {subscription.user_id}")

    def subscriber_count(self, user_id: UUID | str | None = None) -> int:
        if user_id is None:
            return sum(len(subs) for subs in self._subscriptions.values())
        return len(self._subscriptions.get(str(user_id), ()))

    def publish(self, user_ids: Iterable[UUID | str], event: Event) -> int:
        """Deliver ``event`` to every subscription of ``user_ids``.

        Returns the number of subscriptions the event was queued on.
        """
        delivered = 0
        for user_id in {str(u) for u in user_ids}:
            for subscription in list(self._subscriptions.get(user_id, ())):
                subscription.put(event)
                delivered += 1
        return delivered


event_broker = EventBroker()
