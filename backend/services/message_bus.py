"""In-process publish/subscribe bus for real-time conversation events."""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

Subscriber = Callable[[str, Dict[str, Any]], Awaitable[None]]


class MessageBus:
    """
    Topic-based fan-out. Topics are conversation ids; subscribers are async
    callbacks receiving (event, payload). Delivery is fire-and-forget: a
    subscriber that raises is logged and skipped.
    """

    def __init__(self):
        self._topics: Dict[str, Dict[str, Subscriber]] = {}
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    async def subscribe(self, topic: str, subscriber_id: str, callback: Subscriber) -> None:
        async with self._lock:
            self._topics.setdefault(topic, {})[subscriber_id] = callback
        logger.info(f"Subscriber {subscriber_id} joined {topic}")

    async def unsubscribe(self, topic: str, subscriber_id: str) -> None:
        async with self._lock:
            subscribers = self._topics.get(topic)
            if subscribers is None:
                return
            subscribers.pop(subscriber_id, None)
            if not subscribers:
                del self._topics[topic]
        logger.info(f"Subscriber {subscriber_id} left {topic}")

    async def unsubscribe_all(self, subscriber_id: str) -> None:
        """Drop a subscriber from every topic (e.g. on disconnect)."""
        async with self._lock:
            for topic in list(self._topics):
                self._topics[topic].pop(subscriber_id, None)
                if not self._topics[topic]:
                    del self._topics[topic]

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, {}))

    def is_subscribed(self, topic: str, subscriber_id: str) -> bool:
        return subscriber_id in self._topics.get(topic, {})

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> int:
        """
        Deliver an event to every subscriber of a topic and wait for delivery.

        Returns:
            Number of subscribers that received the event
        """
        async with self._lock:
            subscribers = list(self._topics.get(topic, {}).items())

        if not subscribers:
            logger.debug(f"No subscribers for {topic}, '{event}' not delivered")
            return 0
        return await self._deliver(subscribers, event, payload)

    def publish_nowait(self, topic: str, event: str, payload: Dict[str, Any]) -> Optional[asyncio.Task]:
        """
        Schedule delivery to the topic's current subscribers without waiting.

        Subscribers are taken at call time, so a subscriber added afterwards
        does not receive this event. Must be called from a running event loop.

        Returns:
            The delivery task, or None if nobody is subscribed
        """
        subscribers = list(self._topics.get(topic, {}).items())
        if not subscribers:
            logger.debug(f"No subscribers for {topic}, '{event}' not delivered")
            return None

        task = asyncio.get_running_loop().create_task(self._deliver(subscribers, event, payload))
        self._pending.add(task)
        task.add_done_callback(self._delivery_done)
        return task

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _delivery_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Event delivery failed: {task.exception()}")

    async def _deliver(
        self,
        subscribers: List[Tuple[str, Subscriber]],
        event: str,
        payload: Dict[str, Any]
    ) -> int:
        results = await asyncio.gather(
            *(callback(event, payload) for _, callback in subscribers),
            return_exceptions=True
        )

        delivered = 0
        for (subscriber_id, _), result in zip(subscribers, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to deliver '{event}' to {subscriber_id}: {result}")
            else:
                delivered += 1
        return delivered
