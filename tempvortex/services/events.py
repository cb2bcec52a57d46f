"""In-process event fan-out to subscriber queues."""

import asyncio

from tempvortex.models.events import InboxEvent
from tempvortex.utils.logging import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Publish inbox/session events to every subscriber.

    Each subscriber owns an ``asyncio.Queue``; publishing never blocks. A
    subscriber whose queue is full loses the event (logged).
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self.max_queue_size = max_queue_size
        self._subscribers: list[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, event: InboxEvent) -> None:
        for queue in self._subscribers:
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full, dropping event", kind=event.kind)


def drain(queue: asyncio.Queue) -> list[InboxEvent]:
    """Pop every event currently queued."""
    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    return events
