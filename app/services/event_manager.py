"""
Event Manager - Live notifications to attendant dashboards

One subscription per attendant. Registering again replaces the previous
subscription and closes it, so the older stream ends instead of hanging.
Delivery is best-effort: events for an absent subscriber or a full queue
are dropped and never reported back to the sender.
"""
import asyncio
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, Optional, Union

from atams.logging import get_logger

from app.core.concurrency import ReadWriteLock
from app.core.config import settings
from app.schemas.event import EventEnvelope, EventType

logger = get_logger(__name__)

_CLOSED = object()


class Subscription:
    """Bounded queue of one attendant's events, owned by an event loop"""

    def __init__(self, jukir_id: int, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.jukir_id = jukir_id
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def _call(self, callback, *args) -> bool:
        # asyncio.Queue is not thread-safe; hop onto the owning loop when needed
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self.loop:
            return callback(*args)
        if self.loop.is_closed():
            return False
        try:
            self.loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            return False
        return True

    def _put(self, item: Any) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(item)
        except asyncio.QueueFull:
            return False
        return True

    def _close(self) -> bool:
        while True:
            try:
                self.queue.put_nowait(_CLOSED)
                return True
            except asyncio.QueueFull:
                self.queue.get_nowait()

    def offer(self, envelope: EventEnvelope) -> bool:
        """Non-blocking enqueue; False when the event was dropped"""
        if self.closed:
            return False
        return self._call(self._put, envelope)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._call(self._close)


class EventManager:
    def __init__(self, queue_size: Optional[int] = None) -> None:
        self._queue_size = queue_size or settings.EVENT_QUEUE_SIZE
        self._subscriptions: Dict[int, Subscription] = {}
        self._lock = ReadWriteLock()

    def register(self, jukir_id: int, loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscription:
        """
        Create the live subscription of an attendant

        Args:
            jukir_id: Attendant ID
            loop: Loop that consumes the subscription, defaults to the running loop

        Returns:
            Subscription: New handle; any previous handle of the attendant is closed
        """
        subscription = Subscription(jukir_id, loop or asyncio.get_running_loop(), self._queue_size)

        with self._lock.write():
            previous = self._subscriptions.get(jukir_id)
            self._subscriptions[jukir_id] = subscription

        if previous is not None:
            previous.close()
            logger.info(
                f"Replaced event subscription of jukir {jukir_id}",
                extra={'extra_data': {'jukir_id': jukir_id}}
            )
        else:
            logger.info(
                f"Registered event subscription of jukir {jukir_id}",
                extra={'extra_data': {'jukir_id': jukir_id}}
            )
        return subscription

    def unregister(self, jukir_id: int, subscription: Optional[Subscription] = None) -> bool:
        """
        Close and remove an attendant's subscription; no-op when absent

        When `subscription` is given, the table entry is only removed if it
        is still that subscription.
        """
        removed = None
        with self._lock.write():
            current = self._subscriptions.get(jukir_id)
            if current is not None and (subscription is None or current is subscription):
                removed = self._subscriptions.pop(jukir_id)

        if subscription is not None:
            subscription.close()
        if removed is None:
            return False

        removed.close()
        logger.info(
            f"Unregistered event subscription of jukir {jukir_id}",
            extra={'extra_data': {'jukir_id': jukir_id}}
        )
        return True

    def notify(
        self,
        jukir_id: int,
        event_type: Union[EventType, str],
        data: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Send an event to one attendant without blocking; returns whether it was queued"""
        if isinstance(event_type, Enum):
            event_type = event_type.value
        envelope = EventEnvelope(type=event_type, data=data or {})

        with self._lock.read():
            subscription = self._subscriptions.get(jukir_id)
            delivered = subscription.offer(envelope) if subscription is not None else False

        if not delivered:
            logger.debug(
                f"Dropped {event_type} event for jukir {jukir_id}",
                extra={'extra_data': {
                    'jukir_id': jukir_id,
                    'event_type': event_type,
                    'subscribed': subscription is not None
                }}
            )
        return delivered

    def broadcast(
        self,
        jukir_ids: Iterable[int],
        event_type: Union[EventType, str],
        data: Optional[Dict[str, Any]] = None
    ) -> int:
        """Notify every listed attendant; returns how many events were queued"""
        return sum(1 for jukir_id in jukir_ids if self.notify(jukir_id, event_type, data))

    async def listen(
        self,
        subscription: Subscription,
        keepalive: Optional[float] = None
    ) -> AsyncIterator[Optional[EventEnvelope]]:
        """
        Yield queued events until the subscription is closed

        Yields None whenever `keepalive` seconds pass without an event. The
        subscription is unregistered when the stream ends, is replaced or is
        cancelled.
        """
        try:
            while True:
                try:
                    if keepalive:
                        item = await asyncio.wait_for(subscription.queue.get(), timeout=keepalive)
                    else:
                        item = await subscription.queue.get()
                except asyncio.TimeoutError:
                    yield None
                    continue

                if item is _CLOSED:
                    break
                yield item
        finally:
            self.unregister(subscription.jukir_id, subscription)

    def connected_count(self) -> int:
        with self._lock.read():
            return len(self._subscriptions)

    def is_connected(self, jukir_id: int) -> bool:
        with self._lock.read():
            return jukir_id in self._subscriptions


event_manager = EventManager()
