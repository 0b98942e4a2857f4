"""In-process publish/subscribe bus fanning chat events out to stream listeners."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, Mapping, Protocol, Set

from app.monitoring.metrics import (
    realtime_delivery_failures_total,
    realtime_events_total,
)

from .sse import MESSAGE_EVENT, encode_json, format_event

logger = logging.getLogger(__name__)


class SinkError(RuntimeError):
    """Raised by a sink that can no longer accept data."""


class SinkClosedError(SinkError):
    """Raised when pushing to a sink that has already been closed."""


class SinkOverflowError(SinkError):
    """Raised when a listener falls too far behind and gets disconnected."""


class Sink(Protocol):
    """Transport-specific endpoint of a listener."""

    def push(self, data: bytes) -> None:
        ...

    def close(self) -> None:
        ...


class QueueSink:
    """Bounded buffer between the bus and a single stream consumer.

    ``push`` never blocks. A consumer that lets the buffer fill up is
    disconnected rather than silently losing events, so the client reconnects
    and refetches history.
    """

    def __init__(
        self,
        maxsize: int = 256,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        return self._queue.qsize()

    def _in_owner_loop(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def push(self, data: bytes) -> None:
        if self._closed:
            raise SinkClosedError("listener sink is closed")
        if self._in_owner_loop():
            self._enqueue(data)
        else:
            # asyncio queues are not thread-safe; hop onto the owning loop.
            self._loop.call_soon_threadsafe(self._enqueue_from_thread, data)

    def _enqueue(self, data: bytes) -> None:
        try:
            self._queue.put_nowait(data)
        except asyncio.QueueFull:
            self.close()
            raise SinkOverflowError("listener buffer is full") from None

    def _enqueue_from_thread(self, data: bytes) -> None:
        if self._closed:
            return
        try:
            self._enqueue(data)
        except SinkOverflowError:
            logger.warning("Disconnecting stream listener after buffer overflow")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._in_owner_loop():
            self._wake_consumer()
        else:
            with contextlib.suppress(RuntimeError):  # owning loop already gone
                self._loop.call_soon_threadsafe(self._wake_consumer)

    def _wake_consumer(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(None)

    async def get(self) -> bytes | None:
        """Return the next buffered block, or ``None`` once the sink is closed."""

        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()


@dataclass(eq=False, slots=True)
class Listener:
    """Registration of one sink on one channel."""

    channel_id: int
    sink: Sink
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def push(self, data: bytes) -> None:
        self.sink.push(data)

    def close(self) -> None:
        self.sink.close()


class Subscription:
    """Handle returned by :meth:`EventBus.subscribe`."""

    def __init__(self, listener: Listener, unsubscribe: Callable[[], bool]) -> None:
        self._listener = listener
        self._unsubscribe = unsubscribe

    @property
    def listener(self) -> Listener:
        return self._listener

    def unsubscribe(self) -> bool:
        """Remove the listener from the bus; safe to call more than once."""

        return self._unsubscribe()


class EventBus:
    """Registry of chat channel listeners shared by every request in the process."""

    def __init__(self) -> None:
        self._channels: Dict[int, Set[Listener]] = {}
        self._lock = threading.Lock()

    def subscribe(self, channel_id: int, sink: Sink) -> Subscription:
        listener = Listener(channel_id=channel_id, sink=sink)
        with self._lock:
            self._channels.setdefault(channel_id, set()).add(listener)
            total = len(self._channels[channel_id])
        logger.debug(
            "Listener %s subscribed to channel %s (listeners=%d)",
            listener.id,
            channel_id,
            total,
        )
        return Subscription(listener, partial(self.unsubscribe, listener))

    def unsubscribe(self, listener: Listener) -> bool:
        with self._lock:
            listeners = self._channels.get(listener.channel_id)
            if not listeners or listener not in listeners:
                return False
            listeners.discard(listener)
            if not listeners:
                self._channels.pop(listener.channel_id, None)
        logger.debug("Listener %s left channel %s", listener.id, listener.channel_id)
        return True

    def publish(self, channel_id: int, event: Mapping[str, Any]) -> int:
        """Push *event* to every listener of *channel_id*.

        Returns the number of delivery attempts. Failures of individual
        listeners are logged and the failing listener is dropped; they never
        reach the caller.
        """

        with self._lock:
            listeners = self._channels.get(channel_id)
            if not listeners:
                return 0
            targets = list(listeners)

        block = format_event(MESSAGE_EVENT, encode_json(dict(event)))
        realtime_events_total.labels(str(event.get("type", MESSAGE_EVENT))).inc()

        failed: list[Listener] = []
        for listener in targets:
            try:
                listener.push(block)
            except Exception as exc:
                failed.append(listener)
                realtime_delivery_failures_total.labels(type(exc).__name__).inc()
                logger.debug(
                    "Push to listener %s on channel %s failed: %s",
                    listener.id,
                    channel_id,
                    exc,
                )

        for listener in failed:
            self.unsubscribe(listener)
            try:
                listener.close()
            except Exception:
                logger.debug("Closing failed listener %s raised", listener.id, exc_info=True)

        if failed:
            logger.warning(
                "Dropped %d of %d listeners on channel %s during fan-out",
                len(failed),
                len(targets),
                channel_id,
            )
        return len(targets)

    def close_all(self) -> int:
        """Detach and close every listener; used when the process shuts down."""

        with self._lock:
            listeners = [listener for group in self._channels.values() for listener in group]
            self._channels.clear()

        for listener in listeners:
            try:
                listener.close()
            except Exception:
                logger.debug("Closing listener %s raised", listener.id, exc_info=True)
        if listeners:
            logger.info("Closed %d chat stream listeners", len(listeners))
        return len(listeners)

    def listener_count(self, channel_id: int) -> int:
        with self._lock:
            return len(self._channels.get(channel_id, ()))

    def channel_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._channels)

    def __contains__(self, channel_id: object) -> bool:
        with self._lock:
            return channel_id in self._channels


__all__ = [
    "EventBus",
    "Listener",
    "QueueSink",
    "Sink",
    "SinkClosedError",
    "SinkError",
    "SinkOverflowError",
    "Subscription",
]
