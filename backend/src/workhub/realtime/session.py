"""Lifecycle of a single long-lived chat stream connection."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Callable

from app.monitoring.metrics import realtime_connections

from .bus import EventBus, QueueSink, SinkError, Subscription
from .sse import format_ping

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT_INTERVAL = 15.0
DEFAULT_QUEUE_SIZE = 256


class StreamSession:
    """Subscribe one connection to a channel and keep it alive with pings.

    ``open`` registers a sink on the bus and starts the heartbeat task.
    Iterating the session yields encoded SSE blocks until the sink closes.
    ``close`` stops the heartbeat, removes the listener and closes the sink;
    every step runs even if an earlier one fails.
    """

    def __init__(
        self,
        bus: EventBus,
        channel_id: int,
        *,
        heartbeat_interval: float = DEFAULT_HEARTBEAT_INTERVAL,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._bus = bus
        self.channel_id = channel_id
        self._heartbeat_interval = float(heartbeat_interval)
        self._queue_size = queue_size
        self._sink: QueueSink | None = None
        self._subscription: Subscription | None = None
        self._heartbeat: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def listener_id(self) -> str | None:
        if self._subscription is None:
            return None
        return self._subscription.listener.id

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> "StreamSession":
        if self._sink is not None:
            raise RuntimeError("Stream session is already open")
        if self._closed:
            raise RuntimeError("Stream session has been closed")

        self._sink = QueueSink(self._queue_size)
        self._subscription = self._bus.subscribe(self.channel_id, self._sink)
        if self._heartbeat_interval > 0:
            self._heartbeat = asyncio.create_task(
                self._run_heartbeat(self._sink),
                name=f"chat-stream-heartbeat:{self.channel_id}",
            )
        realtime_connections.labels("chat_stream").inc()
        logger.info(
            "Chat stream opened: channel=%s listener=%s",
            self.channel_id,
            self.listener_id,
        )
        return self

    async def _run_heartbeat(self, sink: QueueSink) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            try:
                sink.push(format_ping())
            except SinkError:
                logger.debug("Heartbeat stopped for channel %s: sink closed", self.channel_id)
                return

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._iter_blocks()

    async def _iter_blocks(self) -> AsyncIterator[bytes]:
        if self._sink is None:
            raise RuntimeError("Stream session is not open")
        while True:
            block = await self._sink.get()
            if block is None:
                return
            yield block

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._heartbeat is not None:
            self._cleanup("heartbeat", self._heartbeat.cancel)
        if self._subscription is not None:
            self._cleanup("unsubscribe", self._subscription.unsubscribe)
        if self._sink is not None:
            self._cleanup("sink", self._sink.close)
            realtime_connections.labels("chat_stream").dec()
            logger.info(
                "Chat stream closed: channel=%s listener=%s",
                self.channel_id,
                self.listener_id,
            )

    def _cleanup(self, step: str, action: Callable[[], object]) -> None:
        try:
            action()
        except Exception:
            logger.warning(
                "Chat stream cleanup step %r failed for channel %s",
                step,
                self.channel_id,
                exc_info=True,
            )

    async def __aenter__(self) -> "StreamSession":
        return await self.open()

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
