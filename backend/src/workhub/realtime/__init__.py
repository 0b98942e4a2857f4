"""Realtime fan-out of chat events to Server-Sent Events streams."""

from .bus import (  # noqa: F401
    EventBus,
    Listener,
    QueueSink,
    Sink,
    SinkClosedError,
    SinkError,
    SinkOverflowError,
    Subscription,
)
from .session import StreamSession  # noqa: F401
from .sse import SSE_HEADERS, SSE_MEDIA_TYPE, format_event, format_ping  # noqa: F401

__all__ = [
    "EventBus",
    "Listener",
    "QueueSink",
    "Sink",
    "SinkClosedError",
    "SinkError",
    "SinkOverflowError",
    "Subscription",
    "StreamSession",
    "SSE_HEADERS",
    "SSE_MEDIA_TYPE",
    "format_event",
    "format_ping",
]
