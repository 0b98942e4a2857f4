"""Server-Sent Events wire encoding for chat streams."""

from __future__ import annotations

import json
import time
from typing import Any

MESSAGE_EVENT = "message"
PING_EVENT = "ping"

SSE_MEDIA_TYPE = "text/event-stream"

SSE_HEADERS: dict[str, str] = {
    "Content-Type": "text/event-stream; charset=utf-8",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
}


def encode_json(payload: Any) -> str:
    """Serialize *payload* as compact JSON, keeping non-ASCII characters verbatim."""

    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def format_event(event_type: str, data: str) -> bytes:
    """Render one SSE block: ``event: <type>\\ndata: <data>\\n\\n``."""

    if "\n" in event_type or "\n" in data:
        raise ValueError("SSE event type and data must be single-line")
    return f"event: {event_type}\ndata: {data}\n\n".encode("utf-8")


def format_ping(now_ms: int | None = None) -> bytes:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return format_event(PING_EVENT, str(now_ms))


__all__ = [
    "MESSAGE_EVENT",
    "PING_EVENT",
    "SSE_HEADERS",
    "SSE_MEDIA_TYPE",
    "encode_json",
    "format_event",
    "format_ping",
]
