"""Metric definitions for the chat realtime layer."""

from __future__ import annotations

from .registry import registry


realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of open chat streams handled by this process.",
    label_names=("scope",),
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Chat events published to channels with at least one listener.",
    label_names=("event",),
)

realtime_delivery_failures_total = registry.counter(
    "realtime_delivery_failures_total",
    "Listener pushes that failed during fan-out.",
    label_names=("reason",),
)

chat_publish_errors_total = registry.counter(
    "chat_publish_errors_total",
    "Lifecycle events that could not be handed to the event bus.",
    label_names=("event",),
)
