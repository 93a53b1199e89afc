"""Metric definitions for the realtime hubs."""

from __future__ import annotations

from .registry import registry


realtime_connections = registry.gauge(
    "realtime_active_connections",
    "Number of open hub sessions handled by this process.",
    label_names=("channel",),
)

realtime_online_users = registry.gauge(
    "realtime_online_users",
    "Number of users with at least one chat hub session.",
)

realtime_events_total = registry.counter(
    "realtime_events_total",
    "Count of realtime frames processed by the hubs.",
    label_names=("channel", "direction", "event"),
)

realtime_push_failures_total = registry.counter(
    "realtime_push_failures_total",
    "Pushes to a hub session that failed or timed out.",
    label_names=("channel", "reason"),
)

notifications_created_total = registry.counter(
    "notifications_created_total",
    "Notification records written by the event router.",
    label_names=("kind",),
)

notification_persist_failures_total = registry.counter(
    "notification_persist_failures_total",
    "Notification records the event router failed to write.",
    label_names=("kind",),
)
