"""Realtime presence and event fan-out for the Huddle hubs."""

from .channel import (  # noqa: F401
    CHAT_CHANNEL,
    NOTIFICATION_CHANNEL,
    POST_CHANNEL,
    HubChannel,
    HubSession,
    PushOutcome,
)
from .errors import ConflictError, HubError, NotFoundError, PermissionDeniedError  # noqa: F401
from .events import (  # noqa: F401
    ClientEvent,
    DomainEvent,
    EventKind,
    NotificationContent,
    NotificationRecord,
)
from .hubs import ChatHub, NotificationHub, PostHub  # noqa: F401
from .presence import PresenceTracker  # noqa: F401
from .registry import ConnectionRegistry  # noqa: F401
from .router import EventRouter, RouteResult  # noqa: F401

__all__ = [
    "CHAT_CHANNEL",
    "NOTIFICATION_CHANNEL",
    "POST_CHANNEL",
    "ChatHub",
    "ClientEvent",
    "ConflictError",
    "ConnectionRegistry",
    "DomainEvent",
    "EventKind",
    "EventRouter",
    "HubChannel",
    "HubError",
    "HubSession",
    "NotFoundError",
    "NotificationContent",
    "NotificationHub",
    "NotificationRecord",
    "PermissionDeniedError",
    "PostHub",
    "PresenceTracker",
    "PushOutcome",
    "RouteResult",
]
