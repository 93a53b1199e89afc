"""Process-wide wiring of hub channels, the event router and the hubs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.orm import Session

from huddle.realtime import (
    CHAT_CHANNEL,
    NOTIFICATION_CHANNEL,
    POST_CHANNEL,
    ChatHub,
    EventRouter,
    HubChannel,
    NotificationHub,
    PostHub,
    PresenceTracker,
)

from app.config import get_settings
from app.database import SessionLocal
from app.services.chat import ChatService
from app.services.friends import FriendService
from app.services.notifications import NotificationService
from app.services.posts import PostService
from app.services.users import UserDirectory

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Realtime:
    """Everything a request handler needs to mutate state and fan it out."""

    users: UserDirectory
    chat_service: ChatService
    post_service: PostService
    friend_service: FriendService
    notification_service: NotificationService
    router: EventRouter
    presence: PresenceTracker
    chat_hub: ChatHub
    notification_hub: NotificationHub
    post_hub: PostHub

    def session_counts(self) -> dict[str, int]:
        return {
            hub.channel.name: len(hub.channel)
            for hub in (self.chat_hub, self.notification_hub, self.post_hub)
        }


def build_realtime(
    *,
    push_timeout: float | None = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> Realtime:
    timeout = push_timeout if push_timeout is not None else get_settings().realtime_push_timeout_seconds
    users = UserDirectory(session_factory)
    chat_service = ChatService(session_factory)
    post_service = PostService(session_factory)
    notification_service = NotificationService(session_factory)

    channels = {
        name: HubChannel(name, push_timeout=timeout)
        for name in (CHAT_CHANNEL, NOTIFICATION_CHANNEL, POST_CHANNEL)
    }
    router = EventRouter(channels, notification_service)
    presence = PresenceTracker(channels[CHAT_CHANNEL], users)
    return Realtime(
        users=users,
        chat_service=chat_service,
        post_service=post_service,
        friend_service=FriendService(session_factory),
        notification_service=notification_service,
        router=router,
        presence=presence,
        chat_hub=ChatHub(channels[CHAT_CHANNEL], router, presence, chat_service),
        notification_hub=NotificationHub(channels[NOTIFICATION_CHANNEL], notification_service),
        post_hub=PostHub(channels[POST_CHANNEL], router, post_service, users),
    )


_realtime = build_realtime()


def get_realtime() -> Realtime:
    return _realtime


def reset_realtime(**options: Any) -> Realtime:
    """Replace the process-wide hubs with empty ones (used by tests)."""

    global _realtime
    counts = _realtime.session_counts()
    if any(counts.values()):
        logger.warning("Discarding realtime state with open sessions: %s", counts)
    _realtime = build_realtime(**options)
    return _realtime
