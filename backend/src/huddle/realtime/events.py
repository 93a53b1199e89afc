"""Domain events and the client-facing event names of the hubs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class ClientEvent:
    """Frame types pushed to hub clients."""

    USER_ONLINE = "UserOnline"
    USER_OFFLINE = "UserOffline"
    RECEIVE_MESSAGE = "ReceiveMessage"
    MESSAGE_SENT = "MessageSent"
    MESSAGE_READ = "MessageRead"
    USER_TYPING = "UserTyping"
    USER_JOINED_CONVERSATION = "UserJoinedConversation"
    USER_LEFT_CONVERSATION = "UserLeftConversation"
    RECEIVE_NOTIFICATION = "ReceiveNotification"
    UNREAD_NOTIFICATIONS_COUNT = "UnreadNotificationsCount"
    RECEIVE_COMMENT = "ReceiveComment"
    POST_LIKE_UPDATE = "PostLikeUpdate"
    COMMENT_LIKE_UPDATE = "CommentLikeUpdate"
    USER_TYPING_COMMENT = "UserTypingComment"
    NEW_COMMENT = "NewComment"


class EventKind(str, Enum):
    """What happened. Values of notification-worthy kinds double as notification types."""

    USER_ONLINE = "user_online"
    USER_OFFLINE = "user_offline"
    USER_TYPING = "user_typing"
    COMMENT_TYPING = "comment_typing"
    CONVERSATION_JOINED = "conversation_joined"
    CONVERSATION_LEFT = "conversation_left"
    MESSAGE_READ = "message_read"
    NEW_MESSAGE = "new_message"
    POST_COMMENT = "post_comment"
    COMMENT_REPLY = "comment_reply"
    POST_LIKE = "post_like"
    COMMENT_LIKE = "comment_like"
    FRIEND_REQUEST = "friend_request"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    NEW_FOLLOWER = "new_follower"

    @property
    def notification_worthy(self) -> bool:
        return self not in _EPHEMERAL_KINDS


# Presence, typing and session-level signals never leave a durable record.
_EPHEMERAL_KINDS = frozenset(
    {
        EventKind.USER_ONLINE,
        EventKind.USER_OFFLINE,
        EventKind.USER_TYPING,
        EventKind.COMMENT_TYPING,
        EventKind.CONVERSATION_JOINED,
        EventKind.CONVERSATION_LEFT,
        EventKind.MESSAGE_READ,
    }
)


@dataclass(frozen=True, slots=True)
class NotificationContent:
    title: str
    message: str
    data: Mapping[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """Immutable description of something that happened.

    An event targets either explicit ``recipient_ids`` or a ``room``. When
    ``channel`` and ``client_event`` are set, live sessions of the targets on
    that channel receive ``payload``. User-targeted events of a
    notification-worthy kind that carry ``notification`` content also leave
    a notification record for every recipient.
    """

    kind: EventKind
    actor_id: int
    payload: Mapping[str, Any] = field(default_factory=dict)
    recipient_ids: tuple[int, ...] = ()
    room: str | None = None
    channel: str | None = None
    client_event: str | None = None
    exclude_session: str | None = None
    notification: NotificationContent | None = None

    def __post_init__(self) -> None:
        if self.room is not None and self.recipient_ids:
            raise ValueError("An event targets either a room or recipients, not both")
        if self.room is not None and self.channel is None:
            raise ValueError("Room events need a channel")
        if (self.channel is None) != (self.client_event is None):
            raise ValueError("channel and client_event must be given together")

    @property
    def is_room_event(self) -> bool:
        return self.room is not None


@dataclass(frozen=True, slots=True)
class NotificationRecord:
    """A stored notification as returned by the notification store."""

    id: int
    recipient_id: int
    actor_id: int | None
    title: str
    message: str
    kind: str
    is_read: bool
    created_at: datetime
    data: Mapping[str, Any] | None = None
    actor: Mapping[str, Any] | None = None

    def as_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.recipient_id,
            "actor_user_id": self.actor_id,
            "title": self.title,
            "message": self.message,
            "type": self.kind,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
            "data": dict(self.data) if self.data is not None else None,
            "actor": dict(self.actor) if self.actor is not None else None,
        }
