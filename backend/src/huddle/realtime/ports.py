"""Collaborator interfaces the hubs and the event router depend on.

Every method is a coroutine. Record-returning methods hand back JSON-ready
mappings; their documented keys are the only ones the hubs read.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, NamedTuple, Protocol, Sequence

from .events import NotificationRecord


class LikeToggle(NamedTuple):
    liked: bool
    likes_count: int


class UserStore(Protocol):
    async def set_online_status(
        self, user_id: int, is_online: bool, last_seen: datetime | None = None
    ) -> None: ...

    async def get_public_user(self, user_id: int) -> Mapping[str, Any]:
        """Keys: ``id``, ``username``, ``display_name``, ``profile_picture_url``."""
        ...


class ChatService(Protocol):
    async def get_participants(self, conversation_id: int) -> Sequence[int]:
        """Raise ``NotFoundError`` for an unknown conversation."""
        ...

    async def send_message(
        self, sender_id: int, conversation_id: int, content: str, message_type: str = "text"
    ) -> Mapping[str, Any]:
        """Keys: ``id``, ``conversation_id``, ``sender_id``, ``content``, ``sender``."""
        ...

    async def mark_message_as_read(self, user_id: int, message_id: int) -> Mapping[str, Any]:
        """Return the message that was read; same keys as ``send_message``."""
        ...


class PostService(Protocol):
    async def get_post(self, post_id: int) -> Mapping[str, Any]:
        """Keys: ``id``, ``user_id``, ``comments_count``."""
        ...

    async def get_comment(self, comment_id: int) -> Mapping[str, Any]:
        """Keys: ``id``, ``post_id``, ``user_id``, ``parent_comment_id``."""
        ...

    async def add_comment(
        self,
        user_id: int,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
    ) -> Mapping[str, Any]:
        """Keys: those of ``get_comment`` plus ``content`` and ``author``."""
        ...

    async def toggle_post_like(self, user_id: int, post_id: int) -> LikeToggle: ...

    async def toggle_comment_like(self, user_id: int, comment_id: int) -> LikeToggle: ...


class NotificationStore(Protocol):
    async def create_notification(
        self,
        recipient_id: int,
        actor_id: int | None,
        title: str,
        message: str,
        kind: str,
        data: Mapping[str, Any] | None = None,
    ) -> NotificationRecord: ...

    async def unread_count(self, user_id: int) -> int: ...

    async def mark_as_read(self, user_id: int, notification_id: int) -> None:
        """Raise ``NotFoundError`` unless the notification belongs to *user_id*."""
        ...

    async def mark_all_as_read(self, user_id: int) -> int: ...
