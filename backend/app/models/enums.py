from __future__ import annotations

from enum import Enum


class MessageType(str, Enum):
    """Kinds of chat message content."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class PostType(str, Enum):
    """Layout of a post's media."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    TEXT_WITH_IMAGE = "text_with_image"
    TEXT_WITH_VIDEO = "text_with_video"


class FriendshipStatus(str, Enum):
    """Lifecycle states for friend relationships."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    BLOCKED = "blocked"


class NotificationType(str, Enum):
    """Categories of stored notifications."""

    NEW_MESSAGE = "new_message"
    POST_COMMENT = "post_comment"
    COMMENT_REPLY = "comment_reply"
    POST_LIKE = "post_like"
    COMMENT_LIKE = "comment_like"
    FRIEND_REQUEST = "friend_request"
    FRIEND_REQUEST_ACCEPTED = "friend_request_accepted"
    NEW_FOLLOWER = "new_follower"
    SYSTEM = "system"
