"""Database models package."""

from .base import Base
from .chat import Conversation, ConversationParticipant, Message
from .enums import FriendshipStatus, MessageType, NotificationType, PostType
from .notifications import Notification
from .posts import Comment, CommentLike, Post, PostLike
from .users import Follow, Friendship, User

__all__ = [
    "Base",
    "User",
    "Friendship",
    "Follow",
    "Conversation",
    "ConversationParticipant",
    "Message",
    "Post",
    "Comment",
    "PostLike",
    "CommentLike",
    "Notification",
    "MessageType",
    "PostType",
    "FriendshipStatus",
    "NotificationType",
]
