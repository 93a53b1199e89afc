"""Pydantic schemas for API payloads."""

from .auth import LoginRequest, Token, UserCreate, UserRead
from .chat import ConversationCreate, ConversationRead, MessageCreate, MessageRead
from .notifications import MarkAllReadResult, NotificationRead, UnreadCount
from .posts import (
    CommentCreate,
    CommentRead,
    CommentUpdate,
    LikeToggleRead,
    PostCreate,
    PostRead,
    PostUpdate,
)
from .users import (
    FollowList,
    FollowState,
    FriendRequestCreate,
    FriendRequestList,
    FriendRequestRead,
    PublicUser,
    RelationshipStatus,
    UserProfile,
    UserStats,
)

__all__ = [
    "LoginRequest",
    "Token",
    "UserCreate",
    "UserRead",
    "PublicUser",
    "FriendRequestCreate",
    "FriendRequestRead",
    "FriendRequestList",
    "FollowState",
    "FollowList",
    "RelationshipStatus",
    "UserStats",
    "UserProfile",
    "ConversationCreate",
    "ConversationRead",
    "MessageCreate",
    "MessageRead",
    "PostCreate",
    "PostRead",
    "PostUpdate",
    "CommentCreate",
    "CommentRead",
    "CommentUpdate",
    "LikeToggleRead",
    "NotificationRead",
    "UnreadCount",
    "MarkAllReadResult",
]
