"""Application service helpers."""

from .chat import ChatService
from .friends import FriendService
from .notifications import NotificationService
from .posts import PostService
from .realtime import Realtime, build_realtime, get_realtime, reset_realtime
from .users import UserDirectory

__all__ = [
    "ChatService",
    "FriendService",
    "NotificationService",
    "PostService",
    "UserDirectory",
    "Realtime",
    "build_realtime",
    "get_realtime",
    "reset_realtime",
]
