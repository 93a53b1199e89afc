"""Session handlers for the chat, notification and post hubs."""

from .chat import ChatHub
from .commands import chat_commands, notification_commands, post_commands
from .notifications import NotificationHub
from .posts import PostHub

__all__ = [
    "ChatHub",
    "NotificationHub",
    "PostHub",
    "chat_commands",
    "notification_commands",
    "post_commands",
]
