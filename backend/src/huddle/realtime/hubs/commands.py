"""Inbound command frames accepted by the hubs."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, constr


class _Command(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class SendMessage(_Command):
    type: Literal["SendMessage"]
    conversation_id: int
    content: constr(strip_whitespace=True, min_length=1)
    message_type: Literal["text", "image", "file"] = "text"


class JoinConversation(_Command):
    type: Literal["JoinConversation"]
    conversation_id: int


class LeaveConversation(_Command):
    type: Literal["LeaveConversation"]
    conversation_id: int


class TypingIndicator(_Command):
    type: Literal["TypingIndicator"]
    conversation_id: int
    is_typing: bool = True


class MarkMessageAsRead(_Command):
    type: Literal["MarkMessageAsRead"]
    message_id: int


class MarkNotificationAsRead(_Command):
    type: Literal["MarkNotificationAsRead"]
    notification_id: int


class MarkAllAsRead(_Command):
    type: Literal["MarkAllAsRead"]


class JoinPost(_Command):
    type: Literal["JoinPost"]
    post_id: int


class LeavePost(_Command):
    type: Literal["LeavePost"]
    post_id: int


class SendComment(_Command):
    type: Literal["SendComment"]
    post_id: int
    content: constr(strip_whitespace=True, min_length=1, max_length=1000)
    parent_comment_id: int | None = None


class LikePost(_Command):
    type: Literal["LikePost"]
    post_id: int


class LikeComment(_Command):
    type: Literal["LikeComment"]
    comment_id: int


class UserTypingComment(_Command):
    type: Literal["UserTypingComment"]
    post_id: int
    is_typing: bool = True


ChatCommand = Annotated[
    Union[SendMessage, JoinConversation, LeaveConversation, TypingIndicator, MarkMessageAsRead],
    Field(discriminator="type"),
]
NotificationCommand = Annotated[
    Union[MarkNotificationAsRead, MarkAllAsRead],
    Field(discriminator="type"),
]
PostCommand = Annotated[
    Union[JoinPost, LeavePost, SendComment, LikePost, LikeComment, UserTypingComment],
    Field(discriminator="type"),
]

chat_commands: TypeAdapter[Any] = TypeAdapter(ChatCommand)
notification_commands: TypeAdapter[Any] = TypeAdapter(NotificationCommand)
post_commands: TypeAdapter[Any] = TypeAdapter(PostCommand)
