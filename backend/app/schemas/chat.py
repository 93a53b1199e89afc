"""Schemas for conversations and messages."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr

from app.models.enums import MessageType
from app.schemas.users import PublicUser


class MessageRead(BaseModel):
    """Representation of a conversation message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    conversation_id: int
    sender_id: int
    sender: PublicUser
    content: str
    type: MessageType = MessageType.TEXT
    sent_at: datetime
    is_edited: bool = False


class MessageCreate(BaseModel):
    """Payload for sending a new message."""

    content: constr(strip_whitespace=True, min_length=1)
    type: MessageType = MessageType.TEXT


class ConversationRead(BaseModel):
    """Summary of a conversation including participants."""

    id: int
    name: str | None = None
    is_group: bool = False
    created_at: datetime
    last_message_at: datetime | None = None
    participants: list[PublicUser]
    last_message: MessageRead | None = None
    unread_count: int = 0


class ConversationCreate(BaseModel):
    """Payload for creating a conversation."""

    participant_ids: list[int] = Field(..., min_length=1, description="Users to include besides the creator")
    name: constr(strip_whitespace=True, min_length=1, max_length=100) | None = None
