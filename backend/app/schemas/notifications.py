"""Schemas for stored notifications."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from app.models.enums import NotificationType
from app.schemas.users import PublicUser


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    actor_user_id: int | None = None
    actor: PublicUser | None = None
    title: str
    message: str
    type: NotificationType
    is_read: bool
    created_at: datetime
    data: dict[str, Any] | None = None


class UnreadCount(BaseModel):
    count: int


class MarkAllReadResult(BaseModel):
    updated: int
