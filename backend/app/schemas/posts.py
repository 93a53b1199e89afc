"""Schemas for posts, comments and likes."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr, model_validator

from app.models.enums import PostType
from app.schemas.users import PublicUser


class PostCreate(BaseModel):
    """Payload for publishing a post; media is referenced by URL."""

    text_content: constr(strip_whitespace=True, max_length=5000) | None = None
    media_url: constr(strip_whitespace=True, min_length=1, max_length=1024) | None = None
    thumbnail_url: constr(strip_whitespace=True, min_length=1, max_length=1024) | None = None
    media_kind: str | None = Field(default=None, pattern="^(image|video)$")

    @model_validator(mode="after")
    def require_content(self) -> "PostCreate":
        if not self.text_content and not self.media_url:
            raise ValueError("A post needs text or media")
        if self.media_url and self.media_kind is None:
            raise ValueError("media_kind is required together with media_url")
        return self


class PostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    author: PublicUser
    text_content: str | None = None
    type: PostType
    media_url: str | None = None
    thumbnail_url: str | None = None
    likes_count: int = 0
    comments_count: int = 0
    is_liked: bool = False
    is_edited: bool = False
    edited_at: datetime | None = None
    created_at: datetime


class PostUpdate(BaseModel):
    """Only the text of a post can change after publishing."""

    text_content: constr(strip_whitespace=True, max_length=5000) | None = None


class CommentCreate(BaseModel):
    content: constr(strip_whitespace=True, min_length=1, max_length=1000)
    parent_comment_id: int | None = None


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    user_id: int
    parent_comment_id: int | None = None
    author: PublicUser
    content: str
    likes_count: int = 0
    is_edited: bool = False
    edited_at: datetime | None = None
    created_at: datetime


class CommentUpdate(BaseModel):
    content: constr(strip_whitespace=True, min_length=1, max_length=1000)


class LikeToggleRead(BaseModel):
    is_liked: bool
    likes_count: int
