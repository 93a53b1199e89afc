"""Schemas related to user profiles, friendships and follows."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import FriendshipStatus


class PublicUser(BaseModel):
    """Minimal public-facing user information."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    display_name: str | None = None
    profile_picture_url: str | None = None
    is_online: bool = False
    last_seen: datetime | None = None


class FriendRequestRead(BaseModel):
    """Serialized friend request including participants."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    requester: PublicUser
    addressee: PublicUser
    status: FriendshipStatus
    created_at: datetime
    accepted_at: datetime | None = None


class FriendRequestList(BaseModel):
    """Categorized pending friend requests."""

    incoming: list[FriendRequestRead] = Field(default_factory=list)
    outgoing: list[FriendRequestRead] = Field(default_factory=list)


class FriendRequestCreate(BaseModel):
    """Payload for sending a friend request."""

    addressee_id: int = Field(..., description="Target user id")


class FollowState(BaseModel):
    """Whether the current user follows a target user."""

    user_id: int
    following: bool
    followers_count: int = 0


class FollowList(BaseModel):
    """One page of followers or followed users."""

    users: list[PublicUser] = Field(default_factory=list)
    total_count: int = 0


class RelationshipStatus(BaseModel):
    """How the current user relates to another user."""

    are_friends: bool = False
    is_following: bool = False
    is_followed_by: bool = False
    has_pending_request: bool = False
    is_blocked: bool = False
    friendship_status: FriendshipStatus | None = None


class UserStats(BaseModel):
    friends_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    posts_count: int = 0


class UserProfile(BaseModel):
    user: PublicUser
    bio: str | None = None
    stats: UserStats
    relationship_status: RelationshipStatus
