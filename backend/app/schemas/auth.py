"""Schemas for authentication endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, constr


class UserBase(BaseModel):
    """Base fields shared across user schemas."""

    username: constr(strip_whitespace=True, min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$") = Field(
        ..., description="Unique username consisting of 3-50 characters"
    )
    email: constr(strip_whitespace=True, min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$") = Field(
        ..., description="Contact e-mail address"
    )
    display_name: constr(strip_whitespace=True, min_length=1, max_length=100) | None = Field(
        default=None, description="Optional display name to show in the UI"
    )


class UserCreate(UserBase):
    """Payload for creating a new user via registration."""

    password: constr(min_length=8, max_length=128) = Field(
        ..., description="Plain text password that will be hashed before storing"
    )


class UserRead(UserBase):
    """Representation of the authenticated user returned from the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    profile_picture_url: str | None = None
    bio: str | None = None
    is_online: bool = False
    last_seen: datetime | None = None
    created_at: datetime


class LoginRequest(BaseModel):
    """Payload for user login."""

    username: constr(strip_whitespace=True, min_length=3, max_length=50) = Field(..., description="Username")
    password: constr(min_length=8, max_length=128) = Field(..., description="User password")


class Token(BaseModel):
    """Access token returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type, always 'bearer'")
    expires_in: int | None = Field(
        default=None,
        description="Number of seconds until the access token expires",
    )
