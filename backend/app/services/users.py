"""User lookups and presence persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from huddle.realtime.errors import NotFoundError

from app.database import SessionLocal
from app.models import User
from app.schemas import PublicUser


def public_user(user: User) -> dict[str, Any]:
    return PublicUser.model_validate(user).model_dump(mode="json")


def require_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


class UserDirectory:
    """Read public profiles and store online state."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def set_online_status(
        self, user_id: int, is_online: bool, last_seen: datetime | None = None
    ) -> None:
        with self._session_factory() as db:
            user = db.get(User, user_id)
            if user is None:
                return
            user.is_online = is_online
            if last_seen is not None:
                user.last_seen = last_seen
            db.commit()

    async def get_public_user(self, user_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            return public_user(require_user(db, user_id))

    async def search_users(
        self,
        query: str,
        *,
        exclude_user_id: int | None = None,
        skip: int = 0,
        take: int = 20,
    ) -> list[dict[str, Any]]:
        """Case-insensitive substring match on username or display name."""

        needle = query.strip().lower()
        stmt = (
            select(User)
            .where(
                or_(
                    func.lower(User.username).contains(needle, autoescape=True),
                    func.lower(User.display_name).contains(needle, autoescape=True),
                )
            )
            .order_by(User.username)
            .offset(skip)
            .limit(take)
        )
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        with self._session_factory() as db:
            return [public_user(user) for user in db.execute(stmt).scalars()]
