"""Friend requests and follows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from huddle.realtime.errors import ConflictError, NotFoundError, PermissionDeniedError

from app.database import SessionLocal
from app.models import Follow, Friendship, FriendshipStatus, Post, User
from app.schemas import (
    FollowList,
    FollowState,
    FriendRequestList,
    FriendRequestRead,
    PublicUser,
    RelationshipStatus,
    UserProfile,
    UserStats,
)
from app.services.users import public_user, require_user


def _serialize_request(link: Friendship) -> dict[str, Any]:
    return FriendRequestRead.model_validate(link).model_dump(mode="json")


def _get_link(db: Session, user_id: int, other_id: int) -> Friendship | None:
    stmt = select(Friendship).where(
        or_(
            (Friendship.requester_id == user_id) & (Friendship.addressee_id == other_id),
            (Friendship.requester_id == other_id) & (Friendship.addressee_id == user_id),
        )
    )
    return db.execute(stmt).scalar_one_or_none()


def _friend_ids(db: Session, user_id: int) -> set[int]:
    stmt = select(Friendship.requester_id, Friendship.addressee_id).where(
        Friendship.status == FriendshipStatus.ACCEPTED,
        or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
    )
    return {
        addressee_id if requester_id == user_id else requester_id
        for requester_id, addressee_id in db.execute(stmt)
    }


class FriendService:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def send_request(self, requester_id: int, addressee_id: int) -> dict[str, Any]:
        if requester_id == addressee_id:
            raise ConflictError("Cannot send friend request to yourself")
        with self._session_factory() as db:
            require_user(db, requester_id)
            require_user(db, addressee_id)
            link = _get_link(db, requester_id, addressee_id)
            if link is not None:
                if link.status == FriendshipStatus.ACCEPTED:
                    raise ConflictError("You are already friends")
                if link.status == FriendshipStatus.PENDING:
                    raise ConflictError("Friend request already pending")
                if link.status == FriendshipStatus.BLOCKED:
                    raise ConflictError("Cannot send friend request")
                # A rejected request may be sent again, by either side.
                link.requester_id = requester_id
                link.addressee_id = addressee_id
                link.status = FriendshipStatus.PENDING
                link.accepted_at = None
            else:
                link = Friendship(
                    requester_id=requester_id,
                    addressee_id=addressee_id,
                    status=FriendshipStatus.PENDING,
                )
                db.add(link)
            db.commit()
            db.refresh(link)
            return _serialize_request(link)

    async def accept_request(self, user_id: int, request_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            link = self._require_pending_for_addressee(db, user_id, request_id, "accept")
            link.status = FriendshipStatus.ACCEPTED
            link.accepted_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(link)
            return _serialize_request(link)

    async def reject_request(self, user_id: int, request_id: int) -> None:
        with self._session_factory() as db:
            link = self._require_pending_for_addressee(db, user_id, request_id, "reject")
            link.status = FriendshipStatus.REJECTED
            db.commit()

    async def cancel_request(self, user_id: int, request_id: int) -> None:
        with self._session_factory() as db:
            link = db.get(Friendship, request_id)
            if link is None:
                raise NotFoundError("Friend request not found")
            if link.requester_id != user_id:
                raise PermissionDeniedError("You can only cancel friend requests you sent")
            if link.status != FriendshipStatus.PENDING:
                raise ConflictError("Friend request is not pending")
            db.delete(link)
            db.commit()

    async def remove_friend(self, user_id: int, friend_id: int) -> None:
        with self._session_factory() as db:
            link = _get_link(db, user_id, friend_id)
            if link is None or link.status != FriendshipStatus.ACCEPTED:
                raise NotFoundError("Friendship not found")
            db.delete(link)
            db.commit()

    async def list_friends(self, user_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(Friendship)
            .where(
                Friendship.status == FriendshipStatus.ACCEPTED,
                or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
            )
            .options(selectinload(Friendship.requester), selectinload(Friendship.addressee))
        )
        with self._session_factory() as db:
            friends = []
            for link in db.execute(stmt).scalars():
                other = link.addressee if link.requester_id == user_id else link.requester
                friends.append(public_user(other))
        friends.sort(key=lambda friend: (friend["display_name"] or friend["username"]).lower())
        return friends

    async def list_requests(self, user_id: int) -> dict[str, Any]:
        stmt = (
            select(Friendship)
            .where(
                Friendship.status == FriendshipStatus.PENDING,
                or_(Friendship.requester_id == user_id, Friendship.addressee_id == user_id),
            )
            .options(selectinload(Friendship.requester), selectinload(Friendship.addressee))
            .order_by(Friendship.id.desc())
        )
        with self._session_factory() as db:
            incoming: list[FriendRequestRead] = []
            outgoing: list[FriendRequestRead] = []
            for link in db.execute(stmt).scalars():
                entry = FriendRequestRead.model_validate(link)
                (incoming if link.addressee_id == user_id else outgoing).append(entry)
            return FriendRequestList(incoming=incoming, outgoing=outgoing).model_dump(mode="json")

    async def follow(self, follower_id: int, following_id: int) -> tuple[dict[str, Any], bool]:
        """Follow a user; the flag is ``False`` when the follow already existed."""

        if follower_id == following_id:
            raise ConflictError("Cannot follow yourself")
        with self._session_factory() as db:
            require_user(db, following_id)
            link = _get_link(db, follower_id, following_id)
            if link is not None and link.status == FriendshipStatus.BLOCKED:
                raise ConflictError("Cannot follow this user")
            existing = self._get_follow(db, follower_id, following_id)
            created = existing is None
            if created:
                db.add(Follow(follower_id=follower_id, following_id=following_id))
                db.commit()
            return self._follow_state(db, follower_id, following_id), created

    async def unfollow(self, follower_id: int, following_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            existing = self._get_follow(db, follower_id, following_id)
            if existing is None:
                raise NotFoundError("You are not following this user")
            db.delete(existing)
            db.commit()
            return self._follow_state(db, follower_id, following_id)

    async def mutual_friends(self, user_id: int, other_id: int) -> list[dict[str, Any]]:
        with self._session_factory() as db:
            require_user(db, other_id)
            shared = _friend_ids(db, user_id) & _friend_ids(db, other_id)
            if not shared:
                return []
            users = db.execute(
                select(User).where(User.id.in_(shared)).order_by(User.username)
            ).scalars()
            return [public_user(user) for user in users]

    async def are_friends(self, user_id: int, other_id: int) -> bool:
        with self._session_factory() as db:
            link = _get_link(db, user_id, other_id)
            return link is not None and link.status == FriendshipStatus.ACCEPTED

    async def followers(self, user_id: int, *, skip: int = 0, take: int = 50) -> dict[str, Any]:
        return await self._follow_list(user_id, Follow.following_id, Follow.follower_id, skip, take)

    async def following(self, user_id: int, *, skip: int = 0, take: int = 50) -> dict[str, Any]:
        return await self._follow_list(user_id, Follow.follower_id, Follow.following_id, skip, take)

    async def is_following(self, follower_id: int, following_id: int) -> bool:
        with self._session_factory() as db:
            return self._get_follow(db, follower_id, following_id) is not None

    async def relationship_status(self, user_id: int, other_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            require_user(db, other_id)
            return self._relationship(db, user_id, other_id).model_dump(mode="json")

    async def stats(self, user_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            require_user(db, user_id)
            return self._stats(db, user_id).model_dump(mode="json")

    async def profile(self, user_id: int, viewer_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            user = require_user(db, user_id)
            return UserProfile(
                user=PublicUser.model_validate(user),
                bio=user.bio,
                stats=self._stats(db, user_id),
                relationship_status=self._relationship(db, viewer_id, user_id),
            ).model_dump(mode="json")

    async def block_user(self, user_id: int, blocked_id: int) -> None:
        """Block *blocked_id*: any friendship or request becomes a block and follows are dropped."""

        if user_id == blocked_id:
            raise ConflictError("Cannot block yourself")
        with self._session_factory() as db:
            require_user(db, blocked_id)
            link = _get_link(db, user_id, blocked_id)
            if link is None:
                db.add(
                    Friendship(
                        requester_id=user_id,
                        addressee_id=blocked_id,
                        status=FriendshipStatus.BLOCKED,
                    )
                )
            elif link.status == FriendshipStatus.BLOCKED and link.requester_id != user_id:
                raise ConflictError("Cannot block this user")
            else:
                link.requester_id = user_id
                link.addressee_id = blocked_id
                link.status = FriendshipStatus.BLOCKED
                link.accepted_at = None
            for follow in db.execute(
                select(Follow).where(
                    or_(
                        (Follow.follower_id == user_id) & (Follow.following_id == blocked_id),
                        (Follow.follower_id == blocked_id) & (Follow.following_id == user_id),
                    )
                )
            ).scalars().all():
                db.delete(follow)
            db.commit()

    async def unblock_user(self, user_id: int, blocked_id: int) -> None:
        with self._session_factory() as db:
            link = _get_link(db, user_id, blocked_id)
            if (
                link is None
                or link.status != FriendshipStatus.BLOCKED
                or link.requester_id != user_id
            ):
                raise NotFoundError("Block relationship not found")
            db.delete(link)
            db.commit()

    async def list_blocked(self, user_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(Friendship)
            .where(
                Friendship.requester_id == user_id,
                Friendship.status == FriendshipStatus.BLOCKED,
            )
            .options(selectinload(Friendship.addressee))
            .order_by(Friendship.id.desc())
        )
        with self._session_factory() as db:
            return [public_user(link.addressee) for link in db.execute(stmt).scalars()]

    async def _follow_list(
        self, user_id: int, match_column: Any, other_column: Any, skip: int, take: int
    ) -> dict[str, Any]:
        with self._session_factory() as db:
            require_user(db, user_id)
            total = db.execute(
                select(func.count(Follow.id)).where(match_column == user_id)
            ).scalar_one()
            users = db.execute(
                select(User)
                .join(Follow, other_column == User.id)
                .where(match_column == user_id)
                .order_by(Follow.id.desc())
                .offset(skip)
                .limit(take)
            ).scalars()
            return FollowList(
                users=[PublicUser.model_validate(user) for user in users],
                total_count=int(total),
            ).model_dump(mode="json")

    def _relationship(self, db: Session, user_id: int, other_id: int) -> RelationshipStatus:
        link = _get_link(db, user_id, other_id)
        status = link.status if link is not None else None
        return RelationshipStatus(
            are_friends=status == FriendshipStatus.ACCEPTED,
            is_following=self._get_follow(db, user_id, other_id) is not None,
            is_followed_by=self._get_follow(db, other_id, user_id) is not None,
            has_pending_request=status == FriendshipStatus.PENDING,
            is_blocked=status == FriendshipStatus.BLOCKED,
            friendship_status=status,
        )

    @staticmethod
    def _stats(db: Session, user_id: int) -> UserStats:
        def count(stmt) -> int:
            return int(db.execute(stmt).scalar_one())

        return UserStats(
            friends_count=len(_friend_ids(db, user_id)),
            followers_count=count(select(func.count(Follow.id)).where(Follow.following_id == user_id)),
            following_count=count(select(func.count(Follow.id)).where(Follow.follower_id == user_id)),
            posts_count=count(
                select(func.count(Post.id)).where(Post.user_id == user_id, Post.is_deleted.is_(False))
            ),
        )

    @staticmethod
    def _require_pending_for_addressee(
        db: Session, user_id: int, request_id: int, action: str
    ) -> Friendship:
        link = db.get(Friendship, request_id)
        if link is None:
            raise NotFoundError("Friend request not found")
        if link.addressee_id != user_id:
            raise PermissionDeniedError(f"You can only {action} friend requests sent to you")
        if link.status != FriendshipStatus.PENDING:
            raise ConflictError("Friend request is not pending")
        return link

    @staticmethod
    def _get_follow(db: Session, follower_id: int, following_id: int) -> Follow | None:
        return db.execute(
            select(Follow).where(
                Follow.follower_id == follower_id, Follow.following_id == following_id
            )
        ).scalar_one_or_none()

    def _follow_state(self, db: Session, follower_id: int, following_id: int) -> dict[str, Any]:
        followers = db.execute(
            select(func.count(Follow.id)).where(Follow.following_id == following_id)
        ).scalar_one()
        return FollowState(
            user_id=following_id,
            following=self._get_follow(db, follower_id, following_id) is not None,
            followers_count=int(followers),
        ).model_dump(mode="json")
