"""Post activity hub: comment streams and like counters."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Mapping, TypeVar

from .. import notifications
from ..channel import HubChannel, HubSession, SessionTransport
from ..errors import PermissionDeniedError
from ..events import ClientEvent, DomainEvent, EventKind
from ..ports import LikeToggle, PostService, UserStore
from ..rooms import post_room
from ..router import EventRouter
from .commands import (
    JoinPost,
    LeavePost,
    LikeComment,
    LikePost,
    SendComment,
    UserTypingComment,
    post_commands,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


class PostHub:
    """Live comment and like traffic for posts.

    The ``add_comment`` and ``toggle_*`` methods are shared with the REST
    endpoints. Once the mutation is stored, nothing that follows it (lookups
    for notification texts, pushes) can fail the call.
    """

    commands = post_commands

    def __init__(
        self,
        channel: HubChannel,
        router: EventRouter,
        posts: PostService,
        users: UserStore,
    ) -> None:
        self.channel = channel
        self._router = router
        self._posts = posts
        self._users = users

    async def on_connect(self, user_id: int, transport: SessionTransport) -> HubSession:
        session, _ = self.channel.attach(user_id, transport)
        return session

    async def on_disconnect(self, session: HubSession) -> None:
        self.channel.detach(session)

    async def handle(self, session: HubSession, command: Any) -> None:
        if isinstance(command, SendComment):
            await self.send_comment(
                session, command.post_id, command.content, command.parent_comment_id
            )
        elif isinstance(command, JoinPost):
            await self.join_post(session, command.post_id)
        elif isinstance(command, LeavePost):
            await self.leave_post(session, command.post_id)
        elif isinstance(command, LikePost):
            await self.like_post(session, command.post_id)
        elif isinstance(command, LikeComment):
            await self.like_comment(session, command.comment_id)
        elif isinstance(command, UserTypingComment):
            await self.typing_comment(session, command.post_id, command.is_typing)
        else:  # pragma: no cover - the command adapter rejects anything else
            raise TypeError(f"Unsupported post command: {command!r}")

    async def join_post(self, session: HubSession, post_id: int) -> None:
        await self._posts.get_post(post_id)
        self.channel.join_room(post_room(post_id), session)

    async def leave_post(self, session: HubSession, post_id: int) -> None:
        self.channel.leave_room(post_room(post_id), session)

    async def send_comment(
        self,
        session: HubSession,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
    ) -> Mapping[str, Any]:
        return await self.add_comment(session.user_id, post_id, content, parent_comment_id)

    async def add_comment(
        self,
        user_id: int,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
    ) -> Mapping[str, Any]:
        comment = await self._posts.add_comment(user_id, post_id, content, parent_comment_id)
        await self.publish_comment(comment)
        return comment

    async def publish_comment(self, comment: Mapping[str, Any]) -> None:
        """Show a stored comment to the post's viewers and notify the owners involved."""

        post_id = comment["post_id"]
        await self._router.route(
            DomainEvent(
                kind=EventKind.POST_COMMENT,
                actor_id=comment["user_id"],
                room=post_room(post_id),
                channel=self.channel.name,
                client_event=ClientEvent.RECEIVE_COMMENT,
                payload=comment,
            )
        )

        post = await self._follow_up(f"post {post_id}", self._posts.get_post(post_id))
        if post is None:
            return
        await self.channel.push(
            self.channel.all_sessions(),
            ClientEvent.NEW_COMMENT,
            {"post_id": post_id, "comments_count": post["comments_count"]},
        )

        author = comment.get("author") or await self._follow_up(
            f"user {comment['user_id']}", self._users.get_public_user(comment["user_id"])
        )
        if author is None:
            return
        await self._router.route(
            notifications.post_commented(author, post["user_id"], post_id, comment)
        )

        parent_id = comment.get("parent_comment_id")
        if parent_id is None:
            return
        parent = await self._follow_up(f"comment {parent_id}", self._posts.get_comment(parent_id))
        if parent is not None:
            await self._router.route(
                notifications.comment_replied(author, parent["user_id"], post_id, comment)
            )

    async def like_post(self, session: HubSession, post_id: int) -> LikeToggle:
        return await self.toggle_post_like(session.user_id, post_id)

    async def toggle_post_like(self, user_id: int, post_id: int) -> LikeToggle:
        post = await self._posts.get_post(post_id)
        toggle = await self._posts.toggle_post_like(user_id, post_id)
        await self.publish_post_like(user_id, post, toggle)
        return toggle

    async def publish_post_like(
        self, user_id: int, post: Mapping[str, Any], toggle: LikeToggle
    ) -> None:
        post_id = post["id"]
        await self._router.route(
            DomainEvent(
                kind=EventKind.POST_LIKE,
                actor_id=user_id,
                room=post_room(post_id),
                channel=self.channel.name,
                client_event=ClientEvent.POST_LIKE_UPDATE,
                payload={
                    "post_id": post_id,
                    "likes_count": toggle.likes_count,
                    "is_liked": toggle.liked,
                    "user_id": user_id,
                },
            )
        )
        if not toggle.liked or post["user_id"] == user_id:
            return
        actor = await self._follow_up(f"user {user_id}", self._users.get_public_user(user_id))
        if actor is not None:
            await self._router.route(notifications.post_liked(actor, post["user_id"], post_id))

    async def like_comment(self, session: HubSession, comment_id: int) -> LikeToggle:
        return await self.toggle_comment_like(session.user_id, comment_id)

    async def toggle_comment_like(self, user_id: int, comment_id: int) -> LikeToggle:
        comment = await self._posts.get_comment(comment_id)
        toggle = await self._posts.toggle_comment_like(user_id, comment_id)
        await self.publish_comment_like(user_id, comment, toggle)
        return toggle

    async def publish_comment_like(
        self, user_id: int, comment: Mapping[str, Any], toggle: LikeToggle
    ) -> None:
        comment_id = comment["id"]
        await self._router.route(
            DomainEvent(
                kind=EventKind.COMMENT_LIKE,
                actor_id=user_id,
                room=post_room(comment["post_id"]),
                channel=self.channel.name,
                client_event=ClientEvent.COMMENT_LIKE_UPDATE,
                payload={
                    "comment_id": comment_id,
                    "post_id": comment["post_id"],
                    "likes_count": toggle.likes_count,
                    "is_liked": toggle.liked,
                    "user_id": user_id,
                },
            )
        )
        if not toggle.liked or comment["user_id"] == user_id:
            return
        actor = await self._follow_up(f"user {user_id}", self._users.get_public_user(user_id))
        if actor is not None:
            await self._router.route(
                notifications.comment_liked(actor, comment["user_id"], comment_id)
            )

    async def typing_comment(self, session: HubSession, post_id: int, is_typing: bool) -> None:
        room = post_room(post_id)
        if not self.channel.rooms.is_member(room, session.session_id):
            raise PermissionDeniedError("Join the post before sending typing updates")
        await self._router.route(
            DomainEvent(
                kind=EventKind.COMMENT_TYPING,
                actor_id=session.user_id,
                room=room,
                channel=self.channel.name,
                client_event=ClientEvent.USER_TYPING_COMMENT,
                payload={"user_id": session.user_id, "post_id": post_id, "is_typing": is_typing},
                exclude_session=session.session_id,
            )
        )

    async def _follow_up(self, what: str, lookup: Awaitable[T]) -> T | None:
        try:
            return await lookup
        except Exception:
            logger.warning(
                "Skipping follow-up events: lookup of %s failed",
                what,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return None
