"""Posts, comments and likes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from huddle.realtime.errors import ConflictError, NotFoundError, PermissionDeniedError
from huddle.realtime.ports import LikeToggle

from app.database import SessionLocal
from app.models import Comment, CommentLike, Post, PostLike, PostType
from app.schemas import CommentRead, PostRead
from app.services.users import require_user


def _post_type(text_content: str | None, media_kind: str | None) -> PostType:
    if media_kind is None:
        return PostType.TEXT
    if media_kind == "video":
        return PostType.TEXT_WITH_VIDEO if text_content else PostType.VIDEO
    return PostType.TEXT_WITH_IMAGE if text_content else PostType.IMAGE


def _media_kind(post_type: PostType) -> str | None:
    if post_type in (PostType.IMAGE, PostType.TEXT_WITH_IMAGE):
        return "image"
    if post_type in (PostType.VIDEO, PostType.TEXT_WITH_VIDEO):
        return "video"
    return None


def serialize_comment(comment: Comment) -> dict[str, Any]:
    return CommentRead.model_validate(comment).model_dump(mode="json")


class PostService:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def create_post(
        self,
        user_id: int,
        *,
        text_content: str | None = None,
        media_url: str | None = None,
        thumbnail_url: str | None = None,
        media_kind: str | None = None,
    ) -> dict[str, Any]:
        with self._session_factory() as db:
            post = Post(
                user_id=user_id,
                text_content=text_content,
                media_url=media_url,
                thumbnail_url=thumbnail_url,
                type=_post_type(text_content, media_kind if media_url else None),
            )
            db.add(post)
            db.commit()
            db.refresh(post)
            return self._serialize_post(db, post, user_id)

    async def get_post(self, post_id: int, viewer_id: int | None = None) -> dict[str, Any]:
        with self._session_factory() as db:
            return self._serialize_post(db, self._require_post(db, post_id), viewer_id)

    async def delete_post(self, user_id: int, post_id: int) -> None:
        with self._session_factory() as db:
            post = self._require_post(db, post_id)
            if post.user_id != user_id:
                raise PermissionDeniedError("You can only delete your own posts")
            post.is_deleted = True
            db.commit()

    async def update_post(self, user_id: int, post_id: int, text_content: str | None) -> dict[str, Any]:
        with self._session_factory() as db:
            post = self._require_post(db, post_id)
            if post.user_id != user_id:
                raise PermissionDeniedError("You can only edit your own posts")
            if not text_content and not post.media_url:
                raise ConflictError("A post needs text or media")
            post.text_content = text_content or None
            post.type = _post_type(post.text_content, _media_kind(post.type))
            post.is_edited = True
            post.edited_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(post)
            return self._serialize_post(db, post, user_id)

    async def user_posts(
        self, user_id: int, viewer_id: int, *, skip: int = 0, take: int = 20
    ) -> list[dict[str, Any]]:
        """Posts written by *user_id*, newest first."""

        stmt = (
            select(Post)
            .where(Post.user_id == user_id, Post.is_deleted.is_(False))
            .options(selectinload(Post.author))
            .order_by(Post.id.desc())
            .offset(skip)
            .limit(take)
        )
        with self._session_factory() as db:
            require_user(db, user_id)
            posts = db.execute(stmt).scalars().all()
            return [self._serialize_post(db, post, viewer_id) for post in posts]

    async def feed(self, viewer_id: int, *, skip: int = 0, take: int = 20) -> list[dict[str, Any]]:
        stmt = (
            select(Post)
            .where(Post.is_deleted.is_(False))
            .options(selectinload(Post.author))
            .order_by(Post.id.desc())
            .offset(skip)
            .limit(take)
        )
        with self._session_factory() as db:
            posts = db.execute(stmt).scalars().all()
            return [self._serialize_post(db, post, viewer_id) for post in posts]

    async def list_comments(self, post_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(Comment)
            .where(Comment.post_id == post_id, Comment.is_deleted.is_(False))
            .options(selectinload(Comment.author))
            .order_by(Comment.id.asc())
        )
        with self._session_factory() as db:
            self._require_post(db, post_id)
            return [serialize_comment(comment) for comment in db.execute(stmt).scalars()]

    async def add_comment(
        self,
        user_id: int,
        post_id: int,
        content: str,
        parent_comment_id: int | None = None,
    ) -> dict[str, Any]:
        content = content.strip()
        if not content:
            raise ConflictError("Comment content cannot be empty")
        with self._session_factory() as db:
            post = self._require_post(db, post_id)
            if parent_comment_id is not None:
                parent = self._require_comment(db, parent_comment_id)
                if parent.post_id != post_id:
                    raise ConflictError("Parent comment belongs to another post")
            comment = Comment(
                post_id=post_id,
                user_id=user_id,
                parent_comment_id=parent_comment_id,
                content=content,
            )
            post.comments_count += 1
            db.add(comment)
            db.commit()
            db.refresh(comment)
            return serialize_comment(comment)

    async def get_comment(self, comment_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            return serialize_comment(self._require_comment(db, comment_id))

    async def update_comment(self, user_id: int, comment_id: int, content: str) -> dict[str, Any]:
        content = content.strip()
        if not content:
            raise ConflictError("Comment content cannot be empty")
        with self._session_factory() as db:
            comment = self._require_comment(db, comment_id)
            if comment.user_id != user_id:
                raise PermissionDeniedError("You can only edit your own comments")
            comment.content = content
            comment.is_edited = True
            comment.edited_at = datetime.now(timezone.utc)
            db.commit()
            db.refresh(comment)
            return serialize_comment(comment)

    async def delete_comment(self, user_id: int, comment_id: int) -> None:
        with self._session_factory() as db:
            comment = self._require_comment(db, comment_id)
            if comment.user_id != user_id:
                raise PermissionDeniedError("You can only delete your own comments")
            comment.is_deleted = True
            comment.post.comments_count = max(comment.post.comments_count - 1, 0)
            db.commit()

    async def toggle_post_like(self, user_id: int, post_id: int) -> LikeToggle:
        with self._session_factory() as db:
            post = self._require_post(db, post_id)
            like = db.execute(
                select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user_id)
            ).scalar_one_or_none()
            if like is None:
                db.add(PostLike(post_id=post_id, user_id=user_id))
                post.likes_count += 1
                liked = True
            else:
                db.delete(like)
                post.likes_count = max(post.likes_count - 1, 0)
                liked = False
            db.commit()
            return LikeToggle(liked=liked, likes_count=post.likes_count)

    async def toggle_comment_like(self, user_id: int, comment_id: int) -> LikeToggle:
        with self._session_factory() as db:
            comment = self._require_comment(db, comment_id)
            like = db.execute(
                select(CommentLike).where(
                    CommentLike.comment_id == comment_id, CommentLike.user_id == user_id
                )
            ).scalar_one_or_none()
            if like is None:
                db.add(CommentLike(comment_id=comment_id, user_id=user_id))
                comment.likes_count += 1
                liked = True
            else:
                db.delete(like)
                comment.likes_count = max(comment.likes_count - 1, 0)
                liked = False
            db.commit()
            return LikeToggle(liked=liked, likes_count=comment.likes_count)

    @staticmethod
    def _require_post(db: Session, post_id: int) -> Post:
        post = db.get(Post, post_id)
        if post is None or post.is_deleted:
            raise NotFoundError("Post not found")
        return post

    @staticmethod
    def _require_comment(db: Session, comment_id: int) -> Comment:
        comment = db.get(Comment, comment_id)
        if comment is None or comment.is_deleted:
            raise NotFoundError("Comment not found")
        return comment

    @staticmethod
    def _serialize_post(db: Session, post: Post, viewer_id: int | None) -> dict[str, Any]:
        payload = PostRead.model_validate(post)
        if viewer_id is not None:
            payload.is_liked = (
                db.execute(
                    select(PostLike.id).where(
                        PostLike.post_id == post.id, PostLike.user_id == viewer_id
                    )
                ).first()
                is not None
            )
        return payload.model_dump(mode="json")
