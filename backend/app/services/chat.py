"""Conversations and messages."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from huddle.realtime.errors import ConflictError, NotFoundError, PermissionDeniedError

from app.config import get_settings
from app.database import SessionLocal
from app.models import Conversation, ConversationParticipant, Message, MessageType, User
from app.schemas import ConversationRead, MessageRead, PublicUser

settings = get_settings()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def serialize_message(message: Message) -> dict[str, Any]:
    return MessageRead.model_validate(message).model_dump(mode="json")


class ChatService:
    """Relational store for conversations; enforces participant checks."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    async def create_conversation(
        self, creator_id: int, participant_ids: Iterable[int], name: str | None = None
    ) -> dict[str, Any]:
        members = {creator_id, *participant_ids}
        if len(members) < 2:
            raise ConflictError("A conversation needs at least one other participant")

        with self._session_factory() as db:
            found = set(db.execute(select(User.id).where(User.id.in_(members))).scalars())
            if found != members:
                raise NotFoundError("User not found")

            is_group = len(members) > 2
            if not is_group:
                existing = self._find_direct(db, members)
                if existing is not None:
                    return self._serialize_conversation(db, existing, creator_id)

            conversation = Conversation(name=name, is_group=is_group)
            conversation.participants = [
                ConversationParticipant(user_id=user_id) for user_id in sorted(members)
            ]
            db.add(conversation)
            db.commit()
            db.refresh(conversation)
            return self._serialize_conversation(db, conversation, creator_id)

    async def list_conversations(self, user_id: int) -> list[dict[str, Any]]:
        stmt = (
            select(Conversation)
            .join(ConversationParticipant)
            .where(ConversationParticipant.user_id == user_id)
            .options(
                selectinload(Conversation.participants).selectinload(ConversationParticipant.user)
            )
            .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        )
        with self._session_factory() as db:
            conversations = db.execute(stmt).scalars().unique().all()
            return [self._serialize_conversation(db, item, user_id) for item in conversations]

    async def get_conversation(self, user_id: int, conversation_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            conversation = self._require_conversation(db, conversation_id)
            self._require_participant(conversation, user_id)
            return self._serialize_conversation(db, conversation, user_id)

    async def list_messages(
        self,
        user_id: int,
        conversation_id: int,
        *,
        before_id: int | None = None,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        limit = min(limit or settings.chat_history_default_limit, settings.chat_history_max_limit)
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id, Message.is_deleted.is_(False))
            .options(selectinload(Message.sender))
            .order_by(Message.id.desc())
            .limit(limit)
        )
        if before_id is not None:
            stmt = stmt.where(Message.id < before_id)
        with self._session_factory() as db:
            conversation = self._require_conversation(db, conversation_id)
            self._require_participant(conversation, user_id)
            messages = list(db.execute(stmt).scalars())
            messages.reverse()
            return [serialize_message(message) for message in messages]

    async def get_participants(self, conversation_id: int) -> list[int]:
        with self._session_factory() as db:
            conversation = self._require_conversation(db, conversation_id)
            return [participant.user_id for participant in conversation.participants]

    async def send_message(
        self, sender_id: int, conversation_id: int, content: str, message_type: str = "text"
    ) -> dict[str, Any]:
        content = content.strip()
        if not content:
            raise ConflictError("Message content cannot be empty")
        if len(content) > settings.chat_message_max_length:
            raise ConflictError(
                f"Message exceeds {settings.chat_message_max_length} characters"
            )

        with self._session_factory() as db:
            conversation = self._require_conversation(db, conversation_id)
            sender = self._require_participant(conversation, sender_id)
            now = _utcnow()
            message = Message(
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                type=MessageType(message_type),
                sent_at=now,
            )
            conversation.last_message_at = now
            sender.last_read_at = now
            db.add(message)
            db.commit()
            db.refresh(message)
            return serialize_message(message)

    async def mark_message_as_read(self, user_id: int, message_id: int) -> dict[str, Any]:
        with self._session_factory() as db:
            message = db.get(Message, message_id)
            if message is None or message.is_deleted:
                raise NotFoundError("Message not found")
            participant = self._require_participant(message.conversation, user_id)
            participant.last_read_at = _utcnow()
            db.commit()
            db.refresh(message)
            return serialize_message(message)

    @staticmethod
    def _find_direct(db: Session, members: set[int]) -> Conversation | None:
        pair = sorted(members)
        stmt = (
            select(Conversation)
            .join(ConversationParticipant)
            .where(
                Conversation.is_group.is_(False),
                ConversationParticipant.user_id.in_(pair),
            )
            .group_by(Conversation.id)
            .having(func.count(ConversationParticipant.id) == 2)
        )
        for conversation in db.execute(stmt).scalars():
            if sorted(p.user_id for p in conversation.participants) == pair:
                return conversation
        return None

    @staticmethod
    def _require_conversation(db: Session, conversation_id: int) -> Conversation:
        conversation = db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        return conversation

    @staticmethod
    def _require_participant(conversation: Conversation, user_id: int) -> ConversationParticipant:
        for participant in conversation.participants:
            if participant.user_id == user_id:
                return participant
        raise PermissionDeniedError("You are not a participant of this conversation")

    @staticmethod
    def _serialize_conversation(
        db: Session, conversation: Conversation, viewer_id: int
    ) -> dict[str, Any]:
        last_message = db.execute(
            select(Message)
            .where(Message.conversation_id == conversation.id, Message.is_deleted.is_(False))
            .order_by(Message.id.desc())
            .limit(1)
        ).scalar_one_or_none()

        unread_stmt = select(func.count(Message.id)).where(
            Message.conversation_id == conversation.id,
            Message.sender_id != viewer_id,
            Message.is_deleted.is_(False),
        )
        viewer = next(
            (p for p in conversation.participants if p.user_id == viewer_id), None
        )
        if viewer is not None and viewer.last_read_at is not None:
            unread_stmt = unread_stmt.where(Message.sent_at > viewer.last_read_at)

        return ConversationRead(
            id=conversation.id,
            name=conversation.name,
            is_group=conversation.is_group,
            created_at=conversation.created_at,
            last_message_at=conversation.last_message_at,
            participants=[
                PublicUser.model_validate(participant.user)
                for participant in conversation.participants
            ],
            last_message=MessageRead.model_validate(last_message) if last_message else None,
            unread_count=int(db.execute(unread_stmt).scalar_one()),
        ).model_dump(mode="json")
