"""Chat hub: presence, conversation rooms and messages."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ..channel import HubChannel, HubSession, SessionTransport
from ..errors import PermissionDeniedError
from ..events import ClientEvent, DomainEvent, EventKind, NotificationContent
from ..notifications import display_name
from ..ports import ChatService
from ..presence import PresenceTracker
from ..rooms import conversation_room
from ..router import EventRouter, RouteResult
from .commands import (
    JoinConversation,
    LeaveConversation,
    MarkMessageAsRead,
    SendMessage,
    TypingIndicator,
    chat_commands,
)


logger = logging.getLogger(__name__)


class ChatHub:
    commands = chat_commands

    def __init__(
        self,
        channel: HubChannel,
        router: EventRouter,
        presence: PresenceTracker,
        chat: ChatService,
    ) -> None:
        self.channel = channel
        self._router = router
        self._presence = presence
        self._chat = chat

    async def on_connect(self, user_id: int, transport: SessionTransport) -> HubSession:
        return await self._presence.connect(user_id, transport)

    async def on_disconnect(self, session: HubSession) -> None:
        await self._presence.disconnect(session)

    async def handle(self, session: HubSession, command: Any) -> None:
        if isinstance(command, SendMessage):
            await self.send_message(
                session, command.conversation_id, command.content, command.message_type
            )
        elif isinstance(command, JoinConversation):
            await self.join_conversation(session, command.conversation_id)
        elif isinstance(command, LeaveConversation):
            await self.leave_conversation(session, command.conversation_id)
        elif isinstance(command, TypingIndicator):
            await self.typing_indicator(session, command.conversation_id, command.is_typing)
        elif isinstance(command, MarkMessageAsRead):
            await self.mark_message_as_read(session, command.message_id)
        else:  # pragma: no cover - the command adapter rejects anything else
            raise TypeError(f"Unsupported chat command: {command!r}")

    async def join_conversation(self, session: HubSession, conversation_id: int) -> None:
        await self._require_participant(session.user_id, conversation_id)
        room = conversation_room(conversation_id)
        self.channel.join_room(room, session)
        await self._router.route(
            self._room_event(
                EventKind.CONVERSATION_JOINED,
                ClientEvent.USER_JOINED_CONVERSATION,
                session,
                conversation_id,
                {"user_id": session.user_id, "conversation_id": conversation_id},
            )
        )

    async def leave_conversation(self, session: HubSession, conversation_id: int) -> None:
        if not self.channel.leave_room(conversation_room(conversation_id), session):
            return
        await self._router.route(
            self._room_event(
                EventKind.CONVERSATION_LEFT,
                ClientEvent.USER_LEFT_CONVERSATION,
                session,
                conversation_id,
                {"user_id": session.user_id, "conversation_id": conversation_id},
            )
        )

    async def send_message(
        self,
        session: HubSession,
        conversation_id: int,
        content: str,
        message_type: str = "text",
    ) -> Mapping[str, Any]:
        message = await self._chat.send_message(
            session.user_id, conversation_id, content, message_type
        )
        await self.publish_message(message)
        await self.channel.reply(session, ClientEvent.MESSAGE_SENT, message)
        return message

    async def publish_message(self, message: Mapping[str, Any]) -> RouteResult:
        """Deliver a stored message to the other participants of its conversation."""

        try:
            participants = await self._chat.get_participants(message["conversation_id"])
        except Exception:
            logger.warning(
                "Message %s stored but participants of conversation %s could not be loaded",
                message["id"],
                message["conversation_id"],
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            return RouteResult()
        sender = message.get("sender") or {"id": message["sender_id"]}
        event = DomainEvent(
            kind=EventKind.NEW_MESSAGE,
            actor_id=message["sender_id"],
            recipient_ids=tuple(participants),
            channel=self.channel.name,
            client_event=ClientEvent.RECEIVE_MESSAGE,
            payload=message,
            notification=NotificationContent(
                title="New Message",
                message=f"{display_name(sender)}: {message['content']}",
                data={
                    "conversation_id": message["conversation_id"],
                    "message_id": message["id"],
                },
            ),
        )
        result = await self._router.route(event)
        logger.debug(
            "Message %s delivered to %s sessions (%s failed)",
            message["id"],
            result.pushed,
            result.failed,
        )
        return result

    async def typing_indicator(
        self, session: HubSession, conversation_id: int, is_typing: bool
    ) -> None:
        room = conversation_room(conversation_id)
        if not self.channel.rooms.is_member(room, session.session_id):
            raise PermissionDeniedError("Join the conversation before sending typing updates")
        await self._router.route(
            self._room_event(
                EventKind.USER_TYPING,
                ClientEvent.USER_TYPING,
                session,
                conversation_id,
                {
                    "user_id": session.user_id,
                    "conversation_id": conversation_id,
                    "is_typing": is_typing,
                },
                exclude_caller=True,
            )
        )

    async def mark_message_as_read(self, session: HubSession, message_id: int) -> None:
        message = await self._chat.mark_message_as_read(session.user_id, message_id)
        await self._router.route(
            DomainEvent(
                kind=EventKind.MESSAGE_READ,
                actor_id=session.user_id,
                recipient_ids=(message["sender_id"],),
                channel=self.channel.name,
                client_event=ClientEvent.MESSAGE_READ,
                payload={
                    "message_id": message_id,
                    "conversation_id": message["conversation_id"],
                    "user_id": session.user_id,
                },
            )
        )

    async def _require_participant(self, user_id: int, conversation_id: int) -> None:
        participants = await self._chat.get_participants(conversation_id)
        if user_id not in participants:
            raise PermissionDeniedError("You are not a participant of this conversation")

    def _room_event(
        self,
        kind: EventKind,
        client_event: str,
        session: HubSession,
        conversation_id: int,
        payload: Mapping[str, Any],
        *,
        exclude_caller: bool = False,
    ) -> DomainEvent:
        return DomainEvent(
            kind=kind,
            actor_id=session.user_id,
            room=conversation_room(conversation_id),
            channel=self.channel.name,
            client_event=client_event,
            payload=payload,
            exclude_session=session.session_id if exclude_caller else None,
        )
