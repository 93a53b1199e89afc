"""Channel-local room membership for hub sessions."""

from __future__ import annotations

import threading
from typing import Dict, FrozenSet, Set


def conversation_room(conversation_id: int) -> str:
    return f"conversation:{conversation_id}"


def post_room(post_id: int) -> str:
    return f"post:{post_id}"


class RoomMembership:
    """Map room keys to the sessions that joined them.

    Rooms come into existence on the first join and disappear as soon as
    the last member leaves.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Set[str]] = {}
        self._session_rooms: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def join(self, room: str, session_id: str) -> bool:
        """Add *session_id* to *room*; return ``False`` if it was already a member."""

        with self._lock:
            members = self._members.setdefault(room, set())
            if session_id in members:
                return False
            members.add(session_id)
            self._session_rooms.setdefault(session_id, set()).add(room)
            return True

    def leave(self, room: str, session_id: str) -> bool:
        with self._lock:
            members = self._members.get(room)
            if not members or session_id not in members:
                return False
            members.discard(session_id)
            if not members:
                self._members.pop(room, None)
            self._forget(session_id, room)
            return True

    def leave_all(self, session_id: str) -> FrozenSet[str]:
        """Remove *session_id* from every room it joined."""

        with self._lock:
            rooms = self._session_rooms.pop(session_id, set())
            for room in rooms:
                members = self._members.get(room)
                if members is None:
                    continue
                members.discard(session_id)
                if not members:
                    self._members.pop(room, None)
            return frozenset(rooms)

    def members(self, room: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._members.get(room, ()))

    def rooms_of(self, session_id: str) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._session_rooms.get(session_id, ()))

    def is_member(self, room: str, session_id: str) -> bool:
        with self._lock:
            return session_id in self._members.get(room, ())

    def __contains__(self, room: object) -> bool:
        return room in self._members

    def _forget(self, session_id: str, room: str) -> None:
        rooms = self._session_rooms.get(session_id)
        if rooms is None:
            return
        rooms.discard(room)
        if not rooms:
            self._session_rooms.pop(session_id, None)
