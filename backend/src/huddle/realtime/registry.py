"""In-memory registry mapping users to their live hub sessions."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Set


@dataclass(slots=True)
class _UserEntry:
    """Session set of a single user guarded by its own lock.

    An entry is *retired* once its set has been emptied and it has been
    unlinked from the registry. Writers that raced with the retirement
    observe the flag and retry against a fresh entry.
    """

    sessions: Set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock)
    retired: bool = False


class ConnectionRegistry:
    """Track which session identifiers are open for each user.

    Locking discipline: every mutation of a user's session set, and the
    check whether that mutation crossed the zero/non-zero boundary, happens
    while holding that user's entry lock. The registry-wide map is only
    touched through atomic ``dict`` operations, so unrelated users never
    serialize behind each other.
    """

    def __init__(self) -> None:
        self._entries: Dict[int, _UserEntry] = {}

    def add_session(self, user_id: int, session_id: str) -> bool:
        """Register *session_id* for *user_id*.

        Returns ``True`` when this call moved the user from zero sessions
        to one. Adding an already registered pair is a no-op.
        """

        while True:
            entry = self._entries.setdefault(user_id, _UserEntry())
            with entry.lock:
                if entry.retired:
                    continue
                was_empty = not entry.sessions
                entry.sessions.add(session_id)
                return was_empty

    def remove_session(self, user_id: int, session_id: str) -> bool:
        """Unregister *session_id*; drop the user entry once it is empty.

        Returns ``True`` when this call removed the user's last session.
        Removing an unknown pair is silently ignored.
        """

        entry = self._entries.get(user_id)
        if entry is None:
            return False
        with entry.lock:
            if entry.retired or session_id not in entry.sessions:
                return False
            entry.sessions.discard(session_id)
            if entry.sessions:
                return False
            entry.retired = True
            self._unlink(user_id, entry)
            return True

    def get_sessions(self, user_id: int) -> FrozenSet[str]:
        entry = self._entries.get(user_id)
        if entry is None:
            return frozenset()
        with entry.lock:
            return frozenset(entry.sessions)

    def clear_user(self, user_id: int) -> FrozenSet[str]:
        """Force-remove every session of *user_id* and return what was removed."""

        entry = self._entries.get(user_id)
        if entry is None:
            return frozenset()
        with entry.lock:
            removed = frozenset(entry.sessions)
            entry.sessions.clear()
            entry.retired = True
            self._unlink(user_id, entry)
            return removed

    def online_users(self) -> FrozenSet[int]:
        return frozenset(self._entries.copy())

    def session_count(self) -> int:
        return sum(len(self.get_sessions(user_id)) for user_id in self._entries.copy())

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _unlink(self, user_id: int, entry: _UserEntry) -> None:
        # Only drop the key while it still points at the retired entry.
        if self._entries.get(user_id) is entry:
            self._entries.pop(user_id, None)
