"""Bounded in-memory session storage for the call relay.

Sessions live in an LRU-ordered mapping of session_id -> Session:

- a token always maps to the same Session object while it is stored;
- the least recently used session is evicted once ``max_entries`` is
  exceeded;
- sessions idle for longer than ``ttl_seconds`` are dropped, and their
  token gets a fresh empty Session on next contact.

Nothing is persisted; a restart forgets every conversation.
"""

import time
from collections import OrderedDict
from typing import Callable, Iterable, Optional

from ..models.session_models import Session, Turn


class SessionStore:
    """In-memory session store with capacity and idle-time bounds.

    Parameters
    ----------
    max_entries:
        Maximum number of live sessions. Must be positive.
    ttl_seconds:
        Idle time after which a session expires. ``None`` or ``0`` disables
        expiry.
    clock:
        Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: Optional[float] = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._max_entries = max_entries
        self._ttl = ttl_seconds or None
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get_or_create(self, session_id: str) -> Session:
        """Return the Session for ``session_id``, creating it on first contact."""
        now = self._clock()
        self._expire(now)

        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id, last_seen=now)
            self._sessions[session_id] = session
            self._evict_overflow()
        else:
            session.last_seen = now
            self._sessions.move_to_end(session_id)
        return session

    def clear(self, session: Session) -> None:
        """Drop the conversation history, keeping the selected character."""
        session.conversation_history = []

    def set_character(self, session: Session, character_id: str) -> None:
        """Select a character; prior context no longer applies."""
        session.selected_character = character_id
        session.conversation_history = []

    def append_turns(self, session: Session, turns: Iterable[Turn]) -> None:
        """Append ``turns`` in order as a single update."""
        session.conversation_history = [*session.conversation_history, *turns]

    def reset(self, session: Session) -> None:
        """Forget both the history and the selected character."""
        session.selected_character = None
        session.conversation_history = []

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _expire(self, now: float) -> None:
        if self._ttl is None:
            return
        # Oldest entries sit at the front; stop at the first live one.
        while self._sessions:
            session_id, session = next(iter(self._sessions.items()))
            if now - session.last_seen < self._ttl:
                break
            del self._sessions[session_id]

    def _evict_overflow(self) -> None:
        while len(self._sessions) > self._max_entries:
            self._sessions.popitem(last=False)
