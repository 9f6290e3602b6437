"""
Strix sessions - Session storage.

Defines the SessionStore protocol and MemoryStore, the process-wide
in-memory implementation used by the framework.
"""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Protocol

from .core import Session, SessionID

logger = logging.getLogger("strix.sessions")


class SessionStore(Protocol):
    """
    Abstract session storage interface.

    Stores only persist; they do not decide when a session is saved.
    """

    async def load(self, session_id: SessionID) -> Session | None:
        ...

    async def save(self, session: Session) -> None:
        ...

    async def delete(self, session_id: SessionID) -> None:
        ...


class MemoryStore:
    """
    In-memory session storage.

    Features:
    - Expired sessions are dropped on load and by ``cleanup_expired``
    - Max session limit (LRU eviction)

    Sessions live as long as the process; every worker process has its
    own store.

    Example:
        >>> store = MemoryStore(max_sessions=10000)
        >>> await store.save(session)
        >>> loaded = await store.load(session.id)
    """

    def __init__(self, max_sessions: int = 10000):
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, Session] = OrderedDict()
        self._lock = asyncio.Lock()

    async def load(self, session_id: SessionID) -> Session | None:
        async with self._lock:
            key = str(session_id)
            session = self._sessions.get(key)
            if session is None:
                return None
            if session.is_expired():
                del self._sessions[key]
                logger.debug("Dropped expired session %s", repr(session_id))
                return None
            self._sessions.move_to_end(key)
            return session

    async def save(self, session: Session) -> None:
        async with self._lock:
            if session.previous_id is not None:
                self._sessions.pop(str(session.previous_id), None)

            key = str(session.id)
            if key not in self._sessions and len(self._sessions) >= self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info("Session store full, evicted %s...", evicted[:16])

            self._sessions[key] = session
            self._sessions.move_to_end(key)
            session.mark_clean()

    async def delete(self, session_id: SessionID) -> None:
        async with self._lock:
            self._sessions.pop(str(session_id), None)

    async def exists(self, session_id: SessionID) -> bool:
        return str(session_id) in self._sessions

    async def cleanup_expired(self) -> int:
        """Remove expired sessions, returning how many were removed."""
        now = datetime.now(timezone.utc)
        async with self._lock:
            expired = [key for key, s in self._sessions.items() if s.is_expired(now)]
            for key in expired:
                del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)
