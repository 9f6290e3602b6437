"""
Strix sessions - Cookie-backed session middleware.

Loads the client's session before dispatch and commits it afterwards.
A session is only saved (and its cookie only sent) when the request
changed it, so read-only traffic never creates sessions.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from .core import Session, SessionID
from .store import MemoryStore, SessionStore

if TYPE_CHECKING:
    from ..controller import RequestCtx
    from ..middleware import Handler
    from ..request import Request
    from ..response import Response

logger = logging.getLogger("strix.sessions")


class SessionMiddleware:
    """
    Attach the stored session to ``ctx`` and persist changes.

    Args:
        store: Session storage (defaults to a process-wide MemoryStore)
        cookie_name: Cookie carrying the session id
        ttl: Idle lifetime in seconds, renewed on every save
        secure: Send the cookie over HTTPS only
        samesite: SameSite attribute of the cookie
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        *,
        cookie_name: str = "strix_session",
        ttl: int = 7200,
        secure: bool = False,
        samesite: str = "Lax",
    ):
        self.store = store if store is not None else MemoryStore()
        self.cookie_name = cookie_name
        self.ttl = timedelta(seconds=ttl)
        self.secure = secure
        self.samesite = samesite

    async def _load(self, request: "Request") -> Optional[Session]:
        raw = request.cookie(self.cookie_name)
        if not raw:
            return None
        try:
            session_id = SessionID.from_string(raw)
        except ValueError:
            logger.debug("Ignoring malformed session cookie")
            return None
        return await self.store.load(session_id)

    async def __call__(self, request: "Request", ctx: "RequestCtx", next: "Handler") -> "Response":
        session = await self._load(request)
        if session is not None:
            ctx.session = session

        response = await next(request, ctx)

        if not ctx.session_started:
            return response
        await self.commit(ctx.session, response)
        return response

    async def commit(self, session: Session, response: "Response") -> None:
        if session.is_destroyed:
            await self.store.delete(session.id)
            if session.previous_id is not None:
                await self.store.delete(session.previous_id)
            response.delete_cookie(self.cookie_name)
            logger.debug("Session destroyed")
            return

        if not session.is_dirty:
            return

        # Every save renews the expiry, so the cookie is re-sent with it.
        session.touch(self.ttl)
        await self.store.save(session)
        response.set_cookie(
            self.cookie_name,
            str(session.id),
            max_age=int(self.ttl.total_seconds()),
            secure=self.secure,
            httponly=True,
            samesite=self.samesite,
        )
