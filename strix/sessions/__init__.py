"""
Strix sessions.

- Session / SessionID: per-client state and its opaque identifier
- MemoryStore: process-wide LRU-bounded storage
- SessionMiddleware: loads and commits the session around dispatch

Handlers reach the session through the request context; it is created
on first access:

    async def login(ctx):
        ctx.session.regenerate()
        ctx.session.set("user_id", user["id"])
        ctx.session.flash("success", "Welcome back!")
"""

from .core import FLASH_KEY, Session, SessionID
from .middleware import SessionMiddleware
from .store import MemoryStore, SessionStore

__all__ = [
    "Session",
    "SessionID",
    "FLASH_KEY",
    "SessionStore",
    "MemoryStore",
    "SessionMiddleware",
]
