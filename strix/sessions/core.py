"""
Strix sessions - Core types.

Defines:
- SessionID: Opaque cryptographic identifier
- Session: Key-value state container with flash support
"""

from __future__ import annotations

import base64
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


# ============================================================================
# SessionID - Opaque Cryptographic Identifier
# ============================================================================

class SessionID:
    """
    Opaque session identifier with cryptographic randomness.

    Rules:
    - Never encode meaning (no user ID, no timestamps)
    - 32 random bytes, URL-safe encoded
    - Prefixed for identification (sess_)

    Example:
        >>> sid = SessionID()
        >>> SessionID.from_string(str(sid)) == sid
        True
    """

    __slots__ = ("_raw", "_encoded")

    def __init__(self, raw: bytes | None = None):
        if raw is None:
            raw = secrets.token_bytes(32)
        elif len(raw) != 32:
            raise ValueError("Session ID must be exactly 32 bytes")

        self._raw = raw
        self._encoded = f"sess_{base64.urlsafe_b64encode(raw).decode().rstrip('=')}"

    def __str__(self) -> str:
        return self._encoded

    def __repr__(self) -> str:
        return f"SessionID({self._encoded[:16]}...)"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SessionID):
            return False
        return self._raw == other._raw

    def __hash__(self) -> int:
        return hash(self._raw)

    @classmethod
    def from_string(cls, encoded: str) -> SessionID:
        """
        Parse session ID from encoded string.

        Raises:
            ValueError: If format is invalid
        """
        if not encoded.startswith("sess_"):
            raise ValueError("Invalid session ID format: must start with 'sess_'")

        raw_b64 = encoded[5:]
        padding = 4 - (len(raw_b64) % 4)
        if padding != 4:
            raw_b64 += "=" * padding

        try:
            raw = base64.urlsafe_b64decode(raw_b64)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid session ID encoding: {e}") from e

        return cls(raw)


# ============================================================================
# Session - Core Data Object
# ============================================================================

FLASH_KEY = "_flash"
_MISSING = object()


@dataclass
class Session:
    """
    Session state for one client.

    Obtained per request from the request context; persisted between
    requests by a SessionStore. Every mutation marks the session dirty so
    the middleware knows to save it.

    Attributes:
        id: Opaque identifier, sent to the client as a cookie
        data: Application state
        created_at: When the session was created
        expires_at: When the session expires (None = never)
        is_new: Created during this request, not yet stored
    """

    id: SessionID = field(default_factory=SessionID)
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_accessed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime | None = None
    is_new: bool = True

    _dirty: bool = field(default=False, repr=False)
    _destroyed: bool = field(default=False, repr=False)
    _previous_id: SessionID | None = field(default=None, repr=False)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return key in self.data

    # ------------------------------------------------------------------
    # Key-value access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
        self._dirty = True

    def has(self, key: str) -> bool:
        return key in self.data

    def remove(self, key: str) -> None:
        if key in self.data:
            del self.data[key]
            self._dirty = True

    def all(self) -> dict[str, Any]:
        return {k: v for k, v in self.data.items() if k != FLASH_KEY}

    def clear(self) -> None:
        self.data.clear()
        self._dirty = True

    def flash(self, key: str, value: Any = _MISSING) -> Any:
        """
        One-shot messages.

        ``flash(key, value)`` stores a message; ``flash(key)`` returns it
        and removes it, or returns None when nothing was flashed.
        """
        bucket = self.data.get(FLASH_KEY)
        if value is not _MISSING:
            if bucket is None:
                bucket = self.data[FLASH_KEY] = {}
            bucket[key] = value
            self._dirty = True
            return None

        if not bucket or key not in bucket:
            return None
        message = bucket.pop(key)
        if not bucket:
            del self.data[FLASH_KEY]
        self._dirty = True
        return message

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Drop all data and mark the session for deletion from the store."""
        self.data.clear()
        self._destroyed = True
        self._dirty = True

    def regenerate(self) -> None:
        """Issue a fresh ID, keeping the data. Use after login."""
        if self._previous_id is None and not self.is_new:
            self._previous_id = self.id
        self.id = SessionID()
        self._dirty = True

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at

    def touch(self, ttl: timedelta | None = None, now: datetime | None = None) -> None:
        now = now or datetime.now(timezone.utc)
        self.last_accessed_at = now
        if ttl is not None:
            self.expires_at = now + ttl

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def previous_id(self) -> SessionID | None:
        return self._previous_id

    @property
    def id_changed(self) -> bool:
        return self.is_new or self._previous_id is not None

    def mark_clean(self) -> None:
        self._dirty = False
        self.is_new = False
        self._previous_id = None
