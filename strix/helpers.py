"""
General-purpose helpers: strings, mappings, validation, security, dates
and URLs. Most of them are also exposed as template globals.
"""

from __future__ import annotations

import os
import re
import secrets
import string
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Union
from urllib.parse import urlparse
from zoneinfo import ZoneInfo

from markupsafe import Markup, escape as _escape

from .config import parse_env_value

if TYPE_CHECKING:
    from .sessions.core import Session

__all__ = [
    "str_limit",
    "str_slug",
    "str_random",
    "array_get",
    "array_only",
    "array_except",
    "is_email",
    "is_url",
    "escape",
    "e",
    "csrf_token",
    "csrf_field",
    "verify_csrf_token",
    "now",
    "today",
    "human_date",
    "url",
    "asset",
    "env",
    "CSRF_SESSION_KEY",
    "CSRF_FIELD_NAME",
]

CSRF_SESSION_KEY = "_csrf_token"
CSRF_FIELD_NAME = "_csrf_token"

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+$")
_RANDOM_ALPHABET = string.digits + string.ascii_letters


# ── Strings ──────────────────────────────────────────────────────────


def str_limit(value: str, limit: int = 100, end: str = "...") -> str:
    """Truncate to ``limit`` characters, appending ``end`` when cut."""
    if len(value) <= limit:
        return value
    return value[:limit] + end


def str_slug(value: str) -> str:
    """``"Hello, World!"`` -> ``"hello-world"``."""
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def str_random(length: int = 16) -> str:
    return "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(length))


# ── Mappings ─────────────────────────────────────────────────────────


def array_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    """
    Read a value by key or by dot path.

        array_get({"db": {"host": "x"}}, "db.host")  # "x"
    """
    if key in data:
        return data[key]
    current: Any = data
    for segment in key.split("."):
        if isinstance(current, Mapping) and segment in current:
            current = current[segment]
        else:
            return default
    return current


def array_only(data: Mapping[str, Any], keys: Union[str, Iterable[str]]) -> dict:
    wanted = {keys} if isinstance(keys, str) else set(keys)
    return {k: v for k, v in data.items() if k in wanted}


def array_except(data: Mapping[str, Any], keys: Union[str, Iterable[str]]) -> dict:
    unwanted = {keys} if isinstance(keys, str) else set(keys)
    return {k: v for k, v in data.items() if k not in unwanted}


# ── Validation ───────────────────────────────────────────────────────


def is_email(value: Any) -> bool:
    return isinstance(value, str) and bool(_EMAIL_RE.match(value))


def is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


# ── Security ─────────────────────────────────────────────────────────


def escape(value: Any) -> Markup:
    """HTML-escape ``value`` (quotes included)."""
    return _escape(value)


e = escape


def csrf_token(session: "Session") -> str:
    """Per-session CSRF token, created on first use."""
    token = session.get(CSRF_SESSION_KEY)
    if not token:
        token = secrets.token_hex(32)
        session.set(CSRF_SESSION_KEY, token)
    return token


def csrf_field(session: "Session") -> Markup:
    return Markup('<input type="hidden" name="{}" value="{}">').format(
        CSRF_FIELD_NAME, csrf_token(session)
    )


def verify_csrf_token(session: "Session", submitted: Optional[str]) -> bool:
    expected = session.get(CSRF_SESSION_KEY)
    if not expected or not submitted:
        return False
    return secrets.compare_digest(str(expected), str(submitted))


# ── Dates ────────────────────────────────────────────────────────────


def now(fmt: str = "%Y-%m-%d %H:%M:%S", tz: Optional[Union[str, ZoneInfo]] = None) -> str:
    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    return datetime.now(zone).strftime(fmt)


def today(fmt: str = "%Y-%m-%d", tz: Optional[Union[str, ZoneInfo]] = None) -> str:
    return now(fmt, tz)


def _to_datetime(value: Union[str, datetime, date, int, float]) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    parsed = datetime.fromisoformat(str(value).strip())
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def human_date(value: Union[str, datetime, date, int, float], reference: Optional[datetime] = None) -> str:
    """
    Relative description for recent moments, a short date otherwise.

        "42 seconds ago", "5 minutes ago", "3 hours ago", "2 days ago",
        then "Mar 04, 2024" once a week has passed.

    Naive values are taken as UTC.
    """
    moment = _to_datetime(value)
    reference = reference or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)
    diff = int((reference - moment).total_seconds())

    if diff < 60:
        return f"{diff} seconds ago"
    if diff < 3600:
        return f"{diff // 60} minutes ago"
    if diff < 86400:
        return f"{diff // 3600} hours ago"
    if diff < 604800:
        return f"{diff // 86400} days ago"
    return moment.strftime("%b %d, %Y")


# ── URLs / environment ───────────────────────────────────────────────


def url(path: str = "", base_url: str = "") -> str:
    return base_url.rstrip("/") + "/" + path.lstrip("/")


def asset(path: str, base_url: str = "") -> str:
    return url("assets/" + path.lstrip("/"), base_url)


def env(key: str, default: Any = None) -> Any:
    """Environment lookup with ``true``/``false``/``null`` coercion."""
    value = os.environ.get(key)
    if value is None:
        return default
    return parse_env_value(value)
