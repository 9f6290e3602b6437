"""
HTTP response.

A Response is a plain value: status, headers and a fully materialised
body. Handlers build one (or return something the dispatcher coerces into
one) and the ASGI adapter sends it.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from decimal import Decimal
from email.utils import formatdate
from typing import Any, Dict, List, Mapping, Optional, Union


def _json_default_serializer(o: Any) -> Any:
    """Serialize values the json module does not know about."""
    if isinstance(o, (datetime, date)):
        return o.isoformat()
    if isinstance(o, Decimal):
        return float(o)
    if isinstance(o, bytes):
        return o.decode("utf-8", errors="replace")
    if isinstance(o, (set, frozenset)):
        return list(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


class Response:
    """
    HTTP response with ASGI 3 sending.

    Features:
    - JSON, HTML, text and redirect factories
    - Multi-value headers (Set-Cookie)
    - Cookie helpers
    """

    def __init__(
        self,
        content: Union[bytes, str, Mapping, list] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, Union[str, List[str]]]] = None,
        media_type: Optional[str] = None,
        *,
        encoding: str = "utf-8",
    ):
        self.status = status
        self.encoding = encoding
        self._headers: Dict[str, Union[str, List[str]]] = {}
        if headers:
            for key, value in headers.items():
                if isinstance(value, (list, tuple)):
                    self._headers[key.lower()] = list(value)
                else:
                    self._headers[key.lower()] = value

        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers and content != b"":
            self._headers["content-type"] = self._detect_media_type(content)

        self.body = self._encode_body(content)

    @property
    def headers(self) -> Dict[str, Union[str, List[str]]]:
        return self._headers

    def _detect_media_type(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            return "application/json; charset=utf-8"
        if isinstance(content, str):
            return "text/plain; charset=utf-8"
        return "application/octet-stream"

    def _encode_body(self, content: Any) -> bytes:
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.encoding)
        if isinstance(content, (dict, list)):
            return json.dumps(content, default=_json_default_serializer).encode(self.encoding)
        return str(content).encode(self.encoding)

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        """
        Create JSON response.

        Args:
            obj: Object to serialize
            status: HTTP status
            headers: Additional headers
        """
        content = json.dumps(obj, default=_json_default_serializer)
        return cls(
            content=content,
            status=status,
            headers=headers,
            media_type="application/json",
        )

    @classmethod
    def html(cls, content: str, status: int = 200, **kwargs) -> "Response":
        return cls(content=content, status=status, media_type="text/html; charset=utf-8", **kwargs)

    @classmethod
    def text(cls, content: str, status: int = 200, **kwargs) -> "Response":
        return cls(content=content, status=status, media_type="text/plain; charset=utf-8", **kwargs)

    @classmethod
    def redirect(
        cls,
        url: str,
        status: int = 302,
        *,
        headers: Optional[Dict[str, str]] = None
    ) -> "Response":
        """
        Create redirect response.

        Args:
            url: Redirect target (sent as the Location header)
            status: HTTP status (default 302 Found)
            headers: Additional headers
        """
        redirect_headers = {"location": url}
        if headers:
            redirect_headers.update(headers)
        return cls(content=b"", status=status, headers=redirect_headers)

    @classmethod
    def no_content(cls) -> "Response":
        return cls(b"", status=204)

    # ========================================================================
    # Cookies & Headers
    # ========================================================================

    def set_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: Optional[int] = None,
        expires: Optional[datetime] = None,
        path: str = "/",
        domain: Optional[str] = None,
        secure: bool = False,
        httponly: bool = True,
        samesite: Optional[str] = "Lax",
    ) -> None:
        """Append a Set-Cookie header."""
        cookie_parts = [f"{name}={value}"]
        if max_age is not None:
            cookie_parts.append(f"Max-Age={max_age}")
        if expires:
            cookie_parts.append(f"Expires={formatdate(expires.timestamp(), usegmt=True)}")
        cookie_parts.append(f"Path={path}")
        if domain:
            cookie_parts.append(f"Domain={domain}")
        if secure:
            cookie_parts.append("Secure")
        if httponly:
            cookie_parts.append("HttpOnly")
        if samesite:
            cookie_parts.append(f"SameSite={samesite}")

        self.add_header("set-cookie", "; ".join(cookie_parts))

    def delete_cookie(self, name: str, path: str = "/", domain: Optional[str] = None) -> None:
        self.set_cookie(
            name,
            "",
            max_age=0,
            expires=datetime.fromtimestamp(0, tz=timezone.utc),
            path=path,
            domain=domain,
            httponly=False,
            samesite=None,
        )

    def set_header(self, name: str, value: str) -> None:
        self._validate_header(name, value)
        self._headers[name.lower()] = value

    def add_header(self, name: str, value: str) -> None:
        """Add header (supports multiple values)."""
        self._validate_header(name, value)
        name_lower = name.lower()
        existing = self._headers.get(name_lower)
        if existing is None:
            self._headers[name_lower] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            self._headers[name_lower] = [existing, value]

    def _validate_header(self, name: str, value: str) -> None:
        if "\r" in name or "\n" in name or "\r" in value or "\n" in value:
            raise ValueError(f"Header injection attempt in {name!r}")

    # ========================================================================
    # ASGI
    # ========================================================================

    def _prepare_headers(self) -> List[tuple]:
        headers_list = []
        for name, value in self._headers.items():
            name_bytes = name.encode("latin1")
            if isinstance(value, list):
                for v in value:
                    headers_list.append((name_bytes, v.encode("latin1")))
            else:
                headers_list.append((name_bytes, value.encode("latin1")))
        return headers_list

    async def send_asgi(self, send) -> None:
        """Send ``http.response.start`` and a single body message."""
        self._headers["content-length"] = str(len(self.body))
        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": self._prepare_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self.body,
            "more_body": False,
        })

    def __repr__(self) -> str:
        return f"<Response {self.status} {self._headers.get('content-type', '')}>"
