"""
Strix Testing - in-process HTTP test client.

Issues ASGI requests directly against an application, without sockets,
keeping cookies between requests like a browser.
"""

from __future__ import annotations

import json as stdlib_json
import time as _time
import uuid
from http.cookies import SimpleCookie
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlencode, urlsplit


class TestResponse:
    """Captured ASGI response with assertion-friendly accessors."""

    __test__ = False

    __slots__ = (
        "status_code", "headers", "set_cookies", "body", "_json_cache",
        "content_type", "elapsed", "request_method", "request_path",
    )

    def __init__(
        self,
        status_code: int,
        headers: Dict[str, str],
        body: bytes,
        *,
        set_cookies: Optional[List[str]] = None,
        elapsed: float = 0.0,
        request_method: str = "",
        request_path: str = "",
    ):
        self.status_code = status_code
        self.headers = headers
        self.set_cookies = set_cookies or []
        self.body = body
        self._json_cache: Any = None
        self.elapsed = elapsed
        self.request_method = request_method
        self.request_path = request_path
        self.content_type = headers.get("content-type", "").split(";")[0].strip()

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        if self._json_cache is None:
            self._json_cache = stdlib_json.loads(self.body)
        return self._json_cache

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status_code < 400

    @property
    def location(self) -> Optional[str]:
        return self.headers.get("location")

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def __repr__(self) -> str:
        return f"<TestResponse [{self.status_code}] {self.content_type} {len(self.body)}B>"


class TestClient:
    """
    In-process ASGI test client.

    Usage::

        client = TestClient(app)
        resp = await client.get("/users")
        assert resp.status_code == 200

        resp = await client.post("/login", data={"email": "a@x.com", "password": "pw"})
        assert resp.location == "/dashboard"
    """

    __test__ = False

    MAX_REDIRECTS = 20

    def __init__(
        self,
        app: Callable,
        *,
        default_headers: Optional[Dict[str, str]] = None,
        follow_redirects: bool = False,
    ):
        self._app = app
        self._default_headers = default_headers or {}
        self._cookies: Dict[str, str] = {}
        self._follow_redirects = follow_redirects
        self._history: List[TestResponse] = []

    @property
    def history(self) -> List[TestResponse]:
        """Redirect chain of the last request."""
        return list(self._history)

    @property
    def cookies(self) -> Dict[str, str]:
        return dict(self._cookies)

    def set_cookie(self, name: str, value: str) -> None:
        self._cookies[name] = value

    def clear_cookies(self) -> None:
        self._cookies.clear()

    # ------------------------------------------------------------------
    # HTTP verbs
    # ------------------------------------------------------------------

    async def get(self, path: str, **kw) -> TestResponse:
        return await self.request("GET", path, **kw)

    async def post(self, path: str, **kw) -> TestResponse:
        return await self.request("POST", path, **kw)

    async def put(self, path: str, **kw) -> TestResponse:
        return await self.request("PUT", path, **kw)

    async def patch(self, path: str, **kw) -> TestResponse:
        return await self.request("PATCH", path, **kw)

    async def delete(self, path: str, **kw) -> TestResponse:
        return await self.request("DELETE", path, **kw)

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
        data: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Any]] = None,
        body: bytes = b"",
        follow_redirects: Optional[bool] = None,
    ) -> TestResponse:
        self._history.clear()
        should_follow = self._follow_redirects if follow_redirects is None else follow_redirects

        resp = await self._single_request(
            method, path, headers=headers, json=json, data=data, files=files, body=body,
        )
        redirects = 0
        while should_follow and resp.is_redirect and resp.location and redirects < self.MAX_REDIRECTS:
            redirects += 1
            self._history.append(resp)
            # Follow with GET (PRG pattern)
            resp = await self._single_request("GET", resp.location)
        return resp

    # ------------------------------------------------------------------
    # Core request execution
    # ------------------------------------------------------------------

    async def _single_request(
        self,
        method: str,
        path: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        json: Any = None,
        data: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Any]] = None,
        body: bytes = b"",
    ) -> TestResponse:
        url = urlsplit(path)
        raw_headers: List[Tuple[str, str]] = [(k.lower(), v) for k, v in self._default_headers.items()]
        raw_headers += [(k.lower(), v) for k, v in (headers or {}).items()]
        if self._cookies:
            raw_headers.append(("cookie", "; ".join(f"{k}={v}" for k, v in self._cookies.items())))

        if json is not None:
            body = stdlib_json.dumps(json).encode("utf-8")
            raw_headers.append(("content-type", "application/json"))
        elif files is not None:
            body, content_type = _build_multipart(data or {}, files)
            raw_headers.append(("content-type", content_type))
        elif data is not None:
            body = urlencode(data).encode("utf-8")
            raw_headers.append(("content-type", "application/x-www-form-urlencoded"))
        if body:
            raw_headers.append(("content-length", str(len(body))))

        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method.upper(),
            "scheme": "http",
            "path": url.path or "/",
            "raw_path": (url.path or "/").encode("latin-1"),
            "query_string": url.query.encode("latin-1"),
            "root_path": "",
            "headers": [(k.encode("latin-1"), v.encode("latin-1")) for k, v in raw_headers],
            "client": ("127.0.0.1", 50000),
            "server": ("testserver", 80),
        }

        messages = [{"type": "http.request", "body": body, "more_body": False}]

        async def receive():
            if messages:
                return messages.pop(0)
            return {"type": "http.disconnect"}

        status_code = 500
        resp_headers: Dict[str, str] = {}
        set_cookies: List[str] = []
        body_parts: List[bytes] = []

        async def send(event: dict):
            nonlocal status_code
            if event["type"] == "http.response.start":
                status_code = event["status"]
                for name, value in event.get("headers", []):
                    name_s = name.decode("latin-1").lower()
                    value_s = value.decode("latin-1")
                    if name_s == "set-cookie":
                        set_cookies.append(value_s)
                    resp_headers[name_s] = value_s
            elif event["type"] == "http.response.body":
                body_parts.append(event.get("body", b""))

        start = _time.monotonic()
        await self._app(scope, receive, send)
        elapsed_ms = (_time.monotonic() - start) * 1000

        for header in set_cookies:
            self._store_cookie(header)

        return TestResponse(
            status_code,
            resp_headers,
            b"".join(body_parts),
            set_cookies=set_cookies,
            elapsed=elapsed_ms,
            request_method=method.upper(),
            request_path=path,
        )

    def _store_cookie(self, header: str) -> None:
        cookie = SimpleCookie()
        cookie.load(header)
        for name, morsel in cookie.items():
            if morsel["max-age"] == "0" or not morsel.value:
                self._cookies.pop(name, None)
            else:
                self._cookies[name] = morsel.value


def _build_multipart(data: Dict[str, str], files: Dict[str, Any]) -> Tuple[bytes, str]:
    """
    Build a multipart/form-data body.

    Files are ``bytes``, ``(filename, content)`` or
    ``(filename, content, content_type)``.
    """
    boundary = f"----StrixTestBoundary{uuid.uuid4().hex[:16]}"
    parts: List[bytes] = []

    for name, value in data.items():
        parts.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{name}"\r\n\r\n'
            f"{value}\r\n".encode("utf-8")
        )

    for field_name, file_info in files.items():
        if isinstance(file_info, bytes):
            filename, content, content_type = field_name, file_info, "application/octet-stream"
        elif len(file_info) == 2:
            (filename, content), content_type = file_info, "application/octet-stream"
        else:
            filename, content, content_type = file_info[:3]
        if isinstance(content, str):
            content = content.encode("utf-8")
        parts.append(
            f"--{boundary}\r\n"
            f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"\r\n'
            f"Content-Type: {content_type}\r\n\r\n".encode("utf-8")
            + content
            + b"\r\n"
        )

    parts.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(parts), f"multipart/form-data; boundary={boundary}"
