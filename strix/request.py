"""
Request object.

Wraps an ASGI scope and receive channel. Body-derived accessors are async
because the body has to be pulled off the wire first; everything derived
from the scope (method, path, query string, headers, cookies) is sync.
"""

from __future__ import annotations

import json as stdlib_json
from http.cookies import SimpleCookie
from typing import (
    Any, Awaitable, Callable, Dict, List, Mapping, Optional,
)
from urllib.parse import parse_qsl

from python_multipart import MultipartParser
from python_multipart.multipart import parse_options_header

from ._datastructures import Headers, MultiDict, ParsedContentType
from ._uploads import FormData, UploadFile
from .faults import BadRequestFault, PayloadTooLargeFault


FORM_URLENCODED = "application/x-www-form-urlencoded"
MULTIPART = "multipart/form-data"


class Request:
    """
    Per-request view over an ASGI HTTP connection.

    Features:
    - Query, header and cookie access by key with default fallback
    - JSON, urlencoded and multipart body parsing (cached)
    - Merged ``input()`` lookup over query and body parameters
    - Uploaded file presence and retrieval
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
        max_field_count: int = 1000,
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size
        self.max_field_count = max_field_count

        # Free-form per-request state shared by middleware
        self.state: Dict[str, Any] = {}

        self._method_override: Optional[str] = None
        self._body: Optional[bytes] = None
        self._json: Any = None
        self._json_loaded = False
        self._form_data: Optional[FormData] = None
        self._query_params: Optional[MultiDict] = None
        self._headers: Optional[Headers] = None
        self._cookies: Optional[Dict[str, str]] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method, honouring a form ``_method`` override."""
        if self._method_override:
            return self._method_override
        return self.scope.get("method", "GET").upper()

    def override_method(self, method: str) -> None:
        self._method_override = method.upper()

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("utf-8")

    @property
    def client(self) -> Optional[tuple]:
        return self.scope.get("client")

    @property
    def url(self) -> str:
        """Path plus query string."""
        qs = self.query_string
        return f"{self.path}?{qs}" if qs else self.path

    # ========================================================================
    # Query Parameters
    # ========================================================================

    @property
    def query_params(self) -> MultiDict:
        if self._query_params is None:
            items = parse_qsl(self.query_string, keep_blank_values=True)
            self._query_params = MultiDict(items)
        return self._query_params

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query_params.get(name, default)

    def get(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Query-string value, or every query parameter when ``key`` is None."""
        if key is None:
            return self.query_params.to_dict()
        return self.query_params.get(key, default)

    # ========================================================================
    # Headers & Cookies
    # ========================================================================

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(raw=list(self.scope.get("headers", [])))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get single header (case-insensitive)."""
        return self.headers.get(name, default)

    @property
    def cookies(self) -> Mapping[str, str]:
        if self._cookies is None:
            cookie_header = self.header("cookie", "")
            self._cookies = {}
            if cookie_header:
                cookie = SimpleCookie()
                cookie.load(cookie_header)
                self._cookies = {key: morsel.value for key, morsel in cookie.items()}
        return self._cookies

    def cookie(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.cookies.get(name, default)

    def content_type(self) -> Optional[str]:
        return self.header("content-type")

    def is_json(self) -> bool:
        parsed = ParsedContentType.parse(self.content_type())
        return bool(parsed) and (
            parsed.media_type == "application/json" or parsed.media_type.endswith("+json")
        )

    def wants_json(self) -> bool:
        return "application/json" in (self.header("accept") or "")

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """
        Read full request body (idempotent).

        Raises:
            PayloadTooLargeFault: body exceeds ``max_body_size``
        """
        if self._body is not None:
            return self._body

        chunks: List[bytes] = []
        total = 0
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            if chunk:
                total += len(chunk)
                if total > self.max_body_size:
                    raise PayloadTooLargeFault(self.max_body_size)
                chunks.append(chunk)
            if not message.get("more_body", False):
                break

        self._body = b"".join(chunks)
        return self._body

    async def text(self, encoding: Optional[str] = None) -> str:
        body_bytes = await self.body()
        if encoding is None:
            parsed = ParsedContentType.parse(self.content_type())
            encoding = parsed.charset if parsed else "utf-8"
        return body_bytes.decode(encoding)

    async def json(self) -> Any:
        """
        Parse request body as JSON.

        An empty body yields None.

        Raises:
            BadRequestFault: body is not valid JSON
        """
        if self._json_loaded:
            return self._json

        body_bytes = await self.body()
        if body_bytes:
            try:
                self._json = stdlib_json.loads(body_bytes.decode("utf-8"))
            except (UnicodeDecodeError, stdlib_json.JSONDecodeError) as e:
                raise BadRequestFault(f"invalid JSON: {e}") from e
        self._json_loaded = True
        return self._json

    # ========================================================================
    # Form & Multipart Parsing
    # ========================================================================

    async def form(self) -> FormData:
        """
        Parse the body as a form.

        Handles ``application/x-www-form-urlencoded`` and
        ``multipart/form-data``. Any other content type yields an empty
        FormData rather than an error, matching how an absent body reads.
        """
        if self._form_data is not None:
            return self._form_data

        parsed = ParsedContentType.parse(self.content_type())
        if parsed is None:
            self._form_data = FormData()
        elif parsed.media_type == FORM_URLENCODED:
            body_str = (await self.body()).decode(parsed.charset)
            items = parse_qsl(body_str, keep_blank_values=True)
            if len(items) > self.max_field_count:
                raise BadRequestFault(f"more than {self.max_field_count} form fields")
            self._form_data = FormData(fields=MultiDict(items))
        elif parsed.media_type == MULTIPART:
            if not parsed.boundary:
                raise BadRequestFault("no boundary in multipart Content-Type")
            self._form_data = await self._parse_multipart(parsed.boundary.encode("latin-1"))
        else:
            self._form_data = FormData()

        return self._form_data

    async def _parse_multipart(self, boundary: bytes) -> FormData:
        """Parse multipart form data using python-multipart callbacks."""
        fields = MultiDict()
        files: Dict[str, List[UploadFile]] = {}
        state: Dict[str, Any] = {}

        def on_part_begin():
            if len(fields) + len(files) >= self.max_field_count:
                raise BadRequestFault(f"more than {self.max_field_count} multipart parts")
            state.update(
                name=None, filename=None, content_type="text/plain",
                data=bytearray(), headers={},
                header_field=bytearray(), header_value=bytearray(),
            )

        def on_part_data(data: bytes, start: int, end: int):
            state["data"].extend(data[start:end])

        def on_header_field(data: bytes, start: int, end: int):
            state["header_field"].extend(data[start:end])

        def on_header_value(data: bytes, start: int, end: int):
            state["header_value"].extend(data[start:end])

        def on_header_end():
            name = state["header_field"].decode("utf-8", errors="replace").lower()
            state["headers"][name] = state["header_value"].decode("utf-8", errors="replace")
            state["header_field"] = bytearray()
            state["header_value"] = bytearray()

        def on_headers_finished():
            disposition = state["headers"].get("content-disposition", "")
            _, options = parse_options_header(disposition)
            name = options.get(b"name")
            filename = options.get(b"filename")
            state["name"] = name.decode("utf-8") if name else None
            state["filename"] = filename.decode("utf-8") if filename else None
            state["content_type"] = state["headers"].get("content-type", state["content_type"])

        def on_part_end():
            name = state.get("name")
            if not name:
                return
            if state["filename"] is not None:
                files.setdefault(name, []).append(UploadFile(
                    filename=state["filename"],
                    content_type=state["content_type"] or "application/octet-stream",
                    content=bytes(state["data"]),
                ))
            else:
                fields.add(name, state["data"].decode("utf-8", errors="replace"))

        parser = MultipartParser(boundary, {
            "on_part_begin": on_part_begin,
            "on_part_data": on_part_data,
            "on_part_end": on_part_end,
            "on_header_field": on_header_field,
            "on_header_value": on_header_value,
            "on_header_end": on_header_end,
            "on_headers_finished": on_headers_finished,
        })
        parser.write(await self.body())
        parser.finalize()
        return FormData(fields=fields, files=files)

    # ========================================================================
    # Merged input
    # ========================================================================

    async def post(self, key: Optional[str] = None, default: Any = None) -> Any:
        """Body value (form or JSON object), or every body field when ``key`` is None."""
        data = await self._body_params()
        if key is None:
            return data
        return data.get(key, default)

    async def all(self) -> Dict[str, Any]:
        """Query parameters overlaid with body parameters."""
        merged: Dict[str, Any] = dict(self.query_params.to_dict())
        merged.update(await self._body_params())
        return merged

    async def input(self, key: str, default: Any = None) -> Any:
        return (await self.all()).get(key, default)

    async def has_file(self, key: str) -> bool:
        upload = (await self.form()).get_file(key)
        return upload is not None and bool(upload.filename)

    async def file(self, key: str) -> Optional[UploadFile]:
        return (await self.form()).get_file(key)

    async def _body_params(self) -> Dict[str, Any]:
        if self.is_json():
            payload = await self.json()
            return dict(payload) if isinstance(payload, dict) else {}
        return (await self.form()).fields.to_dict()

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
