"""
Shared test fixtures and helpers for the Strix test suite.
"""

import re
from typing import List, Optional

import pytest
import pytest_asyncio

from strix import AppConfig, DatabaseConfig
from strix.controller import RequestCtx
from strix.db import ConnectionRegistry
from strix.request import Request

USERS_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL UNIQUE,
    password TEXT,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

_CSRF_RE = re.compile(r'name="_csrf_token" value="([0-9a-f]+)"')


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = [
        (name.encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or [])
    ]
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query_string.encode("latin-1"),
        "root_path": "",
        "headers": raw_headers,
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }


def make_receive(body: bytes = b""):
    messages = [{"type": "http.request", "body": body, "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


def make_request(method: str = "GET", path: str = "/", body: bytes = b"", **kw) -> Request:
    return Request(make_scope(method, path, **kw), make_receive(body))


def make_ctx(method: str = "GET", path: str = "/", **kw) -> RequestCtx:
    """Request context around a synthetic request; extra kwargs go to RequestCtx."""
    ctx_kwargs = {k: kw.pop(k) for k in ("db", "templates", "config", "routes") if k in kw}
    return RequestCtx(request=make_request(method, path, **kw), **ctx_kwargs)


def extract_csrf(html: str) -> str:
    found = _CSRF_RE.search(html)
    assert found, "page has no CSRF field"
    return found.group(1)


def memory_config(**overrides) -> AppConfig:
    """Application config backed by an in-memory SQLite database."""
    values = dict(
        name="Strix Test",
        env="testing",
        debug=False,
        auto_routing=True,
        database=DatabaseConfig(driver="sqlite", path=":memory:"),
    )
    values.update(overrides)
    return AppConfig(**values)


# ============================================================================
# Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def db():
    """Connected in-memory registry with an empty ``users`` table."""
    registry = ConnectionRegistry("sqlite:///:memory:")
    await registry.connect()
    await registry.database.execute_script(USERS_SCHEMA)
    yield registry
    await registry.close()


@pytest_asyncio.fixture
async def app():
    """The reference application on an in-memory database, started."""
    from myapp.main import create_app

    application = create_app(memory_config(), csrf=False)
    await application.startup()
    yield application
    await application.shutdown()


@pytest_asyncio.fixture
async def csrf_app():
    from myapp.main import create_app

    application = create_app(memory_config())
    await application.startup()
    yield application
    await application.shutdown()


@pytest.fixture
def client(app):
    from strix.testing import TestClient

    return TestClient(app)
