"""
Request context and controller base class.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Optional

from .response import Response
from .sessions.core import Session

if TYPE_CHECKING:
    from .config import AppConfig
    from .db.query import QueryBuilder
    from .db.registry import ConnectionRegistry
    from .request import Request
    from .routing.table import RouteTable
    from .templates.engine import TemplateEngine


_DEFAULT = object()


@dataclass
class RequestCtx:
    """
    Request context passed to every gate and handler.

    Built once per incoming request and handed down the dispatch chain.
    The session is a capability of the context: it is created on first
    access when the client did not present a valid one.

    Attributes:
        request: The HTTP request
        db: Connection registry owned by the application
        templates: Template engine
        config: Application configuration
        routes: Route table, for reverse routing
        state: Free-form per-request state
    """

    request: "Request"
    db: Optional["ConnectionRegistry"] = None
    templates: Optional["TemplateEngine"] = None
    config: Optional["AppConfig"] = None
    routes: Optional["RouteTable"] = None
    state: Dict[str, Any] = field(default_factory=dict)
    request_id: Optional[str] = None
    _session: Optional[Session] = field(default=None, repr=False)

    @property
    def path(self) -> str:
        return self.request.path

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = Session()
        return self._session

    @session.setter
    def session(self, value: Optional[Session]) -> None:
        self._session = value

    @property
    def session_started(self) -> bool:
        return self._session is not None

    def table(self, name: str) -> "QueryBuilder":
        """Fresh query builder for ``name`` on the application database."""
        if self.db is None:
            raise RuntimeError("No database configured for this application")
        return self.db.table(name)

    def url_for(self, name: str, **params: Any) -> str:
        if self.routes is None:
            raise RuntimeError("No route table attached to this context")
        return self.routes.url_for(name, **params)

    async def render(
        self,
        template: str,
        data: Optional[Dict[str, Any]] = None,
        *,
        status: int = 200,
        layout: Any = _DEFAULT,
    ) -> Response:
        """Render a template into an HTML response."""
        if self.templates is None:
            raise RuntimeError("No template engine configured for this application")
        kwargs = {} if layout is _DEFAULT else {"layout": layout}
        return await self.templates.render_response(template, data, ctx=self, status=status, **kwargs)


class Controller:
    """
    Base Controller class.

    Controllers group related actions. One instance is created per
    dispatch, so instance attributes never leak between requests.
    Actions receive the request context and the path parameters as
    strings:

        class UserController(Controller):
            async def show(self, ctx, id):
                user = await self.table("users").find(id)
                if user is None:
                    return await self.render("errors/404", status=404)
                return await self.render("users/show", {"user": user})

    Every public method defined on a subclass is an action; the helpers
    on this base class are not.
    """

    def __init__(self, ctx: RequestCtx):
        self.ctx = ctx

    @property
    def request(self) -> "Request":
        return self.ctx.request

    @property
    def session(self) -> Session:
        return self.ctx.session

    def table(self, name: str) -> "QueryBuilder":
        return self.ctx.table(name)

    async def render(
        self,
        template: str,
        data: Optional[Dict[str, Any]] = None,
        *,
        status: int = 200,
        layout: Any = _DEFAULT,
    ) -> Response:
        return await self.ctx.render(template, data, status=status, layout=layout)

    def json(self, data: Any, status: int = 200) -> Response:
        return Response.json(data, status=status)

    def redirect(self, url: str, status: int = 302) -> Response:
        return Response.redirect(url, status=status)
