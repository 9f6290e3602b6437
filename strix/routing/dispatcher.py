"""
Dispatcher - resolves a request to a response.

Resolution order:

1. Explicit routes, first match in registration order; the route's gates
   run before the handler and any of them may halt.
2. The auto-router, when enabled and the explicit table had no match.
3. A 404 rendered from the ``errors/404`` template.

Handler exceptions are not caught here; they propagate to the
application boundary.
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any, Optional, Sequence

from ..faults import HandlerFault
from ..response import Response
from .autoroute import ControllerRegistry
from .gates import GateChain
from .table import Handler, RouteTable, handler_name

if TYPE_CHECKING:
    from ..controller import RequestCtx

logger = logging.getLogger("strix.routing")

NOT_FOUND_TEMPLATE = "errors/404"


def coerce_response(result: Any, source: str) -> Response:
    """
    Turn a handler's return value into a Response.

    - Response: unchanged
    - str: HTML page
    - dict / list: JSON document
    - None: empty 204
    """
    if isinstance(result, Response):
        return result
    if isinstance(result, str):
        return Response.html(result)
    if isinstance(result, (dict, list)):
        return Response.json(result)
    if result is None:
        return Response.no_content()
    raise HandlerFault(source, f"returned unsupported type {type(result).__name__}")


async def call_handler(handler: Handler, ctx: "RequestCtx", args: Sequence[str]) -> Response:
    """Invoke a callable or ``(Controller, action)`` handler with ``(ctx, *args)``."""
    if isinstance(handler, tuple):
        cls, action = handler
        target = getattr(cls(ctx), action)
    else:
        target = handler

    result = target(ctx, *args)
    if inspect.isawaitable(result):
        result = await result
    return coerce_response(result, handler_name(handler))


class Dispatcher:
    """
    Orchestrates explicit routing, auto-routing and the not-found page.

    Args:
        routes: Explicit route table
        controllers: Registry consulted by the auto-router
        auto_routing: Whether to fall back to the auto-router
    """

    def __init__(
        self,
        routes: RouteTable,
        controllers: Optional[ControllerRegistry] = None,
        *,
        auto_routing: bool = False,
    ):
        self.routes = routes
        self.controllers = controllers if controllers is not None else ControllerRegistry()
        self.auto_routing = auto_routing

    async def dispatch(self, ctx: "RequestCtx") -> Response:
        method, path = ctx.method, ctx.path

        matched = self.routes.match(method, path)
        if matched is not None:
            entry = matched.entry
            ctx.state["route"] = entry
            logger.debug("Matched %s %s -> %s", method, path, entry.template)

            halted = await GateChain(entry.middleware).run(ctx)
            if halted is not None:
                return halted
            return await call_handler(entry.handler, ctx, matched.args)

        if self.auto_routing:
            target = self.controllers.resolve(path)
            if target is not None:
                ctx.state["auto_route"] = target
                logger.debug("Auto-routed %s %s -> %s", method, path, target.name)
                return await call_handler(
                    (target.controller, target.action), ctx, target.params
                )

        logger.debug("No route for %s %s", method, path)
        return await self.not_found(ctx)

    async def not_found(self, ctx: "RequestCtx") -> Response:
        """404 through the template collaborator, or JSON without one."""
        if ctx.templates is None or ctx.request.wants_json():
            return Response.json({"error": "Not found"}, status=404)
        return await ctx.templates.render_response(NOT_FOUND_TEMPLATE, {}, ctx=ctx, status=404)
