"""
ASGI adapter - bridges the ASGI protocol to Strix's request/response
system.

The middleware chain is built once, on the first request, and wraps the
dispatcher.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from .controller import RequestCtx
from .middleware import Handler
from .request import Request
from .response import Response

if TYPE_CHECKING:
    from .app import Application


class ASGIAdapter:
    """
    ASGI application adapter.
    Converts ASGI events to Strix Request/Response.
    """

    __slots__ = ("app", "logger", "_cached_middleware_chain")

    def __init__(self, app: "Application"):
        self.app = app
        self.logger = logging.getLogger("strix.asgi")
        self._cached_middleware_chain: Optional[Handler] = None

    def _build_cached_chain(self) -> Handler:
        if self._cached_middleware_chain is None:
            dispatcher = self.app.dispatcher

            async def _final_handler(request: Request, ctx: RequestCtx) -> Response:
                return await dispatcher.dispatch(ctx)

            self._cached_middleware_chain = self.app.middleware.build_handler(_final_handler)
        return self._cached_middleware_chain

    def invalidate(self) -> None:
        """Forget the built chain (after middleware was added)."""
        self._cached_middleware_chain = None

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        else:
            self.logger.warning("Unsupported ASGI scope type: %s", scope_type)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        chain = self._build_cached_chain()
        config = self.app.config

        request = Request(scope, receive, max_body_size=config.max_body_size)
        ctx = RequestCtx(
            request=request,
            db=self.app.db,
            templates=self.app.templates,
            config=config,
            routes=self.app.routes,
        )

        try:
            response = await chain(request, ctx)
        except Exception as e:
            self.logger.error("Critical error in request pipeline: %s", e, exc_info=True)
            response = Response.json({"error": "Internal server error"}, status=500)

        await response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    await self.app.startup()
                    await send({"type": "lifespan.startup.complete"})
                except Exception as e:
                    await send({"type": "lifespan.startup.failed", "message": str(e)})
                    raise

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.app.shutdown()
                    await send({"type": "lifespan.shutdown.complete"})
                except Exception as e:
                    self.logger.error("Shutdown error: %s", e, exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(e)})
                break
