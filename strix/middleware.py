"""
Middleware system - composable, async-first application middleware.

Application middleware wraps the whole dispatch (every route, explicit or
auto-routed). Route-level checks are gates, see ``strix.routing.gates``.
"""

from __future__ import annotations

import logging
import os
import time
import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, List, Optional

from .faults import CSRFFault, Fault, FaultDomain
from .helpers import CSRF_FIELD_NAME, verify_csrf_token
from .request import Request
from .response import Response

if TYPE_CHECKING:
    from .controller import RequestCtx

Handler = Callable[[Request, "RequestCtx"], Awaitable[Response]]
Middleware = Callable[[Request, "RequestCtx", Handler], Awaitable[Response]]


@dataclass
class MiddlewareDescriptor:
    """Descriptor for middleware registration."""
    middleware: Middleware
    priority: int
    name: str


class MiddlewareStack:
    """
    Ordered middleware chain.

    Lower priority runs first (outermost); equal priorities keep their
    registration order.
    """

    def __init__(self):
        self.middlewares: List[MiddlewareDescriptor] = []

    def add(self, middleware: Middleware, priority: int = 50, name: Optional[str] = None):
        if name is None:
            name = getattr(middleware, "__name__", type(middleware).__name__)
        self.middlewares.append(MiddlewareDescriptor(middleware, priority, name))

    def build_handler(self, final_handler: Handler) -> Handler:
        """Build middleware chain wrapping the final handler."""
        ordered = sorted(self.middlewares, key=lambda d: d.priority)
        handler = final_handler
        # Wrap in reverse order so first middleware is outermost
        for desc in reversed(ordered):
            handler = self._wrap_middleware(desc.middleware, handler)
        return handler

    def _wrap_middleware(self, middleware: Middleware, next_handler: Handler) -> Handler:
        async def wrapped(request: Request, ctx: RequestCtx) -> Response:
            return await middleware(request, ctx, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self.middlewares)


# Default middleware implementations

class RequestIdMiddleware:
    """Adds unique request ID to each request."""

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name

    async def __call__(self, request: Request, ctx: RequestCtx, next: Handler) -> Response:
        request_id = request.header(self.header_name) or os.urandom(16).hex()
        request.state["request_id"] = request_id
        ctx.request_id = request_id

        response = await next(request, ctx)
        response.set_header(self.header_name, request_id)
        return response


def fault_status(fault: Fault) -> int:
    """HTTP status for a fault reaching the boundary."""
    by_code = {
        "ROUTE_NOT_FOUND": 404,
        "BAD_REQUEST": 400,
        "PAYLOAD_TOO_LARGE": 413,
        "AUTHENTICATION_FAILED": 401,
        "CSRF_MISMATCH": 403,
    }
    if fault.code in by_code:
        return by_code[fault.code]
    if not fault.public:
        return 500
    return {
        FaultDomain.ROUTING: 404,
        FaultDomain.SECURITY: 403,
        FaultDomain.IO: 400,
    }.get(fault.domain, 500)


class ExceptionMiddleware:
    """
    Process boundary: converts escaping exceptions into error responses.

    Internal details (SQL, driver messages, tracebacks) are only included
    in debug mode; otherwise clients get a generic message.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.logger = logging.getLogger("strix.exceptions")

    async def __call__(self, request: Request, ctx: RequestCtx, next: Handler) -> Response:
        try:
            return await next(request, ctx)

        except Fault as e:
            status = fault_status(e)
            message = e.message if (e.public or self.debug) else "Internal server error"

            if status >= 500:
                self.logger.error("Fault %s: %s", e.code, e.message, exc_info=True)
            else:
                self.logger.warning("Fault %s: %s", e.code, e.message)

            body = {"error": message, "code": e.code if (e.public or self.debug) else "INTERNAL_ERROR"}
            if self.debug:
                body["domain"] = e.domain.value
                body["metadata"] = e.metadata
            return Response.json(body, status=status)

        except Exception as e:
            self.logger.error("Unhandled exception: %s", e, exc_info=True)
            error_data = {"error": "Internal server error"}
            if self.debug:
                error_data["detail"] = str(e)
                error_data["traceback"] = traceback.format_exc()
            return Response.json(error_data, status=500)


class LoggingMiddleware:
    """Logs request/response with timing."""

    def __init__(self, slow_ms: float = 1000.0):
        self.logger = logging.getLogger("strix.requests")
        self.slow_ms = slow_ms

    async def __call__(self, request: Request, ctx: RequestCtx, next: Handler) -> Response:
        if not self.logger.isEnabledFor(logging.INFO):
            return await next(request, ctx)

        start = time.monotonic()
        response = await next(request, ctx)
        elapsed_ms = (time.monotonic() - start) * 1000.0

        self.logger.info(
            "%s %s - %d (%.1fms)",
            request.method, request.path, response.status, elapsed_ms,
        )
        if elapsed_ms > self.slow_ms:
            self.logger.warning(
                "Slow request: %s %s took %.1fms",
                request.method, request.path, elapsed_ms,
            )
        return response


class MethodOverrideMiddleware:
    """
    Lets HTML forms reach PUT/PATCH/DELETE routes.

    A POST carrying ``_method`` in its form body, or an
    ``X-HTTP-Method-Override`` header, is dispatched as that method.
    """

    ALLOWED = frozenset({"PUT", "PATCH", "DELETE"})

    def __init__(self, field_name: str = "_method", header_name: str = "X-HTTP-Method-Override"):
        self.field_name = field_name
        self.header_name = header_name

    async def __call__(self, request: Request, ctx: RequestCtx, next: Handler) -> Response:
        if request.method == "POST":
            override = request.header(self.header_name)
            if not override:
                override = await request.post(self.field_name)
            if override and str(override).upper() in self.ALLOWED:
                request.override_method(str(override))
        return await next(request, ctx)


class CSRFMiddleware:
    """
    Rejects state-changing requests without the session's CSRF token.

    The token comes from the ``_csrf_token`` form field or the
    ``X-CSRF-Token`` header. Paths under ``exempt`` (e.g. a JSON API)
    are not checked.
    """

    SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

    def __init__(self, exempt: Iterable[str] = (), header_name: str = "X-CSRF-Token"):
        self.exempt = tuple(exempt)
        self.header_name = header_name

    async def __call__(self, request: Request, ctx: RequestCtx, next: Handler) -> Response:
        if request.method in self.SAFE_METHODS or request.path.startswith(self.exempt):
            return await next(request, ctx)

        submitted = request.header(self.header_name)
        if not submitted:
            submitted = await request.post(CSRF_FIELD_NAME)
        if not ctx.session_started or not verify_csrf_token(ctx.session, submitted):
            raise CSRFFault()
        return await next(request, ctx)
