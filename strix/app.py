"""
Application - wires configuration, database, routes, templates and
sessions into one ASGI callable.

Usage:
    config = ConfigLoader.load(env_file=".env").to_app_config()
    app = Application(config)

    app.routes.get("/", home)
    app.controllers.register(UserController)

    if __name__ == "__main__":
        app.run()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

from .asgi import ASGIAdapter
from .config import AppConfig
from .db.registry import ConnectionRegistry
from .faults import DatabaseConnectionFault
from .middleware import (
    ExceptionMiddleware,
    LoggingMiddleware,
    MethodOverrideMiddleware,
    Middleware,
    MiddlewareStack,
    RequestIdMiddleware,
)
from .routing import ControllerRegistry, Dispatcher, RouteTable
from .sessions import SessionMiddleware, SessionStore
from .templates import TemplateEngine

logger = logging.getLogger("strix.app")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

Hook = Callable[[], Awaitable[Any]]

_UNSET = object()


class Application:
    """
    A Strix web application.

    Args:
        config: Application configuration (defaults apply when omitted)
        routes: Explicit route table
        controllers: Controllers reachable by auto-routing
        templates: Template engine; built from ``config.templates_dir``
            when that directory exists, None disables templates
        db: Connection registry; built from ``config.database`` when
            omitted, None runs without a database
        session_store: Backing store for sessions (in-memory by default)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        routes: Optional[RouteTable] = None,
        controllers: Optional[ControllerRegistry] = None,
        templates: Any = _UNSET,
        db: Any = _UNSET,
        session_store: Optional[SessionStore] = None,
    ):
        self.config = config or AppConfig()
        self.routes = routes if routes is not None else RouteTable()
        self.controllers = controllers if controllers is not None else ControllerRegistry()

        if templates is _UNSET:
            templates = self._default_templates()
        self.templates: Optional[TemplateEngine] = templates

        if db is _UNSET:
            db = ConnectionRegistry(self.config.database)
        self.db: Optional[ConnectionRegistry] = db

        self.dispatcher = Dispatcher(
            self.routes,
            self.controllers,
            auto_routing=self.config.auto_routing,
        )

        self.sessions = SessionMiddleware(
            session_store,
            cookie_name=self.config.session_cookie,
            ttl=self.config.session_ttl,
            secure=self.config.url.startswith("https://"),
        )

        self.middleware = MiddlewareStack()
        self.middleware.add(RequestIdMiddleware(), priority=0, name="request_id")
        self.middleware.add(LoggingMiddleware(), priority=10, name="logging")
        self.middleware.add(ExceptionMiddleware(debug=self.config.debug), priority=20, name="exceptions")
        self.middleware.add(self.sessions, priority=30, name="sessions")
        self.middleware.add(MethodOverrideMiddleware(), priority=40, name="method_override")

        self._startup_hooks: List[Hook] = []
        self._shutdown_hooks: List[Hook] = []
        self._started = False
        self._asgi = ASGIAdapter(self)

    def _default_templates(self) -> Optional[TemplateEngine]:
        directory = Path(self.config.templates_dir)
        if not directory.is_dir():
            logger.info("Template directory %s not found; templates disabled", directory)
            return None
        return TemplateEngine(
            [directory],
            layout=self.config.layout,
            base_url=self.config.url,
            timezone=self.config.timezone,
        )

    # ── Extension points ─────────────────────────────────────────────

    def add_middleware(self, middleware: Middleware, priority: int = 50, name: Optional[str] = None) -> None:
        """Add application middleware; priority < 30 runs outside sessions."""
        self.middleware.add(middleware, priority=priority, name=name)
        self._asgi.invalidate()

    def on_startup(self, hook: Hook) -> Hook:
        self._startup_hooks.append(hook)
        return hook

    def on_shutdown(self, hook: Hook) -> Hook:
        self._shutdown_hooks.append(hook)
        return hook

    # ── Lifecycle ────────────────────────────────────────────────────

    async def startup(self) -> None:
        """
        Connect the database and run startup hooks.

        A database that cannot be reached aborts startup: the failure is
        logged at CRITICAL and re-raised so the server exits.
        """
        if self._started:
            return

        logger.info("Starting %s (%s)", self.config.name, self.config.env)
        if self.db is not None:
            try:
                await self.db.connect()
            except DatabaseConnectionFault as e:
                logger.critical("Database connection failed: %s", e.message)
                raise

        for hook in self._startup_hooks:
            await hook()

        self._started = True
        logger.info(
            "Ready: %d routes, %d auto-routed controllers (auto-routing %s)",
            len(self.routes),
            len(self.controllers),
            "on" if self.dispatcher.auto_routing else "off",
        )

    async def shutdown(self) -> None:
        """Run shutdown hooks in reverse order and close the database."""
        if not self._started:
            return
        for hook in reversed(self._shutdown_hooks):
            await hook()
        if self.db is not None:
            await self.db.close()
        self._started = False
        logger.info("Stopped %s", self.config.name)

    # ── ASGI / serving ───────────────────────────────────────────────

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        await self._asgi(scope, receive, send)

    def run(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        log_level: Optional[str] = None,
    ) -> None:
        """
        Serve the application with uvicorn.

        Args:
            host: Host to bind to
            port: Port to bind to
            log_level: Logging level (defaults to ``config.log_level``)
        """
        import uvicorn

        level = (log_level or self.config.log_level).upper()
        configure_logging(level)
        logger.info("Starting uvicorn server on %s:%s", host, port)
        uvicorn.run(self, host=host, port=port, log_level=level.lower(), lifespan="on")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper()), format=LOG_FORMAT)
