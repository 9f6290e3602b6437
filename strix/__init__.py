"""
Strix - a small async MVC web framework.

Integration of:
- Routing: explicit routes with gates and groups, plus an opt-in
  convention auto-router over registered controllers
- Controllers: per-request controller instances with render/json/redirect
- Database: one owned connection (SQLite or MySQL) and a fluent,
  single-use query builder
- Sessions: cookie-backed sessions with flash messages and login gating
- Templates: Jinja2 pages wrapped in a shared layout
- Faults: structured error handling with fault domains
"""

__version__ = "0.1.0"

# ============================================================================
# Core Framework
# ============================================================================

from .app import Application, configure_logging
from .config import AppConfig, ConfigLoader, DatabaseConfig
from .controller import Controller, RequestCtx
from .request import Request
from .response import Response

# ============================================================================
# Routing
# ============================================================================

from .routing import (
    CONTINUE,
    Continue,
    ControllerRegistry,
    Gate,
    Halt,
    RouteTable,
    SessionAuthGate,
)

# ============================================================================
# Database / templates / sessions
# ============================================================================

from .db import ConnectionRegistry, Database, Page, QueryBuilder
from .templates import TemplateEngine
from .sessions import MemoryStore, Session, SessionStore
from .hashing import PasswordHasher, hash_password, verify_password
from .middleware import CSRFMiddleware, MiddlewareStack

# ============================================================================
# Faults
# ============================================================================

from .faults import Fault, FaultDomain

__all__ = [
    "__version__",
    # Core
    "Application",
    "configure_logging",
    "AppConfig",
    "ConfigLoader",
    "DatabaseConfig",
    "Controller",
    "RequestCtx",
    "Request",
    "Response",
    # Routing
    "RouteTable",
    "ControllerRegistry",
    "Gate",
    "Halt",
    "Continue",
    "CONTINUE",
    "SessionAuthGate",
    # Data
    "ConnectionRegistry",
    "Database",
    "QueryBuilder",
    "Page",
    "TemplateEngine",
    "Session",
    "SessionStore",
    "MemoryStore",
    "PasswordHasher",
    "hash_password",
    "verify_password",
    "MiddlewareStack",
    "CSRFMiddleware",
    "Fault",
    "FaultDomain",
]
