"""
Strix faults - Domain-specific fault types.

Provides concrete fault classes for each domain:
- CONFIG faults
- ROUTING faults
- FLOW faults
- DATABASE faults
- IO faults
- SECURITY faults
"""

from typing import Any, Optional
from .core import Fault, FaultDomain, Severity


# ============================================================================
# CONFIG Faults
# ============================================================================

class ConfigFault(Fault):
    """Base class for configuration faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.FATAL,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CONFIG,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class ConfigMissingFault(ConfigFault):
    """Required configuration is missing."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            code="CONFIG_MISSING",
            message=f"Required configuration key '{key}' is missing",
            metadata={"key": key, **kwargs.get("metadata", {})},
        )


class ConfigInvalidFault(ConfigFault):
    """Configuration value is invalid."""

    def __init__(self, key: str, reason: str, **kwargs):
        super().__init__(
            code="CONFIG_INVALID",
            message=f"Configuration key '{key}' is invalid: {reason}",
            metadata={"key": key, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for routing faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.ROUTING,
            severity=severity,
            retryable=False,
            public=public,
            metadata=metadata,
        )


class RouteNotFoundFault(RoutingFault):
    """Route not found."""

    def __init__(self, path: str, method: str, **kwargs):
        super().__init__(
            code="ROUTE_NOT_FOUND",
            message=f"Route not found: {method} {path}",
            severity=Severity.INFO,
            metadata={"path": path, "method": method, **kwargs.get("metadata", {})},
        )


class RouteNameUnknownFault(RoutingFault):
    """Reverse routing was asked for a name nobody registered."""

    def __init__(self, name: str, **kwargs):
        super().__init__(
            code="ROUTE_NAME_UNKNOWN",
            message=f"No route registered under the name '{name}'",
            public=False,
            metadata={"name": name, **kwargs.get("metadata", {})},
        )


class PatternInvalidFault(RoutingFault):
    """Route pattern is invalid."""

    def __init__(self, pattern: str, reason: str, **kwargs):
        super().__init__(
            code="PATTERN_INVALID",
            message=f"Invalid route pattern '{pattern}': {reason}",
            severity=Severity.FATAL,
            public=False,
            metadata={"pattern": pattern, "reason": reason, **kwargs.get("metadata", {})},
        )


class ControllerRegistrationFault(RoutingFault):
    """A controller could not be registered for auto-routing."""

    def __init__(self, controller: str, reason: str, **kwargs):
        super().__init__(
            code="CONTROLLER_REGISTRATION_FAILED",
            message=f"Cannot register controller '{controller}': {reason}",
            severity=Severity.FATAL,
            public=False,
            metadata={"controller": controller, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# FLOW Faults
# ============================================================================

class FlowFault(Fault):
    """Base class for handler and gate execution faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.FLOW,
            severity=severity,
            retryable=False,
            public=False,
            metadata=metadata,
        )


class HandlerFault(FlowFault):
    """Handler is malformed or returned something unusable."""

    def __init__(self, handler_name: str, reason: str, **kwargs):
        super().__init__(
            code="HANDLER_FAILED",
            message=f"Handler '{handler_name}' failed: {reason}",
            metadata={"handler": handler_name, "reason": reason, **kwargs.get("metadata", {})},
        )


class GateFault(FlowFault):
    """Gate is malformed or returned an unknown outcome."""

    def __init__(self, gate_name: str, reason: str, **kwargs):
        super().__init__(
            code="GATE_FAILED",
            message=f"Gate '{gate_name}' failed: {reason}",
            metadata={"gate": gate_name, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# DATABASE Faults
# ============================================================================

class DatabaseFault(Fault):
    """Base class for query building and database faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.DATABASE,
            severity=severity,
            retryable=retryable,
            public=public,
            metadata=metadata,
        )


class QueryFault(DatabaseFault):
    """Query execution failed."""

    def __init__(self, table: str, operation: str, reason: str, **kwargs):
        super().__init__(
            code="QUERY_FAILED",
            message=f"Query on '{table}' ({operation}) failed: {reason}",
            metadata={"table": table, "operation": operation, "reason": reason, **kwargs.get("metadata", {})},
        )


class DatabaseConnectionFault(DatabaseFault):
    """Database connection failed."""

    def __init__(self, url: str, reason: str, **kwargs):
        super().__init__(
            code="DB_CONNECTION_FAILED",
            message=f"Database connection failed ({url}): {reason}",
            severity=Severity.FATAL,
            retryable=True,
            metadata={"url": url, "reason": reason, **kwargs.get("metadata", {})},
        )


class BuilderConsumedFault(DatabaseFault):
    """A query builder was used after its terminal operation ran."""

    def __init__(self, table: str, operation: str, **kwargs):
        super().__init__(
            code="BUILDER_CONSUMED",
            message=(
                f"Query builder for '{table}' was already consumed; "
                f"cannot call {operation}(). Use clone() to reuse a query."
            ),
            metadata={"table": table, "operation": operation, **kwargs.get("metadata", {})},
        )


# ============================================================================
# IO Faults
# ============================================================================

class IOFault(Fault):
    """Base class for I/O faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.IO,
            severity=severity,
            retryable=False,
            public=public,
            metadata=metadata,
        )


class BadRequestFault(IOFault):
    """Request body could not be decoded."""

    def __init__(self, reason: str, **kwargs):
        super().__init__(
            code="BAD_REQUEST",
            message=f"Malformed request: {reason}",
            public=True,
            metadata={"reason": reason, **kwargs.get("metadata", {})},
        )


class PayloadTooLargeFault(IOFault):
    """Request body exceeded the configured limit."""

    def __init__(self, limit: int, **kwargs):
        super().__init__(
            code="PAYLOAD_TOO_LARGE",
            message=f"Request body exceeds {limit} bytes",
            public=True,
            metadata={"limit": limit, **kwargs.get("metadata", {})},
        )


class TemplateFault(IOFault):
    """Template could not be loaded or rendered."""

    def __init__(self, template: str, reason: str, **kwargs):
        super().__init__(
            code="TEMPLATE_FAILED",
            message=f"Template '{template}' failed: {reason}",
            severity=Severity.ERROR,
            metadata={"template": template, "reason": reason, **kwargs.get("metadata", {})},
        )


# ============================================================================
# SECURITY Faults
# ============================================================================

class SecurityFault(Fault):
    """Base class for security faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.SECURITY,
            severity=severity,
            retryable=False,
            public=public,
            metadata=metadata,
        )


class AuthenticationFault(SecurityFault):
    """Credentials were missing or wrong."""

    def __init__(self, reason: str = "Invalid credentials", **kwargs):
        super().__init__(
            code="AUTHENTICATION_FAILED",
            message=reason,
            metadata=kwargs.get("metadata", {}),
        )


class CSRFFault(SecurityFault):
    """CSRF token missing or mismatched."""

    def __init__(self, **kwargs):
        super().__init__(
            code="CSRF_MISMATCH",
            message="CSRF token missing or invalid",
            metadata=kwargs.get("metadata", {}),
        )
