"""
Strix faults - typed fault signals.

Every framework error is a Fault: a stable code, a domain, a severity and
a flag saying whether its message may be shown to a client.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigMissingFault,
    ConfigInvalidFault,
    RoutingFault,
    RouteNotFoundFault,
    RouteNameUnknownFault,
    PatternInvalidFault,
    ControllerRegistrationFault,
    FlowFault,
    HandlerFault,
    GateFault,
    DatabaseFault,
    QueryFault,
    DatabaseConnectionFault,
    BuilderConsumedFault,
    IOFault,
    BadRequestFault,
    PayloadTooLargeFault,
    TemplateFault,
    SecurityFault,
    AuthenticationFault,
    CSRFFault,
)

__all__ = [
    # Core types
    "Fault",
    "FaultDomain",
    "Severity",
    # Domains
    "ConfigFault",
    "ConfigMissingFault",
    "ConfigInvalidFault",
    "RoutingFault",
    "RouteNotFoundFault",
    "RouteNameUnknownFault",
    "PatternInvalidFault",
    "ControllerRegistrationFault",
    "FlowFault",
    "HandlerFault",
    "GateFault",
    "DatabaseFault",
    "QueryFault",
    "DatabaseConnectionFault",
    "BuilderConsumedFault",
    "IOFault",
    "BadRequestFault",
    "PayloadTooLargeFault",
    "TemplateFault",
    "SecurityFault",
    "AuthenticationFault",
    "CSRFFault",
]
