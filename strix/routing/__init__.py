"""
Strix routing: explicit route table, gates, auto-router and dispatcher.
"""

from .gates import (
    CONTINUE,
    Continue,
    Gate,
    GateChain,
    GateOutcome,
    Halt,
    SessionAuthGate,
)
from .table import RouteEntry, RouteMatch, RouteRegistration, RouteTable
from .autoroute import AutoRoute, ControllerRegistry, derive_target
from .dispatcher import Dispatcher, coerce_response

__all__ = [
    "CONTINUE",
    "Continue",
    "Gate",
    "GateChain",
    "GateOutcome",
    "Halt",
    "SessionAuthGate",
    "RouteEntry",
    "RouteMatch",
    "RouteRegistration",
    "RouteTable",
    "AutoRoute",
    "ControllerRegistry",
    "derive_target",
    "Dispatcher",
    "coerce_response",
]
