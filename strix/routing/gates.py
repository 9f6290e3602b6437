"""
Gates - pre-handler checks that may veto dispatch.

A gate evaluates the request context and answers with one of two
outcomes:

- ``Continue``: let the next gate (or the handler) run
- ``Halt(response)``: stop dispatch and send ``response`` instead

Gates are referenced from routes by class, by instance or as plain
callables. Classes are instantiated per dispatch so they carry no state
between requests; instances and callables are used as given.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Sequence, Type, Union

from ..faults import GateFault
from ..response import Response

if TYPE_CHECKING:
    from ..controller import RequestCtx

logger = logging.getLogger("strix.routing")


# ============================================================================
# Outcomes
# ============================================================================

@dataclass(frozen=True)
class Continue:
    """Gate passed."""


@dataclass(frozen=True)
class Halt:
    """Gate vetoed; ``response`` is what the client gets."""
    response: Response


GateOutcome = Union[Continue, Halt]

CONTINUE = Continue()


# ============================================================================
# Gate base
# ============================================================================

class Gate:
    """
    Base class for gates.

    Subclasses implement ``evaluate``; it may be sync or async.

    Example:
        class AdminOnly(Gate):
            async def evaluate(self, ctx):
                if ctx.session.get("role") == "admin":
                    return CONTINUE
                return Halt(Response.text("Forbidden", status=403))
    """

    def evaluate(self, ctx: "RequestCtx") -> Union[GateOutcome, Awaitable[GateOutcome]]:
        raise NotImplementedError

    @property
    def name(self) -> str:
        return type(self).__name__


GateCallable = Callable[["RequestCtx"], Union[GateOutcome, Awaitable[GateOutcome]]]
GateSpec = Union[Type[Gate], Gate, GateCallable]


def gate_name(spec: GateSpec) -> str:
    if isinstance(spec, type):
        return spec.__name__
    if isinstance(spec, Gate):
        return spec.name
    return getattr(spec, "__qualname__", None) or repr(spec)


def validate_gate(spec: GateSpec) -> GateSpec:
    """Reject anything that cannot act as a gate, at registration time."""
    if isinstance(spec, type):
        if not issubclass(spec, Gate):
            raise GateFault(spec.__name__, "gate classes must subclass Gate")
        return spec
    if isinstance(spec, Gate) or callable(spec):
        return spec
    raise GateFault(repr(spec), "not a Gate class, Gate instance or callable")


# ============================================================================
# Chain executor
# ============================================================================

class GateChain:
    """
    Runs gates in order, stopping at the first veto.

    Example:
        >>> chain = GateChain([SessionAuthGate])
        >>> halted = await chain.run(ctx)
        >>> if halted is not None:
        ...     return halted
    """

    def __init__(self, gates: Sequence[GateSpec] = ()):
        self.gates = tuple(gates)

    def __len__(self) -> int:
        return len(self.gates)

    async def run(self, ctx: "RequestCtx") -> Optional[Response]:
        """
        Evaluate every gate.

        Returns:
            None when all gates pass, else the vetoing gate's response.
        """
        for spec in self.gates:
            outcome = await self._evaluate(spec, ctx)
            if isinstance(outcome, Halt):
                logger.info(
                    "Gate %s halted %s %s (status %d)",
                    gate_name(spec), ctx.method, ctx.path, outcome.response.status,
                )
                return outcome.response
        return None

    async def _evaluate(self, spec: GateSpec, ctx: "RequestCtx") -> GateOutcome:
        if isinstance(spec, type):
            outcome = spec().evaluate(ctx)
        elif isinstance(spec, Gate):
            outcome = spec.evaluate(ctx)
        else:
            outcome = spec(ctx)

        if inspect.isawaitable(outcome):
            outcome = await outcome

        if not isinstance(outcome, (Continue, Halt)):
            raise GateFault(
                gate_name(spec),
                f"returned {type(outcome).__name__}; expected Continue or Halt",
            )
        return outcome


# ============================================================================
# Built-in gates
# ============================================================================

class SessionAuthGate(Gate):
    """
    Lets the request through only when the session holds ``key``.

    Otherwise halts with a redirect to the login page, remembering the
    requested URL under ``url.intended`` so the login flow can return
    there.
    """

    key: str = "user_id"
    redirect_to: str = "/login"

    def __init__(self, key: Optional[str] = None, redirect_to: Optional[str] = None):
        if key is not None:
            self.key = key
        if redirect_to is not None:
            self.redirect_to = redirect_to

    def evaluate(self, ctx: "RequestCtx") -> GateOutcome:
        session = ctx.session
        if session.has(self.key):
            return CONTINUE
        if ctx.method == "GET":
            session.set("url.intended", ctx.request.url)
        return Halt(Response.redirect(self.redirect_to))
