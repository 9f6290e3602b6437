"""
Route table - ordered explicit routes with group-scoped gates.

Routes are tried in registration order and the first entry whose method
and pattern both match wins. Overlapping templates are therefore
resolved by declaration order, not by specificity:

    routes.get("/users/create", UserController.create_form)
    routes.get("/users/{id}", show_user)      # never sees "create"
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import (
    Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union,
)

from ..faults import HandlerFault, RouteNameUnknownFault
from ..patterns import CompiledPattern, compile_pattern, match
from .gates import GateSpec, gate_name, validate_gate

logger = logging.getLogger("strix.routing")

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

Handler = Union[Callable[..., Any], Tuple[type, str]]


def handler_name(handler: Handler) -> str:
    if isinstance(handler, tuple):
        cls, action = handler
        return f"{cls.__name__}.{action}"
    return getattr(handler, "__qualname__", None) or repr(handler)


def _validate_handler(handler: Handler) -> Handler:
    if isinstance(handler, tuple):
        if len(handler) != 2 or not isinstance(handler[0], type) or not isinstance(handler[1], str):
            raise HandlerFault(repr(handler), "controller handlers are (ControllerClass, 'action') pairs")
        cls, action = handler
        if action.startswith("_") or not callable(getattr(cls, action, None)):
            raise HandlerFault(handler_name(handler), "controller has no such public action")
        return handler
    if not callable(handler):
        raise HandlerFault(repr(handler), "handler is not callable")
    return handler


@dataclass(frozen=True)
class RouteEntry:
    """One registered route. Immutable once the table is built."""
    method: str
    template: str
    handler: Handler
    pattern: CompiledPattern = field(compare=False)
    middleware: Tuple[GateSpec, ...] = ()
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method,
            "path": self.template,
            "handler": handler_name(self.handler),
            "middleware": [gate_name(g) for g in self.middleware],
            "name": self.name,
        }


@dataclass
class RouteMatch:
    """A resolved explicit route."""
    entry: RouteEntry
    params: Dict[str, str]

    @property
    def args(self) -> Tuple[str, ...]:
        """Captured values in placeholder order."""
        return tuple(self.params[n] for n in self.entry.pattern.param_names)


class RouteRegistration:
    """
    Handle returned by registration, for chaining per-route options.

    Example:
        routes.get("/admin", admin_home).middleware(AdminOnly).name("admin")
    """

    def __init__(self, table: "RouteTable", index: int):
        self._table = table
        self._index = index

    @property
    def entry(self) -> RouteEntry:
        return self._table._entries[self._index]

    def middleware(self, *gates: GateSpec) -> "RouteRegistration":
        """Append gates after any group gates already attached."""
        entry = self.entry
        added = tuple(validate_gate(g) for g in gates)
        self._table._entries[self._index] = replace(entry, middleware=entry.middleware + added)
        return self

    def name(self, route_name: str) -> "RouteRegistration":
        self._table._set_name(route_name, self._index)
        self._table._entries[self._index] = replace(self.entry, name=route_name)
        return self


class RouteTable:
    """
    Ordered sequence of explicit routes.

    ``group`` pushes gates onto a scope stack for the duration of a
    registration block; every route registered inside gets the scope's
    gates (outermost group first) ahead of its own.
    """

    def __init__(self):
        self._entries: List[RouteEntry] = []
        self._scope_stack: List[Tuple[GateSpec, ...]] = []
        self._names: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        method: str,
        template: str,
        handler: Handler,
        middleware: Sequence[GateSpec] = (),
        *,
        name: Optional[str] = None,
    ) -> RouteRegistration:
        """
        Register a route.

        Args:
            method: HTTP method (case-insensitive)
            template: Path template such as ``/users/{id}``
            handler: Callable ``(ctx, *params)`` or ``(Controller, "action")``
            middleware: Route-specific gates, run after group gates
            name: Optional name for reverse routing

        Raises:
            PatternInvalidFault: malformed template
            HandlerFault: handler is not usable
        """
        composed: Tuple[GateSpec, ...] = ()
        for scope in self._scope_stack:
            composed += scope
        composed += tuple(validate_gate(g) for g in middleware)

        entry = RouteEntry(
            method=method.upper(),
            template=template,
            handler=_validate_handler(handler),
            pattern=compile_pattern(template),
            middleware=composed,
            name=name,
        )
        self._entries.append(entry)
        index = len(self._entries) - 1
        if name is not None:
            self._set_name(name, index)

        logger.debug("Registered %s %s -> %s", entry.method, template, handler_name(handler))
        return RouteRegistration(self, index)

    def get(self, template: str, handler: Handler, middleware: Sequence[GateSpec] = (), **kw) -> RouteRegistration:
        return self.register("GET", template, handler, middleware, **kw)

    def post(self, template: str, handler: Handler, middleware: Sequence[GateSpec] = (), **kw) -> RouteRegistration:
        return self.register("POST", template, handler, middleware, **kw)

    def put(self, template: str, handler: Handler, middleware: Sequence[GateSpec] = (), **kw) -> RouteRegistration:
        return self.register("PUT", template, handler, middleware, **kw)

    def patch(self, template: str, handler: Handler, middleware: Sequence[GateSpec] = (), **kw) -> RouteRegistration:
        return self.register("PATCH", template, handler, middleware, **kw)

    def delete(self, template: str, handler: Handler, middleware: Sequence[GateSpec] = (), **kw) -> RouteRegistration:
        return self.register("DELETE", template, handler, middleware, **kw)

    @contextmanager
    def scope(self, middleware: Sequence[GateSpec]) -> Iterator["RouteTable"]:
        """Context-manager form of ``group``."""
        self._scope_stack.append(tuple(validate_gate(g) for g in middleware))
        try:
            yield self
        finally:
            self._scope_stack.pop()

    def group(self, middleware: Sequence[GateSpec], block: Callable[["RouteTable"], Any]) -> None:
        """
        Run ``block(self)`` with ``middleware`` pushed onto the scope stack.

        Groups nest; the stack is restored even if the block raises.
        """
        with self.scope(middleware):
            block(self)

    def _set_name(self, name: str, index: int) -> None:
        existing = self._names.get(name)
        if existing is not None and existing != index:
            raise HandlerFault(name, "route name already registered")
        self._names[name] = index

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        """First entry, in registration order, matching both method and path."""
        method = method.upper()
        for entry in self._entries:
            if entry.method != method:
                continue
            params = match(entry.pattern, path)
            if params is not None:
                return RouteMatch(entry=entry, params=params)
        return None

    def url_for(self, name: str, **params: Any) -> str:
        """
        Reverse a named route.

        Raises:
            RouteNameUnknownFault: no route with that name
            PatternInvalidFault: a placeholder value is missing
        """
        index = self._names.get(name)
        if index is None:
            raise RouteNameUnknownFault(name)
        return self._entries[index].pattern.build(**params)

    def routes(self) -> List[RouteEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
