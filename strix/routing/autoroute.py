"""
Auto-router - convention-based fallback dispatch.

    /{controller}/{action}/{p1}/{p2}...  ->  {Controller}Controller.{action}(ctx, p1, p2, ...)

The controller namespace is a closed registry filled at startup, so only
explicitly registered controllers and their public actions are
reachable. Auto-routed dispatches never run gates.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Type

from ..controller import Controller
from ..faults import ControllerRegistrationFault

logger = logging.getLogger("strix.routing")

DEFAULT_CONTROLLER = "Home"
DEFAULT_ACTION = "index"
CONTROLLER_SUFFIX = "Controller"


@dataclass(frozen=True)
class AutoRoute:
    """Target derived from a path by naming convention."""
    controller: Type[Controller]
    action: str
    params: Tuple[str, ...]

    @property
    def name(self) -> str:
        return f"{self.controller.__name__}.{self.action}"


def derive_target(path: str) -> Tuple[str, str, Tuple[str, ...]]:
    """
    Split a path into (controller identifier, action, params).

    >>> derive_target("/user/show/42")
    ('UserController', 'show', ('42',))
    >>> derive_target("/")
    ('HomeController', 'index', ())
    """
    trimmed = path.strip("/")
    segments = trimmed.split("/") if trimmed else []
    if not segments:
        return DEFAULT_CONTROLLER + CONTROLLER_SUFFIX, DEFAULT_ACTION, ()

    head = segments[0]
    controller = head[:1].upper() + head[1:] + CONTROLLER_SUFFIX
    action = segments[1] if len(segments) > 1 else DEFAULT_ACTION
    return controller, action, tuple(segments[2:])


def public_actions(cls: Type[Controller]) -> FrozenSet[str]:
    """
    Names of the actions a controller exposes.

    Public functions defined on the class or on its bases below
    ``Controller``; helpers inherited from ``Controller`` itself are not
    actions.
    """
    actions = set()
    for klass in cls.__mro__:
        if klass is Controller or not issubclass(klass, Controller):
            continue
        for attr, value in vars(klass).items():
            if attr.startswith("_"):
                continue
            if inspect.isfunction(value):
                actions.add(attr)
    return frozenset(actions)


class ControllerRegistry:
    """
    Closed table of auto-routable controllers.

    Example:
        >>> registry = ControllerRegistry()
        >>> registry.register(UserController)
        >>> registry.resolve("/user/show/7")
        AutoRoute(controller=UserController, action='show', params=('7',))
    """

    def __init__(self):
        self._controllers: Dict[str, Type[Controller]] = {}
        self._actions: Dict[str, FrozenSet[str]] = {}

    def register(self, cls: Type[Controller]) -> Type[Controller]:
        """
        Add a controller. Usable as a class decorator.

        Raises:
            ControllerRegistrationFault: not a Controller subclass, name
                lacks the ``Controller`` suffix, or name already taken
        """
        if not isinstance(cls, type) or not issubclass(cls, Controller):
            raise ControllerRegistrationFault(repr(cls), "must subclass strix.Controller")
        name = cls.__name__
        if not name.endswith(CONTROLLER_SUFFIX) or name == CONTROLLER_SUFFIX:
            raise ControllerRegistrationFault(name, f"class name must end with '{CONTROLLER_SUFFIX}'")
        existing = self._controllers.get(name)
        if existing is not None and existing is not cls:
            raise ControllerRegistrationFault(name, "another controller already uses this name")

        self._controllers[name] = cls
        self._actions[name] = public_actions(cls)
        logger.debug("Auto-routable controller %s: %s", name, sorted(self._actions[name]))
        return cls

    def register_many(self, classes: Iterable[Type[Controller]]) -> None:
        for cls in classes:
            self.register(cls)

    def get(self, name: str) -> Optional[Type[Controller]]:
        return self._controllers.get(name)

    def actions(self, name: str) -> FrozenSet[str]:
        return self._actions.get(name, frozenset())

    def resolve(self, path: str) -> Optional[AutoRoute]:
        """
        Derive the target for ``path``.

        Returns None when the controller is not registered, the action
        is not one of its public actions, or the path parameters cannot
        bind to the action's signature.
        """
        controller_name, action, params = derive_target(path)
        cls = self._controllers.get(controller_name)
        if cls is None:
            logger.debug("Auto-route miss: no controller %s", controller_name)
            return None
        if action not in self._actions[controller_name]:
            logger.debug("Auto-route miss: %s has no action %s", controller_name, action)
            return None

        try:
            # Unbound function: self, ctx, then the positional params
            inspect.signature(getattr(cls, action)).bind(None, None, *params)
        except TypeError:
            logger.debug(
                "Auto-route miss: %s.%s does not accept %d params",
                controller_name, action, len(params),
            )
            return None

        return AutoRoute(controller=cls, action=action, params=params)

    def routes(self) -> List[str]:
        """Convention paths for every registered action."""
        out = []
        for name in sorted(self._controllers):
            stem = name[: -len(CONTROLLER_SUFFIX)]
            prefix = stem[:1].lower() + stem[1:]
            for action in sorted(self._actions[name]):
                out.append(f"/{prefix}/{action}")
        return out

    def __contains__(self, name: str) -> bool:
        return name in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)
