"""Route declarations and the reader that extracts them.

Handlers declare routes with decorators::

    @controller("/users")
    class UserController:
        @route("/", methods=["POST"])
        def create(self, name: str) -> Response: ...

        @route("/{id:int}")
        def show(self, id: int) -> Response: ...

    @route("/health")
    def health() -> Response: ...

The decorators only attach metadata. ``RouteDiscovery`` asks a
``RouteReader`` for the declared routes of each handler it finds, so any
other metadata source (docstring annotations, a registry, a manifest)
can stand in for ``DecoratorRouteReader``.
"""

import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

_ROUTES_ATTR = "__wren_routes__"
_PREFIX_ATTR = "__wren_prefix__"

F = TypeVar("F", bound=Callable[..., Any])
C = TypeVar("C", bound=type)


@dataclass(frozen=True, slots=True)
class RouteSpec:
    """One declared route: full path, methods, and the action serving it."""

    path: str
    methods: frozenset[str]
    action: str
    name: str | None = None


class RouteReader(Protocol):
    """Given a handler (class or function), return its declared routes."""

    def read(self, handler: Any) -> list[RouteSpec]: ...


def route(
    path: str,
    *,
    methods: Iterable[str] | None = None,
    name: str | None = None,
) -> Callable[[F], F]:
    """Declare a route on a function or controller method.

    Stackable: each decorator adds one route to the same action.

    Args:
        path: URL pattern, ``{param}`` or ``{param:int}`` for parameters.
        methods: HTTP methods. Defaults to ``["GET"]``.
        name: Optional route name.
    """
    method_set = frozenset(m.upper() for m in (methods or ("GET",)))

    def decorator(func: F) -> F:
        declared = getattr(func, _ROUTES_ATTR, ())
        # Decorators apply bottom-up; keep the top one first.
        setattr(func, _ROUTES_ATTR, ((path, method_set, name), *declared))
        return func

    return decorator


def controller(prefix: str = "") -> Callable[[C], C]:
    """Mark a class as a controller, prefixing all of its routes."""

    def decorator(cls: C) -> C:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


def join_path(prefix: str, path: str) -> str:
    """Join a controller prefix and a route path into one normalized path."""
    parts = [p.strip("/") for p in (prefix, path) if p.strip("/")]
    return "/" + "/".join(parts)


class DecoratorRouteReader:
    """Reads routes declared with ``@route`` and ``@controller``."""

    def read(self, handler: Any) -> list[RouteSpec]:
        if inspect.isclass(handler):
            return self._read_class(handler)
        return self._specs_for(handler, "", getattr(handler, "__name__", ""))

    def _read_class(self, cls: type) -> list[RouteSpec]:
        prefix = getattr(cls, _PREFIX_ATTR, "")
        specs: list[RouteSpec] = []
        for attr_name in _definition_order(cls):
            if attr_name.startswith("_"):
                continue
            member = getattr(cls, attr_name, None)
            if callable(member):
                specs.extend(self._specs_for(member, prefix, attr_name))
        return specs

    @staticmethod
    def _specs_for(func: Any, prefix: str, action: str) -> list[RouteSpec]:
        return [
            RouteSpec(path=join_path(prefix, path), methods=methods, action=action, name=name)
            for path, methods, name in getattr(func, _ROUTES_ATTR, ())
        ]


def _definition_order(cls: type) -> list[str]:
    """Attribute names in definition order, base classes first."""
    names: dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        names.update(dict.fromkeys(vars(klass)))
    return list(names)
