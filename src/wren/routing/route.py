"""Route value types: path segments, handler identities, routes and matches."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``      (is_param=False)
    Param:   ``/{id}``       (is_param=True, param_name="id")
    Typed:   ``/{id:int}``   (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class HandlerRef:
    """Where a handler lives: namespace, module, optional class, action.

    ``module`` is the dotted path of the handler file relative to the
    namespace directory (``admin.users`` for ``admin/users.py``).
    ``controller`` is the class name, or None for a module-level function.
    """

    namespace: str
    module: str
    controller: str | None
    action: str

    @property
    def handler(self) -> str:
        """Handler name: ``module.Controller`` or just ``module``."""
        if self.controller is None:
            return self.module
        return f"{self.module}.{self.controller}"

    @property
    def module_name(self) -> str:
        """Import name the handler module is registered under."""
        return f"{self.namespace}.{self.module}"

    def __str__(self) -> str:
        return f"{self.namespace}:{self.handler}.{self.action}"


@dataclass(frozen=True, slots=True)
class Route:
    """A discovered route. Read-only once the table is compiled."""

    path: str
    methods: frozenset[str]
    handler: HandlerRef
    params: tuple[str, ...] = ()
    name: str | None = None

    @property
    def key(self) -> tuple[str, str, str, str]:
        """Identity in the route table; a later route with the same key wins."""
        ref = self.handler
        return (ref.namespace, ref.handler, ref.action, self.path)

    def to_record(self) -> dict[str, Any]:
        """Plain-data form written to the discovery cache."""
        ref = self.handler
        return {
            "path": self.path,
            "methods": sorted(self.methods),
            "namespace": ref.namespace,
            "module": ref.module,
            "controller": ref.controller,
            "action": ref.action,
            "params": list(self.params),
            "name": self.name,
        }

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Route:
        """Rebuild a route from ``to_record`` output."""
        return cls(
            path=record["path"],
            methods=frozenset(record["methods"]),
            handler=HandlerRef(
                namespace=record["namespace"],
                module=record["module"],
                controller=record["controller"],
                action=record["action"],
            ),
            params=tuple(record["params"]),
            name=record.get("name"),
        )


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match: the route plus raw path values."""

    route: Route
    path_params: dict[str, str]
