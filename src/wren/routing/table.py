"""Route table with trie-based path matching.

Routes are collected during discovery, keyed by handler identity, then
compiled into an immutable trie. Matching walks the trie once per
request: static segments first, then parameters, then catch-alls.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

from wren.errors import ConfigurationError, MethodNotAllowed, NotFound
from wren.routing.params import CONVERTERS
from wren.routing.route import PathSegment, Route, RouteMatch

_FLASK_STYLE_RE = re.compile(r"<[^>]+>")


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path into segments.

    Examples::

        "/users"             -> [PathSegment("users")]
        "/users/{id:int}"    -> [PathSegment("users"), PathSegment("{id:int}", True, "id", "int")]
        "/files/{rest:path}" -> [PathSegment("files"), PathSegment("{rest:path}", True, "rest", "path")]

    Raises ``ConfigurationError`` for ``<param>`` syntax or an unknown
    converter, so bad declarations fail during discovery.
    """
    if _FLASK_STYLE_RE.search(path):
        msg = f"Route path {path!r} uses <param> syntax; declare parameters as {{param}}."
        raise ConfigurationError(msg)

    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if not (part.startswith("{") and part.endswith("}")):
            segments.append(PathSegment(value=part))
            continue
        name, _, param_type = part[1:-1].partition(":")
        param_type = param_type or "str"
        if param_type not in CONVERTERS:
            msg = f"Unknown path converter {param_type!r} in route {path!r}."
            raise ConfigurationError(msg)
        segments.append(
            PathSegment(value=part, is_param=True, param_name=name, param_type=param_type)
        )
    return segments


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_alls", "children", "param_edges", "routes_by_method")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        # One edge per distinct (converter, name), tried in insertion order
        self.param_edges: list[_ParamEdge] = []
        self.catch_alls: list[_CatchAllEdge] = []
        self.routes_by_method: dict[str, Route] = {}

    def param_edge(self, seg: PathSegment) -> _ParamEdge:
        name = seg.param_name or ""
        for edge in self.param_edges:
            if edge.param_name == name and edge.param_type == seg.param_type:
                return edge
        pattern, _ = CONVERTERS[seg.param_type]
        edge = _ParamEdge(name, seg.param_type, re.compile(f"^{pattern}$"), _TrieNode())
        self.param_edges.append(edge)
        return edge

    def catch_all(self, seg: PathSegment) -> _CatchAllEdge:
        name = seg.param_name or "path"
        for edge in self.catch_alls:
            if edge.param_name == name:
                return edge
        edge = _CatchAllEdge(name, {})
        self.catch_alls.append(edge)
        return edge


@dataclass(slots=True)
class _ParamEdge:
    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """Consumes the rest of the path."""

    param_name: str
    routes_by_method: dict[str, Route]


class RouteTable:
    """Mapping of (method, path pattern) to handler identity.

    Usage::

        table = RouteTable()
        table.add(route)
        table.compile()
        match = table.match("GET", "/users/42")

    ``add`` keys routes by namespace + handler + action + path, so adding
    the same declaration twice keeps one route: the last one added.
    """

    __slots__ = ("_compiled", "_root", "_routes")

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str, str, str], Route] = {}
        self._root = _TrieNode()
        self._compiled = False

    def add(self, route: Route) -> None:
        """Add or replace a route. Must be called before ``compile()``."""
        if self._compiled:
            msg = "Cannot add routes after the route table is compiled."
            raise RuntimeError(msg)
        parse_path(route.path)
        self._routes[route.key] = route

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def routes(self) -> list[Route]:
        """All routes in insertion order."""
        return list(self._routes.values())

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    def compile(self) -> None:
        """Build the trie and freeze the table. Safe to call twice."""
        if self._compiled:
            return
        for route in self._routes.values():
            self._insert(route)
        self._compiled = True

    def _insert(self, route: Route) -> None:
        node = self._root
        for seg in parse_path(route.path):
            if seg.is_param and seg.param_type == "path":
                edge = node.catch_all(seg)
                for method in route.methods:
                    edge.routes_by_method[method] = route
                return
            if seg.is_param:
                node = node.param_edge(seg).node
            else:
                node = node.children.setdefault(seg.value, _TrieNode())
        for method in route.methods:
            node.routes_by_method[method] = route

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request method and path.

        Candidates are tried static first, then parameters, then
        catch-alls; the first one serving *method* wins. Raises
        ``NotFound`` if no route matches the path and ``MethodNotAllowed``
        if the path matches under other methods only.
        """
        if not self._compiled:
            msg = "The route table must be compiled before matching."
            raise RuntimeError(msg)

        parts = [p for p in path.strip("/").split("/") if p]
        allowed: set[str] = set()
        for routes_by_method, params in self._candidates(self._root, parts, 0, {}):
            route = routes_by_method.get(method)
            if route is not None:
                return RouteMatch(route=route, path_params=params)
            allowed.update(routes_by_method)

        if not allowed:
            raise NotFound(method, path)
        raise MethodNotAllowed(method, path, frozenset(allowed))

    def _candidates(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> Iterator[tuple[dict[str, Route], dict[str, str]]]:
        """Every (routes by method, path params) matching *parts*, by precedence."""
        if index == len(parts):
            if node.routes_by_method:
                yield node.routes_by_method, params
            return

        part = parts[index]

        child = node.children.get(part)
        if child is not None:
            yield from self._candidates(child, parts, index + 1, params)

        for edge in node.param_edges:
            if edge.regex.match(part):
                yield from self._candidates(
                    edge.node, parts, index + 1, {**params, edge.param_name: part}
                )

        remaining = "/".join(parts[index:])
        for catch_all in node.catch_alls:
            yield catch_all.routes_by_method, {**params, catch_all.param_name: remaining}
