"""Routing: declared routes, discovery, and the compiled route table.

Handlers declare routes with ``@route``; ``RouteDiscovery`` scans the
configured directories (or loads a cached scan) into a ``RouteTable``,
which is compiled once and read-only afterward.
"""

from wren.routing.reader import DecoratorRouteReader, RouteReader, RouteSpec, controller, route
from wren.routing.route import HandlerRef, Route, RouteMatch
from wren.routing.table import RouteTable

__all__ = [
    "DecoratorRouteReader",
    "HandlerRef",
    "Route",
    "RouteMatch",
    "RouteReader",
    "RouteSpec",
    "RouteTable",
    "controller",
    "route",
]
