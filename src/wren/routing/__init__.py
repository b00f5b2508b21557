"""Routing: path patterns and the ordered route table.

Routes are registered during setup and looked up in registration order.
The table is frozen when the app starts serving requests.
"""

from wren.routing.pattern import PathMatch, PathPattern, compile_pattern
from wren.routing.route import ANY, Handler, HandlerKind, Route, RouteMatch, error_handler
from wren.routing.router import Router

__all__ = [
    "ANY",
    "Handler",
    "HandlerKind",
    "PathMatch",
    "PathPattern",
    "Route",
    "RouteMatch",
    "Router",
    "compile_pattern",
    "error_handler",
]
