"""Routing — route groups compiled into an immutable dispatch table.

Routes are registered on a tree of groups during setup and expanded
into flat routes with composed handlers when the router finalizes.
"""

from switchyard.routing.group import RouteGroup, join_path
from switchyard.routing.route import Route, RouteMatch
from switchyard.routing.router import Router

__all__ = [
    "Route",
    "RouteGroup",
    "RouteMatch",
    "Router",
    "join_path",
]
