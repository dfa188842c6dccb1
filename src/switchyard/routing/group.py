"""Route groups — a tree of path prefixes sharing middleware and afterware.

Groups are mutable during setup. When the owning ``Router`` finalizes,
the tree is expanded once into a flat list of ``Route`` entries and
sealed; any later registration raises ``RuntimeError``.

Expansion order (it decides middleware order, so it is fixed):

- depth-first, pre-order: a group's own routes in registration order,
  then each child group in the order it was added;
- middleware of a route = ancestors' middleware (outermost first), then
  the group's, then the route's own;
- afterware of a route = ancestors' afterware (outermost first), then
  the group's.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from switchyard.errors import ConfigurationError
from switchyard.middleware.protocol import Afterware, Handler, Middleware, compose
from switchyard.routing.route import Route

HTTP_METHODS = frozenset(
    {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "CONNECT", "TRACE"}
)


def join_path(*parts: str) -> str:
    """Join path pieces with exactly one ``/`` between segments.

    ``join_path("", "/")`` is ``"/"``; ``join_path("/api/", "/users")``
    is ``"/api/users"``.
    """
    segments = [seg for part in parts for seg in part.split("/") if seg]
    return "/" + "/".join(segments)


@dataclass(frozen=True, slots=True)
class _PendingRoute:
    """A route waiting to be expanded."""

    method: str
    path: str
    handler: Handler
    middleware: tuple[Middleware, ...]


class RouteGroup:
    """A node of the route tree.

    Usage::

        api = RouteGroup("/api")
        api.before(require_token)

        v1 = api.add_group("/v1")
        v1.get("/users/:id", get_user)

        # GET /api/v1/users/:id runs require_token, then get_user
    """

    __slots__ = ("_afterware", "_children", "_middleware", "_owned", "_routes", "_sealed", "prefix")

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self._routes: list[_PendingRoute] = []
        self._middleware: list[Middleware] = []
        self._afterware: list[Afterware] = []
        self._children: list[RouteGroup] = []
        self._owned = False
        self._sealed = False

    # -- Route registration --

    def add_route(self, method: str, path: str, handler: Handler, *middleware: Middleware) -> None:
        """Register *handler* for *method* at *path* below this group's prefix.

        Route-level *middleware* runs after every group middleware.
        """
        self._check_not_sealed()
        method = method.upper()
        if method not in HTTP_METHODS:
            msg = f"Unknown HTTP method {method!r} for route {path!r}."
            raise ConfigurationError(msg)
        self._routes.append(_PendingRoute(method, path, handler, middleware))

    def get(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("GET", path, handler, *middleware)

    def head(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("HEAD", path, handler, *middleware)

    def post(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("POST", path, handler, *middleware)

    def put(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("PUT", path, handler, *middleware)

    def patch(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("PATCH", path, handler, *middleware)

    def delete(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("DELETE", path, handler, *middleware)

    def options(self, path: str, handler: Handler, *middleware: Middleware) -> None:
        self.add_route("OPTIONS", path, handler, *middleware)

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        middleware: tuple[Middleware, ...] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator.

        Args:
            path: Path pattern below the prefix. Use ``:name`` for
                parameters and a trailing ``*name`` for a catch-all.
            methods: HTTP methods. Defaults to ``["GET"]``.
            middleware: Route-level middleware.
        """

        def decorator(func: Handler) -> Handler:
            for method in methods or ["GET"]:
                self.add_route(method, path, func, *middleware)
            return func

        return decorator

    def ws(self, path: str, handler: Callable[..., Any], *middleware: Middleware) -> None:
        """Register a websocket handler ``handler(request, ctx, ws)``.

        The handshake is a ``GET``, so the route is registered as one and
        group middleware runs before the upgrade is attempted.
        """
        from switchyard.server.websocket import websocket_handler

        self.add_route("GET", path, websocket_handler(handler), *middleware)

    # -- Tree --

    def add_group(self, group: "str | RouteGroup") -> "RouteGroup":
        """Create (or adopt) a child group and return it.

        The child inherits this group's prefix, middleware, and afterware,
        including any added after this call.
        """
        self._check_not_sealed()
        child = RouteGroup(group) if isinstance(group, str) else group
        if child is self or child._owned:
            msg = f"Group {child.prefix!r} already belongs to a parent group."
            raise ConfigurationError(msg)
        child._owned = True
        self._children.append(child)
        return child

    def before(self, *middleware: Middleware) -> None:
        """Add middleware run before every handler in this group and below."""
        self._check_not_sealed()
        self._middleware.extend(middleware)

    def after(self, *afterware: Afterware) -> None:
        """Add afterware run after every handler in this group and below."""
        self._check_not_sealed()
        self._afterware.extend(afterware)

    # -- Expansion --

    def route_handlers(self) -> list[Route]:
        """Expand the tree into flat routes with fully composed handlers."""
        return list(self._expand("", (), ()))

    def _expand(
        self,
        parent_prefix: str,
        parent_middleware: tuple[Middleware, ...],
        parent_afterware: tuple[Afterware, ...],
    ) -> Iterator[Route]:
        prefix = join_path(parent_prefix, self.prefix)
        middleware = (*parent_middleware, *self._middleware)
        afterware = (*parent_afterware, *self._afterware)

        for pending in self._routes:
            yield Route(
                method=pending.method,
                path=join_path(prefix, pending.path),
                handler=compose(
                    pending.handler,
                    (*middleware, *pending.middleware),
                    afterware,
                ),
            )

        for child in self._children:
            yield from child._expand(prefix, middleware, afterware)

    def _seal(self) -> None:
        self._sealed = True
        for child in self._children:
            child._seal()

    def _check_not_sealed(self) -> None:
        if self._sealed:
            msg = (
                "Cannot modify routes after the router has been finalized. "
                "Register routes, groups, and middleware before serving requests."
            )
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        return f"<RouteGroup {self.prefix!r} routes={len(self._routes)} groups={len(self._children)}>"
