"""Router — the root route group and the ASGI dispatch entry point.

Lifecycle:

1. Setup: register routes, groups, middleware, afterware, quiet routes.
2. ``finalize()``: the group tree is expanded once into the dispatch
   table and the matcher. Runs exactly once, even when called from
   several threads; later calls are no-ops.
3. Serving: ``await router(scope, receive, send)``. The table is only
   read, so serving needs no locks.

An unfinalized router finalizes itself on the first request.
"""

import logging
import threading
from collections.abc import Iterable
from dataclasses import replace
from types import MappingProxyType

import httpx

from switchyard._internal.asgi import ASGIApp, Receive, Scope, Send
from switchyard.errors import ConfigurationError, HTTPError
from switchyard.http.headers import MutableHeaders
from switchyard.http.request import Request
from switchyard.routing.group import HTTP_METHODS, RouteGroup, join_path
from switchyard.routing.matcher import Matcher
from switchyard.routing.route import Route
from switchyard.server.handler import ASGIEndpoint, Endpoint, encode_headers
from switchyard.server.proxy import FallbackProxy, parse_fallback
from switchyard.server.resolve import resolve_error
from switchyard.server.sender import send_response


class Router(RouteGroup):
    """Root group that owns the dispatch table.

    Usage::

        router = Router(fallback="http://legacy:8080")
        router.before(auth)
        router.get("/users/:id", get_user)

        api = router.add_group("/api")
        api.post("/items", create_item)

        router.finalize()
        # router is now an ASGI application
    """

    __slots__ = (
        "_asgi_routes",
        "_finalize_lock",
        "_finalized",
        "_matcher",
        "_quiet_routes",
        "_table",
        "log",
        "proxy",
    )

    def __init__(
        self,
        logger: logging.Logger | None = None,
        fallback: str = "",
        *,
        proxy_timeout: float = 30.0,
        proxy_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("")
        self.log = logger or logging.getLogger("switchyard.server")
        self._asgi_routes: list[Route] = []
        self._quiet_routes: set[str] = set()
        self._table: MappingProxyType[tuple[str, str], Route] = MappingProxyType({})
        self._matcher = Matcher()
        self._finalized = False
        self._finalize_lock = threading.Lock()

        self.proxy: FallbackProxy | None = None
        if fallback:
            target = parse_fallback(fallback)
            if target is None:
                self.log.warning("fallback proxy disabled: %r is not an absolute http(s) URL", fallback)
            else:
                self.proxy = FallbackProxy(target, transport=proxy_transport, timeout=proxy_timeout)
                self.log.info("unhandled requests will be proxied to %s", target)

    # -- Setup --

    def use_quiet_routes(self, paths: Iterable[str]) -> None:
        """Log requests to these exact paths at DEBUG instead of INFO."""
        if self._finalized:
            msg = "Cannot change quiet routes after the router has been finalized."
            raise RuntimeError(msg)
        self._quiet_routes.update(paths)

    def handle_asgi(self, method: str, path: str, app: ASGIApp) -> None:
        """Mount a raw ASGI application at *method* and *path*.

        The application bypasses middleware, afterware, context, and
        response resolution. Path parameters arrive in
        ``scope["path_params"]``.
        """
        self._check_not_sealed()
        method = method.upper()
        if method not in HTTP_METHODS:
            msg = f"Unknown HTTP method {method!r} for route {path!r}."
            raise ConfigurationError(msg)
        path = join_path(path)
        self._asgi_routes.append(Route(method, path, app, endpoint=ASGIEndpoint(app)))

    # -- Finalization --

    @property
    def finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> None:
        """Build the dispatch table. Idempotent and thread-safe."""
        if self._finalized:
            return
        with self._finalize_lock:
            if self._finalized:
                return
            self._build()

    def _build(self) -> None:
        quiet = frozenset(self._quiet_routes)
        matcher = Matcher()
        table: dict[tuple[str, str], Route] = {}

        routes = [
            replace(route, endpoint=Endpoint(route.handler, self.log, quiet))
            for route in self.route_handlers()
        ]
        for route in [*routes, *self._asgi_routes]:
            key = (route.method, route.path)
            if key in table:
                msg = f"Duplicate route: {route.method} {route.path}"
                raise ConfigurationError(msg)
            matcher.add(route)
            table[key] = route
            self.log.debug("mounted %s %s", route.method, route.path)
        matcher.compile()

        self._matcher = matcher
        self._table = MappingProxyType(table)
        self._quiet_routes = set(quiet)
        self._seal()
        self._finalized = True

    @property
    def routes(self) -> tuple[Route, ...]:
        """The finalized dispatch table, in registration order."""
        return tuple(self._table.values())

    def can_handle(self, method: str, path: str) -> bool:
        """Whether a finalized route matches *method* and *path*."""
        return self._matcher.lookup(method.upper(), path) is not None

    # -- Serving --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point for ``http`` and ``websocket`` scopes."""
        if scope["type"] not in ("http", "websocket"):
            msg = f"Router cannot serve {scope['type']!r} scopes."
            raise RuntimeError(msg)

        self.finalize()

        request = Request.from_asgi(scope, receive, send)
        try:
            match = self._matcher.match(request.method, request.path)
        except HTTPError as miss:
            await self._not_handled(request, miss, send)
            return

        endpoint = match.route.endpoint
        await endpoint(request.with_path_params(match.path_params), scope, send)  # type: ignore[misc]

    async def _not_handled(self, request: Request, miss: HTTPError, send: Send) -> None:
        if self.proxy is not None and not request.is_websocket:
            await self.proxy(request, send)
            return
        self.log.debug("not handled: %s %s", request.method, request.url)
        resolved, raw_headers = encode_headers(MutableHeaders(), resolve_error(miss, self.log), self.log)
        await send_response(request, resolved, raw_headers, send)

    async def aclose(self) -> None:
        """Release the fallback proxy's connections, if any."""
        if self.proxy is not None:
            await self.proxy.aclose()

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return f"<Router {state} routes={len(self._table)} proxy={self.proxy!r}>"
