"""Switchyard application.

App owns the configuration, the root ``Router``, and the lifecycle
hooks. Route registration is delegated to the router; the ASGI
lifespan protocol is handled here.
"""

import inspect
import logging
from collections.abc import Callable
from typing import Any

import httpx

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard.config import AppConfig
from switchyard.middleware.protocol import Afterware, Handler, Middleware
from switchyard.routing.group import RouteGroup
from switchyard.routing.router import Router

logger = logging.getLogger("switchyard.server")


class App:
    """The switchyard application.

    Mutable during setup (register routes, groups, middleware, hooks).
    Frozen at first request or lifespan startup.

    Usage::

        app = App(AppConfig(fallback_proxy="http://legacy:8080"))

        @app.route("/users/:id")
        async def get_user(request: Request, ctx: Ctx) -> dict:
            return {"id": request.path_params["id"]}

        app.run()
    """

    __slots__ = ("_shutdown_hooks", "_startup_hooks", "config", "router")

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        logger: logging.Logger | None = None,
        proxy_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self.router = Router(
            logger,
            self.config.fallback_proxy,
            proxy_timeout=self.config.proxy_timeout,
            proxy_transport=proxy_transport,
        )
        if self.config.quiet_routes:
            self.router.use_quiet_routes(self.config.quiet_routes)
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []

    # -- Routes --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        middleware: tuple[Middleware, ...] = (),
    ) -> Callable[[Handler], Handler]:
        """Register a route handler via decorator. See ``RouteGroup.route``."""
        return self.router.route(path, methods=methods, middleware=middleware)

    def ws(self, path: str, handler: Callable[..., Any], *middleware: Middleware) -> None:
        """Register a websocket handler ``handler(request, ctx, ws)``."""
        self.router.ws(path, handler, *middleware)

    def add_group(self, group: str | RouteGroup) -> RouteGroup:
        """Create (or adopt) a top-level route group."""
        return self.router.add_group(group)

    def before(self, *middleware: Middleware) -> None:
        """Add middleware that runs before every handler."""
        self.router.before(*middleware)

    def after(self, *afterware: Afterware) -> None:
        """Add afterware that runs after every handler."""
        self.router.after(*afterware)

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the routes are finalized.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown,
        before the fallback proxy's connections are released.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        """Finalize the routes and run the startup hooks."""
        self.router.finalize()
        for hook in self._startup_hooks:
            result = hook()
            if inspect.isawaitable(result):
                await result

    async def shutdown(self) -> None:
        """Run the shutdown hooks and release the proxy client."""
        try:
            for hook in self._shutdown_hooks:
                result = hook()
                if inspect.isawaitable(result):
                    await result
        finally:
            await self.router.aclose()

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start the server (dev or production based on config.debug).

        - **Development mode** (debug=True): single worker with auto-reload
        - **Production mode** (debug=False): multiple workers
        """
        self.router.finalize()

        _host = host or self.config.host
        _port = port or self.config.port

        if self.config.debug:
            from switchyard.server.dev import run_dev_server

            run_dev_server(self, _host, _port, reload=True)
        else:
            from switchyard.server.production import run_production_server

            run_production_server(
                self,
                host=_host,
                port=_port,
                workers=self.config.workers,
                log_level=self.config.log_level,
            )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly and hands ``http`` and
        ``websocket`` scopes to the router.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        await self.router(scope, receive, send)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol."""
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception as exc:
                    logger.exception("shutdown failed")
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    def _check_not_frozen(self) -> None:
        if self.router.finalized:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and hooks before calling app.run()."
            )
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        return f"<App {self.config.app_name!r} {self.router!r}>"
