"""Switchyard — request dispatch for ASGI services.

Route groups share path prefixes, middleware, and afterware; the tree is
compiled once into a flat dispatch table. Handlers return plain values
and raise to signal errors; the pipeline turns both into responses.

Basic usage::

    from switchyard import App

    app = App()

    @app.route("/users/:id")
    async def get_user(request, ctx):
        return {"id": request.path_params["id"]}

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "Afterware",
    "App",
    "AppConfig",
    "ConfigurationError",
    "Ctx",
    "HTTPError",
    "Handler",
    "MethodNotAllowed",
    "Middleware",
    "NotFound",
    "Request",
    "Response",
    "RouteGroup",
    "Router",
    "SwitchyardError",
    "UpgradeError",
    "WebSocket",
    "get_ctx",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import switchyard`` fast while providing a clean top-level API.
    """
    if name == "App":
        from switchyard.app import App

        return App

    if name == "AppConfig":
        from switchyard.config import AppConfig

        return AppConfig

    if name == "Request":
        from switchyard.http.request import Request

        return Request

    if name == "Response":
        from switchyard.http.response import Response

        return Response

    if name in ("Router", "RouteGroup"):
        from switchyard import routing as _routing

        return getattr(_routing, name)

    if name in ("Afterware", "Handler", "Middleware"):
        from switchyard.middleware import protocol as _mw

        return getattr(_mw, name)

    if name in ("Ctx", "get_ctx"):
        from switchyard import context as _ctx

        return getattr(_ctx, name)

    if name == "WebSocket":
        from switchyard.server.websocket import WebSocket

        return WebSocket

    if name in (
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "SwitchyardError",
        "UpgradeError",
    ):
        from switchyard import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
