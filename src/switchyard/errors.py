"""Errors raised by routers, handlers, and middleware.

Setup problems (``ConfigurationError``) surface while routes are being
registered or compiled and never reach a client. ``HTTPError`` and its
subclasses are request-time: whatever raises one, the resolver turns it
into its status code, its headers, and a plain-text body holding
``message``. Any other exception a handler raises becomes a 500.
"""

from dataclasses import dataclass


class SwitchyardError(Exception):
    """Base for all switchyard-specific errors."""


class ConfigurationError(SwitchyardError):
    """A route tree or app setting that cannot be served.

    Duplicate method+path pairs and malformed paths are reported here,
    at the latest when ``Router.finalize()`` compiles the table.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(SwitchyardError):
    """Raise to answer the request with *status* and a text *message*.

    Middleware use it to reject a request before the handler runs::

        def require_token(request, ctx):
            if "authorization" not in request.headers:
                raise HTTPError(401, "missing token", (("WWW-Authenticate", "Bearer"),))
    """

    status: int
    message: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.message:
            return f"{self.status}: {self.message}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """No route matches the path and no fallback origin is configured."""

    def __init__(self, message: str = "Not Found") -> None:
        super().__init__(status=404, message=message)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """The path matches a route, but not for the request method.

    The ``Allow`` header lists the registered methods, sorted.
    """

    def __init__(self, allowed: frozenset[str], message: str = "Method Not Allowed") -> None:
        super().__init__(
            status=405,
            message=message,
            headers=(("Allow", ", ".join(sorted(allowed))),),
        )


class UpgradeError(HTTPError):
    """A websocket route was hit without a usable handshake.

    On a plain HTTP request this resolves to a 400 response.
    """

    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(status=status, message=f"websocket: {message}")
