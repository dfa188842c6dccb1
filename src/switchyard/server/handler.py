"""Per-route request pipeline.

An ``Endpoint`` wraps one composed handler. For each request it:

1. Creates a fresh ``Ctx`` and publishes it through ``ctx_var``
2. Logs the start line (DEBUG for quiet routes, INFO otherwise)
3. Invokes the handler chain
4. Resolves the returned value or raised exception
5. Picks the content type (a header set by the chain wins)
6. Sends the response and logs the completion line
"""

import logging
import time
from collections.abc import Callable
from http import HTTPStatus

from switchyard._internal.asgi import ASGIApp, Scope, Send
from switchyard._internal.invoke import invoke
from switchyard.context import Ctx, ctx_var
from switchyard.http.headers import MutableHeaders
from switchyard.http.request import Request
from switchyard.middleware.protocol import Handler
from switchyard.server.resolve import INTERNAL_ERROR, Resolved, resolve_error, resolve_value
from switchyard.server.sender import send_response


def status_text(status: int) -> str:
    """Standard reason phrase for *status*, or ``""`` if unknown."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def log_request(request: Request, ctx: Ctx, *, quiet: bool) -> Callable[[int], None]:
    """Log the start line and return a function that logs completion."""
    level = logging.DEBUG if quiet else logging.INFO
    start = time.monotonic()
    ctx.log.log(level, "%s %s", request.method, request.url)

    def done(status: int) -> None:
        elapsed_ms = (time.monotonic() - start) * 1000
        ctx.log.log(
            level,
            "%s %s completed (%d: %s) in %.0fms",
            request.method,
            request.url,
            status,
            status_text(status),
            elapsed_ms,
        )

    return done


class Endpoint:
    """The dispatch-table target for one route."""

    __slots__ = ("handler", "logger", "quiet_routes")

    def __init__(self, handler: Handler, logger: logging.Logger, quiet_routes: frozenset[str]) -> None:
        self.handler = handler
        self.logger = logger
        self.quiet_routes = quiet_routes

    async def __call__(self, request: Request, scope: Scope, send: Send) -> None:
        ctx = Ctx(self.logger)
        token = ctx_var.set(ctx)
        try:
            done = log_request(request, ctx, quiet=request.path in self.quiet_routes)
            try:
                value = await invoke(self.handler, request, ctx)
            except Exception as exc:
                resolved = resolve_error(exc, ctx.log)
            else:
                resolved = resolve_value(value, ctx.log)

            resolved, raw_headers = encode_headers(ctx.response_headers, resolved, ctx.log)
            await send_response(request, resolved, raw_headers, send)
            done(resolved.status)
        finally:
            ctx_var.reset(token)

    def __repr__(self) -> str:
        return f"<Endpoint {getattr(self.handler, '__qualname__', self.handler)!r}>"


def apply_headers(
    headers: MutableHeaders,
    resolved: Resolved,
    log: logging.Logger | logging.LoggerAdapter,
) -> None:
    """Merge the resolved headers into *headers* and settle Content-Type.

    A ``Content-Type`` already present (set by middleware, the handler,
    or a ``Response`` header) is kept. Otherwise the detected type is
    used; with neither, the header stays absent.
    """
    for name, value in resolved.headers:
        headers.add(name, value)
    header = headers.get("content-type")
    log.debug("post-handler content type: %s", header)
    if not header and resolved.content_type:
        headers.set("content-type", resolved.content_type)


def encode_headers(
    headers: MutableHeaders,
    resolved: Resolved,
    log: logging.Logger | logging.LoggerAdapter,
) -> tuple[Resolved, list[tuple[bytes, bytes]]]:
    """Apply *resolved* to *headers* and encode them for the wire.

    Header values must be latin-1. If any is not, the response is
    replaced by a plain 500 and the chain's headers are discarded.
    """
    apply_headers(headers, resolved, log)
    try:
        return resolved, headers.raw
    except UnicodeEncodeError as exc:
        log.error("response header is not latin-1 encodable: %s", exc)
        fallback = MutableHeaders()
        apply_headers(fallback, INTERNAL_ERROR, log)
        return INTERNAL_ERROR, fallback.raw


class ASGIEndpoint:
    """Dispatch-table target that forwards to a raw ASGI application.

    Path parameters are exposed as ``scope["path_params"]``.
    """

    __slots__ = ("app",)

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, request: Request, scope: Scope, send: Send) -> None:
        await self.app({**scope, "path_params": request.path_params}, request._receive, send)

    def __repr__(self) -> str:
        return f"<ASGIEndpoint {self.app!r}>"
