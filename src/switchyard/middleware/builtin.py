"""Built-in middleware: CORS and fixed content type.

``CORSMiddleware`` sets the CORS response headers for every request of
a route or group. ``cors_handler`` is the terminal-handler form, handy
for answering ``OPTIONS`` preflights on their own route::

    api = router.add_group("/api")
    api.before(CORSMiddleware("*"))
    api.options("/users", cors_handler("*"))
"""

from switchyard.context import Ctx
from switchyard.http.request import Request
from switchyard.middleware.protocol import Handler

CORS_ALLOW_HEADERS = (
    "Accept, Content-Type, Content-Length, Accept-Encoding, Authorization, cache-control"
)


def enable_cors(ctx: Ctx, domain: str) -> None:
    """Write the CORS headers for *domain* into the response.

    ``"*"`` allows every origin; an empty string leaves the response
    untouched.
    """
    if not domain:
        return
    ctx.response_headers.set("Access-Control-Allow-Origin", domain)
    ctx.response_headers.set("X-Requested-With", "XMLHttpRequest")
    ctx.response_headers.set("Access-Control-Allow-Headers", CORS_ALLOW_HEADERS)


class CORSMiddleware:
    """Enable CORS for *domain* on every route it wraps.

    Pass ``"*"`` to allow all domains, or ``""`` to allow none.
    """

    __slots__ = ("domain",)

    def __init__(self, domain: str) -> None:
        self.domain = domain

    def __call__(self, request: Request, ctx: Ctx) -> None:
        enable_cors(ctx, self.domain)


def cors_handler(domain: str) -> Handler:
    """A handler that only sets the CORS headers and returns no body."""

    def handler(request: Request, ctx: Ctx) -> None:
        enable_cors(ctx, domain)

    handler.__name__ = "cors_handler"
    return handler


class ContentTypeMiddleware:
    """Force the response ``Content-Type`` for every route it wraps.

    Because an explicit header wins over the detected type, a handler
    returning a dict under ``ContentTypeMiddleware("application/x-ndjson")``
    is still JSON-encoded but labelled as NDJSON.
    """

    __slots__ = ("content_type",)

    def __init__(self, content_type: str) -> None:
        self.content_type = content_type

    def __call__(self, request: Request, ctx: Ctx) -> None:
        ctx.response_headers.set("Content-Type", self.content_type)
