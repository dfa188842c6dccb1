"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, ctx: Ctx) -> None

It stops the request by raising. Afterware share the shape and always
run after the handler.

Built-in middleware:
    CORSMiddleware -- CORS headers for a fixed domain ("*" = all)
    ContentTypeMiddleware -- Force the response Content-Type
"""

from switchyard.middleware.builtin import (
    ContentTypeMiddleware,
    CORSMiddleware,
    cors_handler,
    enable_cors,
)
from switchyard.middleware.protocol import Afterware, Handler, Middleware, compose

__all__ = [
    "Afterware",
    "CORSMiddleware",
    "ContentTypeMiddleware",
    "Handler",
    "Middleware",
    "compose",
    "cors_handler",
    "enable_cors",
]
