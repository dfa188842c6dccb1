"""Immutable HTTP request.

Frozen metadata with async body access. One type serves both ``http``
and ``websocket`` ASGI scopes; the websocket adapter reads the private
ASGI callables to complete the handshake.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import Any

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.json()``, ``.text()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    scheme: str = "http"
    scope_type: str = "http"

    # Private: ASGI callables for body streaming and websocket messages
    _receive: Receive | None = field(default=None, repr=False, compare=False)
    _send: Send | None = field(default=None, repr=False, compare=False)

    # Private: mutable cache for the body
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def is_websocket(self) -> bool:
        """True if the ASGI server delivered this as a websocket scope."""
        return self.scope_type == "websocket"

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        """The Content-Length header as int."""
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Path plus query string, as the client sent it."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Return a copy carrying the matcher's path parameters.

        The body cache is shared, so a body read before the copy is
        not lost.
        """
        return replace(self, path_params=path_params)

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        Result is cached — the ASGI receive is consumed once, then
        the same bytes are returned on subsequent calls.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes, None]:
        """Stream the request body in chunks."""
        if "_body" in self._cache:
            if self._cache["_body"]:
                yield self._cache["_body"]
            return
        if self._receive is None or self.is_websocket:
            return
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        raw = await self.body()
        return json_module.loads(raw)

    async def text(self) -> str:
        """Read the body as text (UTF-8)."""
        raw = await self.body()
        return raw.decode("utf-8")

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        send: Send | None = None,
        path_params: dict[str, str] | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and its callables.

        Websocket scopes carry no method; the handshake is a ``GET``.
        """
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        scope_type = scope.get("type", "http")
        return cls(
            method=scope.get("method", "GET"),
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            path_params=path_params or {},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            scheme=scope.get("scheme", "ws" if scope_type == "websocket" else "http"),
            scope_type=scope_type,
            _receive=receive,
            _send=send,
        )
