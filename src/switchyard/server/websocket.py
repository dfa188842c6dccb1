"""WebSocket connection and the handler adapter.

``WebSocket`` wraps the ASGI websocket messages; the framing itself is
the ASGI server's job. ``websocket_handler`` turns a websocket handler::

    async def echo(request: Request, ctx: Ctx, ws: WebSocket) -> None:
        async for message in ws:
            await ws.send_text(message)

into an ordinary handler, so websocket routes get the same middleware,
afterware, context, and logging as every other route.

All origins are accepted. Restrict origins with middleware, which runs
before the upgrade is attempted.
"""

import json as json_module
from collections.abc import AsyncIterator, Callable
from typing import Any, TypeAlias

from switchyard._internal.asgi import Message, Receive, Send
from switchyard._internal.invoke import invoke
from switchyard.context import Ctx
from switchyard.errors import HTTPError, UpgradeError
from switchyard.http.request import Request
from switchyard.server.resolve import resolve_error

WebSocketHandler: TypeAlias = Callable[[Request, Ctx, "WebSocket"], Any]


class WebSocketDisconnect(Exception):  # noqa: N818
    """The peer closed the connection."""

    def __init__(self, code: int = 1000, reason: str = "") -> None:
        super().__init__(code, reason)
        self.code = code
        self.reason = reason


class WebSocket:
    """An upgraded, bidirectional message connection."""

    __slots__ = ("_receive", "_send", "accepted", "close_code", "closed")

    def __init__(self, receive: Receive, send: Send) -> None:
        self._receive = receive
        self._send = send
        self.accepted = False
        self.closed = False
        self.close_code: int | None = None

    @classmethod
    async def upgrade(cls, request: Request, subprotocol: str | None = None) -> "WebSocket":
        """Complete the handshake for *request* and return the connection.

        Raises ``UpgradeError`` when the request is not a websocket
        handshake or the client leaves before it completes.
        """
        if not request.is_websocket or request._receive is None or request._send is None:
            msg = "the client is not using the websocket protocol"
            raise UpgradeError(msg)

        ws = cls(request._receive, request._send)
        message = await ws._receive()
        if message["type"] == "websocket.disconnect":
            ws.closed = True
            ws.close_code = message.get("code", 1000)
            msg = "the client disconnected before the handshake completed"
            raise UpgradeError(msg)
        if message["type"] != "websocket.connect":
            msg = f"unexpected {message['type']!r} message during the handshake"
            raise UpgradeError(msg)

        accept: Message = {"type": "websocket.accept"}
        if subprotocol is not None:
            accept["subprotocol"] = subprotocol
        await ws._send(accept)
        ws.accepted = True
        return ws

    # -- Receiving --

    async def receive(self) -> str | bytes:
        """Wait for the next message. Raises ``WebSocketDisconnect`` on close."""
        message = await self._receive()
        if message["type"] == "websocket.disconnect":
            self.closed = True
            self.close_code = message.get("code", 1000)
            raise WebSocketDisconnect(self.close_code, message.get("reason") or "")
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def receive_text(self) -> str:
        data = await self.receive()
        return data if isinstance(data, str) else data.decode("utf-8")

    async def receive_bytes(self) -> bytes:
        data = await self.receive()
        return data.encode("utf-8") if isinstance(data, str) else data

    async def receive_json(self) -> Any:
        return json_module.loads(await self.receive())

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        return self._iter_messages()

    async def _iter_messages(self) -> AsyncIterator[str | bytes]:
        try:
            while True:
                yield await self.receive()
        except WebSocketDisconnect:
            return

    # -- Sending --

    async def send_text(self, data: str) -> None:
        await self._send({"type": "websocket.send", "text": data})

    async def send_bytes(self, data: bytes) -> None:
        await self._send({"type": "websocket.send", "bytes": data})

    async def send_json(self, data: Any) -> None:
        await self.send_text(json_module.dumps(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection. Closing twice is a no-op."""
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        await self._send({"type": "websocket.close", "code": code, "reason": reason})


def websocket_handler(inner: WebSocketHandler) -> Callable[[Request, Ctx], Any]:
    """Wrap a websocket handler as an ordinary ``(request, ctx)`` handler.

    A failed upgrade is resolved like any other error and raised again
    as an ``HTTPError`` with the resolved status and message. After a
    successful upgrade the inner handler's exception (if any) is the
    result; a peer disconnect ends the handler normally.
    """

    async def handler(request: Request, ctx: Ctx) -> None:
        try:
            ws = await WebSocket.upgrade(request)
        except Exception as exc:
            resolved = resolve_error(exc, ctx.log)
            raise HTTPError(resolved.status, resolved.body.decode("utf-8", errors="replace")) from exc

        request._cache["_websocket"] = ws
        try:
            await invoke(inner, request, ctx, ws)
        except WebSocketDisconnect as exc:
            ctx.log.debug("websocket closed by peer (%d)", exc.code)
        return None

    handler.__name__ = getattr(inner, "__name__", "websocket_handler")
    handler.__wrapped__ = inner  # type: ignore[attr-defined]
    return handler
