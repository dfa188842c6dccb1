"""ASGI response sending — translates a ``Resolved`` into ASGI messages.

HTTP scopes get ``http.response.start`` + ``http.response.body``.
Websocket scopes cannot carry an HTTP response, so the outcome is
expressed as a close code instead.
"""

import logging
from collections.abc import Iterable

from switchyard._internal.asgi import Send
from switchyard.http.request import Request
from switchyard.server.resolve import Resolved

logger = logging.getLogger("switchyard.server")

WS_NORMAL_CLOSURE = 1000
WS_INTERNAL_ERROR = 1011


def _body_allowed(status: int) -> bool:
    """Whether a response with *status* carries a body."""
    # 1xx, 204, and 304 responses have no body.
    return not (100 <= status < 200 or status in {204, 304})


def websocket_close_code(status: int) -> int:
    """Map a resolved HTTP status to a websocket close code.

    4xx statuses map into the application range (``4000 + status``),
    5xx statuses to 1011, everything else to a normal closure.
    """
    if 400 <= status < 500:
        return 4000 + status
    if status >= 500:
        return WS_INTERNAL_ERROR
    return WS_NORMAL_CLOSURE


async def send_response(
    request: Request,
    resolved: Resolved,
    headers: Iterable[tuple[bytes, bytes]],
    send: Send,
) -> None:
    """Write *resolved* to the client of *request*."""
    if request.is_websocket:
        await _finish_websocket(request, resolved, send)
        return

    body = resolved.body if _body_allowed(resolved.status) else b""
    raw_headers = [(name, value) for name, value in headers if name != b"content-length"]
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    # HEAD advertises the length a GET would have sent.
    if request.method == "HEAD":
        body = b""

    await send(
        {
            "type": "http.response.start",
            "status": resolved.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body,
        }
    )


async def _finish_websocket(request: Request, resolved: Resolved, send: Send) -> None:
    """Close the websocket unless the peer already did.

    A socket that was never accepted is closed during the handshake,
    which makes the ASGI server reject the upgrade (HTTP 403).
    """
    ws = request._cache.get("_websocket")
    if ws is not None and ws.closed:
        return
    code = websocket_close_code(resolved.status)
    if ws is not None:
        await ws.close(code)
        return
    logger.debug("rejecting websocket handshake for %s with close code %d", request.path, code)
    await send({"type": "websocket.close", "code": code})
