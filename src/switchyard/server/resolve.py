"""Response resolution — maps handler results to wire responses.

Two total functions: ``resolve_value`` for a value the handler returned
and ``resolve_error`` for an exception it raised. Neither raises; the
worst case is a 500 with a generic body and an error-level log line.

isinstance-based dispatch through a single ``match``, no magic,
fully predictable.
"""

import logging
from dataclasses import dataclass
from typing import Any

from switchyard._internal.encoding import dumps
from switchyard.errors import HTTPError
from switchyard.http.response import Response

logger = logging.getLogger("switchyard.server")

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Resolved:
    """What goes on the wire: status, body, and the detected content type.

    ``content_type`` is ``None`` when nothing could be detected.
    ``headers`` are extra headers the result itself demands (e.g. the
    ``Allow`` header of a 405).
    """

    status: int
    body: bytes
    content_type: str | None
    headers: tuple[tuple[str, str], ...] = ()


INTERNAL_ERROR = Resolved(
    status=500,
    body=b"Internal Server Error",
    content_type=TEXT_CONTENT_TYPE,
)


def resolve_value(value: Any, log: logging.Logger | logging.LoggerAdapter | None = None) -> Resolved:
    """Convert a handler's return value to a ``Resolved``.

    Dispatch order:

    1. ``Response``                   -> fields verbatim
    2. ``bytes`` / ``bytearray`` / ``memoryview`` -> 200, body as-is, undetected type
    3. ``None``                       -> 200, empty body, undetected type
    4. anything else                  -> 200, JSON body, ``application/json``
    """
    log = log or logger
    match value:
        case Response():
            return Resolved(
                status=value.status or 200,
                body=value.body_bytes,
                content_type=value.content_type,
                headers=value.headers,
            )
        case bytes() | bytearray() | memoryview():
            return Resolved(status=200, body=bytes(value), content_type=None)
        case None:
            return Resolved(status=200, body=b"", content_type=None)
        case _:
            try:
                body = dumps(value).encode("utf-8")
            except (TypeError, ValueError):
                log.exception("failed to encode %s response as JSON", type(value).__name__)
                return INTERNAL_ERROR
            return Resolved(status=200, body=body, content_type=JSON_CONTENT_TYPE)


def resolve_error(exc: BaseException, log: logging.Logger | logging.LoggerAdapter | None = None) -> Resolved:
    """Convert an exception raised by the handler chain to a ``Resolved``.

    ``HTTPError`` keeps its status and sends its message as plain text;
    anything else is a 500 carrying the exception's text.
    """
    log = log or logger
    match exc:
        case HTTPError():
            log.debug("handler error %d: %s", exc.status, exc.message)
            return Resolved(
                status=exc.status,
                body=exc.message.encode("utf-8"),
                content_type=TEXT_CONTENT_TYPE,
                headers=exc.headers,
            )
        case _:
            log.error("unhandled %s", type(exc).__name__, exc_info=exc)
            try:
                message = str(exc) or type(exc).__name__
            except Exception:  # noqa: BLE001
                log.exception("failed to describe %s", type(exc).__name__)
                return INTERNAL_ERROR
            return Resolved(
                status=500,
                body=message.encode("utf-8", errors="replace"),
                content_type=TEXT_CONTENT_TYPE,
            )
