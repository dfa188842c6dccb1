"""Fallback reverse proxy.

Requests no route claims can be forwarded to a single origin. The
request goes out with its method, path, query, headers, and streamed
body; the upstream response comes back with status, headers, and raw
body chunks unchanged. Hop-by-hop headers are dropped in both
directions. The original ``Host`` is kept and the client address is
appended to ``X-Forwarded-For``.
"""

import logging

import httpx

from switchyard._internal.asgi import Send
from switchyard.http.request import Request

logger = logging.getLogger("switchyard.proxy")

# Headers that describe a single connection and must not be forwarded
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


def parse_fallback(url: str) -> httpx.URL | None:
    """Parse a fallback origin, or return ``None`` if it is unusable.

    Only absolute ``http``/``https`` URLs with a host are accepted.
    """
    if not url:
        return None
    try:
        target = httpx.URL(url)
    except httpx.InvalidURL:
        return None
    if target.scheme not in ("http", "https") or not target.host:
        return None
    return target


def _hop_by_hop(headers: list[tuple[bytes, bytes]]) -> set[bytes]:
    """Hop-by-hop names, including any listed in ``Connection``."""
    names = {name.encode("latin-1") for name in HOP_BY_HOP_HEADERS}
    for name, value in headers:
        if name.lower() == b"connection":
            names.update(token.strip().lower() for token in value.split(b",") if token.strip())
    return names


def _strip(headers: list[tuple[bytes, bytes]]) -> list[tuple[bytes, bytes]]:
    drop = _hop_by_hop(headers)
    return [(name.lower(), value) for name, value in headers if name.lower() not in drop]


class FallbackProxy:
    """Forwards unmatched requests to one upstream origin.

    Usage::

        proxy = FallbackProxy(httpx.URL("http://legacy:8080"))
        status = await proxy(request, send)
        await proxy.aclose()

    Pass an ``httpx`` transport (e.g. ``httpx.MockTransport``) to swap
    the network out in tests.
    """

    __slots__ = ("_client", "_timeout", "target")

    def __init__(
        self,
        target: httpx.URL,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.target = target
        self._timeout = httpx.Timeout(timeout)
        self._client = httpx.AsyncClient(transport=transport, follow_redirects=False)

    def upstream_url(self, request: Request) -> httpx.URL:
        """The upstream URL for *request*: origin path joined with request path."""
        base = self.target.path.rstrip("/")
        queries = [q for q in (self.target.query, request.query.raw) if q]
        return self.target.copy_with(
            path=base + request.path,
            query=b"&".join(queries) or None,
        )

    def upstream_headers(self, request: Request) -> list[tuple[bytes, bytes]]:
        headers = _strip(list(request.headers.raw))
        if request.client is not None:
            client_ip = request.client[0].encode("latin-1")
            prior = [value for name, value in headers if name == b"x-forwarded-for"]
            headers = [(name, value) for name, value in headers if name != b"x-forwarded-for"]
            forwarded = b", ".join([*prior, client_ip])
            headers.append((b"x-forwarded-for", forwarded))
        return headers

    async def __call__(self, request: Request, send: Send) -> int:
        """Forward *request* and relay the answer. Returns the sent status."""
        has_body = request.content_length is not None or "transfer-encoding" in request.headers
        # Built directly so the client adds none of its default headers.
        upstream_request = httpx.Request(
            request.method,
            self.upstream_url(request),
            headers=self.upstream_headers(request),
            content=request.stream() if has_body else None,
            extensions={"timeout": self._timeout.as_dict()},
        )

        try:
            upstream = await self._client.send(upstream_request, stream=True)
        except httpx.RequestError as exc:
            logger.error(
                "proxy error forwarding %s %s to %s: %s",
                request.method,
                request.url,
                self.target,
                exc,
            )
            await _send_bad_gateway(send)
            return 502

        try:
            await send(
                {
                    "type": "http.response.start",
                    "status": upstream.status_code,
                    "headers": _strip(list(upstream.headers.raw)),
                }
            )
            await _relay_body(upstream, send)
        except httpx.HTTPError as exc:
            # Status is already out; end the body so the client sees a short response.
            logger.error(
                "proxy error relaying %s %s from %s: %s",
                request.method,
                request.url,
                self.target,
                exc,
            )
            await send({"type": "http.response.body", "body": b"", "more_body": False})
            return upstream.status_code
        finally:
            await upstream.aclose()

        logger.debug("proxied %s %s -> %d", request.method, request.url, upstream.status_code)
        return upstream.status_code

    async def aclose(self) -> None:
        """Release pooled upstream connections."""
        await self._client.aclose()

    def __repr__(self) -> str:
        return f"<FallbackProxy {str(self.target)!r}>"


async def _relay_body(upstream: httpx.Response, send: Send) -> None:
    """Send the upstream body, streaming it unless it was already read."""
    if upstream.is_stream_consumed:
        await send({"type": "http.response.body", "body": upstream.content, "more_body": False})
        return
    async for chunk in upstream.aiter_raw():
        await send({"type": "http.response.body", "body": chunk, "more_body": True})
    await send({"type": "http.response.body", "body": b"", "more_body": False})


async def _send_bad_gateway(send: Send) -> None:
    body = b"Bad Gateway"
    await send(
        {
            "type": "http.response.start",
            "status": 502,
            "headers": [
                (b"content-type", b"text/plain; charset=utf-8"),
                (b"content-length", str(len(body)).encode("latin-1")),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})
