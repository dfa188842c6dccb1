"""Tests for switchyard.http — headers, query parameters, and requests."""

from switchyard.http.headers import Headers, MutableHeaders
from switchyard.http.query import QueryParams
from switchyard.http.request import Request


def _receive_chunks(*chunks: bytes):
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]

    async def receive():
        return messages.pop(0)

    return receive


class TestHeaders:
    def test_case_insensitive(self) -> None:
        h = Headers(((b"Content-Type", b"text/plain"),))
        assert h["content-type"] == "text/plain"
        assert "CONTENT-TYPE" in h

    def test_multi_valued(self) -> None:
        h = Headers(((b"accept", b"a"), (b"Accept", b"b")))
        assert h.get_list("accept") == ["a", "b"]
        assert h.get("missing") is None


class TestMutableHeaders:
    def test_set_replaces(self) -> None:
        h = MutableHeaders()
        h.add("Vary", "Origin")
        h.add("vary", "Accept")
        assert h.get_list("VARY") == ["Origin", "Accept"]
        h.set("Vary", "Cookie")
        assert h.get_list("vary") == ["Cookie"]

    def test_delete(self) -> None:
        h = MutableHeaders([("X-A", "1"), ("X-B", "2")])
        h.delete("x-a")
        assert "x-a" not in h
        assert len(h) == 1

    def test_raw_is_lower_cased_bytes(self) -> None:
        h = MutableHeaders([("Content-Type", "text/csv")])
        assert h.raw == [(b"content-type", b"text/csv")]


class TestQueryParams:
    def test_parse(self) -> None:
        q = QueryParams(b"page=2&tag=a&tag=b")
        assert q["page"] == "2"
        assert q.get_list("tag") == ["a", "b"]
        assert q.raw == b"page=2&tag=a&tag=b"

    def test_repeated_keys_count_once(self) -> None:
        q = QueryParams(b"tag=a&tag=b&empty=")
        assert list(q) == ["tag", "empty"]
        assert len(q) == 2
        assert q["empty"] == ""
        assert q.get("missing") is None


class TestRequest:
    def test_from_asgi(self) -> None:
        scope = {
            "type": "http",
            "method": "POST",
            "path": "/users",
            "query_string": b"page=2",
            "headers": [(b"content-length", b"4")],
            "client": ("10.0.0.1", 5555),
        }
        request = Request.from_asgi(scope, _receive_chunks(b"data"))
        assert request.method == "POST"
        assert request.url == "/users?page=2"
        assert request.content_length == 4
        assert request.client == ("10.0.0.1", 5555)
        assert not request.is_websocket

    def test_websocket_scope_is_get(self) -> None:
        request = Request.from_asgi({"type": "websocket", "path": "/ws"}, _receive_chunks(b""))
        assert request.method == "GET"
        assert request.is_websocket
        assert request.scheme == "ws"

    async def test_body_is_cached(self) -> None:
        scope = {"type": "http", "method": "POST", "path": "/"}
        request = Request.from_asgi(scope, _receive_chunks(b'{"a":', b"1}"))
        assert await request.body() == b'{"a":1}'
        assert await request.json() == {"a": 1}

    async def test_path_params_copy_shares_body(self) -> None:
        scope = {"type": "http", "method": "POST", "path": "/users/1"}
        request = Request.from_asgi(scope, _receive_chunks(b"hi"))
        await request.body()
        routed = request.with_path_params({"id": "1"})
        assert routed.path_params == {"id": "1"}
        assert await routed.text() == "hi"
