"""Tests for switchyard.middleware.protocol.compose — the handler chain."""

import logging

import anyio
import pytest

from switchyard.context import Ctx
from switchyard.errors import HTTPError
from switchyard.http.request import Request
from switchyard.middleware.protocol import compose


def _request() -> Request:
    scope = {"type": "http", "method": "GET", "path": "/", "headers": [], "query_string": b""}

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request.from_asgi(scope, receive)


def _ctx() -> Ctx:
    return Ctx(logging.getLogger("test.compose"))


class TestComposeShape:
    def test_no_middleware_returns_handler(self) -> None:
        def handler(request, ctx):
            return "ok"

        assert compose(handler) is handler
        assert compose(handler, [None], [None]) is handler

    def test_keeps_handler_name(self) -> None:
        def list_users(request, ctx):
            return []

        composed = compose(list_users, [lambda r, c: None])
        assert composed.__name__ == "list_users"
        assert composed.__wrapped__ is list_users


class TestComposeOrder:
    async def test_sync_and_async_steps(self) -> None:
        calls: list[str] = []

        def sync_mw(request, ctx) -> None:
            calls.append("sync")

        async def async_mw(request, ctx) -> None:
            calls.append("async")

        async def after(request, ctx) -> None:
            calls.append("after")

        def handler(request, ctx):
            calls.append("handler")
            return {"ok": True}

        composed = compose(handler, [sync_mw, async_mw], [after])
        assert await composed(_request(), _ctx()) == {"ok": True}
        assert calls == ["sync", "async", "handler", "after"]

    async def test_middleware_error_stops_chain_but_not_afterware(self) -> None:
        calls: list[str] = []

        def deny(request, ctx) -> None:
            calls.append("deny")
            raise HTTPError(403, "forbidden")

        def never(request, ctx) -> None:
            calls.append("never")

        def handler(request, ctx):
            calls.append("handler")

        def after(request, ctx) -> None:
            calls.append("after")

        composed = compose(handler, [deny, never], [after])
        with pytest.raises(HTTPError) as exc_info:
            await composed(_request(), _ctx())
        assert exc_info.value.status == 403
        assert calls == ["deny", "after"]

    async def test_handler_error_runs_afterware(self) -> None:
        calls: list[str] = []

        def handler(request, ctx):
            raise ValueError("boom")

        def after(request, ctx) -> None:
            calls.append("after")

        with pytest.raises(ValueError, match="boom"):
            await compose(handler, afterware=[after])(_request(), _ctx())
        assert calls == ["after"]

    async def test_failing_afterware_is_logged_not_raised(self, caplog) -> None:
        calls: list[str] = []

        def broken(request, ctx) -> None:
            raise RuntimeError("afterware broke")

        def after(request, ctx) -> None:
            calls.append("after")

        composed = compose(lambda r, c: "result", afterware=[broken, after])
        with caplog.at_level(logging.ERROR, logger="test.compose"):
            assert await composed(_request(), _ctx()) == "result"

        assert calls == ["after"]
        assert any("afterware broken failed" in r.getMessage() for r in caplog.records)

    async def test_afterware_runs_on_cancellation(self) -> None:
        calls: list[str] = []
        started = anyio.Event()

        async def slow(request, ctx):
            started.set()
            await anyio.sleep(10)

        async def after(request, ctx) -> None:
            # Awaiting inside the shield must not be cancelled.
            await anyio.sleep(0)
            calls.append("after")

        composed = compose(slow, afterware=[after])
        async with anyio.create_task_group() as tg:
            tg.start_soon(composed, _request(), _ctx())
            await started.wait()
            tg.cancel_scope.cancel()

        assert calls == ["after"]
