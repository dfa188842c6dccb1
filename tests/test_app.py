"""Tests for switchyard.app — configuration, hooks, and the lifespan protocol."""

import httpx
import pytest

from switchyard.app import App
from switchyard.config import AppConfig
from switchyard.testing import TestClient


def _lifespan_driver(*incoming: str):
    messages = [{"type": t} for t in incoming]
    sent: list[dict] = []

    async def receive():
        return messages.pop(0)

    async def send(message):
        sent.append(message)

    return receive, send, sent


class TestAppConfig:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.port == 8000
        assert config.fallback_proxy == ""
        assert config.quiet_routes == ()

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            AppConfig().port = 1  # type: ignore[misc]

    def test_fallback_from_config(self) -> None:
        app = App(AppConfig(fallback_proxy="http://legacy:8080"))
        assert app.router.proxy is not None
        assert app.router.proxy.target.host == "legacy"
        assert app.router.proxy.target.port == 8080


class TestAppRoutes:
    async def test_route_decorator_and_groups(self) -> None:
        app = App()

        @app.route("/", methods=["GET", "POST"])
        def index(request, ctx):
            return {"method": request.method}

        admin = app.add_group("/admin")
        admin.get("/stats", lambda request, ctx: {"users": 3})

        async with TestClient(app) as client:
            assert (await client.post("/")).text == '{"method":"POST"}'
            assert (await client.get("/admin/stats")).text == '{"users":3}'

    async def test_app_middleware_and_afterware(self) -> None:
        calls: list[str] = []
        app = App()
        app.before(lambda request, ctx: calls.append("before"))
        app.after(lambda request, ctx: calls.append("after"))

        @app.route("/")
        def index(request, ctx):
            calls.append("handler")

        async with TestClient(app) as client:
            await client.get("/")
        assert calls == ["before", "handler", "after"]

    async def test_hooks_after_start_rejected(self) -> None:
        app = App()
        async with TestClient(app):
            with pytest.raises(RuntimeError):
                app.on_startup(lambda: None)


class TestLifespan:
    async def test_startup_and_shutdown(self) -> None:
        calls: list[str] = []
        app = App()
        app.on_startup(lambda: calls.append("startup"))

        @app.on_shutdown
        async def teardown():
            calls.append("shutdown")

        receive, send, sent = _lifespan_driver("lifespan.startup", "lifespan.shutdown")
        await app({"type": "lifespan"}, receive, send)

        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert calls == ["startup", "shutdown"]
        assert app.router.finalized

    async def test_startup_failure(self) -> None:
        app = App()

        @app.on_startup
        def explode():
            raise RuntimeError("no database")

        receive, send, sent = _lifespan_driver("lifespan.startup")
        await app({"type": "lifespan"}, receive, send)

        assert sent == [{"type": "lifespan.startup.failed", "message": "no database"}]

    async def test_duplicate_routes_fail_startup(self) -> None:
        app = App()
        app.router.get("/x", lambda request, ctx: None)
        app.add_group("/").get("/x", lambda request, ctx: None)

        receive, send, sent = _lifespan_driver("lifespan.startup")
        await app({"type": "lifespan"}, receive, send)

        assert sent[0]["type"] == "lifespan.startup.failed"
        assert "Duplicate route" in sent[0]["message"]

    async def test_shutdown_closes_proxy(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        app = App(AppConfig(fallback_proxy="http://legacy:8080"), proxy_transport=transport)

        receive, send, sent = _lifespan_driver("lifespan.startup", "lifespan.shutdown")
        await app({"type": "lifespan"}, receive, send)

        assert sent[-1]["type"] == "lifespan.shutdown.complete"
        assert app.router.proxy is not None
        assert app.router.proxy._client.is_closed

    async def test_http_scopes_reach_router(self) -> None:
        app = App()
        app.router.get("/ping", lambda request, ctx: "pong")
        async with TestClient(app) as client:
            response = await client.get("/ping")
        assert response.text == '"pong"'
