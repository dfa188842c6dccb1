"""Tests for the CORS helpers in switchyard.middleware.builtin."""

import logging

from switchyard.context import Ctx
from switchyard.middleware import CORSMiddleware, cors_handler, enable_cors
from switchyard.middleware.builtin import CORS_ALLOW_HEADERS
from switchyard.routing.router import Router
from switchyard.testing import TestClient


def _make_cors_router(domain: str) -> Router:
    router = Router()
    api = router.add_group("/api")
    api.before(CORSMiddleware(domain))
    api.get("/data", lambda request, ctx: {"message": "hello"})
    api.options("/data", cors_handler(domain))
    router.get("/plain", lambda request, ctx: {})
    return router


class TestEnableCors:
    def test_sets_headers(self) -> None:
        ctx = Ctx(logging.getLogger("test.cors"))
        enable_cors(ctx, "https://example.com")
        headers = ctx.response_headers
        assert headers.get("access-control-allow-origin") == "https://example.com"
        assert headers.get("x-requested-with") == "XMLHttpRequest"
        assert headers.get("access-control-allow-headers") == CORS_ALLOW_HEADERS

    def test_empty_domain_is_noop(self) -> None:
        ctx = Ctx(logging.getLogger("test.cors"))
        enable_cors(ctx, "")
        assert len(ctx.response_headers) == 0


class TestCORSMiddleware:
    async def test_group_routes_get_headers(self) -> None:
        async with TestClient(_make_cors_router("*")) as client:
            response = await client.get("/api/data")
        assert response.status == 200
        assert ("access-control-allow-origin", "*") in response.headers

    async def test_routes_outside_group_untouched(self) -> None:
        async with TestClient(_make_cors_router("*")) as client:
            response = await client.get("/plain")
        header_names = {name for name, _ in response.headers}
        assert "access-control-allow-origin" not in header_names

    async def test_preflight_handler(self) -> None:
        async with TestClient(_make_cors_router("https://example.com")) as client:
            response = await client.request("OPTIONS", "/api/data")
        assert response.status == 200
        assert response.body == b""
        assert response.header("access-control-allow-origin") == "https://example.com"
        assert response.header("access-control-allow-headers") == CORS_ALLOW_HEADERS
