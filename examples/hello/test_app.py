"""Tests for the hello example."""

from switchyard.testing import TestClient


class TestHelloApp:
    """Verify every route in the hello example works through the ASGI pipeline."""

    async def test_index(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/")
            assert response.status == 200
            assert response.text == '"Hello, World!"'

    async def test_greet_with_path_param(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/greet/alice")
            assert response.status == 200
            assert response.content_type == "application/json"
            assert response.text == '{"greeting":"Hello, alice!"}'

    async def test_custom_response_status_and_header(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/custom")
            assert response.status == 201
            assert response.text == "Created"
            assert ("x-custom", "switchyard") in response.headers

    async def test_typed_error(self, example_app) -> None:
        async with TestClient(example_app) as client:
            response = await client.get("/teapot")
            assert response.status == 418
            assert response.text == "I'm a teapot"
