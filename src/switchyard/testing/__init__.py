"""Test utilities for switchyard applications.

Provides an async test client that drives the ASGI interface directly,
including websocket conversations::

    from switchyard.testing import TestClient
"""

from switchyard.testing.client import TestClient, WebSocketClosed, WebSocketRejected, WebSocketSession

__all__ = [
    "TestClient",
    "WebSocketClosed",
    "WebSocketRejected",
    "WebSocketSession",
]
