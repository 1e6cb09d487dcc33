"""Tests for the FastAPI application factory."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from toolbridge import __version__
from toolbridge.bridge import Bridge
from toolbridge.config.models import BridgeSettings, ServerSettings
from toolbridge.transports.channel import QueueChannel


def _bridge(transport: str = "sse") -> Bridge:
    return Bridge(BridgeSettings(name="test-bridge", server=ServerSettings(transport=transport)))


class TestCreateApp:
    def test_root(self) -> None:
        client = TestClient(_bridge().create_app())
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "test-bridge up"

    def test_health(self) -> None:
        bridge = _bridge()
        bridge.sessions.open(QueueChannel())
        client = TestClient(bridge.create_app())

        body = client.get("/health").json()

        assert body == {
            "status": "ok",
            "version": __version__,
            "transport": "sse",
            "tools": 4,
            "sessions": 1,
        }

    def test_sse_routes_mounted(self) -> None:
        client = TestClient(_bridge().create_app())
        response = client.post("/messages?sessionId=missing", json={})
        assert response.status_code == 404

    def test_websocket_route_mounted(self) -> None:
        client = TestClient(_bridge().create_app("websocket"))
        with client.websocket_connect("/mcp") as ws:
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_stdio_is_not_http(self) -> None:
        with pytest.raises(ValueError, match="not served over HTTP"):
            _bridge("stdio").create_app()

    def test_lifespan_closes_bridge(self) -> None:
        bridge = _bridge()
        bridge.sessions.open(QueueChannel())
        with TestClient(bridge.create_app()):
            pass
        assert len(bridge.sessions) == 0
