"""Tests for the Server-Sent Events binding."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI

from toolbridge.protocols.dispatcher import ProtocolDispatcher
from toolbridge.tools.registry import ToolRegistry
from toolbridge.transports.channel import QueueChannel
from toolbridge.transports.session import SessionManager
from toolbridge.transports.sse import KEEPALIVE_FRAME, SSEBinding, format_event

INITIALIZE = {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}}


@pytest.fixture
def dispatcher() -> ProtocolDispatcher:
    registry = ToolRegistry()

    @registry.tool("ping")
    async def ping(args: dict[str, Any]) -> str:
        return "pong"

    return ProtocolDispatcher(registry)


@pytest.fixture
def sessions() -> SessionManager:
    return SessionManager()


@pytest.fixture
def binding(dispatcher: ProtocolDispatcher, sessions: SessionManager) -> SSEBinding:
    return SSEBinding(dispatcher, sessions, keepalive_interval=5)


@pytest.fixture
async def client(binding: SSEBinding) -> AsyncIterator[httpx.AsyncClient]:
    app = FastAPI()
    app.include_router(binding.build_router())
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


def _channel(sessions: SessionManager, session_id: str) -> QueueChannel:
    channel = sessions.get(session_id).channel
    assert isinstance(channel, QueueChannel)
    return channel


class TestFormatEvent:
    def test_single_line(self) -> None:
        assert format_event("endpoint", "/messages?sessionId=a") == (
            "event: endpoint\ndata: /messages?sessionId=a\n\n"
        )

    def test_multi_line(self) -> None:
        assert format_event("message", "a\nb") == "event: message\ndata: a\ndata: b\n\n"


class TestEventStream:
    async def test_first_frame_is_endpoint(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        session_id = binding.open_session()
        endpoint = binding.endpoint_url("http://testserver/", session_id)
        stream = binding.event_stream(session_id, endpoint)

        first = await stream.__anext__()
        await stream.aclose()

        assert first == f"event: endpoint\ndata: http://testserver/messages?sessionId={session_id}\n\n"

    async def test_keepalive_when_idle(
        self, dispatcher: ProtocolDispatcher, sessions: SessionManager
    ) -> None:
        binding = SSEBinding(dispatcher, sessions, keepalive_interval=0.01)
        session_id = binding.open_session()
        stream = binding.event_stream(session_id, "e")

        await stream.__anext__()
        assert await stream.__anext__() == KEEPALIVE_FRAME
        await stream.aclose()

    async def test_disconnect_closes_session(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        session_id = binding.open_session()
        conversation = sessions.get(session_id).context
        stream = binding.event_stream(session_id, "e")

        await stream.__anext__()
        await stream.aclose()

        assert session_id not in sessions
        assert conversation.closed

    async def test_stream_opens_session_on_first_frame(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        stream = binding.stream("http://testserver/")
        assert len(sessions) == 0

        first = await stream.__anext__()
        assert len(sessions) == 1
        assert first.startswith("event: endpoint\ndata: http://testserver/messages?sessionId=")

        await stream.aclose()
        assert len(sessions) == 0

    async def test_unstarted_stream_leaves_nothing_open(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        stream = binding.stream("http://testserver/")
        await stream.aclose()
        assert len(sessions) == 0

    async def test_stream_ends_when_session_closed(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        session_id = binding.open_session()
        stream = binding.event_stream(session_id, "e")
        await stream.__anext__()

        sessions.close(session_id)

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()

    async def test_reply_pushed_as_message_event(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        session_id = binding.open_session()
        stream = binding.event_stream(session_id, "e")
        await stream.__anext__()

        await binding.deliver(session_id, INITIALIZE)
        frame = await stream.__anext__()
        await stream.aclose()

        assert frame.startswith("event: message\ndata: ")
        payload = json.loads(frame.split("data: ", 1)[1])
        assert payload["id"] == 1
        assert "protocolVersion" in payload["result"]

    async def test_deliver_to_closed_session_is_dropped(
        self, binding: SSEBinding, sessions: SessionManager
    ) -> None:
        session_id = binding.open_session()
        sessions.close(session_id)
        await binding.deliver(session_id, INITIALIZE)

    def test_public_url_overrides_request_base(
        self, dispatcher: ProtocolDispatcher, sessions: SessionManager
    ) -> None:
        binding = SSEBinding(dispatcher, sessions, public_url="https://bridge.example.com/")
        assert binding.endpoint_url("http://127.0.0.1:3000/", "abc") == (
            "https://bridge.example.com/messages?sessionId=abc"
        )


class TestMessageRoute:
    async def test_accepted_and_delivered_to_stream(
        self, binding: SSEBinding, sessions: SessionManager, client: httpx.AsyncClient
    ) -> None:
        session_id = binding.open_session()

        response = await client.post(f"/messages?sessionId={session_id}", json=INITIALIZE)

        assert response.status_code == 202
        assert response.text == "Accepted"
        reply = await _channel(sessions, session_id).next(timeout=1)
        assert reply is not None
        assert reply["id"] == 1

    async def test_sessions_are_isolated(
        self, binding: SSEBinding, sessions: SessionManager, client: httpx.AsyncClient
    ) -> None:
        first = binding.open_session()
        second = binding.open_session()

        await client.post(f"/messages?sessionId={first}", json=INITIALIZE)
        response = await client.post(
            f"/messages?sessionId={second}",
            json={"jsonrpc": "2.0", "id": 2, "method": "tools/list"},
        )
        assert response.status_code == 202

        first_reply = await _channel(sessions, first).next(timeout=1)
        second_reply = await _channel(sessions, second).next(timeout=1)
        assert first_reply is not None and "result" in first_reply
        # The second session never initialized, so its own state applies.
        assert second_reply is not None and second_reply["error"]["code"] == -32600

    async def test_unknown_session(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/messages?sessionId=nope", json=INITIALIZE)
        assert response.status_code == 404
        assert response.json()["error"]["type"] == "unknown_session"

    async def test_missing_session_id(self, client: httpx.AsyncClient) -> None:
        response = await client.post("/messages", json=INITIALIZE)
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "missing_session"

    async def test_invalid_json(self, binding: SSEBinding, client: httpx.AsyncClient) -> None:
        session_id = binding.open_session()
        response = await client.post(
            f"/messages?sessionId={session_id}",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == -32700

    async def test_notification_produces_no_event(
        self, binding: SSEBinding, sessions: SessionManager, client: httpx.AsyncClient
    ) -> None:
        session_id = binding.open_session()
        response = await client.post(
            f"/messages?sessionId={session_id}",
            json={"jsonrpc": "2.0", "method": "notifications/initialized"},
        )
        assert response.status_code == 202
        with pytest.raises(TimeoutError):
            await _channel(sessions, session_id).next(timeout=0.05)


class TestSharedSecret:
    @pytest.fixture
    async def secured(
        self, dispatcher: ProtocolDispatcher, sessions: SessionManager
    ) -> AsyncIterator[httpx.AsyncClient]:
        binding = SSEBinding(dispatcher, sessions, shared_secret="s3cret")
        app = FastAPI()
        app.include_router(binding.build_router())
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            yield http

    async def test_post_without_secret(self, secured: httpx.AsyncClient) -> None:
        response = await secured.post("/messages?sessionId=x", json=INITIALIZE)
        assert response.status_code == 401

    async def test_stream_with_wrong_secret(self, secured: httpx.AsyncClient) -> None:
        response = await secured.get("/sse", headers={"X-Bridge-Secret": "wrong"})
        assert response.status_code == 401

    async def test_secret_header_accepted(self, secured: httpx.AsyncClient) -> None:
        response = await secured.post(
            "/messages?sessionId=x", json=INITIALIZE, headers={"X-Bridge-Secret": "s3cret"}
        )
        assert response.status_code == 404

    async def test_bearer_accepted(self, secured: httpx.AsyncClient) -> None:
        response = await secured.post(
            "/messages?sessionId=x", json=INITIALIZE, headers={"Authorization": "Bearer s3cret"}
        )
        assert response.status_code == 404
