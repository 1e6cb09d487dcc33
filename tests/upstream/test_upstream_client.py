"""Tests for UpstreamClient against an in-process mock transport."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from toolbridge.errors import UpstreamError
from toolbridge.upstream.client import UpstreamClient

BASE_URL = "https://api.example.test/v1"


def _client(handler: Callable[[httpx.Request], httpx.Response], **kwargs: object) -> UpstreamClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return UpstreamClient(BASE_URL, "secret-token", client=http, **kwargs)  # type: ignore[arg-type]


class TestRequest:
    async def test_get_returns_data_and_meta(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"data": [1, 2, 3]},
                headers={
                    "x-ratelimit-limit": "10",
                    "x-ratelimit-remaining": "9",
                    "x-ratelimit-reset": "1700000000",
                    "x-request-id": "req-1",
                },
            )

        client = _client(handler)
        response = await client.get("/calls")

        assert response.data == {"data": [1, 2, 3]}
        assert response.meta.status == 200
        assert response.meta.url == f"{BASE_URL}/calls"
        assert response.meta.limit == 10
        assert response.meta.remaining == 9
        assert response.meta.reset == "1700000000"
        assert response.meta.request_id == "req-1"

    async def test_missing_meta_headers_are_none(self) -> None:
        client = _client(lambda request: httpx.Response(200, json={}))
        response = await client.get("/calls")
        assert response.meta.limit is None
        assert response.meta.remaining is None
        assert response.meta.request_id is None

    async def test_query_encoding(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.get(
            "/messages",
            query={
                "participants": ["+15550100", "+15550101"],
                "maxResults": 20,
                "pageToken": None,
                "createdAfter": "",
                "archived": False,
            },
        )

        params = seen[0].url.params
        assert params.get_list("participants") == ["+15550100", "+15550101"]
        assert params["maxResults"] == "20"
        assert params["archived"] == "false"
        assert "pageToken" not in params
        assert "createdAfter" not in params

    async def test_auth_header_cannot_be_overridden(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.get("/calls", headers={"Authorization": "Bearer stolen", "X-Trace": "t1"})

        assert seen[0].headers["authorization"] == "Bearer secret-token"
        assert seen[0].headers["x-trace"] == "t1"
        assert seen[0].headers["accept"] == "application/json"

    async def test_absolute_path_stays_on_base_host(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.get("https://attacker.example/steal")

        assert [request.url.host for request in seen] == ["api.example.test"]
        assert seen[0].url.path.startswith("/v1/")

    async def test_raw_auth_scheme(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        client = _client(handler, auth_scheme="")
        await client.get("/calls")
        assert seen[0].headers["authorization"] == "secret-token"

    async def test_post_sends_json_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": "m1"})

        client = _client(handler)
        response = await client.post("/messages", body={"content": "hi"})

        assert response.meta.status == 201
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"content": "hi"}
        assert seen[0].headers["content-type"] == "application/json"

    async def test_empty_body_is_none(self) -> None:
        client = _client(lambda request: httpx.Response(204))
        response = await client.delete("/messages/m1")
        assert response.data is None

    async def test_non_json_body_wrapped(self) -> None:
        client = _client(lambda request: httpx.Response(200, text="plain text"))
        response = await client.get("/calls")
        assert response.data == {"raw": "plain text"}


class TestErrors:
    async def test_message_from_body(self) -> None:
        client = _client(lambda request: httpx.Response(401, json={"message": "invalid key"}))
        with pytest.raises(UpstreamError) as exc_info:
            await client.get("/calls")

        error = exc_info.value
        assert error.status == 401
        assert error.status_text == "Unauthorized"
        assert error.message == "invalid key"
        assert error.body == {"message": "invalid key"}
        assert error.url == f"{BASE_URL}/calls"
        assert str(error) == "Upstream 401 Unauthorized: invalid key"

    async def test_nested_error_message(self) -> None:
        client = _client(
            lambda request: httpx.Response(400, json={"error": {"message": "bad participants"}})
        )
        with pytest.raises(UpstreamError, match="bad participants"):
            await client.get("/calls")

    async def test_falls_back_to_status_text(self) -> None:
        client = _client(lambda request: httpx.Response(503, text=""))
        with pytest.raises(UpstreamError) as exc_info:
            await client.get("/calls")
        assert exc_info.value.message == "Service Unavailable"
        assert exc_info.value.body is None

    async def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(UpstreamError) as exc_info:
            await client.get("/calls")

        assert exc_info.value.status is None
        assert "connection refused" in exc_info.value.message
        assert exc_info.value.to_dict()["status"] is None


class TestLifecycle:
    async def test_does_not_close_injected_client(self) -> None:
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        async with UpstreamClient(BASE_URL, "t", client=http):
            pass
        assert not http.is_closed
        await http.aclose()

    async def test_closes_own_client(self) -> None:
        client = UpstreamClient(BASE_URL, "t")
        await client.aclose()
        assert client._client.is_closed

    def test_build_query(self) -> None:
        assert UpstreamClient.build_query({"a": [1, None, ""], "b": True}) == [
            ("a", "1"),
            ("b", "true"),
        ]
        assert UpstreamClient.build_query(None) == []

    def test_base_url_trailing_slash(self) -> None:
        client = UpstreamClient(f"{BASE_URL}/", "t")
        assert client.base_url == BASE_URL
