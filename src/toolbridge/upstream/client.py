"""UpstreamClient — the generic HTTP helper tool handlers call.

Every call is a single attempt: no retries and no backoff. Whether to retry
is the handler's decision.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import httpx

from toolbridge import __version__
from toolbridge.errors import UpstreamError
from toolbridge.upstream.models import UpstreamMeta, UpstreamResponse
from toolbridge.utils.telemetry import (
    ATTR_HTTP_METHOD,
    ATTR_HTTP_STATUS,
    ATTR_UPSTREAM_PATH,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_LIMIT_HEADERS = ("x-ratelimit-limit", "ratelimit-limit")
_REMAINING_HEADERS = ("x-ratelimit-remaining", "ratelimit-remaining")
_RESET_HEADERS = ("x-ratelimit-reset", "ratelimit-reset")
_REQUEST_ID_HEADERS = ("x-request-id", "request-id", "x-amzn-requestid")


class UpstreamClient:
    """Async HTTP client bound to one upstream base URL and credential.

    Usage::

        async with UpstreamClient("https://api.example.com/v1", token="...") as api:
            response = await api.get("/calls", query={"maxResults": 20})
            response.data, response.meta.remaining
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        auth_header: str = "Authorization",
        auth_scheme: str = "Bearer",
        default_headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_header = auth_header
        self._auth_value = f"{auth_scheme} {token}" if auth_scheme else token
        self._default_headers = {
            "Accept": "application/json",
            "User-Agent": f"toolbridge/{__version__}",
            **dict(default_headers or {}),
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> UpstreamClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def get(self, path: str, **kwargs: Any) -> UpstreamResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> UpstreamResponse:
        return await self.request("POST", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> UpstreamResponse:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> UpstreamResponse:
        return await self.request("DELETE", path, **kwargs)

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> UpstreamResponse:
        """Perform one upstream call and return ``{data, meta}``.

        Raises:
            UpstreamError: On a non-2xx status or when no response arrives.
        """
        url = httpx.URL(self._url_for(path))
        params = self.build_query(query)
        if params:
            url = url.copy_merge_params(params)
        content = json.dumps(body).encode() if body is not None else None
        merged = self._merge_headers(headers, has_body=content is not None)

        with _tracer.start_as_current_span("toolbridge.upstream.request") as span:
            span.set_attribute(ATTR_HTTP_METHOD, method.upper())
            span.set_attribute(ATTR_UPSTREAM_PATH, path)
            try:
                response = await self._client.request(
                    method.upper(), url, headers=merged, content=content
                )
            except httpx.HTTPError as exc:
                logger.warning("Upstream %s %s failed: %s", method.upper(), url, exc)
                raise UpstreamError(
                    status=None,
                    status_text="",
                    url=str(url),
                    message=str(exc) or type(exc).__name__,
                ) from exc
            span.set_attribute(ATTR_HTTP_STATUS, response.status_code)

        text = response.text
        data = self._parse_body(text)
        resolved = str(url)

        if not response.is_success:
            status_text = response.reason_phrase or ""
            logger.info("Upstream %s %s returned %d", method.upper(), resolved, response.status_code)
            raise UpstreamError(
                status=response.status_code,
                status_text=status_text,
                url=resolved,
                message=self._error_message(data) or status_text or "request failed",
                body=data,
            )

        meta = UpstreamMeta(
            url=resolved,
            status=response.status_code,
            limit=_int_header(response.headers, _LIMIT_HEADERS),
            remaining=_int_header(response.headers, _REMAINING_HEADERS),
            reset=_first_header(response.headers, _RESET_HEADERS),
            request_id=_first_header(response.headers, _REQUEST_ID_HEADERS),
        )
        return UpstreamResponse(data=data, meta=meta)

    @staticmethod
    def build_query(query: Mapping[str, Any] | None) -> list[tuple[str, str]]:
        """Flatten *query* into key/value pairs; list values repeat the key."""
        params: list[tuple[str, str]] = []
        for key, value in (query or {}).items():
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                if item is None or item == "":
                    continue
                params.append((key, _query_value(item)))
        return params

    def _url_for(self, path: str) -> str:
        # Absolute URLs are joined too; the auth header only goes to the base host.
        return f"{self._base_url}/{path.lstrip('/')}"

    def _merge_headers(
        self, headers: Mapping[str, str] | None, *, has_body: bool = False
    ) -> dict[str, str]:
        merged = httpx.Headers(self._default_headers)
        if has_body:
            merged["Content-Type"] = "application/json"
        for key, value in (headers or {}).items():
            merged[key] = value
        # Auth header goes last so callers can never replace it.
        merged[self._auth_header] = self._auth_value
        return dict(merged.items())

    @staticmethod
    def _parse_body(text: str) -> Any:
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return {"raw": text}

    @staticmethod
    def _error_message(data: Any) -> str | None:
        if not isinstance(data, dict):
            return None
        for key in ("message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
        return None


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _first_header(headers: httpx.Headers, names: tuple[str, ...]) -> str | None:
    for name in names:
        value = headers.get(name)
        if value is not None:
            return value
    return None


def _int_header(headers: httpx.Headers, names: tuple[str, ...]) -> int | None:
    value = _first_header(headers, names)
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None
