"""FastAPI application for the HTTP-based bindings."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from toolbridge import __version__
from toolbridge.transports.sse import SSEBinding
from toolbridge.transports.websocket import WebSocketBinding

if TYPE_CHECKING:
    from toolbridge.bridge import Bridge

logger = logging.getLogger(__name__)


def create_app(bridge: Bridge, transport: str | None = None) -> FastAPI:
    """Build the app serving *transport* (defaults to the configured one)."""
    settings = bridge.settings
    server = settings.server
    selected = transport or server.transport

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting %s v%s (%s transport)", settings.name, __version__, selected)
        yield
        await bridge.aclose()

    app = FastAPI(title=settings.name, version=__version__, lifespan=lifespan)

    if selected == "sse":
        binding = SSEBinding(
            bridge.dispatcher,
            bridge.sessions,
            stream_path=server.stream_path,
            message_path=server.message_path,
            keepalive_interval=server.keepalive_interval,
            public_url=server.public_url,
            shared_secret=server.shared_secret,
        )
        app.include_router(binding.build_router())
    elif selected == "websocket":
        ws_binding = WebSocketBinding(
            bridge.dispatcher,
            path=server.websocket_path,
            shared_secret=server.shared_secret,
        )
        app.include_router(ws_binding.build_router())
    else:
        msg = f"Transport {selected!r} is not served over HTTP"
        raise ValueError(msg)

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    async def root() -> str:
        return f"{settings.name} up"

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "transport": selected,
            "tools": len(bridge.registry),
            "sessions": len(bridge.sessions),
        }

    return app
