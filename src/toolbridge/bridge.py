"""Bridge — wires registry, upstream client, dispatcher and sessions together."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from toolbridge import __version__
from toolbridge.catalog import register_default_tools
from toolbridge.protocols.dispatcher import ProtocolDispatcher
from toolbridge.tools.registry import ToolRegistry
from toolbridge.transports.session import SessionManager
from toolbridge.upstream.client import UpstreamClient

if TYPE_CHECKING:
    from fastapi import FastAPI

    from toolbridge.config.models import BridgeSettings

logger = logging.getLogger(__name__)


class Bridge:
    """One bridge instance: its own registry, sessions and upstream client.

    Usage::

        settings = SettingsLoader(Path("bridge.yaml")).load()
        bridge = Bridge(settings)
        bridge.run()                      # transport taken from settings
    """

    def __init__(
        self,
        settings: BridgeSettings,
        *,
        registry: ToolRegistry | None = None,
        upstream: UpstreamClient | None = None,
    ) -> None:
        self.settings = settings
        self.upstream = upstream or UpstreamClient(
            settings.upstream.base_url,
            settings.upstream.token,
            auth_header=settings.upstream.auth_header,
            auth_scheme=settings.upstream.auth_scheme,
            timeout=settings.upstream.timeout,
        )
        if registry is None:
            registry = ToolRegistry()
            register_default_tools(registry, self.upstream)
        self.registry = registry
        self.dispatcher = ProtocolDispatcher(
            registry,
            server_name=settings.name,
            server_version=__version__,
            protocol_version=settings.protocol_version,
            instructions=settings.instructions,
        )
        self.sessions = SessionManager()

    async def aclose(self) -> None:
        self.sessions.close_all()
        await self.upstream.aclose()

    def create_app(self, transport: str | None = None) -> FastAPI:
        from toolbridge.transports.app import create_app

        return create_app(self, transport)

    async def serve_stdio(self) -> None:
        from toolbridge.transports.stdio import serve_stdio

        try:
            await serve_stdio(self.dispatcher)
        finally:
            await self.aclose()

    def run(self, transport: str | None = None, *, log_level: str = "info") -> None:
        """Block serving *transport* (defaults to ``settings.server.transport``)."""
        selected = transport or self.settings.server.transport
        if selected == "stdio":
            asyncio.run(self.serve_stdio())
            return

        import uvicorn

        server = self.settings.server
        logger.info("Listening on %s:%d (%s)", server.host, server.port, selected)
        uvicorn.run(
            self.create_app(selected),
            host=server.host,
            port=server.port,
            log_level=log_level.lower(),
        )
