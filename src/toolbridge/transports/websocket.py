"""WebSocket binding — one socket carries both directions.

One conversation per socket. Frames that are not JSON are dropped without
closing the connection. Frames in the older ``type``-keyed dialect are
translated by :mod:`toolbridge.transports.legacy`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, WebSocket

from toolbridge.errors import MethodNotFoundError, ParseError
from toolbridge.protocols.jsonrpc import decode
from toolbridge.transports import legacy
from toolbridge.transports.auth import is_authorized
from toolbridge.transports.channel import WebSocketChannel

if TYPE_CHECKING:
    from toolbridge.protocols.conversation import Conversation
    from toolbridge.protocols.dispatcher import ProtocolDispatcher

logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


class WebSocketBinding:
    """Full-duplex transport over a FastAPI websocket route."""

    def __init__(
        self,
        dispatcher: ProtocolDispatcher,
        *,
        path: str = "/mcp",
        shared_secret: str | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._path = path
        self._shared_secret = shared_secret

    def build_router(self) -> APIRouter:
        router = APIRouter(tags=["websocket"])
        router.add_api_websocket_route(self._path, self.handle)
        return router

    async def handle(self, websocket: WebSocket) -> None:
        if not is_authorized(websocket.headers, self._shared_secret):
            await websocket.close(code=POLICY_VIOLATION)
            return

        await websocket.accept()
        channel = WebSocketChannel(websocket)
        conversation = self._dispatcher.new_conversation("websocket")
        tasks: set[asyncio.Task[None]] = set()
        logger.info("WebSocket connected (%r)", conversation)

        try:
            while True:
                event = await websocket.receive()
                if event["type"] == "websocket.disconnect":
                    break
                payload = event.get("text")
                if payload is None:
                    payload = event.get("bytes") or b""
                try:
                    message = decode(payload)
                except ParseError:
                    logger.debug("Dropping non-JSON frame on %r", conversation)
                    continue
                task = asyncio.create_task(self._handle(conversation, channel, message))
                tasks.add(task)
                task.add_done_callback(tasks.discard)
        finally:
            conversation.close()
            channel.close()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("WebSocket disconnected (%r)", conversation)

    async def _handle(
        self, conversation: Conversation, channel: WebSocketChannel, message: Any
    ) -> None:
        if legacy.is_legacy_frame(message):
            await self._handle_legacy(conversation, channel, message)
            return
        reply = await self._dispatcher.receive(conversation, message)
        if reply is not None:
            await channel.send(reply)

    async def _handle_legacy(
        self, conversation: Conversation, channel: WebSocketChannel, frame: dict[str, Any]
    ) -> None:
        if legacy.is_ping(frame):
            await channel.send(legacy.PONG)
            return
        try:
            envelope = legacy.to_envelope(frame)
        except MethodNotFoundError:
            logger.debug("Ignoring legacy frame of type %r on %r", frame["type"], conversation)
            return
        if envelope["method"] != "initialize" and not conversation.ready:
            conversation.mark_ready(self._dispatcher.protocol_version)
        reply = await self._dispatcher.receive(conversation, envelope)
        if reply is not None:
            await channel.send(legacy.to_frame(frame, reply))
