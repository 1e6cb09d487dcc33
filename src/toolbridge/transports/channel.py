"""Outbound channels — where a binding writes reply envelopes.

Each channel satisfies the :class:`Channel` protocol. Writing to a closed
channel is a silent no-op: a reply that outlives its connection is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, runtime_checkable

from toolbridge.protocols.jsonrpc import encode

logger = logging.getLogger(__name__)


@runtime_checkable
class Channel(Protocol):
    """Outbound half of a client connection."""

    @property
    def closed(self) -> bool: ...

    async def send(self, message: dict[str, Any]) -> None: ...

    def close(self) -> None: ...


class QueueChannel:
    """Buffers messages for an event stream that drains them elsewhere.

    Used by the push binding: POST handlers ``send`` into the queue and the
    long-lived GET response ``drain``\\ s it.
    """

    _CLOSED = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            logger.debug("Dropping message for closed channel")
            return
        await self._queue.put(message)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    async def next(self, timeout: float | None = None) -> dict[str, Any] | None:
        """Wait for the next message; ``None`` once closed.

        Raises:
            TimeoutError: If *timeout* elapses with nothing queued.
        """
        item = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        if item is self._CLOSED:
            return None
        return item  # type: ignore[no-any-return]


class StreamChannel:
    """Writes newline-delimited JSON to an ``asyncio.StreamWriter``-like object."""

    def __init__(self, writer: Any) -> None:
        self._writer = writer
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            logger.debug("Dropping message for closed stream")
            return
        line = encode(message) + "\n"
        async with self._lock:
            try:
                self._writer.write(line.encode())
                await self._writer.drain()
            except (ConnectionError, RuntimeError) as exc:
                logger.debug("Stream write failed, closing channel: %s", exc)
                self._closed = True

    def close(self) -> None:
        self._closed = True


class WebSocketChannel:
    """Sends JSON text frames over a Starlette ``WebSocket``."""

    def __init__(self, websocket: Any) -> None:
        self._websocket = websocket
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, message: dict[str, Any]) -> None:
        if self._closed:
            logger.debug("Dropping frame for closed socket")
            return
        async with self._lock:
            try:
                await self._websocket.send_text(encode(message))
            except (ConnectionError, RuntimeError) as exc:
                logger.debug("Socket send failed, closing channel: %s", exc)
                self._closed = True

    def close(self) -> None:
        self._closed = True
