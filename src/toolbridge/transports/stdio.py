"""Stdio binding — newline-delimited JSON over the process's stdin/stdout.

One implicit conversation per process. Logs must go to stderr; stdout
carries nothing but reply envelopes.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Any

from toolbridge.errors import ParseError
from toolbridge.protocols.jsonrpc import decode, error_response
from toolbridge.transports.channel import StreamChannel

if TYPE_CHECKING:
    from toolbridge.protocols.conversation import Conversation
    from toolbridge.protocols.dispatcher import ProtocolDispatcher

logger = logging.getLogger(__name__)

# Single envelopes can exceed asyncio's 64 KiB default line limit.
STREAM_LIMIT = 16 * 1024 * 1024


class StdioBinding:
    """Reads envelopes line by line and writes replies to the same stream pair.

    Requests run as concurrent tasks, so replies may leave in a different
    order than their requests arrived; the ``id`` is what correlates them.
    """

    def __init__(self, dispatcher: ProtocolDispatcher, reader: asyncio.StreamReader, writer: Any) -> None:
        self._dispatcher = dispatcher
        self._reader = reader
        self._channel = StreamChannel(writer)
        self._conversation = dispatcher.new_conversation("stdio")
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def conversation(self) -> Conversation:
        return self._conversation

    async def serve(self) -> None:
        """Process lines until EOF, then wait for in-flight requests."""
        logger.info("Serving on stdio")
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except (ValueError, asyncio.LimitOverrunError) as exc:
                    # The reader has already discarded the oversized chunk.
                    logger.warning("Dropped oversized stdin line: %s", exc)
                    await self._channel.send(error_response(None, ParseError("line too long")))
                    continue
                if not line:
                    break
                line = line.strip()
                if not line:
                    continue
                try:
                    message = decode(line)
                except ParseError as exc:
                    logger.debug("Unparseable stdin line: %s", exc)
                    await self._channel.send(error_response(None, exc))
                    continue
                task = asyncio.create_task(self._handle(message))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            self._conversation.close()
            self._channel.close()
            logger.info("Stdin closed; stdio binding stopped")

    async def _handle(self, message: Any) -> None:
        reply = await self._dispatcher.receive(self._conversation, message)
        if reply is not None:
            await self._channel.send(reply)


async def open_stdio_streams() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap the process's stdin/stdout in asyncio streams."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer


async def serve_stdio(dispatcher: ProtocolDispatcher) -> None:
    reader, writer = await open_stdio_streams()
    await StdioBinding(dispatcher, reader, writer).serve()
