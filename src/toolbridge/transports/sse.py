"""Server-Sent Events binding — replies pushed on a stream, requests POSTed.

``GET <stream_path>`` opens a session and keeps a ``text/event-stream``
response open. Its first frame is an ``endpoint`` event carrying the URL the
client must POST envelopes to::

    event: endpoint
    data: http://host:3000/messages?sessionId=<id>

Each ``POST <message_path>?sessionId=<id>`` is acknowledged with 202 and its
reply is written to the session's stream, not to the POST response.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse
from starlette.background import BackgroundTask

from toolbridge.errors import ParseError, UnknownSessionError
from toolbridge.protocols.jsonrpc import decode, encode, error_response
from toolbridge.transports.auth import is_authorized
from toolbridge.transports.channel import QueueChannel

if TYPE_CHECKING:
    from toolbridge.protocols.dispatcher import ProtocolDispatcher
    from toolbridge.transports.session import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_KEEPALIVE_INTERVAL = 20.0
KEEPALIVE_FRAME = ": keepalive\n\n"


def format_event(event: str, data: str) -> str:
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


def _error_body(kind: str, message: str) -> dict[str, Any]:
    return {"error": {"type": kind, "message": message}}


class SSEBinding:
    """Decoupled push transport over FastAPI routes."""

    def __init__(
        self,
        dispatcher: ProtocolDispatcher,
        sessions: SessionManager,
        *,
        stream_path: str = "/sse",
        message_path: str = "/messages",
        keepalive_interval: float = DEFAULT_KEEPALIVE_INTERVAL,
        public_url: str | None = None,
        shared_secret: str | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._sessions = sessions
        self._stream_path = stream_path
        self._message_path = message_path
        self._keepalive_interval = keepalive_interval
        self._public_url = public_url.rstrip("/") if public_url else None
        self._shared_secret = shared_secret

    def build_router(self) -> APIRouter:
        router = APIRouter(tags=["sse"])
        router.add_api_route(
            self._stream_path, self.handle_stream, methods=["GET"], response_model=None
        )
        router.add_api_route(
            self._message_path, self.handle_message, methods=["POST"], response_model=None
        )
        return router

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def open_session(self) -> str:
        """Open a session with a fresh queue channel and conversation."""
        conversation = self._dispatcher.new_conversation("sse")
        return self._sessions.open(QueueChannel(), conversation)

    def endpoint_url(self, base_url: str, session_id: str) -> str:
        base = self._public_url or base_url.rstrip("/")
        return f"{base}{self._message_path}?sessionId={session_id}"

    async def event_stream(self, session_id: str, endpoint: str) -> AsyncIterator[str]:
        """Yield SSE frames for *session_id* until its channel closes.

        The session is closed when the generator ends for any reason,
        including the client disconnecting.
        """
        try:
            yield format_event("endpoint", endpoint)
            while True:
                try:
                    session = self._sessions.get(session_id)
                except UnknownSessionError:
                    break
                channel = cast("QueueChannel", session.channel)
                try:
                    message = await channel.next(timeout=self._keepalive_interval)
                except TimeoutError:
                    yield KEEPALIVE_FRAME
                    continue
                if message is None:
                    break
                yield format_event("message", encode(message))
        finally:
            self._sessions.close(session_id)

    async def stream(self, base_url: str) -> AsyncIterator[str]:
        """Open a session on first iteration and yield its frames.

        Nothing is registered until the response starts streaming, so a
        request dropped before then leaves no session behind.
        """
        session_id = self.open_session()
        frames = self.event_stream(session_id, self.endpoint_url(base_url, session_id))
        try:
            async for frame in frames:
                yield frame
        finally:
            await frames.aclose()
            self._sessions.close(session_id)

    async def deliver(self, session_id: str, message: Any) -> None:
        """Dispatch *message* and push the reply onto the session's stream."""
        try:
            session = self._sessions.get(session_id)
        except UnknownSessionError:
            logger.debug("Session %s vanished before dispatch", session_id)
            return
        reply = await self._dispatcher.receive(session.context, message)
        if reply is None:
            return
        # Look the session up again: the stream may have closed mid-call.
        try:
            session = self._sessions.get(session_id)
        except UnknownSessionError:
            logger.debug("Dropping reply for closed session %s", session_id)
            return
        await session.channel.send(reply)

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    async def handle_stream(self, request: Request) -> Response:
        if not is_authorized(request.headers, self._shared_secret):
            return JSONResponse(_error_body("unauthorized", "Invalid bridge secret"), status_code=401)
        return StreamingResponse(
            self.stream(str(request.base_url)),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    async def handle_message(self, request: Request) -> Response:
        if not is_authorized(request.headers, self._shared_secret):
            return JSONResponse(_error_body("unauthorized", "Invalid bridge secret"), status_code=401)

        session_id = request.query_params.get("sessionId") or request.query_params.get("session_id")
        if not session_id:
            return JSONResponse(
                _error_body("missing_session", "sessionId query parameter is required"),
                status_code=400,
            )
        try:
            self._sessions.touch(session_id)
        except UnknownSessionError as exc:
            logger.debug("POST for unknown session %s", session_id)
            return JSONResponse(_error_body("unknown_session", str(exc)), status_code=404)

        try:
            message = decode(await request.body())
        except ParseError as exc:
            return JSONResponse(error_response(None, exc), status_code=400)

        return PlainTextResponse(
            "Accepted",
            status_code=202,
            background=BackgroundTask(self.deliver, session_id, message),
        )
