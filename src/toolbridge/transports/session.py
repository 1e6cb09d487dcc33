"""SessionManager — the only owner of ``session id -> Session`` state.

Bindings for decoupled transports (an event stream for replies, separate
POSTs for requests) open a session when the stream starts and close it
when the stream ends. The manager never polls; closure is always driven by
the binding.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from toolbridge.errors import UnknownSessionError
from toolbridge.transports.channel import Channel

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Session:
    id: str
    channel: Channel
    context: Any = None
    created_at: datetime = field(default_factory=_now)
    last_activity: datetime = field(default_factory=_now)


class SessionManager:
    """Tracks open sessions by id."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def open(self, channel: Channel, context: Any = None) -> str:
        """Register *channel* under a fresh 128-bit random id and return the id."""
        session_id = secrets.token_urlsafe(16)
        now = _now()
        self._sessions[session_id] = Session(
            id=session_id,
            channel=channel,
            context=context,
            created_at=now,
            last_activity=now,
        )
        logger.info("Opened session %s (%d open)", session_id, len(self._sessions))
        return session_id

    def get(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def touch(self, session_id: str) -> None:
        self.get(session_id).last_activity = _now()

    def close(self, session_id: str) -> None:
        """Remove the session and close its channel. Unknown ids are ignored."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        session.channel.close()
        close_context = getattr(session.context, "close", None)
        if callable(close_context):
            close_context()
        logger.info("Closed session %s (%d open)", session_id, len(self._sessions))

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
