"""Per-connection protocol state."""

from __future__ import annotations

from enum import Enum
from uuid import uuid4


class ConversationState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"


class Conversation:
    """Handshake state for one stdio stream, socket, or push session.

    ``UNINITIALIZED -> READY -> CLOSED``; ``CLOSED`` is terminal.
    """

    def __init__(self, transport: str = "") -> None:
        self.id = uuid4().hex[:12]
        self.transport = transport
        self.state = ConversationState.UNINITIALIZED
        self.protocol_version: str | None = None
        self.client_info: dict[str, object] = {}

    @property
    def ready(self) -> bool:
        return self.state is ConversationState.READY

    @property
    def closed(self) -> bool:
        return self.state is ConversationState.CLOSED

    def mark_ready(self, protocol_version: str, client_info: dict[str, object] | None = None) -> None:
        if self.closed:
            return
        self.protocol_version = protocol_version
        self.client_info = dict(client_info or {})
        self.state = ConversationState.READY

    def close(self) -> None:
        self.state = ConversationState.CLOSED

    def __repr__(self) -> str:
        return f"Conversation(id={self.id!r}, transport={self.transport!r}, state={self.state.value})"
