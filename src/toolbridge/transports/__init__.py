"""Transport bindings — stdio, Server-Sent Events and WebSocket."""

from toolbridge.transports.channel import Channel, QueueChannel, StreamChannel, WebSocketChannel
from toolbridge.transports.session import Session, SessionManager
from toolbridge.transports.sse import SSEBinding
from toolbridge.transports.stdio import StdioBinding
from toolbridge.transports.websocket import WebSocketBinding

__all__ = [
    "Channel",
    "QueueChannel",
    "SSEBinding",
    "Session",
    "SessionManager",
    "StdioBinding",
    "StreamChannel",
    "WebSocketBinding",
    "WebSocketChannel",
]
