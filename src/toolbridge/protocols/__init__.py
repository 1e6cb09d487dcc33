"""Protocol layer — JSON-RPC envelopes, conversation state and the dispatcher."""

from toolbridge.protocols.conversation import Conversation, ConversationState
from toolbridge.protocols.dispatcher import DEFAULT_PROTOCOL_VERSION, ProtocolDispatcher
from toolbridge.protocols.jsonrpc import JsonRpcError, JsonRpcRequest, JsonRpcResponse

__all__ = [
    "DEFAULT_PROTOCOL_VERSION",
    "Conversation",
    "ConversationState",
    "JsonRpcError",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "ProtocolDispatcher",
]
