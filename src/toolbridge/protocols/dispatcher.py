"""ProtocolDispatcher — the transport-agnostic request router.

Bindings decode one inbound message, hand it to :meth:`ProtocolDispatcher.receive`
together with the connection's :class:`Conversation`, and write back whatever
reply comes out (nothing for notifications).
"""

from __future__ import annotations

import inspect
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from toolbridge.errors import (
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    MethodNotFoundError,
    NotInitializedError,
    ProtocolError,
)
from toolbridge.protocols.conversation import Conversation
from toolbridge.protocols.jsonrpc import (
    JsonRpcRequest,
    JsonRpcResponse,
    error_response,
    extract_id,
    is_response,
)
from toolbridge.tools.models import ToolResult
from toolbridge.tools.schema import validate
from toolbridge.utils.telemetry import (
    ATTR_RPC_METHOD,
    ATTR_TOOL_IS_ERROR,
    ATTR_TOOL_NAME,
    ATTR_TRANSPORT,
    get_tracer,
)

if TYPE_CHECKING:
    from toolbridge.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_PROTOCOL_VERSION = "2024-11-05"


class ProtocolDispatcher:
    """Routes JSON-RPC envelopes to the handshake, tool listing and tool calls.

    Usage::

        dispatcher = ProtocolDispatcher(registry, server_name="toolbridge")
        conversation = dispatcher.new_conversation("stdio")
        reply = await dispatcher.receive(conversation, {"jsonrpc": "2.0", "id": 1,
                                                        "method": "initialize"})
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        server_name: str = "toolbridge",
        server_version: str = "0.0.0",
        protocol_version: str = DEFAULT_PROTOCOL_VERSION,
        instructions: str | None = None,
    ) -> None:
        self._registry = registry
        self._server_info = {"name": server_name, "version": server_version}
        self._protocol_version = protocol_version
        self._instructions = instructions

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    def new_conversation(self, transport: str = "") -> Conversation:
        return Conversation(transport)

    async def receive(self, conversation: Conversation, message: Any) -> dict[str, Any] | None:
        """Process one decoded message and return the reply envelope, if any."""
        if conversation.closed:
            logger.debug("Dropping message for closed %r", conversation)
            return None

        if is_response(message):
            logger.debug("Ignoring client response on %r", conversation)
            return None

        try:
            request = JsonRpcRequest.model_validate(message)
        except ValidationError:
            return error_response(
                extract_id(message), InvalidRequestError("Invalid request: malformed envelope")
            )

        try:
            result = await self._route(conversation, request)
        except ProtocolError as exc:
            if request.is_notification:
                logger.debug("Notification %s failed: %s", request.method, exc)
                return None
            return error_response(request.id, exc)
        except Exception:
            logger.exception("Internal error while dispatching %s", request.method)
            if request.is_notification:
                return None
            return error_response(request.id, InternalError())

        if request.is_notification:
            return None
        return JsonRpcResponse.success(request.id, result).to_wire()

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    async def _route(self, conversation: Conversation, request: JsonRpcRequest) -> Any:
        method = request.method

        if method == "initialize":
            return self._initialize(conversation, request.params)

        if method.startswith("notifications/"):
            logger.debug("Notification %s on %r", method, conversation)
            return None

        if not conversation.ready:
            raise NotInitializedError(method)

        if method == "ping":
            return {}
        if method == "tools/list":
            return {"tools": self._registry.list()}
        if method == "tools/call":
            return await self._call_tool(conversation, request.params)
        raise MethodNotFoundError(method)

    def _initialize(self, conversation: Conversation, params: Any) -> dict[str, Any]:
        params = params if isinstance(params, dict) else {}
        requested = params.get("protocolVersion")
        # Version negotiation is advisory: echo whatever the client asked for.
        version = requested if isinstance(requested, str) and requested else self._protocol_version
        client_info = params.get("clientInfo")
        conversation.mark_ready(version, client_info if isinstance(client_info, dict) else None)
        logger.info("Initialized %r (protocol %s)", conversation, version)

        result: dict[str, Any] = {
            "protocolVersion": version,
            "capabilities": {"tools": {}},
            "serverInfo": dict(self._server_info),
        }
        if self._instructions:
            result["instructions"] = self._instructions
        return result

    async def _call_tool(self, conversation: Conversation, params: Any) -> dict[str, Any]:
        if not isinstance(params, dict):
            raise InvalidParamsError("Invalid params: expected an object")
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Invalid params: 'name' must be a non-empty string")

        tool_def = self._registry.get(name)
        outcome = validate(tool_def.input_schema, params.get("arguments"))
        if not outcome.ok:
            raise InvalidParamsError(f"Invalid arguments for tool {name}", outcome.violations)

        with _tracer.start_as_current_span("toolbridge.tool.call") as span:
            span.set_attribute(ATTR_RPC_METHOD, "tools/call")
            span.set_attribute(ATTR_TOOL_NAME, name)
            span.set_attribute(ATTR_TRANSPORT, conversation.transport)
            tool_result = await self._invoke(name, tool_def.handler, outcome.value)
            span.set_attribute(ATTR_TOOL_IS_ERROR, tool_result.is_error)
        return tool_result.to_wire()

    @staticmethod
    async def _invoke(name: str, handler: Any, arguments: dict[str, Any]) -> ToolResult:
        """Run a handler; any exception it raises becomes an ``isError`` result."""
        try:
            value = handler(arguments)
            if inspect.isawaitable(value):
                value = await value
            return ToolResult.coerce(value)
        except Exception as exc:
            logger.info("Tool %s failed: %s", name, exc)
            return ToolResult.error(str(exc) or type(exc).__name__)
