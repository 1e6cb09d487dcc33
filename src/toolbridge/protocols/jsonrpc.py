"""JSON-RPC 2.0 envelopes.

See: https://www.jsonrpc.org/specification
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from toolbridge.errors import ParseError, ProtocolError

JSONRPC_VERSION = "2.0"

RequestId = Union[int, str]


class JsonRpcRequest(BaseModel):
    """An inbound request or notification (``id`` absent or null)."""

    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"] = "2.0"
    method: str = Field(min_length=1)
    id: RequestId | None = None
    params: Any = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """An outbound response; exactly one of ``result`` / ``error`` is set."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None = None
    result: Any = None
    error: JsonRpcError | None = None

    @classmethod
    def success(cls, id: RequestId | None, result: Any) -> JsonRpcResponse:
        return cls(id=id, result=result)

    @classmethod
    def failure(cls, id: RequestId | None, exc: ProtocolError) -> JsonRpcResponse:
        return cls(id=id, error=JsonRpcError.model_validate(exc.to_error()))

    def to_wire(self) -> dict[str, Any]:
        """Serialize with only one of ``result`` / ``error`` present."""
        message: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            message["error"] = self.error.model_dump(exclude_none=True)
        else:
            message["result"] = self.result
        return message


def decode(payload: str | bytes) -> Any:
    """Decode one JSON payload, raising :class:`ParseError` if it is not JSON."""
    try:
        return json.loads(payload)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ParseError(str(exc)) from exc


def encode(message: dict[str, Any]) -> str:
    """Encode one outbound message as compact JSON."""
    return json.dumps(message, separators=(",", ":"), default=str)


def error_response(id: RequestId | None, exc: ProtocolError) -> dict[str, Any]:
    """Shortcut for a wire-ready error envelope."""
    return JsonRpcResponse.failure(id, exc).to_wire()


def is_response(message: Any) -> bool:
    """True for client-sent responses (no ``method``, has ``result``/``error``)."""
    return (
        isinstance(message, dict)
        and "method" not in message
        and ("result" in message or "error" in message)
    )


def extract_id(message: Any) -> RequestId | None:
    """Best-effort id lookup for messages that failed validation."""
    if isinstance(message, dict):
        value = message.get("id")
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
    return None
