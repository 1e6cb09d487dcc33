"""Translation for the ``type``-framed socket dialect.

Older clients of the bridge speak a flat message shape instead of JSON-RPC::

    -> {"type": "initialize"}
    <- {"type": "initialized", "protocolVersion": "...", "capabilities": {...}}
    -> {"type": "tools/list"}
    <- {"type": "tools/list_result", "tools": [...]}
    -> {"type": "tool/call", "name": "...", "arguments": {...}, "call_id": "c1"}
    <- {"type": "tool/call_result", "call_id": "c1", "content": [...]}
    -> {"type": "ping"}
    <- {"type": "pong"}

Failures come back as ``{"type": "error", "error": "<message>"}``. Frames are
translated to envelopes, run through the same dispatcher, and the reply is
translated back.

The dialect has no handshake gate: ``tools/list`` and ``tool/call`` are served
without a prior ``initialize``. Frames of any other ``type`` are ignored.
"""

from __future__ import annotations

from typing import Any

from toolbridge.errors import MethodNotFoundError

_METHODS = {
    "initialize": "initialize",
    "tools/list": "tools/list",
    "tool/call": "tools/call",
    "tools/call": "tools/call",
}

PONG = {"type": "pong"}


def is_legacy_frame(message: Any) -> bool:
    return (
        isinstance(message, dict)
        and isinstance(message.get("type"), str)
        and "method" not in message
        and "jsonrpc" not in message
    )


def is_ping(frame: dict[str, Any]) -> bool:
    return frame.get("type") == "ping"


def to_envelope(frame: dict[str, Any]) -> dict[str, Any]:
    """Build the JSON-RPC request equivalent to *frame*."""
    frame_type = frame["type"]
    method = _METHODS.get(frame_type)
    if method is None:
        raise MethodNotFoundError(frame_type)

    call_id = frame.get("call_id")
    request_id = call_id if isinstance(call_id, (int, str)) and not isinstance(call_id, bool) else frame_type

    params: dict[str, Any] = {}
    if method == "initialize":
        for key in ("protocolVersion", "capabilities", "clientInfo"):
            if key in frame:
                params[key] = frame[key]
    elif method == "tools/call":
        params = {"name": frame.get("name"), "arguments": frame.get("arguments")}
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}


def to_frame(frame: dict[str, Any], reply: dict[str, Any]) -> dict[str, Any]:
    """Translate a dispatcher reply back into the dialect of *frame*."""
    call_id = frame.get("call_id")
    if "error" in reply:
        out: dict[str, Any] = {"type": "error", "error": reply["error"]["message"]}
        if call_id is not None:
            out["call_id"] = call_id
        return out

    result = reply.get("result") or {}
    method = _METHODS[frame["type"]]
    if method == "initialize":
        return {"type": "initialized", **result}
    if method == "tools/list":
        return {"type": "tools/list_result", "tools": result.get("tools", [])}
    return {
        "type": "tool/call_result",
        "call_id": call_id,
        "content": result.get("content", []),
        "isError": result.get("isError", False),
    }
