"""Error taxonomy for the bridge.

Every failure the bridge can report belongs to one of a closed set of
families so that boundary code can match on type instead of probing for
optional attributes:

* :class:`ProtocolError` — envelope-level failures with a JSON-RPC code.
* :class:`RegistryError` — tool registration failures.
* :class:`UpstreamError` — the upstream HTTP service rejected or failed a call.
* :class:`SessionError` — a decoupled transport referenced an unusable session.
* :class:`ConfigError` — start-up configuration is missing or invalid.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from toolbridge.tools.schema import Violation

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class BridgeError(Exception):
    """Base error for all bridge failures."""


# ---------------------------------------------------------------------------
# Protocol errors: surfaced as the ``error`` member of a response envelope
# ---------------------------------------------------------------------------


class ProtocolError(BridgeError):
    """A request could not be served; maps to a JSON-RPC error object."""

    code: ClassVar[int] = INTERNAL_ERROR

    def __init__(self, message: str, data: Any = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)

    def to_error(self) -> dict[str, Any]:
        """Render as a JSON-RPC error object."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


class ParseError(ProtocolError):
    """The inbound payload was not valid JSON."""

    code = PARSE_ERROR

    def __init__(self, detail: str = "") -> None:
        super().__init__("Parse error" + (f": {detail}" if detail else ""))


class InvalidRequestError(ProtocolError):
    """The payload is JSON but not a well-formed request envelope."""

    code = INVALID_REQUEST


class NotInitializedError(InvalidRequestError):
    """A method other than the handshake arrived before ``initialize``."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Invalid request: server not initialized (got {method!r})")


class MethodNotFoundError(ProtocolError):
    """The requested method is not supported."""

    code = METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class UnknownToolError(MethodNotFoundError):
    """``tools/call`` named a tool that is not registered."""

    def __init__(self, name: str) -> None:
        ProtocolError.__init__(self, f"Unknown tool: {name}")
        self.method = "tools/call"
        self.name = name


class InvalidParamsError(ProtocolError):
    """Request parameters or tool arguments failed validation."""

    code = INVALID_PARAMS

    def __init__(self, message: str, violations: list[Violation] | None = None) -> None:
        self.violations = list(violations or [])
        data = [v.model_dump() for v in self.violations] or None
        super().__init__(message, data)


class InternalError(ProtocolError):
    """Unexpected failure while dispatching; never carries internals."""

    code = INTERNAL_ERROR

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Registry errors
# ---------------------------------------------------------------------------


class RegistryError(BridgeError):
    """Base error for tool registration failures."""


class DuplicateNameError(RegistryError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class InvalidDefinitionError(RegistryError):
    """A tool definition is malformed (e.g. missing or empty name)."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid tool definition: {detail}")


# ---------------------------------------------------------------------------
# Upstream errors
# ---------------------------------------------------------------------------


class UpstreamError(BridgeError):
    """The upstream HTTP service returned a non-2xx status or was unreachable.

    ``status`` is ``None`` when no response was received at all.
    """

    def __init__(
        self,
        *,
        status: int | None,
        status_text: str,
        url: str,
        message: str,
        body: Any = None,
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.url = url
        self.message = message
        self.body = body
        if status is None:
            super().__init__(f"Upstream request to {url} failed: {message}")
        else:
            label = f"{status} {status_text}".strip()
            super().__init__(f"Upstream {label}: {message}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "statusText": self.status_text,
            "url": self.url,
            "message": self.message,
            "body": self.body,
        }


# ---------------------------------------------------------------------------
# Session errors
# ---------------------------------------------------------------------------


class SessionError(BridgeError):
    """Base error for session lookups on decoupled transports."""


class UnknownSessionError(SessionError):
    """No open session exists for the given id."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Unknown session: {session_id}")


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------


class ConfigError(BridgeError):
    """Start-up configuration is missing or invalid."""
