"""Tool models — definitions, content items and invocation results.

A :class:`ToolResult` is what a tool handler produces and what the
dispatcher serializes into the ``result`` member of a ``tools/call``
response.
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from toolbridge.tools.schema import ToolSchema

# ---------------------------------------------------------------------------
# Content items
# ---------------------------------------------------------------------------


class TextContent(BaseModel):
    """Plain text content item."""

    type: Literal["text"] = "text"
    text: str


class StructuredContent(BaseModel):
    """Arbitrary JSON payload content item."""

    type: Literal["json"] = "json"
    data: Any = None


ContentItem = Union[TextContent, StructuredContent]


# ---------------------------------------------------------------------------
# Tool results
# ---------------------------------------------------------------------------


class ToolResult(BaseModel):
    """The outcome of one tool invocation.

    ``is_error`` is reserved for domain failures reported by the handler
    (an upstream 4xx/5xx, a business-rule rejection). Protocol failures
    never travel inside a ToolResult.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: list[ContentItem] = []
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str) -> ToolResult:
        """Create a successful result with a single text item."""
        return cls(content=[TextContent(text=text)])

    @classmethod
    def structured(cls, data: Any, summary: str | None = None) -> ToolResult:
        """Create a successful result carrying *data*, optionally preceded by a summary."""
        content: list[ContentItem] = []
        if summary is not None:
            content.append(TextContent(text=summary))
        content.append(StructuredContent(data=data))
        return cls(content=content)

    @classmethod
    def error(cls, message: str, data: Any = None) -> ToolResult:
        """Create a domain-failure result."""
        content: list[ContentItem] = [TextContent(text=message)]
        if data is not None:
            content.append(StructuredContent(data=data))
        return cls(content=content, is_error=True)

    @classmethod
    def coerce(cls, value: Any) -> ToolResult:
        """Normalize a handler's return value into a ToolResult.

        Strings become one text item; ``None`` becomes an empty result;
        anything else is treated as JSON data.
        """
        if isinstance(value, ToolResult):
            return value
        if value is None:
            return cls()
        if isinstance(value, str):
            return cls.text(value)
        return cls.structured(value, summary=json.dumps(value, default=str))

    @property
    def texts(self) -> list[str]:
        return [item.text for item in self.content if isinstance(item, TextContent)]

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the ``result`` member of a ``tools/call`` response."""
        return self.model_dump(by_alias=True)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

ToolHandler = Callable[[dict[str, Any]], Union[Awaitable[Any], Any]]


class ToolDefinition(BaseModel):
    """A named, schema-described tool. Immutable once built."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(min_length=1)
    description: str = ""
    input_schema: ToolSchema = Field(default_factory=ToolSchema)
    handler: ToolHandler

    def metadata(self) -> dict[str, Any]:
        """Public metadata as returned by ``tools/list`` — never the handler."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema.to_json_schema(),
        }
