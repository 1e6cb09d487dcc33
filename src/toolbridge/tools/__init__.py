"""Tool layer — definitions, declarative schemas, validation and the registry."""

from toolbridge.tools.models import (
    ContentItem,
    StructuredContent,
    TextContent,
    ToolDefinition,
    ToolResult,
)
from toolbridge.tools.registry import ToolRegistry
from toolbridge.tools.schema import FieldSpec, ToolSchema, ValidationResult, Violation, validate

__all__ = [
    "ContentItem",
    "FieldSpec",
    "StructuredContent",
    "TextContent",
    "ToolDefinition",
    "ToolRegistry",
    "ToolResult",
    "ToolSchema",
    "ValidationResult",
    "Violation",
    "validate",
]
