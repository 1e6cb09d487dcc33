"""ToolRegistry — owns the name-to-definition map for one bridge instance."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from toolbridge.errors import DuplicateNameError, InvalidDefinitionError, UnknownToolError
from toolbridge.tools.models import ToolDefinition, ToolHandler
from toolbridge.tools.schema import ToolSchema

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Holds tool definitions in registration order.

    Each registry keeps its own set of names, so several bridges can live
    in one process (e.g. under test) without sharing state.

    Usage::

        registry = ToolRegistry()

        @registry.tool("ping", description="Health check")
        async def ping(args):
            return "pong"

        registry.list()           # [{"name": "ping", ...}]
        handler = registry.resolve("ping")
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, definition: ToolDefinition | Mapping[str, Any]) -> ToolDefinition:
        """Add *definition*; the first registration of a name always wins."""
        tool_def = self._coerce(definition)
        if tool_def.name in self._tools:
            raise DuplicateNameError(tool_def.name)
        self._tools[tool_def.name] = tool_def
        logger.debug("Registered tool %s", tool_def.name)
        return tool_def

    def extend(self, definitions: Iterable[ToolDefinition | Mapping[str, Any]]) -> None:
        """Register many definitions, skipping duplicates with a warning."""
        for definition in definitions:
            try:
                self.register(definition)
            except DuplicateNameError as exc:
                logger.warning("Ignoring duplicate tool registration: %s", exc.name)

    def tool(
        self,
        name: str,
        *,
        description: str = "",
        schema: ToolSchema | None = None,
    ) -> Any:
        """Decorator that registers the wrapped function as a tool handler."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.register(
                {
                    "name": name,
                    "description": description,
                    "input_schema": schema or ToolSchema(),
                    "handler": handler,
                }
            )
            return handler

        return decorator

    def list(self) -> list[dict[str, Any]]:
        """Return public metadata for every tool, in registration order."""
        return [tool_def.metadata() for tool_def in self._tools.values()]

    def get(self, name: str) -> ToolDefinition:
        """Return the full definition for *name*."""
        tool_def = self._tools.get(name)
        if tool_def is None:
            raise UnknownToolError(name)
        return tool_def

    def resolve(self, name: str) -> ToolHandler:
        """Return the handler registered under *name*."""
        return self.get(name).handler

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @staticmethod
    def _coerce(definition: ToolDefinition | Mapping[str, Any]) -> ToolDefinition:
        if isinstance(definition, ToolDefinition):
            return definition
        if not isinstance(definition, Mapping):
            raise InvalidDefinitionError(f"expected a mapping, got {type(definition).__name__}")
        name = definition.get("name")
        if not isinstance(name, str) or not name.strip():
            raise InvalidDefinitionError("'name' must be a non-empty string")
        try:
            return ToolDefinition.model_validate(dict(definition))
        except ValidationError as exc:
            raise InvalidDefinitionError(str(exc)) from exc
