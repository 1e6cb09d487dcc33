"""Tool catalog — the tools a bridge registers at start-up."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from toolbridge.catalog.openphone import openphone_tools
from toolbridge.tools.models import ToolDefinition

if TYPE_CHECKING:
    from toolbridge.tools.registry import ToolRegistry
    from toolbridge.upstream.client import UpstreamClient


async def _ping(args: dict[str, Any]) -> str:
    return "pong"


PING = ToolDefinition(name="ping", description="Check that the bridge is alive", handler=_ping)


def default_tools(client: UpstreamClient) -> list[ToolDefinition]:
    return [PING, *openphone_tools(client)]


def register_default_tools(registry: ToolRegistry, client: UpstreamClient) -> None:
    registry.extend(default_tools(client))


__all__ = ["PING", "default_tools", "openphone_tools", "register_default_tools"]
