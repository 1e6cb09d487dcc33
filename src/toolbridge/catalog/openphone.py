"""OpenPhone history tools.

The upstream is treated as an opaque REST service: each tool maps validated
arguments onto a path and query string and reports what came back.
"""

from __future__ import annotations

import logging
from typing import Any

from toolbridge.errors import UpstreamError
from toolbridge.tools.models import ToolDefinition, ToolResult
from toolbridge.tools.schema import FieldSpec, ToolSchema
from toolbridge.upstream.client import UpstreamClient

logger = logging.getLogger(__name__)

_E164 = "E.164 phone number, e.g. +12087311250"


def _history_fields(*, required: bool) -> dict[str, FieldSpec]:
    return {
        "phoneNumberId": FieldSpec(
            type="string", required=required, description="OpenPhone number id (PN...)"
        ),
        "participants": FieldSpec(type="string", required=required, description=_E164),
        "limit": FieldSpec(
            type="integer", default=20, minimum=1, maximum=100, description="Maximum results"
        ),
        "maxResults": FieldSpec(
            type="integer",
            minimum=1,
            maximum=100,
            description="Upstream spelling of limit; takes precedence when both are set",
        ),
        "createdAfter": FieldSpec(type="string", description="ISO 8601 lower bound"),
        "createdBefore": FieldSpec(type="string", description="ISO 8601 upper bound"),
        "pageToken": FieldSpec(type="string", description="Token from a previous page"),
    }


def _history_query(args: dict[str, Any]) -> dict[str, Any]:
    """Map tool arguments onto the upstream's query parameters."""
    participants = args.get("participants")
    max_results = args.get("maxResults")
    return {
        "phoneNumberId": args.get("phoneNumberId"),
        "participants": [participants] if participants else None,
        "maxResults": max_results if max_results is not None else args.get("limit"),
        "createdAfter": args.get("createdAfter"),
        "createdBefore": args.get("createdBefore"),
        "pageToken": args.get("pageToken"),
    }


async def _list(client: UpstreamClient, path: str, noun: str, query: dict[str, Any] | None = None) -> ToolResult:
    try:
        response = await client.get(path, query=query)
    except UpstreamError as exc:
        return ToolResult.error(f"Failed to list {noun}: {exc}", exc.to_dict())

    body = response.data
    items = body.get("data") if isinstance(body, dict) else body
    count = len(items) if isinstance(items, list) else 0
    summary = f"Found {count} {noun}."
    next_page = body.get("nextPageToken") if isinstance(body, dict) else None
    if next_page:
        summary += f" More available with pageToken={next_page}."
    return ToolResult.structured(response.to_dict(), summary=summary)


def openphone_tools(client: UpstreamClient) -> list[ToolDefinition]:
    """Build the OpenPhone tool definitions bound to *client*."""

    async def list_phone_numbers(args: dict[str, Any]) -> ToolResult:
        return await _list(client, "/phone-numbers", "phone numbers")

    async def list_messages(args: dict[str, Any]) -> ToolResult:
        return await _list(client, "/messages", "messages", _history_query(args))

    async def list_calls(args: dict[str, Any]) -> ToolResult:
        return await _list(client, "/calls", "calls", _history_query(args))

    return [
        ToolDefinition(
            name="list_phone_numbers",
            description="List OpenPhone numbers in the workspace",
            handler=list_phone_numbers,
        ),
        ToolDefinition(
            name="list_messages",
            description="List messages with a participant for a given phoneNumberId",
            input_schema=ToolSchema(fields=_history_fields(required=True)),
            handler=list_messages,
        ),
        ToolDefinition(
            name="list_calls",
            description="List calls, optionally filtered by phoneNumberId and participant",
            input_schema=ToolSchema(fields=_history_fields(required=False)),
            handler=list_calls,
        ),
    ]
