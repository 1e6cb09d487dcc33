"""``toolbridge tools`` — inspect and invoke the registered tools."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

import click
from rich.markup import escape

from toolbridge.cli_commands._output import (
    console,
    load_settings,
    print_tool_result,
    print_tools_table,
)


@click.group()
def tools() -> None:
    """Inspect and invoke the registered tools."""


@tools.command("list")
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), default=None)
@click.option("--json", "as_json", is_flag=True, help="Print raw tools/list metadata.")
def list_tools(config: str | None, as_json: bool) -> None:
    """List the tools the bridge exposes."""
    from toolbridge.bridge import Bridge

    settings = load_settings(config, require_credentials=False)

    async def _list() -> list[dict[str, Any]]:
        bridge = Bridge(settings)
        try:
            return bridge.registry.list()
        finally:
            await bridge.aclose()

    metadata = asyncio.run(_list())
    if as_json:
        console.print_json(json.dumps(metadata))
        return
    if not metadata:
        console.print("[yellow]No tools registered.[/yellow]")
        return
    print_tools_table(metadata)


@tools.command("call")
@click.argument("name")
@click.option("--args", "arguments", default="{}", help="Tool arguments as a JSON object.")
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), default=None)
@click.option("--json", "as_json", is_flag=True, help="Print the raw result.")
def call_tool(name: str, arguments: str, config: str | None, as_json: bool) -> None:
    """Invoke tool NAME once through a fresh conversation."""
    from toolbridge.bridge import Bridge

    try:
        parsed = json.loads(arguments)
    except ValueError as exc:
        console.print(f"[red]Invalid --args:[/red] {escape(str(exc))}")
        sys.exit(1)

    settings = load_settings(config)

    async def _call() -> dict[str, Any] | None:
        bridge = Bridge(settings)
        conversation = bridge.dispatcher.new_conversation("cli")
        try:
            await bridge.dispatcher.receive(
                conversation,
                {
                    "jsonrpc": "2.0",
                    "id": 0,
                    "method": "initialize",
                    "params": {"clientInfo": {"name": "toolbridge-cli"}},
                },
            )
            return await bridge.dispatcher.receive(
                conversation,
                {
                    "jsonrpc": "2.0",
                    "id": 1,
                    "method": "tools/call",
                    "params": {"name": name, "arguments": parsed},
                },
            )
        finally:
            await bridge.aclose()

    reply = asyncio.run(_call()) or {}
    if "error" in reply:
        error = reply["error"]
        console.print(f"[red]Error {error['code']}:[/red] {escape(error['message'])}")
        sys.exit(1)

    result = reply.get("result", {})
    print_tool_result(result, as_json=as_json)
    if result.get("isError"):
        sys.exit(1)
