"""Shared CLI output formatters."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from toolbridge.config.models import BridgeSettings

console = Console()
# stdout is reserved for envelopes when serving over stdio.
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def load_settings(config: str | None, *, require_credentials: bool = True) -> BridgeSettings:
    """Load settings or exit with status 1 on a configuration error."""
    from toolbridge.config.loader import SettingsLoader
    from toolbridge.errors import ConfigError

    try:
        return SettingsLoader(Path(config) if config else None).load(
            require_credentials=require_credentials
        )
    except ConfigError as exc:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        raise SystemExit(1) from exc


def print_tools_table(tools: list[dict[str, Any]]) -> None:
    """Pretty-print tool metadata as a table."""
    table = Table(title="Registered Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Required")

    for tool in tools:
        required = tool.get("inputSchema", {}).get("required", [])
        table.add_row(
            tool.get("name", "?"),
            _truncate(tool.get("description", "")),
            ", ".join(required) or "-",
        )

    console.print(table)


def print_tool_result(result: dict[str, Any], *, as_json: bool = False) -> None:
    """Print a ``tools/call`` result."""
    if as_json:
        console.print_json(json.dumps(result, default=str))
        return

    style = "red" if result.get("isError") else "green"
    label = "error" if result.get("isError") else "ok"
    console.print(f"[{style}]{label}[/{style}]")
    for item in result.get("content", []):
        if item.get("type") == "text":
            console.print(item.get("text", ""), markup=False, highlight=False)
        else:
            console.print_json(json.dumps(item.get("data"), default=str))


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
