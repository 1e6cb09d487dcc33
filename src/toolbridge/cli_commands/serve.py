"""``toolbridge serve`` — run the bridge on the configured transport."""

from __future__ import annotations

import sys

import click
from rich.markup import escape

from toolbridge.cli_commands._output import configure_logging, err_console, load_settings


@click.command()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "--transport",
    "-t",
    type=click.Choice(["stdio", "sse", "websocket"]),
    default=None,
    help="Override the configured transport.",
)
@click.option("--host", default=None, help="Listen address for HTTP transports.")
@click.option("--port", "-p", type=int, default=None, help="Listen port for HTTP transports.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default="info",
    help="Log level (logs always go to stderr).",
)
def serve(
    config: str | None,
    transport: str | None,
    host: str | None,
    port: int | None,
    log_level: str,
) -> None:
    """Serve the tool catalog until the client disconnects or the process is stopped."""
    configure_logging(log_level)
    settings = load_settings(config)

    if transport:
        settings.server.transport = transport  # type: ignore[assignment]
    if host:
        settings.server.host = host
    if port is not None:
        settings.server.port = port

    if settings.telemetry.enabled:
        from toolbridge.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(
                service_name=settings.name,
                export_to_console=settings.telemetry.export_to_console,
                otlp_endpoint=settings.telemetry.otlp_endpoint,
            )
        except ImportError as exc:
            err_console.print(f"[red]Telemetry error:[/red] {escape(str(exc))}")
            sys.exit(1)

    from toolbridge.bridge import Bridge

    Bridge(settings).run(settings.server.transport, log_level=log_level)
