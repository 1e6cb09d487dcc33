"""Pydantic models for the bridge configuration file."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from toolbridge.protocols.dispatcher import DEFAULT_PROTOCOL_VERSION

Transport = Literal["stdio", "sse", "websocket"]


class UpstreamSettings(BaseModel):
    """Where tool handlers send their HTTP calls, and with which credential."""

    base_url: str = "https://api.openphone.com/v1"
    token: str = ""
    auth_header: str = "Authorization"
    auth_scheme: str = "Bearer"
    timeout: float | None = Field(default=None, gt=0)


class ServerSettings(BaseModel):
    """Transport selection and listener options."""

    transport: Transport = "stdio"
    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=0, le=65535)
    shared_secret: str | None = None
    public_url: str | None = None
    stream_path: str = "/sse"
    message_path: str = "/messages"
    websocket_path: str = "/mcp"
    keepalive_interval: float = Field(default=20.0, gt=0)


class TelemetrySettings(BaseModel):
    """Optional tracing configuration."""

    enabled: bool = False
    otlp_endpoint: str | None = None
    export_to_console: bool = False


class BridgeSettings(BaseModel):
    """Top-level configuration, read once at start-up.

    Example YAML::

        name: openphone-bridge
        upstream:
          base_url: https://api.openphone.com/v1
          token: ${OPENPHONE_API_KEY}
        server:
          transport: sse
          port: 3000
          shared_secret: ${BRIDGE_SECRET}
    """

    name: str = "toolbridge"
    instructions: str | None = None
    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)
