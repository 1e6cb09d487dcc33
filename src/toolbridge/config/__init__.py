"""Configuration — settings models and the YAML/environment loader."""

from toolbridge.config.loader import SettingsLoader
from toolbridge.config.models import BridgeSettings, ServerSettings, TelemetrySettings, UpstreamSettings

__all__ = [
    "BridgeSettings",
    "ServerSettings",
    "SettingsLoader",
    "TelemetrySettings",
    "UpstreamSettings",
]
