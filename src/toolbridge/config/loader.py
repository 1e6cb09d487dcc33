"""Settings loading — YAML file, then environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from toolbridge.config.models import BridgeSettings
from toolbridge.errors import ConfigError

# Applied in order, so later entries win (TOOLBRIDGE_UPSTREAM_TOKEN beats
# OPENPHONE_API_KEY).
ENV_OVERRIDES: tuple[tuple[str, tuple[str, str]], ...] = (
    ("OPENPHONE_API_KEY", ("upstream", "token")),
    ("TOOLBRIDGE_UPSTREAM_TOKEN", ("upstream", "token")),
    ("TOOLBRIDGE_UPSTREAM_BASE_URL", ("upstream", "base_url")),
    ("TOOLBRIDGE_SHARED_SECRET", ("server", "shared_secret")),
    ("TOOLBRIDGE_TRANSPORT", ("server", "transport")),
    ("TOOLBRIDGE_HOST", ("server", "host")),
    ("PORT", ("server", "port")),
)


class SettingsLoader:
    """Load and validate :class:`BridgeSettings`.

    Usage::

        settings = SettingsLoader(Path("bridge.yaml")).load()
        settings = SettingsLoader().load()              # environment only
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    def load(self, *, require_credentials: bool = True) -> BridgeSettings:
        """Read YAML (if any), interpolate env vars, apply overrides, validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before YAML parsing.

        Raises:
            ConfigError: On unreadable files, YAML errors, schema violations,
                or a missing upstream token when *require_credentials* is set.
        """
        data = self._read_file(self._path) if self._path is not None else {}
        self._apply_env(data)

        try:
            settings = BridgeSettings.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(str(exc)) from exc

        token = settings.upstream.token.strip()
        # An unset ${VAR} survives expandvars verbatim.
        if require_credentials and (not token or token.startswith("$")):
            raise ConfigError(
                "Missing upstream token: set upstream.token, TOOLBRIDGE_UPSTREAM_TOKEN "
                "or OPENPHONE_API_KEY"
            )
        return settings

    @staticmethod
    def _read_file(path: Path) -> dict[str, Any]:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read {path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        try:
            data: Any = yaml.safe_load(expanded)
        except yaml.YAMLError as exc:
            raise ConfigError(f"YAML parse error: {exc}") from exc

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration YAML must be a mapping")
        return data

    @staticmethod
    def _apply_env(data: dict[str, Any]) -> None:
        for variable, (section, key) in ENV_OVERRIDES:
            value = os.environ.get(variable)
            if not value:
                continue
            target = data.setdefault(section, {})
            if not isinstance(target, dict):
                raise ConfigError(f"'{section}' must be a mapping")
            target[key] = value
