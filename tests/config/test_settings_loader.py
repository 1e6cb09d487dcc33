"""Tests for SettingsLoader."""

from __future__ import annotations

from pathlib import Path

import pytest

from toolbridge.config.loader import ENV_OVERRIDES, SettingsLoader
from toolbridge.errors import ConfigError

VALID_YAML = """\
name: openphone-bridge
instructions: Call list_calls before list_messages.
upstream:
  base_url: https://api.openphone.com/v1
  token: ${TEST_BRIDGE_TOKEN}
  timeout: 15
server:
  transport: sse
  port: 8080
  shared_secret: hunter2
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for variable, _ in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "bridge.yaml"
    path.write_text(text)
    return path


class TestSettingsLoaderFile:
    def test_load_valid(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_BRIDGE_TOKEN", "tok-123")
        settings = SettingsLoader(_write(tmp_path, VALID_YAML)).load()

        assert settings.name == "openphone-bridge"
        assert settings.instructions == "Call list_calls before list_messages."
        assert settings.upstream.token == "tok-123"
        assert settings.upstream.timeout == 15
        assert settings.server.transport == "sse"
        assert settings.server.port == 8080
        assert settings.server.shared_secret == "hunter2"
        assert settings.server.host == "127.0.0.1"

    def test_unset_variable_means_missing_token(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Missing upstream token"):
            SettingsLoader(_write(tmp_path, VALID_YAML)).load()

    def test_missing_token_allowed_without_credentials(self, tmp_path: Path) -> None:
        settings = SettingsLoader(_write(tmp_path, VALID_YAML)).load(require_credentials=False)
        assert settings.server.transport == "sse"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            SettingsLoader(tmp_path / "absent.yaml").load()

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="YAML parse error"):
            SettingsLoader(_write(tmp_path, "server: [unclosed")).load()

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="must be a mapping"):
            SettingsLoader(_write(tmp_path, "- a\n- b\n")).load()

    def test_schema_violation(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLBRIDGE_UPSTREAM_TOKEN", "t")
        with pytest.raises(ConfigError, match="transport"):
            SettingsLoader(_write(tmp_path, "server:\n  transport: carrier-pigeon\n")).load()

    def test_empty_file_uses_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLBRIDGE_UPSTREAM_TOKEN", "t")
        settings = SettingsLoader(_write(tmp_path, "")).load()
        assert settings.name == "toolbridge"
        assert settings.server.transport == "stdio"


class TestSettingsLoaderEnvironment:
    def test_environment_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENPHONE_API_KEY", "op-key")
        monkeypatch.setenv("TOOLBRIDGE_TRANSPORT", "websocket")
        monkeypatch.setenv("PORT", "9000")

        settings = SettingsLoader().load()

        assert settings.upstream.token == "op-key"
        assert settings.upstream.base_url == "https://api.openphone.com/v1"
        assert settings.server.transport == "websocket"
        assert settings.server.port == 9000

    def test_bridge_token_beats_openphone_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENPHONE_API_KEY", "op-key")
        monkeypatch.setenv("TOOLBRIDGE_UPSTREAM_TOKEN", "bridge-key")
        assert SettingsLoader().load().upstream.token == "bridge-key"

    def test_environment_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_BRIDGE_TOKEN", "file-token")
        monkeypatch.setenv("TOOLBRIDGE_SHARED_SECRET", "env-secret")
        monkeypatch.setenv("TOOLBRIDGE_HOST", "0.0.0.0")

        settings = SettingsLoader(_write(tmp_path, VALID_YAML)).load()

        assert settings.server.shared_secret == "env-secret"
        assert settings.server.host == "0.0.0.0"
        assert settings.server.port == 8080

    def test_invalid_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOOLBRIDGE_UPSTREAM_TOKEN", "t")
        monkeypatch.setenv("PORT", "not-a-port")
        with pytest.raises(ConfigError):
            SettingsLoader().load()

    def test_no_token_anywhere(self) -> None:
        with pytest.raises(ConfigError, match="OPENPHONE_API_KEY"):
            SettingsLoader().load()
