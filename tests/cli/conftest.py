from __future__ import annotations

import pytest

from toolbridge.config.loader import ENV_OVERRIDES


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for variable, _ in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)
