from __future__ import annotations

import pytest
from pydantic import ValidationError

from smssync.config import Settings, SmsSyncConfig, get_settings


def test_defaults() -> None:
    config = SmsSyncConfig()

    assert config.endpoint == "smssync"
    assert config.secret == "smssync"
    assert config.reply is True
    assert config.inline_errors is True
    assert config.path == "/smssync"


def test_config_is_frozen() -> None:
    config = SmsSyncConfig()

    with pytest.raises(ValidationError):
        config.secret = "other"  # type: ignore[misc]


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SMSSYNC_ENDPOINT", "/sync")
    monkeypatch.setenv("SMSSYNC_SECRET", "")
    monkeypatch.setenv("SMSSYNC_REPLY", "false")
    monkeypatch.setenv("SMSSYNC_INLINE_ERRORS", "0")
    get_settings.cache_clear()

    try:
        config = get_settings().smssync()
    finally:
        get_settings.cache_clear()

    assert config == SmsSyncConfig(endpoint="/sync", secret="", reply=False, inline_errors=False)
    assert config.path == "/sync"
