from __future__ import annotations

import pytest
from pydantic import ValidationError

from racetiming.settings import Settings


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("RT_PAGE_SIZE", "5")
    monkeypatch.setenv("RT_LOG_LEVEL", "debug")
    monkeypatch.setenv("RT_CORS_ORIGINS", "https://a.example, https://b.example")

    s = Settings(_env_file=None)

    assert s.RT_PAGE_SIZE == 5
    assert s.RT_LOG_LEVEL == "DEBUG"
    assert s.cors_origins == ["https://a.example", "https://b.example"]


def test_cors_defaults_to_any_origin(monkeypatch) -> None:
    monkeypatch.setenv("RT_CORS_ORIGINS", " ")

    assert Settings(_env_file=None).cors_origins == ["*"]


@pytest.mark.parametrize("name, value", [("RT_LOG_LEVEL", "chatty"), ("RT_PAGE_SIZE", "0")])
def test_invalid_settings_are_rejected(monkeypatch, name, value) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)
