"""
Tests for settings loading and store selection.
"""

from __future__ import annotations

import pytest

from repositories.client import create_supabase_client
from repositories.config import Settings, load_settings
from repositories.factory import create_store
from repositories.memory_store import InMemoryStore

ENV_VARS = (
    "DEALER_STORE_BACKEND",
    "DEALER_TIMEZONE",
    "DEALER_TREND_MONTHS",
    "DEALER_LOG_LEVEL",
    "DEALER_CORS_ORIGINS",
    "SUPABASE_URL",
    "SUPABASE_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.store_backend == "memory"
    assert settings.timezone_name == "UTC"
    assert settings.trend_months == 6
    assert settings.log_level == "INFO"
    assert settings.cors_origins == ("*",)


def test_values_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEALER_STORE_BACKEND", " Supabase ")
    monkeypatch.setenv("DEALER_TIMEZONE", "Asia/Shanghai")
    monkeypatch.setenv("DEALER_TREND_MONTHS", "12")
    monkeypatch.setenv("DEALER_LOG_LEVEL", "debug")
    monkeypatch.setenv("DEALER_CORS_ORIGINS", "https://a.example, https://b.example,")

    settings = load_settings()

    assert settings.store_backend == "supabase"
    assert str(settings.timezone) == "Asia/Shanghai"
    assert settings.trend_months == 12
    assert settings.log_level == "DEBUG"
    assert settings.cors_origins == ("https://a.example", "https://b.example")


@pytest.mark.parametrize(
    "name, value",
    [
        ("DEALER_STORE_BACKEND", "mysql"),
        ("DEALER_TIMEZONE", "Mars/Olympus_Mons"),
        ("DEALER_TREND_MONTHS", "six"),
        ("DEALER_TREND_MONTHS", "0"),
    ],
)
def test_invalid_values_fail_loudly(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(RuntimeError, match=name):
        load_settings()


def test_memory_backend_is_default_store() -> None:
    assert isinstance(create_store(Settings()), InMemoryStore)


def test_supabase_backend_requires_credentials() -> None:
    with pytest.raises(RuntimeError, match="SUPABASE_URL.*SUPABASE_KEY"):
        create_store(Settings(store_backend="supabase"))

    with pytest.raises(RuntimeError) as excinfo:
        create_supabase_client(Settings(store_backend="supabase", supabase_url="https://x.supabase.co"))
    assert "SUPABASE_KEY" in str(excinfo.value)
    assert "SUPABASE_URL" not in str(excinfo.value)
