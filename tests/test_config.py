from __future__ import annotations

import pytest

from app.config import get_registry_http_settings, get_registry_settings, get_sync_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_registry_settings.cache_clear()
    get_registry_http_settings.cache_clear()
    get_sync_settings.cache_clear()
    yield
    get_registry_settings.cache_clear()
    get_registry_http_settings.cache_clear()
    get_sync_settings.cache_clear()


def _set_registry_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGISTRY_BASE_URL", "https://registry.example.org/")
    monkeypatch.setenv("REGISTRY_USERNAME", "sync-bot")
    monkeypatch.setenv("REGISTRY_PASSWORD", "secret")
    monkeypatch.setenv("REGISTRY_PROGRAM_ID", "prgMalaria01")
    monkeypatch.setenv("REGISTRY_PROGRAM_STAGE_ID", "stgEntomo01")


def test_registry_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_registry_env(monkeypatch)
    monkeypatch.setenv("REGISTRY_EVENT_STATUS", "active")
    monkeypatch.delenv("REGISTRY_HOUSE_NUMBER_ATTRIBUTE", raising=False)

    settings = get_registry_settings()

    assert settings.api_url == "https://registry.example.org/api"
    assert settings.event_status == "ACTIVE"
    assert settings.house_number_attribute == "House Number"


def test_missing_registry_settings_are_listed_together(monkeypatch: pytest.MonkeyPatch) -> None:
    _set_registry_env(monkeypatch)
    monkeypatch.delenv("REGISTRY_PASSWORD")
    monkeypatch.setenv("REGISTRY_PROGRAM_STAGE_ID", "   ")

    with pytest.raises(RuntimeError) as exc_info:
        get_registry_settings()

    assert "REGISTRY_PASSWORD" in str(exc_info.value)
    assert "REGISTRY_PROGRAM_STAGE_ID" in str(exc_info.value)


def test_http_settings_fall_back_and_clamp(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REGISTRY_HTTP_TIMEOUT_SECONDS", "not-a-number")
    monkeypatch.setenv("REGISTRY_HTTP_MAX_RETRIES", "-4")
    monkeypatch.setenv("REGISTRY_HTTP_BACKOFF_MULTIPLIER", "0.2")

    settings = get_registry_http_settings()

    assert settings.timeout_seconds == 30.0
    assert settings.max_retries == 0
    assert settings.backoff_multiplier == 1.0


def test_sync_year_range(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNC_MIN_YEAR", "2024")
    monkeypatch.setenv("SYNC_MAX_YEAR", "2010")

    settings = get_sync_settings()

    assert (settings.min_year, settings.max_year) == (2024, 2024)
