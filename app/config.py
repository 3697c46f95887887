"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class RegistryHTTPSettings:
    """
    Shared HTTP behavior for registry calls.

    Retries apply to idempotent GET lookups only.
    """

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class RegistrySettings:
    """
    Connection and program settings for the external registry.
    """

    base_url: str
    username: str
    password: str
    program_id: str
    program_stage_id: str
    house_number_attribute: str = "House Number"
    event_status: str = "COMPLETED"

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/api"


@dataclass(frozen=True)
class SyncSettings:
    """
    Batch-level limits for a sync request.
    """

    min_year: int = 2020
    max_year: int = 2100


_REQUIRED_REGISTRY_ENV = (
    "REGISTRY_BASE_URL",
    "REGISTRY_USERNAME",
    "REGISTRY_PASSWORD",
    "REGISTRY_PROGRAM_ID",
    "REGISTRY_PROGRAM_STAGE_ID",
)


@lru_cache(maxsize=1)
def get_registry_settings() -> RegistrySettings:
    """
    Return registry settings from environment variables.

    Raises RuntimeError naming every missing required variable.
    """

    values = {name: _get_optional_str_env(name) for name in _REQUIRED_REGISTRY_ENV}
    missing = [name for name, value in values.items() if value is None]
    if missing:
        raise RuntimeError(
            "Registry configuration incomplete. Missing: " + ", ".join(missing) + "."
        )

    return RegistrySettings(
        base_url=values["REGISTRY_BASE_URL"] or "",
        username=values["REGISTRY_USERNAME"] or "",
        password=values["REGISTRY_PASSWORD"] or "",
        program_id=values["REGISTRY_PROGRAM_ID"] or "",
        program_stage_id=values["REGISTRY_PROGRAM_STAGE_ID"] or "",
        house_number_attribute=_get_str_env("REGISTRY_HOUSE_NUMBER_ATTRIBUTE", "House Number"),
        event_status=_get_str_env("REGISTRY_EVENT_STATUS", "COMPLETED").upper(),
    )


@lru_cache(maxsize=1)
def get_registry_http_settings() -> RegistryHTTPSettings:
    """
    Return registry HTTP settings from environment variables.
    """

    return RegistryHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("REGISTRY_HTTP_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("REGISTRY_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("REGISTRY_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("REGISTRY_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("REGISTRY_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_sync_settings() -> SyncSettings:
    min_year = _get_int_env("SYNC_MIN_YEAR", 2020)
    return SyncSettings(
        min_year=min_year,
        max_year=max(min_year, _get_int_env("SYNC_MAX_YEAR", 2100)),
    )
