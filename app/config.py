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


@dataclass(frozen=True)
class InspectionSettings:
    """
    Checklist auto-save behaviour.
    """

    autosave_debounce_seconds: float = 1.5
    upsert_batch_size: int = 500


@dataclass(frozen=True)
class ApiClientSettings:
    """
    HTTP behaviour for clients that save answers through the API.
    """

    base_url: str = "http://127.0.0.1:8000"
    timeout_seconds: float = 10.0
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@lru_cache(maxsize=1)
def get_inspection_settings() -> InspectionSettings:
    """
    Return cached checklist settings from environment variables.
    """

    return InspectionSettings(
        autosave_debounce_seconds=max(0.0, _get_float_env("AUTOSAVE_DEBOUNCE_SECONDS", 1.5)),
        upsert_batch_size=max(1, _get_int_env("CONFORMANCE_UPSERT_BATCH_SIZE", 500)),
    )


@lru_cache(maxsize=1)
def get_api_client_settings() -> ApiClientSettings:
    """
    Return cached API client settings from environment variables.
    """

    return ApiClientSettings(
        base_url=_get_str_env("SITEPROOF_API_BASE_URL", "http://127.0.0.1:8000").rstrip("/"),
        timeout_seconds=max(1.0, _get_float_env("SITEPROOF_API_TIMEOUT_SECONDS", 10.0)),
        max_retries=max(0, _get_int_env("SITEPROOF_API_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(0.1, _get_float_env("SITEPROOF_API_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("SITEPROOF_API_BACKOFF_MULTIPLIER", 2.0)),
    )
