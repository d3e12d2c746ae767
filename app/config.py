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


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


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
class IngestionSettings:
    """
    Runtime settings for identity CSV ingestion.

    Durations are kept in milliseconds to match the environment variables;
    use the ``*_seconds`` properties when sleeping or passing timeouts.
    """

    batch_size: int = 1000
    max_retries: int = 3
    retry_delay_ms: int = 1000
    fetch_timeout_ms: int = 30000
    error_log_dir: str = "logs/errors"
    error_queue_size: int = 10000
    log_validation_errors: bool = True

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0

    @property
    def fetch_timeout_seconds(self) -> float:
        return self.fetch_timeout_ms / 1000.0


@lru_cache(maxsize=1)
def get_ingestion_settings() -> IngestionSettings:
    """
    Return cached ingestion settings from environment variables.
    """

    return IngestionSettings(
        batch_size=max(1, _get_int_env("INGESTION_BATCH_SIZE", 1000)),
        max_retries=max(1, _get_int_env("INGESTION_MAX_RETRIES", 3)),
        retry_delay_ms=max(0, _get_int_env("INGESTION_RETRY_DELAY", 1000)),
        fetch_timeout_ms=max(1, _get_int_env("INGESTION_TIMEOUT", 30000)),
        error_log_dir=_get_str_env("INGESTION_ERROR_LOG_DIR", "logs/errors"),
        error_queue_size=max(1, _get_int_env("INGESTION_ERROR_QUEUE_SIZE", 10000)),
        log_validation_errors=_get_bool_env("INGESTION_LOG_VALIDATION_ERRORS", True),
    )
