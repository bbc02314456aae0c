"""
naws_import/config.py

Environment-driven configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from naws_import.domain.meeting_import import MappingOptions


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
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
class ImportSettings:
    """
    Runtime settings for meeting submission.
    """

    batch_size: int = 5
    batch_delay_seconds: float = 0.5
    max_stored_meetings: int = 10
    max_stored_errors: int = 50
    log_row_errors: bool = True


@dataclass(frozen=True)
class BMLTServerSettings:
    """
    Connection and HTTP behavior settings for the BMLT root server.
    """

    base_url: str | None = None
    username: str | None = None
    password: str | None = None
    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 10.0


@lru_cache(maxsize=1)
def get_import_settings() -> ImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return ImportSettings(
        batch_size=max(1, _get_int_env("NAWS_IMPORT_BATCH_SIZE", 5)),
        batch_delay_seconds=max(0.0, _get_float_env("NAWS_IMPORT_BATCH_DELAY_SECONDS", 0.5)),
        max_stored_meetings=max(0, _get_int_env("NAWS_IMPORT_MAX_STORED_MEETINGS", 10)),
        max_stored_errors=max(1, _get_int_env("NAWS_IMPORT_MAX_STORED_ERRORS", 50)),
        log_row_errors=_get_bool_env("NAWS_IMPORT_LOG_ROW_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_mapping_options() -> MappingOptions:
    """
    Return cached meeting defaults from environment variables.
    """

    return MappingOptions(
        default_duration=_get_str_env("NAWS_IMPORT_DEFAULT_DURATION", "01:00"),
        default_latitude=_get_float_env("NAWS_IMPORT_DEFAULT_LATITUDE", 0.0),
        default_longitude=_get_float_env("NAWS_IMPORT_DEFAULT_LONGITUDE", 0.0),
        default_published=_get_bool_env("NAWS_IMPORT_DEFAULT_PUBLISHED", True),
    )


@lru_cache(maxsize=1)
def get_bmlt_server_settings() -> BMLTServerSettings:
    """
    Return cached BMLT server settings from environment variables.
    """

    return BMLTServerSettings(
        base_url=_get_optional_str_env("BMLT_SERVER_URL"),
        username=_get_optional_str_env("BMLT_USERNAME"),
        password=_get_optional_str_env("BMLT_PASSWORD"),
        timeout_seconds=max(1.0, _get_float_env("BMLT_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("BMLT_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("BMLT_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("BMLT_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.0, _get_float_env("BMLT_HTTP_RATE_LIMIT_PER_SECOND", 10.0)),
    )
