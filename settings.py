from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_MONGO_URI_ENV = "MONGO_URI"
_MONGO_DB_ENV = "MONGO_DB_NAME"
_MONGO_COLLECTION_ENV = "MONGO_COLLECTION"
_MONGO_TIMEOUT_ENV = "MONGO_TIMEOUT_MS"
_MOCK_PATH_ENV = "MOCK_MEASUREMENTS_PATH"
_API_HOST_ENV = "API_HOST"
_API_PORT_ENV = "API_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    mongo_uri: Optional[str]
    mongo_db_name: str
    mongo_collection: str
    mongo_timeout_ms: int
    mock_measurements_path: Optional[str]
    api_host: str
    api_port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        mongo_uri=_read_optional_env(_MONGO_URI_ENV, None),
        mongo_db_name=_read_str_env(_MONGO_DB_ENV, "sensors"),
        mongo_collection=_read_str_env(_MONGO_COLLECTION_ENV, "measurements"),
        mongo_timeout_ms=_read_positive_int(_MONGO_TIMEOUT_ENV, 5000),
        mock_measurements_path=_read_optional_env(_MOCK_PATH_ENV, "./tmp/measurements.json"),
        api_host=_read_str_env(_API_HOST_ENV, "0.0.0.0"),
        api_port=_read_positive_int(_API_PORT_ENV, 8000),
        log_level=_read_log_level("INFO"),
    )
