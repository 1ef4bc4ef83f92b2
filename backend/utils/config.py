"""Runtime configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    database_path: Path
    log_level: str
    seed_demo_data: bool
    married_min_age: int
    single_min_age: int
    max_officer_slots: int
    project_id_prefix: str
    request_id_prefix: str
    id_width: int
    session_token_bytes: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive variants with dataclasses.replace."""
    return Settings(
        app_name=_env_str("BTO_APP_NAME", "BTO Allocation Workflow Engine"),
        app_version=_env_str("BTO_APP_VERSION", "1.0.0"),
        database_path=Path(_env_str("BTO_DATABASE_PATH", "data/bto.db")),
        log_level=_env_str("LOG_LEVEL", "INFO"),
        seed_demo_data=_env_bool("BTO_SEED_DEMO_DATA", True),
        married_min_age=_env_int("BTO_MARRIED_MIN_AGE", 21),
        single_min_age=_env_int("BTO_SINGLE_MIN_AGE", 35),
        max_officer_slots=_env_int("BTO_MAX_OFFICER_SLOTS", 10),
        project_id_prefix=_env_str("BTO_PROJECT_ID_PREFIX", "P"),
        request_id_prefix=_env_str("BTO_REQUEST_ID_PREFIX", "R"),
        id_width=_env_int("BTO_ID_WIDTH", 4),
        session_token_bytes=_env_int("BTO_SESSION_TOKEN_BYTES", 32),
    )
