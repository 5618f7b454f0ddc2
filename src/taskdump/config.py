# src/taskdump/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every component also accepts an injected settings object (tests).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKDUMP"

DEFAULT_OWNER = "Thibaud"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    """Comma-separated list; owners may contain spaces so only commas split."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.split(",") if p.strip()]
    return parts or list(default)


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local cache ----
    data_dir: Path
    cache_key: str
    schema_version: str

    # ---- Owners ----
    default_owners: list[str]

    # ---- Remote API ----
    api_enabled: bool
    api_base_url: str
    api_token: str | None
    api_timeout_seconds: float

    # ---- Scheduling / capture ----
    carry_over_interval_seconds: float
    apply_session_owner: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdump") or "taskdump"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdump"))
        cache_key = _env(_k("CACHE_KEY"), "taskdump_state_v1").strip() or "taskdump_state_v1"
        schema_version = _env(_k("SCHEMA_VERSION"), "v1").strip() or "v1"

        default_owners = _env_list(_k("OWNERS"), [DEFAULT_OWNER])

        api_enabled = _env_bool(_k("API_ENABLED"), False)
        api_base_url = (_env(_k("API_URL"), "http://localhost:3333") or "").strip().rstrip("/")
        api_token = _first_env(_k("API_TOKEN"), default=None)
        api_timeout_seconds = max(0.5, _env_float(_k("API_TIMEOUT_SECONDS"), 10.0))

        carry_over_interval_seconds = max(
            1.0, _env_float(_k("CARRY_OVER_INTERVAL_SECONDS"), 60.0)
        )
        apply_session_owner = _env_bool(_k("APPLY_SESSION_OWNER"), False)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            cache_key=cache_key,
            schema_version=schema_version,
            default_owners=default_owners,
            api_enabled=api_enabled,
            api_base_url=api_base_url,
            api_token=api_token.strip() if api_token else None,
            api_timeout_seconds=api_timeout_seconds,
            carry_over_interval_seconds=carry_over_interval_seconds,
            apply_session_owner=apply_session_owner,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
