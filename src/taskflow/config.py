# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Every consumer also accepts an injected settings object (tests use SimpleNamespace).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


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

    # ---- Task API ----
    api_url: str
    api_token: str | None
    connect_timeout: float
    read_timeout: float

    # ---- Failure policy ----
    fallback_enabled: bool
    rollback_failed_updates: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    snapshot_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow").strip() or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        api_url = _env(_k("API_URL"), "").strip()
        api_token = _env(_k("API_TOKEN"), "").strip() or None

        connect_timeout = _env_float(_k("CONNECT_TIMEOUT_SECONDS"), 5.0)
        read_timeout = _env_float(_k("READ_TIMEOUT_SECONDS"), 10.0)

        fallback_enabled = _env_bool(_k("FALLBACK_ENABLED"), True)
        rollback_failed_updates = _env_bool(_k("ROLLBACK_FAILED_UPDATES"), False)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        snapshot_path = _env_path(_k("SNAPSHOT_PATH"), data_dir / "snapshot.json")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_url=api_url,
            api_token=api_token,
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            fallback_enabled=fallback_enabled,
            rollback_failed_updates=rollback_failed_updates,
            data_dir=data_dir,
            snapshot_path=snapshot_path,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, read once (loads .env on first use)."""
    global _settings
    if _settings is None:
        load_dotenv(override=False)
        _settings = Settings.from_env()
    return _settings
