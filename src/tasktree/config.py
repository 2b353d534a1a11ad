# src/tasktree/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Every value has a usable default; nothing is required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKTREE"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


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

    # ---- History ----
    max_history_size: int
    history_display_count: int

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "tasktree").strip() or "tasktree"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        max_history_size = _env_int(_k("MAX_HISTORY_SIZE"), 20, minimum=1)
        history_display_count = _env_int(_k("HISTORY_DISPLAY_COUNT"), 10, minimum=1)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/tasktree"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "tasktree.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            max_history_size=max_history_size,
            history_display_count=history_display_count,
            data_dir=data_dir,
            db_path=db_path,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
