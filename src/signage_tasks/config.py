# src/signage_tasks/config.py

"""
Process settings for the task runner, read from SIGNAGE_* environment variables.

A local .env is honoured (python-dotenv, never overriding the real environment).
Nothing is read at import time: the first get_settings() call loads and caches the
Settings, and the composition root hands them to whoever needs them.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "SIGNAGE"

BUILTIN_TASKS_DIR = Path(__file__).resolve().parent / "tasks" / "builtin" / "descriptors"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _raw(suffix: str) -> str | None:
    """Stripped value of SIGNAGE_<suffix>; None when unset or blank."""
    v = os.getenv(_k(suffix))
    if v is None or not v.strip():
        return None
    return v.strip()


def _env(suffix: str, default: str) -> str:
    return _raw(suffix) or default


def _env_bool(suffix: str, default: bool) -> bool:
    raw = _raw(suffix)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on", "checked"}


def _env_seconds(suffix: str, default: float) -> float:
    """Positive number of seconds; unparsable or non-positive values fall back to default."""
    raw = _raw(suffix)
    try:
        value = float(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value > 0 else default


def _env_path(suffix: str, default: Path) -> Path:
    raw = _raw(suffix)
    return default if raw is None else Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    db_path: Path

    # ---- Task descriptors ----
    builtin_tasks_dir: Path
    custom_tasks_dir: Path
    task_config_locked: bool

    # ---- Scheduler / executor ----
    scheduler_enabled: bool
    scheduler_interval_seconds: float
    run_lock_enabled: bool
    run_lock_stale_seconds: float

    # ---- Console ----
    console_enabled: bool
    operator_user: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env("APP_NAME", "signage")
        log_level = _env("LOG_LEVEL", "INFO")

        data_dir = _env_path("DATA_DIR", Path(".local/signage"))
        db_path = _env_path("DB_PATH", data_dir / "signage.sqlite3")

        builtin_tasks_dir = _env_path("BUILTIN_TASKS_DIR", BUILTIN_TASKS_DIR)
        custom_tasks_dir = _env_path("CUSTOM_TASKS_DIR", data_dir / "custom")
        task_config_locked = _env_bool("TASK_CONFIG_LOCKED", False)

        scheduler_enabled = _env_bool("SCHEDULER_ENABLED", True)
        scheduler_interval_seconds = _env_seconds("SCHEDULER_INTERVAL_SECONDS", 60.0)
        run_lock_enabled = _env_bool("RUN_LOCK_ENABLED", True)
        run_lock_stale_seconds = _env_seconds("RUN_LOCK_STALE_SECONDS", 3600.0)

        console_enabled = _env_bool("CONSOLE_ENABLED", True)
        operator_user = _env("OPERATOR_USER", "admin")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            db_path=db_path,
            builtin_tasks_dir=builtin_tasks_dir,
            custom_tasks_dir=custom_tasks_dir,
            task_config_locked=task_config_locked,
            scheduler_enabled=scheduler_enabled,
            scheduler_interval_seconds=scheduler_interval_seconds,
            run_lock_enabled=run_lock_enabled,
            run_lock_stale_seconds=run_lock_stale_seconds,
            console_enabled=console_enabled,
            operator_user=operator_user,
        )


@functools.cache
def get_settings() -> Settings:
    load_dotenv(override=False)
    return Settings.from_env()
