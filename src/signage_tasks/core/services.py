# src/signage_tasks/core/services.py

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any


@dataclass(slots=True, frozen=True)
class AppContext:
    """Process-level facts a task may want (name for messages, where local data lives)."""

    name: str
    data_dir: Path


@dataclass(slots=True, frozen=True)
class OperatingUser:
    """The user on whose behalf tasks run (the scheduler runs as the configured operator)."""

    user_id: int | None
    user_name: str
    is_super_admin: bool = True


class DateService:
    """Wall clock as epoch seconds, plus formatting helpers."""

    def now(self) -> float:
        return time.time()

    @staticmethod
    def to_datetime(ts: float) -> datetime:
        return datetime.fromtimestamp(float(ts), tz=UTC)

    def format(self, ts: float | None, fmt: str = "%Y-%m-%d %H:%M:%S") -> str:
        if ts is None:
            return "never"
        return self.to_datetime(ts).astimezone().strftime(fmt)


class Sanitizer:
    """
    Typed accessors over raw request/console parameters.

    get_* return None when the key is absent, so callers can tell "not provided" from
    "provided as empty".
    """

    def __init__(self, params: Mapping[str, Any] | None = None) -> None:
        self._params: dict[str, Any] = dict(params or {})

    def with_params(self, params: Mapping[str, Any]) -> Sanitizer:
        return Sanitizer(params)

    def has(self, key: str) -> bool:
        return key in self._params

    def get_string(self, key: str, default: str | None = None) -> str | None:
        raw = self._params.get(key)
        if raw is None:
            return default
        return str(raw).strip()

    def get_int(self, key: str, default: int | None = None) -> int | None:
        raw = self._params.get(key)
        if raw is None or str(raw).strip() == "":
            return default
        try:
            return int(str(raw).strip())
        except ValueError:
            return default

    def get_checkbox(self, key: str) -> bool:
        """Checkboxes are absent when unticked; anything truthy counts as ticked."""
        raw = self._params.get(key)
        if raw is None:
            return False
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in {"1", "true", "yes", "y", "on", "checked"}
