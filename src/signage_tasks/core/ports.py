# src/signage_tasks/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The executor, scheduler and toolbar depend on Protocols instead of concrete
implementations. This keeps storage swappable and makes testing easier.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from ..tasks.task_models import TaskDefinition


class TaskRepo(Protocol):
    # Executor API
    def get_by_id(self, task_id: int) -> TaskDefinition: ...
    def save(self, definition: TaskDefinition) -> int: ...
    def delete(self, definition: TaskDefinition) -> None: ...

    # Administrative listing / scheduler API
    def query(
            self,
            *,
            name: str | None = None,
            is_active: bool | None = None,
            sort: str = "name",
            start: int = 0,
            length: int | None = None,
    ) -> list[TaskDefinition]: ...
    def count_last(self) -> int: ...

    # Advisory run lock
    def try_acquire_run_lock(
            self,
            task_id: int,
            *,
            owner: str,
            now_ts: float,
            stale_after: float,
    ) -> bool: ...
    def release_run_lock(self, task_id: int, *, owner: str) -> None: ...


class PreferenceRepo(Protocol):
    """Generic per-user preference storage; values are opaque strings."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...


@dataclass(slots=True, frozen=True)
class MediaFilter:
    name: str = ""
    tags: str = ""
    type: str = ""
    retired: bool = False
    assignable: bool = True


@dataclass(slots=True)
class MediaPage:
    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0


class MediaSearch(Protocol):
    def search(self, media_filter: MediaFilter, start: int, length: int) -> MediaPage: ...
