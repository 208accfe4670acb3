# src/signage_tasks/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """
    Administrative/operational state of a task definition.

    Execution outcome is tracked separately (LastRunStatus); the executor never
    changes this field.
    """

    IDLE = "idle"
    RUNNING = "running"
    DISABLED = "disabled"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.IDLE
        try:
            return cls(raw)
        except ValueError:
            return cls.IDLE


class LastRunStatus(StrEnum):
    NOT_RUN = "not_run"
    SUCCESS = "success"
    ERROR = "error"

    @classmethod
    def from_db(cls, raw: str | None) -> LastRunStatus:
        if not raw:
            return cls.NOT_RUN
        try:
            return cls(raw)
        except ValueError:
            return cls.NOT_RUN


@dataclass(slots=True)
class TaskDefinition:
    """A schedulable unit of work, its options and its last-run outcome."""

    name: str
    schedule: str

    # Registry reference ("class" in descriptor files) and the descriptor it came from.
    implementation_ref: str | None = None
    config_file: str | None = None

    options: dict[str, str] = field(default_factory=dict)

    is_active: bool = False
    run_now: bool = False
    status: TaskStatus = TaskStatus.IDLE

    last_run_status: LastRunStatus = LastRunStatus.NOT_RUN
    last_run_dt: float | None = None
    last_run_duration: float | None = None
    last_run_message: str | None = None

    id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "schedule": self.schedule,
            "implementation_ref": self.implementation_ref,
            "config_file": self.config_file,
            "options": dict(self.options),
            "is_active": self.is_active,
            "run_now": self.run_now,
            "status": self.status.value,
            "last_run_status": self.last_run_status.value,
            "last_run_dt": self.last_run_dt,
            "last_run_duration": self.last_run_duration,
            "last_run_message": self.last_run_message,
        }


@dataclass(slots=True, frozen=True)
class TaskDescriptor:
    """
    Self-description of a pluggable task type, read from a `*.task` JSON file.

    `file` is location-qualified ("builtin/<name>.task" or "custom/<name>.task") and is
    what gets stored on the TaskDefinition as `config_file`.
    """

    name: str
    implementation_ref: str
    options: dict[str, str]
    file: str
