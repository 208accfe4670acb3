# src/signage_tasks/tasks/task_api.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..core.services import Sanitizer
from ..core.state import AppState
from .task_models import LastRunStatus, TaskDefinition, TaskStatus
from .task_registry import apply_descriptor
from .task_schedule import next_run_date, validate_schedule

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApiResult:
    """What an administrative operation hands back to its UI (toast/alert + payload)."""

    http_status: int
    message: str = ""
    id: int | None = None
    data: Any = None


def _config_locked(state: AppState) -> bool:
    return bool(getattr(state.settings, "task_config_locked", False))


def list_tasks(
    state: AppState,
    *,
    name: str | None = None,
    is_active: bool | None = None,
    sort: str = "name",
    start: int = 0,
    length: int | None = None,
) -> ApiResult:
    """Grid data: each row carries next_run_dt and whether it may be edited/deleted."""
    tasks = state.task_store.query(name=name, is_active=is_active, sort=sort, start=start, length=length)
    now_ts = state.env.date.now()
    editable = not _config_locked(state)

    rows: list[dict[str, Any]] = []
    for task in tasks:
        row = task.to_dict()
        row["next_run_dt"] = next_run_date(task, now_ts)
        row["editable"] = editable
        rows.append(row)

    return ApiResult(
        http_status=200,
        data={"records_total": state.task_store.count_last(), "rows": rows},
    )


def available_tasks(state: AppState) -> ApiResult:
    """Descriptors an administrator can add. Empty while task config is locked."""
    descriptors = [] if _config_locked(state) else state.catalog.discover()
    return ApiResult(
        http_status=200,
        data=[
            {"name": d.name, "class": d.implementation_ref, "options": dict(d.options), "file": d.file}
            for d in descriptors
        ],
    )


def add_task(state: AppState, params: Mapping[str, Any]) -> ApiResult:
    """Create a definition from a descriptor file. New tasks start inactive and idle."""
    san = Sanitizer(params)
    name = san.get_string("name") or ""
    schedule = validate_schedule(san.get_string("schedule"))

    task = TaskDefinition(
        name=name,
        schedule=schedule,
        config_file=san.get_string("file"),
        status=TaskStatus.IDLE,
        last_run_status=LastRunStatus.NOT_RUN,
        is_active=False,
        run_now=False,
    )
    apply_descriptor(task, state.catalog.load(task.config_file))
    state.task_store.save(task)
    logger.info("Task added id=%s name=%s ref=%s", task.id, task.name, task.implementation_ref)

    return ApiResult(http_status=201, message=f"Added {task.name}", id=task.id, data=task)


def get_task(state: AppState, task_id: int) -> ApiResult:
    """Edit-form data: the definition with descriptor defaults filled in."""
    task = state.task_store.get_by_id(task_id)
    apply_descriptor(task, state.catalog.load(task.config_file))
    return ApiResult(http_status=200, id=task.id, data=task)


def edit_task(state: AppState, task_id: int, params: Mapping[str, Any]) -> ApiResult:
    """
    Update name, schedule, active flag and option values.

    Only options the definition already knows (stored or descriptor default) are
    updated, and only when a value is provided.
    """
    san = Sanitizer(params)

    task = state.task_store.get_by_id(task_id)
    apply_descriptor(task, state.catalog.load(task.config_file))
    task.name = san.get_string("name") or task.name
    task.schedule = validate_schedule(san.get_string("schedule", task.schedule))
    task.is_active = san.get_checkbox("isActive")

    for option in list(task.options):
        provided = san.get_string(option)
        if provided is not None:
            logger.debug("Setting %s to %s", option, provided)
            task.options[option] = provided

    logger.debug("New options = %r", task.options)

    state.task_store.save(task)

    return ApiResult(http_status=200, message=f"Edited {task.name}", id=task.id, data=task)


def delete_task(state: AppState, task_id: int) -> ApiResult:
    task = state.task_store.get_by_id(task_id)
    state.task_store.delete(task)
    return ApiResult(http_status=204, message=f"Deleted {task.name}")


def run_now(state: AppState, task_id: int) -> ApiResult:
    """Set the one-shot force flag; the scheduler picks it up on its next tick."""
    task = state.task_store.get_by_id(task_id)
    task.run_now = True
    state.task_store.save(task)
    return ApiResult(http_status=204, message=f"Run Now set on {task.name}")


def run_task(state: AppState, task_id: int) -> None:
    """Manual single run. No body: re-read the definition to see the outcome."""
    state.executor.run(task_id)
