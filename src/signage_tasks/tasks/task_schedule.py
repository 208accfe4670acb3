# src/signage_tasks/tasks/task_schedule.py

from __future__ import annotations

import logging
from datetime import UTC, datetime

from croniter import croniter

from .task_errors import InvalidScheduleError
from .task_models import TaskDefinition

logger = logging.getLogger(__name__)


def validate_schedule(expression: str | None) -> str:
    """Return the trimmed cron expression or raise InvalidScheduleError."""
    expr = (expression or "").strip()
    if not expr or not croniter.is_valid(expr):
        raise InvalidScheduleError(f"Invalid schedule: {expression!r}")
    return expr


def next_run_date(definition: TaskDefinition, now_ts: float) -> float | None:
    """
    Next time the definition is due, as epoch seconds.

    - never run -> due now
    - otherwise -> next cron fire strictly after last_run_dt
    - invalid schedule -> None (never due by schedule; run_now still works)
    """
    if not definition.last_run_dt:
        return float(now_ts)

    expr = (definition.schedule or "").strip()
    if not expr or not croniter.is_valid(expr):
        logger.warning("Task %s [%s] has an invalid schedule %r", definition.name, definition.id, expr)
        return None

    base = datetime.fromtimestamp(float(definition.last_run_dt), tz=UTC)
    return float(croniter(expr, base).get_next(float))


def is_due(definition: TaskDefinition, now_ts: float) -> bool:
    if definition.run_now:
        return True
    nxt = next_run_date(definition, now_ts)
    return nxt is not None and nxt <= now_ts
