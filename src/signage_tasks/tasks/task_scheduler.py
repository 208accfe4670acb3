# src/signage_tasks/tasks/task_scheduler.py

from __future__ import annotations

"""
Task scheduler.

A small polling loop that:
- lists active task definitions,
- picks the due ones (run_now set, or next cron fire reached),
- hands each to the executor in a worker thread, one at a time.

The executor is synchronous and knows nothing about schedules; this loop is the
"external caller" that decides when a run attempt happens.
"""

import asyncio
import logging
import time
from collections.abc import Callable

from ..core.ports import TaskRepo
from .task_errors import TaskLockedError
from .task_executor import TaskExecutor
from .task_models import TaskDefinition, TaskStatus
from .task_schedule import is_due

logger = logging.getLogger(__name__)


def due_tasks(task_store: TaskRepo, now_ts: float) -> list[TaskDefinition]:
    """Active, non-disabled definitions that should run now; forced ones first."""
    out = [
        t
        for t in task_store.query(is_active=True, sort="id")
        if t.status != TaskStatus.DISABLED and is_due(t, now_ts)
    ]
    out.sort(key=lambda t: (not t.run_now, t.id or 0))
    return out


def run_due_tasks(
        task_store: TaskRepo,
        executor: TaskExecutor,
        *,
        now_ts: float | None = None,
) -> list[int]:
    """
    One scheduler tick, synchronous. Returns the ids that were run.

    Errors from one task (missing implementation, lock held, storage failure) are
    logged and do not stop the remaining tasks.
    """
    now_ts = time.time() if now_ts is None else now_ts

    try:
        tasks = due_tasks(task_store, now_ts)
    except Exception:
        logger.exception("listing due tasks failed")
        return []

    ran: list[int] = []
    for task in tasks:
        if task.id is None:
            continue
        try:
            executor.run(task.id)
            ran.append(task.id)
        except TaskLockedError:
            logger.info("Task %s [%s] skipped: already running", task.name, task.id)
        except Exception:
            logger.exception("run attempt failed task_id=%s name=%s", task.id, task.name)
    return ran


async def run_task_scheduler(
        task_store: TaskRepo,
        executor: TaskExecutor,
        *,
        interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
) -> None:
    """
    Simple polling scheduler.

    Every interval_seconds run one tick (see run_due_tasks) in a worker thread so that
    long-running tasks don't block the event loop.

    To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        now_ts = clock()
        ran = await asyncio.to_thread(run_due_tasks, task_store, executor, now_ts=now_ts)
        if ran:
            logger.info("Scheduler tick ran %d task(s): %s", len(ran), ran)
        await asyncio.sleep(sleep_s)
