# src/signage_tasks/tasks/task_executor.py

from __future__ import annotations

"""
Task executor.

One synchronous run attempt for a task definition:
- load the definition (NotFoundError propagates),
- resolve + construct the implementation (ResolutionError propagates, nothing saved),
- take the advisory run lock (TaskLockedError propagates, nothing saved),
- run it, recording success or the raised error into the definition,
- clear the one-shot run_now flag and save (PersistenceError propagates).

There is no timeout and no retry: a hung implementation blocks the caller, and retry
policy belongs to whoever calls run().
"""

import logging
import os
import socket
import traceback

from ..core.ports import TaskRepo
from .task_contract import TaskEnvironment
from .task_errors import TaskLockedError
from .task_models import LastRunStatus
from .task_registry import TaskRegistry

logger = logging.getLogger(__name__)


def _default_lock_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


class TaskExecutor:
    def __init__(
            self,
            task_store: TaskRepo,
            registry: TaskRegistry,
            env: TaskEnvironment,
            *,
            use_run_lock: bool = True,
            lock_stale_seconds: float = 3600.0,
            lock_owner: str | None = None,
    ) -> None:
        self._store = task_store
        self._registry = registry
        self._env = env
        self._use_run_lock = use_run_lock
        self._lock_stale_seconds = float(lock_stale_seconds)
        self._lock_owner = lock_owner or _default_lock_owner()

    @property
    def env(self) -> TaskEnvironment:
        return self._env

    def run(self, task_id: int) -> None:
        task = self._store.get_by_id(task_id)

        implementation = self._registry.instantiate(task.implementation_ref, self._env, task.options)

        date = self._env.date
        locked = False
        if self._use_run_lock:
            locked = self._store.try_acquire_run_lock(
                int(task_id),
                owner=self._lock_owner,
                now_ts=date.now(),
                stale_after=self._lock_stale_seconds,
            )
            if not locked:
                raise TaskLockedError(f"Task {task.name} [{task_id}] is already running")

        try:
            logger.debug("Running Task %s [%s]", task.name, task.id)

            try:
                start = date.now()
                implementation.run()

                task.last_run_duration = max(0.0, date.now() - start)
                task.last_run_message = implementation.get_run_message()
                task.last_run_status = LastRunStatus.SUCCESS
            except Exception as e:
                logger.error("Task %s [%s] failed: %s", task.name, task.id, e)
                logger.debug("%s", traceback.format_exc())

                task.last_run_message = str(e)
                task.last_run_status = LastRunStatus.ERROR

            task.last_run_dt = date.now()
            task.run_now = False

            self._store.save(task)

            logger.debug("Finished Task %s [%s] status=%s", task.name, task.id, task.last_run_status.value)
        finally:
            if locked:
                self._store.release_run_lock(int(task_id), owner=self._lock_owner)
