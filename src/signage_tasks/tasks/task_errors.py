# src/signage_tasks/tasks/task_errors.py

from __future__ import annotations


class TaskError(Exception):
    """Base class for task subsystem errors."""


class NotFoundError(TaskError, LookupError):
    """A referenced row (task definition, entity, descriptor) does not exist."""


class ResolutionError(TaskError):
    """An implementation reference cannot be bound to an executable task."""


class ExecutionError(TaskError):
    """Raised by task implementations to signal a failed run."""


class OptionsValidationError(ExecutionError, ValueError):
    """Task options could not be parsed into the task's typed configuration."""


class PersistenceError(TaskError):
    """Storage failure during load or save."""


class InvalidScheduleError(TaskError, ValueError):
    """A schedule expression is not a valid cron expression."""


class TaskLockedError(TaskError):
    """Another run attempt holds the advisory lock for this task."""
