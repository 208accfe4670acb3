"""
Built-in task implementations.

Each one has a `*.task` descriptor in ./descriptors whose "class" is the registry
reference used below.
"""

from __future__ import annotations

from ..task_registry import TaskRegistry
from .cache_purge import CachePurgeTask
from .display_offline import DisplayOfflineCheckTask
from .notification_tidy import NotificationTidyTask

BUILTIN_TASKS = {
    "notification-tidy": NotificationTidyTask,
    "cache-purge": CachePurgeTask,
    "display-offline-check": DisplayOfflineCheckTask,
}


def register_builtin_tasks(registry: TaskRegistry) -> None:
    for ref, cls in BUILTIN_TASKS.items():
        registry.register(ref, cls)
