# src/signage_tasks/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- builds the storage service, stores, registry and the TaskEnvironment,
- wires everything into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.services import AppContext, DateService, OperatingUser, Sanitizer
from ..core.state import AppState
from ..storage.entities import EntityFactories
from ..storage.pool import SqlitePool
from ..storage.sqlite import SqliteStorage
from ..tasks.builtin import register_builtin_tasks
from ..tasks.task_contract import TaskEnvironment
from ..tasks.task_executor import TaskExecutor
from ..tasks.task_registry import DescriptorCatalog, TaskRegistry
from ..tasks.task_store import TaskStore
from ..toolbar.media_library import MediaLibrary
from ..toolbar.preference_store import PreferenceStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.custom_tasks_dir.mkdir(parents=True, exist_ok=True)


def build_registry(*, load_plugins: bool = True) -> TaskRegistry:
    registry = TaskRegistry()
    register_builtin_tasks(registry)
    if load_plugins:
        registry.load_plugins()
    return registry


def create_initial_state(*, settings=None, registry: TaskRegistry | None = None,
                         date: DateService | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    storage = SqliteStorage(settings.db_path)
    task_store = TaskStore(storage)
    factories = EntityFactories.from_storage(storage)
    if registry is None:
        registry = build_registry()

    catalog = DescriptorCatalog(settings.builtin_tasks_dir, settings.custom_tasks_dir)

    env = TaskEnvironment(
        logger=logging.getLogger("signage_tasks.task"),
        app=AppContext(name=settings.app_name, data_dir=settings.data_dir),
        sanitizer=Sanitizer(),
        user=OperatingUser(user_id=None, user_name=settings.operator_user),
        config=settings,
        date=date or DateService(),
        pool=SqlitePool(storage),
        store=storage,
        factories=factories,
    )

    executor = TaskExecutor(
        task_store,
        registry,
        env,
        use_run_lock=settings.run_lock_enabled,
        lock_stale_seconds=settings.run_lock_stale_seconds,
    )

    state = AppState(
        settings=settings,
        storage=storage,
        task_store=task_store,
        registry=registry,
        catalog=catalog,
        env=env,
        executor=executor,
        preferences=PreferenceStore(storage),
        media_library=MediaLibrary(factories.media),
    )
    logger.info("State ready: %d task implementation(s) registered", len(registry.refs()))
    return state
