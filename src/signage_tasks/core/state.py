# src/signage_tasks/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..toolbar.toolbar_state import ToolbarState

if TYPE_CHECKING:
    from ..storage.sqlite import SqliteStorage
    from ..tasks.task_contract import TaskEnvironment
    from ..tasks.task_executor import TaskExecutor
    from ..tasks.task_registry import DescriptorCatalog, TaskRegistry
    from ..tasks.task_store import TaskStore
    from ..toolbar.media_library import MediaLibrary
    from ..toolbar.preference_store import PreferenceStore


@dataclass
class AppState:
    """
    Everything the process wires together once at startup.

    Passed explicitly to the admin API, commands and connectors; there is no
    module-level instance.
    """

    settings: Any

    storage: SqliteStorage
    task_store: TaskStore
    registry: TaskRegistry
    catalog: DescriptorCatalog
    env: TaskEnvironment
    executor: TaskExecutor

    preferences: PreferenceStore
    media_library: MediaLibrary

    def toolbar_for(self, user_id: str, **kwargs: Any) -> ToolbarState:
        """
        Designer toolbar for one user, with its saved tabs restored.

        kwargs go to ToolbarState (modules, container_width, ...).
        """
        toolbar = ToolbarState(self.preferences.for_user(user_id), self.media_library, **kwargs)
        toolbar.load_prefs()
        return toolbar
