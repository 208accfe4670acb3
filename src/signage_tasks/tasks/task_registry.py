# src/signage_tasks/tasks/task_registry.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from importlib.metadata import entry_points
from pathlib import Path

from .task_contract import TaskEnvironment, TaskFactory, TaskImplementation
from .task_errors import NotFoundError, ResolutionError
from .task_models import TaskDefinition, TaskDescriptor

logger = logging.getLogger(__name__)

PLUGIN_ENTRY_POINT_GROUP = "signage_tasks.tasks"

BUILTIN = "builtin"
CUSTOM = "custom"


class TaskRegistry:
    """
    Explicit mapping from implementation reference to task factory.

    Populated at startup (built-ins + plugin entry points); resolution is a lookup,
    never a dynamic import of whatever string is stored in the database.
    """

    def __init__(self) -> None:
        self._factories: dict[str, TaskFactory] = {}

    def register(self, ref: str, factory: TaskFactory, *, replace: bool = False) -> None:
        key = ref.strip()
        if not key:
            raise ValueError("implementation reference is required")
        if key in self._factories and not replace:
            raise ValueError(f"Task implementation already registered: {key}")
        self._factories[key] = factory
        logger.debug("Registered task implementation %s", key)

    def task(self, ref: str) -> Callable[[TaskFactory], TaskFactory]:
        """Decorator form of register()."""

        def deco(factory: TaskFactory) -> TaskFactory:
            self.register(ref, factory)
            return factory

        return deco

    def __contains__(self, ref: object) -> bool:
        return isinstance(ref, str) and ref.strip() in self._factories

    def refs(self) -> list[str]:
        return sorted(self._factories)

    def resolve(self, ref: str | None) -> TaskFactory:
        key = (ref or "").strip()
        factory = self._factories.get(key)
        if factory is None:
            raise ResolutionError(f"No task implementation registered for {ref!r}")
        return factory

    def instantiate(
        self,
        ref: str | None,
        env: TaskEnvironment,
        options: Mapping[str, str],
    ) -> TaskImplementation:
        """Resolve and construct; a failing constructor is a ResolutionError too."""
        factory = self.resolve(ref)
        try:
            return factory(env, dict(options))
        except Exception as e:
            raise ResolutionError(f"Cannot instantiate task implementation {ref!r}: {e}") from e

    def load_plugins(self, group: str = PLUGIN_ENTRY_POINT_GROUP) -> int:
        """
        Register factories advertised by installed distributions.

        Entry point name = reference, value = factory callable.
        """
        loaded = 0
        for ep in entry_points(group=group):
            try:
                factory = ep.load()
            except Exception:
                logger.exception("Failed to load task plugin %s (%s)", ep.name, ep.value)
                continue
            self.register(ep.name, factory, replace=True)
            loaded += 1
        if loaded:
            logger.info("Loaded %d task plugin(s) from %s", loaded, group)
        return loaded


class DescriptorCatalog:
    """
    Discovers `*.task` descriptor files in the built-in and custom directories.

    Used by the "add task" surface and to refresh a definition's reference/defaults
    when it is edited. Never consulted by the executor.
    """

    def __init__(self, builtin_dir: str | Path, custom_dir: str | Path | None = None) -> None:
        self._dirs: dict[str, Path] = {BUILTIN: Path(builtin_dir)}
        if custom_dir is not None:
            self._dirs[CUSTOM] = Path(custom_dir)

    @staticmethod
    def _read(path: Path, file_ref: str) -> TaskDescriptor:
        try:
            raw = json.loads(path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            raise NotFoundError(f"Cannot read task descriptor {file_ref}: {e}") from e
        if not isinstance(raw, dict) or not raw.get("class"):
            raise NotFoundError(f"Task descriptor {file_ref} has no class")

        options_any = raw.get("options") or {}
        options = (
            {str(k): "" if v is None else str(v) for k, v in options_any.items()}
            if isinstance(options_any, dict)
            else {}
        )
        return TaskDescriptor(
            name=str(raw.get("name") or path.stem),
            implementation_ref=str(raw["class"]).strip(),
            options=options,
            file=file_ref,
        )

    def discover(self) -> list[TaskDescriptor]:
        out: list[TaskDescriptor] = []
        for location, directory in self._dirs.items():
            if not directory.is_dir():
                continue
            for path in sorted(directory.glob("*.task")):
                file_ref = f"{location}/{path.name}"
                try:
                    out.append(self._read(path, file_ref))
                except NotFoundError:
                    logger.warning("Skipping unreadable task descriptor %s", path, exc_info=True)
        return out

    def load(self, file_ref: str | None) -> TaskDescriptor:
        """Load a descriptor by its location-qualified name ("builtin/x.task")."""
        if not file_ref:
            raise NotFoundError("No config file recorded for task. Please recreate.")
        location, _, name = file_ref.partition("/")
        directory = self._dirs.get(location)
        if directory is None or not name or "/" in name or name in (".", ".."):
            raise NotFoundError(f"Unknown task descriptor location: {file_ref}")
        path = directory / name
        if not path.is_file():
            raise NotFoundError(f"Task descriptor not found: {file_ref}")
        return self._read(path, file_ref)


def apply_descriptor(definition: TaskDefinition, descriptor: TaskDescriptor) -> TaskDefinition:
    """
    Point the definition at the descriptor's implementation and fill in default options.

    Stored option values win over defaults; defaults only fill keys not yet present.
    """
    definition.implementation_ref = descriptor.implementation_ref
    definition.config_file = descriptor.file
    merged = dict(descriptor.options)
    merged.update(definition.options)
    definition.options = merged
    return definition
