# tests/conftest.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from signage_tasks.cli.bootstrap import build_registry, create_initial_state
from signage_tasks.config import BUILTIN_TASKS_DIR
from signage_tasks.core.state import AppState
from signage_tasks.tasks.task_models import TaskDefinition
from signage_tasks.tasks.task_registry import TaskRegistry

from .fakes import FailingTask, FakeClock, RecordingTask, broken_factory


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the task modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the process environment and .env files.
    """
    return SimpleNamespace(
        app_name="signage-test",
        log_level="DEBUG",
        # Paths (tmp per test run)
        data_dir=tmp_path,
        db_path=tmp_path / "signage.sqlite3",
        builtin_tasks_dir=BUILTIN_TASKS_DIR,
        custom_tasks_dir=tmp_path / "custom",
        # Behaviour
        task_config_locked=False,
        scheduler_enabled=False,
        scheduler_interval_seconds=0.01,
        run_lock_enabled=True,
        run_lock_stale_seconds=3600.0,
        console_enabled=False,
        operator_user="tester",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(1_700_000_000.0)


@pytest.fixture()
def registry() -> TaskRegistry:
    """Built-ins plus the fake implementations; entry point plugins are not loaded."""
    RecordingTask.instances.clear()
    reg = build_registry(load_plugins=False)
    reg.register("fake-ok", RecordingTask)
    reg.register("fake-fail", FailingTask)
    reg.register("fake-broken", broken_factory)
    return reg


@pytest.fixture()
def state(settings: SimpleNamespace, registry: TaskRegistry, clock: FakeClock) -> AppState:
    """
    AppState wired with the fake clock and fake task implementations.

    NOTE: storage stays real SQLite (in tmp_path) because store behaviour is part of
    what we want to test.
    """
    st = create_initial_state(settings=settings, registry=registry, date=clock)
    custom = Path(settings.custom_tasks_dir)
    for ref, options in (
        ("fake-ok", {"foo": "bar"}),
        ("fake-fail", {"error": "disk full"}),
    ):
        (custom / f"{ref}.task").write_text(
            json.dumps({"name": ref.replace("-", " ").title(), "class": ref, "options": options}),
            encoding="utf-8",
        )
    return st


@pytest.fixture()
def make_task(state: AppState):
    """Insert a definition straight into the store and return it (id populated)."""

    def _make(
        name: str = "Nightly",
        *,
        ref: str | None = "fake-ok",
        schedule: str = "0 * * * *",
        options: dict[str, str] | None = None,
        **fields,
    ) -> TaskDefinition:
        task = TaskDefinition(
            name=name,
            schedule=schedule,
            implementation_ref=ref,
            config_file=f"custom/{ref}.task" if ref in ("fake-ok", "fake-fail") else None,
            options=dict(options or {}),
            **fields,
        )
        state.task_store.save(task)
        return task

    return _make
