# src/signage_tasks/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the task scheduler loop in a background thread (optional),
- the admin console REPL in the main thread (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..tasks.task_scheduler import run_task_scheduler

logger = logging.getLogger(__name__)


class SchedulerBackgroundRunner:
    """Runs run_task_scheduler on its own event loop in a daemon thread."""

    def __init__(self, state: AppState) -> None:
        self._state = state
        self._loop = asyncio.new_event_loop()
        self._task: asyncio.Task[None] | None = None
        self._thread = threading.Thread(target=self._run, name="task-scheduler", daemon=True)

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._task = self._loop.create_task(
            run_task_scheduler(
                self._state.task_store,
                self._state.executor,
                interval_seconds=self._state.settings.scheduler_interval_seconds,
            )
        )
        with contextlib.suppress(asyncio.CancelledError):
            self._loop.run_until_complete(self._task)
        self._loop.close()
        logger.info("Scheduler stopped.")

    def start(self) -> None:
        self._thread.start()
        logger.info("Scheduler started (interval=%ss).", self._state.settings.scheduler_interval_seconds)

    def stop(self) -> None:
        if self._task is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._task.cancel)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout=timeout)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    runner: SchedulerBackgroundRunner | None = None
    if settings.scheduler_enabled:
        runner = SchedulerBackgroundRunner(state)
        runner.start()

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError):
        # Not on the main thread, or the platform lacks SIGTERM.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state)
            stop_main.set()
        else:
            logger.info("Console disabled. Running the scheduler only. Press Ctrl+C to stop.")
            stop_main.wait()
    finally:
        if runner is not None:
            runner.stop()
            runner.join(timeout=10.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
