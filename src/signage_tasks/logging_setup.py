# src/signage_tasks/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Loggers whose records also go to the per-run task log.
TASK_LOGGERS = ("signage_tasks.task", "signage_tasks.tasks.task_executor")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the admin console readable while an operator types commands:
    the background scheduler ticks only surface at WARNING+, and anything
    outside signage_tasks (including captured py.warnings) only at ERROR+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith("signage_tasks."):
            return record.levelno >= logging.ERROR
        if record.name.startswith("signage_tasks.tasks.task_scheduler"):
            return record.levelno >= logging.WARNING
        return True


class _TaskRunFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(TASK_LOGGERS)


def _handler(handler: logging.Handler, level: int, *filters: logging.Filter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    for f in filters:
        handler.addFilter(f)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/signage",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with:
    - stderr: filtered for interactive use
    - signage.log: everything at file_level
    - tasks.log: task implementations and the executor only, tracebacks included

    Call this ONCE, before the first record is emitted. Existing root handlers are replaced.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_handler(logging.StreamHandler(sys.stderr), console_level, _ConsoleNoiseFilter()))
    root.addHandler(
        _handler(logging.FileHandler(str(log_dir / "signage.log"), encoding="utf-8"), file_level)
    )
    root.addHandler(
        _handler(
            logging.FileHandler(str(log_dir / "tasks.log"), encoding="utf-8"),
            logging.DEBUG,
            _TaskRunFilter(),
        )
    )

    logging.captureWarnings(True)
