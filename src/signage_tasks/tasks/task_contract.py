# src/signage_tasks/tasks/task_contract.py

"""
Contract between the executor and pluggable task implementations.

An implementation is built once per run attempt from a TaskEnvironment (all shared
collaborators, bundled and immutable) and the definition's string options. It exposes
one entry point, run(), and a summary via get_run_message() once run() has returned
or raised.
"""

from __future__ import annotations

import dataclasses
import logging
import typing
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from ..core.services import AppContext, DateService, OperatingUser, Sanitizer
from ..storage.entities import EntityFactories
from ..storage.pool import SqlitePool
from ..storage.sqlite import SqliteStorage
from .task_errors import OptionsValidationError

_TRUE = {"1", "true", "yes", "y", "on", "checked"}
_FALSE = {"0", "false", "no", "n", "off", ""}


@dataclass(slots=True, frozen=True)
class TaskEnvironment:
    """Built once per process and passed by reference into every run attempt."""

    logger: logging.Logger
    app: AppContext
    sanitizer: Sanitizer
    user: OperatingUser
    config: Any
    date: DateService
    pool: SqlitePool
    store: SqliteStorage
    factories: EntityFactories


class TaskImplementation(Protocol):
    def run(self) -> None: ...
    def get_run_message(self) -> str | None: ...


TaskFactory = Callable[[TaskEnvironment, Mapping[str, str]], TaskImplementation]


def _convert(key: str, raw: str, tp: Any) -> Any:
    if tp is bool:
        val = raw.strip().lower()
        if val in _TRUE:
            return True
        if val in _FALSE:
            return False
        raise OptionsValidationError(f"Option {key}: expected a boolean, got {raw!r}")
    if tp in (int, float):
        try:
            return tp(raw.strip())
        except ValueError:
            raise OptionsValidationError(
                f"Option {key}: expected {tp.__name__}, got {raw!r}"
            ) from None
    return raw


def parse_options(options_class: type[Any], options: Mapping[str, str]) -> Any:
    """
    Build a typed options dataclass from the stored string map.

    Each field reads the option named by metadata["option"] (default: the field name).
    Missing options fall back to field defaults; a missing option without default, or a
    value that does not convert, raises OptionsValidationError.
    """
    hints = typing.get_type_hints(options_class)
    kwargs: dict[str, Any] = {}
    for f in dataclasses.fields(options_class):
        key = f.metadata.get("option", f.name)
        raw = options.get(key)
        if raw is None:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise OptionsValidationError(f"Option {key} is required")
            continue
        kwargs[f.name] = _convert(key, str(raw), hints.get(f.name, str))
    return options_class(**kwargs)


class BaseTask:
    """
    Convenience base for implementations.

    Subclasses set `options_class` to a dataclass and implement execute(); options are
    parsed before execute() runs so bad configuration fails fast with a clear message.
    """

    options_class: ClassVar[type[Any] | None] = None

    def __init__(self, env: TaskEnvironment, options: Mapping[str, str]) -> None:
        self.env = env
        self.raw_options: dict[str, str] = dict(options)
        self.log = env.logger
        self._lines: list[str] = []
        self._finished = False

    def report(self, line: str) -> None:
        self._lines.append(line)

    def execute(self, options: Any) -> str | None:
        raise NotImplementedError

    def run(self) -> None:
        try:
            opts = (
                parse_options(self.options_class, self.raw_options)
                if self.options_class is not None
                else self.raw_options
            )
            summary = self.execute(opts)
            if summary:
                self.report(summary)
        finally:
            self._finished = True

    def get_run_message(self) -> str | None:
        if not self._finished:
            return None
        return "\n".join(self._lines)
