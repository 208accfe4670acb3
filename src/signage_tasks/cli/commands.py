# src/signage_tasks/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Callable
from typing import Any, cast

from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_errors import TaskError

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the admin console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Task errors (not found, bad schedule, unresolvable implementation) become the reply.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except (TaskError, ValueError) as e:
            logger.debug("Command /%s failed: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _kv(args: list[str]) -> dict[str, str]:
    """Parse key=value arguments; bare words are ignored."""
    out: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key:
            out[key] = value
    return out


def _task_id(args: list[str]) -> int:
    if not args:
        raise ValueError("A task id is required.")
    try:
        return int(args[0])
    except ValueError:
        raise ValueError(f"Not a task id: {args[0]}") from None


def _format_row(state: AppState, row: dict[str, Any]) -> str:
    date = state.env.date
    active = "on " if row["is_active"] else "off"
    forced = " [run now]" if row["run_now"] else ""
    return (
        f"  #{row['id']} {row['name']} ({active}) schedule={row['schedule']!r} "
        f"last={row['last_run_status']} at {date.format(row['last_run_dt'])} "
        f"next={date.format(row['next_run_dt'])}{forced}"
    )


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks          -> list all tasks
    /tasks <text>   -> list tasks whose name contains text
    """
    result = task_api.list_tasks(state, name=" ".join(args) or None)
    rows = result.data["rows"]
    if not rows:
        return "No tasks."
    lines = [f"Tasks ({result.data['records_total']}):"]
    lines.extend(_format_row(state, r) for r in rows)
    return "\n".join(lines)


def cmd_available(state: AppState, args: list[str]) -> str:
    result = task_api.available_tasks(state)
    if not result.data:
        return "No task types available (none installed, or task config is locked)."
    lines = ["Available task types:"]
    for d in result.data:
        opts = ", ".join(f"{k}={v}" for k, v in d["options"].items()) or "no options"
        lines.append(f"  {d['file']}: {d['name']} ({opts})")
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    task = task_api.get_task(state, _task_id(args)).data
    date = state.env.date
    lines = [
        f"Task #{task.id}: {task.name}",
        f"  implementation: {task.implementation_ref} ({task.config_file})",
        f"  schedule: {task.schedule}",
        f"  active: {task.is_active}  run now: {task.run_now}  status: {task.status.value}",
        f"  last run: {task.last_run_status.value} at {date.format(task.last_run_dt)}"
        f" ({task.last_run_duration if task.last_run_duration is not None else '-'}s)",
    ]
    if task.last_run_message:
        lines.append(f"  message: {task.last_run_message}")
    for k, v in task.options.items():
        lines.append(f"  option {k} = {v}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add file=builtin/x.task name="..." schedule="*/5 * * * *" """
    params = _kv(args)
    for required in ("file", "name", "schedule"):
        if not params.get(required):
            return f"Usage: /add file=<descriptor> name=<name> schedule=<cron> (missing {required})"
    result = task_api.add_task(state, params)
    return f"{result.message} (#{result.id})"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id> [name=...] [schedule=...] [isActive=0|1] [<option>=<value> ...]

    The console has no form: a missing isActive keeps the task's current flag.
    """
    task_id = _task_id(args)
    params = _kv(args[1:])
    if "isActive" not in params:
        params["isActive"] = "1" if state.task_store.get_by_id(task_id).is_active else "0"
    result = task_api.edit_task(state, task_id, params)
    return result.message


def cmd_delete(state: AppState, args: list[str]) -> str:
    task_id = _task_id(args)
    result = task_api.delete_task(state, task_id)
    return result.message


def cmd_runnow(state: AppState, args: list[str]) -> str:
    task_id = _task_id(args)
    result = task_api.run_now(state, task_id)
    return result.message


def cmd_run(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _task_id(args)
    if emit:
        emit(f"Running task #{task_id}...")
    task_api.run_task(state, task_id)
    task = state.task_store.get_by_id(task_id)
    return f"{task.name}: {task.last_run_status.value}. {task.last_run_message or ''}".strip()


def cmd_toolbar(state: AppState, args: list[str]) -> str:
    """
    /toolbar <user_id>         -> show the user's saved designer tabs
    /toolbar <user_id> clear   -> drop the user's custom tabs
    """
    if not args:
        return "Usage: /toolbar <user_id> [clear]"
    toolbar = state.toolbar_for(args[0])
    if args[1:] == ["clear"]:
        toolbar.delete_all_tabs()
        return f"Toolbar tabs cleared for user {args[0]}."

    lines = [f"Toolbar of user {args[0]}:"]
    for index, item in enumerate(toolbar.menu_items):
        opened = " (open)" if index == toolbar.opened_menu else ""
        lines.append(f"  [{index}] {item.title}{opened}")
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks [name filter].", aliases=["ls"])
registry.register("available", cmd_available, help_text="List installable task types.")
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register(
    "add", cmd_add, help_text="Add a task: /add file=<descriptor> name=<name> schedule=<cron>."
)
registry.register(
    "edit",
    cmd_edit,
    help_text="Edit a task: /edit <id> [name=..] [schedule=..] [isActive=0|1] [<option>=..].",
)
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("runnow", cmd_runnow, help_text="Flag a task to run on the next scheduler tick.")
registry.register("run", cmd_run, help_text="Run a task immediately in this process: /run <id>.")
registry.register(
    "toolbar", cmd_toolbar, help_text="Show or clear a user's designer toolbar: /toolbar <user_id> [clear]."
)
