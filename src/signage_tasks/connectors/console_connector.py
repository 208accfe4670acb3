# src/signage_tasks/connectors/console_connector.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit", "/q")
NOT_A_COMMAND = "Commands start with '/'. Use /help to list available commands."


def _stamp(text: str) -> str:
    return f"[{datetime.now().astimezone():%Y-%m-%d %H:%M:%S}] {text}"


def _say(text: str) -> None:
    print(_stamp(text), flush=True)


def _read_line(prompt: str) -> str | None:
    """One line from stdin; None means the operator left (EOF or Ctrl+C)."""
    try:
        return input(prompt).strip()
    except EOFError:
        logger.info("Console EOF received, exiting.")
    except KeyboardInterrupt:
        logger.info("Console KeyboardInterrupt, exiting.")
        print()
    return None


def handle_line(state: AppState, line: str, emit: Callable[[str], None] | None = None) -> str:
    """Reply for one console line. A crashing command is logged and reported, never raised."""
    try:
        reply = command_registry.handle(state, line, emit=emit)
    except Exception:
        logger.exception("Command handler crashed for %r", line)
        return "Internal error while handling a command. See the log for details."
    return NOT_A_COMMAND if reply is None else reply


def run_console_loop(state: AppState) -> None:
    app_name = str(getattr(state.settings, "app_name", "signage"))
    logger.info("Admin console started for %s.", app_name)
    _say(f"[{app_name}] Task administration. Use /help for commands, /exit to quit.\n")

    while True:
        line = _read_line(f"{app_name}> ")
        if line is None:
            break
        if not line:
            continue
        if line.lower() in EXIT_COMMANDS:
            logger.info("Console exit command received.")
            break
        # /run streams a progress line before the final reply.
        _say(handle_line(state, line, emit=_say))

    logger.info("Admin console finished.")
