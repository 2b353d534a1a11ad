# src/tasktree/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL.
History logs are written back to the repo on exit.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..logging_setup import setup_logging
from ..store.project_store import StoreEvent, StoreEventType
from .bootstrap import create_initial_state, persist_histories
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _log_event(event: StoreEvent) -> None:
    if event.type is StoreEventType.STATS_CHANGED:
        logger.debug("Stats changed: %s", event.data.to_dict())
    else:
        logger.debug("Store event: %s", event.type)


def run_console_loop(state: AppState) -> None:
    app_name = str(getattr(state.settings, "app_name", "tasktree"))
    logger.info("Console started (projects=%d).", len(state.store.get_projects()))
    print(f"[{app_name}] Use /help for commands, /exit to quit.")

    while True:
        try:
            line = input(f"{app_name}> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = command_registry.handle(state, line)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help to list them."
        print(reply)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)
    unsubscribe = state.store.subscribe(_log_event)

    try:
        run_console_loop(state)
    finally:
        unsubscribe()
        persist_histories(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
