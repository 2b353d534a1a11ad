# src/tasktree/commands/effects.py

"""
Side-effect hooks around pure commands.

`EffectfulCommand` wraps a structural command and runs an optional hook after
each execute()/undo(). Hooks inform the outside world (persistence,
notification) and are never reversed by undo.

A hook may be async: the returned awaitable is scheduled on the running event
loop and not awaited. The tree is already consistent by the time it runs; a
failing background call is only logged.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from ..core.ports import Command, EffectHook

logger = logging.getLogger(__name__)

# Strong references so fire-and-forget tasks are not garbage-collected mid-flight.
_background: set[asyncio.Task[Any]] = set()


def _log_background_failure(task: asyncio.Task[Any]) -> None:
    _background.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Background effect failed: %s", task.get_name(), exc_info=exc)


def _fire(hook: EffectHook | None, label: str) -> None:
    if hook is None:
        return
    result = hook()
    if not inspect.isawaitable(result):
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.warning("No running event loop; dropping async effect for %s", label)
        if inspect.iscoroutine(result):
            result.close()
        return

    task = loop.create_task(_await(result), name=f"effect:{label}")
    _background.add(task)
    task.add_done_callback(_log_background_failure)


async def _await(awaitable: Any) -> Any:
    return await awaitable


class EffectfulCommand:
    """
    Decorator that sequences external hooks around a pure command.

    Hooks run after every execute()/undo() of the inner command, including calls
    where the inner command changed nothing (a DeleteTaskCommand whose target was
    not a direct child, for instance). Hooks that must not act in that case check
    the inner command's captured state, e.g. `DeleteTaskCommand.deleted is None`.
    """

    def __init__(
        self,
        inner: Command,
        *,
        on_execute: EffectHook | None = None,
        on_undo: EffectHook | None = None,
    ) -> None:
        self.inner = inner
        self.on_execute = on_execute
        self.on_undo = on_undo

    @property
    def description(self) -> str:
        return self.inner.description

    @property
    def timestamp(self):
        return self.inner.timestamp

    def execute(self) -> None:
        self.inner.execute()
        _fire(self.on_execute, self.description)

    def undo(self) -> None:
        self.inner.undo()
        _fire(self.on_undo, self.description)

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"EffectfulCommand({self.inner!r})"


def with_effects(
    command: Command,
    *,
    on_execute: EffectHook | None = None,
    on_undo: EffectHook | None = None,
) -> Command:
    if on_execute is None and on_undo is None:
        return command
    return EffectfulCommand(command, on_execute=on_execute, on_undo=on_undo)


def pending_effects() -> int:
    """Number of background effects still in flight (diagnostics/tests)."""
    return len(_background)
