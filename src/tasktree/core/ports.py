# src/tasktree/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps persistence swappable and makes testing easier.
"""

from datetime import datetime
from typing import Any, Callable, Iterable, Protocol

EffectHook = Callable[[], Any]
# Side-effect callback run after a command mutates the tree.
# May return an awaitable (async persistence), which is scheduled but not awaited.


class Command(Protocol):
    """One reversible unit of work over a task tree."""

    description: str
    timestamp: datetime

    def execute(self) -> None: ...
    def undo(self) -> None: ...


class ProjectRepo(Protocol):
    """
    Persistence-side port: the external store behind the command hooks.

    Tree shape uses TaskNode portable records; history uses
    {"description": str, "timestamp": ISO-8601 str} records.
    """

    def load_projects(self) -> list[Any]: ...
    def add_project(self, *, project_id: str, name: str, description: str | None = None) -> None: ...

    def insert_task(
            self,
            *,
            project_id: str,
            record: dict[str, Any],
            parent_id: str | None,
            position: int,
    ) -> None: ...

    def update_task_title(self, task_id: str, title: str) -> None: ...
    def set_task_completed(self, task_id: str, completed: bool) -> None: ...
    def delete_task(self, task_id: str) -> None: ...
    def reorder_tasks(self, ordered_ids: Iterable[str]) -> None: ...

    def save_history(self, project_id: str, records: list[dict[str, str]]) -> None: ...
    def load_history(self, project_id: str) -> list[dict[str, str]]: ...
