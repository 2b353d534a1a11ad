# src/tasktree/store/project_store.py

"""
Project store: the ChangeBus-connected facade callers talk to.

Holds every project (root task trees) together with one HistoryEngine per
project. Statistics are derived on demand, never cached.

The store is an ordinary object owned by the composition root (see
cli/bootstrap.py); tests construct as many as they need.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from ..core.ports import Command
from ..core.task_node import TaskNode
from ..history.engine import (
    DEFAULT_MAX_HISTORY_SIZE,
    HistoryEngine,
    HistoryRecord,
    parse_history_records,
)
from ..observer.bus import ChangeBus

logger = logging.getLogger(__name__)


class StoreEventType(StrEnum):
    PROJECT_CHANGED = "PROJECT_CHANGED"
    HISTORY_CHANGED = "HISTORY_CHANGED"
    STATS_CHANGED = "STATS_CHANGED"


@dataclass(frozen=True, slots=True)
class Statistics:
    total_tasks: int
    completed_tasks: int
    percentage: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total_tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "percentage": self.percentage,
        }


@dataclass(frozen=True, slots=True)
class StoreEvent:
    type: StoreEventType
    data: Any = None


@dataclass(slots=True)
class Project:
    id: str
    name: str
    tasks: list[TaskNode] = field(default_factory=list)
    description: str | None = None
    owner_id: str | None = None
    # Display-only log from a previous session (see HistoryEngine.import_history).
    saved_history: list[HistoryRecord] = field(default_factory=list)

    def find_task(self, task_id: str) -> TaskNode | None:
        for root in self.tasks:
            found = root.find_by_id(task_id)
            if found is not None:
                return found
        return None

    def find_parent(self, task_id: str) -> TaskNode | None:
        """Parent group of `task_id`; None for root tasks and unknown ids."""
        for root in self.tasks:
            parent = root.find_parent_of(task_id)
            if parent is not None:
                return parent
        return None

    def to_portable(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "owner_id": self.owner_id,
            "tasks": [t.to_portable() for t in self.tasks],
        }

    @classmethod
    def from_portable(
        cls,
        raw: Mapping[str, Any],
        saved_history: Iterable[Mapping[str, Any]] | None = None,
    ) -> Project:
        return cls(
            id=str(raw["id"]),
            name=str(raw.get("name") or ""),
            tasks=[TaskNode.from_portable(t) for t in raw.get("tasks") or []],
            description=raw.get("description"),
            owner_id=raw.get("owner_id"),
            saved_history=parse_history_records(saved_history or []),
        )


def _percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up, not banker's rounding.
    return int(math.floor(100 * completed / total + 0.5))


class ProjectStore(ChangeBus[StoreEvent]):
    def __init__(self, *, max_history_size: int = DEFAULT_MAX_HISTORY_SIZE) -> None:
        super().__init__()
        self._max_history_size = max_history_size
        self._projects: list[Project] = []
        self._histories: dict[str, HistoryEngine] = {}
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _new_history(self, project: Project) -> HistoryEngine:
        engine = HistoryEngine(self._max_history_size)
        if project.saved_history:
            engine.import_history(project.saved_history)
        return engine

    def initialize(self, projects: Iterable[Project]) -> None:
        """
        Load projects into the store.

        The first call builds a fresh history per project. Later calls
        resynchronise: the incoming list replaces the stored one, but a
        project id that was already known keeps its HistoryEngine, so a
        background refresh does not wipe an in-flight undo/redo session.
        """
        incoming = list(projects)
        if not self._initialized:
            self._projects = incoming
            self._histories = {p.id: self._new_history(p) for p in incoming}
            self._initialized = True
            logger.info("ProjectStore initialized projects=%d", len(incoming))
        else:
            histories: dict[str, HistoryEngine] = {}
            for p in incoming:
                existing = self._histories.get(p.id)
                histories[p.id] = existing if existing is not None else self._new_history(p)
            reused = sum(1 for p in incoming if p.id in self._histories)
            self._projects = incoming
            self._histories = histories
            logger.info("ProjectStore synced projects=%d reused_histories=%d", len(incoming), reused)

        self.notify_project_changed()

    # ---- queries ----

    def get_projects(self) -> list[Project]:
        return list(self._projects)

    def get_project(self, project_id: str) -> Project | None:
        for p in self._projects:
            if p.id == project_id:
                return p
        return None

    def get_history(self, project_id: str) -> HistoryEngine | None:
        project = self.get_project(project_id)
        if project is None:
            return None
        engine = self._histories.get(project_id)
        if engine is None:
            engine = self._histories[project_id] = HistoryEngine(self._max_history_size)
        return engine

    def get_statistics(self) -> Statistics:
        total = 0
        completed = 0
        for project in self._projects:
            for task in project.tasks:
                total += task.task_count()
                completed += task.completed_count()
        return Statistics(
            total_tasks=total,
            completed_tasks=completed,
            percentage=_percentage(completed, total),
        )

    # ---- mutations ----

    def add_project(self, project: Project) -> None:
        """Append a project (replacing one with the same id)."""
        self._projects = [p for p in self._projects if p.id != project.id] + [project]
        self._histories.setdefault(project.id, self._new_history(project))
        self._initialized = True
        self.notify_project_changed()

    def add_root_task(self, project_id: str, node: TaskNode) -> bool:
        """Attach a top-level task. Not recorded in history."""
        project = self.get_project(project_id)
        if project is None:
            return False
        project.tasks.append(node)
        self.notify_project_changed()
        return True

    def execute(self, project_id: str, command: Command) -> bool:
        engine = self.get_history(project_id)
        if engine is None:
            logger.warning("execute: unknown project %s", project_id)
            return False
        engine.execute(command)
        self.notify_project_changed()
        self.notify_history_changed()
        return True

    def undo(self, project_id: str) -> bool:
        engine = self.get_history(project_id)
        if engine is None or not engine.undo():
            return False
        self.notify_project_changed()
        self.notify_history_changed()
        return True

    def redo(self, project_id: str) -> bool:
        engine = self.get_history(project_id)
        if engine is None or not engine.redo():
            return False
        self.notify_project_changed()
        self.notify_history_changed()
        return True

    def export_history(self, project_id: str) -> list[dict[str, str]]:
        engine = self._histories.get(project_id)
        return engine.export_history() if engine is not None else []

    # ---- notifications ----

    def notify_project_changed(self) -> None:
        self._notify(StoreEvent(StoreEventType.PROJECT_CHANGED))
        self.notify_stats_changed()

    def notify_history_changed(self) -> None:
        self._notify(StoreEvent(StoreEventType.HISTORY_CHANGED))

    def notify_stats_changed(self) -> None:
        self._notify(StoreEvent(StoreEventType.STATS_CHANGED, self.get_statistics()))

    def refresh(self) -> None:
        self.notify_project_changed()
        self.notify_history_changed()
