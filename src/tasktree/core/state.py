# src/tasktree/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..store.project_store import Project, ProjectStore
from .ports import ProjectRepo


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: ProjectStore
    repo: ProjectRepo

    current_project_id: str | None = None

    def current_project(self) -> Project | None:
        if self.current_project_id is None:
            return None
        return self.store.get_project(self.current_project_id)
