# src/tasktree/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the SQLite repo and the ProjectStore into AppState,
- writes the per-project history log back on shutdown.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..storage.sqlite_store import SqliteProjectRepo
from ..store.project_store import ProjectStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, repo=None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and repo are injectable for tests. If settings is None, falls back
    to get_settings(); if repo is None, opens SQLite at settings.db_path.
    """
    if settings is None:
        settings = get_settings()

    if repo is None:
        _ensure_local_dirs(settings)
        repo = SqliteProjectRepo(settings.db_path)

    store = ProjectStore(max_history_size=settings.max_history_size)
    store.initialize(repo.load_projects())

    projects = store.get_projects()
    return AppState(
        settings=settings,
        store=store,
        repo=repo,
        current_project_id=projects[0].id if projects else None,
    )


def persist_histories(state: AppState) -> None:
    """
    Write each project's history log to the repo.

    The stored log is the imported (previous-session) records followed by this
    session's commands, capped at the history size, so it keeps growing across
    sessions instead of being replaced by the last one only.
    """
    limit = state.settings.max_history_size
    for project in state.store.get_projects():
        engine = state.store.get_history(project.id)
        if engine is None or not engine.history:
            continue
        records = [r.to_portable() for r in engine.imported_history] + engine.export_history()
        try:
            state.repo.save_history(project.id, records[-limit:])
        except Exception:
            logger.exception("Failed to save history for project %s", project.id)
