# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasktree.cli.bootstrap import create_initial_state
from tasktree.core.state import AppState
from tasktree.core.task_node import TaskNode
from tasktree.storage.sqlite_store import SqliteProjectRepo

from .fakes import FakeProjectRepo


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="tasktree-test",
        log_level="DEBUG",
        max_history_size=20,
        history_display_count=10,
        data_dir=tmp_path,
        db_path=tmp_path / "tasktree.sqlite3",
    )


@pytest.fixture()
def sqlite_repo(settings: SimpleNamespace) -> SqliteProjectRepo:
    return SqliteProjectRepo(settings.db_path)


@pytest.fixture()
def fake_repo() -> FakeProjectRepo:
    return FakeProjectRepo()


@pytest.fixture()
def state(settings: SimpleNamespace, sqlite_repo: SqliteProjectRepo) -> AppState:
    """AppState wired to a real SQLite repo in tmp_path (no projects yet)."""
    return create_initial_state(settings=settings, repo=sqlite_repo)


@pytest.fixture()
def abc_tree() -> TaskNode:
    """p1 with three leaf children a, b, c."""
    return TaskNode.group(
        "p1",
        "Root",
        children=[
            TaskNode.leaf("a", "A"),
            TaskNode.leaf("b", "B"),
            TaskNode.leaf("c", "C"),
        ],
    )
