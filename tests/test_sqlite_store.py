# tests/test_sqlite_store.py

from __future__ import annotations

import sqlite3
from pathlib import Path

from tasktree.core.task_node import TaskNode
from tasktree.storage.sqlite_store import SqliteProjectRepo


def _seed(repo: SqliteProjectRepo) -> None:
    repo.add_project(project_id="p", name="Project")
    root = TaskNode.group(
        "r1",
        "Root",
        children=[TaskNode.leaf("a", "A", completed=True), TaskNode.leaf("b", "B")],
    )
    repo.insert_task(project_id="p", record=root.to_portable(), parent_id=None, position=0)
    repo.insert_task(
        project_id="p",
        record=TaskNode.group("r2", "Empty").to_portable(),
        parent_id=None,
        position=1,
    )


def test_tree_round_trip(tmp_path: Path) -> None:
    repo = SqliteProjectRepo(tmp_path / "t.sqlite3")
    _seed(repo)
    assert repo.count_tasks() == 4

    (project,) = repo.load_projects()
    assert project.id == "p" and project.name == "Project"
    assert [t.to_portable() for t in project.tasks] == [
        {
            "id": "r1",
            "title": "Root",
            "completed": False,
            "children": [
                {"id": "a", "title": "A", "completed": True},
                {"id": "b", "title": "B", "completed": False},
            ],
        },
        {"id": "r2", "title": "Empty", "completed": False, "children": []},
    ]


def test_updates_deletes_and_reorder(tmp_path: Path) -> None:
    repo = SqliteProjectRepo(tmp_path / "t.sqlite3")
    _seed(repo)

    repo.update_task_title("a", "A2")
    repo.set_task_completed("b", True)
    repo.reorder_tasks(["b", "a"])
    (project,) = repo.load_projects()
    root = project.tasks[0]
    assert [(c.id, c.title, c.completed) for c in root.children] == [("b", "B", True), ("a", "A2", True)]

    repo.delete_task("r1")
    assert repo.count_tasks() == 1
    (project,) = repo.load_projects()
    assert [t.id for t in project.tasks] == ["r2"]


def test_history_replace_and_load(tmp_path: Path) -> None:
    repo = SqliteProjectRepo(tmp_path / "t.sqlite3")
    _seed(repo)
    records = [
        {"description": "one", "timestamp": "2024-01-01T00:00:00+00:00"},
        {"description": "two", "timestamp": "2024-01-02T00:00:00+00:00"},
    ]
    repo.save_history("p", records)
    repo.save_history("p", records[1:])
    assert repo.load_history("p") == records[1:]

    (project,) = repo.load_projects()
    assert [r.description for r in project.saved_history] == ["two"]


def test_migrates_tasks_table_without_group_column(tmp_path: Path) -> None:
    db = tmp_path / "old.sqlite3"
    conn = sqlite3.connect(db)
    conn.execute(
        "CREATE TABLE tasks (id TEXT PRIMARY KEY, project_id TEXT NOT NULL, parent_id TEXT,"
        " title TEXT NOT NULL, completed INTEGER NOT NULL DEFAULT 0,"
        " created_at REAL NOT NULL, updated_at REAL NOT NULL)"
    )
    conn.execute("INSERT INTO tasks VALUES ('g', 'p', NULL, 'G', 0, 1, 1)")
    conn.execute("INSERT INTO tasks VALUES ('c', 'p', 'g', 'C', 1, 2, 2)")
    conn.commit()
    conn.close()

    repo = SqliteProjectRepo(db)
    repo.add_project(project_id="p", name="Legacy")
    (project,) = repo.load_projects()
    group = project.tasks[0]
    assert group.is_group
    assert [c.id for c in group.children] == ["c"]


def test_load_projects_tolerates_bad_history_rows(tmp_path: Path) -> None:
    repo = SqliteProjectRepo(tmp_path / "t.sqlite3")
    _seed(repo)
    repo.save_history(
        "p",
        [
            {"description": "bad", "timestamp": "garbage"},
            {"description": "good", "timestamp": "2024-01-02T00:00:00+00:00"},
        ],
    )

    (project,) = repo.load_projects()
    assert [r.description for r in project.saved_history] == ["good"]
    assert [t.id for t in project.tasks] == ["r1", "r2"]
