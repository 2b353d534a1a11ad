# src/tasktree/storage/sqlite_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..core.task_node import TaskNode
from ..store.project_store import Project

logger = logging.getLogger(__name__)


class SqliteProjectRepo:
    """
    SQLite-backed external store for projects, task rows and history logs.

    Tasks are stored flat (parent_id + position) and rebuilt into trees on
    load. History is stored as display records only.

    The schema is migration-safe:
    - create tables if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Each method opens its own SQLite connection.
    """

    def __init__(self, db_path: str | Path = "tasktree.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except Exception:
            total = -1
        logger.info("SqliteProjectRepo ready db=%s tasks=%s", self._db_path, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT,
                    owner_id TEXT,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL,
                    parent_id TEXT,
                    title TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    is_group INTEGER NOT NULL DEFAULT 0,
                    position INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS command_history (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    project_id TEXT NOT NULL,
                    description TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

            # Older databases predate explicit group tagging and ordering.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteProjectRepo migration: added column tasks.%s", name)

            add_col("is_group", "INTEGER NOT NULL DEFAULT 0")
            add_col("position", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id, position)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_parent ON tasks(parent_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_history_project ON command_history(project_id, id)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_node(row: sqlite3.Row) -> TaskNode:
        return TaskNode(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            completed=bool(row["completed"]),
            is_group=bool(row["is_group"]),
        )

    # ---- projects ----

    def count_tasks(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)
        finally:
            conn.close()

    def add_project(
        self,
        *,
        project_id: str,
        name: str,
        description: str | None = None,
        owner_id: str | None = None,
    ) -> None:
        if not name or not name.strip():
            raise ValueError("name is required")
        now = time.time()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO projects(id, name, description, owner_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (project_id, name.strip(), description, owner_id, now, now),
            )
            conn.commit()
            logger.debug("Project added id=%s name=%s", project_id, name)
        finally:
            conn.close()

    def load_projects(self) -> list[Project]:
        """Every project with its task tree and saved (display-only) history."""
        conn = self._get_conn()
        try:
            project_rows = conn.execute("SELECT * FROM projects ORDER BY created_at ASC").fetchall()
            task_rows = conn.execute(
                "SELECT * FROM tasks ORDER BY project_id, position ASC, created_at ASC"
            ).fetchall()
        finally:
            conn.close()

        by_project: dict[str, list[sqlite3.Row]] = {}
        for row in task_rows:
            by_project.setdefault(str(row["project_id"]), []).append(row)

        projects: list[Project] = []
        for prow in project_rows:
            pid = str(prow["id"])
            project = Project.from_portable(
                {
                    "id": pid,
                    "name": prow["name"],
                    "description": prow["description"],
                    "owner_id": prow["owner_id"],
                },
                saved_history=self.load_history(pid),
            )
            project.tasks = self._build_tree(by_project.get(pid, []))
            projects.append(project)
        return projects

    def _build_tree(self, rows: list[sqlite3.Row]) -> list[TaskNode]:
        # First pass: nodes. Second pass: attach to parents in position order.
        nodes = {str(r["id"]): self._row_to_node(r) for r in rows}
        roots: list[TaskNode] = []
        for r in rows:
            node = nodes[str(r["id"])]
            parent_id = r["parent_id"]
            if parent_id is None:
                roots.append(node)
                continue
            parent = nodes.get(str(parent_id))
            if parent is None:
                logger.warning("Orphan task %s (missing parent %s); skipped", node.id, parent_id)
                continue
            # Rows written before is_group existed: a task with children is a group.
            parent.is_group = True
            parent.children.append(node)
        return roots

    # ---- tasks ----

    def insert_task(
        self,
        *,
        project_id: str,
        record: dict[str, Any],
        parent_id: str | None,
        position: int,
    ) -> None:
        """Insert a portable task record (and its subtree) under `parent_id`."""
        now = time.time()
        rows: list[tuple[Any, ...]] = []

        def collect(rec: dict[str, Any], parent: str | None, pos: int) -> None:
            children = rec.get("children")
            rows.append(
                (
                    str(rec["id"]),
                    project_id,
                    parent,
                    str(rec.get("title") or ""),
                    1 if rec.get("completed") else 0,
                    1 if isinstance(children, list) else 0,
                    int(pos),
                    now,
                    now,
                )
            )
            for i, child in enumerate(children or []):
                collect(child, str(rec["id"]), i)

        collect(record, parent_id, position)

        conn = self._get_conn()
        try:
            conn.executemany(
                """
                INSERT OR REPLACE INTO tasks(
                    id, project_id, parent_id, title, completed, is_group,
                    position, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )
            conn.commit()
            logger.debug("Task rows inserted n=%d root=%s parent=%s", len(rows), record.get("id"), parent_id)
        finally:
            conn.close()

    def update_task_title(self, task_id: str, title: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE tasks SET title = ?, updated_at = ? WHERE id = ?",
                (title, time.time(), task_id),
            )
            conn.commit()
        finally:
            conn.close()

    def set_task_completed(self, task_id: str, completed: bool) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE tasks SET completed = ?, updated_at = ? WHERE id = ?",
                (1 if completed else 0, time.time(), task_id),
            )
            conn.commit()
        finally:
            conn.close()

    def delete_task(self, task_id: str) -> None:
        """Delete a task and its whole subtree."""
        conn = self._get_conn()
        try:
            conn.execute(
                """
                WITH RECURSIVE subtree(id) AS (
                    SELECT id FROM tasks WHERE id = ?
                    UNION ALL
                    SELECT t.id FROM tasks t JOIN subtree s ON t.parent_id = s.id
                )
                DELETE FROM tasks WHERE id IN (SELECT id FROM subtree)
                """,
                (task_id,),
            )
            conn.commit()
        finally:
            conn.close()

    def reorder_tasks(self, ordered_ids: Iterable[str]) -> None:
        """Persist sibling order: position = index in `ordered_ids`."""
        now = time.time()
        updates = [(i, now, tid) for i, tid in enumerate(ordered_ids)]
        if not updates:
            return
        conn = self._get_conn()
        try:
            conn.executemany("UPDATE tasks SET position = ?, updated_at = ? WHERE id = ?", updates)
            conn.commit()
        finally:
            conn.close()

    # ---- history ----

    def save_history(self, project_id: str, records: list[dict[str, str]]) -> None:
        """Replace the stored display log for a project."""
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM command_history WHERE project_id = ?", (project_id,))
            conn.executemany(
                "INSERT INTO command_history(project_id, description, created_at) VALUES (?, ?, ?)",
                [(project_id, r["description"], r["timestamp"]) for r in records],
            )
            conn.commit()
            logger.debug("History saved project=%s records=%d", project_id, len(records))
        finally:
            conn.close()

    def load_history(self, project_id: str) -> list[dict[str, str]]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT description, created_at FROM command_history WHERE project_id = ? ORDER BY id ASC",
                (project_id,),
            ).fetchall()
            return [{"description": str(r["description"]), "timestamp": str(r["created_at"])} for r in rows]
        finally:
            conn.close()
