# tests/test_cli_commands.py

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace

from tasktree.cli.bootstrap import create_initial_state, persist_histories
from tasktree.cli.commands import CommandRegistry, registry
from tasktree.core.state import AppState
from tasktree.core.task_node import TaskNode
from tasktree.history.engine import HistoryRecord
from tasktree.store.project_store import Project

from .fakes import FakeProjectRepo


def _run(state: AppState, line: str) -> str:
    reply = registry.handle(state, line)
    assert reply is not None
    return reply


def _project_with_group(state: AppState) -> TaskNode:
    _run(state, "/new Home")
    _run(state, "/add Chores")
    project = state.current_project()
    assert project is not None
    return project.tasks[0]


def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_command_registry_routes_aliases(state: AppState) -> None:
    reg = CommandRegistry()
    reg.register("ping", lambda s, args: "pong " + " ".join(args), "ping", aliases=["p"])
    assert reg.handle(state, "/PING a b") == "pong a b"
    assert reg.handle(state, "/p") == "pong "
    assert "/ping - ping" in reg.build_help()


def test_subtask_toggle_undo_redo_round_trip(state: AppState) -> None:
    group = _project_with_group(state)
    _run(state, f"/sub {group.id} Dishes")
    assert group.task_count() == 2
    child = group.children[0]

    _run(state, f"/toggle {child.id}")
    assert child.completed
    assert "Undone" in _run(state, "/undo")
    assert not child.completed
    assert "Redone" in _run(state, "/redo")
    assert child.completed
    assert "Nothing to redo" in _run(state, "/redo")

    # SQLite mirrors the tree after each hook.
    (stored,) = state.repo.load_projects()
    assert stored.tasks[0].to_portable() == group.to_portable()


def test_delete_and_undo_keep_database_in_sync(state: AppState) -> None:
    group = _project_with_group(state)
    for title in ("One", "Two", "Three"):
        _run(state, f"/sub {group.id} {title}")
    middle = group.children[1]

    _run(state, f"/rm {middle.id}")
    assert [c.title for c in group.children] == ["One", "Three"]
    (stored,) = state.repo.load_projects()
    assert [c.title for c in stored.tasks[0].children] == ["One", "Three"]

    _run(state, "/undo")
    assert [c.title for c in group.children] == ["One", "Two", "Three"]
    (stored,) = state.repo.load_projects()
    assert [c.title for c in stored.tasks[0].children] == ["One", "Two", "Three"]


def test_subtask_order_survives_reload_after_deletes(
    state: AppState, settings: SimpleNamespace
) -> None:
    group = _project_with_group(state)
    for title in ("a", "b", "c"):
        _run(state, f"/sub {group.id} {title}")
    a, b = group.children[0], group.children[1]
    _run(state, f"/rm {a.id}")
    _run(state, f"/rm {b.id}")
    _run(state, f"/sub {group.id} d")
    assert [c.title for c in group.children] == ["c", "d"]

    reloaded = create_initial_state(settings=settings, repo=state.repo)
    (project,) = reloaded.store.get_projects()
    assert [c.title for c in project.tasks[0].children] == ["c", "d"]


def test_top_level_order_survives_reload_after_deletes(
    state: AppState, settings: SimpleNamespace
) -> None:
    _run(state, "/new Home")
    for title in ("A", "B", "C"):
        _run(state, f"/add {title}")
    project = state.current_project()
    assert project is not None
    first, second = project.tasks[0], project.tasks[1]
    _run(state, f"/rm {first.id}")
    _run(state, f"/rm {second.id}")
    _run(state, "/add D")
    assert [t.title for t in project.tasks] == ["C", "D"]

    reloaded = create_initial_state(settings=settings, repo=state.repo)
    (stored,) = reloaded.store.get_projects()
    assert [t.title for t in stored.tasks] == ["C", "D"]


def test_move_rename_and_history_listing(state: AppState) -> None:
    group = _project_with_group(state)
    _run(state, f"/sub {group.id} First")
    _run(state, f"/sub {group.id} Second")
    second = group.children[1]

    _run(state, f"/move {second.id} 1")
    assert [c.title for c in group.children] == ["Second", "First"]
    _run(state, f"/rename {second.id} Renamed")
    assert second.title == "Renamed"

    _run(state, "/undo")
    listing = _run(state, "/history")
    assert 'Edit "Second" to "Renamed"  (undone)' in listing
    assert 'Move "Second" to position 1  <- current' in listing


def test_sub_rejects_leaf_parent_and_unknown_ids(state: AppState) -> None:
    group = _project_with_group(state)
    _run(state, f"/sub {group.id} Leaf")
    leaf = group.children[0]
    assert "cannot hold subtasks" in _run(state, f"/sub {leaf.id} Nested")
    assert "No task matches" in _run(state, "/toggle zzzzzzzz")


def test_stats_and_projects(state: AppState) -> None:
    group = _project_with_group(state)
    _run(state, f"/toggle {group.id}")
    stats = _run(state, "/stats")
    assert "Tasks: 1" in stats and "Progress: 100%" in stats
    assert "Home" in _run(state, "/projects")


def test_commands_without_project(state: AppState) -> None:
    assert "No project selected" in _run(state, "/tree")
    assert "No project selected" in _run(state, "/undo")


def test_hooks_reach_repo_and_history_is_persisted(settings: SimpleNamespace) -> None:
    repo = FakeProjectRepo(
        [Project(id="p", name="P", tasks=[TaskNode.group("g", "G")])]
    )
    repo.projects[0].saved_history = [HistoryRecord("earlier", datetime(2024, 1, 1, tzinfo=UTC))]
    state = create_initial_state(settings=settings, repo=repo)

    _run(state, "/toggle g")
    _run(state, "/undo")
    assert repo.calls == [("set_task_completed", "g", True), ("set_task_completed", "g", False)]

    persist_histories(state)
    assert [r["description"] for r in repo.histories["p"]] == ["earlier", 'Mark complete: "G"']
