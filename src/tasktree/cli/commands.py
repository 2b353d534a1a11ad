# src/tasktree/cli/commands.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from ..commands.effects import with_effects
from ..commands.task_commands import (
    CreateTaskCommand,
    DeleteTaskCommand,
    EditTaskCommand,
    ReorderTaskCommand,
    ToggleStatusCommand,
)
from ..core.ports import ProjectRepo
from ..core.state import AppState
from ..core.task_node import TaskNode
from ..history.engine import ImportedEntry
from ..store.project_store import Project

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Slash-command registry used by the console loop (/help, /add, /undo, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _new_id() -> str:
    return uuid.uuid4().hex[:8]


def _require_project(state: AppState) -> Project | None:
    return state.current_project()


def _resolve_task(project: Project, token: str) -> TaskNode | None:
    """Exact id, else a unique id prefix."""
    exact = project.find_task(token)
    if exact is not None:
        return exact
    matches = [n for root in project.tasks for n in root.walk() if n.id.startswith(token)]
    return matches[0] if len(matches) == 1 else None


def _delete_and_renumber(repo: ProjectRepo, task_id: str, siblings: list[TaskNode]) -> None:
    """Delete the row, then close the gap so stored positions stay 0..n-1."""
    repo.delete_task(task_id)
    repo.reorder_tasks([s.id for s in siblings])


def _render(node: TaskNode, depth: int, out: list[str]) -> None:
    mark = "x" if node.completed else " "
    suffix = ""
    if node.is_group and node.children:
        suffix = f"  ({node.completed_count()}/{node.task_count()})"
    out.append(f"{'  ' * depth}[{mark}] {node.title}  <{node.id}>{suffix}")
    for child in node.children:
        _render(child, depth + 1, out)


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_projects(state: AppState, args: list[str]) -> str:
    projects = state.store.get_projects()
    if not projects:
        return "No projects yet. Create one with /new <name>."
    lines = ["Projects:"]
    for i, p in enumerate(projects, start=1):
        current = " *" if p.id == state.current_project_id else ""
        total = sum(t.task_count() for t in p.tasks)
        lines.append(f"  {i}. {p.name} <{p.id}> tasks={total}{current}")
    return "\n".join(lines)


def cmd_new(state: AppState, args: list[str]) -> str:
    name = " ".join(args).strip()
    if not name:
        return "Usage: /new <project name>"
    project = Project(id=_new_id(), name=name)
    state.repo.add_project(project_id=project.id, name=project.name)
    state.store.add_project(project)
    state.current_project_id = project.id
    logger.info("Project created id=%s", project.id)
    return f'Project "{name}" created and selected.'


def cmd_use(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /use <number|id>"
    projects = state.store.get_projects()
    token = args[0]
    chosen: Project | None = None
    if token.isdigit() and 1 <= int(token) <= len(projects):
        chosen = projects[int(token) - 1]
    else:
        matches = [p for p in projects if p.id.startswith(token)]
        chosen = matches[0] if len(matches) == 1 else None
    if chosen is None:
        return f"No project matches {token!r}."
    state.current_project_id = chosen.id
    return f'Using project "{chosen.name}".'


def cmd_tree(state: AppState, args: list[str]) -> str:
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    if not project.tasks:
        return f'Project "{project.name}" has no tasks. Add one with /add <title>.'
    out = [f"{project.name}:"]
    for root in project.tasks:
        _render(root, 1, out)
    return "\n".join(out)


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title> -> new top-level task (can hold subtasks)."""
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title>"
    node = TaskNode.group(_new_id(), title)
    state.repo.insert_task(
        project_id=project.id,
        record=node.to_portable(),
        parent_id=None,
        position=len(project.tasks),
    )
    state.store.add_root_task(project.id, node)
    return f'Added "{title}" <{node.id}>.'


def cmd_sub(state: AppState, args: list[str]) -> str:
    """/sub <parent> <title> -> subtask (undoable)."""
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    if len(args) < 2:
        return "Usage: /sub <parent id> <title>"
    parent = _resolve_task(project, args[0])
    if parent is None:
        return f"No task matches {args[0]!r}."
    if not parent.is_group:
        return f'"{parent.title}" cannot hold subtasks.'

    title = " ".join(args[1:])
    node = TaskNode.leaf(_new_id(), title)
    repo = state.repo
    command = with_effects(
        CreateTaskCommand(node, parent),
        on_execute=lambda: repo.insert_task(
            project_id=project.id,
            record=node.to_portable(),
            parent_id=parent.id,
            position=parent.index_of(node.id),
        ),
        on_undo=lambda: _delete_and_renumber(repo, node.id, parent.children),
    )
    state.store.execute(project.id, command)
    return f'Added subtask "{title}" <{node.id}> under "{parent.title}".'


def cmd_rename(state: AppState, args: list[str]) -> str:
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    if len(args) < 2:
        return "Usage: /rename <id> <new title>"
    node = _resolve_task(project, args[0])
    if node is None:
        return f"No task matches {args[0]!r}."
    new_title = " ".join(args[1:])

    def sync_title() -> None:
        state.repo.update_task_title(node.id, node.title)

    state.store.execute(
        project.id,
        with_effects(EditTaskCommand(node, new_title), on_execute=sync_title, on_undo=sync_title),
    )
    return f'Renamed to "{new_title}".'


def cmd_toggle(state: AppState, args: list[str]) -> str:
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    if not args:
        return "Usage: /toggle <id>"
    node = _resolve_task(project, args[0])
    if node is None:
        return f"No task matches {args[0]!r}."

    def sync_status() -> None:
        state.repo.set_task_completed(node.id, node.completed)

    command = with_effects(ToggleStatusCommand(node), on_execute=sync_status, on_undo=sync_status)
    state.store.execute(project.id, command)
    return f'"{node.title}" is now {"done" if node.completed else "open"}.'


def cmd_rm(state: AppState, args: list[str]) -> str:
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    if not args:
        return "Usage: /rm <id>"
    node = _resolve_task(project, args[0])
    if node is None:
        return f"No task matches {args[0]!r}."

    parent = project.find_parent(node.id)
    if parent is None:
        # Top-level tasks have no parent node to restore into.
        project.tasks.remove(node)
        _delete_and_renumber(state.repo, node.id, project.tasks)
        state.store.notify_project_changed()
        return f'Deleted "{node.title}" (top-level deletes cannot be undone).'

    repo = state.repo
    command = DeleteTaskCommand(node.id, parent, node.title)

    def restore() -> None:
        if command.deleted is None:
            return
        repo.insert_task(
            project_id=project.id,
            record=command.deleted.to_portable(),
            parent_id=parent.id,
            position=command.deleted_index,
        )
        repo.reorder_tasks([c.id for c in parent.children])

    state.store.execute(
        project.id,
        with_effects(
            command,
            on_execute=lambda: _delete_and_renumber(repo, node.id, parent.children),
            on_undo=restore,
        ),
    )
    return f'Deleted "{node.title}".'


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <id> <position> -> reorder among siblings (1-based position)."""
    project = _require_project(state)
    if project is None:
        return "No project selected. Use /new or /use."
    if len(args) < 2 or not args[1].isdigit() or int(args[1]) < 1:
        return "Usage: /move <id> <position>"
    node = _resolve_task(project, args[0])
    if node is None:
        return f"No task matches {args[0]!r}."
    new_index = int(args[1]) - 1

    parent = project.find_parent(node.id)
    if parent is None:
        tasks = project.tasks
        tasks.remove(node)
        tasks.insert(min(new_index, len(tasks)), node)
        state.repo.reorder_tasks([t.id for t in tasks])
        state.store.notify_project_changed()
        return f'Moved "{node.title}" (top-level moves cannot be undone).'

    def sync_order() -> None:
        state.repo.reorder_tasks([c.id for c in parent.children])

    command = with_effects(
        ReorderTaskCommand(parent, node.id, new_index),
        on_execute=sync_order,
        on_undo=sync_order,
    )
    state.store.execute(project.id, command)
    return f'Moved "{node.title}" to position {parent.index_of(node.id) + 1}.'


def cmd_undo(state: AppState, args: list[str]) -> str:
    if state.current_project_id is None:
        return "No project selected. Use /new or /use."
    engine = state.store.get_history(state.current_project_id)
    if engine is None or not engine.can_undo():
        return "Nothing to undo."
    description = engine.history[engine.current_index].description
    state.store.undo(state.current_project_id)
    return f"Undone: {description}"


def cmd_redo(state: AppState, args: list[str]) -> str:
    if state.current_project_id is None:
        return "No project selected. Use /new or /use."
    engine = state.store.get_history(state.current_project_id)
    if engine is None or not engine.can_redo():
        return "Nothing to redo."
    state.store.redo(state.current_project_id)
    return f"Redone: {engine.history[engine.current_index].description}"


def cmd_history(state: AppState, args: list[str]) -> str:
    if state.current_project_id is None:
        return "No project selected. Use /new or /use."
    engine = state.store.get_history(state.current_project_id)
    if engine is None:
        return "No history."
    count = state.settings.history_display_count
    if args and args[0].isdigit():
        count = int(args[0])
    rows = engine.full_history_for_display(count)
    if not rows:
        return "No history yet."
    lines = ["History (oldest first):"]
    for row in rows:
        ts = row.timestamp.astimezone().strftime("%Y-%m-%d %H:%M:%S")
        if isinstance(row, ImportedEntry):
            tag = " (previous session)"
        elif row.index == engine.current_index:
            tag = "  <- current"
        elif row.index > engine.current_index:
            tag = "  (undone)"
        else:
            tag = ""
        lines.append(f"  [{ts}] {row.description}{tag}")
    return "\n".join(lines)


def cmd_stats(state: AppState, args: list[str]) -> str:
    stats = state.store.get_statistics()
    return (
        "Statistics:\n"
        f"  Tasks: {stats.total_tasks}\n"
        f"  Completed: {stats.completed_tasks}\n"
        f"  Progress: {stats.percentage}%"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("projects", cmd_projects, help_text="List projects.", aliases=["ls"])
registry.register("new", cmd_new, help_text="Create a project: /new <name>.")
registry.register("use", cmd_use, help_text="Select a project: /use <number|id>.")
registry.register("tree", cmd_tree, help_text="Show the current project's tasks.", aliases=["t"])
registry.register("add", cmd_add, help_text="Add a top-level task: /add <title>.")
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <parent id> <title>.")
registry.register("rename", cmd_rename, help_text="Rename a task: /rename <id> <title>.")
registry.register("toggle", cmd_toggle, help_text="Mark a task done/open: /toggle <id>.", aliases=["x"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.")
registry.register("move", cmd_move, help_text="Reorder a task: /move <id> <position>.")
registry.register("undo", cmd_undo, help_text="Undo the last action.", aliases=["u"])
registry.register("redo", cmd_redo, help_text="Redo the last undone action.", aliases=["r"])
registry.register("history", cmd_history, help_text="Show recent actions: /history [n].")
registry.register("stats", cmd_stats, help_text="Show completion statistics.")
