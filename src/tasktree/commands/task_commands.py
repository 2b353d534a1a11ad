# src/tasktree/commands/task_commands.py

"""
Concrete reversible commands over a task tree.

Each command captures whatever it needs to undo exactly one execute() at
construction (or on first execute) time. Commands only touch the tree: hooks
for persistence/notification are layered on top by `effects.with_effects`.

Redo is execute() called again on the same instance.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from ..core.task_node import TaskNode

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


class TaskCommand:
    """Shared description/timestamp bookkeeping for the task commands."""

    def __init__(self, description: str) -> None:
        self.description = description
        self.timestamp = _now()

    def execute(self) -> None:
        raise NotImplementedError

    def undo(self) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"{type(self).__name__}({self.description!r})"


class CreateTaskCommand(TaskCommand):
    def __init__(self, node: TaskNode, parent: TaskNode) -> None:
        super().__init__(f'Create task "{node.title}"')
        self.node = node
        self.parent = parent

    def execute(self) -> None:
        self.parent.add_child(self.node)

    def undo(self) -> None:
        self.parent.remove_child(self.node.id)


class DeleteTaskCommand(TaskCommand):
    """
    Remove a direct child of `parent`.

    Targets that are not direct children are left alone: execute() is a no-op
    and so is the matching undo().
    """

    def __init__(self, task_id: str, parent: TaskNode, title: str) -> None:
        super().__init__(f'Delete task "{title}"')
        self.task_id = task_id
        self.parent = parent
        self.deleted: TaskNode | None = None
        self.deleted_index = -1

    def execute(self) -> None:
        idx = self.parent.index_of(self.task_id)
        if idx == -1:
            logger.debug("Delete skipped: %s is not a child of %s", self.task_id, self.parent.id)
            self.deleted, self.deleted_index = None, -1
            return
        self.deleted, self.deleted_index = self.parent.children.pop(idx), idx

    def undo(self) -> None:
        if self.deleted is None or self.deleted_index == -1:
            return
        self.parent.insert_child(self.deleted_index, self.deleted)


class EditTaskCommand(TaskCommand):
    def __init__(self, node: TaskNode, new_title: str) -> None:
        self.node = node
        self.old_title = node.title
        self.new_title = new_title
        super().__init__(f'Edit "{self.old_title}" to "{new_title}"')

    def execute(self) -> None:
        self.node.title = self.new_title

    def undo(self) -> None:
        self.node.title = self.old_title


class ToggleStatusCommand(TaskCommand):
    def __init__(self, node: TaskNode) -> None:
        action = "Mark incomplete" if node.completed else "Mark complete"
        super().__init__(f'{action}: "{node.title}"')
        self.node = node

    def _flip(self) -> None:
        self.node.completed = not self.node.completed

    execute = _flip
    undo = _flip


class ReorderTaskCommand(TaskCommand):
    """
    Move a direct child of `parent` to `new_index` (array-move semantics).

    The index is clamped to the valid range. A task that is not a direct child
    is a no-op.
    """

    def __init__(self, parent: TaskNode, task_id: str, new_index: int) -> None:
        title = next((c.title for c in parent.children if c.id == task_id), task_id)
        super().__init__(f'Move "{title}" to position {new_index + 1}')
        self.parent = parent
        self.task_id = task_id
        self.new_index = new_index
        self.old_index = -1

    def _move(self, to_index: int) -> int:
        """Move the task to `to_index`; return where it was, or -1."""
        idx = self.parent.index_of(self.task_id)
        if idx == -1:
            return -1
        to_index = max(0, min(to_index, len(self.parent.children) - 1))
        node = self.parent.children.pop(idx)
        self.parent.children.insert(to_index, node)
        return idx

    def execute(self) -> None:
        self.old_index = self._move(self.new_index)

    def undo(self) -> None:
        if self.old_index == -1:
            return
        self._move(self.old_index)
