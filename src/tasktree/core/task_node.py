# src/tasktree/core/task_node.py

"""
Composite task tree.

Leaves and groups share one node type. Whether a node may hold children is an
explicit tag (`is_group`) rather than something inferred from the length of
`children`, so an empty group stays a group across a save/reload cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

TaskRecord = dict[str, Any]
# Portable shape: {"id", "title", "completed", "children"?}.


@dataclass(eq=False, slots=True)
class TaskNode:
    id: str
    title: str
    completed: bool = False
    is_group: bool = False
    children: list[TaskNode] = field(default_factory=list)

    @classmethod
    def leaf(cls, id: str, title: str, completed: bool = False) -> TaskNode:
        return cls(id=id, title=title, completed=completed, is_group=False)

    @classmethod
    def group(
        cls,
        id: str,
        title: str,
        completed: bool = False,
        children: list[TaskNode] | None = None,
    ) -> TaskNode:
        return cls(
            id=id,
            title=title,
            completed=completed,
            is_group=True,
            children=list(children or []),
        )

    # ---- aggregate queries ----

    def task_count(self) -> int:
        return 1 + sum(child.task_count() for child in self.children)

    def completed_count(self) -> int:
        own = 1 if self.completed else 0
        return own + sum(child.completed_count() for child in self.children)

    def is_fully_complete(self) -> bool:
        """
        A node is fully complete only if it is itself marked complete and every
        descendant is. Children are not inspected when self is incomplete.
        """
        if not self.completed:
            return False
        return all(child.is_fully_complete() for child in self.children)

    # ---- structure ----

    def add_child(self, node: TaskNode) -> None:
        self.insert_child(len(self.children), node)

    def insert_child(self, index: int, node: TaskNode) -> None:
        if not self.is_group:
            raise ValueError(f"task {self.id!r} is a leaf and cannot hold children")
        if node is self or node._contains(self):
            raise ValueError(f"adding {node.id!r} under {self.id!r} would create a cycle")
        self.children.insert(index, node)

    def index_of(self, task_id: str) -> int:
        """Position of a direct child, or -1."""
        for i, child in enumerate(self.children):
            if child.id == task_id:
                return i
        return -1

    def remove_direct_child(self, task_id: str) -> TaskNode | None:
        idx = self.index_of(task_id)
        if idx == -1:
            return None
        return self.children.pop(idx)

    def remove_child(self, task_id: str) -> TaskNode | None:
        """
        Remove the first node with `task_id` from this subtree.

        Direct children are checked first; only then does the search descend
        into each child's subtree, in child order. Returns None when absent.
        """
        removed = self.remove_direct_child(task_id)
        if removed is not None:
            return removed
        for child in self.children:
            removed = child.remove_child(task_id)
            if removed is not None:
                return removed
        return None

    def find_by_id(self, task_id: str) -> TaskNode | None:
        if self.id == task_id:
            return self
        for child in self.children:
            if child.id == task_id:
                return child
        for child in self.children:
            found = child.find_by_id(task_id)
            if found is not None:
                return found
        return None

    def find_parent_of(self, task_id: str) -> TaskNode | None:
        """Group whose direct children include `task_id` (no back-pointers)."""
        if self.index_of(task_id) != -1:
            return self
        for child in self.children:
            parent = child.find_parent_of(task_id)
            if parent is not None:
                return parent
        return None

    def walk(self) -> Iterator[TaskNode]:
        yield self
        for child in self.children:
            yield from child.walk()

    def _contains(self, node: TaskNode) -> bool:
        return any(n is node for n in self.walk())

    # ---- serialization ----

    def to_portable(self) -> TaskRecord:
        record: TaskRecord = {
            "id": self.id,
            "title": self.title,
            "completed": self.completed,
        }
        if self.is_group:
            record["children"] = [child.to_portable() for child in self.children]
        return record

    @classmethod
    def from_portable(cls, record: Mapping[str, Any]) -> TaskNode:
        """
        Rebuild a tree from a portable record.

        A record carrying a `children` list (even an empty one) is a group;
        a record without it is a leaf.
        """
        raw_children = record.get("children")
        node = cls(
            id=str(record["id"]),
            title=str(record.get("title") or ""),
            completed=bool(record.get("completed", False)),
            is_group=isinstance(raw_children, list),
        )
        if isinstance(raw_children, list):
            for raw in raw_children:
                if not isinstance(raw, Mapping):
                    logger.warning("Skipping malformed child record under %s: %r", node.id, raw)
                    continue
                node.children.append(cls.from_portable(raw))
        return node

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        kind = "group" if self.is_group else "leaf"
        return f"TaskNode(id={self.id!r}, title={self.title!r}, {kind}, children={len(self.children)})"
