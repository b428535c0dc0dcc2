"""
Task tree data models.

A TaskTree is the read-only view of one Markdown document that the cascade
consumes: list items with stable ids, parent links and 1-based line numbers.
Nodes live in an arena (TaskTree.nodes) keyed by id, so parent lookups are a
dict access rather than a back-reference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional


@dataclass
class TaskNode:
    """A single list item (task or plain bullet) in a document."""

    id: str
    line: int
    parent_id: Optional[str] = None
    children: List[TaskNode] = field(default_factory=list)
    is_task: bool = False
    status: Optional[str] = None
    block_id: Optional[str] = None
    indent: int = 0

    @property
    def line0(self) -> int:
        """0-based line index into the document."""
        return self.line - 1

    def descendants(self) -> List[TaskNode]:
        """All descendants in depth-first pre-order, excluding self."""
        result: List[TaskNode] = []
        for child in self.children:
            result.append(child)
            result.extend(child.descendants())
        return result

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "parent_id": self.parent_id,
            "line": self.line,
            "is_task": self.is_task,
            "status": self.status,
            "block_id": self.block_id,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class TaskTree:
    """
    Represents a fully parsed Markdown document.

    lines holds the content the tree was built from so that alias maps can
    be computed without re-reading the file.
    """

    file_path: Path
    roots: List[TaskNode] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)
    nodes: Dict[str, TaskNode] = field(default_factory=dict)

    def all_nodes(self) -> List[TaskNode]:
        """Return every node in document order."""
        result: List[TaskNode] = []
        for root in self.roots:
            result.append(root)
            result.extend(root.descendants())
        return result

    def find_by_id(self, node_id: str) -> Optional[TaskNode]:
        return self.nodes.get(node_id)

    def find_by_line(self, line0: int) -> Optional[TaskNode]:
        """Find the node on a 0-based line index."""
        for node in self.nodes.values():
            if node.line0 == line0:
                return node
        return None

    def parent_of(self, node: TaskNode) -> Optional[TaskNode]:
        if node.parent_id is None:
            return None
        return self.find_by_id(node.parent_id)

    def to_dict(self) -> dict:
        return {
            "file_path": str(self.file_path),
            "roots": [r.to_dict() for r in self.roots],
        }


@dataclass
class CachedFile:
    """A parsed Markdown file held in the task index."""

    file_path: Path
    tree: TaskTree
    mtime: float
