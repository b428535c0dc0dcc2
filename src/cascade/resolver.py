"""
Effective-owner resolution over a task tree.

A node's effective alias is its own explicit alias if it has one, else the
nearest ancestor's explicit alias, else None. Alias maps are keyed by 0-based
line index; an empty alias counts as no alias.
"""

from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from models.task import TaskNode

AliasMap = Mapping[int, Optional[str]]
ParentOf = Callable[[TaskNode], Optional[TaskNode]]


@dataclass(frozen=True)
class Resolution:
    """An effective alias and the 0-based line that supplied it."""

    alias: Optional[str] = None
    source_line: Optional[int] = None


def resolve_effective_with_source(
    node: TaskNode, alias_map: AliasMap, parent_of: ParentOf
) -> Resolution:
    current: Optional[TaskNode] = node
    while current is not None:
        alias = alias_map.get(current.line0)
        if alias:
            return Resolution(alias, current.line0)
        current = parent_of(current)
    return Resolution()


def resolve_effective(
    node: TaskNode, alias_map: AliasMap, parent_of: ParentOf
) -> Optional[str]:
    return resolve_effective_with_source(node, alias_map, parent_of).alias


def resolve_inherited(
    node: TaskNode, alias_map: AliasMap, parent_of: ParentOf
) -> Optional[str]:
    """What node would resolve to if its own explicit alias were removed."""
    parent = parent_of(node)
    if parent is None:
        return None
    return resolve_effective(parent, alias_map, parent_of)
