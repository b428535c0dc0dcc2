"""
Assignment cascade: keep every descendant's effective owner stable when an
ancestor's explicit assignee changes.

The computation is two pure passes over alias snapshots keyed by 0-based line:

* preserve_pass pins the previous effective owner onto descendants whose
  inherited value would otherwise change, and onto descendants that inherited
  directly from the changed line;
* dedupe_pass removes explicit marks that now equal what the node inherits in
  the post-cascade tree, except the ones preserve_pass just added.

Neither pass mutates its inputs. Plain list items (no checkbox) are walked
through for inheritance but never receive an edit.
"""

import logging
from typing import Dict, List, Mapping, Optional, Set, Tuple

from cascade.resolver import (
    AliasMap,
    ParentOf,
    resolve_effective,
    resolve_effective_with_source,
    resolve_inherited,
)
from models.edits import EditSet
from models.task import TaskNode
from parsers.line_codec import explicit_alias
from parsers.task_parser import is_task_line

log = logging.getLogger(__name__)


def preserve_pass(
    parent_line0: int,
    new_alias: Optional[str],
    descendants: List[TaskNode],
    alias_before: AliasMap,
    parent_of: ParentOf,
) -> Tuple[Dict[int, str], Dict[int, Optional[str]]]:
    """
    Returns:
        (to_set, alias_after) where to_set maps line → alias to make explicit
        and alias_after is alias_before with the change and the pins applied.
    """
    alias_after: Dict[int, Optional[str]] = dict(alias_before)
    alias_after[parent_line0] = new_alias
    to_set: Dict[int, str] = {}

    for d in descendants:
        if not d.is_task:
            continue
        explicit = alias_before.get(d.line0)
        prev = explicit or resolve_effective(d, alias_before, parent_of)
        candidate = explicit or resolve_effective(d, alias_after, parent_of)

        if prev != candidate:
            if prev:
                log.debug("Line %d: pin %r (would become %r)", d.line0, prev, candidate)
                to_set[d.line0] = prev
                # Deeper nodes inherit the pinned value, not the new one
                alias_after[d.line0] = prev
        elif not explicit and prev:
            source = resolve_effective_with_source(d, alias_before, parent_of).source_line
            if source == parent_line0:
                log.debug("Line %d: pin %r inherited from changed line %d", d.line0, prev, parent_line0)
                to_set[d.line0] = prev
                alias_after[d.line0] = prev

    return to_set, alias_after


def dedupe_pass(
    descendants: List[TaskNode],
    alias_after: AliasMap,
    to_set: Mapping[int, str],
    parent_of: ParentOf,
) -> Set[int]:
    """Lines whose explicit alias is redundant against the post-cascade tree."""
    to_remove: Set[int] = set()
    for d in descendants:
        if not d.is_task:
            continue
        explicit = alias_after.get(d.line0)
        if not explicit or d.line0 in to_set:
            continue
        inherited = resolve_inherited(d, alias_after, parent_of)
        if inherited and inherited == explicit:
            log.debug("Line %d: drop redundant %r", d.line0, explicit)
            to_remove.add(d.line0)
    return to_remove


def compute_cascade(
    parent_line0: int,
    old_alias: Optional[str],
    new_alias: Optional[str],
    descendants: List[TaskNode],
    alias_before: AliasMap,
    parent_of: ParentOf,
) -> EditSet:
    """
    Edits needed on the descendants of parent_line0 after its explicit alias
    moved from old_alias to new_alias. alias_before must be taken before any
    edit was applied to the document.
    """
    if old_alias == new_alias:
        return EditSet()

    to_set, alias_after = preserve_pass(
        parent_line0, new_alias, descendants, alias_before, parent_of
    )
    to_remove = dedupe_pass(descendants, alias_after, to_set, parent_of)
    log.debug(
        "Cascade from line %d (%r → %r): %d set, %d removed",
        parent_line0, old_alias, new_alias, len(to_set), len(to_remove),
    )
    return EditSet(to_set=to_set, to_remove=to_remove)


def is_self_redundant(node: TaskNode, alias_map: AliasMap, parent_of: ParentOf) -> bool:
    """True if node's explicit alias equals what it would inherit anyway."""
    explicit = alias_map.get(node.line0)
    if not explicit:
        return False
    inherited = resolve_inherited(node, alias_map, parent_of)
    return bool(inherited) and inherited.lower() == explicit.lower()


def infer_old_alias(line0: int, before_lines: List[str]) -> Optional[str]:
    """The explicit alias a line carried in a pre-change snapshot."""
    if not 0 <= line0 < len(before_lines):
        return None
    line = before_lines[line0]
    if not is_task_line(line):
        return None
    return explicit_alias(line)
