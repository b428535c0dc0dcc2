"""
Assignment operations over a document and the task index.

Main API:
    apply_assignee_change(buffer, file_path, line0, new_alias, ...)  → Result
    cascade_after_external_change(index, file_path, line0, new_alias, ...)  → Result
    effective_owner(index, file_path, line0)  → Result
    owned_tasks(index, alias)  → List[dict]
    normalize_file(index, file_path, strict=True)  → Result

Every operation returns Ok or Err for the expected failures (a line that is
not a task, a file the index does not know, a line with no list item).
Deciding whether to surface or swallow an Err is left to the caller.
"""

import logging
from pathlib import Path
from typing import List, Optional

from cascade.applicator import (
    FileSnapshot,
    LineBuffer,
    RenderMark,
    apply_edits,
    rewrite_assignee,
)
from cascade.engine import compute_cascade, infer_old_alias, is_self_redundant
from cascade.resolver import resolve_effective_with_source
from models.edits import CascadeError, CascadeReport, Err, Ok, Result
from models.line import CLEAR, Override
from models.task import TaskTree
from parsers.line_codec import normalize_task_line, parse_line
from parsers.task_parser import alias_map, is_task_line, parse_content
from utils.formatting import EVERYONE_ALIAS
from utils.marks import Team, render_assignee_mark

EVERYONE_NAME = "everyone"

log = logging.getLogger(__name__)


def _normalize_alias(alias: Optional[str]) -> Optional[str]:
    alias = (alias or "").strip().lower()
    if alias == EVERYONE_NAME:
        return EVERYONE_ALIAS
    return alias or None


def _renderer(variant: str, team: Optional[Team]) -> RenderMark:
    return lambda alias: render_assignee_mark(alias, variant=variant, team=team)


def _indexed_tree(index, file_path) -> Optional[TaskTree]:
    """The index's tree for a file, refreshing it first if the file changed."""
    index.refresh(file_path)
    return index.get_tree(file_path)


def apply_assignee_change(
    buffer: LineBuffer,
    file_path,
    line0: int,
    new_alias: Optional[str],
    *,
    index=None,
    old_alias: Optional[str] = None,
    variant: str = "active",
    team: Optional[Team] = None,
    strict: bool = True,
    render_mark: Optional[RenderMark] = None,
) -> Result:
    """
    Reassign the task on line0 and cascade the change to its descendants.

    The buffer is snapshotted and the index refreshed from it, so the node is
    located before anything is written; on Err the buffer is untouched. The
    changed line's assignee slot is then rewritten. If the new explicit alias
    is what the line would inherit anyway it is cleared again. The cascade is
    computed against the snapshot and applied to the buffer.

    Without an index, the tree is built from the buffer content directly.
    Rewriting an assignee slot never changes the list structure, so the
    pre-change tree stays valid. A FileSnapshot buffer is committed at the end.
    """
    new_alias = _normalize_alias(new_alias)
    render_changed = render_mark or _renderer(variant, team)
    render_pin = render_mark or _renderer("active", team)

    if not 0 <= line0 < buffer.line_count or parse_line(buffer.get_line(line0)) is None:
        return Err(CascadeError.PARSE_MISS, f"line {line0 + 1} is not a task")

    before_content = buffer.get_value()
    before_lines = before_content.splitlines()

    if index is not None:
        index.refresh(file_path, content=before_content)
        tree = index.get_tree(file_path)
        if tree is None:
            return Err(CascadeError.MISSING_INDEX_ENTRY, str(file_path))
    else:
        tree = parse_content(before_content, Path(file_path))

    node = tree.find_by_line(line0)
    if node is None:
        return Err(CascadeError.MISSING_NODE, f"{file_path}:{line0 + 1}")

    original_line = buffer.get_line(line0)
    if old_alias is None:
        old_alias = infer_old_alias(line0, before_lines)
    old_alias = _normalize_alias(old_alias)

    new_mark = render_changed(new_alias) if new_alias else None
    rewrite_assignee(buffer, line0, Override.value(new_mark), strict)

    report = CascadeReport(
        file_path=Path(file_path), line=line0 + 1, old_alias=old_alias, new_alias=new_alias
    )

    alias_now = alias_map(buffer.get_value().splitlines())
    if is_self_redundant(node, alias_now, tree.parent_of):
        log.debug("Line %d: %r is already inherited, clearing", line0, new_alias)
        rewrite_assignee(buffer, line0, CLEAR, strict)
        report.cleared_self = True

    alias_before = alias_map(before_lines)
    if old_alias:
        alias_before[line0] = old_alias
    report.edits = compute_cascade(
        line0, old_alias, new_alias, node.descendants(), alias_before, tree.parent_of
    )
    changed = set(apply_edits(buffer, report.edits, render_pin, strict))

    if buffer.get_line(line0) != original_line:
        changed.add(line0)
    report.changed_lines = sorted(changed)

    if isinstance(buffer, FileSnapshot):
        report.written = buffer.commit()
    if index is not None and report.changed_lines:
        index.refresh(file_path, content=buffer.get_value())

    log.info(
        "Assigned %s:%d %r → %r (%d lines changed)",
        file_path, line0 + 1, old_alias, new_alias, len(report.changed_lines),
    )
    return Ok(report)


def cascade_after_external_change(
    index,
    file_path,
    line0: int,
    new_alias: Optional[str],
    *,
    old_alias: Optional[str] = None,
    before_content: Optional[str] = None,
    team: Optional[Team] = None,
    strict: bool = True,
    render_mark: Optional[RenderMark] = None,
) -> Result:
    """
    Cascade a change that was already written to line0 by someone else.

    The previous alias is taken from old_alias, else from line0 in
    before_content. Without either, the file on disk stands in for the
    pre-change snapshot, which only works if old_alias is given. The file is
    read once and written back only if a line changed.
    """
    path = index.resolve_path(file_path)
    new_alias = _normalize_alias(new_alias)
    render = render_mark or _renderer("active", team)

    if not path.is_file():
        return Err(CascadeError.MISSING_INDEX_ENTRY, str(path))
    tree = _indexed_tree(index, path)
    if tree is None:
        return Err(CascadeError.MISSING_INDEX_ENTRY, str(path))

    node = tree.find_by_line(line0)
    if node is None:
        return Err(CascadeError.MISSING_NODE, f"{path}:{line0 + 1}")

    snapshot = FileSnapshot(path)
    before_lines = before_content.splitlines() if before_content is not None else snapshot.lines
    if not old_alias:
        old_alias = infer_old_alias(line0, before_lines)
    old_alias = _normalize_alias(old_alias)

    alias_before = alias_map(before_lines)
    if old_alias:
        # The snapshot may already show the new value on the changed line
        alias_before[line0] = old_alias

    report = CascadeReport(file_path=path, line=line0 + 1, old_alias=old_alias, new_alias=new_alias)
    report.edits = compute_cascade(
        line0, old_alias, new_alias, node.descendants(), alias_before, tree.parent_of
    )
    report.changed_lines = apply_edits(snapshot, report.edits, render, strict)
    report.written = snapshot.commit()
    if report.written:
        index.refresh(path, content=snapshot.get_value())

    log.info(
        "Cascaded %s:%d %r → %r (%d lines changed)",
        path, line0 + 1, old_alias, new_alias, len(report.changed_lines),
    )
    return Ok(report)


def effective_owner(index, file_path, line0: int) -> Result:
    """Who owns the item on line0, and which line the ownership comes from."""
    tree = _indexed_tree(index, file_path)
    if tree is None:
        return Err(CascadeError.MISSING_INDEX_ENTRY, str(file_path))
    node = tree.find_by_line(line0)
    if node is None:
        return Err(CascadeError.MISSING_NODE, f"{file_path}:{line0 + 1}")

    resolution = resolve_effective_with_source(node, alias_map(tree.lines), tree.parent_of)
    return Ok({
        "file_path": str(tree.file_path),
        "line": node.line,
        "alias": resolution.alias,
        "source_line": resolution.source_line + 1 if resolution.source_line is not None else None,
        "explicit": resolution.source_line == node.line0,
    })


def owned_tasks(index, alias: str) -> List[dict]:
    """Every indexed task whose effective owner is alias."""
    alias = _normalize_alias(alias)
    if not alias:
        return []

    results: List[dict] = []
    for tree in index.trees():
        amap = alias_map(tree.lines)
        for node in tree.all_nodes():
            if not node.is_task:
                continue
            resolution = resolve_effective_with_source(node, amap, tree.parent_of)
            if resolution.alias != alias:
                continue
            results.append({
                "id": node.id,
                "file_path": str(tree.file_path),
                "line": node.line,
                "status": node.status,
                "text": tree.lines[node.line0].strip(),
                "explicit": resolution.source_line == node.line0,
            })
    return results


def normalize_file(index, file_path, strict: bool = True) -> Result:
    """Rewrite every task line of a file in canonical field order."""
    path = index.resolve_path(file_path)
    if not path.is_file():
        return Err(CascadeError.MISSING_INDEX_ENTRY, str(path))

    snapshot = FileSnapshot(path)
    changed: List[int] = []
    for i in range(snapshot.line_count):
        line = snapshot.get_line(i)
        if not is_task_line(line):
            continue
        updated = normalize_task_line(line, strict=strict)
        if updated != line:
            snapshot.replace_line(i, updated)
            changed.append(i)

    written = snapshot.commit()
    if written:
        index.refresh(path, content=snapshot.get_value())
    return Ok({"file_path": str(path), "changed_lines": [i + 1 for i in changed], "written": written})
