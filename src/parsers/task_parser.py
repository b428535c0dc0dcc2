"""
Parser that turns a Markdown document into a tree of list items.

Main API:
    parse_file(path)  → TaskTree
    parse_content(content, file_path)  → TaskTree
    alias_map(lines)  → {line0: alias | None}

Every list item (task or plain bullet) becomes a TaskNode. Nesting is derived
from indentation with a stack, the same way an outliner would read it; a
heading or an unindented paragraph ends the current list. Frontmatter and
fenced code blocks are skipped.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from models.task import TaskNode, TaskTree
from parsers.line_codec import explicit_alias

log = logging.getLogger(__name__)

LIST_LINE_RE = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+")
TASK_LINE_RE = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+\[([^\]])\](?:\s+|$)")
_BLOCK_ID_RE = re.compile(r"\s\^([A-Za-z0-9-]+)\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------

def indent_width(line: str) -> int:
    """Leading whitespace width in columns; a tab counts as four."""
    width = 0
    for ch in line:
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += 4
        else:
            break
    return width


def is_list_line(line: str) -> bool:
    return bool(LIST_LINE_RE.match(line or ""))


def is_task_line(line: str) -> bool:
    """A list item carrying a checkbox, whatever its status character."""
    return bool(TASK_LINE_RE.match(line or ""))


def _parse_heading(stripped: str) -> Optional[Tuple[int, str]]:
    """Return (level, text) or None if line is not a heading."""
    if not stripped.startswith("#"):
        return None
    level = len(stripped) - len(stripped.lstrip("#"))
    if level > 6 or (len(stripped) > level and stripped[level] != " "):
        # "#tag" is a tag, not a heading
        return None
    return level, stripped[level:].strip()


# ---------------------------------------------------------------------------
# Frontmatter extraction
# ---------------------------------------------------------------------------

def _extract_frontmatter(
    lines: List[str],
) -> Tuple[List[str], int]:
    """
    Extract YAML frontmatter from the beginning of the file.

    Returns:
        (frontmatter_lines, body_start_index)
        frontmatter_lines includes the --- delimiters verbatim.
        If no frontmatter, returns ([], 0).
    """
    i = 0
    # Skip leading blank lines
    while i < len(lines) and not lines[i].strip():
        i += 1

    if i >= len(lines) or lines[i].strip() != "---":
        return [], 0

    fm: List[str] = []
    fm.append(lines[i])  # opening ---
    i += 1

    while i < len(lines):
        fm.append(lines[i])
        if lines[i].strip() == "---":
            return fm, i + 1
        i += 1

    # Never closed, treat as no frontmatter
    return [], 0


# ---------------------------------------------------------------------------
# Main parse API
# ---------------------------------------------------------------------------

def node_id(file_path: Path, line: int, block_id: Optional[str] = None) -> str:
    """Stable id of the list item on a 1-based line."""
    if block_id:
        return f"{file_path}:^{block_id}:{line}"
    return f"{file_path}:{line}"


def parse_content(content: str, file_path: Optional[Path] = None) -> TaskTree:
    """
    Parse markdown content into a TaskTree.

    Args:
        content: Full file content as a string
        file_path: Source path, used as the prefix of every node id

    Returns:
        TaskTree whose roots are the top-level list items in document order
    """
    path = file_path or Path("")
    lines = content.splitlines()
    _, body_start = _extract_frontmatter(lines)

    tree = TaskTree(file_path=path, lines=lines)
    stack: List[TaskNode] = []
    in_fence = False

    for line0 in range(body_start, len(lines)):
        line = lines[line0]
        stripped = line.strip()

        if _FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if in_fence or not stripped:
            continue

        if _parse_heading(stripped):
            stack.clear()
            continue

        if not is_list_line(line):
            # Indented text continues the current item; anything else ends the list
            if indent_width(line) == 0:
                stack.clear()
            continue

        indent = indent_width(line)
        while stack and stack[-1].indent >= indent:
            stack.pop()
        parent = stack[-1] if stack else None

        task = TASK_LINE_RE.match(line)
        block = _BLOCK_ID_RE.search(line)
        block_id = block.group(1) if block else None

        node = TaskNode(
            id=node_id(path, line0 + 1, block_id),
            line=line0 + 1,
            parent_id=parent.id if parent else None,
            is_task=bool(task),
            status=task.group(1) if task else None,
            block_id=block_id,
            indent=indent,
        )
        tree.nodes[node.id] = node
        if parent:
            parent.children.append(node)
        else:
            tree.roots.append(node)
        stack.append(node)

    log.debug("Parsed %s: %d list items", path, len(tree.nodes))
    return tree


def parse_file(file_path: Path) -> TaskTree:
    """Parse a Markdown file into a TaskTree."""
    return parse_content(file_path.read_text(encoding="utf-8"), file_path)


def alias_map(lines: List[str]) -> Dict[int, Optional[str]]:
    """
    Explicit assignee alias per 0-based line.

    Only task lines can carry an alias; every other line maps to None.
    """
    return {
        i: explicit_alias(line) if is_task_line(line) else None
        for i, line in enumerate(lines)
    }
