"""Assignment handler functions shared by MCP tools and REST API.

Handlers take and report 1-based line numbers. They never raise: an Err from
the service layer or an unexpected exception becomes ``{"error": ..., "reason": ...}``.
"""

import functools
import logging
from typing import Any, Dict, Optional

from cascade.applicator import FileSnapshot
from cascade.service import (
    apply_assignee_change,
    cascade_after_external_change,
    effective_owner,
    normalize_file,
    owned_tasks,
)
from models.edits import CascadeError, Err
from parsers.line_codec import normalize_task_line_with_options

log = logging.getLogger(__name__)

NOT_FOUND_REASONS = frozenset({CascadeError.MISSING_INDEX_ENTRY.value, CascadeError.MISSING_NODE.value})


def _error(reason: str, message: str) -> dict:
    return {"error": message, "reason": reason}


def _unwrap(result):
    """Turn a service Result into a handler dict."""
    if isinstance(result, Err):
        log.info("Operation skipped: %s", result.message)
        return _error(result.reason.value, result.message)
    value = result.value
    return value.to_dict() if hasattr(value, "to_dict") else value


def _boundary(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            log.exception("%s failed", fn.__name__)
            return _error("internal", str(e))
    return wrapper


@_boundary
def handle_assign(
    index,
    *,
    file_path: str,
    line: int,
    alias: Optional[str],
    old_alias: Optional[str] = None,
    variant: str = "active",
    team=None,
    strict: bool = True,
) -> dict:
    path = index.resolve_path(file_path)
    if not path.is_file():
        return _error(CascadeError.MISSING_INDEX_ENTRY.value, f"File '{file_path}' not found")
    buffer = FileSnapshot(path)
    return _unwrap(apply_assignee_change(
        buffer,
        path,
        line - 1,
        alias,
        index=index,
        old_alias=old_alias,
        variant=variant,
        team=team,
        strict=strict,
    ))


@_boundary
def handle_cascade(
    index,
    *,
    file_path: str,
    line: int,
    alias: Optional[str],
    old_alias: Optional[str] = None,
    before_content: Optional[str] = None,
    team=None,
    strict: bool = True,
) -> dict:
    return _unwrap(cascade_after_external_change(
        index,
        file_path,
        line - 1,
        alias,
        old_alias=old_alias,
        before_content=before_content,
        team=team,
        strict=strict,
    ))


@_boundary
def handle_owner(index, *, file_path: str, line: int) -> dict:
    return _unwrap(effective_owner(index, file_path, line - 1))


@_boundary
def handle_owned_tasks(index, *, alias: str):
    return owned_tasks(index, alias)


@_boundary
def handle_normalize_line(*, line: str, options: Optional[Dict[str, Any]] = None, strict: bool = True) -> dict:
    """
    Canonicalise one line. ``options`` keys follow override semantics:
    a missing key leaves the slot, a None value clears it.
    """
    normalized = normalize_task_line_with_options(line, options or {}, strict=strict)
    return {"line": normalized, "changed": normalized != line}


@_boundary
def handle_normalize_file(index, *, file_path: str, strict: bool = True) -> dict:
    return _unwrap(normalize_file(index, file_path, strict=strict))


@_boundary
def handle_tree(index, *, file_path: str) -> dict:
    index.refresh(file_path)
    tree = index.get_tree(file_path)
    if tree is None:
        return _error(CascadeError.MISSING_INDEX_ENTRY.value, f"File '{file_path}' is not indexed")
    return tree.to_dict()


@_boundary
def handle_index_status(index) -> dict:
    return index.status()
