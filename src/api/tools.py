"""MCP tool registration for vault-assign-mcp."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from api.handlers import (
    handle_assign,
    handle_cascade,
    handle_index_status,
    handle_normalize_file,
    handle_normalize_line,
    handle_owned_tasks,
    handle_owner,
    handle_tree,
)

log = logging.getLogger(__name__)


def register_tools(
    mcp: FastMCP,
    index,
    team=None,
    strict: bool = True,
    variant: str = "active",
) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    # ------------------------------------------------------------------
    # Assignment tools
    # ------------------------------------------------------------------

    @mcp.tool()
    def task_assign(
        file_path: str,
        line: int,
        alias: Optional[str] = None,
        old_alias: Optional[str] = None,
    ) -> str:
        """
        Assign a task to a team member and keep its subtree's ownership stable.

        Subtasks that inherited the previous owner get that owner pinned
        explicitly; explicit marks that become redundant are removed. Assigning
        a task to the owner it already inherits leaves it implicit.

        Args:
            file_path: Markdown file, absolute or relative to the vault root
            line: 1-based line number of the task
            alias: Member alias, "team" for Everyone, or omit to unassign
            old_alias: Previous owner; read from the line when omitted

        Returns:
            JSON report of the lines that changed, or {"error": ...}
        """
        return json.dumps(handle_assign(
            index,
            file_path=file_path,
            line=line,
            alias=alias,
            old_alias=old_alias,
            variant=variant,
            team=team,
            strict=strict,
        ))

    @mcp.tool()
    def task_cascade(
        file_path: str,
        line: int,
        alias: Optional[str] = None,
        old_alias: Optional[str] = None,
        before_content: Optional[str] = None,
    ) -> str:
        """
        Re-stabilise a subtree after its root's assignee was changed elsewhere.

        Use this when the line itself was already rewritten by another tool.

        Args:
            file_path: Markdown file, absolute or relative to the vault root
            line: 1-based line number of the changed task
            alias: The new owner now on that line (omit if it was unassigned)
            old_alias: The owner before the change
            before_content: Full file content before the change, if old_alias is unknown

        Returns:
            JSON report of the lines that changed, or {"error": ...}
        """
        return json.dumps(handle_cascade(
            index,
            file_path=file_path,
            line=line,
            alias=alias,
            old_alias=old_alias,
            before_content=before_content,
            team=team,
            strict=strict,
        ))

    @mcp.tool()
    def task_owner(file_path: str, line: int) -> str:
        """
        Effective owner of a list item and the line that assigns it.

        Returns:
            JSON {alias, source_line, explicit, ...}
        """
        return json.dumps(handle_owner(index, file_path=file_path, line=line))

    @mcp.tool()
    def tasks_owned_by(alias: str) -> str:
        """
        Every task in the vault whose effective owner is alias, explicit or inherited.

        Returns:
            JSON array of {id, file_path, line, status, text, explicit}
        """
        return json.dumps(handle_owned_tasks(index, alias=alias))

    # ------------------------------------------------------------------
    # Formatting tools
    # ------------------------------------------------------------------

    @mcp.tool()
    def line_normalize(
        line: str,
        assignee: Optional[str] = None,
        delegate: Optional[str] = None,
        clear_assignee: bool = False,
        clear_delegate: bool = False,
    ) -> str:
        """
        Rewrite one task line in canonical field order.

        Args:
            line: The raw line
            assignee: Replacement assignee mark markup
            delegate: Replacement delegate mark markup
            clear_assignee: Remove the assignee mark
            clear_delegate: Remove the delegate mark

        Returns:
            JSON {line, changed}
        """
        options = {}
        if clear_assignee or assignee:
            options["assignee"] = None if clear_assignee else assignee
        if clear_delegate or delegate:
            options["delegate"] = None if clear_delegate else delegate
        return json.dumps(handle_normalize_line(line=line, options=options, strict=strict))

    @mcp.tool()
    def file_normalize(file_path: str) -> str:
        """
        Rewrite every task line of a file in canonical field order.
        The file is only written if something changed.
        """
        return json.dumps(handle_normalize_file(index, file_path=file_path, strict=strict))

    # ------------------------------------------------------------------
    # Index tools
    # ------------------------------------------------------------------

    @mcp.tool()
    def file_tree(file_path: str) -> str:
        """List-item tree of one Markdown file (ids, parents, 1-based lines)."""
        return json.dumps(handle_tree(index, file_path=file_path))

    @mcp.tool()
    def index_status() -> str:
        """Task index diagnostics: files indexed, last scan time, vault root."""
        return json.dumps(handle_index_status(index))

    log.info("Registered MCP tools")
