"""REST API routes for vault-assign-mcp."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from api.handlers import (
    NOT_FOUND_REASONS,
    handle_assign,
    handle_cascade,
    handle_index_status,
    handle_normalize_file,
    handle_normalize_line,
    handle_owned_tasks,
    handle_owner,
    handle_tree,
)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class AssignBody(BaseModel):
    file_path: str
    line: int
    alias: Optional[str] = None
    old_alias: Optional[str] = None


class CascadeBody(BaseModel):
    file_path: str
    line: int
    alias: Optional[str] = None
    old_alias: Optional[str] = None
    before_content: Optional[str] = None


class NormalizeLineBody(BaseModel):
    """assignee / delegate: omit to keep the slot, null to clear it, markup to replace it."""

    line: str
    assignee: Optional[str] = None
    delegate: Optional[str] = None


class NormalizeFileBody(BaseModel):
    file_path: str


def _raise_for_error(result):
    if isinstance(result, dict) and "error" in result:
        status = 404 if result.get("reason") in NOT_FOUND_REASONS else 400
        raise HTTPException(status_code=status, detail=result["error"])
    return result


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def register_routes(
    app_router: APIRouter,
    index,
    team=None,
    strict: bool = True,
    variant: str = "active",
) -> None:
    """Attach all REST routes that use the shared task index."""

    @app_router.post("/assign")
    def assign(body: AssignBody):
        return _raise_for_error(handle_assign(
            index, variant=variant, team=team, strict=strict, **body.model_dump()
        ))

    @app_router.post("/cascade")
    def cascade(body: CascadeBody):
        return _raise_for_error(handle_cascade(
            index, team=team, strict=strict, **body.model_dump()
        ))

    @app_router.get("/owner")
    def get_owner(file_path: str = Query(...), line: int = Query(..., ge=1)):
        return _raise_for_error(handle_owner(index, file_path=file_path, line=line))

    @app_router.get("/owners/{alias}/tasks")
    def get_owned_tasks(alias: str):
        return _raise_for_error(handle_owned_tasks(index, alias=alias))

    @app_router.post("/normalize/line")
    def normalize_line(body: NormalizeLineBody):
        sent = body.model_dump(exclude_unset=True)
        options = {key: sent[key] for key in ("assignee", "delegate") if key in sent}
        return _raise_for_error(handle_normalize_line(line=body.line, options=options, strict=strict))

    @app_router.post("/normalize/file")
    def normalize_file(body: NormalizeFileBody):
        return _raise_for_error(handle_normalize_file(index, file_path=body.file_path, strict=strict))

    @app_router.get("/tree")
    def get_tree(file_path: str = Query(...)):
        return _raise_for_error(handle_tree(index, file_path=file_path))

    @app_router.get("/index/status")
    def get_index_status():
        return handle_index_status(index)
