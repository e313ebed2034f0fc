"""Workspace routes: files, snapshots, commands, tools and the live preview."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import HTMLResponse, JSONResponse

from server.models.workspace import (
    CommandRequest,
    CreateWorkspaceRequest,
    FilesResponse,
    SnapshotRequest,
    SnapshotResponse,
    ToolRequest,
    ToolResponse,
    WorkspaceResponse,
)
from server.services.workspaces import (
    Workspace,
    WorkspaceLimitReached,
    WorkspaceNotFound,
    workspace_store,
)
from workbench.kernel.commands import FileCommand, execute_command
from workbench.kernel.errors import InvalidSnapshotError
from workbench.kernel.tools import TOOL_NAMES, describe_tool_call, run_tool

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/workspaces", tags=["workspaces"])

# Rejected commands map onto HTTP statuses by error kind.
_COMMAND_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "already_exists": status.HTTP_409_CONFLICT,
    "type_mismatch": status.HTTP_409_CONFLICT,
    "invalid_operation": status.HTTP_400_BAD_REQUEST,
    "invalid_command": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _get_workspace(workspace_id: str) -> Workspace:
    try:
        return workspace_store.get(workspace_id)
    except WorkspaceNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found.") from None


def _summary(workspace: Workspace) -> WorkspaceResponse:
    return WorkspaceResponse(
        id=workspace.id,
        files=list(workspace.vfs.get_all_files()),
        revision=workspace.vfs.revision,
    )


@router.post("", status_code=201)
async def create_workspace(req: CreateWorkspaceRequest) -> WorkspaceResponse:
    """Create a workspace, empty or seeded from a snapshot."""
    try:
        workspace = workspace_store.create(req.snapshot)
    except InvalidSnapshotError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message) from None
    except WorkspaceLimitReached as e:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e)) from None
    return _summary(workspace)


@router.delete("/{workspace_id}", status_code=200)
async def delete_workspace(workspace_id: str) -> dict[str, bool]:
    try:
        workspace_store.delete(workspace_id)
    except WorkspaceNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found.") from None
    return {"deleted": True}


@router.get("/{workspace_id}/files", status_code=200)
async def list_files(workspace_id: str) -> FilesResponse:
    workspace = _get_workspace(workspace_id)
    return FilesResponse(files=workspace.vfs.get_all_files(), revision=workspace.vfs.revision)


@router.get("/{workspace_id}/snapshot", status_code=200)
async def get_snapshot(workspace_id: str) -> SnapshotResponse:
    workspace = _get_workspace(workspace_id)
    return SnapshotResponse(snapshot=workspace.vfs.serialize(), revision=workspace.vfs.revision)


@router.put("/{workspace_id}/snapshot", status_code=200)
async def replace_snapshot(workspace_id: str, req: SnapshotRequest) -> SnapshotResponse:
    """Replace the whole tree. A rejected snapshot leaves the workspace unchanged."""
    workspace = _get_workspace(workspace_id)
    try:
        workspace.vfs.deserialize(req.snapshot)
    except InvalidSnapshotError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.message) from None
    return SnapshotResponse(snapshot=workspace.vfs.serialize(), revision=workspace.vfs.revision)


@router.post("/{workspace_id}/commands")
async def run_command(workspace_id: str, req: CommandRequest) -> JSONResponse:
    workspace = _get_workspace(workspace_id)
    result = execute_command(
        workspace.vfs,
        FileCommand(op=req.op, path=req.path, content=req.content, new_path=req.new_path),
    )
    code = status.HTTP_200_OK if result.success else _COMMAND_STATUS[result.error_kind]
    return JSONResponse(status_code=code, content=result.to_dict())


@router.post("/{workspace_id}/tools/{tool_name}", status_code=200)
async def call_tool(workspace_id: str, tool_name: str, req: ToolRequest) -> ToolResponse:
    """Run one editing tool. Tool-level failures are part of the result, not HTTP errors."""
    workspace = _get_workspace(workspace_id)
    if tool_name not in TOOL_NAMES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown tool: {tool_name}")
    try:
        result = run_tool(workspace.vfs, tool_name, req.arguments)
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from None
    return ToolResponse(label=describe_tool_call(tool_name, req.arguments), result=result)


@router.get("/{workspace_id}/preview", response_class=HTMLResponse, response_model=None)
async def get_preview(workspace_id: str, entry: str | None = None) -> HTMLResponse | JSONResponse:
    """
    Build and serve the preview document.

    A failed build returns 422 with the build error; the session keeps the
    last good document for the next successful request.
    """
    workspace = _get_workspace(workspace_id)
    result = workspace.preview(entry)
    if result.document is None:
        logger.warning("workspaces: preview failed for %s: %s", workspace_id, result.error)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"error": result.error.to_dict()},
        )
    return HTMLResponse(content=result.document.html)
