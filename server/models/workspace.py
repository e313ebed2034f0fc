"""Workspace models: files, snapshots, commands and tool calls."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from workbench.kernel.commands import OPERATIONS

Operation = Literal[OPERATIONS]


class CreateWorkspaceRequest(BaseModel):
    """What the client sends to POST /api/workspaces."""

    model_config = {"extra": "forbid"}

    snapshot: dict[str, Any] | None = None  # serialized VFS to seed from


class WorkspaceResponse(BaseModel):
    id: str
    files: list[str]
    revision: int


class FilesResponse(BaseModel):
    files: dict[str, str]  # path → content
    revision: int


class SnapshotRequest(BaseModel):
    """Replace the whole tree."""

    model_config = {"extra": "forbid"}

    snapshot: dict[str, Any]


class SnapshotResponse(BaseModel):
    snapshot: dict[str, Any]
    revision: int


class CommandRequest(BaseModel):
    """One file command, applied with execute_command."""

    model_config = {"extra": "forbid"}

    op: Operation
    path: str = Field(min_length=1, max_length=1024)
    content: str | None = None
    new_path: str | None = Field(default=None, max_length=1024)


class ToolRequest(BaseModel):
    """Arguments for one editing tool call."""

    model_config = {"extra": "forbid"}

    arguments: dict[str, Any]


class ToolResponse(BaseModel):
    label: str  # e.g. "Editing App.jsx"
    result: str | dict[str, Any]
