"""
Pydantic models for the workbench service.

All request and response shapes defined here. No imports from routes or services.
"""

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

__all__ = [
    "CommandRequest",
    "CreateWorkspaceRequest",
    "FilesResponse",
    "SnapshotRequest",
    "SnapshotResponse",
    "ToolRequest",
    "ToolResponse",
    "WorkspaceResponse",
]
