"""
In-memory workspace store.

A workspace is one VFS with its preview assembler and preview session.
Workspaces live for the lifetime of the process, capped at MAX_WORKSPACES.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from server.config import settings
from workbench.kernel.preview import BuildResult, PreviewAssembler, PreviewConfig, PreviewSession
from workbench.kernel.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)


class WorkspaceNotFound(Exception):
    """No workspace with this id."""

    pass


class WorkspaceLimitReached(Exception):
    """The store already holds MAX_WORKSPACES workspaces."""

    pass


@dataclass
class Workspace:
    id: str
    vfs: VirtualFileSystem
    assembler: PreviewAssembler
    session: PreviewSession
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def preview(self, entry_path: str | None = None) -> BuildResult:
        """Rebuild the preview. Falls back to auto-detection when the configured entry is absent."""
        if entry_path is None and self.vfs.is_file(settings.PREVIEW_ENTRY_PATH):
            entry_path = settings.PREVIEW_ENTRY_PATH
        return self.session.refresh(entry_path)

    def close(self) -> None:
        self.session.close()
        self.assembler.transformer.close()


class WorkspaceStore:
    def __init__(
        self,
        max_workspaces: int = settings.MAX_WORKSPACES,
        config: PreviewConfig | None = None,
    ) -> None:
        self.max_workspaces = max_workspaces
        self.config = config or PreviewConfig(
            externals=settings.PREVIEW_EXTERNALS,
            title=settings.PREVIEW_TITLE,
        )
        self._workspaces: dict[str, Workspace] = {}

    def __len__(self) -> int:
        return len(self._workspaces)

    def create(self, snapshot: Mapping[str, Any] | None = None) -> Workspace:
        """
        Create a workspace, optionally seeded from a serialized VFS.
        Raises InvalidSnapshotError for a bad snapshot and WorkspaceLimitReached at capacity.
        """
        if len(self._workspaces) >= self.max_workspaces:
            raise WorkspaceLimitReached(f"Workspace limit of {self.max_workspaces} reached")
        vfs = VirtualFileSystem.from_snapshot(snapshot) if snapshot is not None else VirtualFileSystem()
        assembler = PreviewAssembler(vfs, self.config)
        workspace = Workspace(
            id=uuid.uuid4().hex,
            vfs=vfs,
            assembler=assembler,
            session=PreviewSession(assembler),
        )
        self._workspaces[workspace.id] = workspace
        logger.info("workspaces: created %s (%d files)", workspace.id, len(vfs.get_all_files()))
        return workspace

    def get(self, workspace_id: str) -> Workspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            raise WorkspaceNotFound(workspace_id)
        return workspace

    def delete(self, workspace_id: str) -> None:
        workspace = self._workspaces.pop(workspace_id, None)
        if workspace is None:
            raise WorkspaceNotFound(workspace_id)
        workspace.close()
        logger.info("workspaces: deleted %s", workspace_id)

    def clear(self) -> None:
        for workspace in self._workspaces.values():
            workspace.close()
        self._workspaces.clear()


# Singleton instance
workspace_store = WorkspaceStore()
