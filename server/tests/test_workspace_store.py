"""Tests for the in-memory workspace store."""

from __future__ import annotations

import pytest

from server.services.workspaces import WorkspaceLimitReached, WorkspaceNotFound, WorkspaceStore
from workbench.kernel.errors import InvalidSnapshotError


def test_create_and_get():
    store = WorkspaceStore(max_workspaces=5)
    workspace = store.create()
    assert store.get(workspace.id) is workspace
    assert len(store) == 1


def test_limit():
    store = WorkspaceStore(max_workspaces=1)
    store.create()
    with pytest.raises(WorkspaceLimitReached):
        store.create()


def test_bad_snapshot_is_not_stored():
    store = WorkspaceStore(max_workspaces=5)
    with pytest.raises(InvalidSnapshotError):
        store.create({"/a.js": {"kind": "file", "content": "1;"}})
    assert len(store) == 0


def test_delete_releases_preview_modules():
    store = WorkspaceStore(max_workspaces=5)
    workspace = store.create({"/": {"kind": "directory"}, "/App.jsx": {"kind": "file", "content": "export default 1;"}})
    assert workspace.preview().succeeded
    registry = workspace.assembler.registry
    assert registry.live_count == 1

    store.delete(workspace.id)

    assert registry.live_count == 0
    with pytest.raises(WorkspaceNotFound):
        store.get(workspace.id)
    with pytest.raises(WorkspaceNotFound):
        store.delete(workspace.id)


def test_preview_prefers_configured_entry():
    store = WorkspaceStore(max_workspaces=5)
    workspace = store.create({
        "/": {"kind": "directory"},
        "/index.tsx": {"kind": "file", "content": "export default 1;"},
        "/App.jsx": {"kind": "file", "content": "export default 2;"},
    })
    assert workspace.preview().document.entry == "/App.jsx"
