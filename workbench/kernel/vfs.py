"""
Workbench Kernel — Virtual File System

An in-memory directory tree stored as a flat mapping from normalized
absolute path to Node. Directories list their children by path, so rename
and delete are key-prefix rewrites over the mapping rather than pointer
surgery.

Every public operation normalizes its path arguments, validates all
preconditions, and only then mutates. A rejected operation raises a
VFSError subclass and leaves the tree exactly as it was.

Not safe for concurrent mutation. One instance per editing session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from workbench.kernel.errors import (
    AlreadyExistsError,
    InvalidOperationError,
    InvalidSnapshotError,
    NotFoundError,
    TypeMismatchError,
)
from workbench.kernel.paths import (
    ROOT,
    ancestors,
    base_name,
    is_within,
    normalize_path,
    parent_path,
    rebase,
)

logger = logging.getLogger(__name__)

NodeKind = Literal["file", "directory"]
ChangeKind = Literal["created", "modified", "deleted", "renamed"]

FILE: NodeKind = "file"
DIRECTORY: NodeKind = "directory"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Node:
    """One entry in the tree. Files hold content; directories hold child paths."""

    path: str
    kind: NodeKind
    content: str | None = None
    children: set[str] = field(default_factory=set)

    @property
    def is_file(self) -> bool:
        return self.kind == FILE

    @property
    def is_directory(self) -> bool:
        return self.kind == DIRECTORY

    @property
    def name(self) -> str:
        return base_name(self.path)


@dataclass(frozen=True, slots=True)
class FileChange:
    """Notification sent to subscribers after a successful mutation."""

    kind: ChangeKind
    path: str
    node_kind: NodeKind
    new_path: str | None = None


ChangeListener = Callable[[FileChange], None]


# ---------------------------------------------------------------------------
# VirtualFileSystem
# ---------------------------------------------------------------------------


class VirtualFileSystem:
    def __init__(self) -> None:
        self._nodes: dict[str, Node] = {ROOT: Node(ROOT, DIRECTORY)}
        self._listeners: list[ChangeListener] = []
        self._revision = 0

    def __repr__(self) -> str:
        files = sum(1 for n in self._nodes.values() if n.is_file)
        return f"VirtualFileSystem(files={files}, directories={len(self._nodes) - files})"

    @property
    def revision(self) -> int:
        """Incremented on every successful mutation."""
        return self._revision

    # -- change notification --

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> tuple[ChangeListener, ...]:
        return tuple(self._listeners)

    def _emit(self, changes: list[FileChange]) -> None:
        self._revision += 1
        for change in changes:
            for listener in list(self._listeners):
                listener(change)

    # -- lookup helpers --

    def _get(self, npath: str) -> Node | None:
        return self._nodes.get(npath)

    def _require(self, npath: str) -> Node:
        node = self._nodes.get(npath)
        if node is None:
            raise NotFoundError(f"No such file or directory: {npath}", npath)
        return node

    def _missing_ancestors(self, npath: str) -> list[str]:
        """
        Ancestors of `npath` that do not exist yet, root first.
        Raises TypeMismatchError if an existing ancestor is a file.
        """
        missing: list[str] = []
        for ancestor in ancestors(npath):
            node = self._nodes.get(ancestor)
            if node is None:
                missing.append(ancestor)
            elif node.is_file:
                raise TypeMismatchError(f"Not a directory: {ancestor}", ancestor)
        return missing

    def _attach(self, node: Node) -> None:
        self._nodes[node.path] = node
        if node.path != ROOT:
            self._nodes[parent_path(node.path)].children.add(node.path)

    def _detach(self, npath: str) -> Node:
        node = self._nodes.pop(npath)
        parent = self._nodes.get(parent_path(npath))
        if parent is not None:
            parent.children.discard(npath)
        return node

    def _make_dirs(self, paths: list[str]) -> list[FileChange]:
        changes = []
        for dpath in paths:
            self._attach(Node(dpath, DIRECTORY))
            changes.append(FileChange("created", dpath, DIRECTORY))
        return changes

    def _subtree(self, npath: str) -> list[str]:
        """`npath` and all its descendants, parents before children."""
        result: list[str] = []
        stack = [npath]
        while stack:
            current = stack.pop()
            result.append(current)
            node = self._nodes[current]
            if node.is_directory:
                stack.extend(sorted(node.children, reverse=True))
        return result

    # -- public API: creation --

    def create_file(self, path: str, content: str = "") -> str:
        """Create a file, creating missing parent directories. Returns the normalized path."""
        npath = normalize_path(path)
        if npath in self._nodes:
            raise AlreadyExistsError(f"File already exists: {npath}", npath)
        missing = self._missing_ancestors(npath)
        changes = self._make_dirs(missing)
        self._attach(Node(npath, FILE, content=content))
        changes.append(FileChange("created", npath, FILE))
        self._emit(changes)
        return npath

    def create_directory(self, path: str) -> str:
        """Create a directory and any missing parents. Existing directories are fine."""
        npath = normalize_path(path)
        node = self._get(npath)
        if node is not None:
            if node.is_file:
                raise TypeMismatchError(f"A file exists at path: {npath}", npath)
            return npath
        missing = self._missing_ancestors(npath)
        missing.append(npath)
        self._emit(self._make_dirs(missing))
        return npath

    # -- public API: file content --

    def read_file(self, path: str) -> str:
        npath = normalize_path(path)
        node = self._require(npath)
        if node.is_directory:
            raise TypeMismatchError(f"Is a directory: {npath}", npath)
        assert node.content is not None
        return node.content

    def write_file(self, path: str, content: str) -> str:
        """Overwrite a file, or create it (with parents) when absent."""
        npath = normalize_path(path)
        node = self._get(npath)
        if node is None:
            return self.create_file(npath, content)
        if node.is_directory:
            raise TypeMismatchError(f"Is a directory: {npath}", npath)
        if node.content != content:
            node.content = content
            self._emit([FileChange("modified", npath, FILE)])
        return npath

    # -- public API: delete / rename --

    def delete_node(self, path: str) -> list[str]:
        """
        Delete a file, or a directory and everything beneath it.
        Returns the removed paths, parents first.
        """
        npath = normalize_path(path)
        if npath == ROOT:
            raise InvalidOperationError("Cannot delete the root directory", npath)
        self._require(npath)

        removed = self._subtree(npath)
        changes = [FileChange("deleted", p, self._nodes[p].kind) for p in removed]
        for p in reversed(removed):
            self._detach(p)
        logger.debug("vfs: deleted %s (%d nodes)", npath, len(removed))
        self._emit(changes)
        return removed

    def rename_node(self, old_path: str, new_path: str) -> str:
        """
        Move a file or a directory subtree to `new_path`.

        Missing ancestors of `new_path` are created. Every descendant keeps its
        content and its position relative to the moved node.
        """
        nold = normalize_path(old_path)
        nnew = normalize_path(new_path)
        if nold == ROOT:
            raise InvalidOperationError("Cannot rename the root directory", nold)
        source = self._require(nold)
        if nnew in self._nodes:
            raise AlreadyExistsError(f"Destination already exists: {nnew}", nnew)
        if source.is_directory and is_within(nnew, nold):
            raise InvalidOperationError(f"Cannot move {nold} into itself", nnew)
        missing = self._missing_ancestors(nnew)

        # Preconditions hold; nothing below can fail.
        moved = self._subtree(nold)
        relocated = [
            Node(
                rebase(p, nold, nnew),
                self._nodes[p].kind,
                content=self._nodes[p].content,
            )
            for p in moved
        ]
        changes = self._make_dirs(missing)
        for p in reversed(moved):
            self._detach(p)
        for node in relocated:
            self._attach(node)
        changes.append(FileChange("renamed", nold, source.kind, new_path=nnew))
        logger.debug("vfs: renamed %s -> %s (%d nodes)", nold, nnew, len(moved))
        self._emit(changes)
        return nnew

    # -- public API: queries --

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._nodes

    def is_file(self, path: str) -> bool:
        node = self._get(normalize_path(path))
        return node is not None and node.is_file

    def is_directory(self, path: str) -> bool:
        node = self._get(normalize_path(path))
        return node is not None and node.is_directory

    def get_node(self, path: str) -> Node:
        return self._require(normalize_path(path))

    def list_directory(self, path: str) -> list[str]:
        """Child names of a directory, sorted."""
        npath = normalize_path(path)
        node = self._require(npath)
        if node.is_file:
            raise TypeMismatchError(f"Not a directory: {npath}", npath)
        return sorted(base_name(child) for child in node.children)

    def get_all_files(self) -> dict[str, str]:
        """Every file's content keyed by path, in path order."""
        return {
            p: node.content
            for p, node in sorted(self._nodes.items())
            if node.is_file and node.content is not None
        }

    def walk(self, path: str = ROOT) -> Iterator[Node]:
        """Yield the node at `path` and its descendants, depth-first in name order."""
        npath = normalize_path(path)
        self._require(npath)
        for p in self._subtree(npath):
            yield self._nodes[p]

    def __len__(self) -> int:
        return len(self._nodes)

    # -- serialization --

    def serialize(self) -> dict[str, dict[str, Any]]:
        """Flat JSON-compatible snapshot: path → {"kind", "content"?}."""
        snapshot: dict[str, dict[str, Any]] = {}
        for p, node in sorted(self._nodes.items()):
            if node.is_file:
                snapshot[p] = {"kind": FILE, "content": node.content}
            else:
                snapshot[p] = {"kind": DIRECTORY}
        return snapshot

    def deserialize(self, snapshot: Mapping[str, Any]) -> None:
        """
        Replace this tree with the one described by `snapshot`.
        The snapshot is fully validated first; on rejection nothing changes.
        """
        nodes = _build_nodes(snapshot)
        previous = self._nodes
        self._nodes = nodes
        changes = [FileChange("deleted", p, n.kind) for p, n in sorted(previous.items()) if p != ROOT]
        changes.extend(FileChange("created", p, n.kind) for p, n in sorted(nodes.items()) if p != ROOT)
        self._emit(changes)

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any]) -> VirtualFileSystem:
        vfs = cls()
        vfs._nodes = _build_nodes(snapshot)
        return vfs


# ---------------------------------------------------------------------------
# Snapshot validation
# ---------------------------------------------------------------------------


def _build_nodes(snapshot: Mapping[str, Any]) -> dict[str, Node]:
    """Validate a snapshot and build the node mapping it describes."""
    if not isinstance(snapshot, Mapping):
        raise InvalidSnapshotError("Snapshot must be a mapping of path to node")

    nodes: dict[str, Node] = {}
    for raw_path, entry in snapshot.items():
        if not isinstance(raw_path, str):
            raise InvalidSnapshotError(f"Snapshot key is not a string: {raw_path!r}")
        npath = normalize_path(raw_path)
        if npath in nodes:
            raise InvalidSnapshotError(f"Duplicate path after normalization: {raw_path}", npath)
        if not isinstance(entry, Mapping):
            raise InvalidSnapshotError(f"Entry for {npath} must be a mapping", npath)

        kind = entry.get("kind")
        content = entry.get("content")
        if kind == FILE:
            if content is None:
                content = ""
            if not isinstance(content, str):
                raise InvalidSnapshotError(f"File content must be a string: {npath}", npath)
            nodes[npath] = Node(npath, FILE, content=content)
        elif kind == DIRECTORY:
            if content is not None:
                raise InvalidSnapshotError(f"Directory cannot have content: {npath}", npath)
            nodes[npath] = Node(npath, DIRECTORY)
        else:
            raise InvalidSnapshotError(f"Unknown node kind {kind!r} at {npath}", npath)

    root = nodes.get(ROOT)
    if root is None:
        raise InvalidSnapshotError("Snapshot is missing the root directory", ROOT)
    if not root.is_directory:
        raise InvalidSnapshotError("Snapshot root must be a directory", ROOT)

    for npath in sorted(nodes):
        if npath == ROOT:
            continue
        parent = nodes.get(parent_path(npath))
        if parent is None:
            raise InvalidSnapshotError(f"Orphaned path (missing parent): {npath}", npath)
        if not parent.is_directory:
            raise InvalidSnapshotError(f"Parent of {npath} is a file", npath)
        parent.children.add(npath)

    return nodes
