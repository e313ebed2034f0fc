"""
Workbench Kernel — Error Taxonomy

Every failure the kernel reports is one of these. VFS errors carry a stable
`kind` string so the command surface and the HTTP layer can report them
without inspecting messages.

  WorkbenchError
  ├── VFSError
  │   ├── PathError (NotFoundError, AlreadyExistsError, InvalidOperationError)
  │   ├── TypeMismatchError
  │   └── InvalidSnapshotError
  ├── TransformError
  └── ResolutionError
"""

from __future__ import annotations


class WorkbenchError(Exception):
    """Base class for all kernel errors."""

    pass


# ---------------------------------------------------------------------------
# VFS
# ---------------------------------------------------------------------------


class VFSError(WorkbenchError):
    """A file-system operation was rejected. The tree is unchanged."""

    kind = "vfs_error"

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
        self.message = message


class PathError(VFSError):
    kind = "path_error"


class NotFoundError(PathError):
    """No node exists at the path."""

    kind = "not_found"


class AlreadyExistsError(PathError):
    """A node already occupies the path."""

    kind = "already_exists"


class InvalidOperationError(PathError):
    """The operation is never allowed on this path (root, or a move into itself)."""

    kind = "invalid_operation"


class TypeMismatchError(VFSError):
    """File used where a directory is required, or the reverse."""

    kind = "type_mismatch"


class InvalidSnapshotError(VFSError):
    """A serialized snapshot violates the tree invariants."""

    kind = "invalid_snapshot"


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------


class TransformError(WorkbenchError):
    """Source could not be turned into executable module code."""

    def __init__(self, path: str, message: str, line: int | None = None) -> None:
        self.path = path
        self.message = message
        self.line = line
        where = f"{path}:{line}" if line is not None else path
        super().__init__(f"{where}: {message}")


class ResolutionError(WorkbenchError):
    """An import target is missing, or an external specifier has no mapping."""

    def __init__(self, path: str, specifier: str | None, message: str) -> None:
        self.path = path
        self.specifier = specifier
        self.message = message
        super().__init__(f"{path}: {message}")
