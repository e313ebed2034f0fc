"""
Workbench Kernel — Command Surface

Applies one file command to a VFS. execute_command never raises for VFS
failures: every outcome is a CommandResult, with a stable error_kind for
rejected commands.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from workbench.kernel.errors import VFSError
from workbench.kernel.vfs import VirtualFileSystem

OPERATIONS = (
    "create_file",
    "create_directory",
    "read_file",
    "write_file",
    "delete_node",
    "rename_node",
    "exists",
    "list_directory",
)


@dataclass
class FileCommand:
    op: str
    path: str
    content: str | None = None
    new_path: str | None = None


@dataclass
class CommandResult:
    """
    Outcome of one command.
    On failure `success` is False and `error_kind` is one of not_found,
    already_exists, invalid_operation, type_mismatch, invalid_command.
    """

    success: bool
    error_kind: str | None = None
    message: str | None = None
    content: str | None = None
    entries: list[str] = field(default_factory=list)
    exists: bool | None = None
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "error_kind": self.error_kind,
            "message": self.message,
            "content": self.content,
            "entries": self.entries,
            "exists": self.exists,
            "path": self.path,
        }


def execute_command(vfs: VirtualFileSystem, command: FileCommand) -> CommandResult:
    handler = _HANDLERS.get(command.op)
    if handler is None:
        return _invalid(f"Unknown operation: {command.op}")
    if not isinstance(command.path, str):
        return _invalid("path must be a string")
    try:
        return handler(vfs, command)
    except VFSError as e:
        return CommandResult(success=False, error_kind=e.kind, message=e.message, path=e.path)


def _invalid(message: str) -> CommandResult:
    return CommandResult(success=False, error_kind="invalid_command", message=message)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _create_file(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    path = vfs.create_file(cmd.path, cmd.content or "")
    return CommandResult(success=True, path=path)


def _create_directory(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    return CommandResult(success=True, path=vfs.create_directory(cmd.path))


def _read_file(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    return CommandResult(success=True, content=vfs.read_file(cmd.path))


def _write_file(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    if cmd.content is None:
        return _invalid("write_file requires content")
    return CommandResult(success=True, path=vfs.write_file(cmd.path, cmd.content))


def _delete_node(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    removed = vfs.delete_node(cmd.path)
    return CommandResult(success=True, entries=removed)


def _rename_node(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    if not cmd.new_path:
        return _invalid("rename_node requires new_path")
    return CommandResult(success=True, path=vfs.rename_node(cmd.path, cmd.new_path))


def _exists(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    return CommandResult(success=True, exists=vfs.exists(cmd.path))


def _list_directory(vfs: VirtualFileSystem, cmd: FileCommand) -> CommandResult:
    return CommandResult(success=True, entries=vfs.list_directory(cmd.path))


_HANDLERS: dict[str, Callable[[VirtualFileSystem, FileCommand], CommandResult]] = {
    "create_file": _create_file,
    "create_directory": _create_directory,
    "read_file": _read_file,
    "write_file": _write_file,
    "delete_node": _delete_node,
    "rename_node": _rename_node,
    "exists": _exists,
    "list_directory": _list_directory,
}
