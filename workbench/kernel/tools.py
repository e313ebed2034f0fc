"""
Editing tools exposed to an assistant.

Two tools operate on a workspace VFS:

  str_replace_editor  view / create / str_replace / insert / undo_edit
  file_manager        rename / delete

Tool results are plain strings (str_replace_editor) or small dicts
(file_manager). Failures are reported in the result, never raised, so a
tool call can always be echoed back to the caller.
"""

from __future__ import annotations

import logging
from typing import Any

from workbench.kernel.errors import VFSError
from workbench.kernel.paths import base_name, normalize_path
from workbench.kernel.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

TOOLS = [
    {
        "name": "str_replace_editor",
        "description": (
            "View, create and edit files in the workspace. "
            "view shows a file with line numbers or lists a directory; "
            "create writes a new file (parent directories are created); "
            "str_replace replaces every occurrence of old_str with new_str; "
            "insert adds new_str after line insert_line (0 inserts at the top)."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "enum": ["view", "create", "str_replace", "insert", "undo_edit"],
                },
                "path": {
                    "type": "string",
                    "description": "Absolute path, e.g. /App.jsx",
                },
                "file_text": {
                    "type": "string",
                    "description": "Content of the new file (for create)",
                },
                "old_str": {"type": "string"},
                "new_str": {"type": "string"},
                "insert_line": {
                    "type": "integer",
                    "description": "Line after which new_str is inserted (for insert)",
                },
                "view_range": {
                    "type": "array",
                    "items": {"type": "integer"},
                    "description": "[start, end] line numbers, 1-based; end -1 reads to the end",
                },
            },
            "required": ["command", "path"],
        },
    },
    {
        "name": "file_manager",
        "description": (
            "Rename or delete files and directories. "
            "rename moves a node to new_path, creating parent directories; "
            "delete removes a node and everything beneath it."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "enum": ["rename", "delete"],
                },
                "path": {"type": "string"},
                "new_path": {
                    "type": "string",
                    "description": "Destination path (for rename)",
                },
            },
            "required": ["command", "path"],
        },
    },
]

TOOL_NAMES = tuple(tool["name"] for tool in TOOLS)


def run_tool(vfs: VirtualFileSystem, name: str, args: dict[str, Any]) -> str | dict[str, Any]:
    """
    Dispatch a tool call by name.
    Raises ValueError for unknown tools or calls missing command/path.
    """
    missing = [key for key in ("command", "path") if not isinstance(args.get(key), str)]
    if name in TOOL_NAMES and missing:
        raise ValueError(f"{name} requires {', '.join(missing)}")
    if name == "str_replace_editor":
        return str_replace_editor(vfs, **args)
    if name == "file_manager":
        return file_manager(vfs, **args)
    raise ValueError(f"Unknown tool: {name}")


# ---------------------------------------------------------------------------
# str_replace_editor
# ---------------------------------------------------------------------------


def str_replace_editor(
    vfs: VirtualFileSystem,
    command: str,
    path: str,
    file_text: str | None = None,
    old_str: str | None = None,
    new_str: str | None = None,
    insert_line: int | None = None,
    view_range: list[int] | None = None,
    **_: Any,
) -> str:
    npath = normalize_path(path)
    if command == "view":
        return _view(vfs, npath, view_range)
    if command == "create":
        return _create(vfs, npath, file_text or "")
    if command == "str_replace":
        return _str_replace(vfs, npath, old_str or "", new_str or "")
    if command == "insert":
        return _insert(vfs, npath, insert_line or 0, new_str or "")
    if command == "undo_edit":
        return (
            "Error: undo_edit command is not supported in this version. "
            "Use str_replace to revert changes."
        )
    return f"Error: Unknown command: {command}"


def _view(vfs: VirtualFileSystem, path: str, view_range: list[int] | None) -> str:
    if not vfs.exists(path):
        return f"File not found: {path}"
    if vfs.is_directory(path):
        names = vfs.list_directory(path)
        if not names:
            return "(empty directory)"
        lines = []
        for name in names:
            child = path.rstrip("/") + "/" + name
            marker = "[DIR]" if vfs.is_directory(child) else "[FILE]"
            lines.append(f"{marker} {name}")
        return "\n".join(lines)

    lines = vfs.read_file(path).split("\n")
    start, end = 1, len(lines)
    if view_range:
        start = max(view_range[0], 1)
        if len(view_range) > 1 and view_range[1] != -1:
            end = min(view_range[1], len(lines))
    return "\n".join(f"{n}\t{lines[n - 1]}" for n in range(start, end + 1))


def _create(vfs: VirtualFileSystem, path: str, text: str) -> str:
    if vfs.exists(path):
        return f"Error: File already exists: {path}"
    try:
        vfs.create_file(path, text)
    except VFSError as e:
        return f"Error: {e.message}"
    return f"File created: {path}"


def _editable(vfs: VirtualFileSystem, path: str) -> str | None:
    """Error message if `path` is not an existing file, else None."""
    if not vfs.exists(path):
        return f"Error: File not found: {path}"
    if vfs.is_directory(path):
        return f"Error: Cannot edit a directory: {path}"
    return None


def _str_replace(vfs: VirtualFileSystem, path: str, old: str, new: str) -> str:
    error = _editable(vfs, path)
    if error:
        return error
    content = vfs.read_file(path)
    count = content.count(old) if old else 0
    if count == 0:
        return f'Error: String not found in file: "{old}"'
    vfs.write_file(path, content.replace(old, new))
    return f"Replaced {count} occurrence(s) of the string in {path}"


def _insert(vfs: VirtualFileSystem, path: str, line: int, text: str) -> str:
    error = _editable(vfs, path)
    if error:
        return error
    lines = vfs.read_file(path).split("\n")
    if line < 0 or line > len(lines):
        return f"Error: Invalid line number: {line}. File has {len(lines)} lines."
    lines.insert(line, text)
    vfs.write_file(path, "\n".join(lines))
    return f"Text inserted at line {line} in {path}"


# ---------------------------------------------------------------------------
# file_manager
# ---------------------------------------------------------------------------


def file_manager(
    vfs: VirtualFileSystem,
    command: str,
    path: str,
    new_path: str | None = None,
    **_: Any,
) -> dict[str, Any]:
    if command == "rename":
        if not new_path:
            return {"success": False, "error": "new_path is required for rename command"}
        try:
            vfs.rename_node(path, new_path)
        except VFSError as e:
            logger.debug("tools: rename %s -> %s rejected: %s", path, new_path, e)
            return {"success": False, "error": f"Failed to rename {path} to {new_path}"}
        return {"success": True, "message": f"Successfully renamed {path} to {new_path}"}

    if command == "delete":
        try:
            vfs.delete_node(path)
        except VFSError as e:
            logger.debug("tools: delete %s rejected: %s", path, e)
            return {"success": False, "error": f"Failed to delete {path}"}
        return {"success": True, "message": f"Successfully deleted {path}"}

    return {"success": False, "error": "Invalid command"}


# ---------------------------------------------------------------------------
# Progress labels
# ---------------------------------------------------------------------------


def describe_tool_call(name: str, args: dict[str, Any]) -> str:
    """Short human-readable label for a tool call, e.g. "Editing App.jsx"."""
    path = args.get("path")
    target = base_name(path) if path else "file"
    command = args.get("command")

    if name == "str_replace_editor":
        if command == "create":
            return f"Creating {target}"
        if command == "view":
            return f"Viewing {target}"
        if command in ("str_replace", "insert"):
            return f"Editing {target}"
        if command == "undo_edit":
            return f"Undoing changes to {target}"
        return f"Modifying {target}"

    if name == "file_manager":
        if command == "rename":
            new_path = args.get("new_path")
            destination = base_name(new_path) if new_path else "new location"
            return f"Renaming {target} → {destination}"
        if command == "delete":
            return f"Deleting {target}"
        return f"Managing {target}"

    return name
