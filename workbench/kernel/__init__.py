"""
Workbench Kernel — the pure engine.

Four components:
  vfs          — in-memory directory tree (flat path → node mapping)
  paths        — path normalization and import resolution
  transformer  — TSX/TS/CSS/JSON → ES module code (cached per file)
  preview      — import graph → self-contained HTML document

Surfaces over the VFS:
  commands     — execute_command, never raises
  tools        — str_replace_editor and file_manager
"""

from workbench.kernel.commands import CommandResult, FileCommand, execute_command
from workbench.kernel.errors import (
    AlreadyExistsError,
    InvalidOperationError,
    InvalidSnapshotError,
    NotFoundError,
    PathError,
    ResolutionError,
    TransformError,
    TypeMismatchError,
    VFSError,
    WorkbenchError,
)
from workbench.kernel.paths import normalize_path, resolve_import
from workbench.kernel.preview import (
    DEFAULT_EXTERNALS,
    BuildError,
    BuildResult,
    PreviewAssembler,
    PreviewConfig,
    PreviewDocument,
    PreviewSession,
    build_preview,
)
from workbench.kernel.registry import InlineModuleRegistry, ModuleRegistry
from workbench.kernel.tools import TOOLS, describe_tool_call, run_tool
from workbench.kernel.transformer import TransformResult, Transformer
from workbench.kernel.vfs import FileChange, Node, VirtualFileSystem

__all__ = [
    "VirtualFileSystem",
    "Node",
    "FileChange",
    "normalize_path",
    "resolve_import",
    "Transformer",
    "TransformResult",
    "PreviewAssembler",
    "PreviewConfig",
    "PreviewDocument",
    "PreviewSession",
    "BuildResult",
    "BuildError",
    "DEFAULT_EXTERNALS",
    "build_preview",
    "ModuleRegistry",
    "InlineModuleRegistry",
    "FileCommand",
    "CommandResult",
    "execute_command",
    "TOOLS",
    "run_tool",
    "describe_tool_call",
    "WorkbenchError",
    "VFSError",
    "PathError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidOperationError",
    "TypeMismatchError",
    "InvalidSnapshotError",
    "TransformError",
    "ResolutionError",
]
