"""
Workbench Kernel — Path Resolver

Normalizes VFS paths and resolves import specifiers against a VFS.
Pure string functions except resolve_import, which only asks the VFS
whether candidate files exist.
"""

from __future__ import annotations

import posixpath
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from workbench.kernel.vfs import VirtualFileSystem

ROOT = "/"

# Probe order for extensionless imports. Index files use the same order.
IMPORT_EXTENSIONS: tuple[str, ...] = (".tsx", ".jsx", ".ts", ".js", ".css")

# "@/components/Button" resolves from the workspace root.
ROOT_ALIAS = "@/"

_REPEATED_SLASHES = re.compile(r"/{2,}")


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_path(path: str) -> str:
    """
    Return the canonical absolute form of a path.

      "file.txt", "/file.txt", "//file.txt"  → "/file.txt"
      "/src/"                                → "/src"
      "/a/./b/../c"                          → "/a/c"
      ""                                     → "/"

    ".." never climbs above root. Idempotent.
    """
    converted = path.replace("\\", "/")
    converted = _REPEATED_SLASHES.sub("/", "/" + converted)
    return posixpath.normpath(converted)


def parent_path(path: str) -> str:
    """Parent directory of a normalized path. The parent of root is root."""
    if path == ROOT:
        return ROOT
    return posixpath.dirname(path) or ROOT


def base_name(path: str) -> str:
    return posixpath.basename(path)


def join_path(base: str, *parts: str) -> str:
    return normalize_path(posixpath.join(base, *parts))


def ancestors(path: str) -> list[str]:
    """Proper ancestors of a normalized path, root first."""
    result: list[str] = []
    current = path
    while current != ROOT:
        current = parent_path(current)
        result.append(current)
    result.reverse()
    return result


def is_within(path: str, directory: str) -> bool:
    """True if `path` is `directory` or lies beneath it."""
    if directory == ROOT:
        return True
    return path == directory or path.startswith(directory + "/")


def rebase(path: str, old_prefix: str, new_prefix: str) -> str:
    """Replace the `old_prefix` directory at the start of `path` with `new_prefix`."""
    if path == old_prefix:
        return new_prefix
    return new_prefix.rstrip("/") + path[len(old_prefix):]


def extension_of(path: str) -> str:
    """Lower-cased extension including the dot, or ""."""
    return posixpath.splitext(path)[1].lower()


# ---------------------------------------------------------------------------
# Specifiers
# ---------------------------------------------------------------------------


def is_relative_specifier(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


def is_local_specifier(specifier: str) -> bool:
    """Relative, absolute or root-aliased: anything that names a VFS file."""
    return (
        is_relative_specifier(specifier)
        or specifier.startswith("/")
        or specifier.startswith(ROOT_ALIAS)
    )


def is_bare_specifier(specifier: str) -> bool:
    """Package names, scoped packages and URLs. These resolve through the external table."""
    return bool(specifier) and not is_local_specifier(specifier)


def specifier_target(from_path: str, specifier: str) -> str | None:
    """The path a local specifier points at, before extension probing."""
    if is_relative_specifier(specifier):
        return join_path(parent_path(normalize_path(from_path)), specifier)
    if specifier.startswith(ROOT_ALIAS):
        return normalize_path(specifier[len(ROOT_ALIAS):])
    if specifier.startswith("/"):
        return normalize_path(specifier)
    return None


def import_candidates(target: str) -> list[str]:
    """Every path probed for `target`, in priority order."""
    candidates = [target]
    candidates.extend(target + ext for ext in IMPORT_EXTENSIONS)
    if target == ROOT:
        candidates.extend(f"/index{ext}" for ext in IMPORT_EXTENSIONS)
    else:
        candidates.extend(f"{target}/index{ext}" for ext in IMPORT_EXTENSIONS)
    return candidates


def resolve_import(vfs: VirtualFileSystem, from_path: str, specifier: str) -> str | None:
    """
    Resolve an import specifier written in `from_path` to an existing VFS file.

    Returns None when no candidate exists, and always for bare specifiers
    (the preview assembler maps those to external sources).
    """
    target = specifier_target(from_path, specifier)
    if target is None:
        return None
    for candidate in import_candidates(target):
        if vfs.is_file(candidate):
            return candidate
    return None
