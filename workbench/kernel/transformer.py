"""
Workbench Kernel — Transformer

Turns one VFS file into executable ES module code plus the list of module
specifiers it imports.

  .jsx .tsx .js .mjs .cjs   → lowered with the TSX grammar
  .ts .mts .cts             → lowered with the TypeScript grammar
  .css                      → style-injection module
  .json                     → default-export module

Results are memoized per path and content. The transformer listens to its
VFS and evicts entries for paths that change, so a rebuild after an edit
only re-parses the edited files.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Literal

from workbench.kernel.errors import TransformError
from workbench.kernel.paths import extension_of, is_within, normalize_path
from workbench.kernel.ts_lowering import (
    ImportSite,
    Lowerer,
    LoweringError,
    LoweringOptions,
    lower_source,
)
from workbench.kernel.vfs import FileChange, VirtualFileSystem

logger = logging.getLogger(__name__)

ModuleKind = Literal["script", "style", "json"]

TSX_EXTENSIONS = frozenset({".jsx", ".tsx", ".js", ".mjs", ".cjs"})
TS_EXTENSIONS = frozenset({".ts", ".mts", ".cts"})
SCRIPT_EXTENSIONS = TSX_EXTENSIONS | TS_EXTENSIONS
STYLE_EXTENSIONS = frozenset({".css"})
JSON_EXTENSIONS = frozenset({".json"})


@dataclass(frozen=True)
class TransformResult:
    path: str
    code: str
    imports: tuple[str, ...]
    import_sites: tuple[ImportSite, ...]
    kind: ModuleKind


@dataclass
class _CacheEntry:
    content: str
    result: TransformResult | None = None
    error: TransformError | None = None


def is_script(path: str) -> bool:
    return extension_of(path) in SCRIPT_EXTENSIONS


def is_transformable(path: str) -> bool:
    ext = extension_of(path)
    return ext in SCRIPT_EXTENSIONS or ext in STYLE_EXTENSIONS or ext in JSON_EXTENSIONS


class Transformer:
    """Cached per-file transformation bound to one VFS."""

    def __init__(
        self,
        vfs: VirtualFileSystem,
        options: LoweringOptions | None = None,
        lower: Lowerer = lower_source,
    ) -> None:
        self.vfs = vfs
        self.options = options or LoweringOptions()
        self._lower = lower
        self._cache: dict[str, _CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        vfs.subscribe(self._on_change)

    @classmethod
    def attached_to(cls, vfs: VirtualFileSystem, options: LoweringOptions | None = None) -> Transformer:
        """
        The transformer already listening to `vfs` with these options, or a
        new one. Repeated one-shot builds of a VFS share its cache this way.
        """
        options = options or LoweringOptions()
        for listener in vfs.listeners:
            owner = getattr(listener, "__self__", None)
            if isinstance(owner, cls) and owner.options == options and owner._lower is lower_source:
                return owner
        return cls(vfs, options)

    def close(self) -> None:
        """Stop listening to the VFS and drop the cache."""
        self.vfs.unsubscribe(self._on_change)
        self._cache.clear()

    # -- cache --

    def _on_change(self, change: FileChange) -> None:
        if change.kind == "created" and change.node_kind == "directory":
            return
        if change.node_kind == "directory" or change.kind == "renamed":
            self._evict_subtree(change.path)
        else:
            self._cache.pop(change.path, None)

    def _evict_subtree(self, directory: str) -> None:
        for cached in [p for p in self._cache if is_within(p, directory)]:
            del self._cache[cached]

    def invalidate(self, path: str | None = None) -> None:
        """Evict one path (and anything beneath it), or everything."""
        if path is None:
            self._cache.clear()
        else:
            self._evict_subtree(normalize_path(path))

    def stats(self) -> dict[str, int]:
        return {"hits": self._hits, "misses": self._misses, "entries": len(self._cache)}

    # -- transform --

    def transform(self, path: str) -> TransformResult:
        """
        Transform the file at `path`.

        Raises TransformError for unparseable source or an unsupported file
        type, and VFS errors if the path is missing or a directory. Failed
        transforms are cached like successful ones.
        """
        npath = normalize_path(path)
        content = self.vfs.read_file(npath)

        entry = self._cache.get(npath)
        if entry is not None and entry.content == content:
            self._hits += 1
            if entry.error is not None:
                raise entry.error
            return entry.result

        self._misses += 1
        logger.debug("transform: %s (%d chars)", npath, len(content))
        entry = _CacheEntry(content)
        try:
            entry.result = self._transform(npath, content)
        except TransformError as e:
            entry.error = e
            self._cache[npath] = entry
            raise
        self._cache[npath] = entry
        return entry.result

    def _transform(self, path: str, content: str) -> TransformResult:
        ext = extension_of(path)
        if ext in SCRIPT_EXTENSIONS:
            dialect = "typescript" if ext in TS_EXTENSIONS else "tsx"
            try:
                lowered = self._lower(content, dialect, self.options)
            except LoweringError as e:
                raise TransformError(path, e.message, e.line) from e
            return TransformResult(
                path=path,
                code=lowered.code,
                imports=lowered.imports,
                import_sites=lowered.import_sites,
                kind="script",
            )
        if ext in STYLE_EXTENSIONS:
            return TransformResult(path, style_module(path, content), (), (), "style")
        if ext in JSON_EXTENSIONS:
            return TransformResult(path, json_module(path, content), (), (), "json")
        raise TransformError(path, "Unsupported file type")


# ---------------------------------------------------------------------------
# Non-script modules
# ---------------------------------------------------------------------------


def style_module(path: str, css: str) -> str:
    """Module that appends the stylesheet to <head> when imported."""
    return (
        f"const css = {_js_string(css)};\n"
        'const style = document.createElement("style");\n'
        f'style.setAttribute("data-vfs-path", {_js_string(path)});\n'
        "style.textContent = css;\n"
        "document.head.appendChild(style);\n"
        "export default css;\n"
    )


def json_module(path: str, text: str) -> str:
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise TransformError(path, f"Invalid JSON: {e.msg}", e.lineno) from e
    return f"export default {_js_string(value)};\n"


def _js_string(value: object) -> str:
    # Escaped so the literal stays safe inside an inline <script>.
    return (
        json.dumps(value, ensure_ascii=False)
        .replace("<", "\\u003c")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
