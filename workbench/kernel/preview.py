"""
Workbench Kernel — Preview Assembler

Builds a single self-contained HTML document that runs the component tree
held in a VFS:

  1. pick the entry file
  2. walk its import graph, transforming every reachable file
  3. give each file a module id (@vfs/<path>) and splice those ids into the
     import literals that point at local files
  4. register the linked code with a ModuleRegistry
  5. emit an import map (module ids → registry references, bare specifiers →
     external URLs), an error bootstrap, and a script that mounts the entry

A build either produces a whole document or a BuildError. Nothing is
registered unless every reachable file transformed and resolved.
"""

from __future__ import annotations

import html
import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import urlsplit

from workbench.kernel.errors import ResolutionError, TransformError
from workbench.kernel.paths import is_local_specifier, normalize_path, resolve_import
from workbench.kernel.registry import InlineModuleRegistry, ModuleRegistry
from workbench.kernel.transformer import TransformResult, Transformer, is_script
from workbench.kernel.vfs import VirtualFileSystem

logger = logging.getLogger(__name__)

MODULE_ID_PREFIX = "@vfs"
MESSAGE_SOURCE = "workbench-preview"

REACT_VERSION = "18.3.1"

DEFAULT_EXTERNALS: dict[str, str] = {
    "react": f"https://esm.sh/react@{REACT_VERSION}",
    "react/jsx-runtime": f"https://esm.sh/react@{REACT_VERSION}/jsx-runtime",
    "react-dom": f"https://esm.sh/react-dom@{REACT_VERSION}?deps=react@{REACT_VERSION}",
    "react-dom/client": f"https://esm.sh/react-dom@{REACT_VERSION}/client?deps=react@{REACT_VERSION}",
}

DEFAULT_ENTRY_CANDIDATES: tuple[str, ...] = (
    "/App.jsx",
    "/App.tsx",
    "/index.jsx",
    "/index.tsx",
    "/src/App.jsx",
    "/src/App.tsx",
)

# Needed by the mount script.
MOUNT_EXTERNALS = ("react", "react-dom/client")


# ---------------------------------------------------------------------------
# Configuration and results
# ---------------------------------------------------------------------------


@dataclass
class PreviewConfig:
    externals: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_EXTERNALS))
    title: str = "Preview"
    mount_entry: bool = True
    root_element_id: str = "root"
    entry_candidates: tuple[str, ...] = DEFAULT_ENTRY_CANDIDATES


@dataclass(frozen=True)
class BuildError:
    kind: Literal["transform", "resolution"]
    path: str
    message: str
    line: int | None = None
    specifier: str | None = None

    @classmethod
    def from_exception(cls, error: TransformError | ResolutionError) -> BuildError:
        if isinstance(error, TransformError):
            return cls("transform", error.path, error.message, line=error.line)
        return cls("resolution", error.path, error.message, specifier=error.specifier)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "path": self.path,
            "message": self.message,
            "line": self.line,
            "specifier": self.specifier,
        }

    def __str__(self) -> str:
        where = f"{self.path}:{self.line}" if self.line is not None else self.path
        return f"{where}: {self.message}"


@dataclass(frozen=True)
class PreviewDocument:
    html: str
    entry: str
    modules: tuple[str, ...]           # paths, dependencies before dependents
    externals: dict[str, str]          # specifier → URL, as placed in the import map
    references: dict[str, str]         # module id → registry reference
    revision: int


@dataclass(frozen=True)
class BuildResult:
    document: PreviewDocument | None = None
    error: BuildError | None = None
    revision: int = 0

    @property
    def succeeded(self) -> bool:
        return self.document is not None


def module_id(path: str) -> str:
    return MODULE_ID_PREFIX + path


def resolve_external(externals: Mapping[str, str], specifier: str) -> str | None:
    """
    Look a bare specifier up the way an import map does: an exact key first,
    then the longest key ending in "/" that prefixes it.
    """
    if specifier in externals:
        return externals[specifier]
    best: str | None = None
    for key in externals:
        if key.endswith("/") and specifier.startswith(key):
            if best is None or len(key) > len(best):
                best = key
    if best is None:
        return None
    return externals[best] + specifier[len(best):]


# ---------------------------------------------------------------------------
# Assembler
# ---------------------------------------------------------------------------


@dataclass
class _Graph:
    entry: str
    order: list[str]
    results: dict[str, TransformResult]
    edges: dict[str, dict[str, str]]      # path → local specifier → resolved path
    externals: dict[str, str]


class PreviewAssembler:
    def __init__(
        self,
        vfs: VirtualFileSystem,
        config: PreviewConfig | None = None,
        registry: ModuleRegistry | None = None,
        transformer: Transformer | None = None,
    ) -> None:
        self.vfs = vfs
        self.config = config or PreviewConfig()
        self.registry = registry or InlineModuleRegistry()
        self.transformer = transformer or Transformer(vfs)

    def build(self, entry_path: str | None = None) -> BuildResult:
        """
        Assemble a preview document. Never raises for transform or resolution
        failures; those come back as BuildResult.error.
        """
        revision = self.vfs.revision
        try:
            graph = self._collect(self._select_entry(entry_path))
        except (TransformError, ResolutionError) as e:
            error = BuildError.from_exception(e)
            logger.info("preview: build failed: %s", error)
            return BuildResult(error=error, revision=revision)

        references: dict[str, str] = {}
        for path in graph.order:
            code = _link(graph.results[path], graph.edges[path])
            references[module_id(path)] = self.registry.register(code, path)

        document = PreviewDocument(
            html=self._render(graph, references),
            entry=graph.entry,
            modules=tuple(graph.order),
            externals=graph.externals,
            references=references,
            revision=revision,
        )
        logger.info("preview: built %s (%d modules)", graph.entry, len(graph.order))
        return BuildResult(document=document, revision=revision)

    def release(self, document: PreviewDocument) -> None:
        """Release every registry reference held by a document."""
        for reference in document.references.values():
            self.registry.release(reference)

    # -- entry --

    def _select_entry(self, entry_path: str | None) -> str:
        if entry_path is not None:
            npath = normalize_path(entry_path)
            if not self.vfs.is_file(npath):
                raise ResolutionError(npath, None, f"Entry file not found: {npath}")
            return npath
        for candidate in self.config.entry_candidates:
            if self.vfs.is_file(candidate):
                return candidate
        for path in self.vfs.get_all_files():
            if is_script(path):
                return path
        raise ResolutionError("/", None, "No entry file found in workspace")

    # -- traversal --

    def _collect(self, entry: str) -> _Graph:
        """
        Depth-first walk of the import graph. Files are transformed as they
        are reached, so an unresolved import is reported before anything
        beneath it is parsed. `order` is post-order: dependencies first.
        """
        graph = _Graph(entry=entry, order=[], results={}, edges={}, externals={})
        if self.config.mount_entry:
            for specifier in MOUNT_EXTERNALS:
                self._add_external(graph, entry, specifier)

        visited = {entry}
        stack: list[tuple[str, Iterator[str]]] = [(entry, self._imports_of(graph, entry))]
        while stack:
            path, pending = stack[-1]
            target = next(pending, None)
            if target is None:
                stack.pop()
                graph.order.append(path)
                continue
            if target not in visited:
                visited.add(target)
                logger.debug("preview: %s → %s", path, target)
                stack.append((target, self._imports_of(graph, target)))
        return graph

    def _imports_of(self, graph: _Graph, path: str) -> Iterator[str]:
        """Transform `path` and yield the local files it imports."""
        result = self.transformer.transform(path)
        graph.results[path] = result
        graph.edges[path] = {}
        for specifier in result.imports:
            if not is_local_specifier(specifier):
                self._add_external(graph, path, specifier)
                continue
            resolved = resolve_import(self.vfs, path, specifier)
            if resolved is None:
                raise ResolutionError(path, specifier, f"Cannot resolve import '{specifier}'")
            graph.edges[path][specifier] = resolved
        return iter(list(dict.fromkeys(graph.edges[path].values())))

    def _add_external(self, graph: _Graph, importer: str, specifier: str) -> None:
        if specifier in graph.externals:
            return
        url = resolve_external(self.config.externals, specifier)
        if url is None:
            raise ResolutionError(
                importer, specifier, f"No external source configured for '{specifier}'"
            )
        graph.externals[specifier] = url

    # -- document --

    def _render(self, graph: _Graph, references: dict[str, str]) -> str:
        imports = dict(references)
        imports.update(graph.externals)
        import_map = _script_json({"imports": imports})
        csp = _content_security_policy(graph.externals.values())
        title = _escape_html(self.config.title)
        root_id = _escape_html(self.config.root_element_id)
        bootstrap = ERROR_BOOTSTRAP.replace("__SOURCE__", json.dumps(MESSAGE_SOURCE))
        main = self._main_script(graph.entry)
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<meta http-equiv="Content-Security-Policy" content="{_escape_html(csp)}">
<title>{title}</title>
<script type="importmap">
{import_map}
</script>
</head>
<body>
<div id="{root_id}"></div>
<script>
{bootstrap}
</script>
<script type="module">
{main}
</script>
</body>
</html>
"""

    def _main_script(self, entry: str) -> str:
        entry_id = json.dumps(module_id(entry))
        if not self.config.mount_entry:
            return f"import {entry_id};\n"
        root_id = json.dumps(self.config.root_element_id)
        return (
            f"import * as entry from {entry_id};\n"
            + MOUNT_SCRIPT.replace("__ROOT_ID__", root_id).replace("__ENTRY__", json.dumps(entry))
        )


def build_preview(
    vfs: VirtualFileSystem,
    entry_path: str | None = None,
    **kwargs: Any,
) -> BuildResult:
    """
    One-shot build. Keyword arguments are PreviewConfig fields.
    Calls on the same VFS share one transformer, so unchanged files are
    served from its cache.
    """
    assembler = PreviewAssembler(vfs, PreviewConfig(**kwargs), transformer=Transformer.attached_to(vfs))
    return assembler.build(entry_path)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class PreviewSession:
    """
    Tracks the document currently on screen for one workspace.

    Builds are tagged with tickets from begin(). Only the most recently begun
    build may replace the document; results of older builds are released
    as they arrive. A failed build leaves the last good document in place.
    """

    def __init__(self, assembler: PreviewAssembler) -> None:
        self.assembler = assembler
        self.document: PreviewDocument | None = None
        self.last_error: BuildError | None = None
        self._ticket = 0

    def begin(self) -> int:
        self._ticket += 1
        return self._ticket

    def accept(self, ticket: int, result: BuildResult) -> bool:
        """Apply a build result. Returns False if the build was superseded."""
        if ticket != self._ticket:
            if result.document is not None:
                self.assembler.release(result.document)
            logger.debug("preview: dropped superseded build %d", ticket)
            return False
        if result.document is None:
            self.last_error = result.error
            return True
        if self.document is not None:
            self.assembler.release(self.document)
        self.document = result.document
        self.last_error = None
        return True

    def refresh(self, entry_path: str | None = None) -> BuildResult:
        ticket = self.begin()
        result = self.assembler.build(entry_path)
        self.accept(ticket, result)
        return result

    def close(self) -> None:
        if self.document is not None:
            self.assembler.release(self.document)
            self.document = None
        self._ticket += 1


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _link(result: TransformResult, edges: dict[str, str]) -> str:
    """Rewrite local import literals to module ids, back to front."""
    code = result.code
    for site in sorted(result.import_sites, key=lambda s: s.start, reverse=True):
        target = edges.get(site.specifier)
        if target is None:
            continue
        code = code[:site.start] + json.dumps(module_id(target)) + code[site.end:]
    return code


def _content_security_policy(urls: Any) -> str:
    origins = sorted({_origin(url) for url in urls} - {""})
    hosts = " ".join(origins)
    script_src = " ".join(filter(None, ["'unsafe-inline'", "data:", hosts]))
    connect_src = hosts or "'none'"
    return (
        "default-src 'none'; "
        f"script-src {script_src}; "
        "style-src 'unsafe-inline'; "
        "img-src data: blob: https:; "
        "font-src data: https:; "
        f"connect-src {connect_src}"
    )


def _origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def _script_json(value: Any) -> str:
    """JSON that cannot close the surrounding <script> element."""
    return json.dumps(value, indent=2).replace("<", "\\u003c")


def _escape_html(text: str) -> str:
    """HTML-escape text for safe embedding."""
    return html.escape(text, quote=True)


ERROR_BOOTSTRAP = """(function () {
  var SOURCE = __SOURCE__;
  function show(message, stack) {
    var overlay = document.getElementById("__preview_error");
    if (!overlay) {
      overlay = document.createElement("pre");
      overlay.id = "__preview_error";
      overlay.style.cssText = "position:fixed;inset:0;margin:0;padding:16px;overflow:auto;" +
        "background:#fff5f5;color:#b91c1c;font:13px/1.5 ui-monospace,monospace;" +
        "white-space:pre-wrap;z-index:2147483647";
      document.body.appendChild(overlay);
    }
    overlay.textContent = message + (stack ? "\\n\\n" + stack : "");
  }
  function report(type, message, stack) {
    show(message, stack);
    try {
      window.parent.postMessage({ source: SOURCE, type: type, message: message, stack: stack || null }, "*");
    } catch (e) {
      console.error(e);
    }
  }
  window.__previewReport = report;
  window.addEventListener("error", function (event) {
    var error = event.error;
    report("error", error && error.message ? error.message : String(event.message), error && error.stack);
  });
  window.addEventListener("unhandledrejection", function (event) {
    var reason = event.reason;
    report("unhandledrejection", reason && reason.message ? reason.message : String(reason), reason && reason.stack);
  });
})();"""


MOUNT_SCRIPT = """import React from "react";
import { createRoot } from "react-dom/client";

class PreviewErrorBoundary extends React.Component {
  constructor(props) {
    super(props);
    this.state = { error: null };
  }
  static getDerivedStateFromError(error) {
    return { error: error };
  }
  componentDidCatch(error) {
    window.__previewReport("render", error && error.message ? error.message : String(error), error && error.stack);
  }
  render() {
    return this.state.error ? null : this.props.children;
  }
}

const Component = entry.default;
if (Component === undefined || Component === null) {
  throw new Error("Entry " + __ENTRY__ + " has no default export to render");
}
createRoot(document.getElementById(__ROOT_ID__)).render(
  React.createElement(PreviewErrorBoundary, null, React.createElement(Component))
);
"""
