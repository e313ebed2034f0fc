"""
Transformer -- dispatch and memoization

transform(path) picks a strategy by extension and caches the result per
(path, content). Edits reach the cache through VFS change notifications,
so only changed files are transformed again.
"""

import json

import pytest

from workbench.kernel.errors import NotFoundError, TransformError, TypeMismatchError
from workbench.kernel.transformer import Transformer
from workbench.kernel.ts_lowering import LoweredModule, lower_source
from workbench.kernel.vfs import VirtualFileSystem


def make_vfs(files: dict[str, str]) -> VirtualFileSystem:
    vfs = VirtualFileSystem()
    for path, content in files.items():
        vfs.create_file(path, content)
    return vfs


class CountingLowerer:
    """Wraps lower_source and counts parses per source."""

    def __init__(self):
        self.calls = 0

    def __call__(self, source, dialect, options) -> LoweredModule:
        self.calls += 1
        return lower_source(source, dialect, options)


# ============================================================================
# Dispatch
# ============================================================================


class TestDispatch:
    def test_jsx_file(self):
        vfs = make_vfs({"/App.jsx": 'import Button from "./Button";\nexport default () => <Button />;'})
        result = Transformer(vfs).transform("/App.jsx")
        assert result.kind == "script"
        assert result.path == "/App.jsx"
        assert result.imports == ("react", "./Button")
        assert "React.createElement(Button, null)" in result.code

    def test_ts_file_uses_typescript_grammar(self):
        vfs = make_vfs({"/util.ts": "export const n = <number>value;"})
        assert Transformer(vfs).transform("/util.ts").code == "export const n = value;"

    def test_css_file(self):
        css = "body { color: red; }\n</style>"
        vfs = make_vfs({"/styles.css": css})
        result = Transformer(vfs).transform("/styles.css")
        assert result.kind == "style"
        assert result.imports == ()
        assert 'data-vfs-path", "/styles.css"' in result.code
        assert "document.head.appendChild(style)" in result.code
        assert "export default css;" in result.code
        assert "</style>" not in result.code
        literal = result.code.split("const css = ", 1)[1].split(";\n", 1)[0]
        assert json.loads(literal) == css

    def test_json_file(self):
        vfs = make_vfs({"/data.json": '{"items": [1, 2]}'})
        result = Transformer(vfs).transform("/data.json")
        assert result.kind == "json"
        assert result.code == 'export default {"items": [1, 2]};\n'

    def test_invalid_json_reports_line(self):
        vfs = make_vfs({"/data.json": '{\n  "a": 1,\n  oops\n}'})
        with pytest.raises(TransformError) as exc:
            Transformer(vfs).transform("/data.json")
        assert exc.value.path == "/data.json"
        assert exc.value.line == 3

    def test_unsupported_extension(self):
        vfs = make_vfs({"/logo.svg": "<svg/>"})
        with pytest.raises(TransformError, match="Unsupported file type"):
            Transformer(vfs).transform("/logo.svg")

    def test_syntax_error_names_the_file(self):
        vfs = make_vfs({"/Button.jsx": "export default function Button() {\n  return <div>;\n"})
        with pytest.raises(TransformError) as exc:
            Transformer(vfs).transform("/Button.jsx")
        assert exc.value.path == "/Button.jsx"
        assert isinstance(exc.value.line, int)
        assert str(exc.value).startswith("/Button.jsx:")

    def test_nul_characters_rejected(self):
        vfs = make_vfs({"/a.js": "const a = '\x00';"})
        with pytest.raises(TransformError):
            Transformer(vfs).transform("/a.js")

    def test_missing_file(self):
        with pytest.raises(NotFoundError):
            Transformer(VirtualFileSystem()).transform("/nope.jsx")

    def test_directory(self):
        vfs = VirtualFileSystem()
        vfs.create_directory("/src.js")
        with pytest.raises(TypeMismatchError):
            Transformer(vfs).transform("/src.js")


# ============================================================================
# Cache
# ============================================================================


class TestCache:
    def test_unchanged_content_is_a_hit(self):
        vfs = make_vfs({"/App.jsx": "export default () => <div />;"})
        lower = CountingLowerer()
        transformer = Transformer(vfs, lower=lower)

        first = transformer.transform("/App.jsx")
        second = transformer.transform("App.jsx")

        assert second is first
        assert lower.calls == 1
        assert transformer.stats() == {"hits": 1, "misses": 1, "entries": 1}

    def test_edit_forces_retransform(self):
        vfs = make_vfs({"/App.jsx": "export default 1;"})
        lower = CountingLowerer()
        transformer = Transformer(vfs, lower=lower)
        transformer.transform("/App.jsx")

        vfs.write_file("/App.jsx", "export default 2;")
        assert transformer.stats()["entries"] == 0
        assert transformer.transform("/App.jsx").code == "export default 2;"
        assert lower.calls == 2

    def test_only_changed_file_is_evicted(self):
        vfs = make_vfs({"/a.js": "export const a = 1;", "/b.js": "export const b = 1;"})
        transformer = Transformer(vfs)
        transformer.transform("/a.js")
        transformer.transform("/b.js")

        vfs.write_file("/a.js", "export const a = 2;")
        assert transformer.stats()["entries"] == 1
        transformer.transform("/b.js")
        assert transformer.stats()["hits"] == 1

    def test_failures_are_cached(self):
        vfs = make_vfs({"/Broken.jsx": "const = ;"})
        lower = CountingLowerer()
        transformer = Transformer(vfs, lower=lower)
        for _ in range(2):
            with pytest.raises(TransformError):
                transformer.transform("/Broken.jsx")
        assert lower.calls == 1
        assert transformer.stats()["hits"] == 1

    def test_directory_rename_evicts_subtree(self):
        vfs = make_vfs({"/src/a.js": "export const a = 1;", "/other.js": "export const o = 1;"})
        transformer = Transformer(vfs)
        transformer.transform("/src/a.js")
        transformer.transform("/other.js")

        vfs.rename_node("/src", "/lib")
        assert transformer.stats()["entries"] == 1
        assert transformer.transform("/lib/a.js").path == "/lib/a.js"

    def test_directory_delete_evicts_subtree(self):
        vfs = make_vfs({"/src/a.js": "export const a = 1;"})
        transformer = Transformer(vfs)
        transformer.transform("/src/a.js")
        vfs.delete_node("/src")
        assert transformer.stats()["entries"] == 0

    def test_manual_invalidate(self):
        vfs = make_vfs({"/a.js": "1;", "/b.js": "2;"})
        transformer = Transformer(vfs)
        transformer.transform("/a.js")
        transformer.transform("/b.js")
        transformer.invalidate("/a.js")
        assert transformer.stats()["entries"] == 1
        transformer.invalidate()
        assert transformer.stats()["entries"] == 0

    def test_close_stops_listening(self):
        vfs = make_vfs({"/a.js": "1;"})
        transformer = Transformer(vfs)
        transformer.close()
        vfs.write_file("/a.js", "2;")
        assert transformer.stats()["entries"] == 0
