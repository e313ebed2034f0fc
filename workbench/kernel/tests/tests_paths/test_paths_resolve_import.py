"""
Path Resolver -- Import Resolution

resolve_import(vfs, from_path, specifier) probes, in order:
  the exact target, target + each of .tsx .jsx .ts .js .css,
  then target/index + each extension.

Relative specifiers resolve against the importer's directory; "/x" and
"@/x" resolve from the root. Bare specifiers never resolve locally.
"""

import pytest

from workbench.kernel.paths import (
    import_candidates,
    is_bare_specifier,
    is_local_specifier,
    resolve_import,
)
from workbench.kernel.vfs import VirtualFileSystem


def make_vfs(*paths: str) -> VirtualFileSystem:
    vfs = VirtualFileSystem()
    for path in paths:
        vfs.create_file(path, "")
    return vfs


class TestClassification:
    @pytest.mark.parametrize("spec", ["./Button", "../utils", ".", "..", "/App", "@/components/Card"])
    def test_local(self, spec):
        assert is_local_specifier(spec)
        assert not is_bare_specifier(spec)

    @pytest.mark.parametrize("spec", ["react", "react-dom/client", "@scope/pkg", "lodash/fp"])
    def test_bare(self, spec):
        assert is_bare_specifier(spec)
        assert not is_local_specifier(spec)


class TestResolution:
    def test_sibling_with_extension_probe(self):
        vfs = make_vfs("/App.jsx", "/Button.jsx")
        assert resolve_import(vfs, "/App.jsx", "./Button") == "/Button.jsx"

    def test_exact_path_wins(self):
        vfs = make_vfs("/App.jsx", "/data.js", "/data.js.tsx")
        assert resolve_import(vfs, "/App.jsx", "./data.js") == "/data.js"

    def test_extension_priority(self):
        vfs = make_vfs("/App.jsx", "/Card.js", "/Card.tsx")
        assert resolve_import(vfs, "/App.jsx", "./Card") == "/Card.tsx"

    def test_parent_directory(self):
        vfs = make_vfs("/src/components/Button.jsx", "/src/utils.ts")
        assert resolve_import(vfs, "/src/components/Button.jsx", "../utils") == "/src/utils.ts"

    def test_directory_index(self):
        vfs = make_vfs("/App.jsx", "/components/index.jsx")
        assert resolve_import(vfs, "/App.jsx", "./components") == "/components/index.jsx"

    def test_css_import(self):
        vfs = make_vfs("/App.jsx", "/styles.css")
        assert resolve_import(vfs, "/App.jsx", "./styles.css") == "/styles.css"

    def test_root_alias_and_absolute(self):
        vfs = make_vfs("/src/deep/App.jsx", "/components/Card.tsx")
        assert resolve_import(vfs, "/src/deep/App.jsx", "@/components/Card") == "/components/Card.tsx"
        assert resolve_import(vfs, "/src/deep/App.jsx", "/components/Card") == "/components/Card.tsx"

    def test_missing_returns_none(self):
        vfs = make_vfs("/App.jsx")
        assert resolve_import(vfs, "/App.jsx", "./Missing") is None

    def test_bare_never_resolves(self):
        vfs = make_vfs("/App.jsx", "/react.js")
        assert resolve_import(vfs, "/App.jsx", "react") is None

    def test_directory_itself_is_not_a_match(self):
        vfs = make_vfs("/App.jsx")
        vfs.create_directory("/lib")
        assert resolve_import(vfs, "/App.jsx", "./lib") is None


def test_candidate_order():
    assert import_candidates("/Button") == [
        "/Button",
        "/Button.tsx",
        "/Button.jsx",
        "/Button.ts",
        "/Button.js",
        "/Button.css",
        "/Button/index.tsx",
        "/Button/index.jsx",
        "/Button/index.ts",
        "/Button/index.js",
        "/Button/index.css",
    ]
