"""Tests for the workbench command-line entry point."""

from __future__ import annotations

import json
import sys

import pytest

from workbench_cli.main import load_directory, main, parse_args


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "App.jsx").write_text(
        'import { title } from "./title";\nexport default () => <h1>{title}</h1>;\n'
    )
    (tmp_path / "src" / "title.ts").write_text("export const title: string = 'Hello';\n")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("module.exports = 1;")
    (tmp_path / ".env").write_text("SECRET=1")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe")
    return tmp_path


def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["workbench", *argv])
    main()


class TestParseArgs:
    def test_preview_with_options(self):
        args = parse_args(["preview", "./app", "--entry", "/src/App.jsx", "--out", "out.html", "--title", "Demo"])
        assert args["command"] == "preview"
        assert args["directory"] == "./app"
        assert args["entry"] == "/src/App.jsx"
        assert args["out"] == "out.html"
        assert args["title"] == "Demo"

    def test_missing_option_value(self):
        with pytest.raises(SystemExit) as exc:
            parse_args(["preview", "./app", "--entry"])
        assert exc.value.code == 1

    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            parse_args(["deploy", "./app"])


class TestLoadDirectory:
    def test_loads_text_files_only(self, project, capsys):
        vfs = load_directory(project)
        assert sorted(vfs.get_all_files()) == ["/src/App.jsx", "/src/title.ts"]
        assert "Skipping binary file: logo.png" in capsys.readouterr().err


class TestCommands:
    def test_preview_to_file(self, project, tmp_path_factory, monkeypatch, capsys):
        out = tmp_path_factory.mktemp("out") / "preview.html"
        run(monkeypatch, "preview", str(project), "--out", str(out), "--title", "Demo")
        html = out.read_text()
        assert "<title>Demo</title>" in html
        assert '"@vfs/src/title.ts"' in html
        assert "Wrote preview of /src/App.jsx (2 modules)" in capsys.readouterr().out

    def test_preview_to_stdout(self, project, monkeypatch, capsys):
        run(monkeypatch, "preview", str(project))
        assert capsys.readouterr().out.startswith("<!DOCTYPE html>")

    def test_preview_failure_exits_1(self, project, monkeypatch, capsys):
        (project / "src" / "title.ts").write_text("export const title = ;\n")
        with pytest.raises(SystemExit) as exc:
            run(monkeypatch, "preview", str(project))
        assert exc.value.code == 1
        assert "/src/title.ts" in capsys.readouterr().err

    def test_snapshot(self, project, monkeypatch, capsys):
        run(monkeypatch, "snapshot", str(project))
        snapshot = json.loads(capsys.readouterr().out)
        assert snapshot["/"] == {"kind": "directory"}
        assert snapshot["/src"] == {"kind": "directory"}
        assert snapshot["/src/title.ts"]["kind"] == "file"

    def test_not_a_directory(self, tmp_path, monkeypatch):
        with pytest.raises(SystemExit) as exc:
            run(monkeypatch, "preview", str(tmp_path / "missing"))
        assert exc.value.code == 1
