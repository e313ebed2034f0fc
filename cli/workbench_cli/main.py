"""Main entry point for the Workbench CLI."""
from __future__ import annotations

import json
import sys
from pathlib import Path

from workbench.kernel.preview import build_preview
from workbench.kernel.vfs import VirtualFileSystem
from workbench_cli import __version__

# Never loaded into the VFS.
SKIP_DIRS = {"node_modules", ".git", "__pycache__", "dist", "build"}


def print_help():
    """Print help message."""
    print(f"""
Workbench CLI v{__version__}

Usage:
  workbench [options] <command> <dir>

Commands:
  preview <dir>     Build a self-contained preview of the project in <dir>
  snapshot <dir>    Print the project in <dir> as a JSON snapshot

Options:
  --entry PATH      Entry file, e.g. /src/App.tsx (default: auto-detect)
  --out FILE        Write the preview to FILE instead of stdout
  --title TITLE     Preview document title
  -h, --help        Show this help
  -v, --version     Show version

Examples:
  workbench preview ./my-app --out preview.html
  workbench preview ./my-app --entry /src/main.tsx
  workbench snapshot ./my-app > snapshot.json
""")


def parse_args(args: list[str]) -> dict:
    """
    Parse command line arguments.

    Returns dict with:
        command: str | None (preview, snapshot)
        directory: str | None
        entry: str | None
        out: str | None
        title: str | None
        show_help: bool
        show_version: bool
    """
    result = {
        "command": None,
        "directory": None,
        "entry": None,
        "out": None,
        "title": None,
        "show_help": False,
        "show_version": False,
    }
    options = {"--entry": "entry", "--out": "out", "--title": "title"}

    i = 0
    while i < len(args):
        arg = args[i]

        if arg in options:
            if i + 1 < len(args):
                result[options[arg]] = args[i + 1]
                i += 1
            else:
                print(f"Error: {arg} requires a value")
                sys.exit(1)
        elif arg in ("--help", "-h"):
            result["show_help"] = True
        elif arg in ("--version", "-v"):
            result["show_version"] = True
        elif arg.startswith("-"):
            print(f"Unknown option: {arg}")
            print("Run 'workbench --help' for usage.")
            sys.exit(1)
        elif result["command"] is None:
            if arg not in ("preview", "snapshot"):
                print(f"Unknown command: {arg}")
                print("Run 'workbench --help' for usage.")
                sys.exit(1)
            result["command"] = arg
        elif result["directory"] is None:
            result["directory"] = arg
        else:
            print(f"Unexpected argument: {arg}")
            sys.exit(1)

        i += 1

    return result


def load_directory(root: Path) -> VirtualFileSystem:
    """
    Load every UTF-8 text file under root into a fresh VFS.

    Hidden entries and SKIP_DIRS are ignored. Binary files are skipped with
    a note on stderr.
    """
    vfs = VirtualFileSystem()
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if any(part.startswith(".") or part in SKIP_DIRS for part in relative.parts):
            continue
        if not path.is_file():
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            print(f"Skipping binary file: {relative.as_posix()}", file=sys.stderr)
            continue
        vfs.create_file("/" + relative.as_posix(), content)
    return vfs


def run_preview(vfs: VirtualFileSystem, args: dict) -> int:
    options = {} if args["title"] is None else {"title": args["title"]}
    result = build_preview(vfs, args["entry"], **options)
    if not result.succeeded:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    if args["out"]:
        Path(args["out"]).write_text(result.document.html, encoding="utf-8")
        print(f"Wrote preview of {result.document.entry} ({len(result.document.modules)} modules) to {args['out']}")
    else:
        sys.stdout.write(result.document.html)
    return 0


def main():
    """Main entry point."""
    args = parse_args(sys.argv[1:])

    # Handle help and version first
    if args["show_help"]:
        print_help()
        return

    if args["show_version"]:
        print(f"workbench {__version__}")
        return

    if args["command"] is None or args["directory"] is None:
        print_help()
        sys.exit(1)

    root = Path(args["directory"])
    if not root.is_dir():
        print(f"Error: not a directory: {root}")
        sys.exit(1)

    vfs = load_directory(root)

    if args["command"] == "snapshot":
        print(json.dumps(vfs.serialize(), indent=2))
        return

    if run_preview(vfs, args) != 0:
        sys.exit(1)


if __name__ == "__main__":
    main()
