# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the Formwork command-line interface."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from formwork.cli.script import ScriptError, load_script
from formwork.errors import FormworkError
from formwork.files.base import SourceFile
from formwork.files.factory import create_file
from formwork.files.view import ViewFile
from formwork.workspace.config import CONFIG_FILENAME, DEFAULT_DEPENDENCY_FILE, WorkspaceConfigError
from formwork.workspace.project import open_project, read_project_config, read_project_files, write_project_files

# ###############
# Public Interface
# ###############


def main() -> None:
    """Run the Formwork CLI."""
    parser = argparse.ArgumentParser(
        prog="formwork",
        description="Formwork: edit visual app builder projects from the command line",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every workspace operation",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # init subcommand
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize a new Formwork project",
        description="Create the configuration, an entry page and a route table.",
    )
    init_parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory to initialize the project in (default: current directory)",
    )

    # check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Check that every project file parses",
        description="Parse all project files and report errors and unresolved components.",
    )
    check_parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help="Directory containing the Formwork project (default: current directory)",
    )

    # tree subcommand
    tree_parser = subparsers.add_parser(
        "tree",
        help="Print the node outline of a view file",
        description="Print the component tree of a view file with node ids.",
    )
    tree_parser.add_argument("file", help="View file, relative to the project directory")
    tree_parser.add_argument(
        "--directory",
        default=".",
        help="Directory containing the Formwork project (default: current directory)",
    )

    # apply subcommand
    apply_parser = subparsers.add_parser(
        "apply",
        help="Run an edit script against the project",
        description="Run a YAML list of edit steps and write the changed files back.",
    )
    apply_parser.add_argument("script", help="Path to the YAML edit script")
    apply_parser.add_argument(
        "--directory",
        default=".",
        help="Directory containing the Formwork project (default: current directory)",
    )
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report the files that would change without writing them",
    )

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    _configure_logging(args.verbose)
    sys.exit(_dispatch(args))


# ################
# Implementation
# ################

_INDEX_VIEW = "pages/index.view"

_INIT_FILES: dict[str, str] = {
    CONFIG_FILENAME: (
        "# Formwork Project Configuration\n"
        f"entry: {_INDEX_VIEW}\n"
        f"config-file: {DEFAULT_DEPENDENCY_FILE}\n"
        "history:\n"
        "  limit: 100\n"
        "  coalesce-window: 0.5\n"
    ),
    _INDEX_VIEW: '<Page title="Home" />\n',
    "routes.yaml": f"routes:\n- path: /\n  name: Home\n  view: {_INDEX_VIEW}\n",
    DEFAULT_DEPENDENCY_FILE: '{\n  "packages": {},\n  "bizDependencies": []\n}\n',
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate subcommand handler."""
    if args.command == "init":
        return _cmd_init(args)
    if args.command == "check":
        return _cmd_check(args)
    if args.command == "tree":
        return _cmd_tree(args)
    if args.command == "apply":
        return _cmd_apply(args)
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    """Handle the init subcommand."""
    directory = Path(args.directory).resolve()

    if not directory.exists():
        print(f"Error: directory '{directory}' does not exist.", file=sys.stderr)
        return 1

    config_file = directory / CONFIG_FILENAME
    if config_file.exists():
        print(f"Error: project already exists at '{config_file}'.", file=sys.stderr)
        return 1

    for filename, content in _INIT_FILES.items():
        path = directory / filename
        if path.exists():
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    print(f"Initialized Formwork project at '{directory}'.")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    """Handle the check subcommand."""
    directory = _project_directory(args.directory)
    if directory is None:
        return 1

    try:
        read_project_config(directory)
    except WorkspaceConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    sources = read_project_files(directory)
    if not sources:
        print("No files found in the project.")
        return 0

    print(f"Checking {len(sources)} file(s)...")
    has_errors = False
    files: list[SourceFile] = []
    for filename, code in sources.items():
        try:
            files.append(create_file(filename, code))
        except FormworkError as exc:
            print(f"Error: {filename}: {exc}", file=sys.stderr)
            has_errors = True

    local = {Path(file.filename).stem for file in files if isinstance(file, ViewFile)}
    for file in files:
        if isinstance(file, ViewFile):
            for component in file.unresolved_components(local):
                print(f"Warning: {file.filename}: component '{component}' is not imported")

    if has_errors:
        return 1

    print("No issues found.")
    return 0


def _cmd_tree(args: argparse.Namespace) -> int:
    """Handle the tree subcommand."""
    directory = _project_directory(args.directory)
    if directory is None:
        return 1

    path = directory / args.file
    try:
        view = create_file(args.file, path.read_text(encoding="utf-8"))
    except OSError as exc:
        print(f"Error: cannot read '{path}': {exc}", file=sys.stderr)
        return 1
    except FormworkError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if not isinstance(view, ViewFile):
        print(f"Error: '{args.file}' is not a view file.", file=sys.stderr)
        return 1

    for outline in view.nodes_tree:
        _print_outline(outline, 0)
    return 0


def _cmd_apply(args: argparse.Namespace) -> int:
    """Handle the apply subcommand."""
    directory = _project_directory(args.directory)
    if directory is None:
        return 1

    try:
        steps = load_script(Path(args.script))
    except ScriptError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    changed: set[str] = set()
    try:
        workspace = open_project(directory, on_files_change=changed.update)
    except (WorkspaceConfigError, FormworkError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    # Loading the project itself is not an edit.
    changed.clear()

    for index, step in enumerate(steps, start=1):
        try:
            step.apply(workspace)
        except FormworkError as exc:
            print(f"Error: step {index} ({step.op}): {exc}", file=sys.stderr)
            return 1

    if args.dry_run:
        for filename in sorted(changed):
            status = "update" if workspace.has_file(filename) else "delete"
            print(f"  would {status} {filename}")
        return 0

    written, deleted = write_project_files(directory, workspace, changed)
    print(f"Applied {len(steps)} step(s): {len(written)} file(s) written, {len(deleted)} deleted.")
    return 0


def _project_directory(value: str) -> Path | None:
    directory = Path(value).resolve()
    if not directory.exists():
        print(f"Error: directory '{directory}' does not exist.", file=sys.stderr)
        return None
    return directory


def _print_outline(outline: dict[str, Any], depth: int) -> None:
    print(f"{'  ' * depth}{outline['id']}")
    for child in outline["children"]:
        _print_outline(child, depth + 1)
