# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Reading a project directory into a workspace and writing edits back."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from formwork.workspace.config import CONFIG_FILENAME, WorkspaceConfig, load_workspace_config
from formwork.workspace.workspace import Workspace

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def read_project_config(directory: Path) -> WorkspaceConfig:
    """Load ``.formwork.yaml`` from *directory*, or the defaults when it is absent.

    Raises:
        WorkspaceConfigError: If the file exists but is invalid.
    """
    config_path = directory / CONFIG_FILENAME
    if not config_path.exists():
        return WorkspaceConfig()
    return load_workspace_config(config_path)


def read_project_files(directory: Path) -> dict[str, str]:
    """Collect the project's files as ``{posix relative path: text}``.

    Hidden files and folders (a name starting with ``.``) are skipped.
    """
    files: dict[str, str] = {}
    for path in sorted(directory.rglob("*")):
        relative = path.relative_to(directory)
        if not path.is_file() or any(part.startswith(".") for part in relative.parts):
            continue
        files[relative.as_posix()] = path.read_text(encoding="utf-8")
    return files


def open_project(directory: Path, **kwargs: Any) -> Workspace:
    """Create a workspace holding every file of *directory*.

    Raises:
        WorkspaceConfigError: If ``.formwork.yaml`` is invalid.
        ParseError: If a file cannot be parsed.
    """
    config = read_project_config(directory)
    files = read_project_files(directory)
    logger.info("Opening project %s (%d file(s))", directory, len(files))
    return Workspace.from_config(config, files, **kwargs)


def write_project_files(directory: Path, workspace: Workspace, filenames: Iterable[str]) -> tuple[list[str], list[str]]:
    """Write *filenames* back to *directory*; names no longer in the workspace are deleted.

    Returns:
        The written and the deleted filenames.
    """
    written: list[str] = []
    deleted: list[str] = []
    for filename in sorted(set(filenames)):
        path = directory / filename
        if workspace.has_file(filename):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(workspace.get_file(filename).code, encoding="utf-8")
            written.append(filename)
        elif path.exists():
            path.unlink()
            deleted.append(filename)
    logger.debug("Wrote %d and deleted %d file(s)", len(written), len(deleted))
    return written, deleted
