# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Project configuration and the workspace facade."""

from formwork.workspace.config import (
    CONFIG_FILENAME,
    DEFAULT_DEPENDENCY_FILE,
    WorkspaceConfig,
    WorkspaceConfigError,
    load_workspace_config,
)
from formwork.workspace.project import open_project, read_project_config, read_project_files, write_project_files
from formwork.workspace.workspace import Clipboard, Workspace, prototype_to_element

__all__ = [
    "CONFIG_FILENAME",
    "Clipboard",
    "DEFAULT_DEPENDENCY_FILE",
    "Workspace",
    "WorkspaceConfig",
    "WorkspaceConfigError",
    "load_workspace_config",
    "open_project",
    "prototype_to_element",
    "read_project_config",
    "read_project_files",
    "write_project_files",
]
