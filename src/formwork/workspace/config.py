# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Data model and YAML parser for the Formwork project configuration file."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from formwork.session.history import DEFAULT_COALESCE_WINDOW, DEFAULT_HISTORY_LIMIT

# ###############
# Public Interface
# ###############

CONFIG_FILENAME = ".formwork.yaml"
DEFAULT_DEPENDENCY_FILE = "formwork.config.json"


class WorkspaceConfigError(Exception):
    """Raised when a project configuration file is invalid or cannot be loaded."""


@dataclass
class WorkspaceConfig:
    """The parsed configuration of a Formwork project.

    Attributes:
        entry: View file opened first; None picks the first view file.
        config_file: Data file holding the dependency manifest.
        history_limit: Maximum number of undo steps kept.
        coalesce_window: Seconds within which repeated edits of the same
            attribute merge into one undo step.
    """

    entry: str | None = None
    config_file: str = DEFAULT_DEPENDENCY_FILE
    history_limit: int = DEFAULT_HISTORY_LIMIT
    coalesce_window: float = DEFAULT_COALESCE_WINDOW


def load_workspace_config(path: Path) -> WorkspaceConfig:
    """Load and parse a Formwork project configuration file.

    Args:
        path: Path to the `.formwork.yaml` file.

    Returns:
        A WorkspaceConfig instance populated from the file.

    Raises:
        WorkspaceConfigError: If the file cannot be read or the configuration is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise WorkspaceConfigError(f"Project config file not found: {path}") from None
    except OSError as exc:
        raise WorkspaceConfigError(f"Cannot read project config file: {exc}") from exc

    return _parse_workspace_config(text, source_label=str(path))


# ################
# Implementation
# ################


def _parse_workspace_config(text: str, source_label: str = "<string>") -> WorkspaceConfig:
    """Parse project config YAML text into a WorkspaceConfig.

    Args:
        text: Raw YAML content.
        source_label: Human-readable label used in error messages (e.g. the file path).

    Raises:
        WorkspaceConfigError: If the YAML is invalid or a field has the wrong type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise WorkspaceConfigError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        return WorkspaceConfig()
    if not isinstance(data, dict):
        raise WorkspaceConfigError(f"{source_label}: project config must be a YAML mapping")

    config = WorkspaceConfig()
    if "entry" in data:
        config.entry = _require_string(data, "entry", source_label)
    if "config-file" in data:
        config.config_file = _require_string(data, "config-file", source_label)

    if "history" in data:
        history = data["history"]
        location = f"{source_label}: history"
        if not isinstance(history, dict):
            raise WorkspaceConfigError(f"{location} must be a YAML mapping")
        if "limit" in history:
            limit = history["limit"]
            if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
                raise WorkspaceConfigError(f"{location}: 'limit' must be a positive integer")
            config.history_limit = limit
        if "coalesce-window" in history:
            window = history["coalesce-window"]
            if isinstance(window, bool) or not isinstance(window, (int, float)) or window < 0:
                raise WorkspaceConfigError(f"{location}: 'coalesce-window' must be a non-negative number")
            config.coalesce_window = float(window)

    return config


def _require_string(mapping: dict[str, object], key: str, source_label: str) -> str:
    """Extract a string field from a mapping, raising WorkspaceConfigError on a wrong type."""
    if key not in mapping:
        raise WorkspaceConfigError(f"{source_label}: missing required field '{key}'")
    value = mapping[key]
    if not isinstance(value, str):
        raise WorkspaceConfigError(f"{source_label}: '{key}' must be a string")
    return value
