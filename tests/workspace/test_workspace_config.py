# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the project configuration module."""

from pathlib import Path

import pytest

from formwork.workspace import WorkspaceConfig, WorkspaceConfigError, load_workspace_config

# ###############
# Helpers
# ###############


def _write_config(tmp_path: Path, content: str) -> Path:
    """Write a project config file and return its path."""
    config_file = tmp_path / ".formwork.yaml"
    config_file.write_text(content, encoding="utf-8")
    return config_file


# ###############
# Normal Cases
# ###############


def test_empty_config_uses_defaults(tmp_path: Path) -> None:
    """An empty file yields the default configuration."""
    config = load_workspace_config(_write_config(tmp_path, ""))

    assert config == WorkspaceConfig()
    assert config.entry is None
    assert config.config_file == "formwork.config.json"
    assert config.history_limit == 100
    assert config.coalesce_window == 0.5


def test_full_config(tmp_path: Path) -> None:
    """Every field is read from the file."""
    content = """\
entry: pages/index.view
config-file: deps.json
history:
  limit: 20
  coalesce-window: 1
"""
    config = load_workspace_config(_write_config(tmp_path, content))

    assert config.entry == "pages/index.view"
    assert config.config_file == "deps.json"
    assert config.history_limit == 20
    assert config.coalesce_window == 1.0
    assert isinstance(config.coalesce_window, float)


def test_zero_coalesce_window_is_allowed(tmp_path: Path) -> None:
    config = load_workspace_config(_write_config(tmp_path, "history:\n  coalesce-window: 0\n"))
    assert config.coalesce_window == 0.0


# ###############
# Error Cases
# ###############


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceConfigError, match="not found"):
        load_workspace_config(tmp_path / ".formwork.yaml")


def test_invalid_yaml(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceConfigError, match="Invalid YAML"):
        load_workspace_config(_write_config(tmp_path, "entry: [unclosed\n"))


def test_root_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceConfigError, match="mapping"):
        load_workspace_config(_write_config(tmp_path, "- entry\n"))


def test_entry_must_be_string(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceConfigError, match="'entry' must be a string"):
        load_workspace_config(_write_config(tmp_path, "entry: 3\n"))


def test_history_must_be_mapping(tmp_path: Path) -> None:
    with pytest.raises(WorkspaceConfigError, match="history must be a YAML mapping"):
        load_workspace_config(_write_config(tmp_path, "history: 10\n"))


@pytest.mark.parametrize("value", ["0", "-1", "true", "ten", "2.5"])
def test_invalid_history_limit(tmp_path: Path, value: str) -> None:
    with pytest.raises(WorkspaceConfigError, match="'limit' must be a positive integer"):
        load_workspace_config(_write_config(tmp_path, f"history:\n  limit: {value}\n"))


@pytest.mark.parametrize("value", ["-0.1", "false", "soon"])
def test_invalid_coalesce_window(tmp_path: Path, value: str) -> None:
    with pytest.raises(WorkspaceConfigError, match="'coalesce-window' must be a non-negative number"):
        load_workspace_config(_write_config(tmp_path, f"history:\n  coalesce-window: {value}\n"))
