# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the Formwork CLI entry point."""

import sys
from pathlib import Path

import pytest

from formwork.cli.main import main

# ###############
# Helpers
# ###############


def _run(monkeypatch: pytest.MonkeyPatch, *args: str) -> int | str | None:
    monkeypatch.setattr(sys, "argv", ["formwork", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


def _write(root: Path, files: dict[str, str]) -> None:
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


# ###############
# Public Interface
# ###############


def test_main_no_args_prints_help_and_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    """main() with no subcommand prints help and exits with code 0."""
    assert _run(monkeypatch) == 0


# -------- init tests --------


def test_init_creates_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """init writes the config, an entry page, the route table and the manifest."""
    assert _run(monkeypatch, "init", str(tmp_path)) == 0
    assert (tmp_path / ".formwork.yaml").exists()
    assert (tmp_path / "pages" / "index.view").read_text() == '<Page title="Home" />\n'
    assert "view: pages/index.view" in (tmp_path / "routes.yaml").read_text()
    assert (tmp_path / "formwork.config.json").exists()


def test_init_default_directory_uses_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert _run(monkeypatch, "init") == 0
    assert (tmp_path / ".formwork.yaml").exists()


def test_init_fails_if_project_exists(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".formwork.yaml").write_text("")
    assert _run(monkeypatch, "init", str(tmp_path)) == 1


def test_init_keeps_existing_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path, {"pages/index.view": "<Landing />\n"})
    assert _run(monkeypatch, "init", str(tmp_path)) == 0
    assert (tmp_path / "pages" / "index.view").read_text() == "<Landing />\n"


def test_init_missing_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert _run(monkeypatch, "init", str(tmp_path / "nope")) == 1


# -------- check tests --------


def test_check_initialized_project(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _run(monkeypatch, "init", str(tmp_path))
    capsys.readouterr()
    assert _run(monkeypatch, "check", str(tmp_path)) == 0
    assert "No issues found." in capsys.readouterr().out


def test_check_reports_parse_errors(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(tmp_path, {"pages/index.view": "<Page>\n", "pages/ok.view": "<Page />\n"})
    assert _run(monkeypatch, "check", str(tmp_path)) == 1
    assert "pages/index.view" in capsys.readouterr().err


def test_check_warns_about_unimported_components(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(
        tmp_path,
        {
            "pages/index.view": 'import { Button } from "ui";\n<Page><Button /><Chart /><Card /><div /></Page>\n',
            "components/Card.view": "<Box />\n",
        },
    )
    assert _run(monkeypatch, "check", str(tmp_path)) == 0
    out = capsys.readouterr().out
    assert "component 'Chart' is not imported" in out
    assert "'Card'" not in out
    assert "'Button'" not in out


def test_check_invalid_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path, {".formwork.yaml": "history: 3\n"})
    assert _run(monkeypatch, "check", str(tmp_path)) == 1


def test_check_empty_project(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(monkeypatch, "check", str(tmp_path)) == 0
    assert "No files found" in capsys.readouterr().out


def test_check_missing_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert _run(monkeypatch, "check", str(tmp_path / "nope")) == 1


# -------- tree tests --------


def test_tree_prints_node_ids(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(tmp_path, {"a.view": "<Page><Header /><Body><Button /></Body></Page>\n"})
    assert _run(monkeypatch, "tree", "a.view", "--directory", str(tmp_path)) == 0
    assert capsys.readouterr().out == "Page#1\n  Header#2\n  Body#3\n    Button#4\n"


def test_tree_rejects_non_view(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path, {"data.json": "{}"})
    assert _run(monkeypatch, "tree", "data.json", "--directory", str(tmp_path)) == 1


def test_tree_missing_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert _run(monkeypatch, "tree", "a.view", "--directory", str(tmp_path)) == 1


# -------- apply tests --------

SCRIPT = """\
- op: insert
  file: pages/index.view
  parent: Page#1
  markup: <Button text="Save" />
- op: remove-file
  file: pages/old.view
"""


def test_apply_writes_changes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(tmp_path, {"pages/index.view": "<Page />\n", "pages/old.view": "<Page />\n"})
    script = tmp_path / ".edit.yaml"
    script.write_text(SCRIPT, encoding="utf-8")

    assert _run(monkeypatch, "apply", str(script), "--directory", str(tmp_path)) == 0
    assert (tmp_path / "pages" / "index.view").read_text() == '<Page>\n  <Button text="Save" />\n</Page>\n'
    assert not (tmp_path / "pages" / "old.view").exists()
    assert "Applied 2 step(s): 1 file(s) written, 1 deleted." in capsys.readouterr().out


def test_apply_dry_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    _write(tmp_path, {"pages/index.view": "<Page />\n", "pages/old.view": "<Page />\n"})
    script = tmp_path / ".edit.yaml"
    script.write_text(SCRIPT, encoding="utf-8")

    assert _run(monkeypatch, "apply", str(script), "--directory", str(tmp_path), "--dry-run") == 0
    out = capsys.readouterr().out
    assert "would update pages/index.view" in out
    assert "would delete pages/old.view" in out
    assert (tmp_path / "pages" / "index.view").read_text() == "<Page />\n"
    assert (tmp_path / "pages" / "old.view").exists()


def test_apply_failing_step_writes_nothing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _write(tmp_path, {"pages/index.view": "<Page />\n"})
    script = tmp_path / ".edit.yaml"
    script.write_text(SCRIPT, encoding="utf-8")

    assert _run(monkeypatch, "apply", str(script), "--directory", str(tmp_path)) == 1
    assert "step 2 (remove-file)" in capsys.readouterr().err
    assert (tmp_path / "pages" / "index.view").read_text() == "<Page />\n"


def test_apply_invalid_script(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    script = tmp_path / ".edit.yaml"
    script.write_text("- op: explode\n", encoding="utf-8")
    assert _run(monkeypatch, "apply", str(script), "--directory", str(tmp_path)) == 1
