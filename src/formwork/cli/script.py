# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Edit scripts: YAML lists of workspace operations run by ``formwork apply``.

Example::

    - op: insert
      file: pages/index.view
      parent: Page#1
      markup: <Button text="Save" />
    - op: update-attribute
      file: pages/index.view
      node: Button#2
      name: type
      value: primary
    - op: undo
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from formwork.files.view import InsertPosition, PositionKind
from formwork.model.nodes import ImportSpecifier
from formwork.parser.parser import parse_element
from formwork.workspace.workspace import Workspace

# ###############
# Public Interface
# ###############


class ScriptError(Exception):
    """Raised when an edit script cannot be read or is invalid."""


class _Step(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class _NodeStep(_Step):
    reparse: bool = Field(default=False, alias="validate")


class _NodeContent(_NodeStep):
    markup: str | None = None
    component: str | None = None

    @model_validator(mode="after")
    def _one_source(self) -> _NodeContent:
        if (self.markup is None) == (self.component is None):
            raise ValueError("exactly one of 'markup' or 'component' is required")
        return self

    def source(self) -> Any:
        return parse_element(self.markup) if self.markup is not None else self.component


class InsertStep(_NodeContent):
    op: Literal["insert"]
    file: str
    parent: str
    position: PositionKind = PositionKind.APPEND
    sibling: str | None = None

    def apply(self, workspace: Workspace) -> None:
        position = InsertPosition(self.position, self.sibling)
        workspace.insert_to_node(self.parent, self.source(), position, filename=self.file, validate=self.reparse)


class RemoveStep(_NodeStep):
    op: Literal["remove"]
    file: str
    node: str

    def apply(self, workspace: Workspace) -> None:
        workspace.remove_node(self.node, filename=self.file, validate=self.reparse)


class ReplaceStep(_NodeContent):
    op: Literal["replace"]
    file: str
    node: str

    def apply(self, workspace: Workspace) -> None:
        workspace.replace_node(self.node, self.source(), filename=self.file, validate=self.reparse)


class UpdateAttributeStep(_NodeStep):
    op: Literal["update-attribute"]
    file: str
    node: str
    name: str
    value: Any = None

    def apply(self, workspace: Workspace) -> None:
        workspace.update_node_attribute(self.node, self.name, self.value, filename=self.file, validate=self.reparse)


class AddImportStep(_NodeStep):
    op: Literal["add-import"]
    file: str
    source: str
    specifiers: list[ImportSpecifier] = Field(default_factory=list)

    def apply(self, workspace: Workspace) -> None:
        workspace.add_import_specifiers(self.source, self.specifiers, filename=self.file, validate=self.reparse)


class AddFileStep(_Step):
    op: Literal["add-file"]
    file: str
    code: str = ""

    def apply(self, workspace: Workspace) -> None:
        workspace.add_file(self.file, self.code)


class RemoveFileStep(_Step):
    op: Literal["remove-file"]
    file: str

    def apply(self, workspace: Workspace) -> None:
        workspace.remove_file(self.file)


class RenameFileStep(_Step):
    op: Literal["rename-file"]
    file: str
    to: str

    def apply(self, workspace: Workspace) -> None:
        workspace.rename_file(self.file, self.to)


class RenameFolderStep(_Step):
    op: Literal["rename-folder"]
    folder: str
    to: str

    def apply(self, workspace: Workspace) -> None:
        workspace.rename_folder(self.folder, self.to)


class UndoStep(_Step):
    op: Literal["undo"]

    def apply(self, workspace: Workspace) -> None:
        workspace.undo()


class RedoStep(_Step):
    op: Literal["redo"]

    def apply(self, workspace: Workspace) -> None:
        workspace.redo()


ScriptStep = Annotated[
    InsertStep
    | RemoveStep
    | ReplaceStep
    | UpdateAttributeStep
    | AddImportStep
    | AddFileStep
    | RemoveFileStep
    | RenameFileStep
    | RenameFolderStep
    | UndoStep
    | RedoStep,
    Field(discriminator="op"),
]


def parse_script(text: str, source_label: str = "<string>") -> list[ScriptStep]:
    """Parse and validate edit script YAML.

    Raises:
        ScriptError: If the YAML is invalid or a step does not validate.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ScriptError(f"Invalid YAML in {source_label}: {exc}") from exc

    if data is None:
        return []
    if not isinstance(data, list):
        raise ScriptError(f"{source_label}: an edit script must be a YAML list of steps")

    try:
        return _STEPS.validate_python(data)
    except ValidationError as exc:
        raise ScriptError(f"Invalid edit script {source_label}: {exc}") from exc


def load_script(path: Path) -> list[ScriptStep]:
    """Read and validate an edit script file.

    Raises:
        ScriptError: If the file cannot be read or is invalid.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptError(f"Cannot read edit script '{path}': {exc}") from exc
    return parse_script(text, source_label=str(path))


# ################
# Implementation
# ################

_STEPS: TypeAdapter[list[ScriptStep]] = TypeAdapter(list[ScriptStep])
