# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Common file behaviour, file-kind inference and capability protocols.

Every file keeps three things: the raw text it was last loaded from, a parsed
state (the tree) and the cached rendering of that state. After loading, the
state is the source of truth; ``code`` is always re-derivable from it.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, ClassVar, Protocol

from formwork.errors import ParseError

# ###############
# Public Interface
# ###############


class FileType(Enum):
    """Kinds of files the workspace understands."""

    VIEW = "view"
    DATA = "data"
    ROUTE = "route"
    STORE = "store"
    SERVICE = "service"
    MODULE = "module"


def infer_file_type(filename: str) -> FileType:
    """Infer the file kind from its name.

    ``*.view`` files are views, ``routes.yaml`` is the route table, YAML files
    directly inside a ``stores`` or ``services`` folder are store and service
    modules, other JSON / YAML files are plain data and everything else is an
    opaque module.
    """
    path = PurePosixPath(filename)
    suffix = path.suffix.lower()
    if suffix == ".view":
        return FileType.VIEW
    if suffix in (".yaml", ".yml"):
        if path.stem == "routes":
            return FileType.ROUTE
        if path.parent.name == "stores":
            return FileType.STORE
        if path.parent.name == "services":
            return FileType.SERVICE
        return FileType.DATA
    if suffix == ".json":
        return FileType.DATA
    return FileType.MODULE


class SourceFile:
    """Base class for all workspace files.

    Subclasses implement ``_parse`` and ``_render``; structural edits go
    through ``_mutation`` which edits a private copy of the state and only
    swaps it in once the edit succeeded, so a failed edit changes nothing.
    """

    type: ClassVar[FileType] = FileType.MODULE

    def __init__(self, filename: str, code: str) -> None:
        self.filename = filename
        self._source = code
        self._state = self._load(code)
        self._code = self._render(self._state)
        self._after_change()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.filename!r})"

    @property
    def source(self) -> str:
        """The raw text this file was last loaded from."""
        return self._source

    @property
    def code(self) -> str:
        """The cached canonical rendering of the current state."""
        return self._code

    def update(self, code: str) -> None:
        """Replace the file content with *code*, re-parsing it.

        Raises:
            ParseError: If *code* is invalid; the previous state is kept.
        """
        state = self._load(code)
        self._source = code
        self._state = state
        self._code = self._render(state)
        self._after_change()

    def capture_state(self) -> Any:
        """Return an independent copy of the current state for snapshots."""
        return self._copy_state(self._state)

    def restore_state(self, state: Any) -> None:
        """Replace the current state with a copy of a captured one."""
        self._state = self._copy_state(state)
        self._code = self._render(self._state)
        self._after_change()

    def renamed(self, filename: str) -> SourceFile:
        """Return a new file of the same kind holding a copy of this file's state."""
        clone = copy.copy(self)
        clone.filename = filename
        clone.restore_state(self._state)
        return clone

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def _load(self, code: str) -> Any:
        return self._parse(code)

    def _parse(self, code: str) -> Any:
        return code

    def _render(self, state: Any) -> str:
        return state

    def _copy_state(self, state: Any) -> Any:
        return copy.deepcopy(state)

    def _same_state(self, left: Any, right: Any) -> bool:
        return left == right

    def _after_change(self) -> None:
        pass

    @contextmanager
    def _mutation(self, validate: bool = False) -> Iterator[Any]:
        """Yield a draft copy of the state and commit it when the block succeeds.

        With *validate*, the new rendering is parsed again and must reproduce
        the draft, otherwise ParseError is raised and nothing is committed.
        """
        draft = self._copy_state(self._state)
        yield draft
        code = self._render(draft)
        if validate and not self._same_state(self._parse(code), draft):
            raise ParseError(f"{self.filename}: rendering does not reproduce the edited content")
        self._state = draft
        self._code = code
        self._after_change()


class ModuleFile(SourceFile):
    """An opaque text file kept verbatim."""

    type = FileType.MODULE

    def _copy_state(self, state: Any) -> Any:
        return state


# ------------------------------------------------------------------
# Capability protocols
# ------------------------------------------------------------------


class FileOperations(Protocol):
    """Operations every file kind supports."""

    filename: str

    @property
    def code(self) -> str: ...

    def update(self, code: str) -> None: ...

    def capture_state(self) -> Any: ...

    def restore_state(self, state: Any) -> None: ...


class RouteFileOperations(FileOperations, Protocol):
    """Operations of the route table."""

    def list_routes(self) -> list[Any]: ...

    def get_route(self, path: str) -> Any: ...

    def add_route(self, route: Any) -> None: ...

    def update_route(self, path: str, route: Any) -> None: ...

    def remove_route(self, path: str) -> None: ...


class StoreFileOperations(FileOperations, Protocol):
    """Operations of a store module."""

    def list_state(self) -> dict[str, Any]: ...

    def add_state(self, name: str, init_value: Any) -> None: ...

    def update_state(self, name: str, init_value: Any) -> None: ...

    def remove_state(self, name: str) -> None: ...


class ServiceFileOperations(FileOperations, Protocol):
    """Operations of a service module."""

    def list_functions(self) -> dict[str, dict[str, Any]]: ...

    def get_function(self, name: str) -> dict[str, Any]: ...

    def add_function(self, name: str, config: Mapping[str, Any]) -> None: ...

    def update_function(self, name: str, payload: Mapping[str, Any]) -> None: ...

    def remove_function(self, name: str) -> None: ...

    def update_base_config(self, config: Mapping[str, Any]) -> None: ...
