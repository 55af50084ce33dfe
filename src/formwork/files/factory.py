# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Construction of file objects from a filename and its text."""

from __future__ import annotations

from typing import Any

from formwork.errors import InvalidTargetError
from formwork.files.base import FileType, ModuleFile, SourceFile, infer_file_type
from formwork.files.data import DataFile, RouteFile, ServiceFile, StoreFile
from formwork.files.view import ViewFile

# ###############
# Public Interface
# ###############

FILE_CLASSES: dict[FileType, type[SourceFile]] = {
    FileType.VIEW: ViewFile,
    FileType.DATA: DataFile,
    FileType.ROUTE: RouteFile,
    FileType.STORE: StoreFile,
    FileType.SERVICE: ServiceFile,
    FileType.MODULE: ModuleFile,
}


def create_file(filename: str, code: str, file_type: FileType | None = None, **options: Any) -> SourceFile:
    """Create the file object for *filename*, parsing *code*.

    Args:
        filename: Workspace key; decides the kind when *file_type* is omitted.
        code: File text.
        file_type: Expected kind. It must agree with the filename.
        **options: Extra keyword arguments for view files (``accepts_children``).

    Raises:
        InvalidTargetError: If *file_type* contradicts the filename.
        ParseError: If *code* is invalid for the kind.
    """
    inferred = infer_file_type(filename)
    if file_type is not None and file_type != inferred:
        raise InvalidTargetError(f"{filename!r} is a {inferred.value} file, not a {file_type.value} file")
    cls = FILE_CLASSES[inferred]
    if cls is ViewFile:
        return ViewFile(filename, code, **options)
    return cls(filename, code)
