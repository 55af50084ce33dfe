# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""The file and node model of a project."""

from formwork.files.base import (
    FileOperations,
    FileType,
    ModuleFile,
    RouteFileOperations,
    ServiceFileOperations,
    SourceFile,
    StoreFileOperations,
    infer_file_type,
)
from formwork.files.data import (
    DataFile,
    Route,
    RouteFile,
    RouteTable,
    ServiceFile,
    ServiceModule,
    StoreFile,
    StoreModule,
)
from formwork.files.factory import FILE_CLASSES, create_file
from formwork.files.view import (
    DEFAULT_VIEW_SOURCE,
    InsertPosition,
    PositionKind,
    ViewFile,
    ViewFileOperations,
    ViewNode,
)

__all__ = [
    "DEFAULT_VIEW_SOURCE",
    "DataFile",
    "FILE_CLASSES",
    "FileOperations",
    "FileType",
    "InsertPosition",
    "ModuleFile",
    "PositionKind",
    "Route",
    "RouteFile",
    "RouteFileOperations",
    "RouteTable",
    "ServiceFile",
    "ServiceFileOperations",
    "ServiceModule",
    "SourceFile",
    "StoreFile",
    "StoreFileOperations",
    "StoreModule",
    "ViewFile",
    "ViewFileOperations",
    "ViewNode",
    "create_file",
    "infer_file_type",
]
