# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Editing session state: undo / redo history, selection and drag."""

from formwork.session.history import (
    DEFAULT_COALESCE_WINDOW,
    DEFAULT_HISTORY_LIMIT,
    FileSnapshot,
    History,
    HistoryEntry,
    HistoryState,
)
from formwork.session.selection import DragSource, DropMethod, DropTarget, NodeRef, SelectSource

__all__ = [
    "DEFAULT_COALESCE_WINDOW",
    "DEFAULT_HISTORY_LIMIT",
    "DragSource",
    "DropMethod",
    "DropTarget",
    "FileSnapshot",
    "History",
    "HistoryEntry",
    "HistoryState",
    "NodeRef",
    "SelectSource",
]
