# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Error taxonomy shared by every layer of the project model."""

# ###############
# Public Interface
# ###############


class FormworkError(Exception):
    """Base class for all errors raised by the project model."""


class ParseError(FormworkError):
    """Raised when source text cannot be parsed into a tree.

    Attributes:
        line: 1-based line number of the error.
        column: 1-based column number of the error.
    """

    def __init__(self, message: str, line: int = 0, column: int = 0) -> None:
        if line:
            super().__init__(f"Line {line}, column {column}: {message}")
        else:
            super().__init__(message)
        self.line = line
        self.column = column


class NotFoundError(FormworkError):
    """Raised when a file or node does not exist."""


class InvalidTargetError(FormworkError):
    """Raised for a structurally disallowed mutation."""


class NameConflictError(FormworkError):
    """Raised when a file or folder name collides with an existing one."""


class ImportConflictError(FormworkError):
    """Raised when an import specifier would rebind a local name differently."""


class UnknownComponentError(FormworkError):
    """Raised when a component name has no registered prototype."""


class NoSelectionError(FormworkError):
    """Raised when an operation needs a selected or dragged node and there is none."""


class HistoryError(FormworkError):
    """Base class for undo / redo failures."""


class NothingToUndoError(HistoryError):
    """Raised by undo() when the cursor is at the start of the history."""


class NothingToRedoError(HistoryError):
    """Raised by redo() when the cursor is at the end of the history."""
