# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Linear undo / redo history over whole-file snapshots.

Entries hold deep copies of the states of the files an operation touched,
before and after it ran. The history never shares state with live files:
snapshots are copied when captured and copied again when restored.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from formwork.errors import NothingToRedoError, NothingToUndoError
from formwork.files.base import FileType, SourceFile
from formwork.files.factory import create_file

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_COALESCE_WINDOW = 0.5

# Maps filename to its snapshot; None means the file did not exist.
Snapshots = Mapping[str, "FileSnapshot | None"]
MergeKey = tuple[str, ...]


@dataclass(frozen=True)
class FileSnapshot:
    """Captured content of one file."""

    filename: str
    type: FileType
    code: str
    state: Any = field(compare=False, repr=False)

    @classmethod
    def capture(cls, file: SourceFile) -> FileSnapshot:
        return cls(file.filename, file.type, file.code, file.capture_state())

    def restore(self, **options: Any) -> SourceFile:
        """Build a new file object holding this snapshot's state.

        Node ids of view files are preserved.
        """
        file = create_file(self.filename, self.code, self.type, **options)
        file.restore_state(self.state)
        return file


@dataclass(frozen=True)
class HistoryEntry:
    """One undoable step.

    Attributes:
        seq: Increasing sequence number.
        label: Name of the operation that produced the entry.
        before: Snapshots of the touched files before the operation.
        after: Snapshots of the same files after it.
        merge_key: Entries with equal keys recorded in quick succession are
            merged; None never merges.
        timestamp: Clock reading of the latest change folded into the entry.
    """

    seq: int
    label: str
    before: Snapshots
    after: Snapshots
    merge_key: MergeKey | None = None
    timestamp: float = 0.0

    @property
    def filenames(self) -> list[str]:
        return sorted(set(self.before) | set(self.after))


class HistoryState(Enum):
    EMPTY = "empty"
    HAS_UNDO = "has_undo"
    HAS_REDO = "has_redo"
    HAS_BOTH = "has_both"


class History:
    """Entry list with a cursor; entries before the cursor are undoable.

    Args:
        limit: Maximum number of kept entries; the oldest are dropped first.
        coalesce_window: Seconds within which entries with the same merge key
            are folded into one.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        limit: int = DEFAULT_HISTORY_LIMIT,
        coalesce_window: float = DEFAULT_COALESCE_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self.limit = limit
        self.coalesce_window = coalesce_window
        self._clock = clock
        self._entries: list[HistoryEntry] = []
        self._cursor = 0
        self._seq = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries)

    @property
    def state(self) -> HistoryState:
        if self.can_undo and self.can_redo:
            return HistoryState.HAS_BOTH
        if self.can_undo:
            return HistoryState.HAS_UNDO
        if self.can_redo:
            return HistoryState.HAS_REDO
        return HistoryState.EMPTY

    def record(
        self,
        label: str,
        before: Snapshots,
        after: Snapshots,
        merge_key: MergeKey | None = None,
    ) -> HistoryEntry:
        """Append an entry, discarding everything that could have been redone.

        When *merge_key* matches the tail entry, the cursor is at the tail and
        the tail was changed less than ``coalesce_window`` seconds ago, the
        tail is extended instead: it keeps its own before snapshots and takes
        the new after snapshots.
        """
        now = self._clock()
        tail = self._entries[-1] if self._entries else None
        if (
            merge_key is not None
            and tail is not None
            and tail.merge_key == merge_key
            and self._cursor == len(self._entries)
            and now - tail.timestamp <= self.coalesce_window
        ):
            merged_before = {**before, **tail.before}
            merged_after = {**tail.after, **after}
            entry = HistoryEntry(tail.seq, tail.label, merged_before, merged_after, merge_key, now)
            self._entries[-1] = entry
            logger.debug("Coalesced %r into history entry %d", label, entry.seq)
            return entry

        del self._entries[self._cursor :]
        self._seq += 1
        entry = HistoryEntry(self._seq, label, dict(before), dict(after), merge_key, now)
        self._entries.append(entry)
        if len(self._entries) > self.limit:
            del self._entries[: len(self._entries) - self.limit]
        self._cursor = len(self._entries)
        logger.debug("Recorded history entry %d (%s)", entry.seq, label)
        return entry

    def undo(self) -> HistoryEntry:
        """Step the cursor back and return the entry whose before state applies.

        Raises:
            NothingToUndoError: If there is no entry before the cursor.
        """
        if not self.can_undo:
            raise NothingToUndoError("Nothing to undo")
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> HistoryEntry:
        """Step the cursor forward and return the entry whose after state applies.

        Raises:
            NothingToRedoError: If there is no entry after the cursor.
        """
        if not self.can_redo:
            raise NothingToRedoError("Nothing to redo")
        entry = self._entries[self._cursor]
        self._cursor += 1
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = 0
