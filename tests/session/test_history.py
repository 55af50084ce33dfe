# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the undo / redo history engine."""

import pytest

from formwork.errors import NothingToRedoError, NothingToUndoError
from formwork.files import FileType, ViewFile
from formwork.session import FileSnapshot, History, HistoryState

# ###############
# Test Helpers
# ###############


class FakeClock:
    """Manually advanced time source."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def _snap(code: str) -> FileSnapshot:
    return FileSnapshot.capture(ViewFile("a.view", code))


def _record(history: History, label: str, merge_key: tuple[str, ...] | None = None) -> None:
    history.record(label, {"a.view": _snap("<Before />")}, {"a.view": _snap(f"<After{len(history)} />")}, merge_key)


# ###############
# State Machine
# ###############


class TestStates:
    def test_starts_empty(self) -> None:
        history = History()
        assert history.state == HistoryState.EMPTY
        assert len(history) == 0

    def test_record_enables_undo(self) -> None:
        history = History()
        _record(history, "A")
        assert history.state == HistoryState.HAS_UNDO

    def test_undo_enables_redo(self) -> None:
        history = History()
        _record(history, "A")
        history.undo()
        assert history.state == HistoryState.HAS_REDO

    def test_has_both(self) -> None:
        history = History()
        _record(history, "A")
        _record(history, "B")
        history.undo()
        assert history.state == HistoryState.HAS_BOTH

    def test_undo_at_start(self) -> None:
        with pytest.raises(NothingToUndoError):
            History().undo()

    def test_redo_at_end(self) -> None:
        history = History()
        _record(history, "A")
        with pytest.raises(NothingToRedoError):
            history.redo()


# ###############
# Linearity
# ###############


class TestLinearity:
    def test_undo_and_redo_return_entries_in_order(self) -> None:
        history = History()
        _record(history, "A")
        _record(history, "B")
        assert history.undo().label == "B"
        assert history.undo().label == "A"
        assert history.redo().label == "A"
        assert history.redo().label == "B"

    def test_new_record_after_undo_discards_redo(self) -> None:
        history = History()
        _record(history, "A")
        _record(history, "B")
        history.undo()
        _record(history, "C")
        assert [e.label for e in history.entries] == ["A", "C"]
        with pytest.raises(NothingToRedoError):
            history.redo()

    def test_limit_drops_oldest(self) -> None:
        history = History(limit=2)
        for label in ("A", "B", "C"):
            _record(history, label)
        assert [e.label for e in history.entries] == ["B", "C"]
        assert history.cursor == 2

    def test_sequence_numbers_increase(self) -> None:
        history = History()
        _record(history, "A")
        _record(history, "B")
        assert [e.seq for e in history.entries] == [1, 2]

    def test_invalid_limit(self) -> None:
        with pytest.raises(ValueError):
            History(limit=0)

    def test_clear(self) -> None:
        history = History()
        _record(history, "A")
        history.clear()
        assert history.state == HistoryState.EMPTY


# ###############
# Coalescing
# ###############


class TestCoalescing:
    def test_same_key_within_window_merges(self) -> None:
        clock = FakeClock()
        history = History(coalesce_window=0.5, clock=clock)
        history.record("edit", {"a.view": _snap("<V0 />")}, {"a.view": _snap("<V1 />")}, ("a.view", "A#1", "x"))
        clock.now += 0.3
        history.record("edit", {"a.view": _snap("<V1 />")}, {"a.view": _snap("<V2 />")}, ("a.view", "A#1", "x"))
        assert len(history) == 1
        entry = history.entries[0]
        assert entry.before["a.view"].code == "<V0 />\n"
        assert entry.after["a.view"].code == "<V2 />\n"

    def test_window_is_measured_from_last_merge(self) -> None:
        clock = FakeClock()
        history = History(coalesce_window=0.5, clock=clock)
        for _ in range(4):
            _record(history, "edit", ("k",))
            clock.now += 0.4
        assert len(history) == 1

    def test_outside_window_does_not_merge(self) -> None:
        clock = FakeClock()
        history = History(coalesce_window=0.5, clock=clock)
        _record(history, "edit", ("k",))
        clock.now += 0.6
        _record(history, "edit", ("k",))
        assert len(history) == 2

    def test_different_key_does_not_merge(self) -> None:
        history = History(clock=FakeClock())
        _record(history, "edit", ("a.view", "A#1", "x"))
        _record(history, "edit", ("a.view", "A#1", "y"))
        assert len(history) == 2

    def test_none_key_never_merges(self) -> None:
        history = History(clock=FakeClock())
        _record(history, "insert")
        _record(history, "insert")
        assert len(history) == 2

    def test_no_merge_after_undo(self) -> None:
        history = History(clock=FakeClock())
        _record(history, "edit", ("k",))
        _record(history, "other")
        history.undo()
        _record(history, "edit", ("k",))
        assert [e.label for e in history.entries] == ["edit", "edit"]


# ###############
# Snapshots
# ###############


class TestFileSnapshot:
    def test_capture_is_independent(self) -> None:
        view = ViewFile("a.view", "<Page />")
        snapshot = FileSnapshot.capture(view)
        view.insert_child("Page#1", "<A />")
        assert snapshot.code == "<Page />\n"
        assert snapshot.type == FileType.VIEW

    def test_restore_builds_file_with_same_ids(self) -> None:
        view = ViewFile("a.view", "<Page><A /></Page>")
        view.insert_child("Page#1", "<B />")
        restored = FileSnapshot.capture(view).restore()
        assert isinstance(restored, ViewFile)
        assert list(restored.nodes) == ["Page#1", "A#2", "B#3"]
        assert restored.code == view.code
