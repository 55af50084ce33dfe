# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Transient references to the selected node and the node being dragged."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from formwork.model.prototypes import ComponentPrototype

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class NodeRef:
    """Address of a node: the owning file and the node id."""

    filename: str
    node_id: str


class DropMethod(Enum):
    """How a dragged node is placed relative to the drop target."""

    BEFORE = "before"
    AFTER = "after"
    CHILD_FIRST = "child-first"
    CHILD_LAST = "child-last"
    REPLACE = "replace"


@dataclass(frozen=True)
class DropTarget:
    ref: NodeRef
    method: DropMethod


RefCheck = Callable[[NodeRef], bool]


class SelectSource:
    """Holds at most one selected node."""

    def __init__(self) -> None:
        self._selected: NodeRef | None = None

    @property
    def selected(self) -> NodeRef | None:
        return self._selected

    def select(self, filename: str, node_id: str) -> NodeRef:
        self._selected = NodeRef(filename, node_id)
        return self._selected

    def clear(self) -> None:
        self._selected = None

    def prune(self, is_live: RefCheck) -> bool:
        """Clear the selection if *is_live* rejects it; return whether it was cleared."""
        if self._selected is not None and not is_live(self._selected):
            logger.debug("Clearing stale selection %s", self._selected)
            self._selected = None
            return True
        return False


class DragSource:
    """Holds the drag in progress: an existing node or a prototype, plus a drop target."""

    def __init__(self) -> None:
        self._source: NodeRef | None = None
        self._prototype: ComponentPrototype | None = None
        self._target: DropTarget | None = None

    @property
    def source(self) -> NodeRef | None:
        return self._source

    @property
    def prototype(self) -> ComponentPrototype | None:
        return self._prototype

    @property
    def target(self) -> DropTarget | None:
        return self._target

    @property
    def active(self) -> bool:
        return self._source is not None or self._prototype is not None

    def start(self, filename: str, node_id: str) -> NodeRef:
        """Start dragging an existing node."""
        self.clear()
        self._source = NodeRef(filename, node_id)
        return self._source

    def start_prototype(self, prototype: ComponentPrototype) -> None:
        """Start dragging a new component from the catalog."""
        self.clear()
        self._prototype = prototype

    def set_drop_target(self, filename: str, node_id: str, method: DropMethod | str) -> DropTarget:
        """Set where the dragged item would land.

        Raises:
            ValueError: If *method* is not a known drop method.
        """
        self._target = DropTarget(NodeRef(filename, node_id), DropMethod(method))
        return self._target

    def clear(self) -> None:
        self._source = None
        self._prototype = None
        self._target = None

    def prune(self, is_live: RefCheck) -> bool:
        """Drop references *is_live* rejects; a stale source ends the whole drag."""
        cleared = False
        if self._source is not None and not is_live(self._source):
            logger.debug("Clearing stale drag source %s", self._source)
            self.clear()
            cleared = True
        if self._target is not None and not is_live(self._target.ref):
            logger.debug("Clearing stale drop target %s", self._target.ref)
            self._target = None
            cleared = True
        return cleared
