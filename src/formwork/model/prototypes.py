# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Component prototypes: the externally supplied catalog of building blocks.

Besides the models, this module provides the read helpers a property form
needs: grouping props into tabs, keyword filtering and resolving live values
through prop getters.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import Field as _Field

from formwork.model.nodes import ImportStyle

# ###############
# Public Interface
# ###############

DEFAULT_GROUP = "basic"

# (value, label) pairs in display order.
DEFAULT_PROP_GROUPS: list[tuple[str, str]] = [
    ("basic", "Common"),
    ("event", "Events"),
    ("style", "Style"),
    ("advanced", "Advanced"),
]

PropGetter = Callable[[Mapping[str, Any]], Mapping[str, Any]]


class ComponentProp(BaseModel):
    """Schema of one configurable component property.

    Attributes:
        name: Attribute name written into the view.
        title: Human-readable label.
        setter: Name of the editor used by the form layer.
        default: Initial value used when the component is inserted.
        group: Grouping tag; None falls back to ``basic``.
        props: Nested props for object-valued properties.
        getter: Optional callable receiving the current form values and
            returning overrides for this descriptor.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    title: str | None = None
    setter: str | None = None
    default: Any = None
    group: str | None = None
    props: list[ComponentProp] = _Field(default_factory=list)
    getter: PropGetter | None = _Field(default=None, exclude=True)


class ComponentPrototype(BaseModel):
    """A component that can be inserted into a view.

    Attributes:
        name: Component name used as the element tag.
        title: Human-readable label.
        package: Module the component is imported from; None for components
            that need no import.
        export_type: Whether ``package`` exports the component as a named,
            default or namespace export.
        type: Free-form category (``element``, ``container``, ``page`` ...).
        has_children: False for leaf-only components.
        init_children: Markup for the children created on insertion.
        default_props: Attribute values set on insertion.
        props: Configurable property schema.
        related_imports: Other component names the inserted markup refers to.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    title: str | None = None
    package: str | None = None
    export_type: ImportStyle = ImportStyle.NAMED
    type: str = "element"
    has_children: bool = True
    init_children: str | None = None
    default_props: dict[str, Any] = _Field(default_factory=dict)
    props: list[ComponentProp] = _Field(default_factory=list)
    related_imports: list[str] = _Field(default_factory=list)


def group_props(props: list[ComponentProp]) -> dict[str, list[ComponentProp]]:
    """Group props by their ``group`` tag, keeping declaration order."""
    groups: dict[str, list[ComponentProp]] = {}
    for prop in props:
        groups.setdefault(prop.group or DEFAULT_GROUP, []).append(prop)
    return groups


def filter_props(props: list[ComponentProp], keyword: str) -> list[ComponentProp]:
    """Return the props whose title or name matches *keyword* (case-insensitive).

    A prop with nested props is kept when any descendant matches; its nested
    list is then narrowed to the matching branch. An empty keyword returns the
    props unchanged.
    """
    if not keyword:
        return props
    pattern = re.compile(re.escape(keyword), re.IGNORECASE)
    return _filter_tree(props, pattern)


def resolve_props(props: list[ComponentProp], values: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Materialize prop descriptors for the form layer.

    Each descriptor is the prop's fields merged with whatever its getter
    returns for the current form *values*. Nested props are resolved the same
    way.
    """
    resolved: list[dict[str, Any]] = []
    for prop in props:
        data = prop.model_dump(exclude={"props", "getter"})
        data["props"] = resolve_props(prop.props, values)
        if prop.getter is not None:
            data.update(prop.getter(values))
        resolved.append(data)
    return resolved


# ################
# Implementation
# ################


def _filter_tree(props: list[ComponentProp], pattern: re.Pattern[str]) -> list[ComponentProp]:
    kept: list[ComponentProp] = []
    for prop in props:
        children = _filter_tree(prop.props, pattern)
        if children:
            kept.append(prop.model_copy(update={"props": children}))
        elif pattern.search(prop.name) or (prop.title and pattern.search(prop.title)):
            kept.append(prop)
    return kept


# Resolve forward references in self-referential models.
ComponentProp.model_rebuild()
