# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tree and prototype models for the project model (elements, imports, components)."""

from formwork.model.nodes import (
    AttributeValue,
    Element,
    ExpressionValue,
    ImportDeclaration,
    ImportSource,
    ImportSpecifier,
    ImportStyle,
    LiteralValue,
    ViewTree,
    expression,
    to_attribute_value,
)
from formwork.model.prototypes import (
    DEFAULT_PROP_GROUPS,
    ComponentProp,
    ComponentPrototype,
    filter_props,
    group_props,
    resolve_props,
)

__all__ = [
    # Tree entities
    "AttributeValue",
    "Element",
    "ExpressionValue",
    "LiteralValue",
    "ViewTree",
    "expression",
    "to_attribute_value",
    # Imports
    "ImportDeclaration",
    "ImportSource",
    "ImportSpecifier",
    "ImportStyle",
    # Prototypes
    "DEFAULT_PROP_GROUPS",
    "ComponentProp",
    "ComponentPrototype",
    "filter_props",
    "group_props",
    "resolve_props",
]
