# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tree entities for view files: elements, attribute values and imports."""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel
from pydantic import Field as _Field

# ###############
# Public Interface
# ###############


class LiteralValue(BaseModel):
    """A string literal attribute value, e.g. ``text="Hi"``."""

    kind: Literal["literal"] = "literal"
    value: str

    def as_prop(self) -> str:
        return self.value


class ExpressionValue(BaseModel):
    """A brace expression attribute value, e.g. ``onClick={handleClick}``.

    The code is kept verbatim (stripped of surrounding whitespace); it is never
    evaluated or analysed.
    """

    kind: Literal["expression"] = "expression"
    code: str

    def as_prop(self) -> str:
        return "{{" + self.code + "}}"


# The `kind` discriminator keeps deserialization unambiguous.
AttributeValue = Annotated[LiteralValue | ExpressionValue, _Field(discriminator="kind")]


class Element(BaseModel):
    """A component instance in a view tree.

    Attributes:
        id: Identifier assigned by the owning file; empty for detached elements.
        component: Component type name, possibly dotted (``Form.Item``).
        attributes: Ordered mapping of attribute name to value.
        children: Ordered child elements.
        line: 1-based source line, 0 for elements not produced by the parser.
        column: 1-based source column.
    """

    id: str = ""
    component: str
    attributes: dict[str, AttributeValue] = _Field(default_factory=dict)
    children: list[Element] = _Field(default_factory=list)
    line: int = 0
    column: int = 0

    def walk(self) -> Iterator[Element]:
        """Yield this element and all descendants in document order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def structure(self) -> tuple[Any, ...]:
        """Return a comparable form that ignores ids and source positions."""
        attrs = tuple((name, value.kind, value.as_prop()) for name, value in self.attributes.items())
        return (self.component, attrs, tuple(child.structure() for child in self.children))


class ImportStyle(Enum):
    """How a symbol is bound by an import declaration."""

    DEFAULT = "default"
    NAMED = "named"
    NAMESPACE = "namespace"


class ImportSpecifier(BaseModel):
    """One binding of an import declaration.

    Attributes:
        local: The name bound in the importing file.
        imported: The exported name for aliased named imports
            (``{ Input as TextInput }``); None when it equals ``local``.
        style: Default, named or namespace binding.
    """

    local: str
    imported: str | None = None
    style: ImportStyle = ImportStyle.NAMED

    @property
    def exported_name(self) -> str:
        return self.imported or self.local


class ImportDeclaration(BaseModel):
    """An import statement: ``import A, { B as C } from "source";``."""

    source: str
    specifiers: list[ImportSpecifier] = _Field(default_factory=list)

    def has_style(self, style: ImportStyle) -> bool:
        return any(spec.style == style for spec in self.specifiers)


@dataclass(frozen=True)
class ImportSource:
    """Where an imported local name comes from."""

    source: str
    style: ImportStyle
    imported: str


class ViewTree(BaseModel):
    """Top-level model of a parsed view file."""

    imports: list[ImportDeclaration] = _Field(default_factory=list)
    root: Element

    def structure(self) -> tuple[Any, ...]:
        """Return a comparable form of the whole file, ignoring ids and positions."""
        imports = tuple(
            (imp.source, tuple((s.local, s.imported, s.style.value) for s in imp.specifiers)) for imp in self.imports
        )
        return (imports, self.root.structure())


def expression(code: str) -> ExpressionValue:
    """Build an expression attribute value from raw code."""
    return ExpressionValue(code=code.strip())


def to_attribute_value(value: Any) -> LiteralValue | ExpressionValue:
    """Coerce a Python value into an attribute value.

    Strings are literals unless wrapped as ``"{{code}}"``; booleans, numbers,
    lists and dicts become expressions holding their JSON spelling.

    Raises:
        TypeError: If the value has no attribute representation.
    """
    if isinstance(value, (LiteralValue, ExpressionValue)):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("{{") and stripped.endswith("}}"):
            return expression(stripped[2:-2])
        return LiteralValue(value=value)
    if isinstance(value, bool):
        return ExpressionValue(code="true" if value else "false")
    if isinstance(value, (int, float, list, tuple, dict)):
        return ExpressionValue(code=json.dumps(value, ensure_ascii=False))
    raise TypeError(f"Cannot use {type(value).__name__} as an attribute value")


# Resolve forward references in self-referential models.
Element.model_rebuild()
ViewTree.model_rebuild()
