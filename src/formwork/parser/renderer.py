# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Canonical rendering of view trees back to markup.

The output is deterministic and re-parses to a structurally equal tree, so
``render(parse(render(tree))) == render(tree)`` holds for every tree.
"""

from formwork.model.nodes import (
    Element,
    ExpressionValue,
    ImportDeclaration,
    ImportStyle,
    LiteralValue,
    ViewTree,
)

# ###############
# Public Interface
# ###############

INDENT = "  "


def render(tree: ViewTree) -> str:
    """Render a ViewTree as canonical markup ending with a newline."""
    lines = [render_import(imp) for imp in tree.imports]
    if lines:
        lines.append("")
    lines.extend(_element_lines(tree.root, 0))
    return "\n".join(lines) + "\n"


def render_import(declaration: ImportDeclaration) -> str:
    """Render one import declaration, default binding first."""
    source = _quote(declaration.source)
    if not declaration.specifiers:
        return f"import {source};"
    parts: list[str] = []
    named: list[str] = []
    for spec in declaration.specifiers:
        if spec.style == ImportStyle.DEFAULT:
            parts.insert(0, spec.local)
        elif spec.style == ImportStyle.NAMESPACE:
            parts.append(f"* as {spec.local}")
        elif spec.imported and spec.imported != spec.local:
            named.append(f"{spec.imported} as {spec.local}")
        else:
            named.append(spec.local)
    if named:
        parts.append("{ " + ", ".join(named) + " }")
    return f"import {', '.join(parts)} from {source};"


def render_element(element: Element) -> str:
    """Render a single element subtree without a trailing newline."""
    return "\n".join(_element_lines(element, 0))


# ################
# Implementation
# ################


def _element_lines(element: Element, depth: int) -> list[str]:
    pad = INDENT * depth
    head = "<" + element.component + "".join(" " + _render_attribute(n, v) for n, v in element.attributes.items())
    if not element.children:
        return [f"{pad}{head} />"]
    lines = [f"{pad}{head}>"]
    for child in element.children:
        lines.extend(_element_lines(child, depth + 1))
    lines.append(f"{pad}</{element.component}>")
    return lines


def _render_attribute(name: str, value: LiteralValue | ExpressionValue) -> str:
    if isinstance(value, LiteralValue):
        return f"{name}={_quote(value.value)}"
    if value.code == "true":
        return name
    return f"{name}={{{value.code}}}"


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t")
    return f'"{escaped}"'
