# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""View files: component trees with addressable nodes and an import map.

Node ids have the form ``"<Component>#<n>"``. They are assigned when text is
parsed and when new elements are inserted, from a per-file counter that only
grows, so an id is never handed out twice within a file. Ids are not written
into the rendered text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from formwork.errors import ImportConflictError, InvalidTargetError, NotFoundError
from formwork.files.base import FileOperations, FileType, SourceFile
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
    to_attribute_value,
)
from formwork.parser.lexer import is_component_name, is_identifier, scan_expression
from formwork.parser.parser import parse, parse_element
from formwork.parser.renderer import render

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

DEFAULT_VIEW_SOURCE = "<Page />\n"

NodeInput = Element | str
RelatedImports = Mapping[str, Iterable[ImportSpecifier]]


class PositionKind(Enum):
    """Where a new child goes relative to its parent or a sibling."""

    APPEND = "append"
    PREPEND = "prepend"
    BEFORE = "before"
    AFTER = "after"


@dataclass(frozen=True)
class InsertPosition:
    """Insertion point for ``insert_child``.

    Use the constructors: ``InsertPosition.append()``, ``.prepend()``,
    ``.before(sibling_id)`` and ``.after(sibling_id)``.
    """

    kind: PositionKind = PositionKind.APPEND
    sibling_id: str | None = None

    @classmethod
    def append(cls) -> InsertPosition:
        return cls(PositionKind.APPEND)

    @classmethod
    def prepend(cls) -> InsertPosition:
        return cls(PositionKind.PREPEND)

    @classmethod
    def before(cls, sibling_id: str) -> InsertPosition:
        return cls(PositionKind.BEFORE, sibling_id)

    @classmethod
    def after(cls, sibling_id: str) -> InsertPosition:
        return cls(PositionKind.AFTER, sibling_id)


@dataclass(frozen=True)
class ViewNode:
    """An addressable node of a view file.

    The wrapper only holds the owning file and the node id; every property
    reads the file's current tree, so it never observes a stale element.
    """

    file: ViewFile
    id: str

    @property
    def raw_node(self) -> Element:
        return self.file._element(self.id)

    @property
    def component(self) -> str:
        return self.raw_node.component

    @property
    def props(self) -> dict[str, str]:
        """Attribute values as strings, expressions spelled ``"{{code}}"``."""
        return {name: value.as_prop() for name, value in self.raw_node.attributes.items()}

    @property
    def child_ids(self) -> list[str]:
        return [child.id for child in self.raw_node.children]

    @property
    def parent_id(self) -> str | None:
        return self.file._parent_id(self.id)

    @property
    def loc(self) -> tuple[int, int]:
        """``(line, column)`` of the element in the text it was parsed from."""
        element = self.raw_node
        return (element.line, element.column)

    def clone_raw_node(self) -> Element:
        """Return a detached deep copy of the subtree with ids cleared."""
        return _detached(self.raw_node)

    def destroy(self) -> None:
        self.file.remove_node(self.id)


class ViewFileOperations(FileOperations, Protocol):
    """Structural operations of a view file."""

    def get_node(self, node_id: str) -> ViewNode: ...

    def insert_child(self, parent_id: str, new_node: NodeInput, position: InsertPosition = ...) -> ViewNode: ...

    def remove_node(self, node_id: str) -> list[str]: ...

    def replace_node(self, node_id: str, new_node: NodeInput) -> ViewNode: ...

    def update_attribute(
        self, node_id: str, name: str, value: Any, related_imports: RelatedImports | None = None
    ) -> None: ...

    def add_import_specifiers(self, source: str, specifiers: Iterable[ImportSpecifier]) -> None: ...


class ViewFile(SourceFile):
    """A view file backed by a component tree.

    Args:
        filename: Workspace key of the file.
        code: Markup to parse.
        accepts_children: Predicate telling whether a component may hold
            children; inserting into a component it rejects raises
            InvalidTargetError. Defaults to accepting every component.
    """

    type = FileType.VIEW

    def __init__(
        self,
        filename: str,
        code: str = DEFAULT_VIEW_SOURCE,
        *,
        accepts_children: Callable[[str], bool] | None = None,
    ) -> None:
        self._next_id = 0
        self._index: dict[str, Element] = {}
        self._parents: dict[str, str | None] = {}
        self.accepts_children: Callable[[str], bool] = accepts_children or _accept_all
        super().__init__(filename, code)

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------

    @property
    def tree(self) -> ViewTree:
        """The live tree; treat it as read-only and edit through the methods."""
        return self._state

    @property
    def root(self) -> ViewNode:
        return ViewNode(self, self._state.root.id)

    @property
    def nodes(self) -> dict[str, ViewNode]:
        """All nodes in document order, keyed by id."""
        return {node_id: ViewNode(self, node_id) for node_id in self._index}

    @property
    def nodes_tree(self) -> list[dict[str, Any]]:
        """Outline of the tree as nested ``{id, component, children}`` dicts."""
        return [_outline(self._state.root)]

    @property
    def import_map(self) -> dict[str, ImportSource]:
        """Local name to import source, projected from the import declarations."""
        return _import_map(self._state)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def get_node(self, node_id: str) -> ViewNode:
        """Return the node with *node_id*.

        Raises:
            NotFoundError: If the file has no such node.
        """
        if node_id not in self._index:
            raise NotFoundError(f"{self.filename}: no node {node_id!r}")
        return ViewNode(self, node_id)

    def list_import_sources(self) -> list[str]:
        return sorted({imp.source for imp in self._state.imports})

    def list_modals(self) -> list[dict[str, str]]:
        """Modal components carrying a literal ``id``, as label / value pairs."""
        modals: list[dict[str, str]] = []
        for element in self._index.values():
            modal_id = _literal(element, "id")
            if element.component.endswith("Modal") and modal_id:
                label = _literal(element, "title") or modal_id
                modals.append({"label": label, "value": modal_id})
        return modals

    def list_forms(self) -> dict[str, list[str]]:
        """Form components with a literal ``name``, mapped to their field names."""
        forms: dict[str, list[str]] = {}
        for element in self._index.values():
            form_name = _literal(element, "name")
            if element.component.endswith("Form") and form_name:
                fields = [_literal(child, "name") for child in list(element.walk())[1:]]
                forms[form_name] = [field for field in fields if field]
        return forms

    def unresolved_components(self, known: Iterable[str] = ()) -> list[str]:
        """Component names that are neither imported, intrinsic nor in *known*.

        Intrinsic components start with a lowercase letter (``div``); a dotted
        name resolves through its first segment (``Form.Item`` via ``Form``).
        """
        imported = set(self.import_map)
        known_names = set(known)
        missing: set[str] = set()
        for element in self._index.values():
            base = element.component.split(".")[0]
            if base[:1].islower() or base in imported or element.component in known_names or base in known_names:
                continue
            missing.add(element.component)
        return sorted(missing)

    # ------------------------------------------------------------------
    # Structural mutation
    # ------------------------------------------------------------------

    def insert_child(
        self,
        parent_id: str,
        new_node: NodeInput,
        position: InsertPosition = InsertPosition(),
        *,
        validate: bool = False,
    ) -> ViewNode:
        """Insert *new_node* as a child of *parent_id* and return it.

        *new_node* is an Element or a markup fragment; it is copied and given
        fresh ids.

        Raises:
            InvalidTargetError: If the parent does not exist, cannot hold
                children, or the position's sibling is not one of its children.
            ParseError: If *new_node* is invalid markup or holds an expression
                that does not read back as written.
        """
        with self._mutation(validate) as tree:
            index = _TreeIndex(tree)
            parent = index.elements.get(parent_id)
            if parent is None:
                raise InvalidTargetError(f"{self.filename}: no parent node {parent_id!r}")
            self._check_container(parent)
            slot = _resolve_slot(parent, position)
            element = self._prepare(new_node)
            parent.children.insert(slot, element)
        logger.debug("Inserted %s into %s in %s", element.id, parent_id, self.filename)
        return ViewNode(self, element.id)

    def insert_before(self, target_id: str, new_node: NodeInput, *, validate: bool = False) -> ViewNode:
        """Insert *new_node* as the sibling right before *target_id*."""
        position = InsertPosition.before(target_id)
        return self.insert_child(self._sibling_parent(target_id), new_node, position, validate=validate)

    def insert_after(self, target_id: str, new_node: NodeInput, *, validate: bool = False) -> ViewNode:
        """Insert *new_node* as the sibling right after *target_id*."""
        position = InsertPosition.after(target_id)
        return self.insert_child(self._sibling_parent(target_id), new_node, position, validate=validate)

    def remove_node(self, node_id: str, *, validate: bool = False) -> list[str]:
        """Detach the subtree rooted at *node_id* and return the removed ids.

        Raises:
            NotFoundError: If the node does not exist.
            InvalidTargetError: If the node is the root.
        """
        with self._mutation(validate) as tree:
            index = _TreeIndex(tree)
            element = index.require(node_id, self.filename)
            parent = index.parent_of(node_id)
            if parent is None:
                raise InvalidTargetError(f"{self.filename}: the root node cannot be removed")
            del parent.children[_child_slot(parent, node_id)]
            removed = [descendant.id for descendant in element.walk()]
        logger.debug("Removed %d node(s) at %s from %s", len(removed), node_id, self.filename)
        return removed

    def replace_node(self, node_id: str, new_node: NodeInput, *, validate: bool = False) -> ViewNode:
        """Replace the subtree at *node_id*, keeping its position among siblings.

        Raises:
            NotFoundError: If the node does not exist.
        """
        with self._mutation(validate) as tree:
            index = _TreeIndex(tree)
            index.require(node_id, self.filename)
            element = self._prepare(new_node)
            parent = index.parent_of(node_id)
            if parent is None:
                tree.root = element
            else:
                parent.children[_child_slot(parent, node_id)] = element
        return ViewNode(self, element.id)

    def replace_view_children(self, new_nodes: Iterable[NodeInput], *, validate: bool = False) -> list[ViewNode]:
        """Replace every child of the root with *new_nodes*."""
        with self._mutation(validate) as tree:
            self._check_container(tree.root)
            tree.root.children = [self._prepare(node) for node in new_nodes]
            ids = [child.id for child in tree.root.children]
        return [ViewNode(self, node_id) for node_id in ids]

    def move_node(
        self,
        node_id: str,
        parent_id: str,
        position: InsertPosition = InsertPosition(),
        *,
        validate: bool = False,
    ) -> ViewNode:
        """Move an existing subtree under *parent_id*; its ids are kept.

        Raises:
            NotFoundError: If the node does not exist.
            InvalidTargetError: For the root, a missing or leaf parent, a
                parent inside the moved subtree or an invalid position.
        """
        with self._mutation(validate) as tree:
            index = _TreeIndex(tree)
            element = index.require(node_id, self.filename)
            old_parent = index.parent_of(node_id)
            if old_parent is None:
                raise InvalidTargetError(f"{self.filename}: the root node cannot be moved")
            new_parent = index.elements.get(parent_id)
            if new_parent is None:
                raise InvalidTargetError(f"{self.filename}: no parent node {parent_id!r}")
            if any(descendant.id == parent_id for descendant in element.walk()):
                raise InvalidTargetError(f"{self.filename}: cannot move {node_id!r} into its own subtree")
            self._check_container(new_parent)
            del old_parent.children[_child_slot(old_parent, node_id)]
            new_parent.children.insert(_resolve_slot(new_parent, position), element)
        return ViewNode(self, node_id)

    def update_attribute(
        self,
        node_id: str,
        name: str,
        value: Any,
        related_imports: RelatedImports | None = None,
        *,
        validate: bool = False,
    ) -> None:
        """Set attribute *name* on a node; a value of None removes it.

        *related_imports* maps module sources to specifiers that the new value
        refers to; they are added to the file's imports in the same edit.

        Raises:
            NotFoundError: If the node does not exist.
            ImportConflictError: If a related import clashes with an existing one.
            InvalidTargetError: If *name* is not an identifier.
            ParseError: If an expression value would not read back as written.
        """
        self.update_attributes(node_id, {name: value}, related_imports, validate=validate)

    def update_attributes(
        self,
        node_id: str,
        values: Mapping[str, Any],
        related_imports: RelatedImports | None = None,
        *,
        validate: bool = False,
    ) -> None:
        """Set several attributes of a node in one edit.

        Raises:
            NotFoundError: If the node does not exist.
            InvalidTargetError: If a name is not an identifier.
            ParseError: If an expression value would not read back as written.
        """
        with self._mutation(validate) as tree:
            element = _TreeIndex(tree).require(node_id, self.filename)
            for source, specifiers in (related_imports or {}).items():
                _merge_imports(tree, source, specifiers)
            for name, value in values.items():
                if value is None:
                    element.attributes.pop(name, None)
                else:
                    element.attributes[name] = _checked_value(name, to_attribute_value(value))

    def add_import_specifiers(
        self,
        source: str,
        specifiers: Iterable[ImportSpecifier],
        *,
        validate: bool = False,
    ) -> None:
        """Import *specifiers* from *source*.

        Specifiers already bound exactly this way are skipped.

        Raises:
            ImportConflictError: If a local name is bound to something else,
                or *source* already has a default / namespace binding under
                another name. Nothing is added in that case.
            InvalidTargetError: If a specifier name is not an identifier.
        """
        with self._mutation(validate) as tree:
            _merge_imports(tree, source, specifiers)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _element(self, node_id: str) -> Element:
        try:
            return self._index[node_id]
        except KeyError:
            raise NotFoundError(f"{self.filename}: no node {node_id!r}") from None

    def _parent_id(self, node_id: str) -> str | None:
        if node_id not in self._parents:
            raise NotFoundError(f"{self.filename}: no node {node_id!r}")
        return self._parents[node_id]

    def _sibling_parent(self, target_id: str) -> str:
        parent_id = self._parent_id(target_id)
        if parent_id is None:
            raise InvalidTargetError(f"{self.filename}: the root node has no siblings")
        return parent_id

    def _check_container(self, element: Element) -> None:
        if not self.accepts_children(element.component):
            raise InvalidTargetError(f"{self.filename}: <{element.component}> cannot have children")

    def _prepare(self, new_node: NodeInput) -> Element:
        element = parse_element(new_node) if isinstance(new_node, str) else new_node.model_copy(deep=True)
        _check_element(element)
        self._assign_ids(element)
        return element

    def _assign_ids(self, element: Element) -> None:
        for descendant in element.walk():
            self._next_id += 1
            descendant.id = f"{descendant.component}#{self._next_id}"

    def _load(self, code: str) -> ViewTree:
        tree = parse(code)
        self._assign_ids(tree.root)
        return tree

    def _parse(self, code: str) -> ViewTree:
        return parse(code)

    def _render(self, state: ViewTree) -> str:
        return render(state)

    def _copy_state(self, state: ViewTree) -> ViewTree:
        return state.model_copy(deep=True)

    def _same_state(self, left: ViewTree, right: ViewTree) -> bool:
        return left.structure() == right.structure()

    def _after_change(self) -> None:
        index = _TreeIndex(self._state)
        self._index = index.elements
        self._parents = index.parents
        # Restored states may carry ids this object never issued.
        self._next_id = max([self._next_id, *(_id_number(node_id) for node_id in self._index)])


# ################
# Implementation
# ################


def _accept_all(component: str) -> bool:
    return True


def _id_number(node_id: str) -> int:
    _, _, number = node_id.rpartition("#")
    return int(number) if number.isdigit() else 0


def _check_element(element: Element) -> None:
    """Reject names and expressions that would not read back from the rendered text."""
    for descendant in element.walk():
        if not is_component_name(descendant.component):
            raise InvalidTargetError(f"{descendant.component!r} is not a valid component name")
        for name, value in list(descendant.attributes.items()):
            descendant.attributes[name] = _checked_value(name, value)


def _checked_value(name: str, value: AttributeValue) -> AttributeValue:
    if not is_identifier(name):
        raise InvalidTargetError(f"{name!r} is not a valid attribute name")
    if isinstance(value, ExpressionValue):
        return ExpressionValue(code=scan_expression(value.code))
    return value


class _TreeIndex:
    """Id lookups over one tree (usually a mutation draft)."""

    def __init__(self, tree: ViewTree) -> None:
        self.elements: dict[str, Element] = {}
        self.parents: dict[str, str | None] = {}
        self._add(tree.root, None)

    def _add(self, element: Element, parent_id: str | None) -> None:
        self.elements[element.id] = element
        self.parents[element.id] = parent_id
        for child in element.children:
            self._add(child, element.id)

    def require(self, node_id: str, filename: str) -> Element:
        if node_id not in self.elements:
            raise NotFoundError(f"{filename}: no node {node_id!r}")
        return self.elements[node_id]

    def parent_of(self, node_id: str) -> Element | None:
        parent_id = self.parents.get(node_id)
        return None if parent_id is None else self.elements[parent_id]


def _child_slot(parent: Element, node_id: str) -> int:
    for slot, child in enumerate(parent.children):
        if child.id == node_id:
            return slot
    raise InvalidTargetError(f"{node_id!r} is not a child of {parent.id!r}")


def _resolve_slot(parent: Element, position: InsertPosition) -> int:
    if position.kind == PositionKind.APPEND:
        return len(parent.children)
    if position.kind == PositionKind.PREPEND:
        return 0
    if position.sibling_id is None:
        raise InvalidTargetError(f"{position.kind.value} position needs a sibling id")
    slot = _child_slot(parent, position.sibling_id)
    return slot if position.kind == PositionKind.BEFORE else slot + 1


def _detached(element: Element) -> Element:
    clone = element.model_copy(deep=True)
    for descendant in clone.walk():
        descendant.id = ""
    return clone


def _outline(element: Element) -> dict[str, Any]:
    return {
        "id": element.id,
        "component": element.component,
        "children": [_outline(child) for child in element.children],
    }


def _literal(element: Element, name: str) -> str | None:
    value = element.attributes.get(name)
    return value.value if isinstance(value, LiteralValue) else None


def _binding(source: str, spec: ImportSpecifier) -> ImportSource:
    if spec.style == ImportStyle.DEFAULT:
        return ImportSource(source, spec.style, "default")
    if spec.style == ImportStyle.NAMESPACE:
        return ImportSource(source, spec.style, "*")
    return ImportSource(source, spec.style, spec.exported_name)


def _import_map(tree: ViewTree) -> dict[str, ImportSource]:
    return {spec.local: _binding(imp.source, spec) for imp in tree.imports for spec in imp.specifiers}


def _merge_imports(tree: ViewTree, source: str, specifiers: Iterable[ImportSpecifier]) -> None:
    bindings = _import_map(tree)
    pending: list[ImportSpecifier] = []
    for spec in specifiers:
        for name in (spec.local, spec.imported):
            if name is not None and not is_identifier(name):
                raise InvalidTargetError(f"{name!r} is not a valid import name")
        wanted = _binding(source, spec)
        existing = bindings.get(spec.local)
        if existing == wanted:
            continue
        if existing is not None:
            raise ImportConflictError(
                f"{spec.local!r} is already imported as {existing.imported!r} from {existing.source!r}"
            )
        if spec.style in (ImportStyle.DEFAULT, ImportStyle.NAMESPACE):
            for local, binding in bindings.items():
                if binding.source == source and binding.style == spec.style:
                    raise ImportConflictError(
                        f"{source!r} already has a {spec.style.value} import named {local!r}"
                    )
        bindings[spec.local] = wanted
        pending.append(spec)

    for spec in pending:
        declaration = _compatible_declaration(tree, source, spec.style)
        if declaration is None:
            declaration = ImportDeclaration(source=source)
            tree.imports.append(declaration)
        declaration.specifiers.append(spec.model_copy())


def _compatible_declaration(tree: ViewTree, source: str, style: ImportStyle) -> ImportDeclaration | None:
    for declaration in tree.imports:
        if declaration.source != source:
            continue
        if style == ImportStyle.DEFAULT and not declaration.has_style(ImportStyle.DEFAULT):
            return declaration
        if style == ImportStyle.NAMED and not declaration.has_style(ImportStyle.NAMESPACE):
            return declaration
        if style == ImportStyle.NAMESPACE and not (
            declaration.has_style(ImportStyle.NAMESPACE) or declaration.has_style(ImportStyle.NAMED)
        ):
            return declaration
    return None
