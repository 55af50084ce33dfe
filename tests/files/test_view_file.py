# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for view files: node addressing, structural edits and imports."""

import pytest

from formwork.errors import ImportConflictError, InvalidTargetError, NotFoundError, ParseError
from formwork.files import DEFAULT_VIEW_SOURCE, InsertPosition, ViewFile
from formwork.model import Element, ExpressionValue, ImportSource, ImportSpecifier, ImportStyle, LiteralValue
from formwork.parser import parse

# ###############
# Test Helpers
# ###############

PAGE = """\
import { Button } from "@acme/ui";

<Page>
  <Header />
  <Body>
    <Button text="Hi" />
  </Body>
</Page>
"""


def _page() -> ViewFile:
    return ViewFile("pages/index.view", PAGE)


def _ids(view: ViewFile) -> list[str]:
    return list(view.nodes)


# ###############
# Node Ids
# ###############


class TestNodeIds:
    def test_ids_follow_document_order(self) -> None:
        assert _ids(_page()) == ["Page#1", "Header#2", "Body#3", "Button#4"]

    def test_ids_are_not_rendered(self) -> None:
        assert "#" not in _page().code

    def test_new_nodes_get_fresh_ids(self) -> None:
        view = _page()
        node = view.insert_child("Body#3", "<Input />")
        assert node.id == "Input#5"

    def test_ids_are_never_reused(self) -> None:
        view = _page()
        view.remove_node("Button#4")
        node = view.insert_child("Body#3", "<Button />")
        assert node.id == "Button#5"

    def test_edits_keep_unrelated_ids(self) -> None:
        view = _page()
        view.insert_child("Page#1", "<Footer />", InsertPosition.prepend())
        view.replace_node("Header#2", "<Nav />")
        view.remove_node("Button#4")
        assert set(_ids(view)) >= {"Page#1", "Body#3"}

    def test_restored_state_moves_counter_past_its_ids(self) -> None:
        view = _page()
        other = ViewFile("x.view", "<Page />")
        other.restore_state(view.capture_state())
        assert other.insert_child("Body#3", "<A />").id == "A#5"


# ###############
# Nodes
# ###############


class TestViewNode:
    def test_node_properties(self) -> None:
        node = _page().get_node("Button#4")
        assert node.component == "Button"
        assert node.props == {"text": "Hi"}
        assert node.parent_id == "Body#3"
        assert node.loc == (6, 5)

    def test_expression_props_are_braced(self) -> None:
        view = ViewFile("a.view", "<A onClick={go} />")
        assert view.root.props == {"onClick": "{{go}}"}

    def test_root_has_no_parent(self) -> None:
        assert _page().root.parent_id is None

    def test_missing_node(self) -> None:
        with pytest.raises(NotFoundError):
            _page().get_node("Nope#9")

    def test_clone_raw_node_is_detached(self) -> None:
        view = _page()
        clone = view.get_node("Body#3").clone_raw_node()
        assert all(element.id == "" for element in clone.walk())
        clone.children.clear()
        assert view.get_node("Body#3").child_ids == ["Button#4"]

    def test_destroy_removes_node(self) -> None:
        view = _page()
        view.get_node("Header#2").destroy()
        assert not view.has_node("Header#2")

    def test_nodes_tree_outline(self) -> None:
        outline = _page().nodes_tree
        assert outline[0]["id"] == "Page#1"
        assert [c["id"] for c in outline[0]["children"]] == ["Header#2", "Body#3"]


# ###############
# Insertion
# ###############


class TestInsert:
    def test_empty_view_insert_and_remove(self) -> None:
        """Inserting into the default view and removing again restores the text."""
        view = ViewFile("a.view", DEFAULT_VIEW_SOURCE)
        original = view.code
        button_element = Element(component="Button", attributes={"text": LiteralValue(value="Hi")})
        button = view.insert_child(view.root.id, button_element)
        assert len(view.nodes) == 2
        assert '<Button text="Hi" />' in view.code
        view.remove_node(button.id)
        assert view.code == original

    @pytest.mark.parametrize(
        ("position", "expected"),
        [
            (InsertPosition.append(), ["Header#2", "Body#3", "New#5"]),
            (InsertPosition.prepend(), ["New#5", "Header#2", "Body#3"]),
            (InsertPosition.before("Body#3"), ["Header#2", "New#5", "Body#3"]),
            (InsertPosition.after("Header#2"), ["Header#2", "New#5", "Body#3"]),
        ],
    )
    def test_positions(self, position: InsertPosition, expected: list[str]) -> None:
        view = _page()
        view.insert_child("Page#1", "<New />", position)
        assert view.root.child_ids == expected

    def test_insert_before_and_after_siblings(self) -> None:
        view = _page()
        view.insert_before("Header#2", "<Top />")
        view.insert_after("Body#3", "<Bottom />")
        assert [view.get_node(i).component for i in view.root.child_ids] == ["Top", "Header", "Body", "Bottom"]

    def test_subtree_gets_ids(self) -> None:
        view = _page()
        node = view.insert_child("Page#1", "<Card><Title /></Card>")
        assert node.child_ids == ["Title#6"]
        assert view.get_node("Title#6").parent_id == node.id

    def test_inserted_element_is_copied(self) -> None:
        view = _page()
        element = Element(component="A")
        view.insert_child("Page#1", element)
        assert element.id == ""

    def test_missing_parent(self) -> None:
        with pytest.raises(InvalidTargetError):
            _page().insert_child("Nope#1", "<A />")

    def test_leaf_parent(self) -> None:
        view = ViewFile("a.view", PAGE, accepts_children=lambda name: name != "Button")
        with pytest.raises(InvalidTargetError, match="cannot have children"):
            view.insert_child("Button#4", "<A />")

    def test_sibling_of_root(self) -> None:
        with pytest.raises(InvalidTargetError):
            _page().insert_after("Page#1", "<A />")

    def test_invalid_position_leaves_text_identical(self) -> None:
        view = _page()
        before = view.code
        with pytest.raises(InvalidTargetError):
            view.insert_child("Page#1", "<A />", InsertPosition.before("Button#4"))
        assert view.code == before
        assert _ids(view) == ["Page#1", "Header#2", "Body#3", "Button#4"]

    def test_invalid_markup(self) -> None:
        view = _page()
        with pytest.raises(ParseError):
            view.insert_child("Page#1", "<A>")
        assert view.code == PAGE


# ###############
# Removal and Replacement
# ###############


class TestRemoveReplace:
    def test_remove_returns_subtree_ids(self) -> None:
        assert _page().remove_node("Body#3") == ["Body#3", "Button#4"]

    def test_remove_root(self) -> None:
        with pytest.raises(InvalidTargetError):
            _page().remove_node("Page#1")

    def test_remove_missing(self) -> None:
        with pytest.raises(NotFoundError):
            _page().remove_node("Nope#1")

    def test_replace_keeps_position(self) -> None:
        view = _page()
        node = view.replace_node("Header#2", "<Nav />")
        assert view.root.child_ids == [node.id, "Body#3"]
        assert not view.has_node("Header#2")

    def test_replace_root(self) -> None:
        view = _page()
        view.replace_node("Page#1", "<Home />")
        assert view.code.endswith("<Home />\n")

    def test_replace_view_children(self) -> None:
        view = _page()
        nodes = view.replace_view_children(["<A />", "<B />"])
        assert view.root.child_ids == [n.id for n in nodes]
        assert not view.has_node("Button#4")


class TestMove:
    def test_move_keeps_ids(self) -> None:
        view = _page()
        view.move_node("Button#4", "Page#1", InsertPosition.prepend())
        assert view.root.child_ids == ["Button#4", "Header#2", "Body#3"]
        assert view.get_node("Body#3").child_ids == []

    def test_move_into_own_subtree(self) -> None:
        with pytest.raises(InvalidTargetError):
            _page().move_node("Body#3", "Button#4")

    def test_move_root(self) -> None:
        with pytest.raises(InvalidTargetError):
            _page().move_node("Page#1", "Body#3")


# ###############
# Attributes
# ###############


class TestAttributes:
    def test_set_literal(self) -> None:
        view = _page()
        view.update_attribute("Button#4", "text", "Save")
        assert '<Button text="Save" />' in view.code

    def test_set_expression(self) -> None:
        view = _page()
        view.update_attribute("Button#4", "onClick", "{{save}}")
        assert view.get_node("Button#4").raw_node.attributes["onClick"] == ExpressionValue(code="save")

    def test_none_removes(self) -> None:
        view = _page()
        view.update_attribute("Button#4", "text", None)
        assert view.get_node("Button#4").props == {}

    def test_update_many(self) -> None:
        view = _page()
        view.update_attributes("Header#2", {"sticky": True, "height": 48})
        assert "<Header sticky height={48} />" in view.code

    def test_related_imports_are_added(self) -> None:
        view = _page()
        view.update_attribute(
            "Button#4",
            "icon",
            "{{<Icon />}}",
            {"@acme/icons": [ImportSpecifier(local="Icon")]},
        )
        assert view.import_map["Icon"] == ImportSource("@acme/icons", ImportStyle.NAMED, "Icon")

    def test_conflicting_related_import_changes_nothing(self) -> None:
        view = _page()
        with pytest.raises(ImportConflictError):
            view.update_attribute("Button#4", "text", "Save", {"other": [ImportSpecifier(local="Button")]})
        assert view.code == PAGE

    def test_missing_node(self) -> None:
        with pytest.raises(NotFoundError):
            _page().update_attribute("Nope#1", "a", "b")


# ###############
# Name and Expression Checks
# ###############


class TestEditChecks:
    @pytest.mark.parametrize("code", ["{{it's}}", "{{a}}}", "{{`a}}", "{{a }{ b}}"])
    def test_unclosed_expression_is_rejected(self, code: str) -> None:
        view = _page()
        with pytest.raises(ParseError):
            view.update_attribute("Page#1", "title", code)
        assert view.code == PAGE
        assert view.get_node("Page#1").props == {}

    @pytest.mark.parametrize("name", ["on click", "", "1st", "a=b", "x/"])
    def test_attribute_name_must_be_identifier(self, name: str) -> None:
        view = _page()
        with pytest.raises(InvalidTargetError):
            view.update_attribute("Button#4", name, "go")
        assert view.code == PAGE

    def test_rejected_value_discards_whole_edit(self) -> None:
        view = _page()
        with pytest.raises(ParseError):
            view.update_attributes(
                "Button#4",
                {"text": "Save", "onClick": "{{a}}}"},
                {"@acme/icons": [ImportSpecifier(local="Icon")]},
            )
        assert view.code == PAGE
        assert "Icon" not in view.import_map

    @pytest.mark.parametrize("component", ["My Button", "Modal..Header", "", "9Lives"])
    def test_component_name_must_be_identifiers(self, component: str) -> None:
        view = _page()
        with pytest.raises(InvalidTargetError):
            view.insert_child("Body#3", Element(component=component))
        assert view.code == PAGE

    def test_nested_names_are_checked(self) -> None:
        element = Element(
            component="Card",
            children=[Element(component="Input", attributes={"on change": LiteralValue(value="x")})],
        )
        with pytest.raises(InvalidTargetError):
            _page().replace_node("Body#3", element)

    def test_nested_expressions_are_checked(self) -> None:
        element = Element(component="Input", attributes={"value": ExpressionValue(code="'open")})
        with pytest.raises(ParseError):
            _page().insert_child("Body#3", Element(component="Card", children=[element]))

    def test_dotted_component_is_accepted(self) -> None:
        view = _page()
        node = view.insert_child("Body#3", Element(component="Modal.Header"))
        assert node.component == "Modal.Header"
        assert "<Modal.Header />" in view.code

    def test_expression_whitespace_is_stripped(self) -> None:
        view = _page()
        view.insert_child("Body#3", Element(component="Input", attributes={"value": ExpressionValue(code=" x ")}))
        assert view.get_node("Input#5").raw_node.attributes["value"] == ExpressionValue(code="x")
        assert parse(view.code).structure() == view.tree.structure()

    @pytest.mark.parametrize("local", ["my icon", "a.b", ""])
    def test_import_name_must_be_identifier(self, local: str) -> None:
        view = _page()
        with pytest.raises(InvalidTargetError):
            view.add_import_specifiers("@acme/icons", [ImportSpecifier(local=local)])
        assert view.code == PAGE


class TestEditsReadBack:
    """After any accepted edit the rendered text parses back to the same tree."""

    @pytest.mark.parametrize(
        "value",
        [
            "{{`a ${b}`}}",
            "{{'}'}}",
            '{{"{"}}',
            "{{{a: 1}}}",
            "{{ fn({x: '}'}) }}",
            "{{`}`}}",
            "{{'it\\'s'}}",
            "{{a > b && <Icon />}}",
            "{{}}",
            'say "hi"',
            "it's",
            "two\nlines\tand a \\ backslash",
            "{curly}",
            "{{ unbalanced",
            True,
            48,
            [1, "two"],
            {"a": {"b": "}"}},
        ],
    )
    def test_attribute_values(self, value: object) -> None:
        view = _page()
        view.update_attribute("Button#4", "data-value", value)
        assert parse(view.code).structure() == view.tree.structure()

    @pytest.mark.parametrize(
        "name", ["onClick", "data-id", "aria-label", "$ref", "_private", "import", "from", "as"]
    )
    def test_attribute_names(self, name: str) -> None:
        view = _page()
        view.update_attribute("Header#2", name, "x")
        assert parse(view.code).structure() == view.tree.structure()

    def test_inserted_subtree(self) -> None:
        view = _page()
        view.insert_child(
            "Body#3",
            Element(
                component="Modal.Body",
                attributes={"open": ExpressionValue(code="state.open"), "title": LiteralValue(value='A "b"')},
                children=[Element(component="Input", attributes={"value": ExpressionValue(code="`${x}`")})],
            ),
        )
        assert parse(view.code).structure() == view.tree.structure()
        assert ViewFile(view.filename, view.code).code == view.code


# ###############
# Imports
# ###############


class TestImports:
    def test_import_map_projection(self) -> None:
        view = ViewFile(
            "a.view",
            'import Layout, { Input as TextInput } from "ui";\nimport * as icons from "icons";\n<Layout />',
        )
        assert view.import_map == {
            "Layout": ImportSource("ui", ImportStyle.DEFAULT, "default"),
            "TextInput": ImportSource("ui", ImportStyle.NAMED, "Input"),
            "icons": ImportSource("icons", ImportStyle.NAMESPACE, "*"),
        }

    def test_adding_to_existing_declaration(self) -> None:
        view = _page()
        view.add_import_specifiers("@acme/ui", [ImportSpecifier(local="Input")])
        assert view.code.startswith('import { Button, Input } from "@acme/ui";')

    def test_new_source_gets_new_declaration(self) -> None:
        view = _page()
        view.add_import_specifiers("lodash", [ImportSpecifier(local="_", style=ImportStyle.DEFAULT)])
        assert view.list_import_sources() == ["@acme/ui", "lodash"]
        assert 'import _ from "lodash";' in view.code

    def test_adding_existing_binding_is_a_no_op(self) -> None:
        view = _page()
        view.add_import_specifiers("@acme/ui", [ImportSpecifier(local="Button")])
        assert view.code == PAGE

    def test_local_name_bound_elsewhere(self) -> None:
        view = _page()
        with pytest.raises(ImportConflictError):
            view.add_import_specifiers("other", [ImportSpecifier(local="Button")])

    def test_second_default_for_source(self) -> None:
        view = ViewFile("a.view", 'import Layout from "ui";\n<Layout />')
        with pytest.raises(ImportConflictError):
            view.add_import_specifiers("ui", [ImportSpecifier(local="Other", style=ImportStyle.DEFAULT)])

    def test_conflict_is_checked_before_any_change(self) -> None:
        view = _page()
        with pytest.raises(ImportConflictError):
            view.add_import_specifiers("x", [ImportSpecifier(local="Fine"), ImportSpecifier(local="Button")])
        assert "Fine" not in view.import_map

    def test_namespace_gets_its_own_declaration(self) -> None:
        view = _page()
        view.add_import_specifiers("@acme/ui", [ImportSpecifier(local="ui", style=ImportStyle.NAMESPACE)])
        assert 'import * as ui from "@acme/ui";' in view.code

    def test_unresolved_components(self) -> None:
        view = ViewFile("a.view", 'import { Form } from "ui";\n<Page><Form.Item /><div /><Card /></Page>')
        assert view.unresolved_components() == ["Card", "Page"]
        assert view.unresolved_components(["Page"]) == ["Card"]


# ###############
# Validation and Helpers
# ###############


class TestHelpers:
    def test_validate_accepts_consistent_edit(self) -> None:
        view = _page()
        view.update_attribute("Button#4", "text", "ok", validate=True)
        assert 'text="ok"' in view.code

    def test_list_modals(self) -> None:
        view = ViewFile("a.view", '<Page><EditModal id="edit" title="Edit" /><InfoModal id="info" /></Page>')
        assert view.list_modals() == [
            {"label": "Edit", "value": "edit"},
            {"label": "info", "value": "info"},
        ]

    def test_list_forms(self) -> None:
        view = ViewFile(
            "a.view",
            '<Page><Form name="login"><Form.Item name="user" /><Form.Item name="pass" /></Form></Page>',
        )
        assert view.list_forms() == {"login": ["user", "pass"]}
