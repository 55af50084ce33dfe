# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the view markup lexer."""

import pytest

from formwork.parser.lexer import (
    LexerError,
    Token,
    TokenType,
    is_component_name,
    is_identifier,
    scan_expression,
    tokenize,
)

# ###############
# Test Helpers
# ###############


def _tokens_no_eof(source: str) -> list[Token]:
    """Return all tokens except the terminal EOF token."""
    result = tokenize(source)
    assert result[-1].type == TokenType.EOF
    return result[:-1]


def _types(source: str) -> list[TokenType]:
    return [tok.type for tok in _tokens_no_eof(source)]


def _values(source: str) -> list[str]:
    return [tok.value for tok in _tokens_no_eof(source)]


# ###############
# Basics
# ###############


class TestBasics:
    def test_empty_string_produces_eof(self) -> None:
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_self_closing_tag(self) -> None:
        assert _types("<Button />") == [
            TokenType.LANGLE,
            TokenType.IDENTIFIER,
            TokenType.SLASH,
            TokenType.RANGLE,
        ]

    @pytest.mark.parametrize(
        ("source", "expected_type"),
        [
            ("import", TokenType.IMPORT),
            ("from", TokenType.FROM),
            ("as", TokenType.AS),
        ],
    )
    def test_keywords(self, source: str, expected_type: TokenType) -> None:
        assert _types(source) == [expected_type]

    def test_hyphenated_identifier(self) -> None:
        assert _values("aria-label") == ["aria-label"]

    def test_positions_are_one_based(self) -> None:
        tokens = _tokens_no_eof("<Page>\n  <Button />")
        button = tokens[3]
        assert button.value == "<"
        assert (button.line, button.column) == (2, 3)


# ###############
# Comments
# ###############


class TestComments:
    def test_line_comment_is_skipped(self) -> None:
        assert _types("// header\n<A />") == _types("<A />")

    def test_block_comment_is_skipped(self) -> None:
        assert _types("/* a\n b */<A />") == _types("<A />")

    def test_unterminated_block_comment(self) -> None:
        with pytest.raises(LexerError):
            tokenize("/* open")


# ###############
# Strings and Expressions
# ###############


class TestStrings:
    def test_double_and_single_quotes(self) -> None:
        assert _values("\"a\" 'b'") == ["a", "b"]

    def test_escapes_are_decoded(self) -> None:
        assert _values(r'"a\"b\n"') == ['a"b\n']

    def test_unterminated_string(self) -> None:
        with pytest.raises(LexerError) as exc_info:
            tokenize('"open')
        assert exc_info.value.line == 1

    def test_invalid_escape(self) -> None:
        with pytest.raises(LexerError):
            tokenize(r'"\q"')


class TestExpressions:
    def test_brace_after_equals_is_one_token(self) -> None:
        tokens = _tokens_no_eof("onClick={() => { go(1) }}")
        assert tokens[-1].type == TokenType.EXPRESSION
        assert tokens[-1].value == "() => { go(1) }"

    def test_quoted_braces_do_not_count(self) -> None:
        tokens = _tokens_no_eof("label={'}' + \"{\"}")
        assert tokens[-1].value == "'}' + \"{\""

    def test_template_literal_is_skipped(self) -> None:
        tokens = _tokens_no_eof("title={`${a}}`}")
        assert tokens[-1].value == "`${a}}`"

    def test_brace_without_equals_is_a_symbol(self) -> None:
        assert _types("{ A }") == [TokenType.LBRACE, TokenType.IDENTIFIER, TokenType.RBRACE]

    def test_unterminated_expression(self) -> None:
        with pytest.raises(LexerError):
            tokenize("a={open")

    def test_unexpected_character(self) -> None:
        with pytest.raises(LexerError, match="Unexpected character"):
            tokenize("<A # />")


# ###############
# Name and Expression Checks
# ###############


class TestNameChecks:
    @pytest.mark.parametrize("name", ["a", "onClick", "aria-label", "$ref", "_x1", "import", "as"])
    def test_identifiers(self, name: str) -> None:
        assert is_identifier(name)

    @pytest.mark.parametrize("name", ["", "on click", "1a", "-a", "a.b", "a=b", "a/"])
    def test_not_identifiers(self, name: str) -> None:
        assert not is_identifier(name)

    def test_component_names(self) -> None:
        assert is_component_name("Form.Item")
        assert is_component_name("Button")
        assert not is_component_name("My Button")
        assert not is_component_name("Form.")
        assert not is_component_name(".Item")


class TestScanExpression:
    def test_returns_stripped_code(self) -> None:
        assert scan_expression("  a + b ") == "a + b"

    def test_nested_and_quoted_braces(self) -> None:
        assert scan_expression("fn({a: '}'}, `${b}`)") == "fn({a: '}'}, `${b}`)"

    def test_empty(self) -> None:
        assert scan_expression("") == ""

    def test_closes_early(self) -> None:
        with pytest.raises(LexerError, match="closes before its end"):
            scan_expression("a}")

    def test_unterminated_quote(self) -> None:
        with pytest.raises(LexerError, match="Unterminated string literal"):
            scan_expression("it's")

    def test_unclosed_brace(self) -> None:
        with pytest.raises(LexerError, match="Unterminated expression"):
            scan_expression("{a")
