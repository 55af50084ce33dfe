# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Recursive-descent parser for view markup.

Converts a token stream produced by the lexer into a ViewTree model. The
parser is pure: it assigns no node ids, that is the owning file's job.
"""

from formwork.errors import ParseError
from formwork.model.nodes import (
    Element,
    ExpressionValue,
    ImportDeclaration,
    ImportSpecifier,
    ImportStyle,
    LiteralValue,
    ViewTree,
)
from formwork.parser.lexer import Token, TokenType, tokenize

# ###############
# Public Interface
# ###############


def parse(source: str) -> ViewTree:
    """Parse view markup into a ViewTree.

    Args:
        source: The full text of a view file.

    Returns:
        A ViewTree with the file's imports and its root element.

    Raises:
        ParseError: If the source is lexically or syntactically invalid
            (LexerError is a ParseError subclass).
    """
    return _Parser(tokenize(source)).parse_file()


def parse_element(source: str) -> Element:
    """Parse a markup fragment holding exactly one element (no imports).

    Raises:
        ParseError: If the fragment is invalid or holds anything else.
    """
    return _Parser(tokenize(source)).parse_fragment()


# ################
# Implementation
# ################

_NAME_TYPES: frozenset[TokenType] = frozenset(
    {
        TokenType.IDENTIFIER,
        TokenType.IMPORT,
        TokenType.FROM,
        TokenType.AS,
    }
)


class _Parser:
    """Recursive-descent parser for view token streams."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def parse_file(self) -> ViewTree:
        """Parse imports followed by exactly one root element."""
        imports: list[ImportDeclaration] = []
        bound: set[str] = set()
        while self._check(TokenType.IMPORT):
            tok = self._current()
            declaration = self._parse_import()
            for spec in declaration.specifiers:
                if spec.local in bound:
                    raise ParseError(f"Duplicate import binding {spec.local!r}", tok.line, tok.column)
                bound.add(spec.local)
            imports.append(declaration)
        if self._at_end():
            tok = self._current()
            raise ParseError("Expected a root element", tok.line, tok.column)
        root = self._parse_element()
        self._expect_end("root element")
        return ViewTree(imports=imports, root=root)

    def parse_fragment(self) -> Element:
        """Parse a single element and require end of input."""
        element = self._parse_element()
        self._expect_end("element")
        return element

    # ------------------------------------------------------------------
    # Token access helpers
    # ------------------------------------------------------------------

    def _current(self) -> Token:
        """Return the current (un-consumed) token."""
        return self._tokens[self._pos]

    def _peek_type(self, offset: int = 0) -> TokenType:
        """Return the token type *offset* tokens ahead, EOF past the end."""
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index].type

    def _at_end(self) -> bool:
        """Return True if the current token is the EOF token."""
        return self._peek_type() == TokenType.EOF

    def _advance(self) -> Token:
        """Consume and return the current token, stopping at EOF."""
        tok = self._tokens[self._pos]
        if self._pos < len(self._tokens) - 1:
            self._pos += 1
        return tok

    def _expect(self, *types: TokenType) -> Token:
        """Consume the current token if it matches any of the given types.

        Raises ParseError if the current token does not match.
        """
        tok = self._current()
        if tok.type not in types:
            expected = ", ".join(repr(t.value) for t in types)
            raise ParseError(
                f"Expected {expected}, got {tok.value!r}",
                tok.line,
                tok.column,
            )
        return self._advance()

    def _check(self, *types: TokenType) -> bool:
        """Return True if the current token matches any of the given types (without
        consuming).
        """
        return self._peek_type() in types

    def _expect_name_token(self) -> Token:
        """Consume the current token as a name.

        Accepts identifiers and keywords used in name positions (e.g. an
        attribute named 'as'). Raises ParseError for symbols and EOF.
        """
        tok = self._current()
        if tok.type not in _NAME_TYPES:
            raise ParseError(
                f"Expected identifier, got {tok.value!r}",
                tok.line,
                tok.column,
            )
        return self._advance()

    def _expect_end(self, what: str) -> None:
        if not self._at_end():
            tok = self._current()
            raise ParseError(f"Unexpected token {tok.value!r} after {what}", tok.line, tok.column)

    # ------------------------------------------------------------------
    # Import declarations
    # ------------------------------------------------------------------

    def _parse_import(self) -> ImportDeclaration:
        """Parse: import [Default] [, { a, b as c } | * as ns] from "source" [;]"""
        self._expect(TokenType.IMPORT)
        if self._check(TokenType.STRING):
            source = self._advance().value
            self._skip_semicolon()
            return ImportDeclaration(source=source)

        specifiers: list[ImportSpecifier] = []
        if self._check(TokenType.IDENTIFIER):
            default_tok = self._advance()
            specifiers.append(ImportSpecifier(local=default_tok.value, style=ImportStyle.DEFAULT))
            if self._check(TokenType.COMMA):
                self._advance()  # consume ,
                self._parse_bindings(specifiers)
        else:
            self._parse_bindings(specifiers)

        self._expect(TokenType.FROM)
        source = self._expect(TokenType.STRING).value
        self._skip_semicolon()
        return ImportDeclaration(source=source, specifiers=specifiers)

    def _parse_bindings(self, specifiers: list[ImportSpecifier]) -> None:
        """Parse a named binding list or a namespace binding."""
        if self._check(TokenType.STAR):
            self._advance()  # consume *
            self._expect(TokenType.AS)
            name_tok = self._expect(TokenType.IDENTIFIER)
            specifiers.append(ImportSpecifier(local=name_tok.value, style=ImportStyle.NAMESPACE))
            return
        if not self._check(TokenType.LBRACE):
            tok = self._current()
            raise ParseError(f"Expected import bindings, got {tok.value!r}", tok.line, tok.column)
        self._advance()  # consume {
        while not self._check(TokenType.RBRACE, TokenType.EOF):
            imported = self._expect_name_token().value
            local = imported
            if self._check(TokenType.AS):
                self._advance()  # consume as
                local = self._expect(TokenType.IDENTIFIER).value
            specifiers.append(
                ImportSpecifier(
                    local=local,
                    imported=imported if imported != local else None,
                    style=ImportStyle.NAMED,
                )
            )
            if not self._check(TokenType.COMMA):
                break
            self._advance()  # consume ,
        self._expect(TokenType.RBRACE)

    def _skip_semicolon(self) -> None:
        if self._check(TokenType.SEMICOLON):
            self._advance()

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def _parse_element(self) -> Element:
        """Parse: <Tag attr* /> | <Tag attr*> element* </Tag>"""
        open_tok = self._expect(TokenType.LANGLE)
        name = self._parse_tag_name()
        element = Element(component=name, line=open_tok.line, column=open_tok.column)
        while not self._check(TokenType.SLASH, TokenType.RANGLE, TokenType.EOF):
            self._parse_attribute(element)
        if self._check(TokenType.SLASH):
            self._advance()  # consume /
            self._expect(TokenType.RANGLE)
            return element
        self._expect(TokenType.RANGLE)

        while not (self._check(TokenType.LANGLE) and self._peek_type(1) == TokenType.SLASH):
            if not self._check(TokenType.LANGLE):
                tok = self._current()
                raise ParseError(
                    f"Unexpected token {tok.value!r} in children of <{name}>",
                    tok.line,
                    tok.column,
                )
            element.children.append(self._parse_element())

        close_tok = self._expect(TokenType.LANGLE)
        self._expect(TokenType.SLASH)
        closing = self._parse_tag_name()
        if closing != name:
            raise ParseError(
                f"Closing tag </{closing}> does not match <{name}>",
                close_tok.line,
                close_tok.column,
            )
        self._expect(TokenType.RANGLE)
        return element

    def _parse_tag_name(self) -> str:
        """Parse a possibly dotted component name such as ``Form.Item``."""
        parts = [self._expect_name_token().value]
        while self._check(TokenType.DOT):
            self._advance()  # consume .
            parts.append(self._expect_name_token().value)
        return ".".join(parts)

    def _parse_attribute(self, element: Element) -> None:
        """Parse: name | name="literal" | name={expression}"""
        name_tok = self._expect_name_token()
        if name_tok.value in element.attributes:
            raise ParseError(
                f"Duplicate attribute {name_tok.value!r} on <{element.component}>",
                name_tok.line,
                name_tok.column,
            )
        if not self._check(TokenType.EQUALS):
            element.attributes[name_tok.value] = ExpressionValue(code="true")
            return
        self._advance()  # consume =
        value_tok = self._expect(TokenType.STRING, TokenType.EXPRESSION)
        if value_tok.type == TokenType.STRING:
            element.attributes[name_tok.value] = LiteralValue(value=value_tok.value)
        else:
            element.attributes[name_tok.value] = ExpressionValue(code=value_tok.value)
