# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexical scanner for view markup.

Converts raw source text into a sequence of tokens for subsequent parsing.
"""

import enum
from dataclasses import dataclass

from formwork.errors import ParseError

# ###############
# Public Interface
# ###############


class TokenType(enum.Enum):
    """All token types produced by the view lexer."""

    # Keywords
    IMPORT = "import"
    FROM = "from"
    AS = "as"

    # Symbols
    LANGLE = "<"
    RANGLE = ">"
    SLASH = "/"
    EQUALS = "="
    LBRACE = "{"
    RBRACE = "}"
    COMMA = ","
    SEMICOLON = ";"
    STAR = "*"
    DOT = "."

    # Literals
    STRING = "STRING"
    EXPRESSION = "EXPRESSION"

    # Identifiers
    IDENTIFIER = "IDENTIFIER"

    # End of file
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    """A lexical token with its source location.

    Attributes:
        type: The kind of token.
        value: The raw text of the token (decoded content for STRING tokens,
            stripped code for EXPRESSION tokens).
        line: 1-based line number where the token starts.
        column: 1-based column number where the token starts.
    """

    type: TokenType
    value: str
    line: int
    column: int


class LexerError(ParseError):
    """Raised when the scanner encounters an invalid character or unterminated literal."""


def tokenize(source: str) -> list[Token]:
    """Tokenize view markup into a sequence of tokens.

    A ``{`` directly following ``=`` starts an attribute expression: everything
    up to the matching ``}`` becomes one EXPRESSION token. Nested braces and
    quoted strings inside the expression are skipped over.

    Args:
        source: The full text of a view file.

    Returns:
        A list of Token objects ending with a single EOF token.

    Raises:
        LexerError: On unexpected characters, unterminated string literals,
            expressions or block comments.
    """
    return _Lexer(source).tokenize()


def is_identifier(name: str) -> bool:
    """Return True if *name* scans as a single identifier (keywords included)."""
    if not name or not (name[0].isalpha() or name[0] in "_$"):
        return False
    return all(ch.isalnum() or ch in "_$-" for ch in name[1:])


def is_component_name(name: str) -> bool:
    """Return True for a tag name: identifiers joined by dots, e.g. ``Modal.Header``."""
    return all(is_identifier(segment) for segment in name.split("."))


def scan_expression(code: str) -> str:
    """Scan *code* the way it is read back from ``name={code}``.

    Returns:
        The expression text the lexer produces (surrounding whitespace stripped).

    Raises:
        LexerError: If a string literal in *code* is unterminated or its braces
            do not close exactly at the end of *code*.
    """
    tokens = _Lexer("x={" + code + "}").tokenize()
    if len(tokens) != 4:
        extra = tokens[3]
        raise LexerError(f"Expression {code!r} closes before its end", extra.line, extra.column)
    return tokens[2].value


# ################
# Implementation
# ################

_KEYWORDS: dict[str, TokenType] = {
    "import": TokenType.IMPORT,
    "from": TokenType.FROM,
    "as": TokenType.AS,
}

_SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "<": TokenType.LANGLE,
    ">": TokenType.RANGLE,
    "/": TokenType.SLASH,
    "=": TokenType.EQUALS,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    "*": TokenType.STAR,
    ".": TokenType.DOT,
}

_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class _Lexer:
    """Internal scanner state machine."""

    def __init__(self, source: str) -> None:
        self._source = source
        self._pos = 0
        self._line = 1
        self._column = 1
        self._tokens: list[Token] = []

    def tokenize(self) -> list[Token]:
        """Run the scanner and return all tokens including the terminal EOF."""
        while self._pos < len(self._source):
            self._skip_whitespace_and_comments()
            if self._pos >= len(self._source):
                break
            self._scan_token()
        self._tokens.append(Token(TokenType.EOF, "", self._line, self._column))
        return self._tokens

    # ------------------------------------------------------------------
    # Low-level character access helpers
    # ------------------------------------------------------------------

    def _current(self) -> str:
        """Return the character at the current position, or '' at end of input."""
        if self._pos < len(self._source):
            return self._source[self._pos]
        return ""

    def _peek(self) -> str:
        """Return the character one position ahead, or '' at end of input."""
        if self._pos + 1 < len(self._source):
            return self._source[self._pos + 1]
        return ""

    def _advance(self) -> str:
        """Consume the current character, update position tracking, and return it."""
        ch = self._source[self._pos]
        self._pos += 1
        if ch == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return ch

    def _last_type(self) -> TokenType | None:
        return self._tokens[-1].type if self._tokens else None

    # ------------------------------------------------------------------
    # Whitespace and comment skipping
    # ------------------------------------------------------------------

    def _skip_whitespace_and_comments(self) -> None:
        """Skip all whitespace and comment runs at the current position."""
        while self._pos < len(self._source):
            ch = self._current()
            if ch in " \t\r\n":
                self._advance()
            elif ch == "/" and self._peek() == "/":
                self._skip_line_comment()
            elif ch == "/" and self._peek() == "*":
                self._skip_block_comment()
            else:
                break

    def _skip_line_comment(self) -> None:
        """Consume from '//' through end-of-line (exclusive of the newline itself)."""
        while self._pos < len(self._source) and self._current() != "\n":
            self._advance()

    def _skip_block_comment(self) -> None:
        """Consume from '/*' through the matching '*/'."""
        start_line = self._line
        start_col = self._column
        self._advance()  # /
        self._advance()  # *
        while self._pos < len(self._source):
            if self._current() == "*" and self._peek() == "/":
                self._advance()  # *
                self._advance()  # /
                return
            self._advance()
        raise LexerError("Unterminated block comment", start_line, start_col)

    # ------------------------------------------------------------------
    # Token scanning dispatcher
    # ------------------------------------------------------------------

    def _scan_token(self) -> None:
        """Dispatch to the appropriate handler based on the current character."""
        ch = self._current()
        line = self._line
        col = self._column

        if ch == "{" and self._last_type() == TokenType.EQUALS:
            self._scan_expression(line, col)
        elif ch in _SINGLE_CHAR_TOKENS:
            self._advance()
            self._tokens.append(Token(_SINGLE_CHAR_TOKENS[ch], ch, line, col))
        elif ch in "\"'":
            self._scan_string(line, col)
        elif ch.isalpha() or ch in "_$":
            self._scan_identifier_or_keyword(line, col)
        else:
            raise LexerError(f"Unexpected character: {ch!r}", line, col)

    # ------------------------------------------------------------------
    # Literal scanners
    # ------------------------------------------------------------------

    def _scan_string(self, line: int, col: int) -> None:
        """Scan a single- or double-quoted string literal with escape sequences."""
        quote = self._advance()
        chars: list[str] = []
        while self._pos < len(self._source):
            ch = self._current()
            if ch == quote:
                self._advance()  # closing quote
                self._tokens.append(Token(TokenType.STRING, "".join(chars), line, col))
                return
            if ch == "\n":
                raise LexerError("Unterminated string literal", line, col)
            if ch == "\\":
                self._advance()
                if self._pos >= len(self._source):
                    raise LexerError("Unterminated string literal", line, col)
                esc = self._current()
                if esc not in _ESCAPES:
                    raise LexerError(
                        f"Invalid escape sequence: '\\{esc}'",
                        self._line,
                        self._column,
                    )
                chars.append(_ESCAPES[esc])
                self._advance()
            else:
                chars.append(ch)
                self._advance()
        raise LexerError("Unterminated string literal", line, col)

    def _scan_expression(self, line: int, col: int) -> None:
        """Scan a brace expression up to its matching closing brace."""
        self._advance()  # {
        start = self._pos
        depth = 1
        while self._pos < len(self._source):
            ch = self._current()
            if ch in "\"'`":
                self._skip_quoted(ch, line, col)
            elif ch == "{":
                depth += 1
                self._advance()
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    code = self._source[start : self._pos]
                    self._advance()  # }
                    self._tokens.append(Token(TokenType.EXPRESSION, code.strip(), line, col))
                    return
                self._advance()
            else:
                self._advance()
        raise LexerError("Unterminated expression", line, col)

    def _skip_quoted(self, quote: str, line: int, col: int) -> None:
        """Skip a quoted run inside an expression, honouring backslash escapes."""
        self._advance()  # opening quote
        while self._pos < len(self._source):
            ch = self._advance()
            if ch == "\\":
                if self._pos < len(self._source):
                    self._advance()
            elif ch == quote:
                return
        raise LexerError("Unterminated string literal in expression", line, col)

    def _scan_identifier_or_keyword(self, line: int, col: int) -> None:
        """Scan an identifier and map it to a keyword token type if applicable.

        Hyphens are allowed after the first character so that attribute names
        such as ``aria-label`` scan as one identifier.
        """
        start = self._pos
        while self._pos < len(self._source) and (self._current().isalnum() or self._current() in "_$-"):
            self._advance()
        value = self._source[start : self._pos]
        token_type = _KEYWORDS.get(value, TokenType.IDENTIFIER)
        self._tokens.append(Token(token_type, value, line, col))
