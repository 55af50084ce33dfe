# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Lexer, parser and renderer for view markup."""

from formwork.errors import ParseError
from formwork.parser.lexer import (
    LexerError,
    Token,
    TokenType,
    is_component_name,
    is_identifier,
    scan_expression,
    tokenize,
)
from formwork.parser.parser import parse, parse_element
from formwork.parser.renderer import render, render_element, render_import

__all__ = [
    "LexerError",
    "ParseError",
    "Token",
    "TokenType",
    "is_component_name",
    "is_identifier",
    "parse",
    "parse_element",
    "render",
    "render_element",
    "render_import",
    "scan_expression",
    "tokenize",
]
