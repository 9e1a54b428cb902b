"""CREATE FUNCTION signature parsing.

Only the signature is read: name, argument list and RETURNS clause. Function
bodies are never parsed.
"""
from __future__ import annotations

import logging

from .errors import ParseFailure, StatementNotRecognized
from .grammar import clean_type_text, starts_with_multi_word_type
from .lexer import TokenKind, TokenStream
from .models import FunctionArgument, FunctionDefinition, ParseContext
from .scanner import matching_close, split_top_level, strip_comments

logger = logging.getLogger(__name__)

# Clauses that may follow the return type
_RETURNS_STOP_WORDS = frozenset({
    "language", "as", "security", "stable", "immutable", "volatile", "strict",
    "leakproof", "called", "parallel", "cost", "rows", "support", "window",
    "set", "begin", "return", "returns", "transform", "external", "not",
})

_ARG_MODES = ("in", "out", "inout", "variadic")


def parse_function_definition(statement: str, context: ParseContext) -> FunctionDefinition | None:
    """Parse a CREATE [OR REPLACE] FUNCTION statement.

    Args:
        statement: SQL text of a single statement
        context: Parse options (default schema for unqualified names)

    Returns:
        FunctionDefinition, or None if the statement has no recognizable
        signature and RETURNS clause
    """
    try:
        statement = strip_comments(statement)
        stream = TokenStream.from_text(statement)
        stream.expect_keyword("create")
        stream.accept_sequence("or", "replace")
        stream.expect_keyword("function")
        schema, name = stream.qualified_name(context.default_schema)

        open_paren = stream.expect_punct("(")
        close = matching_close(statement, open_paren.start)
        while not stream.at_end() and stream.peek().start <= close:
            stream.advance()

        stream.expect_keyword("returns")
        return_tokens = stream.take_until_keywords(_RETURNS_STOP_WORDS)
        if not return_tokens:
            raise StatementNotRecognized(f"Function {name} has an empty RETURNS clause")
        returns = clean_type_text(stream.text_between(return_tokens[0], return_tokens[-1]))

        args = [
            _parse_argument(part)
            for part in split_top_level(statement[open_paren.start + 1:close])
        ]

        return FunctionDefinition(schema=schema, name=name, args=args, returns=returns)

    except ParseFailure as e:
        logger.debug(f"Not a function definition: {e}")
        return None


def _parse_argument(text: str) -> FunctionArgument:
    """Parse ``[mode] [name] type [DEFAULT expr | = expr]``."""
    stream = TokenStream.from_text(text)

    mode = "IN"
    mode_token = stream.accept_keyword(*_ARG_MODES)
    if mode_token is not None:
        mode = mode_token.value.upper()

    tokens = stream.take_until_keywords(frozenset({"default"}), frozenset({"="}))
    has_default = not stream.at_end()
    if not tokens:
        raise StatementNotRecognized(f"Empty function argument {text!r}")

    if _is_unnamed(tokens):
        name = ""
        type_text = stream.text_between(tokens[0], tokens[-1])
    else:
        name = tokens[0].value
        type_text = stream.text_between(tokens[1], tokens[-1])

    return FunctionArgument(
        name=name,
        type=clean_type_text(type_text),
        has_default=has_default,
        mode=mode,
    )


def _is_unnamed(tokens) -> bool:
    """True when the argument tokens are only a type, e.g. ``double precision``."""
    if len(tokens) == 1:
        return True
    if tokens[0].kind is TokenKind.QUOTED_IDENT:
        return False
    if starts_with_multi_word_type(tokens):
        return True
    second = tokens[1]
    return second.is_punct("(") or second.is_punct("[") or second.is_punct(".")
