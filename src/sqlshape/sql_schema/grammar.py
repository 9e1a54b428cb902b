"""Grammar fragments shared by the statement parsers."""
from __future__ import annotations

import re

from .errors import StatementNotRecognized
from .lexer import Token, TokenKind, TokenStream
from .scanner import split_top_level

# Type names made of several words; the first matching entry wins
MULTI_WORD_TYPES = (
    ("timestamp", "with", "time", "zone"),
    ("timestamp", "without", "time", "zone"),
    ("time", "with", "time", "zone"),
    ("time", "without", "time", "zone"),
    ("double", "precision"),
    ("character", "varying"),
    ("bit", "varying"),
)

_QUOTED = re.compile(r'^"([^"]+)"$|^\'([^\']+)\'$')


def unquote(name: str) -> str:
    """Strip whitespace and one pair of surrounding quotes from an identifier."""
    name = name.strip()
    match = _QUOTED.match(name)
    if match:
        return match.group(1) or match.group(2)
    return name


def clean_type_text(text: str) -> str:
    """Collapse whitespace in a type expression and drop quotes around a bare type name."""
    return unquote(" ".join(text.split()))


def relation_name(schema: str | None, table: str) -> str:
    return f"{schema}.{table}" if schema else table


def starts_with_multi_word_type(tokens: list[Token]) -> bool:
    words = [t.value.lower() if t.kind is TokenKind.WORD else None for t in tokens]
    return any(tuple(words[:len(seq)]) == seq for seq in MULTI_WORD_TYPES)


def column_list(stream: TokenStream) -> list[str]:
    """Consume ``(a, "b", ...)`` and return the unquoted column names."""
    open_pos, close_pos = stream.skip_group()
    columns = [unquote(part) for part in split_top_level(stream.source[open_pos + 1:close_pos])]
    if not columns:
        raise StatementNotRecognized("Empty column list", open_pos)
    return columns


def reference_target(stream: TokenStream) -> tuple[str | None, str, list[str]]:
    """Consume the target of ``REFERENCES``: ``[schema.]table [(columns)]``.

    Trailing MATCH and ON DELETE / ON UPDATE clauses are consumed as well.

    Returns:
        Tuple of (schema or None, table, referenced columns)
    """
    first = stream.identifier(allow_string=True)
    schema = None
    table = first
    if stream.accept_punct("."):
        schema, table = first, stream.identifier(allow_string=True)

    columns = []
    next_token = stream.peek()
    if next_token is not None and next_token.is_punct("("):
        columns = column_list(stream)

    skip_referential_actions(stream)
    return schema, table, columns


def skip_referential_actions(stream: TokenStream) -> None:
    while True:
        if stream.accept_keyword("match"):
            stream.accept_keyword("full", "partial", "simple")
        elif stream.accept_keyword("on"):
            stream.expect_keyword("delete", "update")
            if stream.accept_keyword("set"):
                stream.expect_keyword("null", "default")
                next_token = stream.peek()
                if next_token is not None and next_token.is_punct("("):
                    stream.skip_group()
            elif stream.accept_keyword("no"):
                stream.expect_keyword("action")
            else:
                stream.expect_keyword("cascade", "restrict")
        else:
            return
