"""CREATE TYPE parsing: enumerations and composite types."""
from __future__ import annotations

import logging

from .errors import ParseFailure, StatementNotRecognized
from .grammar import clean_type_text
from .lexer import TokenKind, TokenStream, tokenize
from .models import CompositeAttribute, CompositeTypeDefinition, EnumDefinition, ParseContext
from .scanner import matching_close, split_top_level, strip_comments

logger = logging.getLogger(__name__)


def parse_enum_definition(statement: str, context: ParseContext) -> EnumDefinition | None:
    """Parse ``CREATE TYPE name AS ENUM ('a', 'b', ...)``.

    Returns:
        EnumDefinition, or None if the statement is not an enum or lists no values
    """
    try:
        statement = strip_comments(statement)
        stream, schema, name = _type_header(statement, context)
        stream.expect_keyword("as")
        stream.expect_keyword("enum")
        open_paren = stream.expect_punct("(")
        close = matching_close(statement, open_paren.start)

        values = [
            token.value
            for token in tokenize(statement[open_paren.start + 1:close])
            if token.kind in (TokenKind.STRING, TokenKind.QUOTED_IDENT)
        ]
        if not values:
            raise StatementNotRecognized(f"Enum {name} has no values")

        return EnumDefinition(schema=schema, name=name, values=values)

    except ParseFailure as e:
        logger.debug(f"Not an enum definition: {e}")
        return None


def parse_composite_type(statement: str, context: ParseContext) -> CompositeTypeDefinition | None:
    """Parse ``CREATE TYPE name AS (attr type, ...)``.

    Returns:
        CompositeTypeDefinition, or None if no attribute could be read
    """
    try:
        statement = strip_comments(statement)
        stream, schema, name = _type_header(statement, context)
        stream.expect_keyword("as")
        open_paren = stream.expect_punct("(")
        close = matching_close(statement, open_paren.start)

        attributes = []
        for entry in split_top_level(statement[open_paren.start + 1:close]):
            attr_stream = TokenStream.from_text(entry)
            attr_name = attr_stream.identifier(allow_string=True)
            attr_type = clean_type_text(attr_stream.rest_text())
            if attr_type:
                attributes.append(CompositeAttribute(name=attr_name, type=attr_type))

        if not attributes:
            raise StatementNotRecognized(f"Composite type {name} has no attributes")

        return CompositeTypeDefinition(schema=schema, name=name, attributes=attributes)

    except ParseFailure as e:
        logger.debug(f"Not a composite type definition: {e}")
        return None


def _type_header(statement: str, context: ParseContext) -> tuple[TokenStream, str, str]:
    """Read ``CREATE TYPE [schema.]name`` and leave the cursor after the name."""
    stream = TokenStream(tokenize(statement), statement)
    stream.expect_keyword("create")
    stream.expect_keyword("type")
    schema, name = stream.qualified_name(context.default_schema)
    return stream, schema, name
