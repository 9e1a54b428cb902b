"""COMMENT ON statement parsing."""
from __future__ import annotations

import logging

from .errors import ParseFailure, StatementNotRecognized
from .lexer import TokenKind, TokenStream
from .models import CommentDefinition, ParseContext
from .scanner import strip_comments

logger = logging.getLogger(__name__)


def parse_comment(statement: str, context: ParseContext) -> CommentDefinition | None:
    """Parse ``COMMENT ON TABLE|COLUMN|[MATERIALIZED] VIEW target IS '...'``.

    ``IS NULL`` removes a comment and is reported as not recognized.
    """
    try:
        stream = TokenStream.from_text(strip_comments(statement))
        stream.expect_keyword("comment")
        stream.expect_keyword("on")

        column_name = None
        if stream.accept_keyword("table"):
            object_type = "table"
            schema, table_name = stream.qualified_name(context.default_schema)
        elif stream.accept_keyword("column"):
            object_type = "column"
            parts = [stream.identifier(allow_string=True)]
            while stream.accept_punct("."):
                parts.append(stream.identifier(allow_string=True))
            if len(parts) == 3:
                schema, table_name, column_name = parts
            elif len(parts) == 2:
                schema = context.default_schema
                table_name, column_name = parts
            else:
                raise StatementNotRecognized(f"Column comment target {'.'.join(parts)!r} needs table.column")
        elif stream.accept_sequence("materialized", "view") or stream.accept_keyword("view"):
            object_type = "view"
            schema, table_name = stream.qualified_name(context.default_schema)
        else:
            raise StatementNotRecognized("Unsupported COMMENT ON target")

        stream.expect_keyword("is")
        literal = stream.advance()
        if literal.kind is not TokenKind.STRING:
            raise StatementNotRecognized("Comment is not a string literal", literal.start)

        return CommentDefinition(
            table_name=table_name,
            comment=literal.value,
            schema=schema,
            column_name=column_name,
            object_type=object_type,
        )

    except ParseFailure as e:
        logger.debug(f"Not a comment statement: {e}")
        return None
