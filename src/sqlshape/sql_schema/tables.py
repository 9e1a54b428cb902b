"""CREATE TABLE and column definition parsing.

The table body is captured with ``matching_close``, split into entries with
``split_top_level`` and every entry is read by a small recursive-descent
grammar over its tokens.
"""
from __future__ import annotations

import logging

from .assembler import ForeignKeyClause, derive_relationships
from .errors import ParseFailure, StatementNotRecognized
from .grammar import MULTI_WORD_TYPES, column_list, reference_target, relation_name, unquote
from .lexer import TokenKind, TokenStream
from .models import ColumnDefinition, ForeignKeyReference, ParseContext, TableDefinition
from .scanner import matching_close, split_top_level, strip_comments

logger = logging.getLogger(__name__)

# Keywords that end a DEFAULT expression when they appear at depth 0
_CONSTRAINT_KEYWORDS = frozenset({
    "null", "primary", "unique", "references", "check", "constraint", "generated", "collate",
})

# Leading words of fragments left over from a mis-segmented CASE expression
_STRAY_FRAGMENT_WORDS = ("case", "when", "then", "else", "otherwise")


def parse_table_definition(statement: str, context: ParseContext) -> TableDefinition | None:
    """Parse a CREATE TABLE statement.

    Args:
        statement: SQL text of a single statement
        context: Parse options (default schema for unqualified names)

    Returns:
        TableDefinition, or None if the statement is not a parseable table
        or yields no columns
    """
    try:
        return _read_table(strip_comments(statement), context)
    except ParseFailure as e:
        logger.debug(f"Not a table definition: {e}")
        return None


def parse_column_definition(col_def: str) -> ColumnDefinition | None:
    """Parse one column entry of a CREATE TABLE body.

    Args:
        col_def: Entry text such as ``email text UNIQUE NOT NULL``

    Returns:
        ColumnDefinition, or None if no column type can be resolved
    """
    try:
        stream = TokenStream.from_text(col_def.strip())
        return _read_column(stream)
    except ParseFailure as e:
        logger.debug(f"Skipping column entry {col_def.strip()!r}: {e}")
        return None


def _read_table(statement: str, context: ParseContext) -> TableDefinition:
    stream = TokenStream.from_text(statement)
    stream.expect_keyword("create")
    stream.accept_sequence("or", "replace")
    stream.accept_keyword("global", "local")
    stream.accept_keyword("temp", "temporary", "unlogged")
    stream.expect_keyword("table")
    stream.accept_sequence("if", "not", "exists")
    schema, name = stream.qualified_name(context.default_schema)
    open_paren = stream.expect_punct("(")

    close = matching_close(statement, open_paren.start)
    body = statement[open_paren.start + 1:close]
    if not body.strip():
        raise StatementNotRecognized(f"Table {name} has an empty body")

    columns: list[ColumnDefinition] = []
    clauses: list[ForeignKeyClause] = []

    for entry in split_top_level(body):
        try:
            _read_entry(entry, name, columns, clauses)
        except ParseFailure as e:
            logger.debug(f"Skipping entry {entry.strip()!r} of table {name}: {e}")

    if not columns:
        raise StatementNotRecognized(f"Table {name} has no parseable columns")

    return TableDefinition(
        schema=schema,
        name=name,
        columns=columns,
        relationships=derive_relationships(name, columns, clauses),
    )


def _read_entry(
    entry: str,
    table_name: str,
    columns: list[ColumnDefinition],
    clauses: list[ForeignKeyClause],
) -> None:
    """Classify one table body entry and record what it contributes."""
    stream = TokenStream.from_text(entry)
    if stream.at_end():
        return

    if stream.accept_keyword("constraint"):
        constraint_name = stream.identifier(allow_string=True)
        if stream.accept_sequence("foreign", "key"):
            clauses.append(_read_foreign_key(stream, constraint_name))
        # Named PRIMARY KEY / UNIQUE / CHECK / EXCLUDE constraints are skipped
        return

    if stream.accept_sequence("foreign", "key"):
        clauses.append(_read_foreign_key(stream, None))
        return

    if _is_table_level_clause(stream):
        return

    column = parse_column_definition(entry)
    if column is None:
        return

    columns.append(column)
    if column.foreign_key is not None:
        clauses.append(ForeignKeyClause(
            columns=[column.name],
            referenced_relation=relation_name(column.foreign_key.schema, column.foreign_key.table),
            referenced_columns=[column.foreign_key.column],
            inline=True,
        ))


def _is_table_level_clause(stream: TokenStream) -> bool:
    first = stream.peek()
    second = stream.peek(1)

    if first.is_keyword("primary") and second is not None and second.is_keyword("key"):
        return True
    if first.is_keyword("unique", "check") and (second is None or second.is_punct("(") or second.is_keyword("nulls")):
        return True
    if first.is_keyword("exclude") and second is not None and (second.is_keyword("using") or second.is_punct("(")):
        return True
    # LIKE is reserved, so it never starts a column entry
    if first.is_keyword("like"):
        return True
    if first.is_keyword(*_STRAY_FRAGMENT_WORDS):
        return True
    if first.is_keyword("end") and second is None:
        return True
    return False


def _read_foreign_key(stream: TokenStream, name: str | None) -> ForeignKeyClause:
    columns = column_list(stream)
    stream.expect_keyword("references")
    ref_schema, ref_table, ref_columns = reference_target(stream)
    if len(ref_columns) != len(columns):
        raise StatementNotRecognized(
            f"Foreign key {name or columns} lists {len(columns)} column(s) "
            f"but references {len(ref_columns)}"
        )
    return ForeignKeyClause(
        name=name,
        columns=columns,
        referenced_relation=relation_name(ref_schema, ref_table),
        referenced_columns=ref_columns,
    )


def _read_column(stream: TokenStream) -> ColumnDefinition:
    name = stream.identifier(allow_string=True)
    col_type = _read_type(stream)

    is_array = _read_array_suffix(stream)
    not_null = False
    is_primary_key = False
    is_unique = False
    default_value = None
    foreign_key = None

    while not stream.at_end():
        if stream.accept_sequence("not", "null"):
            not_null = True
        elif stream.accept_sequence("primary", "key"):
            is_primary_key = True
        elif stream.accept_keyword("unique"):
            is_unique = True
        elif stream.accept_keyword("generated"):
            # GENERATED BY DEFAULT AS IDENTITY is not a column default
            stream.accept_keyword("always")
            stream.accept_sequence("by", "default")
        elif stream.accept_keyword("default"):
            default_value = _read_default(stream)
        elif stream.accept_keyword("references"):
            foreign_key = _read_inline_reference(stream)
        elif stream.accept_keyword("array"):
            is_array = True
            _read_array_suffix(stream)
        elif stream.accept_keyword("constraint"):
            stream.identifier(allow_string=True)
        elif stream.peek().is_punct("("):
            # CHECK (...), GENERATED ... AS (...)
            stream.skip_group()
        else:
            stream.advance()

    return ColumnDefinition(
        name=name,
        type=col_type,
        nullable=not not_null and not is_primary_key,
        default_value=default_value,
        is_array=is_array,
        is_primary_key=is_primary_key,
        is_unique=is_unique and not is_primary_key,
        foreign_key=foreign_key,
    )


def _read_type(stream: TokenStream) -> str:
    """Resolve the column type: quoted name, multi-word type, then ``word(args)``."""
    token = stream.peek()
    if token is None:
        raise StatementNotRecognized("Column has no type")

    if token.kind in (TokenKind.QUOTED_IDENT, TokenKind.STRING):
        stream.advance()
        if stream.accept_punct("."):
            return f"{token.value}.{stream.identifier(allow_string=True)}"
        return token.value

    for words in MULTI_WORD_TYPES:
        if stream.accept_sequence(*words):
            return " ".join(words) + _read_size_suffix(stream)

    if token.kind is not TokenKind.WORD:
        raise StatementNotRecognized(f"Column type expected, found {token.value!r}", token.start)

    stream.advance()
    type_name = token.value
    if stream.accept_punct("."):
        type_name = f"{type_name}.{stream.identifier()}"
    type_name += _read_size_suffix(stream)

    # timestamp(3) with time zone
    if token.value.lower() in ("timestamp", "time"):
        for zone in (("with", "time", "zone"), ("without", "time", "zone")):
            if stream.accept_sequence(*zone):
                type_name += " " + " ".join(zone)
                break

    return type_name


def _read_size_suffix(stream: TokenStream) -> str:
    token = stream.peek()
    if token is None or not token.is_punct("("):
        return ""
    open_pos, close_pos = stream.skip_group()
    return stream.source[open_pos:close_pos + 1]


def _read_array_suffix(stream: TokenStream) -> bool:
    found = False
    while stream.accept_punct("["):
        if not stream.accept_punct("]"):
            stream.advance()  # dimension size
            stream.expect_punct("]")
        found = True
    return found


def _starts_constraint(stream: TokenStream) -> bool:
    token = stream.peek()
    if token.is_keyword("not"):
        following = stream.peek(1)
        return following is not None and following.is_keyword("null")
    return token.is_keyword(*_CONSTRAINT_KEYWORDS)


def _read_default(stream: TokenStream) -> str:
    """Consume a DEFAULT expression up to the next top-level constraint keyword."""
    taken = []
    depth = 0
    while not stream.at_end():
        if depth == 0 and taken and _starts_constraint(stream):
            break
        token = stream.advance()
        if token.is_punct("(") or token.is_punct("["):
            depth += 1
        elif token.is_punct(")") or token.is_punct("]"):
            depth -= 1
        taken.append(token)

    if not taken:
        raise StatementNotRecognized("DEFAULT without an expression", len(stream.source))
    return stream.text_between(taken[0], taken[-1]).strip()


def _read_inline_reference(stream: TokenStream) -> ForeignKeyReference | None:
    schema, table, columns = reference_target(stream)
    if not columns:
        logger.debug(f"REFERENCES {table} has no column list; foreign key ignored")
        return None
    return ForeignKeyReference(table=table, column=unquote(columns[0]), schema=schema)
