"""CREATE INDEX and ALTER TABLE ... ADD CONSTRAINT parsing."""
from __future__ import annotations

import logging

from .errors import ParseFailure, StatementNotRecognized
from .grammar import column_list, reference_target, relation_name, unquote
from .lexer import TokenStream
from .models import AlterTableDefinition, IndexDefinition, ParseContext, RelationshipDefinition
from .scanner import matching_close, split_top_level, strip_comments

logger = logging.getLogger(__name__)


def parse_index_definition(statement: str, context: ParseContext) -> IndexDefinition | None:
    """Parse a CREATE [UNIQUE] INDEX statement.

    Plain column entries are reduced to the column name (sort order and
    operator classes dropped); expression entries keep their text.

    Returns:
        IndexDefinition or None if parsing fails
    """
    try:
        statement = strip_comments(statement)
        stream = TokenStream.from_text(statement)
        stream.expect_keyword("create")
        is_unique = stream.accept_keyword("unique") is not None
        stream.expect_keyword("index")
        stream.accept_keyword("concurrently")
        stream.accept_sequence("if", "not", "exists")

        index_name = None
        if not stream.peek().is_keyword("on"):
            index_name = stream.identifier()
        stream.expect_keyword("on")
        stream.accept_keyword("only")
        schema, table_name = stream.qualified_name(context.default_schema)

        method = None
        if stream.accept_keyword("using"):
            method = stream.identifier().lower()

        open_paren = stream.expect_punct("(")
        close = matching_close(statement, open_paren.start)
        columns = [
            _index_column(entry)
            for entry in split_top_level(statement[open_paren.start + 1:close])
        ]
        if not columns:
            raise StatementNotRecognized(f"Index on {table_name} lists no columns")

        while not stream.at_end() and stream.peek().start <= close:
            stream.advance()

        where_clause = None
        while not stream.at_end():
            if stream.accept_keyword("where"):
                where_clause = " ".join(stream.rest_text().split()) or None
                break
            if stream.peek().is_punct("("):
                stream.skip_group()  # INCLUDE (...) / WITH (...)
            else:
                stream.advance()

        if index_name is None:
            index_name = f"{table_name}_{'_'.join(columns)}_idx"

        return IndexDefinition(
            name=index_name,
            table_name=table_name,
            columns=columns,
            schema=schema,
            is_unique=is_unique,
            method=method,
            where_clause=where_clause,
        )

    except ParseFailure as e:
        logger.debug(f"Not an index definition: {e}")
        return None


def _index_column(entry: str) -> str:
    stream = TokenStream.from_text(entry)
    first = stream.peek()
    second = stream.peek(1)
    if first is not None and first.is_identifier and (second is None or not second.is_punct("(")):
        return first.value
    return unquote(" ".join(entry.split()))


def parse_alter_table(statement: str, context: ParseContext) -> AlterTableDefinition | None:
    """Parse the constraints added by an ALTER TABLE statement.

    Comma-separated actions are read one by one. ``ADD [CONSTRAINT n]
    FOREIGN KEY`` and ``ADD [CONSTRAINT n] UNIQUE`` are collected; other
    actions are ignored.

    Returns:
        AlterTableDefinition, or None when no supported action is present
    """
    try:
        statement = strip_comments(statement)
        stream = TokenStream.from_text(statement)
        stream.expect_sequence("alter", "table")
        stream.accept_sequence("if", "exists")
        stream.accept_keyword("only")
        schema, table_name = stream.qualified_name(context.default_schema)
        stream.accept_punct("*")

        alter = AlterTableDefinition(schema=schema, table_name=table_name)
        for action in split_top_level(stream.rest_text()):
            try:
                _read_action(action, alter)
            except ParseFailure as e:
                logger.debug(f"Skipping action {action.strip()!r} of ALTER TABLE {table_name}: {e}")

        if not alter.foreign_keys and not alter.unique_constraints:
            raise StatementNotRecognized(f"ALTER TABLE {table_name} adds no foreign key or unique constraint")
        return alter

    except ParseFailure as e:
        logger.debug(f"Not a supported ALTER TABLE: {e}")
        return None


def _read_action(action: str, alter: AlterTableDefinition) -> None:
    stream = TokenStream.from_text(action)
    if not stream.accept_keyword("add"):
        return

    constraint_name = None
    if stream.accept_keyword("constraint"):
        constraint_name = stream.identifier(allow_string=True)

    if stream.accept_sequence("foreign", "key"):
        columns = column_list(stream)
        stream.expect_keyword("references")
        ref_schema, ref_table, ref_columns = reference_target(stream)
        if len(ref_columns) != len(columns):
            raise StatementNotRecognized(
                f"Foreign key on {alter.table_name} lists {len(columns)} column(s) "
                f"but references {len(ref_columns)}"
            )
        alter.foreign_keys.append(RelationshipDefinition(
            foreign_key_name=constraint_name or f"{alter.table_name}_{'_'.join(columns)}_fkey",
            columns=columns,
            referenced_relation=relation_name(ref_schema, ref_table),
            referenced_columns=ref_columns,
            is_one_to_one=False,
        ))
    elif stream.accept_keyword("unique"):
        stream.accept_sequence("nulls", "not", "distinct") or stream.accept_sequence("nulls", "distinct")
        alter.unique_constraints.append(column_list(stream))
