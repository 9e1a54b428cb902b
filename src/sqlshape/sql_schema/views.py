"""CREATE [MATERIALIZED] VIEW parsing.

The statement header is read by the token grammar; the SELECT body is handed
to sqlglot so projection names and types can be resolved against the tables
parsed earlier.
"""
from __future__ import annotations

import logging
import re
from typing import Sequence, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from .errors import ParseFailure, StatementNotRecognized
from .grammar import column_list
from .lexer import TokenStream
from .models import ColumnDefinition, ParseContext, TableDefinition, ViewDefinition
from .scanner import strip_comments

logger = logging.getLogger(__name__)

Relation = Union[TableDefinition, ViewDefinition]

_WITH_DATA = re.compile(r"\s+with\s+(?:no\s+)?data\s*$", re.IGNORECASE)

# Result types of common functions, keyed by lower-cased function name
_FUNCTION_TYPES = {
    "count": "bigint",
    "row_number": "bigint",
    "rank": "bigint",
    "dense_rank": "bigint",
    "sum": "numeric",
    "avg": "numeric",
    "now": "timestamp with time zone",
    "current_timestamp": "timestamp with time zone",
    "current_date": "date",
    "current_time": "time with time zone",
    "json_agg": "json",
    "jsonb_agg": "jsonb",
    "json_build_object": "json",
    "jsonb_build_object": "jsonb",
    "json_object_agg": "json",
    "jsonb_object_agg": "jsonb",
    "to_json": "json",
    "to_jsonb": "jsonb",
    "string_agg": "text",
    "concat": "text",
    "concat_ws": "text",
    "lower": "text",
    "upper": "text",
    "trim": "text",
    "bool_and": "boolean",
    "bool_or": "boolean",
}

# Functions whose result has the type of their first argument
_PASSTHROUGH_FUNCTIONS = frozenset({"max", "min", "coalesce", "first_value", "last_value", "lag", "lead"})


def parse_view_definition(
    statement: str,
    context: ParseContext,
    relations: Sequence[Relation] = (),
) -> ViewDefinition | None:
    """Parse a CREATE [OR REPLACE] [MATERIALIZED] VIEW statement.

    Args:
        statement: SQL text of a single statement
        context: Parse options (default schema for unqualified names)
        relations: Tables and views parsed so far, used to type columns that
            are selected straight from a source relation

    Returns:
        ViewDefinition, or None if the header cannot be read. A view whose
        query sqlglot cannot parse is returned with no columns.
    """
    try:
        statement = strip_comments(statement)
        stream = TokenStream.from_text(statement)
        stream.expect_keyword("create")
        stream.accept_sequence("or", "replace")
        stream.accept_keyword("temp", "temporary")
        stream.accept_keyword("recursive")
        is_materialized = stream.accept_keyword("materialized") is not None
        stream.expect_keyword("view")
        stream.accept_sequence("if", "not", "exists")
        schema, name = stream.qualified_name(context.default_schema)

        explicit_columns = None
        next_token = stream.peek()
        if next_token is not None and next_token.is_punct("("):
            explicit_columns = column_list(stream)
        while not stream.at_end() and not stream.peek().is_keyword("as"):
            if stream.peek().is_punct("("):
                stream.skip_group()  # WITH (options), USING method
            else:
                stream.advance()
        stream.expect_keyword("as")

        definition = _WITH_DATA.sub("", stream.rest_text()).strip()
        if not definition:
            raise StatementNotRecognized(f"View {name} has no query")

    except ParseFailure as e:
        logger.debug(f"Not a view definition: {e}")
        return None

    columns = _resolve_columns(definition, context, relations)
    if explicit_columns:
        for column, alias in zip(columns, explicit_columns):
            column.name = alias

    return ViewDefinition(
        schema=schema,
        name=name,
        columns=columns,
        is_materialized=is_materialized,
        definition=definition,
    )


def _resolve_columns(
    definition: str,
    context: ParseContext,
    relations: Sequence[Relation],
) -> list[ColumnDefinition]:
    try:
        query = sqlglot.parse_one(definition, dialect="postgres")
    except (ParseError, TokenError) as e:
        logger.debug(f"sqlglot could not parse view query: {e}")
        return []

    while isinstance(query, (exp.Union, exp.Subquery)):
        query = query.this
    if not isinstance(query, exp.Select):
        return []

    sources = _source_relations(query, context, relations)
    columns = []

    for projection in query.expressions:
        if isinstance(projection, exp.Star):
            for relation in _unique(sources.values()):
                columns.extend(_copy_column(c, c.name) for c in relation.columns)
            continue
        if isinstance(projection, exp.Column) and isinstance(projection.this, exp.Star):
            relation = sources.get(projection.table)
            if relation is not None:
                columns.extend(_copy_column(c, c.name) for c in relation.columns)
            continue

        node = projection.unalias()
        name = projection.output_name or _default_output_name(node)
        source = _source_column(node, sources)
        if source is not None:
            columns.append(_copy_column(source, name))
            continue

        col_type, is_array = _infer_type(node, sources)
        columns.append(ColumnDefinition(name=name, type=col_type, is_array=is_array))

    return columns


def _source_relations(
    query: exp.Select,
    context: ParseContext,
    relations: Sequence[Relation],
) -> dict[str, Relation]:
    """Map table names and aliases used in the query to known relations."""
    known = {(r.schema, r.name): r for r in relations}
    sources = {}
    for table in query.find_all(exp.Table):
        relation = known.get((table.db or context.default_schema, table.name))
        if relation is None:
            continue
        sources.setdefault(table.name, relation)
        if table.alias:
            sources[table.alias] = relation
    return sources


def _unique(relations) -> list[Relation]:
    seen = []
    for relation in relations:
        if not any(relation is r for r in seen):
            seen.append(relation)
    return seen


def _copy_column(source: ColumnDefinition, name: str) -> ColumnDefinition:
    return ColumnDefinition(
        name=name,
        type=source.type,
        nullable=source.nullable,
        is_array=source.is_array,
        comment=source.comment,
    )


def _source_column(node: exp.Expression, sources: dict[str, Relation]) -> ColumnDefinition | None:
    while isinstance(node, exp.Paren):
        node = node.this
    if not isinstance(node, exp.Column):
        return None

    if node.table:
        candidates = [sources[node.table]] if node.table in sources else []
    else:
        candidates = _unique(sources.values())

    for relation in candidates:
        column = next((c for c in relation.columns if c.name == node.name), None)
        if column is not None:
            return column
    return None


def _default_output_name(node: exp.Expression) -> str:
    if isinstance(node, exp.Window):
        node = node.this
    if isinstance(node, exp.Func):
        return _function_name(node)
    return "?column?"


def _function_name(node: exp.Func) -> str:
    if isinstance(node, exp.Anonymous):
        return node.name.lower()
    return node.sql_name().lower()


def _infer_type(node: exp.Expression, sources: dict[str, Relation]) -> tuple[str, bool]:
    """Best-effort result type of a projection expression.

    Returns:
        Tuple of (type, is_array); ``unknown`` when nothing can be inferred
    """
    while isinstance(node, (exp.Paren, exp.Window)):
        node = node.this

    if isinstance(node, exp.Cast):
        type_text = node.to.sql(dialect="postgres").lower()
        if type_text.endswith("[]"):
            return type_text[:-2], True
        return type_text, False

    source = _source_column(node, sources)
    if source is not None:
        return source.type, source.is_array

    if isinstance(node, exp.Literal):
        if node.is_string:
            return "text", False
        return ("integer", False) if node.is_int else ("numeric", False)
    if isinstance(node, exp.Boolean):
        return "boolean", False
    if isinstance(node, (exp.Predicate, exp.Connector, exp.Not)):
        return "boolean", False
    if isinstance(node, exp.DPipe):
        return "text", False
    if isinstance(node, exp.Case):
        ifs = node.args.get("ifs") or []
        if ifs:
            return _infer_type(ifs[0].args["true"], sources)
        return "unknown", False

    if isinstance(node, exp.Func):
        name = _function_name(node)
        if name == "array_agg":
            element_type, _ = _infer_type(node.this, sources) if node.this else ("unknown", False)
            return element_type, True
        if name in _PASSTHROUGH_FUNCTIONS and isinstance(node.this, exp.Expression):
            return _infer_type(node.this, sources)
        if name in _FUNCTION_TYPES:
            return _FUNCTION_TYPES[name], False

    return "unknown", False
