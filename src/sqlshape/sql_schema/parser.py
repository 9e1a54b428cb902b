"""SQL file parser.

Splits a file into statements, routes each statement to the grammar for its
kind and assembles the results of several files into one schema model.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from .assembler import assemble_schema
from .comments import parse_comment
from .constraints import parse_alter_table, parse_index_definition
from .functions import parse_function_definition
from .models import (
    CommentDefinition,
    ParseContext,
    ParsedFile,
    SchemaModel,
    SqlStatement,
    TableDefinition,
)
from .scanner import split_statements, strip_comments
from .tables import parse_table_definition
from .types import parse_composite_type, parse_enum_definition
from .views import parse_view_definition

logger = logging.getLogger(__name__)

_TABLE_HEADER = re.compile(
    r"^create\s+(?:or\s+replace\s+)?(?:(?:global|local)\s+)?"
    r"(?:(?:temp|temporary|unlogged)\s+)?table\b",
    re.IGNORECASE,
)
_TYPE_HEADER = re.compile(r"^create\s+type\b", re.IGNORECASE)
_FUNCTION_HEADER = re.compile(r"^create\s+(?:or\s+replace\s+)?function\b", re.IGNORECASE)
_VIEW_HEADER = re.compile(
    r"^create\s+(?:or\s+replace\s+)?(?:(?:temp|temporary)\s+)?(?:recursive\s+)?"
    r"(?:materialized\s+)?view\b",
    re.IGNORECASE,
)
_INDEX_HEADER = re.compile(r"^create\s+(?:unique\s+)?index\b", re.IGNORECASE)
_ALTER_HEADER = re.compile(r"^alter\s+table\b", re.IGNORECASE)
_COMMENT_HEADER = re.compile(r"^comment\s+on\b", re.IGNORECASE)


def parse_sql_file(
    content: str,
    context: ParseContext,
    tables: Sequence[TableDefinition] = (),
    source_name: str = "<string>",
) -> ParsedFile:
    """Parse every supported statement in one SQL file.

    Statements that match no grammar are counted and skipped; a statement
    that fails to parse never stops the scan.

    Args:
        content: SQL file content
        context: Parse options
        tables: Tables from previously parsed files, used to type view columns
        source_name: Name used in log messages

    Returns:
        ParsedFile with everything recognized in this file
    """
    parsed = ParsedFile()
    comments: list[CommentDefinition] = []

    for statement in split_statements(strip_comments(content)):
        if not _dispatch(statement, context, parsed, comments, tables):
            parsed.skipped_statements += 1
            logger.debug(
                f"{source_name}:{statement.start_line}-{statement.end_line}: "
                f"statement not recognized: {statement.text[:60]!r}"
            )

    if context.include_comments:
        _attach_comments(parsed, comments)

    logger.info(
        f"Parsed {source_name}: {len(parsed.tables)} table(s), {len(parsed.enums)} enum(s), "
        f"{len(parsed.composite_types)} composite type(s), {len(parsed.functions)} function(s), "
        f"{len(parsed.views)} view(s), {parsed.skipped_statements} skipped statement(s)"
    )
    return parsed


def parse_sql_files(
    contents: Iterable[str],
    context: ParseContext,
    names: Sequence[str] | None = None,
) -> SchemaModel:
    """Parse several SQL files and assemble one schema model.

    Files are parsed in order, so a view may select from a table defined in
    an earlier file. Indexes and ALTER TABLE constraints are applied after
    every file is parsed.

    Args:
        contents: SQL text of each file
        context: Parse options
        names: Optional file names for log messages

    Returns:
        Assembled SchemaModel
    """
    parsed_files = []
    known_tables: list[TableDefinition] = []

    for position, content in enumerate(contents):
        source_name = names[position] if names and position < len(names) else f"<file {position + 1}>"
        parsed = parse_sql_file(content, context, tuple(known_tables), source_name)
        known_tables.extend(parsed.tables)
        parsed_files.append(parsed)

    model = assemble_schema(parsed_files)
    logger.info(
        f"Assembled schema from {len(parsed_files)} file(s): {len(model.tables)} table(s), "
        f"{len(model.views)} view(s)"
    )
    return model


def _dispatch(
    statement: SqlStatement,
    context: ParseContext,
    parsed: ParsedFile,
    comments: list[CommentDefinition],
    tables: Sequence[TableDefinition],
) -> bool:
    """Route one statement to its grammar. Returns False if nothing was recognized."""
    text = statement.text

    if _TABLE_HEADER.match(text):
        table = parse_table_definition(text, context)
        if table:
            parsed.tables.append(table)
        return table is not None

    if _TYPE_HEADER.match(text):
        enum = parse_enum_definition(text, context)
        if enum:
            parsed.enums.append(enum)
            return True
        composite = parse_composite_type(text, context)
        if composite:
            parsed.composite_types.append(composite)
        return composite is not None

    if _FUNCTION_HEADER.match(text):
        function = parse_function_definition(text, context)
        if function:
            parsed.functions.append(function)
        return function is not None

    if _VIEW_HEADER.match(text):
        relations = [*tables, *parsed.tables, *parsed.views]
        view = parse_view_definition(text, context, relations)
        if view:
            parsed.views.append(view)
        return view is not None

    if _INDEX_HEADER.match(text):
        index = parse_index_definition(text, context)
        if index:
            parsed.indexes.append(index)
        return index is not None

    if _ALTER_HEADER.match(text):
        alter = parse_alter_table(text, context)
        if alter:
            parsed.alter_tables.append(alter)
        return alter is not None

    if _COMMENT_HEADER.match(text):
        comment = parse_comment(text, context)
        if comment:
            comments.append(comment)
        return comment is not None

    return False


def _attach_comments(parsed: ParsedFile, comments: list[CommentDefinition]) -> None:
    """Attach COMMENT ON text to tables, columns and views of the same file."""
    tables = {(t.schema, t.name): t for t in parsed.tables}
    views = {(v.schema, v.name): v for v in parsed.views}

    for comment in comments:
        key = (comment.schema, comment.table_name)

        if comment.object_type == "view":
            view = views.get(key)
            if view is not None:
                view.comment = comment.comment
            continue

        table = tables.get(key)
        if comment.column_name is None:
            if table is not None:
                table.comment = comment.comment
            else:
                logger.debug(f"Comment on unknown table {key[0]}.{key[1]} ignored")
            continue

        columns = []
        if table is not None:
            columns = table.columns
        elif key in views:
            columns = views[key].columns
        column = next((c for c in columns if c.name == comment.column_name), None)
        if column is not None:
            column.comment = comment.comment
        else:
            logger.debug(f"Comment on unknown column {key[0]}.{key[1]}.{comment.column_name} ignored")
