"""SQL DDL parsing into a schema model.

Recognizes tables, enums, composite types, function signatures, comments,
indexes, ALTER TABLE constraints and views.
"""
from .errors import ParseFailure, StatementNotRecognized, UnbalancedDelimiters, UnparseableLiteral
from .models import (
    AlterTableDefinition,
    ColumnDefinition,
    CommentDefinition,
    CompositeAttribute,
    CompositeTypeDefinition,
    EnumDefinition,
    ForeignKeyReference,
    FunctionArgument,
    FunctionDefinition,
    IndexDefinition,
    ParseContext,
    ParsedFile,
    RelationshipDefinition,
    SchemaModel,
    SqlStatement,
    TableDefinition,
    ViewDefinition,
)
from .parser import parse_sql_file, parse_sql_files
from .scanner import matching_close, split_statements, split_top_level, strip_comments

__all__ = [
    "AlterTableDefinition",
    "ColumnDefinition",
    "CommentDefinition",
    "CompositeAttribute",
    "CompositeTypeDefinition",
    "EnumDefinition",
    "ForeignKeyReference",
    "FunctionArgument",
    "FunctionDefinition",
    "IndexDefinition",
    "ParseContext",
    "ParseFailure",
    "ParsedFile",
    "RelationshipDefinition",
    "SchemaModel",
    "SqlStatement",
    "StatementNotRecognized",
    "TableDefinition",
    "UnbalancedDelimiters",
    "UnparseableLiteral",
    "ViewDefinition",
    "matching_close",
    "parse_sql_file",
    "parse_sql_files",
    "split_statements",
    "split_top_level",
    "strip_comments",
]
