"""sqlshape: schema models and JSON column types from SQL DDL."""
from sqlshape.jsonb import JsonTypeResult, build_json_types
from sqlshape.sql_schema import ParseContext, ParsedFile, SchemaModel, parse_sql_file, parse_sql_files

__version__ = "0.1.0"

__all__ = [
    "JsonTypeResult",
    "ParseContext",
    "ParsedFile",
    "SchemaModel",
    "build_json_types",
    "parse_sql_file",
    "parse_sql_files",
]
