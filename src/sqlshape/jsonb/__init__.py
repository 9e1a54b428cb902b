"""JSON/JSONB default decoding and structural type inference."""
from .arena import TypeArena, TypeDefinition
from .dedupe import DeduplicationResult, deduplicate_types, normalize_type_definition
from .inference import (
    JsonColumn,
    JsonTypeResult,
    build_json_types,
    find_json_columns,
    generate_type_definition,
    infer_json_types,
    infer_type_from_value,
)
from .literal import decode_json_default, parse_json_default

__all__ = [
    "DeduplicationResult",
    "JsonColumn",
    "JsonTypeResult",
    "TypeArena",
    "TypeDefinition",
    "build_json_types",
    "decode_json_default",
    "deduplicate_types",
    "find_json_columns",
    "generate_type_definition",
    "infer_json_types",
    "infer_type_from_value",
    "normalize_type_definition",
    "parse_json_default",
]
