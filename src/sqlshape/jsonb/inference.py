"""Structural type inference for JSON/JSONB column defaults."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from ..sql_schema.errors import UnparseableLiteral
from ..sql_schema.models import ParseContext, SchemaModel, TableDefinition
from .arena import TypeArena, TypeDefinition
from .dedupe import deduplicate_types
from .literal import parse_json_default

logger = logging.getLogger(__name__)


@dataclass
class JsonColumn:
    """A JSON-typed column that declares a default."""
    schema: str
    table: str
    column: str
    default_value: str
    comment: str | None = None


@dataclass
class JsonTypeResult:
    """Inferred types before and after deduplication."""
    all_types: list[TypeDefinition]
    types: list[TypeDefinition]
    removed_count: int = 0
    aliases: dict[str, str] = field(default_factory=dict)


def find_json_columns(tables: Iterable[TableDefinition], context: ParseContext) -> list[JsonColumn]:
    """Collect scalar JSON columns with a default, in table and column order."""
    json_types = {t.lower() for t in context.json_types}
    found = []
    for table in tables:
        for column in table.columns:
            if column.is_array or column.default_value is None:
                continue
            # pg_catalog.jsonb names the same type as jsonb
            if column.type.lower().rsplit(".", 1)[-1] not in json_types:
                continue
            found.append(JsonColumn(
                schema=table.schema,
                table=table.name,
                column=column.name,
                default_value=column.default_value,
                comment=column.comment,
            ))
    return found


def infer_type_from_value(value: Any, indent: int = 0) -> str:
    """Describe the shape of a decoded JSON value.

    Objects list their keys in order, one per line, indented two spaces per
    nesting level. Arrays take the type of their first element.

    Args:
        value: Decoded JSON value
        indent: Nesting level of ``value``

    Returns:
        Type description such as ``string``, ``number[]`` or ``{\\n  a: number\\n}``
    """
    if value is None:
        return "unknown"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        if not value:
            return "unknown[]"
        return f"{infer_type_from_value(value[0], indent)}[]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        pad = "  " * indent
        entries = [f"{pad}  {key}: {infer_type_from_value(val, indent + 1)}" for key, val in value.items()]
        return "{\n" + "\n".join(entries) + f"\n{pad}}}"
    return "unknown"


def generate_type_definition(
    column: JsonColumn,
    arena: TypeArena,
    extract_nested: bool = False,
) -> TypeDefinition | None:
    """Infer and store the type of one JSON column default.

    The root type is named ``<table>_<column>``. With ``extract_nested``,
    every object nested under a key becomes its own type named
    ``<parent>_<key>``; array elements are described inline under the base
    name ``<parent>_item``.

    Returns:
        The stored root TypeDefinition, or None if the default cannot be decoded
    """
    try:
        value = parse_json_default(column.default_value)
    except UnparseableLiteral as e:
        logger.debug(f"Skipping {column.table}.{column.column}: {e}")
        return None

    name = f"{column.table}_{column.column}"
    type_id = arena.allocate()

    if extract_nested:
        type_text, nested_ids = _extract(value, name, 0, arena, type_id, column)
    else:
        type_text, nested_ids = infer_type_from_value(value), []

    return arena.add(TypeDefinition(
        table=column.table,
        column=column.column,
        name=name,
        type_definition=type_text,
        comment=column.comment,
        example=value,
        id=type_id,
        nested_type_ids=tuple(nested_ids),
    ))


def _extract(
    value: Any,
    base_name: str,
    indent: int,
    arena: TypeArena,
    parent_id: int,
    column: JsonColumn,
) -> tuple[str, list[int]]:
    """Describe ``value``, storing nested objects as named types in the arena.

    Returns:
        Tuple of (type description, ids of the named types it references)
    """
    if isinstance(value, list):
        if not value:
            return "unknown[]", []
        item_text, item_ids = _extract(value[0], f"{base_name}_item", indent, arena, parent_id, column)
        return f"{item_text}[]", item_ids

    if not isinstance(value, dict):
        return infer_type_from_value(value, indent), []
    if not value:
        return "{}", []

    pad = "  " * indent
    entries = []
    nested_ids = []

    for key, val in value.items():
        if isinstance(val, dict):
            nested_name = f"{base_name}_{key}"
            nested_id = arena.allocate()
            nested_text, grandchild_ids = _extract(val, nested_name, 0, arena, nested_id, column)
            arena.add(TypeDefinition(
                table=column.table,
                column=column.column,
                name=nested_name,
                type_definition=nested_text,
                example=val,
                id=nested_id,
                parent_id=parent_id,
                nested_type_ids=tuple(grandchild_ids),
            ))
            entries.append(f"{pad}  {key}: {nested_name}")
            nested_ids.append(nested_id)
        else:
            val_text, val_ids = _extract(val, f"{base_name}_{key}", indent + 1, arena, parent_id, column)
            entries.append(f"{pad}  {key}: {val_text}")
            nested_ids.extend(val_ids)

    return "{\n" + "\n".join(entries) + f"\n{pad}}}", nested_ids


def infer_json_types(model: SchemaModel, context: ParseContext) -> TypeArena:
    """Infer types for every JSON column default in the model."""
    arena = TypeArena()
    columns = find_json_columns(model.tables, context)
    for column in columns:
        generate_type_definition(column, arena, context.extract_nested_types)

    logger.info(f"Inferred {len(arena)} type(s) from {len(columns)} JSON column default(s)")
    return arena


def build_json_types(
    model: SchemaModel,
    context: ParseContext,
    deduplicate: bool = True,
) -> JsonTypeResult:
    """Infer JSON column types and optionally merge identical ones.

    Args:
        model: Assembled schema model
        context: Parse options; ``extract_nested_types`` flattens nested types
            into the result, children before the types referencing them
        deduplicate: Drop types whose normalized description was already seen

    Returns:
        JsonTypeResult with the pre- and post-deduplication lists
    """
    arena = infer_json_types(model, context)
    all_types = arena.flatten() if context.extract_nested_types else arena.roots()

    if not deduplicate:
        return JsonTypeResult(all_types=all_types, types=list(all_types))

    result = deduplicate_types(all_types)
    return JsonTypeResult(
        all_types=all_types,
        types=result.types,
        removed_count=result.removed_count,
        aliases=result.aliases,
    )
