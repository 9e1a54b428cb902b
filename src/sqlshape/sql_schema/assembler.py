"""Relationship derivation and cross-statement schema assembly."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from .models import (
    ColumnDefinition,
    ParsedFile,
    RelationshipDefinition,
    SchemaModel,
    TableDefinition,
)

logger = logging.getLogger(__name__)


@dataclass
class ForeignKeyClause:
    """A foreign key found while reading a CREATE TABLE body.

    Inline clauses come from a column's REFERENCES; the others from
    table-level FOREIGN KEY entries (``name`` is None when unnamed).
    """
    columns: list[str]
    referenced_relation: str
    referenced_columns: list[str]
    name: str | None = None
    inline: bool = False


def derive_relationships(
    table_name: str,
    columns: list[ColumnDefinition],
    clauses: list[ForeignKeyClause],
) -> list[RelationshipDefinition]:
    """Turn the foreign key clauses of one table into relationships.

    Inline foreign keys are named ``<table>_<column>_fkey`` and are one-to-one
    when the column is unique. Table-level constraints are never one-to-one.
    Order follows the clause order.
    """
    by_name = {col.name: col for col in columns}
    relationships = []

    for clause in clauses:
        if clause.inline:
            column = by_name.get(clause.columns[0])
            relationships.append(RelationshipDefinition(
                foreign_key_name=f"{table_name}_{clause.columns[0]}_fkey",
                columns=list(clause.columns),
                referenced_relation=clause.referenced_relation,
                referenced_columns=list(clause.referenced_columns),
                is_one_to_one=bool(column and column.is_unique),
            ))
        else:
            relationships.append(RelationshipDefinition(
                foreign_key_name=clause.name or f"{table_name}_{'_'.join(clause.columns)}_fkey",
                columns=list(clause.columns),
                referenced_relation=clause.referenced_relation,
                referenced_columns=list(clause.referenced_columns),
                is_one_to_one=False,
            ))

    return relationships


def assemble_schema(parsed_files: Iterable[ParsedFile]) -> SchemaModel:
    """Merge per-file parse results into one schema model.

    Indexes and ALTER TABLE constraints may live in a different file than the
    table they belong to, so they are applied once every file is parsed:
    indexes first, then ALTER TABLE ... UNIQUE, then ALTER TABLE foreign keys.
    """
    files = list(parsed_files)
    model = SchemaModel()
    for parsed in files:
        model.tables.extend(parsed.tables)
        model.enums.extend(parsed.enums)
        model.functions.extend(parsed.functions)
        model.composite_types.extend(parsed.composite_types)
        model.views.extend(parsed.views)

    tables: dict[tuple[str, str], TableDefinition] = {}
    for table in model.tables:
        tables.setdefault((table.schema, table.name), table)

    for parsed in files:
        for index in parsed.indexes:
            table = tables.get((index.schema, index.table_name))
            if table is None:
                logger.debug(f"Index {index.name} targets unknown table {index.schema}.{index.table_name}")
                continue
            table.indexes.append(index)

    alters = [alter for parsed in files for alter in parsed.alter_tables]

    for alter in alters:
        table = tables.get((alter.schema, alter.table_name))
        if table is None:
            continue
        for unique_columns in alter.unique_constraints:
            # A composite unique constraint does not make any single column unique
            if len(unique_columns) != 1:
                continue
            column = table.get_column(unique_columns[0])
            if column is not None and not column.is_primary_key:
                column.is_unique = True

    for alter in alters:
        table = tables.get((alter.schema, alter.table_name))
        if table is None:
            logger.warning(
                f"ALTER TABLE references unknown table {alter.schema}.{alter.table_name}; "
                f"dropping {len(alter.foreign_keys)} foreign key(s) and "
                f"{len(alter.unique_constraints)} unique constraint(s)"
            )
            continue
        for relationship in alter.foreign_keys:
            table.relationships.append(replace(
                relationship,
                is_one_to_one=_is_single_unique_column(table, relationship.columns),
            ))

    return model


def _is_single_unique_column(table: TableDefinition, columns: list[str]) -> bool:
    if len(columns) != 1:
        return False
    name = columns[0]
    column = table.get_column(name)
    if column is not None and (column.is_unique or column.is_primary_key):
        return True
    return any(idx.is_unique and idx.columns == [name] for idx in table.indexes)
