"""Schema model produced by the SQL parsers.

Every definition is a plain dataclass. Instances are built during a single
parse pass and handed to callers as-is.
"""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ParseContext:
    """Options threaded through every parser call."""
    default_schema: str = "public"
    include_comments: bool = True
    extract_nested_types: bool = False
    json_types: tuple[str, ...] = ("json", "jsonb")


@dataclass
class ForeignKeyReference:
    """Target of an inline ``REFERENCES`` clause."""
    table: str
    column: str
    schema: str | None = None


@dataclass
class ColumnDefinition:
    """Parsed column definition from CREATE TABLE."""
    name: str
    type: str
    nullable: bool = True
    default_value: str | None = None
    is_array: bool = False
    is_primary_key: bool = False
    is_unique: bool = False
    foreign_key: ForeignKeyReference | None = None
    comment: str | None = None


@dataclass
class RelationshipDefinition:
    """Foreign key relationship owned by a table."""
    foreign_key_name: str
    columns: list[str]
    referenced_relation: str  # "schema.table" or "table"
    referenced_columns: list[str]
    is_one_to_one: bool = False


@dataclass
class IndexDefinition:
    """Parsed CREATE INDEX statement."""
    name: str
    table_name: str
    columns: list[str]
    schema: str = "public"
    is_unique: bool = False
    method: str | None = None  # "btree", "gin", "gist", etc.
    where_clause: str | None = None


@dataclass
class TableDefinition:
    """Parsed CREATE TABLE statement."""
    schema: str
    name: str
    columns: list[ColumnDefinition]
    relationships: list[RelationshipDefinition] = field(default_factory=list)
    indexes: list[IndexDefinition] = field(default_factory=list)
    comment: str | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.name}"

    def get_column(self, name: str) -> ColumnDefinition | None:
        return next((c for c in self.columns if c.name == name), None)


@dataclass
class EnumDefinition:
    """Parsed CREATE TYPE ... AS ENUM statement."""
    schema: str
    name: str
    values: list[str]


@dataclass
class CompositeAttribute:
    name: str
    type: str


@dataclass
class CompositeTypeDefinition:
    """Parsed CREATE TYPE ... AS (...) statement."""
    schema: str
    name: str
    attributes: list[CompositeAttribute]


@dataclass
class FunctionArgument:
    """Function argument. Unnamed arguments carry an empty name."""
    name: str
    type: str
    has_default: bool = False
    mode: str = "IN"  # IN, OUT, INOUT, VARIADIC


@dataclass
class FunctionDefinition:
    """Parsed CREATE FUNCTION signature."""
    schema: str
    name: str
    args: list[FunctionArgument]
    returns: str


@dataclass
class CommentDefinition:
    """Parsed COMMENT ON statement."""
    table_name: str
    comment: str
    schema: str
    column_name: str | None = None
    object_type: str = "table"  # "table", "column", "view"


@dataclass
class AlterTableDefinition:
    """Constraints added to an existing table by ALTER TABLE."""
    schema: str
    table_name: str
    foreign_keys: list[RelationshipDefinition] = field(default_factory=list)
    unique_constraints: list[list[str]] = field(default_factory=list)


@dataclass
class ViewDefinition:
    """Parsed CREATE [MATERIALIZED] VIEW statement."""
    schema: str
    name: str
    columns: list[ColumnDefinition]
    is_materialized: bool = False
    definition: str = ""
    comment: str | None = None


@dataclass
class SqlStatement:
    """One statement located in a SQL file."""
    text: str
    start_line: int
    end_line: int


@dataclass
class ParsedFile:
    """Everything recognized in one file before cross-file assembly."""
    tables: list[TableDefinition] = field(default_factory=list)
    enums: list[EnumDefinition] = field(default_factory=list)
    functions: list[FunctionDefinition] = field(default_factory=list)
    composite_types: list[CompositeTypeDefinition] = field(default_factory=list)
    views: list[ViewDefinition] = field(default_factory=list)
    indexes: list[IndexDefinition] = field(default_factory=list)
    alter_tables: list[AlterTableDefinition] = field(default_factory=list)
    skipped_statements: int = 0


@dataclass
class SchemaModel:
    """Assembled schema across all parsed files."""
    tables: list[TableDefinition] = field(default_factory=list)
    enums: list[EnumDefinition] = field(default_factory=list)
    functions: list[FunctionDefinition] = field(default_factory=list)
    composite_types: list[CompositeTypeDefinition] = field(default_factory=list)
    views: list[ViewDefinition] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.tables or self.enums or self.functions
            or self.composite_types or self.views
        )

    def find_table(self, name: str, schema: str | None = None) -> TableDefinition | None:
        for table in self.tables:
            if table.name == name and (schema is None or table.schema == schema):
                return table
        return None
