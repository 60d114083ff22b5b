# ============================================================================
# DECLARED SCHEMA MODELS
# ============================================================================
# STATUS: Core model - Tables, columns, indexes, enums parsed from annotations
# PURPOSE: In-memory relational model built from annotated source files
# CREATED: 19 OCT 2026
# EXPORTS: ForeignKeyRef, ColumnDef, TableDef, IndexDef, EnumDef,
#          EmbedGroup, EmbedDirective, SchemaModel
# DEPENDENCIES: pydantic
# ============================================================================
"""
Declared Schema Models

The schema model is what the annotation parser builds and what every
generator, the resolver and the differ read. It is rebuilt from scratch on
each parse and never mutated by the generators.

Per-dialect overrides are stored as ``{dialect: {key: value}}`` maps, taken
from dotted annotation keys such as ``platform.mysql.type="JSON"``.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from core.contracts import Dialect, EmbedMode
from core.errors import ParseIssue

Overrides = Dict[str, Dict[str, str]]


def lookup_override(overrides: Overrides, dialect: Dialect, key: str) -> Optional[str]:
    """
    Find a per-dialect override value.

    MariaDB falls back to MySQL overrides when it has none of its own.
    GENERIC never applies overrides.
    """
    dialect = Dialect.parse(dialect)
    if dialect == Dialect.GENERIC:
        return None
    candidates = [dialect.value]
    if dialect == Dialect.MARIADB:
        candidates.append(Dialect.MYSQL.value)
    for name in candidates:
        value = overrides.get(name, {}).get(key)
        if value:
            return value
    return None


# ============================================================================
# COLUMNS
# ============================================================================

class ForeignKeyRef(BaseModel):
    """Reference from a column to ``table(column)``."""
    table: str
    column: str = "id"
    name: Optional[str] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None

    @classmethod
    def parse(cls, ref: str, **kwargs) -> "ForeignKeyRef":
        """
        Parse ``table(column)`` or a bare ``table`` (column defaults to id).

        Raises:
            ValueError: If the reference is empty or unbalanced
        """
        text = (ref or "").strip()
        if not text:
            raise ValueError("empty foreign key reference")
        if "(" in text:
            if not text.endswith(")"):
                raise ValueError(f"malformed foreign key reference: {ref}")
            table, column = text[:-1].split("(", 1)
            table, column = table.strip(), column.strip()
            if not table or not column:
                raise ValueError(f"malformed foreign key reference: {ref}")
            return cls(table=table, column=column, **kwargs)
        return cls(table=text, **kwargs)

    def target(self) -> str:
        return f"{self.table}({self.column})"


class ColumnDef(BaseModel):
    """
    One column of a declared table.

    ``type`` holds the declared SQL type. For field-level enums it holds the
    generated enum name and ``enum_values`` the ordered values.
    """
    name: str
    type: str
    nullable: bool = True
    primary: bool = False
    unique: bool = False
    index: bool = False
    auto_increment: bool = False
    default: Optional[str] = None
    default_fn: Optional[str] = None
    check: Optional[str] = None
    comment: Optional[str] = None
    enum_values: List[str] = Field(default_factory=list)
    foreign: Optional[ForeignKeyRef] = None
    overrides: Overrides = Field(default_factory=dict)
    source: Optional[str] = None

    @property
    def not_null(self) -> bool:
        """Primary keys are always NOT NULL."""
        return self.primary or not self.nullable

    @property
    def is_enum(self) -> bool:
        return bool(self.enum_values)

    def override(self, dialect: Dialect, key: str) -> Optional[str]:
        return lookup_override(self.overrides, dialect, key)


# ============================================================================
# TABLES, INDEXES, ENUMS
# ============================================================================

class TableDef(BaseModel):
    """
    A declared table.

    Invariant: ``name`` is unique within one schema model, and so is each
    column name within the table.
    """
    name: str
    class_name: Optional[str] = None
    columns: List[ColumnDef] = Field(default_factory=list)
    primary_key: List[str] = Field(default_factory=list)
    comment: Optional[str] = None
    engine: Optional[str] = None
    overrides: Overrides = Field(default_factory=dict)
    source: Optional[str] = None

    def get_column(self, name: str) -> Optional[ColumnDef]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def has_column(self, name: str) -> bool:
        return self.get_column(name) is not None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    def primary_key_columns(self) -> List[str]:
        """
        Primary key columns: the table-level list when given, else every
        column flagged primary, in declaration order.
        """
        if self.primary_key:
            return list(self.primary_key)
        return [c.name for c in self.columns if c.primary]

    def has_composite_key(self) -> bool:
        return len(self.primary_key_columns()) > 1

    def foreign_key_columns(self) -> List[ColumnDef]:
        return [c for c in self.columns if c.foreign is not None]

    def referenced_tables(self) -> List[str]:
        """Distinct referenced tables in declaration order, self included."""
        seen: List[str] = []
        for column in self.foreign_key_columns():
            target = column.foreign.table
            if target not in seen:
                seen.append(target)
        return seen

    def override(self, dialect: Dialect, key: str) -> Optional[str]:
        return lookup_override(self.overrides, dialect, key)


class IndexDef(BaseModel):
    """A declared index on one table."""
    name: str
    table: str
    columns: List[str] = Field(default_factory=list)
    unique: bool = False
    method: Optional[str] = None        # e.g. GIN, BTREE, HASH
    condition: Optional[str] = None     # Partial index predicate
    ops: Optional[str] = None           # Operator class for all columns
    comment: Optional[str] = None
    overrides: Overrides = Field(default_factory=dict)
    source: Optional[str] = None

    def operator_class(self, dialect: Dialect) -> Optional[str]:
        return lookup_override(self.overrides, dialect, "ops") or self.ops


class EnumDef(BaseModel):
    """A named enumeration with ordered values."""
    name: str
    values: List[str] = Field(default_factory=list)


# ============================================================================
# EMBEDDING
# ============================================================================

class EmbedGroup(BaseModel):
    """
    A reusable group of fields declared on an embeddable class.

    Groups are immutable once built and shared by reference between host
    tables; each host copies what it needs.
    """
    name: str
    fields: List[ColumnDef] = Field(default_factory=list)
    source: Optional[str] = None

    model_config = {"frozen": True}


class EmbedDirective(BaseModel):
    """An ``#migrator:embedded`` annotation on a host attribute."""
    mode: EmbedMode = EmbedMode.INLINE
    group: str
    name: Optional[str] = None
    type: Optional[str] = None
    prefix: Optional[str] = None
    field: Optional[str] = None
    ref: Optional[str] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None
    nullable: bool = True
    index: bool = False
    comment: Optional[str] = None
    overrides: Overrides = Field(default_factory=dict)
    source: Optional[str] = None


# ============================================================================
# SCHEMA MODEL
# ============================================================================

class SchemaModel(BaseModel):
    """
    Everything parsed from one source tree.

    ``tables`` keeps declaration order until the resolver produces a
    dependency order; ``dependencies`` maps each table to the tables its
    foreign keys reference.
    """
    tables: List[TableDef] = Field(default_factory=list)
    enums: List[EnumDef] = Field(default_factory=list)
    indexes: List[IndexDef] = Field(default_factory=list)
    embed_groups: Dict[str, EmbedGroup] = Field(default_factory=dict)
    dependencies: Dict[str, List[str]] = Field(default_factory=dict)
    issues: List[ParseIssue] = Field(default_factory=list)

    def get_table(self, name: str) -> Optional[TableDef]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def get_enum(self, name: str) -> Optional[EnumDef]:
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def indexes_for(self, table_name: str) -> List[IndexDef]:
        """
        Declared indexes of one table followed by the implicit
        ``idx_<table>_<column>`` indexes of columns flagged ``index``.
        """
        explicit = [i for i in self.indexes if i.table == table_name]
        table = self.get_table(table_name)
        if table is None:
            return explicit
        covered = {tuple(i.columns) for i in explicit}
        names = {i.name for i in self.indexes}
        implicit = []
        for column in table.columns:
            name = f"idx_{table_name}_{column.name}"
            if column.index and (column.name,) not in covered and name not in names:
                implicit.append(IndexDef(name=name, table=table_name, columns=[column.name]))
        return explicit + implicit

    def enums_used_by(self, table: TableDef) -> List[EnumDef]:
        result = []
        for column in table.columns:
            if column.is_enum:
                enum = self.get_enum(column.type)
                if enum is not None and enum not in result:
                    result.append(enum)
        return result


__all__ = [
    "Overrides",
    "lookup_override",
    "ForeignKeyRef",
    "ColumnDef",
    "TableDef",
    "IndexDef",
    "EnumDef",
    "EmbedGroup",
    "EmbedDirective",
    "SchemaModel",
]
