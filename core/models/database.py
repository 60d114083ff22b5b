# ============================================================================
# INTROSPECTED DATABASE MODELS
# ============================================================================
# STATUS: Core model - Live schema snapshot
# PURPOSE: What the introspector reads back from PostgreSQL or MySQL
# CREATED: 19 OCT 2026
# EXPORTS: DBColumn, DBTable, DBEnum, DBIndex, DBConstraint, DatabaseSchema
# DEPENDENCIES: pydantic
# ============================================================================
"""
Introspected Database Models

A DatabaseSchema is a read-only snapshot of a live database. The engine
never mutates it after the read completes.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class DBColumn(BaseModel):
    """A column as reported by information_schema."""
    name: str
    data_type: str
    udt_name: Optional[str] = None          # Postgres underlying type name
    column_type: Optional[str] = None       # MySQL full type, e.g. enum('a','b')
    is_nullable: bool = True
    default: Optional[str] = None
    max_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    ordinal_position: int = 0
    is_primary: bool = False
    is_unique: bool = False
    is_auto_increment: bool = False
    comment: Optional[str] = None


class DBTable(BaseModel):
    """A base table and its columns in ordinal order."""
    name: str
    type: str = "BASE TABLE"
    comment: Optional[str] = None
    columns: List[DBColumn] = Field(default_factory=list)

    def get_column(self, name: str) -> Optional[DBColumn]:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class DBEnum(BaseModel):
    """A Postgres enum type, or a MySQL inline enum keyed by table.column."""
    name: str
    values: List[str] = Field(default_factory=list)


class DBIndex(BaseModel):
    """An index with its columns in key order."""
    name: str
    table: str
    columns: List[str] = Field(default_factory=list)
    unique: bool = False
    primary: bool = False
    definition: Optional[str] = None


class DBConstraint(BaseModel):
    """A PRIMARY KEY, UNIQUE, FOREIGN KEY or CHECK constraint."""
    name: str
    table: str
    type: str                               # PRIMARY KEY, UNIQUE, FOREIGN KEY, CHECK
    columns: List[str] = Field(default_factory=list)
    foreign_table: Optional[str] = None
    foreign_column: Optional[str] = None
    delete_rule: Optional[str] = None
    update_rule: Optional[str] = None
    check_clause: Optional[str] = None


class DatabaseSchema(BaseModel):
    """Complete snapshot of one database schema."""
    dialect: str
    tables: List[DBTable] = Field(default_factory=list)
    enums: List[DBEnum] = Field(default_factory=list)
    indexes: List[DBIndex] = Field(default_factory=list)
    constraints: List[DBConstraint] = Field(default_factory=list)

    def get_table(self, name: str) -> Optional[DBTable]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def get_enum(self, name: str) -> Optional[DBEnum]:
        for enum in self.enums:
            if enum.name == name:
                return enum
        return None

    @property
    def table_names(self) -> List[str]:
        return [t.name for t in self.tables]

    def constraint_names(self) -> List[str]:
        return [c.name for c in self.constraints]

    def indexes_for(self, table_name: str) -> List[DBIndex]:
        return [i for i in self.indexes if i.table == table_name]

    def constraints_for(self, table_name: str, type: Optional[str] = None) -> List[DBConstraint]:
        return [
            c for c in self.constraints
            if c.table == table_name and (type is None or c.type == type)
        ]


__all__ = [
    "DBColumn",
    "DBTable",
    "DBEnum",
    "DBIndex",
    "DBConstraint",
    "DatabaseSchema",
]
