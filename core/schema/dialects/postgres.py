# ============================================================================
# POSTGRESQL GENERATOR
# ============================================================================
# STATUS: Core - PostgreSQL dialect
# PURPOSE: Native enums, SERIAL keys, GIN indexes with operator classes
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Generator

Differences from the base contract:
- Field-level enums are standalone ``CREATE TYPE ... AS ENUM`` types
- Auto-increment integer keys become SERIAL / BIGSERIAL / SMALLSERIAL
- Indexes support ``USING <method>``, operator classes and partial
  ``WHERE`` conditions
- Table and column comments are separate ``COMMENT ON`` statements
"""

from typing import List, Optional

from core.contracts import Dialect
from core.models import ColumnDef, ColumnDiff, EnumDef, IndexDef, SchemaModel, TableDef
from core.schema.ddl_utils import join_columns, quote_literal
from core.schema.dialects.base import SQLGenerator

_SERIAL_TYPES = {
    "INTEGER": "SERIAL",
    "INT": "SERIAL",
    "INT4": "SERIAL",
    "BIGINT": "BIGSERIAL",
    "INT8": "BIGSERIAL",
    "SMALLINT": "SMALLSERIAL",
    "INT2": "SMALLSERIAL",
}


class PostgresGenerator(SQLGenerator):
    """PostgreSQL SQL generator."""

    dialect = Dialect.POSTGRES

    def column_type(self, column: ColumnDef, model: Optional[SchemaModel] = None) -> str:
        override = column.override(self.dialect, "type")
        if override:
            return override
        if column.auto_increment:
            return _SERIAL_TYPES.get(column.type.upper(), column.type)
        return column.type

    def render_enum(self, enum: EnumDef) -> Optional[str]:
        return f"CREATE TYPE {enum.name} AS ENUM ({self.enum_value_list(enum.values)});"

    def render_index(self, index: IndexDef) -> Optional[str]:
        unique = "UNIQUE " if index.unique else ""
        method = f" USING {index.method}" if index.method else ""
        ops = index.operator_class(self.dialect)
        columns = [f"{c} {ops}" if ops else c for c in index.columns]
        sql = f"CREATE {unique}INDEX {index.name} ON {index.table}{method} ({join_columns(columns)})"
        if index.condition:
            sql += f" WHERE {index.condition}"
        return sql + ";"

    def comment_statements(self, table: TableDef) -> List[str]:
        statements = []
        if table.comment:
            statements.append(f"COMMENT ON TABLE {table.name} IS {quote_literal(table.comment)};")
        for column in table.columns:
            if column.comment:
                statements.append(
                    f"COMMENT ON COLUMN {table.name}.{column.name} IS {quote_literal(column.comment)};"
                )
        return statements

    def render_alter_column(
        self,
        table: TableDef,
        column: ColumnDef,
        change: ColumnDiff,
        model: Optional[SchemaModel] = None,
    ) -> List[str]:
        statements = []
        if change.type_changed:
            new_type = self.column_type(column, model)
            if new_type.upper() in _SERIAL_TYPES.values():
                # SERIAL is only valid in CREATE; keep the underlying integer
                new_type = {"SERIAL": "INTEGER", "BIGSERIAL": "BIGINT", "SMALLSERIAL": "SMALLINT"}[new_type.upper()]
            statements.append(
                f"ALTER TABLE {table.name} ALTER COLUMN {column.name} "
                f"TYPE {new_type} USING {column.name}::{new_type};"
            )
        if change.nullable_changed:
            statements.append(
                self.render_set_not_null(table.name, column.name)
                if column.not_null
                else self.render_drop_not_null(table.name, column.name)
            )
        return statements

    def render_drop_index(self, index_name: str, table_name: Optional[str] = None) -> str:
        return f"DROP INDEX IF EXISTS {index_name};"

    def render_drop_table(self, table_name: str) -> str:
        return f"DROP TABLE IF EXISTS {table_name} CASCADE;"

    def render_drop_enum(self, enum_name: str) -> Optional[str]:
        return f"DROP TYPE IF EXISTS {enum_name};"

    def render_add_enum_value(self, enum_name: str, value: str) -> Optional[str]:
        return f"ALTER TYPE {enum_name} ADD VALUE {quote_literal(value)};"


__all__ = ["PostgresGenerator"]
