# ============================================================================
# POSTGRESQL SCHEMA READER
# ============================================================================
# STATUS: Infrastructure - PostgreSQL introspection
# PURPOSE: Read tables, columns, enums, indexes, constraints from catalogs
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Schema Reader

Reads information_schema and pg_catalog for one schema (``public`` unless
configured otherwise). Index columns are recovered from
``pg_get_indexdef`` text.
"""

from typing import List, Optional, Tuple

from core.models import DBColumn, DBConstraint, DBEnum, DBIndex, DBTable
from infrastructure.introspection.base import (
    SchemaReader,
    group_constraint_rows,
    optional_int,
    truthy,
)

TABLES_QUERY = """
    SELECT t.table_name, t.table_type,
           obj_description(c.oid, 'pg_class') AS table_comment
    FROM information_schema.tables t
    JOIN pg_namespace n ON n.nspname = t.table_schema
    LEFT JOIN pg_class c ON c.relname = t.table_name AND c.relnamespace = n.oid
    WHERE t.table_schema = %s
      AND t.table_type = 'BASE TABLE'
      AND t.table_name <> %s
    ORDER BY t.table_name
"""

COLUMNS_QUERY = """
    SELECT c.column_name, c.data_type, c.udt_name, c.is_nullable, c.column_default,
           c.character_maximum_length, c.numeric_precision, c.numeric_scale,
           c.ordinal_position, c.is_identity,
           col_description(pc.oid, a.attnum) AS column_comment
    FROM information_schema.columns c
    JOIN pg_namespace n ON n.nspname = c.table_schema
    JOIN pg_class pc ON pc.relname = c.table_name AND pc.relnamespace = n.oid
    LEFT JOIN pg_attribute a ON a.attrelid = pc.oid AND a.attname = c.column_name
    WHERE c.table_schema = %s AND c.table_name = %s
    ORDER BY c.ordinal_position
"""

ENUMS_QUERY = """
    SELECT t.typname AS enum_name, e.enumlabel AS enum_value
    FROM pg_type t
    JOIN pg_enum e ON t.oid = e.enumtypid
    JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
    WHERE n.nspname = %s
    ORDER BY t.typname, e.enumsortorder
"""

INDEXES_QUERY = """
    SELECT t.relname AS table_name, i.relname AS index_name,
           pg_get_indexdef(i.oid) AS index_definition,
           ix.indisprimary AS is_primary, ix.indisunique AS is_unique
    FROM pg_index ix
    JOIN pg_class i ON i.oid = ix.indexrelid
    JOIN pg_class t ON t.oid = ix.indrelid
    JOIN pg_namespace n ON n.oid = t.relnamespace
    WHERE n.nspname = %s AND t.relname <> %s
    ORDER BY t.relname, i.relname
"""

CONSTRAINTS_QUERY = """
    SELECT tc.table_name, tc.constraint_name, tc.constraint_type,
           kcu.column_name,
           ccu.table_name AS foreign_table, ccu.column_name AS foreign_column,
           rc.delete_rule, rc.update_rule, cc.check_clause
    FROM information_schema.table_constraints tc
    LEFT JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
        AND tc.table_name = kcu.table_name
    LEFT JOIN information_schema.referential_constraints rc
        ON tc.constraint_name = rc.constraint_name
        AND tc.table_schema = rc.constraint_schema
    LEFT JOIN information_schema.constraint_column_usage ccu
        ON rc.constraint_name = ccu.constraint_name
        AND rc.constraint_schema = ccu.constraint_schema
    LEFT JOIN information_schema.check_constraints cc
        ON tc.constraint_name = cc.constraint_name
        AND tc.table_schema = cc.constraint_schema
    WHERE tc.table_schema = %s AND tc.table_name <> %s
    ORDER BY tc.table_name, tc.constraint_type, tc.constraint_name, kcu.ordinal_position
"""


def parse_index_definition(definition: str) -> Tuple[List[str], Optional[str]]:
    """
    Key columns and method from ``pg_get_indexdef`` text.

    ``CREATE INDEX idx ON public.t USING gin (name gin_trgm_ops) WHERE (x)``
    gives ``(["name"], "gin")``. Operator classes, sort order and quoting
    are dropped; expressions are kept whole.
    """
    upper = definition.upper()
    method = None
    search_from = 0
    using = upper.find(" USING ")
    if using != -1:
        rest = definition[using + 7:].split(None, 1)
        method = rest[0].lower() if rest else None
        search_from = using + 7

    start = definition.find("(", search_from)
    if start == -1:
        return [], method

    depth = 0
    end = len(definition)
    for position in range(start, len(definition)):
        ch = definition[position]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                end = position
                break

    columns: List[str] = []
    depth = 0
    current = ""
    for ch in definition[start + 1:end]:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        if ch == "," and depth == 0:
            columns.append(current)
            current = ""
        else:
            current += ch
    if current.strip():
        columns.append(current)

    result = []
    for column in columns:
        column = column.strip()
        if not column.startswith("("):
            column = column.split()[0].strip('"')
        result.append(column)
    return result, method


class PostgresSchemaReader(SchemaReader):
    """PostgreSQL implementation of the reader phases."""

    @property
    def schema_name(self) -> str:
        return self.conn.schema_name

    def read_tables(self) -> List[DBTable]:
        rows = self.conn.fetch_all(TABLES_QUERY, (self.schema_name, self.tracking_table))
        return [
            DBTable(
                name=row["table_name"],
                type=row["table_type"],
                comment=row.get("table_comment") or None,
            )
            for row in rows
        ]

    def read_columns(self, table: str) -> List[DBColumn]:
        rows = self.conn.fetch_all(COLUMNS_QUERY, (self.schema_name, table))
        columns = []
        for row in rows:
            default = row.get("column_default")
            auto_increment = truthy(row.get("is_identity")) or (
                default is not None and "nextval(" in default and "_seq" in default
            )
            columns.append(DBColumn(
                name=row["column_name"],
                data_type=row["data_type"],
                udt_name=row.get("udt_name"),
                is_nullable=truthy(row["is_nullable"]),
                default=default,
                max_length=optional_int(row.get("character_maximum_length")),
                numeric_precision=optional_int(row.get("numeric_precision")),
                numeric_scale=optional_int(row.get("numeric_scale")),
                ordinal_position=int(row["ordinal_position"]),
                is_auto_increment=auto_increment,
                comment=row.get("column_comment") or None,
            ))
        return columns

    def read_enums(self) -> List[DBEnum]:
        enums: List[DBEnum] = []
        for row in self.conn.fetch_all(ENUMS_QUERY, (self.schema_name,)):
            if not enums or enums[-1].name != row["enum_name"]:
                enums.append(DBEnum(name=row["enum_name"]))
            enums[-1].values.append(row["enum_value"])
        return enums

    def read_indexes(self) -> List[DBIndex]:
        indexes = []
        for row in self.conn.fetch_all(INDEXES_QUERY, (self.schema_name, self.tracking_table)):
            definition = row["index_definition"]
            columns, _ = parse_index_definition(definition)
            indexes.append(DBIndex(
                name=row["index_name"],
                table=row["table_name"],
                columns=columns,
                unique=bool(row["is_unique"]),
                primary=bool(row["is_primary"]),
                definition=definition,
            ))
        return indexes

    def read_constraints(self) -> List[DBConstraint]:
        rows = self.conn.fetch_all(CONSTRAINTS_QUERY, (self.schema_name, self.tracking_table))
        # NOT NULL shows up as unnamed CHECK constraints on older servers
        rows = [
            row for row in rows
            if not (row["constraint_type"] == "CHECK" and row["constraint_name"].endswith("_not_null"))
        ]
        return group_constraint_rows(rows)


__all__ = ["PostgresSchemaReader", "parse_index_definition"]
