# ============================================================================
# MYSQL SCHEMA READER
# ============================================================================
# STATUS: Infrastructure - MySQL / MariaDB introspection
# PURPOSE: Read tables, columns, inline enums, indexes, constraints
# CREATED: 19 OCT 2026
# ============================================================================
"""
MySQL Schema Reader

Reads information_schema for the connected database. MySQL has no
standalone enum types: each ``enum(...)`` column is reported as a DBEnum
named ``table.column``.
"""

import re
from typing import Dict, List

from core.models import DBColumn, DBConstraint, DBEnum, DBIndex, DBTable
from infrastructure.introspection.base import (
    SchemaReader,
    group_constraint_rows,
    optional_int,
    truthy,
)

TABLES_QUERY = """
    SELECT TABLE_NAME AS table_name, TABLE_TYPE AS table_type,
           TABLE_COMMENT AS table_comment
    FROM information_schema.TABLES
    WHERE TABLE_SCHEMA = %s
      AND TABLE_TYPE = 'BASE TABLE'
      AND TABLE_NAME <> %s
    ORDER BY TABLE_NAME
"""

COLUMNS_QUERY = """
    SELECT COLUMN_NAME AS column_name, DATA_TYPE AS data_type,
           COLUMN_TYPE AS column_type, IS_NULLABLE AS is_nullable,
           COLUMN_DEFAULT AS column_default,
           CHARACTER_MAXIMUM_LENGTH AS character_maximum_length,
           NUMERIC_PRECISION AS numeric_precision, NUMERIC_SCALE AS numeric_scale,
           ORDINAL_POSITION AS ordinal_position, EXTRA AS extra,
           COLUMN_COMMENT AS column_comment
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME = %s
    ORDER BY ORDINAL_POSITION
"""

ENUM_COLUMNS_QUERY = """
    SELECT TABLE_NAME AS table_name, COLUMN_NAME AS column_name,
           COLUMN_TYPE AS column_type
    FROM information_schema.COLUMNS
    WHERE TABLE_SCHEMA = %s AND DATA_TYPE = 'enum' AND TABLE_NAME <> %s
    ORDER BY TABLE_NAME, ORDINAL_POSITION
"""

INDEXES_QUERY = """
    SELECT TABLE_NAME AS table_name, INDEX_NAME AS index_name,
           COLUMN_NAME AS column_name, NON_UNIQUE AS non_unique,
           INDEX_TYPE AS index_type, SEQ_IN_INDEX AS seq_in_index
    FROM information_schema.STATISTICS
    WHERE TABLE_SCHEMA = %s AND TABLE_NAME <> %s
    ORDER BY TABLE_NAME, INDEX_NAME, SEQ_IN_INDEX
"""

CONSTRAINTS_QUERY = """
    SELECT tc.TABLE_NAME AS table_name, tc.CONSTRAINT_NAME AS constraint_name,
           tc.CONSTRAINT_TYPE AS constraint_type, kcu.COLUMN_NAME AS column_name,
           kcu.REFERENCED_TABLE_NAME AS foreign_table,
           kcu.REFERENCED_COLUMN_NAME AS foreign_column,
           rc.DELETE_RULE AS delete_rule, rc.UPDATE_RULE AS update_rule
    FROM information_schema.TABLE_CONSTRAINTS tc
    LEFT JOIN information_schema.KEY_COLUMN_USAGE kcu
        ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
        AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
        AND tc.TABLE_NAME = kcu.TABLE_NAME
    LEFT JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
        ON tc.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
        AND tc.TABLE_SCHEMA = rc.CONSTRAINT_SCHEMA
        AND tc.TABLE_NAME = rc.TABLE_NAME
    WHERE tc.TABLE_SCHEMA = %s AND tc.TABLE_NAME <> %s
    ORDER BY tc.TABLE_NAME, tc.CONSTRAINT_TYPE, tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
"""

_ENUM_VALUE_RE = re.compile(r"'((?:[^']|'')*)'")


def parse_enum_values(column_type: str) -> List[str]:
    """Values of ``enum('a','b''c')`` in declaration order."""
    if not column_type.lower().startswith("enum("):
        return []
    return [value.replace("''", "'") for value in _ENUM_VALUE_RE.findall(column_type)]


class MySQLSchemaReader(SchemaReader):
    """MySQL / MariaDB implementation of the reader phases."""

    @property
    def database(self) -> str:
        return self.conn.database_name

    def read_tables(self) -> List[DBTable]:
        rows = self.conn.fetch_all(TABLES_QUERY, (self.database, self.tracking_table))
        return [
            DBTable(
                name=row["table_name"],
                type=row["table_type"],
                comment=row.get("table_comment") or None,
            )
            for row in rows
        ]

    def read_columns(self, table: str) -> List[DBColumn]:
        columns = []
        for row in self.conn.fetch_all(COLUMNS_QUERY, (self.database, table)):
            extra = (row.get("extra") or "").lower()
            columns.append(DBColumn(
                name=row["column_name"],
                data_type=row["data_type"],
                column_type=row.get("column_type"),
                is_nullable=truthy(row["is_nullable"]),
                default=row.get("column_default"),
                max_length=optional_int(row.get("character_maximum_length")),
                numeric_precision=optional_int(row.get("numeric_precision")),
                numeric_scale=optional_int(row.get("numeric_scale")),
                ordinal_position=int(row["ordinal_position"]),
                is_auto_increment="auto_increment" in extra,
                comment=row.get("column_comment") or None,
            ))
        return columns

    def read_enums(self) -> List[DBEnum]:
        rows = self.conn.fetch_all(ENUM_COLUMNS_QUERY, (self.database, self.tracking_table))
        return [
            DBEnum(
                name=f"{row['table_name']}.{row['column_name']}",
                values=parse_enum_values(row["column_type"]),
            )
            for row in rows
        ]

    def read_indexes(self) -> List[DBIndex]:
        grouped: Dict[tuple, DBIndex] = {}
        for row in self.conn.fetch_all(INDEXES_QUERY, (self.database, self.tracking_table)):
            key = (row["table_name"], row["index_name"])
            index = grouped.get(key)
            if index is None:
                index = DBIndex(
                    name=row["index_name"],
                    table=row["table_name"],
                    unique=int(row["non_unique"]) == 0,
                    primary=row["index_name"] == "PRIMARY",
                    definition=f"USING {row['index_type']}" if row.get("index_type") else None,
                )
                grouped[key] = index
            if row.get("column_name"):
                index.columns.append(row["column_name"])
        return list(grouped.values())

    def read_constraints(self) -> List[DBConstraint]:
        rows = self.conn.fetch_all(CONSTRAINTS_QUERY, (self.database, self.tracking_table))
        return group_constraint_rows(rows)


__all__ = ["MySQLSchemaReader", "parse_enum_values"]
