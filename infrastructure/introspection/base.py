# ============================================================================
# SCHEMA READER BASE
# ============================================================================
# STATUS: Infrastructure - Live schema introspection contract
# PURPOSE: Phase sequencing and error wrapping shared by every reader
# CREATED: 19 OCT 2026
# ============================================================================
"""
Schema Reader Base

Readers fill a DatabaseSchema in fixed phases:

    tables (with columns per table) -> enums -> indexes -> constraints

followed by a post-pass that flags primary-key and unique columns from the
constraint list. A failing query aborts the whole read with an
IntrospectionError naming the phase; no partial schema is returned.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from core.config import get_defaults
from core.errors import IntrospectionError, error_context
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import DatabaseSchema, DBColumn, DBConstraint, DBEnum, DBIndex, DBTable
from infrastructure.connection import DatabaseConnection

logger = get_logger("introspection", ComponentType.INTROSPECTOR)


def truthy(value) -> bool:
    """information_schema reports flags as YES/NO strings."""
    if isinstance(value, str):
        return value.strip().upper() in ("YES", "TRUE", "1")
    return bool(value)


class SchemaReader(ABC):
    """
    Reads one live schema through an open DatabaseConnection.

    Usage:
        with connect(dsn) as conn:
            schema = get_reader(conn).read_schema()
    """

    def __init__(self, conn: DatabaseConnection):
        self.conn = conn
        self.tracking_table = get_defaults().migration.tracking_table

    # =========================================================================
    # PHASES (implemented per dialect)
    # =========================================================================

    @abstractmethod
    def read_tables(self) -> List[DBTable]:
        """Tables without columns."""

    @abstractmethod
    def read_columns(self, table: str) -> List[DBColumn]: ...

    @abstractmethod
    def read_enums(self) -> List[DBEnum]: ...

    @abstractmethod
    def read_indexes(self) -> List[DBIndex]: ...

    @abstractmethod
    def read_constraints(self) -> List[DBConstraint]: ...

    # =========================================================================
    # ORCHESTRATION
    # =========================================================================

    def read_schema(self) -> DatabaseSchema:
        """
        Read the complete schema.

        Raises:
            IntrospectionError: If any phase fails
        """
        dialect = self.conn.dialect.value
        with log_context(dialect=dialect, phase="introspect"):
            with error_context("read tables", IntrospectionError, phase="tables"):
                tables = self.read_tables()

            for table in tables:
                with error_context(
                    "read columns", IntrospectionError, subject=f"table {table.name}",
                    phase="columns", table=table.name,
                ):
                    table.columns = self.read_columns(table.name)

            with error_context("read enums", IntrospectionError, phase="enums"):
                enums = self.read_enums()
            with error_context("read indexes", IntrospectionError, phase="indexes"):
                indexes = self.read_indexes()
            with error_context("read constraints", IntrospectionError, phase="constraints"):
                constraints = self.read_constraints()

            apply_constraint_flags(tables, constraints)

            schema = DatabaseSchema(
                dialect=dialect,
                tables=tables,
                enums=enums,
                indexes=indexes,
                constraints=constraints,
            )
            log_checkpoint("schema_read", {
                "tables": len(tables),
                "enums": len(enums),
                "indexes": len(indexes),
                "constraints": len(constraints),
            })
        return schema


def group_constraint_rows(rows: List[Dict]) -> List[DBConstraint]:
    """
    Merge per-column constraint rows into one DBConstraint per
    (table, name), keeping first-seen column order.
    """
    grouped: Dict[tuple, DBConstraint] = {}
    for row in rows:
        key = (row["table_name"], row["constraint_name"])
        constraint = grouped.get(key)
        if constraint is None:
            constraint = DBConstraint(
                name=row["constraint_name"],
                table=row["table_name"],
                type=row["constraint_type"],
                foreign_table=row.get("foreign_table") or None,
                foreign_column=row.get("foreign_column") or None,
                delete_rule=row.get("delete_rule") or None,
                update_rule=row.get("update_rule") or None,
                check_clause=row.get("check_clause") or None,
            )
            grouped[key] = constraint
        column = row.get("column_name")
        if column and column not in constraint.columns:
            constraint.columns.append(column)
    return list(grouped.values())


def apply_constraint_flags(tables: List[DBTable], constraints: List[DBConstraint]) -> None:
    """Flag primary-key columns and single-column UNIQUE columns."""
    primary: Dict[str, set] = {}
    unique: Dict[str, set] = {}
    for constraint in constraints:
        if constraint.type == "PRIMARY KEY":
            primary.setdefault(constraint.table, set()).update(constraint.columns)
        elif constraint.type == "UNIQUE" and len(constraint.columns) == 1:
            unique.setdefault(constraint.table, set()).update(constraint.columns)

    for table in tables:
        for column in table.columns:
            if column.name in primary.get(table.name, set()):
                column.is_primary = True
            elif column.name in unique.get(table.name, set()):
                column.is_unique = True


def optional_int(value) -> Optional[int]:
    return int(value) if value is not None else None


__all__ = [
    "SchemaReader",
    "group_constraint_rows",
    "apply_constraint_flags",
    "optional_int",
    "truthy",
]
