# ============================================================================
# SCHEMA WRITER
# ============================================================================
# STATUS: Infrastructure - Apply a schema model to a live database
# PURPOSE: Create, drop declared, and drop everything
# CREATED: 19 OCT 2026
# EXPORTS: SchemaWriter, WriteResult
# ============================================================================
"""
Schema Writer

Applies a SchemaModel directly, without a migration file:

1. Enum types (skipped when they already exist)
2. Tables in dependency order with their comments and indexes
   (skipped when the table already exists)
3. Deferred foreign keys for tables created in this run

With dry_run=True nothing is written: existence checks still run and the
statements that would execute are logged and returned in WriteResult.planned.

Everything runs in one transaction. On MySQL DDL commits implicitly, so a
failure part way leaves the statements before it applied.

Usage:
    with connect(dsn) as conn:
        result = SchemaWriter(conn).write_schema(model)
"""

from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any, Dict, List

from core.errors import error_context
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import SchemaModel
from core.schema.dependencies import resolve_dependencies
from core.schema.dialects import get_generator
from core.schema.sql_splitter import executable_statements
from infrastructure.connection import DatabaseConnection

logger = get_logger("schema.writer", ComponentType.MIGRATOR)


@dataclass
class WriteResult:
    """What one write or drop run did."""
    created_tables: List[str] = field(default_factory=list)
    created_enums: List[str] = field(default_factory=list)
    skipped_tables: List[str] = field(default_factory=list)
    skipped_enums: List[str] = field(default_factory=list)
    dropped_tables: List[str] = field(default_factory=list)
    dropped_enums: List[str] = field(default_factory=list)
    statements: int = 0
    dry_run: bool = False
    planned: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "created_tables": self.created_tables,
            "created_enums": self.created_enums,
            "skipped_tables": self.skipped_tables,
            "skipped_enums": self.skipped_enums,
            "dropped_tables": self.dropped_tables,
            "dropped_enums": self.dropped_enums,
            "statements": self.statements,
            "dry_run": self.dry_run,
        }


class SchemaWriter:
    """Creates and drops schema objects through one open connection."""

    def __init__(self, conn: DatabaseConnection, dry_run: bool = False):
        self.conn = conn
        self.dry_run = dry_run
        self.generator = get_generator(conn.dialect)

    # =========================================================================
    # WRITE
    # =========================================================================

    def write_schema(self, model: SchemaModel) -> WriteResult:
        """
        Create every declared enum and table that does not exist yet.

        Returns:
            WriteResult listing created and skipped objects
        """
        result = WriteResult(dry_run=self.dry_run)
        resolution = resolve_dependencies(model)

        with log_context(dialect=self.conn.dialect.value, phase="write"):
            with error_context("write schema"), self._transaction("write schema"):
                for enum in model.enums:
                    rendered = self.generator.render_enum(enum)
                    if not rendered:
                        continue
                    if self.conn.enum_exists(enum.name):
                        logger.info(f"Enum {enum.name} already exists, skipping")
                        result.skipped_enums.append(enum.name)
                        continue
                    result.statements += self._execute(result, rendered)
                    result.created_enums.append(enum.name)

                for name in resolution.order:
                    if self.conn.table_exists(name):
                        logger.info(f"Table {name} already exists, skipping")
                        result.skipped_tables.append(name)
                        continue
                    table = model.get_table(name)
                    deferred = {d.column.name for d in resolution.deferred_for(name)}
                    statements = self.generator.table_statements(table, model, deferred)
                    with log_context(table=name):
                        result.statements += self._execute(result, "\n".join(statements))
                    result.created_tables.append(name)

                for item in resolution.deferred:
                    if item.table not in result.created_tables:
                        continue
                    sql = self.generator.render_add_foreign_key(model.get_table(item.table), item.column)
                    result.statements += self._execute(result, sql)

        log_checkpoint("schema_written", result.to_dict())
        return result

    # =========================================================================
    # DROP
    # =========================================================================

    def drop_schema(self, model: SchemaModel) -> WriteResult:
        """Drop declared tables in reverse dependency order, then declared enums."""
        result = WriteResult(dry_run=self.dry_run)
        order = resolve_dependencies(model).order

        with log_context(dialect=self.conn.dialect.value, phase="drop"):
            with error_context("drop schema"), self._transaction("drop schema"):
                self._with_foreign_key_checks_off(lambda: self._drop_tables(reversed(order), result))
                for enum in model.enums:
                    if self.conn.enum_exists(enum.name):
                        self._drop_enum(enum.name, result)
                        result.dropped_enums.append(enum.name)

        log_checkpoint("schema_dropped", result.to_dict())
        return result

    def drop_all(self) -> WriteResult:
        """Drop every table and enum type in the connected schema or database."""
        result = WriteResult(dry_run=self.dry_run)

        with log_context(dialect=self.conn.dialect.value, phase="drop_all"):
            with error_context("drop all"), self._transaction("drop all"):
                tables = self.conn.list_tables()
                self._with_foreign_key_checks_off(lambda: self._drop_tables(tables, result))
                for name in self.conn.list_enum_types():
                    self._drop_enum(name, result)
                    result.dropped_enums.append(name)

        log_checkpoint("database_cleared", result.to_dict())
        return result

    def _drop_tables(self, names, result: WriteResult) -> None:
        for name in names:
            if not self.conn.table_exists(name):
                continue
            if self.dry_run:
                self._plan(self.generator.render_drop_table(name), result)
            else:
                self.conn.drop_table(name)
                logger.info(f"Dropped table {name}")
            result.dropped_tables.append(name)
            result.statements += 1

    def _drop_enum(self, name: str, result: WriteResult) -> None:
        if self.dry_run:
            rendered = self.generator.render_drop_enum(name)
            if rendered:
                self._plan(rendered, result)
        else:
            self.conn.drop_enum(name)

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def _transaction(self, operation: str):
        if self.dry_run:
            return nullcontext()
        return self.conn.transaction(operation)

    def _execute(self, result: WriteResult, script: str) -> int:
        if not self.dry_run:
            return self.conn.execute_script(script)
        return self._plan(script, result)

    def _plan(self, script: str, result: WriteResult) -> int:
        statements = executable_statements(script)
        for statement in statements:
            logger.info(f"[DRY RUN] {statement}")
        result.planned.extend(statements)
        return len(statements)

    def _with_foreign_key_checks_off(self, action) -> None:
        # Postgres drops with CASCADE; MySQL needs checks disabled instead
        if self.dry_run or not self.conn.dialect.is_mysql_family():
            action()
            return
        self.conn.set_foreign_key_checks(False)
        try:
            action()
        finally:
            self.conn.set_foreign_key_checks(True)


__all__ = ["SchemaWriter", "WriteResult"]
