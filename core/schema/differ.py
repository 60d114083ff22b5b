# ============================================================================
# SCHEMA DIFFER
# ============================================================================
# STATUS: Core - Declared vs. live schema comparison
# PURPOSE: Structural diff plus the SQL that reconciles it
# CREATED: 19 OCT 2026
# EXPORTS: compare_schemas, generate_migration_sql, generate_down_sql,
#          model_from_database, write_migration_files, MigrationFiles
# ============================================================================
"""
Schema Differ

Compares a declared SchemaModel against an introspected DatabaseSchema.

Matching rules:
    - Tables, columns, enums and indexes match by name; a rename shows up
      as one removal plus one addition
    - Column types compare through the dialect's rendered type and
      ``types_equivalent``; nullability compares NOT NULL-ness, with primary
      keys always NOT NULL
    - Defaults are not compared
    - Enums compare only on dialects with native enum types
    - Primary-key indexes and indexes backing a constraint are ignored

Migration SQL order:
    1. New enum types, then new enum values
    2. CREATE TABLE for missing tables, in dependency order
    3. ADD COLUMN (with its foreign key)
    4. Column type / nullability changes
    5. CREATE INDEX, DROP INDEX
    6. Destructive drops, emitted as ``-- WARNING`` comments unless allowed
"""

import os
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from core.config import get_defaults
from core.contracts import Dialect
from core.errors import GenerationError
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.models import (
    ColumnDef,
    ColumnDiff,
    DatabaseSchema,
    DBColumn,
    EnumDef,
    EnumDiff,
    ForeignKeyRef,
    IndexDef,
    SchemaDiff,
    SchemaModel,
    TableDef,
    TableDiff,
)
from core.schema.ddl_utils import types_equivalent
from core.schema.dependencies import resolve_dependencies
from core.schema.dialects import SQLGenerator, get_generator

logger = get_logger("schema.differ", ComponentType.DIFFER)

_NUMERIC_TYPES = {"numeric", "decimal"}
_USING_RE = re.compile(r"\bUSING\s+(\w+)", re.IGNORECASE)


# ============================================================================
# LIVE COLUMN TYPES
# ============================================================================

def db_column_type(column: DBColumn, dialect: Dialect) -> str:
    """
    Comparable type string for an introspected column.

    MySQL reports the full type (``varchar(255)``, ``enum('a','b')``).
    Postgres splits it: enums and arrays are named by ``udt_name``, lengths
    and precisions come from separate columns.
    """
    if dialect.is_mysql_family() and column.column_type:
        return column.column_type

    data_type = (column.data_type or "").lower()
    if data_type in ("user-defined", "array") and column.udt_name:
        return column.udt_name
    if column.max_length:
        return f"{data_type}({column.max_length})"
    if data_type in _NUMERIC_TYPES and column.numeric_precision:
        return f"{data_type}({column.numeric_precision},{column.numeric_scale or 0})"
    return data_type


# ============================================================================
# COMPARISON
# ============================================================================

def _compare_columns(
    table: TableDef,
    live_table,
    generator: SQLGenerator,
    model: SchemaModel,
    dialect: Dialect,
) -> TableDiff:
    table_diff = TableDiff(name=table.name)
    declared = {c.name: c for c in table.columns}
    live = {c.name: c for c in live_table.columns}

    table_diff.columns_added = sorted(name for name in declared if name not in live)
    table_diff.columns_removed = sorted(name for name in live if name not in declared)

    for column in table.columns:
        live_column = live.get(column.name)
        if live_column is None:
            continue

        change = ColumnDiff(name=column.name)
        declared_type = generator.column_type(column, model)
        live_type = db_column_type(live_column, dialect)
        if not types_equivalent(declared_type, live_type, dialect):
            change.old_type = live_type
            change.new_type = declared_type

        declared_nullable = not (column.not_null or column.name in table.primary_key_columns())
        if declared_nullable != live_column.is_nullable:
            change.old_nullable = live_column.is_nullable
            change.new_nullable = declared_nullable

        if change.type_changed or change.nullable_changed:
            table_diff.columns_modified.append(change)

    return table_diff


def _compare_enums(model: SchemaModel, db_schema: DatabaseSchema, diff: SchemaDiff) -> None:
    declared = {e.name: e for e in model.enums}
    live = {e.name: e for e in db_schema.enums}

    diff.enums_added = sorted(name for name in declared if name not in live)
    diff.enums_removed = sorted(name for name in live if name not in declared)

    for name in sorted(declared):
        if name not in live:
            continue
        live_values = live[name].values
        # Declaration order is kept for additions; ADD VALUE appends in order
        added = [v for v in declared[name].values if v not in live_values]
        removed = sorted(v for v in live_values if v not in declared[name].values)
        if added or removed:
            diff.enums_modified.append(EnumDiff(name=name, values_added=added, values_removed=removed))


def _compare_indexes(model: SchemaModel, db_schema: DatabaseSchema, diff: SchemaDiff) -> None:
    constraint_names = set(db_schema.constraint_names())
    live_tables = set(db_schema.table_names)

    declared: Dict[str, str] = {}
    for table in model.tables:
        for index in model.indexes_for(table.name):
            declared[index.name] = table.name

    live: Dict[str, str] = {}
    for index in db_schema.indexes:
        if index.primary or index.name in constraint_names:
            continue
        live[index.name] = index.table

    # Indexes of new tables are created along with the table
    diff.indexes_added = sorted(
        name for name, table in declared.items()
        if name not in live and table in live_tables
    )
    diff.indexes_removed = sorted(
        name for name, table in live.items()
        if name not in declared and model.get_table(table) is not None
    )
    for name in diff.indexes_added:
        diff.index_tables[name] = declared[name]
    for name in diff.indexes_removed:
        diff.index_tables[name] = live[name]


def compare_schemas(
    model: SchemaModel,
    db_schema: DatabaseSchema,
    dialect: Optional[Dialect] = None,
) -> SchemaDiff:
    """
    Compare a declared model with a live schema.

    Args:
        model: Declared schema
        db_schema: Introspected schema (never modified)
        dialect: Dialect used to render declared types; defaults to the
            dialect the live schema was read from
    """
    dialect = Dialect.parse(dialect or db_schema.dialect)
    generator = get_generator(dialect)
    tracking_table = get_defaults().migration.tracking_table
    diff = SchemaDiff()

    with log_context(dialect=dialect.value, phase="compare"):
        live_tables = {t.name: t for t in db_schema.tables if t.name != tracking_table}
        declared_tables = {t.name: t for t in model.tables}

        diff.tables_added = sorted(name for name in declared_tables if name not in live_tables)
        diff.tables_removed = sorted(name for name in live_tables if name not in declared_tables)

        for table in model.tables:
            live_table = live_tables.get(table.name)
            if live_table is None:
                continue
            with log_context(table=table.name):
                table_diff = _compare_columns(table, live_table, generator, model, dialect)
            if table_diff.has_changes():
                diff.tables_modified.append(table_diff)

        if dialect.supports_native_enums():
            _compare_enums(model, db_schema, diff)

        _compare_indexes(model, db_schema, diff)

        log_checkpoint("schema_compared", {
            "changes": diff.change_count(),
            "tables_added": len(diff.tables_added),
            "tables_removed": len(diff.tables_removed),
            "tables_modified": len(diff.tables_modified),
        })

    return diff


# ============================================================================
# MIGRATION SQL
# ============================================================================

def _warning(message: str, statement: Optional[str]) -> str:
    lines = [f"-- WARNING: {message}"]
    if statement:
        lines.extend(f"-- {line}" for line in statement.splitlines())
    return "\n".join(lines)


def _find_index(model: SchemaModel, name: str, table_name: Optional[str]) -> Optional[IndexDef]:
    tables = [table_name] if table_name else model.table_names
    for table in tables:
        for index in model.indexes_for(table):
            if index.name == name:
                return index
    return None


def generate_migration_sql(
    diff: SchemaDiff,
    model: SchemaModel,
    dialect,
    allow_destructive: Optional[bool] = None,
) -> List[str]:
    """
    Ordered statements that bring the live schema in line with ``model``.

    Destructive statements (DROP TABLE, DROP COLUMN, DROP TYPE) are returned
    as commented warnings unless ``allow_destructive`` is set.

    Raises:
        GenerationError: If the diff names a table or column ``model`` lacks
    """
    dialect = Dialect.parse(dialect)
    generator = get_generator(dialect)
    if allow_destructive is None:
        allow_destructive = get_defaults().migration.allow_destructive
    statements: List[str] = []

    with log_context(dialect=dialect.value, phase="migration_sql"):
        # 1. Enums
        for name in diff.enums_added:
            enum = model.get_enum(name)
            if enum is None:
                raise GenerationError(f"Enum {name} is not declared", operation="generate migration")
            rendered = generator.render_enum(enum)
            if rendered:
                statements.append(rendered)

        for enum_diff in diff.enums_modified:
            for value in enum_diff.values_added:
                rendered = generator.render_add_enum_value(enum_diff.name, value)
                if rendered:
                    statements.append(rendered)
            if enum_diff.values_removed:
                statements.append(_warning(
                    f"Cannot remove enum values {enum_diff.values_removed} from "
                    f"{enum_diff.name} without recreating the enum",
                    None,
                ))

        # 2. New tables
        if diff.tables_added:
            for name in diff.tables_added:
                if model.get_table(name) is None:
                    raise GenerationError(f"Table {name} is not declared", operation="generate migration")
            resolution = resolve_dependencies(model)
            groups = generator.generate_statements(model, resolution, tables=diff.tables_added)
            # Enum types were handled above from the diff
            for group in groups:
                statements.extend(s for s in group if not s.startswith("CREATE TYPE"))

        # 3-4. Column changes
        for table_diff in diff.tables_modified:
            table = model.get_table(table_diff.name)
            if table is None:
                raise GenerationError(
                    f"Table {table_diff.name} is not declared", operation="generate migration"
                )
            for name in table_diff.columns_added:
                column = _require_column(table, name)
                statements.append(generator.render_add_column(table, column, model))
                if column.foreign is not None:
                    statements.append(generator.render_add_foreign_key(table, column))

        for table_diff in diff.tables_modified:
            table = model.get_table(table_diff.name)
            for change in table_diff.columns_modified:
                column = _require_column(table, change.name)
                statements.extend(generator.render_alter_column(table, column, change, model))

        # 5. Indexes
        for name in diff.indexes_added:
            index = _find_index(model, name, diff.index_tables.get(name))
            if index is None:
                raise GenerationError(f"Index {name} is not declared", operation="generate migration")
            rendered = generator.render_index(index)
            if rendered:
                statements.append(rendered)

        for name in diff.indexes_removed:
            statements.append(generator.render_drop_index(name, diff.index_tables.get(name)))

        # 6. Destructive
        for table_diff in diff.tables_modified:
            for name in table_diff.columns_removed:
                stmt = generator.render_drop_column(table_diff.name, name)
                statements.append(stmt if allow_destructive else _warning(
                    f"Dropping column {table_diff.name}.{name} - This will delete data!", stmt
                ))

        for name in diff.tables_removed:
            stmt = generator.render_drop_table(name)
            statements.append(stmt if allow_destructive else _warning(
                f"Dropping table {name} - This will delete all data!", stmt
            ))

        for name in diff.enums_removed:
            stmt = generator.render_drop_enum(name)
            if stmt is None:
                continue
            statements.append(stmt if allow_destructive else _warning(
                f"Dropping enum {name} - Make sure no tables use this enum!", stmt
            ))

        logger.debug(f"Generated {len(statements)} migration statements")

    return statements


def _require_column(table: TableDef, name: str) -> ColumnDef:
    column = table.get_column(name)
    if column is None:
        raise GenerationError(
            f"Column {table.name}.{name} is not declared", operation="generate migration"
        )
    return column


# ============================================================================
# DOWN MIGRATIONS
# ============================================================================

def model_from_database(db_schema: DatabaseSchema) -> SchemaModel:
    """
    Schema model describing the live database, used to render statements
    that restore it.
    """
    dialect = Dialect.parse(db_schema.dialect)
    model = SchemaModel(enums=[EnumDef(name=e.name, values=list(e.values)) for e in db_schema.enums])
    constraint_names = set(db_schema.constraint_names())

    for live_table in db_schema.tables:
        foreign_keys = {
            c.columns[0]: c
            for c in db_schema.constraints_for(live_table.name, "FOREIGN KEY")
            if c.columns and c.foreign_table
        }
        primary = db_schema.constraints_for(live_table.name, "PRIMARY KEY")
        primary_columns = primary[0].columns if primary else [
            c.name for c in live_table.columns if c.is_primary
        ]

        table = TableDef(name=live_table.name, comment=live_table.comment)
        for live_column in sorted(live_table.columns, key=lambda c: c.ordinal_position):
            column = ColumnDef(
                name=live_column.name,
                type=db_column_type(live_column, dialect),
                nullable=live_column.is_nullable,
                primary=live_column.name in primary_columns and len(primary_columns) == 1,
                unique=live_column.is_unique,
                auto_increment=live_column.is_auto_increment,
                comment=live_column.comment,
            )
            if live_column.default is not None and not live_column.is_auto_increment:
                if dialect.is_mysql_family() and not _is_expression(live_column.default):
                    column.default = live_column.default
                else:
                    column.default_fn = live_column.default
            enum = model.get_enum(column.type)
            if enum is not None:
                column.enum_values = list(enum.values)
            fk = foreign_keys.get(live_column.name)
            if fk is not None:
                column.foreign = ForeignKeyRef(
                    table=fk.foreign_table,
                    column=fk.foreign_column or "id",
                    name=fk.name,
                    on_delete=_rule(fk.delete_rule),
                    on_update=_rule(fk.update_rule),
                )
            table.columns.append(column)
        if len(primary_columns) > 1:
            table.primary_key = list(primary_columns)
        model.tables.append(table)
        model.dependencies[table.name] = table.referenced_tables()

    for live_index in db_schema.indexes:
        if live_index.primary or live_index.name in constraint_names:
            continue
        method = None
        if live_index.definition:
            match = _USING_RE.search(live_index.definition)
            if match and match.group(1).lower() != "btree":
                method = match.group(1).upper()
        model.indexes.append(IndexDef(
            name=live_index.name,
            table=live_index.table,
            columns=list(live_index.columns),
            unique=live_index.unique,
            method=method,
        ))

    return model


def _is_expression(default: str) -> bool:
    text = default.strip().upper()
    return text.startswith("CURRENT_") or text.endswith(")") or text in ("NOW()", "NULL")


def _rule(rule: Optional[str]) -> Optional[str]:
    # NO ACTION is the default and is left implicit
    if not rule or rule.upper() == "NO ACTION":
        return None
    return rule.upper()


def generate_down_sql(diff: SchemaDiff, db_schema: DatabaseSchema, dialect) -> List[str]:
    """
    Statements that undo ``generate_migration_sql`` for the same diff.

    The reverse diff is rendered against the live schema, and its drops are
    real statements: rolling back a migration removes what it created.
    """
    return generate_migration_sql(
        diff.reversed(),
        model_from_database(db_schema),
        dialect,
        allow_destructive=True,
    )


# ============================================================================
# MIGRATION FILES
# ============================================================================

MIGRATION_FILE_RE = re.compile(r"^(?P<version>\d+)_(?P<name>.+)\.(?P<direction>up|down)\.sql$")


@dataclass
class MigrationFiles:
    """Paths of one written up/down pair."""
    up_file: str
    down_file: str
    version: int


def next_migration_version() -> int:
    """Unix timestamp in seconds."""
    return int(time.time())


def migration_file_name(version: int, name: str, direction: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "migration"
    return f"{version}_{slug}.{direction}.sql"


def render_migration_script(statements: List[str], direction: str) -> str:
    generated_on = datetime.now(timezone.utc).isoformat(timespec="seconds")
    title = "Migration generated from schema differences" if direction == "up" else "Migration rollback"
    header = f"-- {title}\n-- Generated on: {generated_on}\n-- Direction: {direction.upper()}\n\n"
    if not statements:
        return header + "-- No operations needed\n"
    return header + "\n".join(statements) + "\n"


def write_migration_files(
    out_dir: str,
    name: str,
    up_sql: str,
    down_sql: str,
    version: Optional[int] = None,
) -> MigrationFiles:
    """Write ``<version>_<name>.up.sql`` and ``.down.sql`` into ``out_dir``."""
    version = version or next_migration_version()
    os.makedirs(out_dir, exist_ok=True)

    up_path = os.path.join(out_dir, migration_file_name(version, name, "up"))
    down_path = os.path.join(out_dir, migration_file_name(version, name, "down"))
    with open(up_path, "w", encoding="utf-8") as handle:
        handle.write(up_sql)
    with open(down_path, "w", encoding="utf-8") as handle:
        handle.write(down_sql)

    logger.info(f"Wrote migration {version} to {out_dir}")
    return MigrationFiles(up_file=up_path, down_file=down_path, version=version)


__all__ = [
    "db_column_type",
    "compare_schemas",
    "generate_migration_sql",
    "generate_down_sql",
    "model_from_database",
    "MIGRATION_FILE_RE",
    "MigrationFiles",
    "next_migration_version",
    "migration_file_name",
    "render_migration_script",
    "write_migration_files",
]
