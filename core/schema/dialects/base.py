# ============================================================================
# SQL GENERATOR BASE
# ============================================================================
# STATUS: Core - Shared rendering contract for every dialect
# PURPOSE: CREATE / ALTER / DROP rendering with per-dialect hooks
# CREATED: 19 OCT 2026
# ============================================================================
"""
SQL Generator Base

Every dialect generator renders the same schema model with the same column
order and naming; only types, enums, index options, table options and a few
ALTER forms differ. Subclasses override the hooks in the DIALECT HOOKS
section.

Output is deterministic: rendering the same model twice yields identical
text.
"""

from abc import ABC
from typing import List, Optional, Set

from core.config import GeneratorDefaults, get_defaults
from core.contracts import Dialect
from core.logging import ComponentType, get_logger, log_context
from core.models import ColumnDef, ColumnDiff, EnumDef, IndexDef, SchemaModel, TableDef
from core.schema.ddl_utils import join_columns, quote_literal, render_default
from core.schema.dependencies import ResolutionResult, resolve_dependencies

logger = get_logger("schema.generator", ComponentType.GENERATOR)


class SQLGenerator(ABC):
    """
    Base SQL generator.

    Usage:
        generator = get_generator("postgres")
        print(generator.render_schema(model))
    """

    dialect: Dialect = Dialect.GENERIC

    def __init__(self, defaults: Optional[GeneratorDefaults] = None):
        self.defaults = defaults or get_defaults().generator

    # =========================================================================
    # DIALECT HOOKS
    # =========================================================================

    def column_type(self, column: ColumnDef, model: Optional[SchemaModel] = None) -> str:
        """Rendered SQL type: per-dialect override first, then the declared type."""
        return column.override(self.dialect, "type") or column.type

    def column_check(self, column: ColumnDef, model: Optional[SchemaModel] = None) -> Optional[str]:
        return column.override(self.dialect, "check") or column.check

    def column_default(self, column: ColumnDef) -> Optional[str]:
        return render_default(
            column.override(self.dialect, "default") or column.default,
            column.default_fn,
        )

    def auto_increment_keyword(self, column: ColumnDef) -> Optional[str]:
        return None

    def inline_column_comment(self, column: ColumnDef) -> Optional[str]:
        """Comment rendered inside the column definition, if the dialect allows it."""
        return None

    def table_options(self, table: TableDef) -> str:
        """Text placed between the closing parenthesis and the semicolon."""
        return ""

    def comment_statements(self, table: TableDef) -> List[str]:
        """Statements attaching table and column comments after creation."""
        return []

    def render_enum(self, enum: EnumDef) -> Optional[str]:
        """Standalone enum type, for dialects that have one."""
        return None

    def render_index(self, index: IndexDef) -> Optional[str]:
        unique = "UNIQUE " if index.unique else ""
        return f"CREATE {unique}INDEX {index.name} ON {index.table} ({join_columns(index.columns)});"

    # =========================================================================
    # COLUMNS AND CONSTRAINTS
    # =========================================================================

    def render_column(
        self,
        column: ColumnDef,
        table: Optional[TableDef] = None,
        model: Optional[SchemaModel] = None,
    ) -> str:
        """One column definition without leading indentation or trailing comma."""
        parts = [column.name, self.column_type(column, model)]

        inline_primary = (
            table is not None
            and table.primary_key_columns() == [column.name]
        ) or (table is None and column.primary)

        if inline_primary:
            parts.append("PRIMARY KEY")
        else:
            if column.not_null:
                parts.append("NOT NULL")
            if column.unique:
                parts.append("UNIQUE")

        auto_increment = self.auto_increment_keyword(column)
        if auto_increment:
            parts.append(auto_increment)

        default = self.column_default(column)
        if default is not None:
            parts.append(f"DEFAULT {default}")

        check = self.column_check(column, model)
        if check:
            parts.append(f"CHECK ({check})")

        comment = self.inline_column_comment(column)
        if comment:
            parts.append(comment)

        return " ".join(parts)

    def foreign_key_name(self, table: TableDef, column: ColumnDef) -> str:
        return column.foreign.name or f"fk_{table.name}_{column.name}"

    def render_foreign_key_clause(self, table: TableDef, column: ColumnDef) -> str:
        ref = column.foreign
        clause = (
            f"CONSTRAINT {self.foreign_key_name(table, column)} FOREIGN KEY ({column.name}) "
            f"REFERENCES {ref.table}({ref.column})"
        )
        if ref.on_delete:
            clause += f" ON DELETE {ref.on_delete}"
        if ref.on_update:
            clause += f" ON UPDATE {ref.on_update}"
        return clause

    def render_add_foreign_key(self, table: TableDef, column: ColumnDef) -> str:
        return f"ALTER TABLE {table.name} ADD {self.render_foreign_key_clause(table, column)};"

    # =========================================================================
    # CREATE
    # =========================================================================

    def render_create_table(
        self,
        table: TableDef,
        model: Optional[SchemaModel] = None,
        deferred: Optional[Set[str]] = None,
    ) -> str:
        """
        CREATE TABLE statement.

        Args:
            table: Table to render
            model: Owning model (enum lookups)
            deferred: Column names whose foreign keys are added later
        """
        deferred = deferred or set()
        lines = [f"  {self.render_column(c, table, model)}" for c in table.columns]

        pk_columns = table.primary_key_columns()
        if len(pk_columns) > 1:
            lines.append(f"  PRIMARY KEY ({join_columns(pk_columns)})")

        for column in table.foreign_key_columns():
            if column.name in deferred:
                continue
            lines.append(f"  {self.render_foreign_key_clause(table, column)}")

        header = f"-- {self.dialect.value.upper()} TABLE: {table.name}"
        if table.comment:
            header += f" ({table.comment})"
        body = ",\n".join(lines)
        options = self.table_options(table)
        suffix = f" {options}" if options else ""
        return f"{header} --\nCREATE TABLE {table.name} (\n{body}\n){suffix};"

    def table_statements(
        self,
        table: TableDef,
        model: SchemaModel,
        deferred: Optional[Set[str]] = None,
    ) -> List[str]:
        """CREATE TABLE, then its comments, then its indexes."""
        statements = [self.render_create_table(table, model, deferred)]
        statements.extend(self.comment_statements(table))
        for index in model.indexes_for(table.name):
            rendered = self.render_index(index)
            if rendered:
                statements.append(rendered)
        return statements

    def enum_statements(self, model: SchemaModel, names: Optional[List[str]] = None) -> List[str]:
        statements = []
        for enum in model.enums:
            if names is not None and enum.name not in names:
                continue
            rendered = self.render_enum(enum)
            if rendered:
                statements.append(rendered)
        return statements

    def generate_statements(
        self,
        model: SchemaModel,
        resolution: Optional[ResolutionResult] = None,
        tables: Optional[List[str]] = None,
    ) -> List[List[str]]:
        """
        Statements for a full schema, grouped for display.

        Returns:
            Groups in execution order: enums, one group per table in
            dependency order, deferred foreign keys.

        Args:
            tables: Restrict output to these table names (order still resolved)
        """
        resolution = resolution or resolve_dependencies(model)
        groups: List[List[str]] = []

        with log_context(dialect=self.dialect.value):
            enum_group = self.enum_statements(model)
            if enum_group:
                groups.append(enum_group)

            for name in resolution.order:
                if tables is not None and name not in tables:
                    continue
                table = model.get_table(name)
                deferred = {d.column.name for d in resolution.deferred_for(name)}
                with log_context(table=name):
                    groups.append(self.table_statements(table, model, deferred))

            deferred_group = []
            for item in resolution.deferred:
                if tables is not None and item.table not in tables:
                    continue
                deferred_group.append(
                    self.render_add_foreign_key(model.get_table(item.table), item.column)
                )
            if deferred_group:
                groups.append(deferred_group)

            logger.debug(f"Rendered {len(resolution.order)} tables for {self.dialect.value}")

        return groups

    def render_schema(self, model: SchemaModel, resolution: Optional[ResolutionResult] = None) -> str:
        """Complete schema script."""
        resolution = resolution or resolve_dependencies(model)
        header = [
            f"-- {self.dialect.value.upper()} SCHEMA",
            f"-- Tables: {len(model.tables)}, Enums: {len(model.enums)}",
        ]
        if resolution.cycles:
            for cycle in resolution.cycles:
                header.append(f"-- Dependency cycle: {' -> '.join(cycle)} (foreign keys deferred)")
        blocks = ["\n".join(header)]
        for group in self.generate_statements(model, resolution):
            blocks.append("\n".join(group))
        return "\n\n".join(blocks) + "\n"

    # =========================================================================
    # ALTER / DROP
    # =========================================================================

    def render_add_column(self, table: TableDef, column: ColumnDef, model: Optional[SchemaModel] = None) -> str:
        # Keys on existing tables are out of reach of ADD COLUMN; render as plain column
        plain = column.model_copy(update={"primary": False})
        return f"ALTER TABLE {table.name} ADD COLUMN {self.render_column(plain, None, model)};"

    def render_drop_column(self, table_name: str, column_name: str) -> str:
        return f"ALTER TABLE {table_name} DROP COLUMN {column_name};"

    def render_alter_column(
        self,
        table: TableDef,
        column: ColumnDef,
        change: ColumnDiff,
        model: Optional[SchemaModel] = None,
    ) -> List[str]:
        """Standard SQL: one ALTER COLUMN per changed property."""
        statements = []
        if change.type_changed:
            statements.append(
                f"ALTER TABLE {table.name} ALTER COLUMN {column.name} "
                f"TYPE {self.column_type(column, model)};"
            )
        if change.nullable_changed:
            statements.append(
                self.render_set_not_null(table.name, column.name)
                if column.not_null
                else self.render_drop_not_null(table.name, column.name)
            )
        return statements

    def render_set_not_null(self, table_name: str, column_name: str) -> str:
        return f"ALTER TABLE {table_name} ALTER COLUMN {column_name} SET NOT NULL;"

    def render_drop_not_null(self, table_name: str, column_name: str) -> str:
        return f"ALTER TABLE {table_name} ALTER COLUMN {column_name} DROP NOT NULL;"

    def render_drop_index(self, index_name: str, table_name: Optional[str] = None) -> str:
        return f"DROP INDEX {index_name};"

    def render_drop_table(self, table_name: str) -> str:
        return f"DROP TABLE IF EXISTS {table_name};"

    def render_drop_enum(self, enum_name: str) -> Optional[str]:
        return None

    def render_add_enum_value(self, enum_name: str, value: str) -> Optional[str]:
        return None

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def enum_value_list(values: List[str]) -> str:
        return ", ".join(quote_literal(v) for v in values)

    def enum_for(self, column: ColumnDef, model: Optional[SchemaModel]) -> Optional[EnumDef]:
        if not column.is_enum:
            return None
        if model is not None:
            enum = model.get_enum(column.type)
            if enum is not None:
                return enum
        return EnumDef(name=column.type, values=column.enum_values)


__all__ = ["SQLGenerator"]
