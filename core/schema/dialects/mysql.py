# ============================================================================
# MYSQL-FAMILY GENERATOR
# ============================================================================
# STATUS: Core - MySQL and MariaDB dialects
# PURPOSE: Inline ENUM columns, AUTO_INCREMENT, table options, MODIFY COLUMN
# CREATED: 19 OCT 2026
# ============================================================================
"""
MySQL-Family Generator

MySQL and MariaDB share one generator; MariaDB additionally reads
``platform.mysql.*`` overrides when it has no ``platform.mariadb.*`` of its
own.

Differences from the base contract:
- Enums are inline column types: ``ENUM('a', 'b')``
- SERIAL becomes ``INT AUTO_INCREMENT``, JSONB becomes JSON
- TEXT key, unique or indexed columns become VARCHAR(255)
- ENGINE / CHARSET / COMMENT table options
- Column changes use a single ``MODIFY COLUMN``
- Index methods other than BTREE/HASH/FULLTEXT/SPATIAL and partial
  conditions are dropped
"""

from typing import List, Optional

from core.contracts import Dialect
from core.logging import ComponentType, get_logger
from core.models import ColumnDef, ColumnDiff, IndexDef, SchemaModel, TableDef
from core.schema.ddl_utils import join_columns, quote_literal
from core.schema.dialects.base import SQLGenerator

logger = get_logger("schema.generator.mysql", ComponentType.GENERATOR)

TYPE_SUBSTITUTIONS = {
    "SERIAL": "INT",
    "BIGSERIAL": "BIGINT",
    "SMALLSERIAL": "SMALLINT",
    "JSONB": "JSON",
    "TIMESTAMPTZ": "TIMESTAMP",
    "TIMESTAMP WITH TIME ZONE": "TIMESTAMP",
    "BYTEA": "BLOB",
    "UUID": "CHAR(36)",
    "DOUBLE PRECISION": "DOUBLE",
    "TSVECTOR": "TEXT",
}

_SERIAL_TYPES = {"SERIAL", "BIGSERIAL", "SMALLSERIAL"}
_TEXT_TYPES = {"TEXT"}
_PREFIX_INDEX_METHODS = {"FULLTEXT", "SPATIAL"}
_SUFFIX_INDEX_METHODS = {"BTREE", "HASH"}


class MySQLGenerator(SQLGenerator):
    """MySQL SQL generator."""

    dialect = Dialect.MYSQL

    def column_type(self, column: ColumnDef, model: Optional[SchemaModel] = None) -> str:
        override = column.override(self.dialect, "type")
        if override:
            return override

        enum = self.enum_for(column, model)
        if enum is not None:
            return f"ENUM({self.enum_value_list(enum.values)})"

        upper = column.type.upper()
        if upper in _TEXT_TYPES and (column.primary or column.unique or column.index):
            return "VARCHAR(255)"
        return TYPE_SUBSTITUTIONS.get(upper, column.type)

    def auto_increment_keyword(self, column: ColumnDef) -> Optional[str]:
        if column.override(self.dialect, "type"):
            return "AUTO_INCREMENT" if column.auto_increment else None
        if column.auto_increment or column.type.upper() in _SERIAL_TYPES:
            return "AUTO_INCREMENT"
        return None

    def column_default(self, column: ColumnDef) -> Optional[str]:
        rendered_type = self.column_type(column).upper()
        # BLOB, TEXT and JSON columns cannot carry literal defaults
        if column.default_fn is None and rendered_type in ("TEXT", "JSON", "BLOB", "LONGTEXT"):
            return None
        return super().column_default(column)

    def inline_column_comment(self, column: ColumnDef) -> Optional[str]:
        if column.comment:
            return f"COMMENT {quote_literal(column.comment)}"
        return None

    def table_options(self, table: TableDef) -> str:
        options = []
        engine = table.override(self.dialect, "engine") or table.engine
        if engine:
            options.append(f"ENGINE={engine}")
        charset = table.override(self.dialect, "charset")
        if charset:
            options.append(f"DEFAULT CHARSET={charset}")
        collation = table.override(self.dialect, "collate")
        if collation:
            options.append(f"COLLATE={collation}")
        comment = table.override(self.dialect, "comment") or table.comment
        if comment:
            options.append(f"COMMENT={quote_literal(comment)}")
        return " ".join(options)

    def render_index(self, index: IndexDef) -> Optional[str]:
        method = (index.method or "").upper()
        if index.condition:
            logger.info(f"Partial condition of index {index.name} dropped for {self.dialect.value}")

        kind = "UNIQUE " if index.unique else ""
        suffix = ""
        if method in _PREFIX_INDEX_METHODS:
            kind = f"{method} "
        elif method in _SUFFIX_INDEX_METHODS:
            suffix = f" USING {method}"
        elif method:
            logger.info(f"Index method {method} of {index.name} not supported by {self.dialect.value}")

        return f"CREATE {kind}INDEX {index.name} ON {index.table} ({join_columns(index.columns)}){suffix};"

    def render_alter_column(
        self,
        table: TableDef,
        column: ColumnDef,
        change: ColumnDiff,
        model: Optional[SchemaModel] = None,
    ) -> List[str]:
        # MODIFY restates the whole column definition
        plain = column.model_copy(update={"primary": False})
        return [f"ALTER TABLE {table.name} MODIFY COLUMN {self.render_column(plain, None, model)};"]

    def render_drop_index(self, index_name: str, table_name: Optional[str] = None) -> str:
        if table_name:
            return f"DROP INDEX {index_name} ON {table_name};"
        return f"DROP INDEX {index_name};"


class MariaDBGenerator(MySQLGenerator):
    """MariaDB SQL generator; MySQL overrides apply as fallback."""

    dialect = Dialect.MARIADB


__all__ = ["MySQLGenerator", "MariaDBGenerator", "TYPE_SUBSTITUTIONS"]
