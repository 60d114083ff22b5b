# ============================================================================
# DDL UTILITIES
# ============================================================================
# STATUS: Core - Shared helpers for SQL DDL generation
# PURPOSE: Type normalization, literal rendering and composed runtime DDL
# CREATED: 19 OCT 2026
# EXPORTS: TYPE_ALIASES, normalize_type, split_type, types_equivalent,
#          quote_literal, render_default, PostgresDDL, MySQLDDL
# DEPENDENCIES: psycopg
# ============================================================================
"""
DDL Utilities - Shared SQL Generation Patterns.

Two groups of helpers:

- Text helpers used by every dialect generator and by the differ
  (type normalization, literal quoting, DEFAULT rendering).
- Composed statement builders used when the engine itself executes DDL
  against a live database (existence checks, drops). The Postgres builders
  return psycopg.sql.Composed objects so identifiers are always quoted by
  the driver.

Usage:
    from core.schema.ddl_utils import normalize_type, PostgresDDL

    normalize_type("character varying(255)")   # "varchar(255)"
    cursor.execute(PostgresDDL.drop_table("public", "users"))
"""

import re
from typing import List, Optional, Tuple

from psycopg import sql

from core.contracts import Dialect


# ============================================================================
# TYPE NORMALIZATION
# ============================================================================

# Canonical lowercase base names, keyed by every spelling seen in
# annotations, information_schema.data_type, udt_name and column_type.
TYPE_ALIASES = {
    # Integers
    "int": "integer",
    "int4": "integer",
    "integer": "integer",
    "serial": "integer",
    "serial4": "integer",
    "mediumint": "integer",
    "bigint": "bigint",
    "int8": "bigint",
    "bigserial": "bigint",
    "serial8": "bigint",
    "smallint": "smallint",
    "int2": "smallint",
    "smallserial": "smallint",
    "tinyint": "tinyint",

    # Strings
    "varchar": "varchar",
    "character varying": "varchar",
    "char": "char",
    "character": "char",
    "bpchar": "char",
    "text": "text",
    "mediumtext": "text",
    "longtext": "longtext",

    # Booleans
    "bool": "boolean",
    "boolean": "boolean",

    # Time
    "timestamp": "timestamp",
    "timestamp without time zone": "timestamp",
    "datetime": "timestamp",
    "timestamptz": "timestamptz",
    "timestamp with time zone": "timestamptz",
    "date": "date",
    "time": "time",
    "time without time zone": "time",

    # Numbers
    "decimal": "decimal",
    "numeric": "decimal",
    "float8": "double",
    "double precision": "double",
    "double": "double",
    "float4": "real",
    "real": "real",
    "float": "real",

    # Documents and misc
    "json": "json",
    "jsonb": "jsonb",
    "uuid": "uuid",
    "tsvector": "tsvector",
    "bytea": "bytea",
    "blob": "blob",
    "enum": "enum",
}

# Integer display widths and timestamp precisions carry no schema meaning
_PARAMETERLESS = {"integer", "bigint", "smallint", "timestamp", "timestamptz", "time"}

_TYPE_RE = re.compile(r"^\s*(?P<base>[^(]+)(?:\((?P<params>[^)]*)\))?\s*(?P<rest>.*)$")


def split_type(type_str: str) -> Tuple[str, Optional[str], str]:
    """
    Split ``"numeric(10, 2) unsigned"`` into ``("numeric", "10,2", "unsigned")``.

    The base is lowercased with whitespace collapsed; params lose spaces.
    """
    match = _TYPE_RE.match(type_str or "")
    if not match:
        return (type_str or "").strip().lower(), None, ""
    base = " ".join(match.group("base").lower().split())
    rest = match.group("rest").strip().lower()
    params = match.group("params")
    if params is not None:
        params = params.replace(" ", "")
    if base not in TYPE_ALIASES and " " in base:
        # "int unsigned", "timestamp with time zone"
        head, tail = base.split(" ", 1)
        if head in TYPE_ALIASES:
            base, rest = head, f"{tail} {rest}".strip()
    return base, params, rest


def _postgres_float(params: Optional[str]) -> str:
    # FLOAT(1..24) is real, FLOAT(25..53) and bare FLOAT are double precision
    if params and params.isdigit() and int(params) <= 24:
        return "real"
    return "double"


def normalize_type(type_str: str, dialect: Optional[Dialect] = None) -> str:
    """
    Canonical comparable form of a SQL type.

    ``dialect`` resolves spellings whose meaning differs by server: Postgres
    reads a bare ``FLOAT`` as double precision, MySQL as single precision.

    Examples:
        "INT4"                         -> "integer"
        "character varying(255)"       -> "varchar(255)"
        "timestamp with time zone"     -> "timestamptz"
        "tinyint(1)"                   -> "boolean"
        "enum('a','b')"                -> "enum"
        "my_enum_type"                 -> "my_enum_type"
    """
    if not type_str:
        return ""
    base, params, rest = split_type(type_str)

    # timestamp(3) with time zone
    if base in ("timestamp", "time") and rest.startswith("with time zone"):
        base = f"{base} with time zone"
    elif base in ("timestamp", "time") and rest.startswith("without time zone"):
        base = f"{base} without time zone"

    if base == "tinyint" and params == "1":
        return "boolean"
    if base == "enum":
        return "enum"
    if base == "float" and dialect == Dialect.POSTGRES:
        return _postgres_float(params)

    canonical = TYPE_ALIASES.get(base, base)
    if canonical in _PARAMETERLESS or not params:
        return canonical
    return f"{canonical}({params})"


def types_equivalent(left: str, right: str, dialect: Optional[Dialect] = None) -> bool:
    """
    True when two types normalize to the same base and, where both carry
    parameters, the same parameters.
    """
    a, b = normalize_type(left, dialect), normalize_type(right, dialect)
    if a == b:
        return True
    base_a, params_a, _ = split_type(a)
    base_b, params_b, _ = split_type(b)
    if base_a != base_b:
        return False
    return params_a is None or params_b is None


# ============================================================================
# LITERALS
# ============================================================================

_NUMERIC_RE = re.compile(r"^-?\d+(\.\d+)?$")
_BARE_LITERALS = {"true", "false", "null"}


def quote_literal(value: str) -> str:
    """Single-quote a string literal, doubling embedded quotes."""
    return "'" + str(value).replace("'", "''") + "'"


def render_default(value: Optional[str], expression: Optional[str] = None) -> Optional[str]:
    """
    Render a DEFAULT clause body.

    ``expression`` (from ``default_fn``) is emitted verbatim. A plain value
    stays bare when it is numeric, TRUE/FALSE/NULL or already quoted, and is
    quoted otherwise.
    """
    if expression:
        return expression
    if value is None:
        return None
    text = str(value)
    if _NUMERIC_RE.match(text) or text.lower() in _BARE_LITERALS:
        return text.upper() if text.lower() in _BARE_LITERALS else text
    if len(text) >= 2 and text.startswith("'") and text.endswith("'"):
        return text
    return quote_literal(text)


def join_columns(columns: List[str]) -> str:
    return ", ".join(columns)


# ============================================================================
# RUNTIME DDL - POSTGRESQL
# ============================================================================

class PostgresDDL:
    """
    Composed statements the engine executes against PostgreSQL itself.

    All methods are static and return sql.Composed objects.
    """

    @staticmethod
    def table_exists(schema: str) -> sql.Composed:
        """Parameterized on table name."""
        return sql.SQL(
            "SELECT 1 FROM information_schema.tables "
            "WHERE table_schema = {schema} AND table_name = %s"
        ).format(schema=sql.Literal(schema))

    @staticmethod
    def type_exists() -> sql.SQL:
        """Parameterized on (schema, type name)."""
        return sql.SQL(
            "SELECT 1 FROM pg_type t JOIN pg_namespace n ON n.oid = t.typnamespace "
            "WHERE n.nspname = %s AND t.typname = %s"
        )

    @staticmethod
    def drop_table(schema: str, table: str, cascade: bool = True) -> sql.Composed:
        stmt = sql.SQL("DROP TABLE IF EXISTS {schema}.{table}").format(
            schema=sql.Identifier(schema),
            table=sql.Identifier(table),
        )
        if cascade:
            stmt = sql.SQL("{} CASCADE").format(stmt)
        return stmt

    @staticmethod
    def drop_type(schema: str, name: str, cascade: bool = True) -> sql.Composed:
        stmt = sql.SQL("DROP TYPE IF EXISTS {schema}.{name}").format(
            schema=sql.Identifier(schema),
            name=sql.Identifier(name),
        )
        if cascade:
            stmt = sql.SQL("{} CASCADE").format(stmt)
        return stmt

    @staticmethod
    def list_tables(schema: str) -> sql.Composed:
        return sql.SQL(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = {schema} AND table_type = 'BASE TABLE' ORDER BY table_name"
        ).format(schema=sql.Literal(schema))

    @staticmethod
    def list_enum_types(schema: str) -> sql.Composed:
        return sql.SQL(
            "SELECT t.typname FROM pg_type t JOIN pg_namespace n ON n.oid = t.typnamespace "
            "WHERE n.nspname = {schema} AND t.typtype = 'e' ORDER BY t.typname"
        ).format(schema=sql.Literal(schema))

    @staticmethod
    def set_statement_timeout(milliseconds: int) -> sql.Composed:
        return sql.SQL("SET LOCAL statement_timeout = {}").format(sql.Literal(int(milliseconds)))


# ============================================================================
# RUNTIME DDL - MYSQL
# ============================================================================

def quote_mysql_identifier(name: str) -> str:
    """Backtick-quote a MySQL identifier."""
    return "`" + name.replace("`", "``") + "`"


class MySQLDDL:
    """Plain-text statements the engine executes against MySQL or MariaDB."""

    TABLE_EXISTS = (
        "SELECT 1 FROM information_schema.tables "
        "WHERE table_schema = DATABASE() AND table_name = %s"
    )
    LIST_TABLES = (
        "SELECT table_name AS table_name FROM information_schema.tables "
        "WHERE table_schema = DATABASE() AND table_type = 'BASE TABLE' ORDER BY table_name"
    )

    @staticmethod
    def drop_table(table: str) -> str:
        return f"DROP TABLE IF EXISTS {quote_mysql_identifier(table)}"

    @staticmethod
    def foreign_key_checks(enabled: bool) -> str:
        return f"SET FOREIGN_KEY_CHECKS = {1 if enabled else 0}"


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "TYPE_ALIASES",
    "split_type",
    "normalize_type",
    "types_equivalent",
    "quote_literal",
    "render_default",
    "join_columns",
    "PostgresDDL",
    "MySQLDDL",
    "quote_mysql_identifier",
]
