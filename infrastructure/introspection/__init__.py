# ============================================================================
# SCHEMA INTROSPECTION
# ============================================================================
# STATUS: Infrastructure - Reader dispatch
# PURPOSE: Pick the schema reader for a connection's dialect
# CREATED: 19 OCT 2026
# EXPORTS: SchemaReader, PostgresSchemaReader, MySQLSchemaReader, get_reader,
#          read_schema
# ============================================================================
"""
Schema Introspection

Usage:
    from infrastructure.introspection import read_schema

    schema = read_schema("postgres://localhost/app")
"""

from typing import Optional

from core.contracts import Dialect
from core.deadline import Deadline
from core.errors import UnsupportedDialectError
from core.models import DatabaseSchema
from infrastructure.connection import DatabaseConnection, connect
from infrastructure.introspection.base import SchemaReader
from infrastructure.introspection.mysql_reader import MySQLSchemaReader
from infrastructure.introspection.postgres_reader import PostgresSchemaReader


def get_reader(conn: DatabaseConnection) -> SchemaReader:
    """
    Reader for the connection's dialect.

    Raises:
        UnsupportedDialectError: For dialects without a live reader
    """
    if conn.dialect == Dialect.POSTGRES:
        return PostgresSchemaReader(conn)
    if conn.dialect.is_mysql_family():
        return MySQLSchemaReader(conn)
    raise UnsupportedDialectError(
        f"No schema reader for dialect: {conn.dialect.value}", operation="read schema"
    )


def read_schema(dsn: str, deadline: Optional[Deadline] = None) -> DatabaseSchema:
    """Connect, read the whole schema, disconnect."""
    with connect(dsn, deadline) as conn:
        return get_reader(conn).read_schema()


__all__ = [
    "SchemaReader",
    "PostgresSchemaReader",
    "MySQLSchemaReader",
    "get_reader",
    "read_schema",
]
