# ============================================================================
# POSTGRESQL CONNECTION INFRASTRUCTURE
# ============================================================================
# STATUS: Infrastructure - PostgreSQL connection handling
# PURPOSE: psycopg-backed DatabaseConnection for introspection and migrations
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Connection Infrastructure

Provides database connectivity for the schema engine:
- DSN from the command line or DATABASE_URL
- Password environment fallback (POSTGRES_HOST, POSTGRES_DB, ...)
- dict_row cursors so every reader works with column names
- SET LOCAL statement_timeout from the caller's Deadline

Connections run in autocommit mode; ``transaction()`` switches autocommit
off for the duration of the block.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row

from core.config import get_defaults
from core.contracts import Dialect
from core.deadline import Deadline
from core.errors import DatabaseConnectionError
from core.schema.ddl_utils import PostgresDDL
from infrastructure.connection import ConnectionInfo, DatabaseConnection, parse_dsn

logger = logging.getLogger(__name__)


# ============================================================================
# CONNECTION STRING
# ============================================================================

def build_connection_string() -> str:
    """
    Connection string from the environment.

    Priority:
    1. DATABASE_URL
    2. POSTGRES_HOST / POSTGRES_PORT / POSTGRES_DB / POSTGRES_USER /
       POSTGRES_PASSWORD

    Raises:
        DatabaseConnectionError: If neither is configured
    """
    database_url = get_defaults().database.database_url
    if database_url:
        return database_url

    host = os.environ.get("POSTGRES_HOST")
    port = os.environ.get("POSTGRES_PORT", "5432")
    database = os.environ.get("POSTGRES_DB")
    if not host or not database:
        raise DatabaseConnectionError(
            "Database connection not configured. "
            "Pass a DSN or set DATABASE_URL, or POSTGRES_HOST and POSTGRES_DB.",
            operation="build connection string",
        )

    user = os.environ.get("POSTGRES_USER", "postgres")
    password = os.environ.get("POSTGRES_PASSWORD", "")
    credentials = f"{user}:{password}" if password else user

    logger.debug(f"Password connection string built for {database}")
    return f"postgresql://{credentials}@{host}:{port}/{database}"


# ============================================================================
# CONNECTION
# ============================================================================

class PostgresConnection(DatabaseConnection):
    """
    PostgreSQL connection.

    Usage:
        with PostgresConnection.from_dsn(dsn) as conn:
            rows = conn.fetch_all("SELECT 1 AS one")
    """

    dialect = Dialect.POSTGRES

    def __init__(
        self,
        info: ConnectionInfo,
        deadline: Optional[Deadline] = None,
        schema_name: Optional[str] = None,
    ):
        super().__init__(info, deadline)
        self.schema_name = schema_name or get_defaults().database.postgres_schema

    @classmethod
    def from_dsn(cls, dsn: str, deadline: Optional[Deadline] = None) -> "PostgresConnection":
        return cls(parse_dsn(dsn), deadline)

    def _open(self):
        logger.debug("Connecting to PostgreSQL...")
        conn = psycopg.connect(
            self.info.dsn,
            row_factory=dict_row,
            autocommit=True,
            connect_timeout=get_defaults().database.connect_timeout_seconds,
        )
        logger.debug("PostgreSQL connection established")
        return conn

    def _begin(self) -> None:
        # The next statement opens the transaction implicitly
        self._conn.autocommit = False

    def _commit(self) -> None:
        self._conn.commit()
        self._conn.autocommit = True

    def _rollback(self) -> None:
        self._conn.rollback()
        self._conn.autocommit = True

    def _apply_timeout(self, timeout_ms: int) -> None:
        self._run(PostgresDDL.set_statement_timeout(timeout_ms))

    def _run(self, sql: Any, params: Optional[Sequence] = None, fetch: bool = False) -> List[Dict[str, Any]]:
        with self._conn.cursor() as cur:
            cur.execute(sql, params)
            if fetch:
                return cur.fetchall()
        return []

    # =========================================================================
    # CATALOG HELPERS
    # =========================================================================

    def table_exists(self, table: str) -> bool:
        return self.fetch_one(PostgresDDL.table_exists(self.schema_name), (table,)) is not None

    def list_tables(self) -> List[str]:
        return [row["table_name"] for row in self.fetch_all(PostgresDDL.list_tables(self.schema_name))]

    def enum_exists(self, name: str) -> bool:
        return self.fetch_one(PostgresDDL.type_exists(), (self.schema_name, name)) is not None

    def list_enum_types(self) -> List[str]:
        return [row["typname"] for row in self.fetch_all(PostgresDDL.list_enum_types(self.schema_name))]

    def drop_table(self, table: str) -> None:
        self.execute(PostgresDDL.drop_table(self.schema_name, table))

    def drop_enum(self, name: str) -> None:
        self.execute(PostgresDDL.drop_type(self.schema_name, name))


__all__ = [
    "PostgresConnection",
    "build_connection_string",
]
