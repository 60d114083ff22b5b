# ============================================================================
# DATABASE CONNECTION BASE
# ============================================================================
# STATUS: Infrastructure - Dialect-neutral connection contract
# PURPOSE: DSN parsing, dialect dispatch, transactions with deadlines
# CREATED: 19 OCT 2026
# EXPORTS: ConnectionInfo, DatabaseConnection, parse_dsn, connect
# ============================================================================
"""
Database Connection Base

One DatabaseConnection wraps one driver connection for the whole command
run. The DSN scheme selects the driver:

    postgres://, postgresql://   psycopg (PostgreSQL)
    mysql://, mariadb://         PyMySQL (MySQL / MariaDB)

Anything else raises UnsupportedDialectError; there is no guessing.

Statements run in autocommit mode unless they are inside ``transaction()``,
which commits on success and rolls back on any exception, including an
expired Deadline.

Usage:
    with connect(dsn) as conn:
        with conn.transaction():
            conn.execute("CREATE TABLE t (id INTEGER)")
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import unquote, urlparse

from core.contracts import Dialect
from core.deadline import Deadline, ensure_deadline
from core.errors import DatabaseConnectionError, UnsupportedDialectError, error_context
from core.schema.sql_splitter import executable_statements

logger = logging.getLogger(__name__)

SCHEME_DIALECTS = {
    "postgres": Dialect.POSTGRES,
    "postgresql": Dialect.POSTGRES,
    "mysql": Dialect.MYSQL,
    "mariadb": Dialect.MARIADB,
}


@dataclass
class ConnectionInfo:
    """Parsed DSN. ``password`` is never logged."""
    dsn: str
    dialect: Dialect
    host: str = "localhost"
    port: Optional[int] = None
    database: str = ""
    user: Optional[str] = None
    password: Optional[str] = None

    def describe(self) -> str:
        port = f":{self.port}" if self.port else ""
        return f"{self.dialect.value}://{self.host}{port}/{self.database}"


def parse_dsn(dsn: str) -> ConnectionInfo:
    """
    Parse a connection URL.

    Raises:
        UnsupportedDialectError: If the scheme is empty or unknown
    """
    if not dsn:
        raise UnsupportedDialectError("Database DSN is required", operation="parse dsn")
    parsed = urlparse(dsn)
    scheme = parsed.scheme.lower()
    if scheme not in SCHEME_DIALECTS:
        raise UnsupportedDialectError(
            f"Unsupported dialect for DSN scheme '{scheme or dsn}'", operation="parse dsn"
        )
    return ConnectionInfo(
        dsn=dsn,
        dialect=SCHEME_DIALECTS[scheme],
        host=parsed.hostname or "localhost",
        port=parsed.port,
        database=unquote(parsed.path.lstrip("/")),
        user=unquote(parsed.username) if parsed.username else None,
        password=unquote(parsed.password) if parsed.password else None,
    )


class DatabaseConnection(ABC):
    """
    Dialect-neutral connection used by the introspector, the schema writer
    and the migration runner.

    Subclasses provide the driver calls; this class provides transaction
    bookkeeping, deadline checks and error wrapping.
    """

    dialect: Dialect = Dialect.GENERIC

    def __init__(self, info: ConnectionInfo, deadline: Optional[Deadline] = None):
        self.info = info
        self.deadline = ensure_deadline(deadline)
        self._conn = None
        self._in_transaction = False

    # =========================================================================
    # DRIVER HOOKS
    # =========================================================================

    @abstractmethod
    def _open(self):
        """Open and return the driver connection."""

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    @abstractmethod
    def _run(self, sql: Any, params: Optional[Sequence] = None, fetch: bool = False) -> List[Dict[str, Any]]:
        """Execute one statement; return rows as dicts when ``fetch``."""

    def _apply_timeout(self, timeout_ms: int) -> None:
        """Bound the next statements of the current transaction."""

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def open(self) -> "DatabaseConnection":
        if self._conn is None:
            with error_context("connect to database", DatabaseConnectionError, subject=self.info.describe()):
                self._conn = self._open()
            logger.debug(f"Connected to {self.info.describe()}")
        return self

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            finally:
                self._conn = None
                logger.debug(f"Closed connection to {self.info.describe()}")

    def __enter__(self) -> "DatabaseConnection":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def raw(self):
        """The driver connection (opened on first use)."""
        if self._conn is None:
            self.open()
        return self._conn

    # =========================================================================
    # STATEMENTS
    # =========================================================================

    @contextmanager
    def transaction(self, operation: str = "transaction", timeout_seconds: Optional[float] = None):
        """
        Run the block in one transaction.

        Commits when the block completes, rolls back on any exception and
        re-raises it. Nested calls join the outer transaction.

        Statements are bounded by the deadline and by ``timeout_seconds``
        when given, whichever is shorter.
        """
        if self._in_transaction:
            yield self
            return

        self.deadline.check(operation)
        self.open()
        self._begin()
        self._in_transaction = True
        try:
            timeout_ms = self.deadline.statement_timeout_ms()
            if timeout_seconds:
                limit_ms = int(timeout_seconds * 1000)
                timeout_ms = limit_ms if timeout_ms is None else min(timeout_ms, limit_ms)
            if timeout_ms is not None:
                self._apply_timeout(timeout_ms)
            yield self
        except BaseException:
            self._in_transaction = False
            try:
                self._rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed during {operation}: {rollback_error}")
            raise
        self._in_transaction = False
        self._commit()

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def execute(self, sql: Any, params: Optional[Sequence] = None) -> None:
        """Execute one statement, checking the deadline first."""
        self.deadline.check("execute statement")
        self.open()
        self._run(sql, params)

    def fetch_all(self, sql: Any, params: Optional[Sequence] = None) -> List[Dict[str, Any]]:
        self.deadline.check("query")
        self.open()
        return self._run(sql, params, fetch=True)

    def fetch_one(self, sql: Any, params: Optional[Sequence] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def execute_script(self, script: str) -> int:
        """
        Split a script into statements and execute them in order.

        Returns:
            Number of statements executed
        """
        statements = executable_statements(script)
        for statement in statements:
            self.execute(statement)
        return len(statements)

    # =========================================================================
    # CATALOG HELPERS
    # =========================================================================

    @abstractmethod
    def table_exists(self, table: str) -> bool: ...

    @abstractmethod
    def list_tables(self) -> List[str]: ...

    def enum_exists(self, name: str) -> bool:
        return False

    def list_enum_types(self) -> List[str]:
        return []

    @abstractmethod
    def drop_table(self, table: str) -> None: ...

    def drop_enum(self, name: str) -> None:
        """Dialects without standalone enum types have nothing to drop."""

    @property
    def database_name(self) -> str:
        return self.info.database


def connect(dsn: str, deadline: Optional[Deadline] = None) -> DatabaseConnection:
    """
    Connection for a DSN, not yet opened (use it as a context manager).

    Raises:
        UnsupportedDialectError: For unknown DSN schemes
    """
    info = parse_dsn(dsn)
    if info.dialect == Dialect.POSTGRES:
        from infrastructure.postgresql import PostgresConnection
        return PostgresConnection(info, deadline)
    from infrastructure.mysql import MySQLConnection
    return MySQLConnection(info, deadline)


__all__ = [
    "SCHEME_DIALECTS",
    "ConnectionInfo",
    "DatabaseConnection",
    "parse_dsn",
    "connect",
]
