# ============================================================================
# MYSQL CONNECTION INFRASTRUCTURE
# ============================================================================
# STATUS: Infrastructure - MySQL / MariaDB connection handling
# PURPOSE: PyMySQL-backed DatabaseConnection for introspection and migrations
# CREATED: 19 OCT 2026
# ============================================================================
"""
MySQL Connection Infrastructure

MySQL and MariaDB share one connection class. DictCursor rows keep the
reader code identical in shape to the PostgreSQL side.

Note: MySQL commits DDL implicitly, so a failed migration step can only roll
back its data changes. Statements already executed stay applied.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import pymysql
from pymysql.cursors import DictCursor

from core.config import get_defaults
from core.contracts import Dialect
from core.deadline import Deadline
from core.schema.ddl_utils import MySQLDDL
from infrastructure.connection import ConnectionInfo, DatabaseConnection, parse_dsn

logger = logging.getLogger(__name__)


class MySQLConnection(DatabaseConnection):
    """
    MySQL / MariaDB connection.

    Usage:
        with MySQLConnection.from_dsn("mysql://root:pw@localhost/app") as conn:
            conn.list_tables()
    """

    def __init__(self, info: ConnectionInfo, deadline: Optional[Deadline] = None):
        super().__init__(info, deadline)
        self.dialect = info.dialect if info.dialect.is_mysql_family() else Dialect.MYSQL

    @classmethod
    def from_dsn(cls, dsn: str, deadline: Optional[Deadline] = None) -> "MySQLConnection":
        return cls(parse_dsn(dsn), deadline)

    def _open(self):
        logger.debug("Connecting to MySQL...")
        conn = pymysql.connect(
            host=self.info.host,
            port=self.info.port or 3306,
            user=self.info.user,
            password=self.info.password or "",
            database=self.info.database or None,
            autocommit=True,
            cursorclass=DictCursor,
            connect_timeout=get_defaults().database.connect_timeout_seconds,
        )
        logger.debug("MySQL connection established")
        return conn

    def _begin(self) -> None:
        self._conn.begin()

    def _commit(self) -> None:
        self._conn.commit()

    def _rollback(self) -> None:
        self._conn.rollback()

    def _run(self, sql: Any, params: Optional[Sequence] = None, fetch: bool = False) -> List[Dict[str, Any]]:
        with self._conn.cursor() as cur:
            cur.execute(sql, params)
            if fetch:
                return list(cur.fetchall())
        return []

    # =========================================================================
    # CATALOG HELPERS
    # =========================================================================

    def table_exists(self, table: str) -> bool:
        return self.fetch_one(MySQLDDL.TABLE_EXISTS, (table,)) is not None

    def list_tables(self) -> List[str]:
        return [row["table_name"] for row in self.fetch_all(MySQLDDL.LIST_TABLES)]

    def drop_table(self, table: str) -> None:
        self.execute(MySQLDDL.drop_table(table))

    def set_foreign_key_checks(self, enabled: bool) -> None:
        self.execute(MySQLDDL.foreign_key_checks(enabled))

    @property
    def database_name(self) -> str:
        if self.info.database:
            return self.info.database
        row = self.fetch_one("SELECT DATABASE() AS name")
        return row["name"] if row else ""


__all__ = ["MySQLConnection"]
