# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# STATUS: Tests - In-memory database connection
# PURPOSE: Exercise transactions, migrations and schema writes without a server
# CREATED: 19 OCT 2026
# ============================================================================
"""
Shared fixtures.

FakeConnection implements the DatabaseConnection driver hooks in memory:
statements are recorded, the migrations tracking table is emulated, and a
rollback restores the state captured when the transaction began.
"""

from unittest.mock import MagicMock

import pytest

from core.config import reset_defaults
from core.contracts import Dialect
from infrastructure.connection import DatabaseConnection, parse_dsn

_DSNS = {
    Dialect.POSTGRES: "postgresql://app@localhost:5432/app",
    Dialect.MYSQL: "mysql://app@localhost:3306/app",
    Dialect.MARIADB: "mariadb://app@localhost:3306/app",
}


class FakeConnection(DatabaseConnection):

    def __init__(self, dialect=Dialect.POSTGRES, tables=(), enums=(), deadline=None, fail_on=None):
        super().__init__(parse_dsn(_DSNS[dialect]), deadline)
        self.dialect = dialect
        self.tables = list(tables)
        self.enums = list(enums)
        self.fail_on = fail_on
        self.statements = []
        self.events = []
        self.versions = {}
        self.timeouts = []
        self._snapshot = None

    def _open(self):
        return MagicMock()

    def _begin(self):
        self.events.append("BEGIN")
        self._snapshot = (dict(self.versions), list(self.tables), list(self.enums))

    def _commit(self):
        self.events.append("COMMIT")

    def _rollback(self):
        self.events.append("ROLLBACK")
        self.versions, self.tables, self.enums = self._snapshot

    def _apply_timeout(self, timeout_ms):
        self.timeouts.append(timeout_ms)

    def _run(self, sql, params=None, fetch=False):
        text = str(sql)
        self.statements.append(text)
        if self.fail_on and self.fail_on in text:
            raise RuntimeError(f"statement failed: {text}")
        if "COALESCE(MAX(version), 0)" in text:
            return [{"version": max(self.versions, default=0)}]
        if text.startswith("SELECT version"):
            return [{"version": v} for v in sorted(self.versions)]
        if text.startswith("INSERT INTO") and params:
            self.versions[params[0]] = params[1]
        elif text.startswith("DELETE FROM") and params:
            self.versions.pop(params[0], None)
        return []

    @property
    def executed(self):
        """Statements other than tracking-table bookkeeping."""
        return [
            s for s in self.statements
            if "schema_migrations" not in s and not s.startswith("SET FOREIGN_KEY_CHECKS")
        ]

    def table_exists(self, table):
        return table in self.tables

    def list_tables(self):
        return list(self.tables)

    def enum_exists(self, name):
        return name in self.enums

    def list_enum_types(self):
        return list(self.enums)

    def drop_table(self, table):
        self.execute(f"DROP TABLE {table}")
        self.tables.remove(table)

    def drop_enum(self, name):
        self.execute(f"DROP TYPE {name}")
        self.enums.remove(name)

    def set_foreign_key_checks(self, enabled):
        self.execute(f"SET FOREIGN_KEY_CHECKS = {1 if enabled else 0}")


@pytest.fixture
def make_conn():
    """Factory for FakeConnection instances."""
    return FakeConnection


_DB_ENV = (
    "DATABASE_URL",
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
)


@pytest.fixture
def db_env(monkeypatch):
    """
    Connection environment cleared, with cached defaults reset around the test.

    Returns monkeypatch so tests can set the variables they need.
    """
    for name in _DB_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_defaults()
    yield monkeypatch
    reset_defaults()
