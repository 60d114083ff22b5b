# ============================================================================
# SCHEMA WRITER TESTS
# ============================================================================
# STATUS: Tests - Creating and dropping declared schemas
# PURPOSE: Verify create order, skip-existing, deferred keys and drops
# CREATED: 19 OCT 2026
# ============================================================================
"""
Schema Writer Tests

Covers:
1. Enums then tables in dependency order, in one transaction
2. Existing tables and enums are skipped
3. Deferred foreign keys for cycles
4. Failure rolls the whole write back
5. drop_schema / drop_all, with MySQL foreign key checks
6. Dry runs plan statements without writing

Run with:
    pytest tests/test_schema_writer.py -v
"""

import pytest

from core.contracts import Dialect
from core.errors import SchemaEngineError
from core.models import ColumnDef, EnumDef, ForeignKeyRef, SchemaModel, TableDef
from infrastructure.schema_writer import SchemaWriter


def _make_model():
    users = TableDef(name="users", columns=[
        ColumnDef(name="id", type="SERIAL", primary=True),
        ColumnDef(name="status", type="enum_user_status", enum_values=["active", "banned"]),
    ])
    orders = TableDef(name="orders", columns=[
        ColumnDef(name="id", type="SERIAL", primary=True),
        ColumnDef(name="user_id", type="INTEGER", foreign=ForeignKeyRef(table="users")),
    ])
    return SchemaModel(
        tables=[orders, users],
        enums=[EnumDef(name="enum_user_status", values=["active", "banned"])],
    )


def _make_cycle():
    a = TableDef(name="a", columns=[
        ColumnDef(name="id", type="INTEGER", primary=True),
        ColumnDef(name="b_id", type="INTEGER", foreign=ForeignKeyRef(table="b")),
    ])
    b = TableDef(name="b", columns=[
        ColumnDef(name="id", type="INTEGER", primary=True),
        ColumnDef(name="a_id", type="INTEGER", foreign=ForeignKeyRef(table="a")),
    ])
    return SchemaModel(tables=[a, b])


def _index_of(statements, fragment):
    for i, statement in enumerate(statements):
        if fragment in statement:
            return i
    raise AssertionError(f"{fragment!r} not executed")


# ============================================================================
# WRITE
# ============================================================================

class TestWriteSchema:

    def test_creates_in_dependency_order(self, make_conn):
        conn = make_conn()
        result = SchemaWriter(conn).write_schema(_make_model())

        assert result.created_enums == ["enum_user_status"]
        assert result.created_tables == ["users", "orders"]
        assert conn.events == ["BEGIN", "COMMIT"]
        assert conn.statements[0] == "CREATE TYPE enum_user_status AS ENUM ('active', 'banned')"
        assert _index_of(conn.statements, "CREATE TABLE users") < _index_of(conn.statements, "CREATE TABLE orders")
        assert result.statements == len(conn.statements)

    def test_skips_existing(self, make_conn):
        conn = make_conn(tables=["users"], enums=["enum_user_status"])
        result = SchemaWriter(conn).write_schema(_make_model())
        assert result.skipped_tables == ["users"]
        assert result.skipped_enums == ["enum_user_status"]
        assert result.created_tables == ["orders"]
        assert not any("CREATE TYPE" in s for s in conn.statements)

    def test_deferred_foreign_key_added_after_tables(self, make_conn):
        conn = make_conn()
        SchemaWriter(conn).write_schema(_make_cycle())
        assert conn.statements[-1] == (
            "ALTER TABLE a ADD CONSTRAINT fk_a_b_id FOREIGN KEY (b_id) REFERENCES b(id)"
        )

    def test_deferred_key_skipped_for_existing_table(self, make_conn):
        conn = make_conn(tables=["a"])
        result = SchemaWriter(conn).write_schema(_make_cycle())
        assert result.created_tables == ["b"]
        assert not any(s.startswith("ALTER TABLE") for s in conn.statements)

    def test_failure_rolls_back(self, make_conn):
        conn = make_conn(fail_on="CREATE TABLE orders")
        with pytest.raises(SchemaEngineError, match="write schema failed"):
            SchemaWriter(conn).write_schema(_make_model())
        assert conn.events == ["BEGIN", "ROLLBACK"]

    def test_mysql_enums_inline(self, make_conn):
        conn = make_conn(Dialect.MYSQL)
        result = SchemaWriter(conn).write_schema(_make_model())
        assert result.created_enums == []
        assert any("status ENUM('active', 'banned')" in s for s in conn.statements)

    def test_to_dict(self, make_conn):
        result = SchemaWriter(make_conn()).write_schema(_make_model())
        assert result.to_dict()["created_tables"] == ["users", "orders"]


# ============================================================================
# DROP
# ============================================================================

class TestDrop:

    def test_drop_schema_reverse_order(self, make_conn):
        conn = make_conn(tables=["users", "orders", "unrelated"], enums=["enum_user_status"])
        result = SchemaWriter(conn).drop_schema(_make_model())
        assert result.dropped_tables == ["orders", "users"]
        assert result.dropped_enums == ["enum_user_status"]
        assert conn.tables == ["unrelated"]
        assert conn.statements == ["DROP TABLE orders", "DROP TABLE users", "DROP TYPE enum_user_status"]

    def test_drop_schema_ignores_missing(self, make_conn):
        conn = make_conn(tables=["users"])
        result = SchemaWriter(conn).drop_schema(_make_model())
        assert result.dropped_tables == ["users"]
        assert result.dropped_enums == []

    def test_mysql_disables_foreign_key_checks(self, make_conn):
        conn = make_conn(Dialect.MYSQL, tables=["users", "orders"])
        SchemaWriter(conn).drop_schema(_make_model())
        assert conn.statements == [
            "SET FOREIGN_KEY_CHECKS = 0",
            "DROP TABLE orders",
            "DROP TABLE users",
            "SET FOREIGN_KEY_CHECKS = 1",
        ]

    def test_drop_all(self, make_conn):
        conn = make_conn(tables=["x", "y"], enums=["e1"])
        result = SchemaWriter(conn).drop_all()
        assert result.dropped_tables == ["x", "y"]
        assert result.dropped_enums == ["e1"]
        assert conn.tables == [] and conn.enums == []


# ============================================================================
# DRY RUN
# ============================================================================

class TestDryRun:

    def test_write_plans_without_executing(self, make_conn):
        conn = make_conn()
        result = SchemaWriter(conn, dry_run=True).write_schema(_make_model())

        assert conn.statements == []
        assert conn.events == []
        assert result.dry_run
        assert result.created_tables == ["users", "orders"]
        assert result.planned[0] == "CREATE TYPE enum_user_status AS ENUM ('active', 'banned')"
        assert _index_of(result.planned, "CREATE TABLE users") < _index_of(result.planned, "CREATE TABLE orders")
        assert result.statements == len(result.planned)

    def test_write_still_skips_existing(self, make_conn):
        conn = make_conn(tables=["users"], enums=["enum_user_status"])
        result = SchemaWriter(conn, dry_run=True).write_schema(_make_model())
        assert result.created_tables == ["orders"]
        assert not any("CREATE TYPE" in s for s in result.planned)

    def test_drop_schema_leaves_database_untouched(self, make_conn):
        conn = make_conn(tables=["users", "orders"], enums=["enum_user_status"])
        result = SchemaWriter(conn, dry_run=True).drop_schema(_make_model())

        assert conn.statements == []
        assert conn.tables == ["users", "orders"]
        assert conn.enums == ["enum_user_status"]
        assert result.dropped_tables == ["orders", "users"]
        assert result.planned == [
            "DROP TABLE IF EXISTS orders CASCADE",
            "DROP TABLE IF EXISTS users CASCADE",
            "DROP TYPE IF EXISTS enum_user_status",
        ]

    def test_mysql_drop_all_keeps_foreign_key_checks(self, make_conn):
        conn = make_conn(Dialect.MYSQL, tables=["x", "y"])
        result = SchemaWriter(conn, dry_run=True).drop_all()
        assert conn.statements == []
        assert conn.tables == ["x", "y"]
        assert result.planned == ["DROP TABLE IF EXISTS x", "DROP TABLE IF EXISTS y"]
