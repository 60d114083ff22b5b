# ============================================================================
# MIGRATION RUNNER TESTS
# ============================================================================
# STATUS: Tests - Versioned up/down migrations
# PURPOSE: Verify ordering, tracking rows, rollback on failure, SQL files
# CREATED: 19 OCT 2026
# ============================================================================
"""
Migration Runner Tests

Covers:
1. Registration and duplicate versions
2. migrate_up applies pending versions in ascending order
3. A failing step rolls back and keeps earlier steps applied
4. migrate_down / migrate_to / status
5. Registering up/down SQL file pairs from a directory

Run with:
    pytest tests/test_migrator.py -v
"""

import pytest

from core.errors import DuplicateMigrationError, MigrationError
from infrastructure.migrator import Migration, Migrator, register_sql_directory


def _make_migration(version, log, fail=False):
    def up(conn):
        if fail:
            raise RuntimeError(f"cannot apply {version}")
        conn.execute(f"UP {version}")
        log.append(("up", version))

    def down(conn):
        conn.execute(f"DOWN {version}")
        log.append(("down", version))

    return Migration(version=version, description=f"step {version}", up=up, down=down)


def _make_migrator(conn, versions, log, failing=()):
    migrator = Migrator(conn)
    for version in versions:
        migrator.register(_make_migration(version, log, fail=version in failing))
    return migrator


# ============================================================================
# REGISTRATION
# ============================================================================

class TestRegistration:

    def test_sorted_regardless_of_order(self, make_conn):
        migrator = _make_migrator(make_conn(), [3, 1, 2], [])
        assert [m.version for m in migrator.migrations] == [1, 2, 3]

    def test_duplicate_version(self, make_conn):
        migrator = _make_migrator(make_conn(), [1], [])
        with pytest.raises(DuplicateMigrationError) as exc_info:
            migrator.register(Migration(version=1, description="again"))
        assert exc_info.value.version == 1


# ============================================================================
# UP
# ============================================================================

class TestMigrateUp:

    def test_applies_all_in_order(self, make_conn):
        conn, log = make_conn(), []
        migrator = _make_migrator(conn, [2, 1, 3], log)

        assert migrator.migrate_up() == [1, 2, 3]
        assert log == [("up", 1), ("up", 2), ("up", 3)]
        assert migrator.current_version() == 3
        assert migrator.applied_versions() == [1, 2, 3]
        assert conn.versions[2] == "step 2"

    def test_creates_tracking_table(self, make_conn):
        conn = make_conn()
        _make_migrator(conn, [], []).migrate_up()
        assert conn.statements[0] == (
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            "version INTEGER PRIMARY KEY, description TEXT NOT NULL, applied_at TIMESTAMP NOT NULL)"
        )

    def test_idempotent(self, make_conn):
        conn, log = make_conn(), []
        migrator = _make_migrator(conn, [1, 2], log)
        migrator.migrate_up()
        assert migrator.migrate_up() == []
        assert log == [("up", 1), ("up", 2)]

    def test_only_versions_above_current(self, make_conn):
        conn, log = make_conn(), []
        conn.versions = {5: "applied elsewhere"}
        migrator = _make_migrator(conn, [3, 5, 7], log)
        assert migrator.migrate_up() == [7]

    def test_one_transaction_per_step(self, make_conn):
        conn = make_conn()
        _make_migrator(conn, [1, 2], []).migrate_up()
        assert conn.events == ["BEGIN", "COMMIT", "BEGIN", "COMMIT"]

    def test_failure_rolls_back_step_and_stops(self, make_conn):
        conn, log = make_conn(), []
        migrator = _make_migrator(conn, [1, 2, 3], log, failing={2})

        with pytest.raises(MigrationError) as exc_info:
            migrator.migrate_up()

        assert exc_info.value.version == 2
        assert "apply migration 2 failed" in str(exc_info.value)
        assert log == [("up", 1)]
        assert migrator.current_version() == 1
        assert conn.events == ["BEGIN", "COMMIT", "BEGIN", "ROLLBACK"]

    def test_statement_timeout_per_step(self, make_conn):
        conn = make_conn()
        migrator = _make_migrator(conn, [1, 2], [])
        migrator.statement_timeout = 5
        migrator.migrate_up()
        assert conn.timeouts == [5000, 5000]

    def test_no_timeout_by_default(self, make_conn):
        conn = make_conn()
        _make_migrator(conn, [1], []).migrate_up()
        assert conn.timeouts == []


# ============================================================================
# DOWN / TO / STATUS
# ============================================================================

class TestMigrateDown:

    def test_rolls_back_newest_first(self, make_conn):
        conn, log = make_conn(), []
        migrator = _make_migrator(conn, [1, 2, 3], log)
        migrator.migrate_up()
        log.clear()

        assert migrator.migrate_down(1) == [3, 2]
        assert log == [("down", 3), ("down", 2)]
        assert migrator.applied_versions() == [1]

    def test_target_at_or_above_current(self, make_conn):
        conn, log = make_conn(), []
        migrator = _make_migrator(conn, [1, 2], log)
        migrator.migrate_up()
        log.clear()
        assert migrator.migrate_down(2) == []
        assert migrator.migrate_down(9) == []
        assert log == []

    def test_down_to_zero(self, make_conn):
        conn = make_conn()
        migrator = _make_migrator(conn, [1, 2], [])
        migrator.migrate_up()
        assert migrator.migrate_down(0) == [2, 1]
        assert migrator.current_version() == 0

    def test_migrate_to_both_directions(self, make_conn):
        conn, log = make_conn(), []
        migrator = _make_migrator(conn, [1, 2, 3], log)
        assert migrator.migrate_to(2) == [1, 2]
        assert migrator.migrate_to(1) == [2]
        assert migrator.current_version() == 1

    def test_status(self, make_conn):
        conn = make_conn()
        migrator = _make_migrator(conn, [1, 2, 3], [])
        migrator.migrate_to(1)
        status = migrator.status()
        assert status.current_version == 1
        assert status.pending == [2, 3]
        assert status.to_dict() == {
            "current_version": 1, "pending": [2, 3], "total": 3, "has_pending": True,
        }


# ============================================================================
# SQL FILES
# ============================================================================

class TestSQLDirectory:

    def _make_dir(self, tmp_path):
        (tmp_path / "100_create_items.up.sql").write_text(
            "CREATE TABLE items (id INTEGER);\nINSERT INTO items VALUES (1);\n"
        )
        (tmp_path / "100_create_items.down.sql").write_text("DROP TABLE items;\n")
        (tmp_path / "200_add_index.up.sql").write_text("CREATE INDEX idx_items_id ON items (id);\n")
        (tmp_path / "README.md").write_text("not a migration")
        return str(tmp_path)

    def test_registers_pairs(self, make_conn, tmp_path):
        migrator = Migrator(make_conn())
        registered = register_sql_directory(migrator, self._make_dir(tmp_path))
        assert [m.version for m in registered] == [100, 200]
        assert registered[0].description == "create items"

    def test_runs_scripts(self, make_conn, tmp_path):
        conn = make_conn()
        migrator = Migrator(conn)
        register_sql_directory(migrator, self._make_dir(tmp_path))
        migrator.migrate_up()
        migrator.migrate_down(0)
        assert conn.executed == [
            "CREATE TABLE items (id INTEGER)",
            "INSERT INTO items VALUES (1)",
            "CREATE INDEX idx_items_id ON items (id)",
            "DROP TABLE items",
        ]

    def test_default_directory(self, make_conn, tmp_path, monkeypatch):
        migrations_dir = tmp_path / "migrations"
        migrations_dir.mkdir()
        self._make_dir(migrations_dir)
        monkeypatch.chdir(tmp_path)
        registered = register_sql_directory(Migrator(make_conn()))
        assert [m.version for m in registered] == [100, 200]

    def test_missing_directory(self, make_conn, tmp_path):
        with pytest.raises(MigrationError, match="read migrations directory failed"):
            register_sql_directory(Migrator(make_conn()), str(tmp_path / "absent"))
