# ============================================================================
# BOOTSTRAP MIGRATOR TESTS
# ============================================================================
# STATUS: Tests - Templated role / extension setup
# PURPOSE: Verify rendering, DSN checks, dry runs, apply and print
# CREATED: 19 OCT 2026
# ============================================================================
"""
Bootstrap Migrator Tests

Covers:
1. Template rendering and missing variables
2. DSN validation (PostgreSQL only)
3. Dry-run preview output
4. Apply: one transaction per file, stop on first failure
5. Printing rendered SQL
6. Packaged bootstrap files

Run with:
    pytest tests/test_bootstrap.py -v
"""

import io
from unittest.mock import patch

import pytest

from core.errors import BootstrapError
from infrastructure.bootstrap import BootstrapMigrator, BootstrapTemplate

TEMPLATE = BootstrapTemplate(
    username="app",
    username_for_migrations="app_migrations",
    username_for_background_worker="app_worker",
)

DSN = "postgresql://admin@localhost/app"


def _make_migrator(tmp_path, files):
    for name, content in files.items():
        (tmp_path / name).write_text(content)
    out = io.StringIO()
    return BootstrapMigrator(sql_dir=str(tmp_path), out=out), out


SIMPLE_FILES = {
    "001_roles.sql": "CREATE ROLE {{ Username }};\nGRANT USAGE ON SCHEMA public TO {{ UsernameForMigrations }};\n",
    "002_ext.sql": "CREATE EXTENSION IF NOT EXISTS pgcrypto;\n",
    "notes.txt": "ignored",
}


# ============================================================================
# RENDERING
# ============================================================================

class TestRendering:

    def test_variables_substituted(self, tmp_path):
        migrator, _ = _make_migrator(tmp_path, SIMPLE_FILES)
        assert migrator.render("001_roles.sql", TEMPLATE) == (
            "CREATE ROLE app;\nGRANT USAGE ON SCHEMA public TO app_migrations;\n"
        )

    def test_only_sql_files_sorted(self, tmp_path):
        migrator, _ = _make_migrator(tmp_path, SIMPLE_FILES)
        assert migrator.list_files() == ["001_roles.sql", "002_ext.sql"]

    def test_missing_variable(self, tmp_path):
        migrator, _ = _make_migrator(tmp_path, {"003_bad.sql": "SELECT '{{ Missing }}';"})
        with pytest.raises(BootstrapError, match="Failed to process file 003_bad.sql") as exc_info:
            migrator.render("003_bad.sql", TEMPLATE)
        assert exc_info.value.filename == "003_bad.sql"

    def test_from_defaults_username_override(self):
        template = BootstrapTemplate.from_defaults(username="shop")
        assert template.to_context()["Username"] == "shop"
        assert set(template.to_context()) == {
            "Username", "UsernameForMigrations", "UsernameForBackgroundWorker",
        }

    def test_packaged_files(self):
        migrator = BootstrapMigrator(out=io.StringIO())
        assert migrator.list_files() == ["001_roles.sql", "002_extensions.sql"]
        sql = migrator.render("001_roles.sql", TEMPLATE)
        assert 'CREATE ROLE "app_migrations" LOGIN;' in sql
        assert "{{" not in sql


# ============================================================================
# DSN VALIDATION
# ============================================================================

class TestValidateDSN:

    def test_empty(self):
        with pytest.raises(BootstrapError, match="Database DSN is required"):
            BootstrapMigrator.validate_dsn("")

    @pytest.mark.parametrize("dsn", ["mysql://root@localhost/app", "sqlite:///tmp/x.db"])
    def test_not_postgres(self, dsn):
        with pytest.raises(BootstrapError, match="only support PostgreSQL"):
            BootstrapMigrator.validate_dsn(dsn)

    def test_apply_rejects_before_connecting(self, tmp_path):
        migrator, _ = _make_migrator(tmp_path, SIMPLE_FILES)
        with patch("infrastructure.bootstrap.connect") as mock_connect:
            with pytest.raises(BootstrapError):
                migrator.apply("mysql://root@localhost/app", TEMPLATE)
        mock_connect.assert_not_called()


# ============================================================================
# DRY RUN
# ============================================================================

class TestDryRun:

    def test_preview(self, tmp_path):
        long_file = "-- roles\nCREATE ROLE {{ Username }};\n\nSELECT 1;\nSELECT 2;\nSELECT 3;\nSELECT 4;\n"
        migrator, out = _make_migrator(tmp_path, {"001_roles.sql": long_file})

        with patch("infrastructure.bootstrap.connect") as mock_connect:
            assert migrator.apply(DSN, TEMPLATE, dry_run=True) == ["001_roles.sql"]
        mock_connect.assert_not_called()

        assert out.getvalue().splitlines() == [
            "Found bootstrap migration files: 001_roles.sql",
            "[DRY RUN] Bootstrap migrations preview",
            "Template variables: {'Username': 'app', 'UsernameForMigrations': 'app_migrations', "
            "'UsernameForBackgroundWorker': 'app_worker'}",
            "[1/1] Would apply: 001_roles.sql",
            "Preview (first few lines):",
            "    -- roles",
            "    CREATE ROLE app;",
            "    SELECT 1;",
            "    SELECT 2;",
            "    ... (3 more lines)",
            "[DRY RUN] Preview completed successfully",
        ]

    def test_no_files(self, tmp_path):
        migrator, out = _make_migrator(tmp_path, {})
        assert migrator.apply(DSN, TEMPLATE, dry_run=True) == []
        assert out.getvalue() == "No bootstrap migration files found\n"


# ============================================================================
# APPLY
# ============================================================================

class TestApply:

    def test_applies_each_file_in_own_transaction(self, tmp_path, make_conn):
        migrator, out = _make_migrator(tmp_path, SIMPLE_FILES)
        conn = make_conn()
        with patch("infrastructure.bootstrap.connect", return_value=conn):
            assert migrator.apply(DSN, TEMPLATE) == ["001_roles.sql", "002_ext.sql"]

        assert conn.statements == [
            "CREATE ROLE app",
            "GRANT USAGE ON SCHEMA public TO app_migrations",
            "CREATE EXTENSION IF NOT EXISTS pgcrypto",
        ]
        assert conn.events == ["BEGIN", "COMMIT", "BEGIN", "COMMIT"]
        assert "Applying migration file 001_roles.sql" in out.getvalue()
        assert out.getvalue().endswith("All bootstrap migrations applied successfully\n")

    def test_stops_on_failure(self, tmp_path, make_conn):
        migrator, out = _make_migrator(tmp_path, SIMPLE_FILES)
        conn = make_conn(fail_on="pgcrypto")
        with patch("infrastructure.bootstrap.connect", return_value=conn):
            with pytest.raises(BootstrapError) as exc_info:
                migrator.apply(DSN, TEMPLATE)

        assert exc_info.value.filename == "002_ext.sql"
        assert "apply bootstrap file failed for 002_ext.sql" in str(exc_info.value)
        assert conn.events == ["BEGIN", "COMMIT", "BEGIN", "ROLLBACK"]
        assert "All bootstrap migrations applied successfully" not in out.getvalue()


# ============================================================================
# PRINT
# ============================================================================

class TestPrintSQL:

    def test_banner_per_file(self, tmp_path):
        migrator, out = _make_migrator(tmp_path, SIMPLE_FILES)
        migrator.print_sql(TEMPLATE)
        assert out.getvalue() == (
            "-- ========================================\n"
            "-- Bootstrap Migration File: 001_roles.sql\n"
            "-- ========================================\n"
            "\n"
            "CREATE ROLE app;\n"
            "GRANT USAGE ON SCHEMA public TO app_migrations;\n"
            "\n"
            "-- ========================================\n"
            "-- Bootstrap Migration File: 002_ext.sql\n"
            "-- ========================================\n"
            "\n"
            "CREATE EXTENSION IF NOT EXISTS pgcrypto;\n"
        )
