# ============================================================================
# SCHEMA DIFFER TESTS
# ============================================================================
# STATUS: Tests - Declared vs. live comparison and migration SQL
# PURPOSE: Verify diff contents, statement order, warnings and rollback SQL
# CREATED: 19 OCT 2026
# ============================================================================
"""
Schema Differ Tests

Covers:
1. Table, column, enum and index differences (PostgreSQL)
2. Type equivalence across spellings (MySQL)
3. Migration statement order and destructive-change warnings
4. Down migrations rendered from the live schema
5. Migration file naming and writing

Run with:
    pytest tests/test_differ.py -v
"""

import os

import pytest

from core.contracts import Dialect
from core.errors import GenerationError
from core.models import (
    ColumnDef,
    DatabaseSchema,
    DBColumn,
    DBConstraint,
    DBEnum,
    DBIndex,
    DBTable,
    EnumDef,
    ForeignKeyRef,
    IndexDef,
    SchemaDiff,
    SchemaModel,
    TableDef,
)
from core.schema.differ import (
    MIGRATION_FILE_RE,
    compare_schemas,
    db_column_type,
    generate_down_sql,
    generate_migration_sql,
    migration_file_name,
    render_migration_script,
    write_migration_files,
)


def _make_model():
    users = TableDef(name="users", columns=[
        ColumnDef(name="id", type="SERIAL", primary=True),
        ColumnDef(name="email", type="VARCHAR(255)", nullable=False),
        ColumnDef(name="status", type="enum_user_status", nullable=False,
                  enum_values=["active", "banned", "pending"]),
    ])
    posts = TableDef(name="posts", columns=[
        ColumnDef(name="id", type="SERIAL", primary=True),
        ColumnDef(name="user_id", type="INTEGER", foreign=ForeignKeyRef(table="users")),
    ])
    return SchemaModel(
        tables=[users, posts],
        enums=[EnumDef(name="enum_user_status", values=["active", "banned", "pending"])],
        indexes=[IndexDef(name="idx_users_email", table="users", columns=["email"])],
    )


def _make_live_schema():
    users = DBTable(name="users", columns=[
        DBColumn(name="id", data_type="integer", is_nullable=False, ordinal_position=1,
                 default="nextval('users_id_seq'::regclass)", is_primary=True, is_auto_increment=True),
        DBColumn(name="email", data_type="character varying", max_length=100, ordinal_position=2),
        DBColumn(name="legacy", data_type="text", ordinal_position=3),
    ])
    old_table = DBTable(name="old_table", columns=[
        DBColumn(name="id", data_type="integer", is_nullable=False, ordinal_position=1),
    ])
    tracking = DBTable(name="schema_migrations", columns=[
        DBColumn(name="version", data_type="integer", is_nullable=False, ordinal_position=1),
    ])
    return DatabaseSchema(
        dialect="postgres",
        tables=[old_table, tracking, users],
        enums=[
            DBEnum(name="enum_user_status", values=["active", "banned"]),
            DBEnum(name="old_enum", values=["x"]),
        ],
        indexes=[
            DBIndex(name="users_pkey", table="users", columns=["id"], unique=True, primary=True),
            DBIndex(name="idx_users_legacy", table="users", columns=["legacy"]),
        ],
        constraints=[
            DBConstraint(name="users_pkey", table="users", type="PRIMARY KEY", columns=["id"]),
        ],
    )


# ============================================================================
# COMPARISON
# ============================================================================

class TestCompare:

    def test_tables(self):
        diff = compare_schemas(_make_model(), _make_live_schema())
        assert diff.tables_added == ["posts"]
        assert diff.tables_removed == ["old_table"]

    def test_tracking_table_ignored(self):
        diff = compare_schemas(_make_model(), _make_live_schema())
        assert "schema_migrations" not in diff.tables_removed

    def test_columns(self):
        diff = compare_schemas(_make_model(), _make_live_schema())
        assert len(diff.tables_modified) == 1
        users = diff.tables_modified[0]
        assert users.columns_added == ["status"]
        assert users.columns_removed == ["legacy"]
        assert len(users.columns_modified) == 1

        email = users.columns_modified[0]
        assert email.name == "email"
        assert email.old_type == "character varying(100)"
        assert email.new_type == "VARCHAR(255)"
        assert email.old_nullable is True
        assert email.new_nullable is False

    def test_enums(self):
        diff = compare_schemas(_make_model(), _make_live_schema())
        assert diff.enums_added == []
        assert diff.enums_removed == ["old_enum"]
        assert diff.enums_modified[0].name == "enum_user_status"
        assert diff.enums_modified[0].values_added == ["pending"]

    def test_indexes_skip_primary(self):
        diff = compare_schemas(_make_model(), _make_live_schema())
        assert diff.indexes_added == ["idx_users_email"]
        assert diff.indexes_removed == ["idx_users_legacy"]
        assert diff.index_tables == {"idx_users_email": "users", "idx_users_legacy": "users"}

    def test_identical_schema_has_no_changes(self):
        model = SchemaModel(tables=[TableDef(name="t", columns=[
            ColumnDef(name="id", type="INT4", primary=True),
            ColumnDef(name="created", type="TIMESTAMP WITH TIME ZONE"),
        ])])
        live = DatabaseSchema(dialect="postgres", tables=[DBTable(name="t", columns=[
            DBColumn(name="id", data_type="integer", is_nullable=False),
            DBColumn(name="created", data_type="timestamp with time zone"),
        ])])
        diff = compare_schemas(model, live)
        assert not diff.has_changes()
        assert diff.summary().startswith("=== NO SCHEMA CHANGES DETECTED ===")

    def test_mysql_spellings_equivalent(self):
        model = SchemaModel(tables=[TableDef(name="t", columns=[
            ColumnDef(name="id", type="INTEGER", primary=True, auto_increment=True),
            ColumnDef(name="flag", type="BOOLEAN", nullable=False),
            ColumnDef(name="kind", type="enum_t_kind", enum_values=["a", "b"]),
        ])])
        live = DatabaseSchema(
            dialect="mysql",
            tables=[DBTable(name="t", columns=[
                DBColumn(name="id", data_type="int", column_type="int", is_nullable=False),
                DBColumn(name="flag", data_type="tinyint", column_type="tinyint(1)", is_nullable=False),
                DBColumn(name="kind", data_type="enum", column_type="enum('a','b')"),
            ])],
            enums=[DBEnum(name="t.kind", values=["a", "b"])],
            indexes=[DBIndex(name="PRIMARY", table="t", columns=["id"], unique=True, primary=True)],
        )
        assert not compare_schemas(model, live).has_changes()

    def test_live_schema_untouched(self):
        live = _make_live_schema()
        before = live.model_dump()
        compare_schemas(_make_model(), live)
        assert live.model_dump() == before

    def test_summary_lists_changes(self):
        summary = compare_schemas(_make_model(), _make_live_schema()).summary()
        assert "TABLES TO ADD:\n  + posts" in summary
        assert "  - old_table (DATA WILL BE LOST)" in summary
        assert "    - Column: legacy (DATA WILL BE LOST)" in summary
        assert "      nullable: NULL -> NOT NULL" in summary


class TestLiveColumnTypes:

    def test_postgres_enum_uses_udt_name(self):
        column = DBColumn(name="s", data_type="USER-DEFINED", udt_name="enum_user_status")
        assert db_column_type(column, Dialect.POSTGRES) == "enum_user_status"

    def test_postgres_numeric_precision(self):
        column = DBColumn(name="n", data_type="numeric", numeric_precision=10, numeric_scale=2)
        assert db_column_type(column, Dialect.POSTGRES) == "numeric(10,2)"

    def test_mysql_full_type(self):
        column = DBColumn(name="v", data_type="varchar", column_type="varchar(40)")
        assert db_column_type(column, Dialect.MYSQL) == "varchar(40)"


class TestFloatRoundTrip:

    def _compare(self, declared, live, dialect):
        model = SchemaModel(tables=[TableDef(name="readings", columns=[
            ColumnDef(name="value", type=declared),
        ])])
        schema = DatabaseSchema(dialect=dialect.value, tables=[DBTable(name="readings", columns=[
            DBColumn(name="value", **live),
        ])])
        return compare_schemas(model, schema, dialect)

    def test_postgres_float_is_double_precision(self):
        diff = self._compare("FLOAT", {"data_type": "double precision"}, Dialect.POSTGRES)
        assert not diff.has_changes()

    def test_postgres_float8(self):
        diff = self._compare("FLOAT8", {"data_type": "double precision"}, Dialect.POSTGRES)
        assert not diff.has_changes()

    def test_postgres_low_precision_float_is_real(self):
        diff = self._compare("FLOAT(10)", {"data_type": "real"}, Dialect.POSTGRES)
        assert not diff.has_changes()

    def test_postgres_float_against_real_differs(self):
        diff = self._compare("FLOAT", {"data_type": "real"}, Dialect.POSTGRES)
        assert diff.tables_modified[0].columns_modified[0].name == "value"

    def test_mysql_float_is_single_precision(self):
        diff = self._compare("FLOAT", {"data_type": "float", "column_type": "float"}, Dialect.MYSQL)
        assert not diff.has_changes()


# ============================================================================
# MIGRATION SQL
# ============================================================================

class TestMigrationSQL:

    def _statements(self, **kwargs):
        model = _make_model()
        diff = compare_schemas(model, _make_live_schema())
        return generate_migration_sql(diff, model, "postgres", **kwargs)

    def test_order(self):
        statements = self._statements()
        assert statements[0] == "ALTER TYPE enum_user_status ADD VALUE 'pending';"
        assert statements[1].startswith("-- POSTGRES TABLE: posts --\nCREATE TABLE posts (")
        assert "CONSTRAINT fk_posts_user_id FOREIGN KEY (user_id) REFERENCES users(id)" in statements[1]
        assert statements[2:7] == [
            "ALTER TABLE users ADD COLUMN status enum_user_status NOT NULL;",
            "ALTER TABLE users ALTER COLUMN email TYPE VARCHAR(255) USING email::VARCHAR(255);",
            "ALTER TABLE users ALTER COLUMN email SET NOT NULL;",
            "CREATE INDEX idx_users_email ON users (email);",
            "DROP INDEX IF EXISTS idx_users_legacy;",
        ]

    def test_new_table_does_not_recreate_enum(self):
        assert not any(s.startswith("CREATE TYPE") for s in self._statements())

    def test_destructive_changes_are_warnings(self):
        statements = self._statements()
        assert statements[7:] == [
            "-- WARNING: Dropping column users.legacy - This will delete data!\n"
            "-- ALTER TABLE users DROP COLUMN legacy;",
            "-- WARNING: Dropping table old_table - This will delete all data!\n"
            "-- DROP TABLE IF EXISTS old_table CASCADE;",
            "-- WARNING: Dropping enum old_enum - Make sure no tables use this enum!\n"
            "-- DROP TYPE IF EXISTS old_enum;",
        ]

    def test_destructive_changes_allowed(self):
        statements = self._statements(allow_destructive=True)
        assert statements[7:] == [
            "ALTER TABLE users DROP COLUMN legacy;",
            "DROP TABLE IF EXISTS old_table CASCADE;",
            "DROP TYPE IF EXISTS old_enum;",
        ]

    def test_undeclared_table_raises(self):
        with pytest.raises(GenerationError, match="ghost"):
            generate_migration_sql(SchemaDiff(tables_added=["ghost"]), SchemaModel(), "postgres")

    def test_mysql_drop_index_names_table(self):
        diff = SchemaDiff(indexes_removed=["idx_old"], index_tables={"idx_old": "t"})
        assert generate_migration_sql(diff, SchemaModel(), "mysql") == ["DROP INDEX idx_old ON t;"]


class TestDownSQL:

    def test_reverses_migration(self):
        model = _make_model()
        live = _make_live_schema()
        diff = compare_schemas(model, live)
        statements = generate_down_sql(diff, live, "postgres")

        assert statements[0] == "CREATE TYPE old_enum AS ENUM ('x');"
        assert statements[1].startswith("-- WARNING: Cannot remove enum values ['pending']")
        assert any("CREATE TABLE old_table" in s for s in statements)
        assert "ALTER TABLE users ADD COLUMN legacy text;" in statements
        assert (
            "ALTER TABLE users ALTER COLUMN email TYPE character varying(100) "
            "USING email::character varying(100);"
        ) in statements
        assert "ALTER TABLE users ALTER COLUMN email DROP NOT NULL;" in statements
        assert "CREATE INDEX idx_users_legacy ON users (legacy);" in statements
        assert "DROP INDEX IF EXISTS idx_users_email;" in statements
        assert statements[-2:] == [
            "ALTER TABLE users DROP COLUMN status;",
            "DROP TABLE IF EXISTS posts CASCADE;",
        ]


# ============================================================================
# MIGRATION FILES
# ============================================================================

class TestMigrationFiles:

    def test_file_name_slug(self):
        assert migration_file_name(1700000000, "Add Posts!", "up") == "1700000000_add_posts.up.sql"
        match = MIGRATION_FILE_RE.match("1700000000_add_posts.down.sql")
        assert match.group("version") == "1700000000"
        assert match.group("name") == "add_posts"
        assert match.group("direction") == "down"

    def test_render_empty_script(self):
        script = render_migration_script([], "down")
        assert script.startswith("-- Migration rollback\n-- Generated on: ")
        assert "-- Direction: DOWN\n" in script
        assert script.endswith("-- No operations needed\n")

    def test_write_pair(self, tmp_path):
        out_dir = str(tmp_path / "migrations")
        files = write_migration_files(out_dir, "add posts", "UP;\n", "DOWN;\n", version=42)
        assert files.version == 42
        assert os.path.basename(files.up_file) == "42_add_posts.up.sql"
        with open(files.down_file, encoding="utf-8") as handle:
            assert handle.read() == "DOWN;\n"
