#!/usr/bin/env python
# ============================================================================
# SCHEMA ENGINE - COMMAND LINE
# ============================================================================
# STATUS: Entry point - argparse command line
# PURPOSE: Generate, compare, migrate and bootstrap database schemas
# CREATED: 19 OCT 2026
# USAGE:
#   python main.py generate ./models postgres
#   python main.py compare ./models postgres://localhost/app
#   python main.py migrate ./models postgres://localhost/app --output-dir migrations
#   python main.py migrate-up postgres://localhost/app migrations
# ============================================================================
"""
Schema Engine Command Line

Generated SQL and reports go to stdout; logs go to stderr. Every command
exits 0 on success and 1 with a message on stderr on failure.

Destructive commands ask for typed confirmation. Anything other than the
exact expected text cancels before any statement runs. With --dry-run the
prompts are skipped and the statements are printed instead of executed.
"""

import argparse
import json
import sys
from typing import List, Optional

from __version__ import __version__
from core.config import get_defaults
from core.deadline import Deadline
from core.errors import ConfirmationDeclined, SchemaEngineError
from core.logging import ComponentType, configure_logging, get_logger
from core.schema import (
    compare_schemas,
    generate_down_sql,
    generate_migration_sql,
    get_generator,
    parse_schema,
    resolve_dependencies,
    write_migration_files,
)
from core.schema.differ import render_migration_script
from infrastructure import (
    BootstrapMigrator,
    BootstrapTemplate,
    Migrator,
    SchemaWriter,
    connect,
    get_reader,
    parse_dsn,
    register_sql_directory,
)
from infrastructure.postgresql import build_connection_string

logger = get_logger("cli", ComponentType.CLI)


# ============================================================================
# HELPERS
# ============================================================================

def _out(text: str = "") -> None:
    sys.stdout.write(text + "\n")


def _deadline(args) -> Deadline:
    return Deadline.after(getattr(args, "timeout", None))


def _dsn(args) -> str:
    return args.dsn or build_connection_string()


def _print_plan(result) -> None:
    if not result.dry_run:
        return
    _out("-- DRY RUN: nothing was executed")
    for statement in result.planned:
        _out(f"{statement};")


def _load_model(directory: str):
    model = parse_schema(directory)
    for issue in model.issues:
        logger.warning(str(issue))
    return model


def confirm(prompt: str, expected: str) -> None:
    """
    Ask for typed confirmation.

    End of input on stdin counts as a refusal.

    Raises:
        ConfirmationDeclined: If the answer is not exactly ``expected``
    """
    if not expected:
        raise ConfirmationDeclined("Operation cancelled: nothing to confirm against", operation="confirm")
    try:
        answer = input(f"{prompt}\nType '{expected}' to continue: ")
    except EOFError:
        sys.stderr.write("\n")
        answer = ""
    if answer.strip() != expected:
        raise ConfirmationDeclined("Operation cancelled", operation="confirm")


# ============================================================================
# SCHEMA COMMANDS
# ============================================================================

def cmd_generate(args) -> None:
    model = _load_model(args.directory)
    resolution = resolve_dependencies(model)
    dialects = [args.dialect] if args.dialect else list(get_defaults().generator.generate_dialects)
    for position, name in enumerate(dialects):
        if position > 0:
            _out()
        sys.stdout.write(get_generator(name).render_schema(model, resolution))


def cmd_deps(args) -> None:
    model = _load_model(args.directory)
    resolution = resolve_dependencies(model)

    _out("CREATION ORDER:")
    for position, name in enumerate(resolution.order, start=1):
        dependencies = model.dependencies.get(name) or []
        suffix = f" -> {', '.join(dependencies)}" if dependencies else ""
        _out(f"  {position}. {name}{suffix}")

    if resolution.cycles:
        _out()
        _out("CYCLES:")
        for cycle in resolution.cycles:
            _out(f"  {' -> '.join(cycle)}")

    if resolution.deferred:
        _out()
        _out("DEFERRED FOREIGN KEYS:")
        for item in resolution.deferred:
            _out(f"  {item.table}.{item.column.name} -> {item.target_table}")

    if resolution.missing_references:
        _out()
        _out("MISSING REFERENCES:")
        for table, target in resolution.missing_references:
            _out(f"  {table} -> {target}")


def cmd_write_db(args) -> None:
    model = _load_model(args.directory)
    with connect(_dsn(args), _deadline(args)) as conn:
        result = SchemaWriter(conn, dry_run=args.dry_run).write_schema(model)
    _print_plan(result)
    _out(f"Created tables: {', '.join(result.created_tables) or 'none'}")
    _out(f"Created enums: {', '.join(result.created_enums) or 'none'}")
    if result.skipped_tables:
        _out(f"Skipped existing tables: {', '.join(result.skipped_tables)}")


def cmd_read_db(args) -> None:
    with connect(_dsn(args), _deadline(args)) as conn:
        schema = get_reader(conn).read_schema()

    if args.json:
        _out(json.dumps(schema.model_dump(), indent=2, default=str))
        return

    _out(f"=== {schema.dialect.upper()} SCHEMA ===")
    for table in schema.tables:
        _out()
        _out(f"TABLE {table.name}" + (f" ({table.comment})" if table.comment else ""))
        for column in table.columns:
            flags = []
            if column.is_primary:
                flags.append("PRIMARY KEY")
            if column.is_unique:
                flags.append("UNIQUE")
            if not column.is_nullable:
                flags.append("NOT NULL")
            if column.is_auto_increment:
                flags.append("AUTO INCREMENT")
            if column.default is not None:
                flags.append(f"DEFAULT {column.default}")
            kind = column.column_type or column.udt_name or column.data_type
            _out(f"  {column.name} {kind} {' '.join(flags)}".rstrip())
        for index in schema.indexes_for(table.name):
            unique = "UNIQUE " if index.unique else ""
            _out(f"  {unique}INDEX {index.name} ({', '.join(index.columns)})")

    if schema.enums:
        _out()
        _out("ENUMS:")
        for enum in schema.enums:
            _out(f"  {enum.name}: {', '.join(enum.values)}")


def cmd_compare(args) -> None:
    model = _load_model(args.directory)
    with connect(_dsn(args), _deadline(args)) as conn:
        schema = get_reader(conn).read_schema()
    sys.stdout.write(compare_schemas(model, schema, conn.dialect).summary())


def cmd_migrate(args) -> None:
    model = _load_model(args.directory)
    with connect(_dsn(args), _deadline(args)) as conn:
        schema = get_reader(conn).read_schema()
    dialect = conn.dialect

    diff = compare_schemas(model, schema, dialect)
    if not diff.has_changes():
        _out("No schema changes detected")
        return

    up = generate_migration_sql(diff, model, dialect, allow_destructive=args.allow_destructive or None)
    if not args.output_dir:
        sys.stdout.write(render_migration_script(up, "up"))
        return

    down = generate_down_sql(diff, schema, dialect)
    files = write_migration_files(
        args.output_dir,
        args.name,
        render_migration_script(up, "up"),
        render_migration_script(down, "down"),
    )
    _out(f"Wrote {files.up_file}")
    _out(f"Wrote {files.down_file}")


def cmd_drop_schema(args) -> None:
    model = _load_model(args.directory)
    tables = ", ".join(model.table_names) or "none"
    if not args.dry_run:
        confirm(f"This will drop the declared tables: {tables}", "yes")
        confirm("Dropped tables cannot be recovered.", "DROP SCHEMA")

    with connect(_dsn(args), _deadline(args)) as conn:
        result = SchemaWriter(conn, dry_run=args.dry_run).drop_schema(model)
    _print_plan(result)
    _out(f"Dropped tables: {', '.join(result.dropped_tables) or 'none'}")
    _out(f"Dropped enums: {', '.join(result.dropped_enums) or 'none'}")


def cmd_drop_all(args) -> None:
    dsn = _dsn(args)
    database = parse_dsn(dsn).database
    if not database:
        raise SchemaEngineError(
            "drop-all needs a database name in the DSN", operation="drop all",
        )
    if not args.dry_run:
        confirm(f"This will drop EVERY table and enum type in database '{database}'.", "DELETE EVERYTHING")
        confirm("Confirm the database name.", database)

    with connect(dsn, _deadline(args)) as conn:
        result = SchemaWriter(conn, dry_run=args.dry_run).drop_all()
    _print_plan(result)
    _out(f"Dropped {len(result.dropped_tables)} tables and {len(result.dropped_enums)} enum types")


# ============================================================================
# MIGRATION COMMANDS
# ============================================================================

def _migrator(conn, migrations_dir: Optional[str]) -> Migrator:
    migrator = Migrator(conn)
    register_sql_directory(migrator, migrations_dir)
    return migrator


def cmd_migrate_up(args) -> None:
    with connect(_dsn(args), _deadline(args)) as conn:
        applied = _migrator(conn, args.migrations_dir).migrate_up()
    if applied:
        _out(f"Applied migrations: {', '.join(str(v) for v in applied)}")
    else:
        _out("No pending migrations")


def cmd_migrate_down(args) -> None:
    with connect(_dsn(args), _deadline(args)) as conn:
        rolled_back = _migrator(conn, args.migrations_dir).migrate_down(args.target)
    if rolled_back:
        _out(f"Rolled back migrations: {', '.join(str(v) for v in rolled_back)}")
    else:
        _out("Nothing to roll back")


def cmd_migrate_status(args) -> None:
    with connect(_dsn(args), _deadline(args)) as conn:
        status = _migrator(conn, args.migrations_dir).status()
    _out(f"Current version: {status.current_version}")
    _out(f"Registered migrations: {status.total}")
    if status.has_pending:
        _out(f"Pending: {', '.join(str(v) for v in status.pending)}")
    else:
        _out("Pending: none")


def cmd_bootstrap(args) -> None:
    template = BootstrapTemplate.from_defaults(username=args.username)
    migrator = BootstrapMigrator(deadline=_deadline(args))
    if args.print_sql:
        migrator.print_sql(template)
        return
    migrator.apply(_dsn(args), template, dry_run=args.dry_run)


# ============================================================================
# PARSER
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schema-engine",
        description="Generate, compare and migrate database schemas from annotated source",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  DATABASE_URL          Used when a command's DSN is omitted
  POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER, POSTGRES_PASSWORD
                        Used when neither a DSN nor DATABASE_URL is given
  LOG_LEVEL             DEBUG, INFO, WARNING (default), ERROR
  LOG_FORMAT            'json' for structured logs
  MIGRATIONS_TABLE      Tracking table name (default: schema_migrations)
  MIGRATIONS_DIR        Versioned migrations directory (default: migrations)
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Cancel database work after this many seconds",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="Render CREATE statements for a source tree")
    p.add_argument("directory")
    p.add_argument("dialect", nargs="?", help="postgres, mysql, mariadb or generic (default: all)")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("deps", help="Show table creation order and cycles")
    p.add_argument("directory")
    p.set_defaults(func=cmd_deps)

    p = sub.add_parser("write-db", help="Create declared tables that do not exist yet")
    p.add_argument("directory")
    p.add_argument("dsn", nargs="?")
    p.add_argument("--dry-run", action="store_true", help="Print the statements without executing them")
    p.set_defaults(func=cmd_write_db)

    p = sub.add_parser("read-db", help="Print the live schema")
    p.add_argument("dsn", nargs="?")
    p.add_argument("--json", action="store_true", help="Print the schema as JSON")
    p.set_defaults(func=cmd_read_db)

    p = sub.add_parser("compare", help="Report differences between source and database")
    p.add_argument("directory")
    p.add_argument("dsn", nargs="?")
    p.set_defaults(func=cmd_compare)

    p = sub.add_parser("migrate", help="Generate migration SQL from the differences")
    p.add_argument("directory")
    p.add_argument("dsn", nargs="?")
    p.add_argument("--output-dir", help="Write <version>_<name>.up.sql/.down.sql here")
    p.add_argument("--name", default="schema_update", help="Migration name (default: schema_update)")
    p.add_argument(
        "--allow-destructive", action="store_true",
        help="Emit DROP statements instead of commented warnings",
    )
    p.set_defaults(func=cmd_migrate)

    p = sub.add_parser("drop-schema", help="Drop the declared tables and enums")
    p.add_argument("directory")
    p.add_argument("dsn", nargs="?")
    p.add_argument("--dry-run", action="store_true", help="Print the statements without executing them")
    p.set_defaults(func=cmd_drop_schema)

    p = sub.add_parser("drop-all", help="Drop every table and enum in the database")
    p.add_argument("dsn", nargs="?")
    p.add_argument("--dry-run", action="store_true", help="Print the statements without executing them")
    p.set_defaults(func=cmd_drop_all)

    p = sub.add_parser("migrate-up", help="Apply pending versioned migrations")
    p.add_argument("dsn")
    p.add_argument("migrations_dir", nargs="?", help="Default: MIGRATIONS_DIR or ./migrations")
    p.set_defaults(func=cmd_migrate_up)

    p = sub.add_parser("migrate-down", help="Roll back to a target version")
    p.add_argument("dsn")
    p.add_argument("migrations_dir")
    p.add_argument("target", type=int)
    p.set_defaults(func=cmd_migrate_down)

    p = sub.add_parser("migrate-status", help="Show applied and pending versions")
    p.add_argument("dsn")
    p.add_argument("migrations_dir", nargs="?", help="Default: MIGRATIONS_DIR or ./migrations")
    p.set_defaults(func=cmd_migrate_status)

    p = sub.add_parser("bootstrap", help="Apply the PostgreSQL bootstrap files")
    p.add_argument("dsn", nargs="?")
    p.add_argument("--dry-run", action="store_true", help="Preview without connecting")
    p.add_argument("--print", dest="print_sql", action="store_true", help="Print the rendered SQL")
    p.add_argument("--username", help="Application role name")
    p.set_defaults(func=cmd_bootstrap)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level="DEBUG" if args.verbose else None)

    try:
        args.func(args)
    except ConfirmationDeclined as e:
        sys.stderr.write(f"{e}\n")
        return 1
    except SchemaEngineError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        sys.stderr.write(f"Error: {e}\n")
        return 1
    except KeyboardInterrupt:
        sys.stderr.write("Interrupted\n")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
