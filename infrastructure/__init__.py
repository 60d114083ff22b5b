# ============================================================================
# INFRASTRUCTURE MODULE
# ============================================================================
# STATUS: Infrastructure - Live database operations
# PURPOSE: Connections, introspection, schema writes, migrations, bootstrap
# CREATED: 19 OCT 2026
# ============================================================================
"""
Infrastructure module for the schema engine.

Provides:
- connect: DatabaseConnection for a postgres:// or mysql:// DSN
- read_schema: Introspect a live database into a DatabaseSchema
- SchemaWriter: Create or drop a SchemaModel directly
- Migrator: Versioned, tracked migrations
- BootstrapMigrator: One-time PostgreSQL role and extension setup

Usage:
    from infrastructure import connect, Migrator, register_sql_directory

    with connect(dsn) as conn:
        migrator = Migrator(conn)
        register_sql_directory(migrator, "migrations")
        migrator.migrate_up()
"""

from infrastructure.connection import (
    ConnectionInfo,
    DatabaseConnection,
    connect,
    parse_dsn,
)
from infrastructure.introspection import get_reader, read_schema
from infrastructure.schema_writer import SchemaWriter, WriteResult
from infrastructure.migrator import (
    Migration,
    MigrationStatus,
    Migrator,
    register_sql_directory,
)
from infrastructure.bootstrap import BootstrapMigrator, BootstrapTemplate

__all__ = [
    # Connections
    'ConnectionInfo',
    'DatabaseConnection',
    'connect',
    'parse_dsn',
    # Introspection
    'get_reader',
    'read_schema',
    # Schema writes
    'SchemaWriter',
    'WriteResult',
    # Migrations
    'Migration',
    'MigrationStatus',
    'Migrator',
    'register_sql_directory',
    # Bootstrap
    'BootstrapMigrator',
    'BootstrapTemplate',
]
