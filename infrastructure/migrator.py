# ============================================================================
# VERSIONED MIGRATION RUNNER
# ============================================================================
# STATUS: Infrastructure - Ordered, tracked schema migrations
# PURPOSE: Apply and roll back numbered migrations, one transaction each
# CREATED: 19 OCT 2026
# EXPORTS: Migration, Migrator, MigrationStatus, register_sql_directory
# ============================================================================
"""
Versioned Migration Runner

Migrations are registered in code or loaded from a directory of
``<version>_<name>.up.sql`` / ``<version>_<name>.down.sql`` files. Applied
versions are recorded in the tracking table:

    schema_migrations(version INTEGER PRIMARY KEY,
                      description TEXT,
                      applied_at TIMESTAMP)

Rules:
- Versions apply in ascending order; only versions above the current one run
- Each step runs in its own transaction together with its tracking row
- A failing step is rolled back and aborts the run; earlier steps stay applied
- Rolling back runs ``down`` in descending order and deletes the tracking row

Two runners against the same database at once are not coordinated; run one
at a time.

Usage:
    with connect(dsn) as conn:
        migrator = Migrator(conn)
        register_sql_directory(migrator, "migrations")
        migrator.migrate_up()
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from core.config import get_defaults
from core.errors import DuplicateMigrationError, MigrationError, error_context
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from core.schema.differ import MIGRATION_FILE_RE
from infrastructure.connection import DatabaseConnection

logger = get_logger("migrator", ComponentType.MIGRATOR)

MigrationFunc = Callable[[DatabaseConnection], Any]


def _noop(conn: DatabaseConnection) -> None:
    return None


@dataclass
class Migration:
    """One versioned step. ``up`` and ``down`` receive the open connection."""
    version: int
    description: str
    up: MigrationFunc = _noop
    down: MigrationFunc = _noop


@dataclass
class MigrationStatus:
    current_version: int
    pending: List[int] = field(default_factory=list)
    total: int = 0

    @property
    def has_pending(self) -> bool:
        return bool(self.pending)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_version": self.current_version,
            "pending": self.pending,
            "total": self.total,
            "has_pending": self.has_pending,
        }


class Migrator:
    """Runs registered migrations against one connection."""

    def __init__(
        self,
        conn: DatabaseConnection,
        tracking_table: Optional[str] = None,
        statement_timeout: Optional[float] = None,
    ):
        defaults = get_defaults().migration
        self.conn = conn
        self.tracking_table = tracking_table or defaults.tracking_table
        # Seconds per migration step; 0 = bounded by the deadline only
        self.statement_timeout = statement_timeout or defaults.statement_timeout_seconds
        self._migrations: Dict[int, Migration] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def register(self, migration: Migration) -> None:
        """
        Raises:
            DuplicateMigrationError: If the version is already registered
        """
        if migration.version in self._migrations:
            raise DuplicateMigrationError(
                f"Migration version {migration.version} is already registered",
                version=migration.version,
                operation="register migration",
            )
        self._migrations[migration.version] = migration

    @property
    def migrations(self) -> List[Migration]:
        """Registered migrations in ascending version order."""
        return [self._migrations[v] for v in sorted(self._migrations)]

    # =========================================================================
    # TRACKING TABLE
    # =========================================================================

    def initialize(self) -> None:
        """Create the tracking table if it does not exist."""
        with error_context("create migrations table", MigrationError):
            self.conn.execute(
                f"CREATE TABLE IF NOT EXISTS {self.tracking_table} ("
                "version INTEGER PRIMARY KEY, "
                "description TEXT NOT NULL, "
                "applied_at TIMESTAMP NOT NULL)"
            )

    def current_version(self) -> int:
        """Highest applied version, 0 when nothing is applied."""
        with error_context("read current version", MigrationError):
            row = self.conn.fetch_one(
                f"SELECT COALESCE(MAX(version), 0) AS version FROM {self.tracking_table}"
            )
        return int(row["version"]) if row else 0

    def applied_versions(self) -> List[int]:
        with error_context("read applied versions", MigrationError):
            rows = self.conn.fetch_all(
                f"SELECT version FROM {self.tracking_table} ORDER BY version"
            )
        return [int(row["version"]) for row in rows]

    def pending_versions(self) -> List[int]:
        current = self.current_version()
        return [m.version for m in self.migrations if m.version > current]

    def status(self) -> MigrationStatus:
        self.initialize()
        return MigrationStatus(
            current_version=self.current_version(),
            pending=self.pending_versions(),
            total=len(self._migrations),
        )

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def migrate_up(self) -> List[int]:
        """
        Apply every pending migration.

        Returns:
            Versions applied in this run

        Raises:
            MigrationError: On the first failing migration (rolled back)
        """
        self.initialize()
        current = self.current_version()
        applied = []
        for migration in self.migrations:
            if migration.version <= current:
                continue
            self._apply(migration)
            applied.append(migration.version)

        if applied:
            log_checkpoint("migrations_applied", {"versions": applied})
        else:
            logger.info("No pending migrations")
        return applied

    def migrate_down(self, target: int) -> List[int]:
        """
        Roll back applied migrations above ``target``, newest first.

        Returns:
            Versions rolled back in this run
        """
        self.initialize()
        current = self.current_version()
        if target >= current:
            logger.info(f"Already at version {current}, nothing to roll back")
            return []

        rolled_back = []
        for migration in reversed(self.migrations):
            if migration.version <= target or migration.version > current:
                continue
            self._revert(migration)
            rolled_back.append(migration.version)

        if rolled_back:
            log_checkpoint("migrations_rolled_back", {"versions": rolled_back, "target": target})
        return rolled_back

    def migrate_to(self, target: int) -> List[int]:
        """Move to ``target``, applying or rolling back as needed."""
        self.initialize()
        current = self.current_version()
        if target > current:
            applied = []
            for migration in self.migrations:
                if current < migration.version <= target:
                    self._apply(migration)
                    applied.append(migration.version)
            return applied
        return self.migrate_down(target)

    def _apply(self, migration: Migration) -> None:
        with log_context(migration_version=migration.version, phase="up"):
            logger.info(f"Applying migration {migration.version}: {migration.description}")
            with error_context(
                f"apply migration {migration.version}", MigrationError, version=migration.version,
            ):
                with self.conn.transaction(
                    f"apply migration {migration.version}", timeout_seconds=self.statement_timeout,
                ):
                    migration.up(self.conn)
                    self.conn.execute(
                        f"INSERT INTO {self.tracking_table} (version, description, applied_at) "
                        "VALUES (%s, %s, %s)",
                        (migration.version, migration.description, datetime.now(timezone.utc).replace(tzinfo=None)),
                    )

    def _revert(self, migration: Migration) -> None:
        with log_context(migration_version=migration.version, phase="down"):
            logger.info(f"Rolling back migration {migration.version}: {migration.description}")
            with error_context(
                f"roll back migration {migration.version}", MigrationError, version=migration.version,
            ):
                with self.conn.transaction(
                    f"roll back migration {migration.version}", timeout_seconds=self.statement_timeout,
                ):
                    migration.down(self.conn)
                    self.conn.execute(
                        f"DELETE FROM {self.tracking_table} WHERE version = %s",
                        (migration.version,),
                    )


# ============================================================================
# SQL FILE MIGRATIONS
# ============================================================================

def _script_runner(script: str) -> MigrationFunc:
    def run(conn: DatabaseConnection) -> int:
        return conn.execute_script(script)
    return run


def register_sql_directory(migrator: Migrator, path: Optional[str] = None) -> List[Migration]:
    """
    Register every ``<version>_<name>.(up|down).sql`` pair in ``path``
    (default: the MIGRATIONS_DIR setting).

    A version with only one side gets a no-op for the other. Files that do
    not match the naming pattern are ignored.

    Raises:
        MigrationError: If the directory cannot be read
        DuplicateMigrationError: If a version is already registered
    """
    path = path or get_defaults().migration.migrations_dir
    with error_context("read migrations directory", MigrationError, subject=path):
        names = sorted(os.listdir(path))

    found: Dict[int, Dict[str, Any]] = {}
    for name in names:
        match = MIGRATION_FILE_RE.match(name)
        if not match:
            continue
        version = int(match.group("version"))
        entry = found.setdefault(version, {"description": match.group("name")})
        with error_context("read migration file", MigrationError, subject=name, version=version):
            with open(os.path.join(path, name), encoding="utf-8") as f:
                entry[match.group("direction")] = f.read()

    registered = []
    for version in sorted(found):
        entry = found[version]
        migration = Migration(
            version=version,
            description=entry["description"].replace("_", " "),
            up=_script_runner(entry["up"]) if "up" in entry else _noop,
            down=_script_runner(entry["down"]) if "down" in entry else _noop,
        )
        migrator.register(migration)
        registered.append(migration)

    logger.debug(f"Registered {len(registered)} migrations from {path}")
    return registered


__all__ = [
    "Migration",
    "MigrationStatus",
    "Migrator",
    "register_sql_directory",
]
