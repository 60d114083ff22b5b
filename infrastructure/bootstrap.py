# ============================================================================
# BOOTSTRAP MIGRATOR
# ============================================================================
# STATUS: Infrastructure - One-time PostgreSQL setup
# PURPOSE: Render packaged role/extension SQL with Jinja2 and apply it
# CREATED: 19 OCT 2026
# EXPORTS: BootstrapTemplate, BootstrapMigrator
# ============================================================================
"""
Bootstrap Migrator

The files in ``infrastructure/bootstrap_sql/`` prepare a fresh PostgreSQL
database before any versioned migration runs: application roles,
extensions, grants. They are Jinja2 templates with three variables:

    {{Username}}                     application role
    {{UsernameForMigrations}}        role that owns the schema
    {{UsernameForBackgroundWorker}}  role for background jobs

Files are applied in alphabetical order, each in its own transaction. The
statements are written to be idempotent, so applying twice is safe.

Usage:
    migrator = BootstrapMigrator()
    migrator.apply(dsn, BootstrapTemplate.from_defaults(), dry_run=True)
"""

import os
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, TextIO

from jinja2 import Environment, BaseLoader, StrictUndefined, TemplateError

from core.config import get_defaults
from core.contracts import Dialect
from core.deadline import Deadline
from core.errors import BootstrapError, UnsupportedDialectError, error_context
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from infrastructure.connection import connect, parse_dsn

logger = get_logger("bootstrap", ComponentType.BOOTSTRAP)

BOOTSTRAP_SQL_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "bootstrap_sql")


@dataclass
class BootstrapTemplate:
    """Role names substituted into the bootstrap files."""
    username: str
    username_for_migrations: str
    username_for_background_worker: str

    @classmethod
    def from_defaults(cls, username: Optional[str] = None) -> "BootstrapTemplate":
        defaults = get_defaults().bootstrap
        return cls(
            username=username or defaults.username,
            username_for_migrations=defaults.username_for_migrations,
            username_for_background_worker=defaults.username_for_background_worker,
        )

    def to_context(self) -> Dict[str, str]:
        return {
            "Username": self.username,
            "UsernameForMigrations": self.username_for_migrations,
            "UsernameForBackgroundWorker": self.username_for_background_worker,
        }


class BootstrapMigrator:
    """
    Applies the packaged bootstrap files.

    Progress goes to ``out`` (stdout by default) because it is the command's
    output, not diagnostics.
    """

    def __init__(
        self,
        sql_dir: Optional[str] = None,
        out: Optional[TextIO] = None,
        deadline: Optional[Deadline] = None,
    ):
        self.sql_dir = sql_dir or BOOTSTRAP_SQL_DIR
        self.out = out or sys.stdout
        self.deadline = deadline
        self._env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def _write(self, line: str = "") -> None:
        self.out.write(line + "\n")

    # =========================================================================
    # FILES
    # =========================================================================

    def list_files(self) -> List[str]:
        """SQL file names in alphabetical order."""
        with error_context("read bootstrap directory", BootstrapError, subject=self.sql_dir):
            names = os.listdir(self.sql_dir)
        return sorted(
            name for name in names
            if name.endswith(".sql") and os.path.isfile(os.path.join(self.sql_dir, name))
        )

    def render(self, filename: str, template: BootstrapTemplate) -> str:
        """
        Raises:
            BootstrapError: If the file cannot be read or a variable is missing
        """
        path = os.path.join(self.sql_dir, filename)
        try:
            with open(path, encoding="utf-8") as f:
                source = f.read()
            return self._env.from_string(source).render(template.to_context())
        except (OSError, TemplateError) as e:
            raise BootstrapError(
                f"Failed to process file {filename}: {e}", filename=filename, operation="render bootstrap file"
            ) from e

    # =========================================================================
    # APPLY
    # =========================================================================

    @staticmethod
    def validate_dsn(dsn: str) -> None:
        if not dsn:
            raise BootstrapError("Database DSN is required", operation="validate dsn")
        try:
            info = parse_dsn(dsn)
        except UnsupportedDialectError:
            info = None
        if info is None or info.dialect != Dialect.POSTGRES:
            raise BootstrapError(
                "Bootstrap migrations only support PostgreSQL databases", operation="validate dsn"
            )

    def apply(self, dsn: str, template: BootstrapTemplate, dry_run: bool = False) -> List[str]:
        """
        Apply every bootstrap file.

        Returns:
            File names applied (or previewed on a dry run)

        Raises:
            BootstrapError: On invalid DSN or the first failing file
        """
        self.validate_dsn(dsn)

        files = self.list_files()
        if not files:
            self._write("No bootstrap migration files found")
            return []
        self._write(f"Found bootstrap migration files: {', '.join(files)}")

        if dry_run:
            return self._dry_run(files, template)

        with log_context(phase="bootstrap"):
            with connect(dsn, self.deadline) as conn:
                for filename in files:
                    self._write(f"Applying migration file {filename}")
                    sql = self.render(filename, template)
                    with error_context(
                        "apply bootstrap file", BootstrapError, subject=filename, filename=filename,
                    ):
                        with conn.transaction(f"bootstrap {filename}"):
                            count = conn.execute_script(sql)
                    logger.info(f"Applied {filename} ({count} statements)")
                    self._write(f"Migration file applied successfully: {filename}")

        log_checkpoint("bootstrap_applied", {"files": files})
        self._write("All bootstrap migrations applied successfully")
        return files

    def _dry_run(self, files: List[str], template: BootstrapTemplate) -> List[str]:
        preview_lines = get_defaults().bootstrap.preview_lines
        self._write("[DRY RUN] Bootstrap migrations preview")
        self._write(f"Template variables: {template.to_context()}")

        for position, filename in enumerate(files, start=1):
            self._write(f"[{position}/{len(files)}] Would apply: {filename}")
            lines = self.render(filename, template).split("\n")
            self._write("Preview (first few lines):")
            for line in lines[:preview_lines]:
                if line.strip():
                    self._write(f"    {line}")
            if len(lines) > preview_lines:
                self._write(f"    ... ({len(lines) - preview_lines} more lines)")

        self._write("[DRY RUN] Preview completed successfully")
        return files

    def print_sql(self, template: BootstrapTemplate) -> None:
        """Write every rendered file to ``out`` with a banner per file."""
        files = self.list_files()
        if not files:
            self._write("No bootstrap migration files found")
            return

        for position, filename in enumerate(files):
            if position > 0:
                self._write()
            self._write("-- ========================================")
            self._write(f"-- Bootstrap Migration File: {filename}")
            self._write("-- ========================================")
            self._write()
            self.out.write(self.render(filename, template))


__all__ = [
    "BOOTSTRAP_SQL_DIR",
    "BootstrapTemplate",
    "BootstrapMigrator",
]
