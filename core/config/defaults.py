# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for parsing, generation, migration, bootstrap
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the schema engine's operations.
These can be overridden via environment variables or command line flags.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class ParserDefaults:
    """
    Defaults for the annotation scanner.

    Controls which files and directories are walked.
    """
    source_suffix: str = ".py"

    # Directory names never descended into
    skip_dirs: tuple = (
        "__pycache__",
        "venv",
        ".venv",
        "vendor",
        "node_modules",
        "site-packages",
        "build",
        "dist",
    )

    # Test modules never declare entities
    skip_file_prefixes: tuple = ("test_",)
    skip_file_suffixes: tuple = ("_test.py",)
    skip_file_names: tuple = ("conftest.py",)

    @classmethod
    def from_env(cls) -> "ParserDefaults":
        """Create from environment variables."""
        return cls(
            source_suffix=os.getenv("SCHEMA_SOURCE_SUFFIX", ".py"),
        )


@dataclass(frozen=True)
class GeneratorDefaults:
    """
    Defaults for SQL rendering.

    Controls implicit column types and the dialects rendered by default.
    """
    json_column_type: str = "JSONB"
    relation_column_type: str = "INTEGER"
    enum_text_length: int = 255

    # Dialects rendered by "generate" when none is named
    generate_dialects: tuple = ("postgres", "mysql", "mariadb")

    @classmethod
    def from_env(cls) -> "GeneratorDefaults":
        """Create from environment variables."""
        return cls(
            enum_text_length=int(os.getenv("SCHEMA_ENUM_TEXT_LENGTH", 255)),
        )


@dataclass(frozen=True)
class MigrationDefaults:
    """
    Defaults for the versioned migration runner.
    """
    tracking_table: str = "schema_migrations"
    migrations_dir: str = "migrations"
    statement_timeout_seconds: int = 0  # 0 = no timeout

    # Destructive statements are commented out unless allowed
    allow_destructive: bool = False

    @classmethod
    def from_env(cls) -> "MigrationDefaults":
        """Create from environment variables."""
        return cls(
            tracking_table=os.getenv("MIGRATIONS_TABLE", "schema_migrations"),
            migrations_dir=os.getenv("MIGRATIONS_DIR", "migrations"),
            statement_timeout_seconds=int(os.getenv("MIGRATION_STATEMENT_TIMEOUT", 0)),
            allow_destructive=_env_bool("MIGRATION_ALLOW_DESTRUCTIVE", False),
        )


@dataclass(frozen=True)
class BootstrapDefaults:
    """
    Defaults for the bootstrap migrator.

    Role names substituted into the packaged SQL templates.
    """
    username: str = "app"
    username_for_migrations: str = "app_migrations"
    username_for_background_worker: str = "app_worker"
    preview_lines: int = 5

    @classmethod
    def from_env(cls) -> "BootstrapDefaults":
        """Create from environment variables."""
        return cls(
            username=os.getenv("BOOTSTRAP_USERNAME", "app"),
            username_for_migrations=os.getenv("BOOTSTRAP_USERNAME_MIGRATIONS", "app_migrations"),
            username_for_background_worker=os.getenv("BOOTSTRAP_USERNAME_WORKER", "app_worker"),
        )


@dataclass(frozen=True)
class DatabaseDefaults:
    """
    Defaults for database connectivity.
    """
    database_url: str = ""
    connect_timeout_seconds: int = 10
    postgres_schema: str = "public"

    @classmethod
    def from_env(cls) -> "DatabaseDefaults":
        """Create from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", ""),
            connect_timeout_seconds=int(os.getenv("DB_CONNECT_TIMEOUT", 10)),
            postgres_schema=os.getenv("POSTGRES_SCHEMA", "public"),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

@dataclass
class Defaults:
    """Container for all default configurations."""
    parser: ParserDefaults = field(default_factory=ParserDefaults)
    generator: GeneratorDefaults = field(default_factory=GeneratorDefaults)
    migration: MigrationDefaults = field(default_factory=MigrationDefaults)
    bootstrap: BootstrapDefaults = field(default_factory=BootstrapDefaults)
    database: DatabaseDefaults = field(default_factory=DatabaseDefaults)

    @classmethod
    def from_env(cls) -> "Defaults":
        """Create all defaults from environment variables."""
        return cls(
            parser=ParserDefaults.from_env(),
            generator=GeneratorDefaults.from_env(),
            migration=MigrationDefaults.from_env(),
            bootstrap=BootstrapDefaults.from_env(),
            database=DatabaseDefaults.from_env(),
        )


_defaults: Optional[Defaults] = None


def get_defaults() -> Defaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = Defaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ParserDefaults",
    "GeneratorDefaults",
    "MigrationDefaults",
    "BootstrapDefaults",
    "DatabaseDefaults",
    "Defaults",
    "get_defaults",
    "reset_defaults",
]
