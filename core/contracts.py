# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums shared by every component
# PURPOSE: Closed sets of dialects, embedding modes and annotation kinds
# CREATED: 19 OCT 2026
# EXPORTS: Dialect, EmbedMode, AnnotationKind, ReferentialAction
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the schema engine.

These enums cross every boundary:
- Annotation comments (source files)
- SQL rendering (dialect generators)
- Live databases (introspection, migration)
"""

from enum import Enum
from typing import Optional


# ============================================================================
# DIALECTS
# ============================================================================

class Dialect(str, Enum):
    """
    SQL dialects the generators can render.

    MYSQL and MARIADB share one generator family; GENERIC is the
    override-free fallback used for portable output.
    """
    POSTGRES = "postgres"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    GENERIC = "generic"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Dialect":
        """
        Resolve a dialect name, accepting common aliases.

        Raises:
            ValueError: If the name is unknown
        """
        if isinstance(value, Dialect):
            return value
        key = (value or "").strip().lower()
        aliases = {
            "postgresql": cls.POSTGRES,
            "pg": cls.POSTGRES,
            "maria": cls.MARIADB,
            "sql": cls.GENERIC,
            "": cls.GENERIC,
        }
        if key in aliases:
            return aliases[key]
        return cls(key)

    def is_mysql_family(self) -> bool:
        """True for dialects rendered by the MySQL-family generator."""
        return self in (Dialect.MYSQL, Dialect.MARIADB)

    def supports_native_enums(self) -> bool:
        """True where enums exist as standalone named types."""
        return self == Dialect.POSTGRES


# ============================================================================
# ANNOTATIONS
# ============================================================================

class AnnotationKind(str, Enum):
    """Directive kinds recognised after the ``#migrator:`` prefix."""
    TABLE = "schema:table"          # Declares a table on a class
    FIELD = "schema:field"          # Declares a column on an attribute
    INDEX = "schema:index"          # Declares an index
    EMBED = "embed"                 # Marks a class as an embeddable group
    EMBEDDED = "embedded"           # Embeds a group into the host table


class EmbedMode(str, Enum):
    """
    How an embedded group lands in its host table.
    """
    INLINE = "inline"        # Group fields copied as host columns
    JSON = "json"            # One JSON column holds the group
    RELATION = "relation"    # One foreign-key column references another table
    SKIP = "skip"            # Ignored

    @classmethod
    def parse(cls, value: Optional[str]) -> "EmbedMode":
        """Missing mode means inline."""
        if not value:
            return cls.INLINE
        return cls(value.strip().lower())


class ReferentialAction(str, Enum):
    """ON DELETE / ON UPDATE actions."""
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO ACTION"

    @classmethod
    def normalize(cls, value: Optional[str]) -> Optional[str]:
        """Upper-case and collapse underscores; unknown actions pass through."""
        if not value:
            return None
        text = " ".join(value.replace("_", " ").upper().split())
        try:
            return cls(text).value
        except ValueError:
            return text


__all__ = [
    "Dialect",
    "AnnotationKind",
    "EmbedMode",
    "ReferentialAction",
]
