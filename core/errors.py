# ============================================================================
# SCHEMA ENGINE ERRORS
# ============================================================================
# STATUS: Core - Exception hierarchy
# PURPOSE: Typed failures for parsing, introspection, generation, migration
# CREATED: 19 OCT 2026
# ============================================================================
"""
Schema Engine Errors

Every failure the engine raises derives from SchemaEngineError and carries
the operation that was being attempted, following the repository error
pattern used by the database layer.

Hierarchy:
    SchemaEngineError
    ├── AnnotationSyntaxError     (one declaration, collected as ParseIssue)
    ├── SchemaParseError          (source root unreadable)
    ├── DatabaseConnectionError
    ├── UnsupportedDialectError
    ├── IntrospectionError
    ├── GenerationError
    ├── MigrationError
    │   └── DuplicateMigrationError
    ├── BootstrapError
    ├── OperationCancelled
    └── ConfirmationDeclined
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class SchemaEngineError(Exception):
    """Base exception for schema engine operations."""

    def __init__(self, message: str, operation: str = None):
        self.operation = operation
        super().__init__(message)


class AnnotationSyntaxError(SchemaEngineError):
    """Raised when an annotation comment cannot be parsed."""

    def __init__(self, message: str, text: str = None, position: int = None):
        self.text = text
        self.position = position
        super().__init__(message, operation="parse annotation")


class SchemaParseError(SchemaEngineError):
    """Raised when the source root cannot be read at all."""


class DatabaseConnectionError(SchemaEngineError):
    """Raised when a database connection cannot be established."""


class UnsupportedDialectError(SchemaEngineError):
    """Raised for DSN schemes or dialect names the engine does not know."""


class IntrospectionError(SchemaEngineError):
    """Raised when reading a live schema fails; no partial schema is returned."""

    def __init__(
        self,
        message: str,
        phase: str = None,
        table: str = None,
        operation: str = None,
    ):
        self.phase = phase
        self.table = table
        super().__init__(message, operation=operation or phase)


class GenerationError(SchemaEngineError):
    """Raised when a model cannot be rendered to SQL."""


class MigrationError(SchemaEngineError):
    """Raised when a migration step fails and was rolled back."""

    def __init__(self, message: str, version: int = None, operation: str = None):
        self.version = version
        super().__init__(message, operation=operation)


class DuplicateMigrationError(MigrationError):
    """Raised when two migrations share a version."""


class BootstrapError(SchemaEngineError):
    """Raised when a bootstrap file cannot be rendered or applied."""

    def __init__(self, message: str, filename: str = None, operation: str = "bootstrap"):
        self.filename = filename
        super().__init__(message, operation=operation)


class OperationCancelled(SchemaEngineError):
    """Raised when a deadline expires between database statements."""


class ConfirmationDeclined(SchemaEngineError):
    """Raised when a destructive command is not confirmed."""


@dataclass
class ParseIssue:
    """A non-fatal problem found while scanning one declaration."""
    file: str
    line: int
    message: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}: {self.message}"


@contextmanager
def error_context(
    operation: str,
    error_cls: type = SchemaEngineError,
    subject: Optional[str] = None,
    **error_kwargs,
):
    """
    Wrap a block so any failure is re-raised as a typed engine error.

    Engine errors pass through untouched; anything else is logged and
    re-raised as ``error_cls`` with the operation in the message.

    Example:
        with error_context("read columns", IntrospectionError, subject="users",
                           phase="columns", table="users"):
            cur.execute(query, params)
    """
    try:
        yield
    except SchemaEngineError:
        raise
    except Exception as e:
        error_msg = f"{operation} failed"
        if subject:
            error_msg += f" for {subject}"
        error_msg += f": {e}"
        logger.error(error_msg)
        error_kwargs.setdefault("operation", operation)
        raise error_cls(error_msg, **error_kwargs) from e


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "SchemaEngineError",
    "AnnotationSyntaxError",
    "SchemaParseError",
    "DatabaseConnectionError",
    "UnsupportedDialectError",
    "IntrospectionError",
    "GenerationError",
    "MigrationError",
    "DuplicateMigrationError",
    "BootstrapError",
    "OperationCancelled",
    "ConfirmationDeclined",
    "ParseIssue",
    "error_context",
]
