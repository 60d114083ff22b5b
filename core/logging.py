# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across parser, generators and runners
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

Provides structured, optionally JSON-formatted logging for the schema engine.
Log output goes to stderr so SQL written to stdout stays clean.

Features:
- Component-based loggers
- Contextual fields (file, table, dialect, phase, migration version)
- JSON output for log aggregation
- Named checkpoints marking phase boundaries

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("schema.parser")

    with log_context(table="users", dialect="postgres"):
        logger.info("Rendering table", extra={"columns": 5})
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from enum import Enum


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    PARSER = "parser"
    RESOLVER = "resolver"
    GENERATOR = "generator"
    INTROSPECTOR = "introspector"
    DIFFER = "differ"
    MIGRATOR = "migrator"
    BOOTSTRAP = "bootstrap"
    CLI = "cli"


@dataclass
class LogContext:
    """
    Context for structured logging.

    Thread-local storage for contextual fields.
    """
    file: Optional[str] = None
    table: Optional[str] = None
    dialect: Optional[str] = None
    phase: Optional[str] = None
    migration_version: Optional[int] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


# Thread-local context storage
_context_stack = threading.local()


def _get_context_stack() -> list:
    """Get thread-local context stack."""
    if not hasattr(_context_stack, "stack"):
        _context_stack.stack = []
    return _context_stack.stack


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _get_context_stack()
    if stack:
        return stack[-1]
    return LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Context manager for adding logging context.

    Fields not named keep the enclosing context's value; ``extra`` dicts
    are merged.

    Example:
        with log_context(phase="columns", table="users"):
            logger.info("Reading columns")
    """
    parent = get_current_context()
    extra = {**parent.extra, **kwargs.pop("extra", {})}
    new_context = replace(parent, extra=extra, **kwargs)

    stack = _get_context_stack()
    stack.append(new_context)
    try:
        yield new_context
    finally:
        stack.pop()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, for log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": _timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context_dict = get_current_context().to_dict()
        if context_dict:
            log_data["context"] = context_dict

        if getattr(record, "extra", None):
            log_data["data"] = record.extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data["source"] = {
            "file": record.filename,
            "line": record.lineno,
            "function": record.funcName,
        }
        return json.dumps(log_data, default=str)


# Context fields shown inline by HumanFormatter, with their display names
_HUMAN_FIELDS = (
    ("file", "file"),
    ("table", "table"),
    ("dialect", "dialect"),
    ("phase", "phase"),
    ("migration_version", "version"),
)


class HumanFormatter(logging.Formatter):
    """Single-line terminal format with the active context inline."""

    def format(self, record: logging.LogRecord) -> str:
        context = get_current_context()
        parts = [
            f"{label}={getattr(context, name)}"
            for name, label in _HUMAN_FIELDS
            if getattr(context, name) is not None
        ]
        context_str = f" [{', '.join(parts)}]" if parts else ""

        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        result = f"{timestamp} {record.levelname.ljust(8)} {record.name}{context_str}: {record.getMessage()}"
        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"
        return result


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that includes context in log records.

    Automatically includes thread-local context in all log messages.
    """

    def process(self, msg, kwargs):
        """Process log record to include context."""
        extra = dict(kwargs.get("extra") or {})
        extra.update(get_current_context().to_dict())
        if self.extra and self.extra.get("component"):
            extra.setdefault("component", self.extra["component"])

        # Stored under one attribute for formatter access
        kwargs["extra"] = {"extra": extra}

        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "schema.parser")
        component: Optional component type for categorization

    Returns:
        ContextLogger instance
    """
    base_logger = logging.getLogger(name)
    component_value = component.value if component else None
    return ContextLogger(base_logger, {"component": component_value})


def configure_logging(
    level: Union[str, int, None] = None,
    json_output: bool = False,
) -> None:
    """
    Configure logging for the command line tools.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to LOG_LEVEL
        json_output: Use JSON format (also enabled by LOG_FORMAT=json)
    """
    if level is None:
        level = os.getenv("LOG_LEVEL", "WARNING")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter = StructuredFormatter()
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """
    Log a named checkpoint.

    Checkpoints mark phase boundaries (parse_complete, schema_read,
    migration_applied) so a run can be followed in aggregated logs.

    Args:
        name: Checkpoint name
        data: Optional checkpoint data
        logger: Optional specific logger to use
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")

    checkpoint_data = {
        "checkpoint": name,
        "timestamp": _timestamp(),
    }
    checkpoint_data.update(get_current_context().to_dict())

    if data:
        checkpoint_data["data"] = data

    logger.info(f"CHECKPOINT: {name}", extra={"extra": checkpoint_data})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
