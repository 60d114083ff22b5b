# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export contracts, errors and schema models
# CREATED: 19 OCT 2026
# ============================================================================

from core.contracts import Dialect, AnnotationKind, EmbedMode, ReferentialAction
from core.errors import SchemaEngineError, ParseIssue
from core.models import (
    ColumnDef,
    TableDef,
    IndexDef,
    EnumDef,
    SchemaModel,
    DatabaseSchema,
    SchemaDiff,
)

__all__ = [
    # Enums
    "Dialect",
    "AnnotationKind",
    "EmbedMode",
    "ReferentialAction",
    # Errors
    "SchemaEngineError",
    "ParseIssue",
    # Models
    "ColumnDef",
    "TableDef",
    "IndexDef",
    "EnumDef",
    "SchemaModel",
    "DatabaseSchema",
    "SchemaDiff",
]
