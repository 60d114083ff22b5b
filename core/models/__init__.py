# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for all Pydantic models
# CREATED: 19 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

Three families of models:
    - Declared schema (built by the annotation parser)
    - Introspected schema (read from a live database)
    - Schema diff (declared vs. introspected)
"""

from core.models.schema import (
    ForeignKeyRef,
    ColumnDef,
    TableDef,
    IndexDef,
    EnumDef,
    EmbedGroup,
    EmbedDirective,
    SchemaModel,
    lookup_override,
)
from core.models.database import (
    DBColumn,
    DBTable,
    DBEnum,
    DBIndex,
    DBConstraint,
    DatabaseSchema,
)
from core.models.diff import ColumnDiff, TableDiff, EnumDiff, SchemaDiff

__all__ = [
    # Declared
    "ForeignKeyRef",
    "ColumnDef",
    "TableDef",
    "IndexDef",
    "EnumDef",
    "EmbedGroup",
    "EmbedDirective",
    "SchemaModel",
    "lookup_override",
    # Introspected
    "DBColumn",
    "DBTable",
    "DBEnum",
    "DBIndex",
    "DBConstraint",
    "DatabaseSchema",
    # Diff
    "ColumnDiff",
    "TableDiff",
    "EnumDiff",
    "SchemaDiff",
]
