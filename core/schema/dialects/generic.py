# ============================================================================
# GENERIC SQL GENERATOR
# ============================================================================
# STATUS: Core - Portable SQL dialect
# PURPOSE: Standard SQL output with no vendor extensions
# CREATED: 19 OCT 2026
# ============================================================================
"""
Generic Generator

Portable SQL for databases the engine has no dedicated dialect for:

- Per-dialect overrides are never applied
- Enums become ``VARCHAR(n)`` columns constrained by ``CHECK (col IN ...)``
- Indexes are plain (no method, operator class or condition)
- No auto-increment keyword; keys are supplied by the application
"""

from typing import Optional

from core.contracts import Dialect
from core.models import ColumnDef, IndexDef, SchemaModel
from core.schema.ddl_utils import join_columns
from core.schema.dialects.base import SQLGenerator


class GenericGenerator(SQLGenerator):
    """Standard SQL generator."""

    dialect = Dialect.GENERIC

    def column_type(self, column: ColumnDef, model: Optional[SchemaModel] = None) -> str:
        if column.is_enum:
            return f"VARCHAR({self.defaults.enum_text_length})"
        return column.type

    def column_check(self, column: ColumnDef, model: Optional[SchemaModel] = None) -> Optional[str]:
        enum = self.enum_for(column, model)
        if enum is None:
            return column.check
        values_check = f"{column.name} IN ({self.enum_value_list(enum.values)})"
        if column.check:
            return f"{values_check} AND ({column.check})"
        return values_check

    def render_index(self, index: IndexDef) -> Optional[str]:
        unique = "UNIQUE " if index.unique else ""
        return f"CREATE {unique}INDEX {index.name} ON {index.table} ({join_columns(index.columns)});"


__all__ = ["GenericGenerator"]
