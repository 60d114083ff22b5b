# ============================================================================
# SCHEMA DIFF MODELS
# ============================================================================
# STATUS: Core model - Structural differences between declared and live schema
# PURPOSE: Result of the differ, input to migration SQL generation
# CREATED: 19 OCT 2026
# EXPORTS: ColumnDiff, TableDiff, EnumDiff, SchemaDiff
# DEPENDENCIES: pydantic
# ============================================================================
"""
Schema Diff Models

"Added" always means declared but missing from the database; "removed"
means present in the database but no longer declared.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ColumnDiff(BaseModel):
    """Type and nullability change of one matched column."""
    name: str
    old_type: Optional[str] = None
    new_type: Optional[str] = None
    old_nullable: Optional[bool] = None
    new_nullable: Optional[bool] = None

    @property
    def type_changed(self) -> bool:
        return self.old_type != self.new_type

    @property
    def nullable_changed(self) -> bool:
        return self.old_nullable != self.new_nullable

    def changes(self) -> Dict[str, str]:
        """Human-readable changes keyed by kind, type first."""
        result: Dict[str, str] = {}
        if self.type_changed:
            result["type"] = f"{self.old_type} -> {self.new_type}"
        if self.nullable_changed:
            def label(nullable: Optional[bool]) -> str:
                return "NULL" if nullable else "NOT NULL"
            result["nullable"] = f"{label(self.old_nullable)} -> {label(self.new_nullable)}"
        return result


class TableDiff(BaseModel):
    """Column-level differences of one table present on both sides."""
    name: str
    columns_added: List[str] = Field(default_factory=list)
    columns_removed: List[str] = Field(default_factory=list)
    columns_modified: List[ColumnDiff] = Field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(self.columns_added or self.columns_removed or self.columns_modified)


class EnumDiff(BaseModel):
    """Value-level differences of one enum present on both sides."""
    name: str
    values_added: List[str] = Field(default_factory=list)
    values_removed: List[str] = Field(default_factory=list)


class SchemaDiff(BaseModel):
    """
    Complete difference between a schema model and a live database.

    ``has_changes()`` is false exactly when every collection is empty.
    """
    tables_added: List[str] = Field(default_factory=list)
    tables_removed: List[str] = Field(default_factory=list)
    tables_modified: List[TableDiff] = Field(default_factory=list)
    enums_added: List[str] = Field(default_factory=list)
    enums_removed: List[str] = Field(default_factory=list)
    enums_modified: List[EnumDiff] = Field(default_factory=list)
    indexes_added: List[str] = Field(default_factory=list)
    indexes_removed: List[str] = Field(default_factory=list)
    # Owning table of each listed index; MySQL needs it to drop one
    index_tables: Dict[str, str] = Field(default_factory=dict)

    def has_changes(self) -> bool:
        return any((
            self.tables_added,
            self.tables_removed,
            self.tables_modified,
            self.enums_added,
            self.enums_removed,
            self.enums_modified,
            self.indexes_added,
            self.indexes_removed,
        ))

    def change_count(self) -> int:
        return (
            len(self.tables_added) + len(self.tables_removed) + len(self.tables_modified)
            + len(self.enums_added) + len(self.enums_removed) + len(self.enums_modified)
            + len(self.indexes_added) + len(self.indexes_removed)
        )

    def reversed(self) -> "SchemaDiff":
        """
        The diff that undoes this one: additions become removals and
        every column change swaps its old and new side.
        """
        return SchemaDiff(
            tables_added=list(self.tables_removed),
            tables_removed=list(self.tables_added),
            tables_modified=[
                TableDiff(
                    name=t.name,
                    columns_added=list(t.columns_removed),
                    columns_removed=list(t.columns_added),
                    columns_modified=[
                        ColumnDiff(
                            name=c.name,
                            old_type=c.new_type,
                            new_type=c.old_type,
                            old_nullable=c.new_nullable,
                            new_nullable=c.old_nullable,
                        )
                        for c in t.columns_modified
                    ],
                )
                for t in self.tables_modified
            ],
            enums_added=list(self.enums_removed),
            enums_removed=list(self.enums_added),
            enums_modified=[
                EnumDiff(name=e.name, values_added=list(e.values_removed), values_removed=list(e.values_added))
                for e in self.enums_modified
            ],
            indexes_added=list(self.indexes_removed),
            indexes_removed=list(self.indexes_added),
            index_tables=dict(self.index_tables),
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation."""
        return self.model_dump()

    def summary(self) -> str:
        """Render a human-readable report."""
        if not self.has_changes():
            return (
                "=== NO SCHEMA CHANGES DETECTED ===\n"
                "The database schema matches the declared entities.\n"
            )

        lines = [
            "=== SCHEMA DIFFERENCES DETECTED ===",
            "",
            f"SUMMARY: {self.change_count()} changes detected",
            f"- Tables: +{len(self.tables_added)} -{len(self.tables_removed)} "
            f"~{len(self.tables_modified)}",
            f"- Enums: +{len(self.enums_added)} -{len(self.enums_removed)} "
            f"~{len(self.enums_modified)}",
            f"- Indexes: +{len(self.indexes_added)} -{len(self.indexes_removed)}",
            "",
        ]

        if self.tables_added:
            lines.append("TABLES TO ADD:")
            lines.extend(f"  + {name}" for name in self.tables_added)
            lines.append("")

        if self.tables_removed:
            lines.append("TABLES TO REMOVE:")
            lines.extend(f"  - {name} (DATA WILL BE LOST)" for name in self.tables_removed)
            lines.append("")

        if self.tables_modified:
            lines.append("TABLES TO MODIFY:")
            for table_diff in self.tables_modified:
                lines.append(f"  ~ {table_diff.name}")
                lines.extend(f"    + Column: {c}" for c in table_diff.columns_added)
                lines.extend(
                    f"    - Column: {c} (DATA WILL BE LOST)" for c in table_diff.columns_removed
                )
                for column_diff in table_diff.columns_modified:
                    lines.append(f"    ~ Column: {column_diff.name}")
                    for kind, change in column_diff.changes().items():
                        lines.append(f"      {kind}: {change}")
            lines.append("")

        if self.enums_added:
            lines.append("ENUMS TO ADD:")
            lines.extend(f"  + {name}" for name in self.enums_added)
            lines.append("")

        if self.enums_removed:
            lines.append("ENUMS TO REMOVE:")
            lines.extend(f"  - {name}" for name in self.enums_removed)
            lines.append("")

        if self.enums_modified:
            lines.append("ENUMS TO MODIFY:")
            for enum_diff in self.enums_modified:
                lines.append(f"  ~ {enum_diff.name}")
                lines.extend(f"    + Value: {v}" for v in enum_diff.values_added)
                lines.extend(
                    f"    - Value: {v} (cannot be removed automatically)"
                    for v in enum_diff.values_removed
                )
            lines.append("")

        if self.indexes_added:
            lines.append("INDEXES TO ADD:")
            lines.extend(f"  + {name}" for name in self.indexes_added)
            lines.append("")

        if self.indexes_removed:
            lines.append("INDEXES TO REMOVE:")
            lines.extend(f"  - {name}" for name in self.indexes_removed)
            lines.append("")

        return "\n".join(lines)


__all__ = [
    "ColumnDiff",
    "TableDiff",
    "EnumDiff",
    "SchemaDiff",
]
