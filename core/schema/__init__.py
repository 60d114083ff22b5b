# ============================================================================
# SCHEMA MODULE
# ============================================================================
# STATUS: Core - Schema modeling, ordering, generation and diffing
# PURPOSE: Annotated source -> SchemaModel -> dialect SQL / migrations
# CREATED: 19 OCT 2026
# ============================================================================

from core.schema.annotations import parse_annotation, parse_attributes
from core.schema.parser import parse_source, parse_file, parse_directory
from core.schema.builder import SchemaBuilder, build_schema, parse_schema
from core.schema.dependencies import (
    DependencyGraph,
    DeferredForeignKey,
    ResolutionResult,
    resolve_dependencies,
    ordered_tables,
)
from core.schema.dialects import (
    SQLGenerator,
    PostgresGenerator,
    MySQLGenerator,
    MariaDBGenerator,
    GenericGenerator,
    get_generator,
)
from core.schema.differ import (
    compare_schemas,
    generate_migration_sql,
    generate_down_sql,
    write_migration_files,
)
from core.schema.sql_splitter import (
    split_sql_statements,
    strip_comments,
    executable_statements,
)

__all__ = [
    # Parsing
    "parse_annotation",
    "parse_attributes",
    "parse_source",
    "parse_file",
    "parse_directory",
    "SchemaBuilder",
    "build_schema",
    "parse_schema",
    # Ordering
    "DependencyGraph",
    "DeferredForeignKey",
    "ResolutionResult",
    "resolve_dependencies",
    "ordered_tables",
    # Generators
    "SQLGenerator",
    "PostgresGenerator",
    "MySQLGenerator",
    "MariaDBGenerator",
    "GenericGenerator",
    "get_generator",
    # Diffing
    "compare_schemas",
    "generate_migration_sql",
    "generate_down_sql",
    "write_migration_files",
    # Splitting
    "split_sql_statements",
    "strip_comments",
    "executable_statements",
]
