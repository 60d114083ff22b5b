# ============================================================================
# DIALECT GENERATORS
# ============================================================================
# STATUS: Core - Generator registry
# PURPOSE: Map a dialect name to its SQL generator
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dialect generators.

Usage:
    from core.schema.dialects import get_generator

    generator = get_generator("mysql")
    print(generator.render_schema(model))
"""

from typing import Dict, Optional, Type, Union

from core.config import GeneratorDefaults
from core.contracts import Dialect
from core.errors import UnsupportedDialectError
from core.schema.dialects.base import SQLGenerator
from core.schema.dialects.generic import GenericGenerator
from core.schema.dialects.mysql import MariaDBGenerator, MySQLGenerator
from core.schema.dialects.postgres import PostgresGenerator

GENERATORS: Dict[Dialect, Type[SQLGenerator]] = {
    Dialect.POSTGRES: PostgresGenerator,
    Dialect.MYSQL: MySQLGenerator,
    Dialect.MARIADB: MariaDBGenerator,
    Dialect.GENERIC: GenericGenerator,
}


def get_generator(
    dialect: Union[Dialect, str],
    defaults: Optional[GeneratorDefaults] = None,
) -> SQLGenerator:
    """
    Generator for a dialect name or enum value.

    Raises:
        UnsupportedDialectError: If the name is not a known dialect
    """
    try:
        resolved = Dialect.parse(dialect)
    except ValueError:
        raise UnsupportedDialectError(f"Unsupported dialect: {dialect}", operation="get generator")
    return GENERATORS[resolved](defaults)


__all__ = [
    "GENERATORS",
    "get_generator",
    "SQLGenerator",
    "PostgresGenerator",
    "MySQLGenerator",
    "MariaDBGenerator",
    "GenericGenerator",
]
