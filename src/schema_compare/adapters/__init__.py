"""Schema providers package.

Provides the ``SchemaProvider`` Protocol and the PostgreSQL provider.

Usage:
    from schema_compare.adapters import SchemaProvider, PostgresSchemaProvider
"""

from schema_compare.adapters.base import MetadataShapeError, SchemaProvider
from schema_compare.adapters.postgres import PostgresSchemaProvider

__all__ = [
    "MetadataShapeError",
    "SchemaProvider",
    "PostgresSchemaProvider",
]
