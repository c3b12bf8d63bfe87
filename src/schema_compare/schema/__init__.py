"""Schema object model, mapping, filtering, comparison and introspection.

Provides the in-memory object model (``SchemaGraph`` and one dataclass per
object kind), object alignment (``perform_mapping``), inclusion/exclusion
filtering (``perform_filter``), classification (``compare_graphs``) and
live PostgreSQL introspection (``SchemaIntrospector``).

Usage:
    from schema_compare.schema import perform_filter, perform_mapping, compare_graphs
    from schema_compare.schema import SchemaGraph, Table, Column
"""

from schema_compare.schema.models import (
    Column,
    CompareDirection,
    CompareResult,
    CompareResultItem,
    CompareResultItemScripts,
    Constraint,
    DatabaseObjectType,
    DatabaseType,
    DataType,
    ForeignKey,
    Function,
    Index,
    PrimaryKey,
    Schema,
    SchemaGraph,
    SchemaObject,
    Sequence,
    StoredProcedure,
    Table,
    Trigger,
    User,
    View,
)
from schema_compare.schema.mapper import perform_mapping
from schema_compare.schema.filter import is_object_included, perform_filter
from schema_compare.schema.comparator import EmptyDatabasesError, compare_graphs
from schema_compare.schema.introspector import SchemaIntrospector

__all__ = [
    "perform_mapping",
    "perform_filter",
    "is_object_included",
    "compare_graphs",
    "EmptyDatabasesError",
    "SchemaIntrospector",
    "DatabaseObjectType",
    "DatabaseType",
    "CompareDirection",
    "SchemaObject",
    "Schema",
    "Table",
    "Column",
    "Constraint",
    "ForeignKey",
    "Index",
    "PrimaryKey",
    "Trigger",
    "View",
    "Function",
    "StoredProcedure",
    "Sequence",
    "DataType",
    "User",
    "SchemaGraph",
    "CompareResultItemScripts",
    "CompareResultItem",
    "CompareResult",
]
