"""schema-compare: Compare relational database schemas and script the differences.

Fetches two schema graphs, filters and aligns them, classifies every object
as different, source-only, target-only or identical, and generates full
create, drop and alter DDL for PostgreSQL, MySQL and SQL Server.

Usage:
    from schema_compare import CompareService, ProjectOptions, get_provider
    from schema_compare import load_compare_config, get_profile

    config = load_compare_config()
    _, source = get_profile(config, "prod")
    _, target = get_profile(config, "dev")
    service = CompareService(config.options, get_provider(source), get_provider(target))
    service.start_compare()
    service.wait()
    print(service.result.full_alter_script)
"""

__version__ = "0.1.0"

# Adapters (imported first: the introspector depends on adapters.base)
from schema_compare.adapters.base import MetadataShapeError, SchemaProvider
from schema_compare.adapters.postgres import PostgresSchemaProvider

# Config
from schema_compare.config.loader import load_compare_config
from schema_compare.config.models import (
    CompareConfig,
    DatabaseProfile,
    FilterClause,
    FilteringOptions,
    ProjectOptions,
    ScriptingOptions,
)

# Factory
from schema_compare.factory import (
    ProfileNotFoundError,
    get_profile,
    get_provider,
    resolve_url,
)

# Schema
from schema_compare.schema.comparator import EmptyDatabasesError, compare_graphs
from schema_compare.schema.filter import perform_filter
from schema_compare.schema.introspector import SchemaIntrospector
from schema_compare.schema.mapper import perform_mapping
from schema_compare.schema.models import (
    CompareResult,
    CompareResultItem,
    DatabaseObjectType,
    DatabaseType,
    SchemaGraph,
)

# Scripters
from schema_compare.scripters import DatabaseScripter, create_scripter

# Orchestration
from schema_compare.services.compare import CompareService
from schema_compare.tasks import (
    OperationCancelledError,
    TaskInfo,
    TaskRunner,
    TaskStatus,
    TaskWork,
)

__all__ = [
    # Adapters
    "SchemaProvider",
    "PostgresSchemaProvider",
    "MetadataShapeError",
    # Config
    "load_compare_config",
    "CompareConfig",
    "DatabaseProfile",
    "FilterClause",
    "FilteringOptions",
    "ProjectOptions",
    "ScriptingOptions",
    # Factory
    "get_profile",
    "get_provider",
    "resolve_url",
    "ProfileNotFoundError",
    # Schema
    "perform_filter",
    "perform_mapping",
    "compare_graphs",
    "EmptyDatabasesError",
    "SchemaIntrospector",
    "SchemaGraph",
    "DatabaseObjectType",
    "DatabaseType",
    "CompareResult",
    "CompareResultItem",
    # Scripters
    "create_scripter",
    "DatabaseScripter",
    # Orchestration
    "CompareService",
    "TaskInfo",
    "TaskRunner",
    "TaskStatus",
    "TaskWork",
    "OperationCancelledError",
]
