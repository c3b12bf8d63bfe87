"""Scripter factory: pick the scripter matching a graph's dialect."""

from schema_compare.config.models import ProjectOptions
from schema_compare.scripters.base import DatabaseScripter
from schema_compare.scripters.mssql import MicrosoftSqlScripter
from schema_compare.scripters.mysql import MySqlScripter
from schema_compare.scripters.postgres import PostgreSqlScripter
from schema_compare.schema.models import DatabaseType, SchemaGraph

_SCRIPTERS: dict[DatabaseType, type[DatabaseScripter]] = {
    DatabaseType.MICROSOFT_SQL: MicrosoftSqlScripter,
    DatabaseType.MYSQL: MySqlScripter,
    DatabaseType.POSTGRESQL: PostgreSqlScripter,
}


def create_scripter(
    graph_or_dialect: SchemaGraph | DatabaseType | str,
    options: ProjectOptions | None = None,
) -> DatabaseScripter:
    """Create the scripter for a graph (or an explicit dialect).

    Args:
        graph_or_dialect: Graph whose dialect is used, or the dialect itself
        options: Project options (default: all defaults)

    Returns:
        Dialect-specific DatabaseScripter

    Raises:
        NotImplementedError: If the dialect has no scripter

    Example:
        >>> scripter = create_scripter("postgresql")
        >>> type(scripter).__name__
        'PostgreSqlScripter'
    """
    dialect = graph_or_dialect.dialect if isinstance(graph_or_dialect, SchemaGraph) else graph_or_dialect

    try:
        scripter_class = _SCRIPTERS[DatabaseType(dialect)]
    except (KeyError, ValueError):
        raise NotImplementedError(f"Unknown database type: {dialect}") from None

    return scripter_class(options or ProjectOptions())
