"""Schema provider protocol definition.

Defines the ``SchemaProvider`` Protocol that every provider must implement.
A provider is bound to one database at construction time and turns its
catalog into a ``SchemaGraph``.

Usage:
    from schema_compare.adapters.base import SchemaProvider

    def fetch(provider: SchemaProvider) -> SchemaGraph:
        print(provider.list_databases())
        return provider.fetch_schema()
"""

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from schema_compare.schema.models import SchemaGraph
    from schema_compare.tasks import TaskInfo


class MetadataShapeError(Exception):
    """Raised when a catalog row does not have the expected shape."""

    pass


class SchemaProvider(Protocol):
    """Schema provider interface.

    This Protocol keeps the comparison pipeline independent of how a
    database's metadata is extracted.  Providers are synchronous; the
    orchestrator runs them on task threads.
    """

    def fetch_schema(self, task: "TaskInfo | None" = None) -> "SchemaGraph":
        """Extract the complete schema of the bound database.

        Args:
            task: Optional descriptor for progress and cancellation

        Returns:
            SchemaGraph with every supported object kind populated

        Raises:
            MetadataShapeError: If a catalog row has an unexpected shape
            OperationCancelledError: If cancellation was requested
        """
        ...

    def list_databases(self) -> list[str]:
        """List the databases visible through the bound connection options."""
        ...
