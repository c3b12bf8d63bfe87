"""Align two schema graphs by exact (schema, name) identity.

Matching never guesses renames: an object renamed between source and
target ends up as one source-only and one target-only object.

Usage:
    from schema_compare.schema.mapper import perform_mapping

    perform_mapping(source_graph, target_graph, task)
    table = source_graph.tables[0]
    counterpart = table.mapped  # None when only in source
"""

import logging
from collections.abc import Sequence

from schema_compare.schema.models import SchemaGraph, SchemaObject, Table, View
from schema_compare.tasks import TaskInfo

logger = logging.getLogger(__name__)

# Top-level collections, in processing order
MAPPED_COLLECTIONS = (
    "schemas",
    "tables",
    "views",
    "functions",
    "stored_procedures",
    "data_types",
    "sequences",
)

# Nested collections of a matched table, in processing order
TABLE_CHILD_COLLECTIONS = (
    "columns",
    "indexes",
    "foreign_keys",
    "constraints",
    "triggers",
    "primary_keys",
)


def perform_mapping(
    source: SchemaGraph,
    target: SchemaGraph,
    task: TaskInfo | None = None,
) -> None:
    """Link every source object to the target object with the same key.

    Both sides of a match point at each other.  Tables recurse into their
    columns, keys, indexes, constraints and triggers; views into their
    indexes.  Progress and cancellation are handled once per top-level
    collection.

    Args:
        source: Source graph (mutated)
        target: Target graph (mutated)
        task: Optional descriptor for progress and cancellation

    Raises:
        ValueError: If either graph is None
        OperationCancelledError: If cancellation was requested
    """
    if source is None:
        raise ValueError("source graph is required")
    if target is None:
        raise ValueError("target graph is required")

    count = len(MAPPED_COLLECTIONS)
    for i, attr in enumerate(MAPPED_COLLECTIONS, start=1):
        matched = _map_collection(getattr(source, attr), getattr(target, attr))
        logger.debug(f"Mapped {matched} {attr}")

        if task is not None:
            task.raise_if_cancelled()
            task.percentage = 100 * i / count


def _map_collection(
    source_items: Sequence[SchemaObject],
    target_items: Sequence[SchemaObject],
) -> int:
    target_by_name = {}
    for item in target_items:
        # First occurrence wins, as a linear scan would
        target_by_name.setdefault((item.schema, item.name), item)

    matched = 0
    for item in source_items:
        counterpart = target_by_name.get((item.schema, item.name))
        if counterpart is None:
            continue

        item.mapped = counterpart
        counterpart.mapped = item
        matched += 1

        if isinstance(item, Table):
            for attr in TABLE_CHILD_COLLECTIONS:
                _map_collection(getattr(item, attr), getattr(counterpart, attr))
        elif isinstance(item, View):
            _map_collection(item.indexes, counterpart.indexes)

    return matched
