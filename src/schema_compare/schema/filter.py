"""Inclusion/exclusion filtering of a schema graph.

Usage:
    from schema_compare.config.models import FilterClause, FilteringOptions
    from schema_compare.schema.filter import perform_filter

    options = FilteringOptions(
        include=False,
        clauses=[FilterClause(object_type="TABLE", operator="begins_with", value="tmp_")],
    )
    perform_filter(graph, options)  # drops tmp_* tables and everything they own
"""

import logging

from schema_compare.config.models import (
    FilterClause,
    FilterField,
    FilteringOptions,
    FilterOperator,
)
from schema_compare.schema.models import SchemaGraph, SchemaObject, Table

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Per-object rule
# ----------------------------------------------------------------------


def _clause_matches(obj: SchemaObject, clause: FilterClause) -> bool:
    value = (obj.schema if clause.field == FilterField.SCHEMA else obj.name) or ""
    operator = clause.operator

    if operator == FilterOperator.BEGINS_WITH:
        return value.startswith(clause.value)
    if operator == FilterOperator.ENDS_WITH:
        return value.endswith(clause.value)
    if operator == FilterOperator.CONTAINS:
        return clause.value in value
    if operator == FilterOperator.EQUALS:
        return value == clause.value
    if operator == FilterOperator.NOT_BEGINS_WITH:
        return not value.startswith(clause.value)
    if operator == FilterOperator.NOT_ENDS_WITH:
        return not value.endswith(clause.value)
    if operator == FilterOperator.NOT_CONTAINS:
        return clause.value not in value
    if operator == FilterOperator.NOT_EQUALS:
        return value != clause.value
    raise ValueError(f"Unknown filter operator: {operator!r}")


def is_object_included(obj: SchemaObject, filtering: FilteringOptions) -> bool:
    """Evaluate the filter clauses for one object.

    Only clauses without an object type, or with the object's own kind,
    apply.  With no applicable clause the object is always included.
    Clauses are grouped by ``group``: all clauses of a group must match,
    and a matching group is enough.

    Args:
        obj: Object to test
        filtering: Filtering options

    Returns:
        True if the object stays in the graph
    """
    clauses = [c for c in filtering.clauses if c.object_type is None or c.object_type == obj.kind]
    if not clauses:
        return True

    groups: dict[int, list[FilterClause]] = {}
    for clause in clauses:
        groups.setdefault(clause.group, []).append(clause)

    matched = any(
        all(_clause_matches(obj, clause) for clause in group)
        for group in groups.values()
    )
    return matched if filtering.include else not matched


# ----------------------------------------------------------------------
# Graph filtering
# ----------------------------------------------------------------------


def _keep(items: list, filtering: FilteringOptions) -> None:
    items[:] = [item for item in items if is_object_included(item, filtering)]


def _remove_each(items: list, removed: list) -> None:
    removed_ids = {id(item) for item in removed}
    items[:] = [item for item in items if id(item) not in removed_ids]


def _tables_to_remove(graph: SchemaGraph, filtering: FilteringOptions) -> list[Table]:
    removed = [t for t in graph.tables if not is_object_included(t, filtering)]
    removed_keys = {(t.schema, t.name) for t in removed}

    # Children of a removed table go too, down the whole inheritance chain
    changed = True
    while changed:
        changed = False
        for table in graph.tables:
            if not table.inherited_table_name or (table.schema, table.name) in removed_keys:
                continue
            if (table.inherited_table_schema or "", table.inherited_table_name) in removed_keys:
                removed.append(table)
                removed_keys.add((table.schema, table.name))
                changed = True

    return removed


def perform_filter(graph: SchemaGraph, filtering: FilteringOptions) -> None:
    """Prune *graph* in place according to *filtering*.

    Removing a table or view removes everything it owns from the graph's
    global collections as well.  Built-in data types are never removed.
    With no clauses the graph is left untouched.

    Args:
        graph: Graph to filter (mutated)
        filtering: Filtering options

    Raises:
        ValueError: If graph or filtering is None
    """
    if graph is None:
        raise ValueError("graph is required")
    if filtering is None:
        raise ValueError("filtering options are required")

    if not filtering.clauses:
        return

    before = graph.object_count

    # A schema carries its identity in ``name``; test it as the schema field
    schemas = [(schema, schema.schema) for schema in graph.schemas]
    for schema, _ in schemas:
        schema.schema, schema.name = schema.name, ""
    _keep(graph.schemas, filtering)
    for schema, previous in schemas:
        schema.name, schema.schema = schema.schema, previous

    removed_tables = _tables_to_remove(graph, filtering)
    for table in removed_tables:
        _remove_each(graph.foreign_keys, table.foreign_keys)
        _remove_each(graph.primary_keys, table.primary_keys)
        _remove_each(graph.indexes, table.indexes)
        _remove_each(graph.constraints, table.constraints)
        _remove_each(graph.triggers, table.triggers)
        table.foreign_keys.clear()
        table.primary_keys.clear()
        table.indexes.clear()
        table.constraints.clear()
        table.triggers.clear()
    _remove_each(graph.tables, removed_tables)

    for table in graph.tables:
        _keep(table.foreign_keys, filtering)
        _keep(table.referencing_foreign_keys, filtering)
        _keep(table.primary_keys, filtering)
        _keep(table.indexes, filtering)
        _keep(table.constraints, filtering)
        _keep(table.triggers, filtering)

    _keep(graph.foreign_keys, filtering)
    _keep(graph.primary_keys, filtering)
    _keep(graph.indexes, filtering)
    _keep(graph.constraints, filtering)
    _keep(graph.triggers, filtering)

    removed_views = [v for v in graph.views if not is_object_included(v, filtering)]
    for view in removed_views:
        _remove_each(graph.indexes, view.indexes)
    _remove_each(graph.views, removed_views)

    for view in graph.views:
        _keep(view.indexes, filtering)

    _keep(graph.functions, filtering)
    _keep(graph.stored_procedures, filtering)
    graph.data_types[:] = [
        t for t in graph.data_types if not t.is_user_defined or is_object_included(t, filtering)
    ]
    _keep(graph.sequences, filtering)

    logger.debug(f"Filter removed {before - graph.object_count} objects from '{graph.name}'")
