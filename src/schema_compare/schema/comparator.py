"""Classify mapped schema graphs and generate the comparison scripts.

Equality is decided on generated script text: two matched objects are
identical when the scripter renders the same create script for both.

Usage:
    from schema_compare.schema.comparator import compare_graphs
    from schema_compare.scripters import create_scripter

    perform_mapping(source, target)
    result = compare_graphs(source, target, create_scripter(source, options))
    print(result.format_report())
"""

import logging
from collections.abc import Iterable

from schema_compare.schema.models import (
    CompareResult,
    CompareResultItem,
    CompareResultItemScripts,
    DatabaseObjectType,
    SchemaGraph,
    SchemaObject,
    Table,
)
from schema_compare.scripters.base import DatabaseScripter
from schema_compare.tasks import TaskInfo

logger = logging.getLogger(__name__)


class EmptyDatabasesError(Exception):
    """Neither database holds an object to compare."""

    pass


# Kinds listed in the four result buckets
BUCKET_KINDS = (
    DatabaseObjectType.SCHEMA,
    DatabaseObjectType.TABLE,
    DatabaseObjectType.VIEW,
    DatabaseObjectType.FUNCTION,
    DatabaseObjectType.STORED_PROCEDURE,
    DatabaseObjectType.SEQUENCE,
    DatabaseObjectType.DATA_TYPE,
)

# Kinds whose differences feed the full alter script, besides the bucket kinds
TABLE_CHILD_KINDS = (
    DatabaseObjectType.INDEX,
    DatabaseObjectType.CONSTRAINT,
    DatabaseObjectType.PRIMARY_KEY,
    DatabaseObjectType.FOREIGN_KEY,
    DatabaseObjectType.TRIGGER,
)

_PROGRESS_MESSAGES = {
    DatabaseObjectType.SCHEMA: "Comparing schemas",
    DatabaseObjectType.TABLE: "Comparing tables",
    DatabaseObjectType.VIEW: "Comparing views",
    DatabaseObjectType.FUNCTION: "Comparing functions",
    DatabaseObjectType.STORED_PROCEDURE: "Comparing stored procedures",
    DatabaseObjectType.DATA_TYPE: "Comparing data types",
    DatabaseObjectType.SEQUENCE: "Comparing sequences",
}


def _comparable(graph: SchemaGraph, kind: DatabaseObjectType) -> list[SchemaObject]:
    """Objects of *kind* that take part in the comparison.

    Built-in data types are kept in the graph for type resolution only.
    """
    items = graph.collection(kind)
    if kind == DatabaseObjectType.DATA_TYPE:
        return [t for t in items if t.is_user_defined]
    return list(items)


def _script_table_children(table: Table, scripter: DatabaseScripter) -> None:
    children: list[SchemaObject] = [
        *table.columns,
        *table.indexes,
        *table.constraints,
        *table.primary_keys,
        *table.foreign_keys,
        *table.triggers,
    ]
    for child in children:
        child.create_script = scripter.generate_create_script(child, True)
        if child.mapped is not None:
            child.mapped.create_script = scripter.generate_create_script(child.mapped, True)


def _script_objects(
    source: SchemaGraph,
    target: SchemaGraph,
    scripter: DatabaseScripter,
    task: TaskInfo | None,
) -> None:
    """Cache create and alter scripts on every compared object."""
    groups = [
        (
            kind,
            _comparable(source, kind)
            + [x for x in _comparable(target, kind) if x.mapped is None],
        )
        for kind in _PROGRESS_MESSAGES
    ]

    total = sum(len(items) for _, items in groups)
    if total == 0:
        raise EmptyDatabasesError("The selected databases contain no objects to compare")

    processed = 0
    for kind, items in groups:
        if task is not None:
            task.message = _PROGRESS_MESSAGES[kind]

        for item in items:
            if task is not None:
                task.raise_if_cancelled()

            if item.kind == DatabaseObjectType.TABLE:
                _script_table_children(item, scripter)

            item.create_script = scripter.generate_create_script(item, True)
            mapped = item.mapped
            if mapped is not None:
                mapped.create_script = scripter.generate_create_script(mapped, True)
                if mapped.kind == DatabaseObjectType.TABLE:
                    _script_table_children(mapped, scripter)

            item.alter_script = scripter.generate_alter_script(item, True)

            processed += 1
            if task is not None:
                task.percentage = 100 * processed / total


def _result_items(
    kind: DatabaseObjectType,
    source_items: Iterable[SchemaObject],
    target_items: Iterable[SchemaObject],
    scripter: DatabaseScripter,
) -> list[CompareResultItem]:
    results = []
    for item in source_items:
        mapped = item.mapped
        results.append(
            CompareResultItem(
                item_type=kind,
                source_item=item,
                target_item=mapped,
                source_item_name=scripter.object_name(item),
                target_item_name=scripter.object_name(mapped) if mapped is not None else "",
                scripts=CompareResultItemScripts(
                    source_create_script=item.create_script,
                    target_create_script=mapped.create_script if mapped is not None else "",
                    alter_script=item.alter_script,
                ),
            )
        )

    for item in target_items:
        if item.mapped is not None:
            continue
        results.append(
            CompareResultItem(
                item_type=kind,
                target_item=item,
                target_item_name=scripter.object_name(item),
                scripts=CompareResultItemScripts(
                    target_create_script=item.create_script,
                    alter_script=item.alter_script,
                ),
            )
        )

    return results


def _is_different(item: CompareResultItem) -> bool:
    return item.source_item is not None and item.target_item is not None and not item.equal


def _is_same(item: CompareResultItem) -> bool:
    return item.source_item is not None and item.target_item is not None and item.equal


def _only_source(item: CompareResultItem) -> bool:
    return item.source_item is not None and item.target_item is None


def _only_target(item: CompareResultItem) -> bool:
    return item.source_item is None and item.target_item is not None


def _pseudo_graph(graph: SchemaGraph) -> SchemaGraph:
    """Empty graph of the same dialect and side, holding built-in types.

    Objects are appended to its collections directly: they keep pointing
    at the graph they were fetched into.
    """
    pseudo = SchemaGraph(
        dialect=graph.dialect,
        direction=graph.direction,
        name=graph.name,
        server_version=graph.server_version,
    )
    pseudo.data_types.extend(t for t in graph.data_types if not t.is_user_defined)
    return pseudo


def _generate_full_alter_script(
    source: SchemaGraph,
    target: SchemaGraph,
    items_by_kind: dict[DatabaseObjectType, list[CompareResultItem]],
    scripter: DatabaseScripter,
) -> str:
    only_source = _pseudo_graph(source)
    only_target = _pseudo_graph(target)

    different_items: list[CompareResultItem] = []
    for kind, items in items_by_kind.items():
        only_source.collection(kind).extend(i.source_item for i in items if _only_source(i))
        only_target.collection(kind).extend(i.target_item for i in items if _only_target(i))

        for item in filter(_is_different, items):
            # Kinds without alter support are dropped and recreated
            if item.source_item.alter_supported:
                different_items.append(item)
            else:
                only_source.collection(kind).append(item.source_item)
                only_target.collection(kind).append(item.target_item)

    return scripter.generate_full_alter_script(different_items, only_source, only_target)


def compare_graphs(
    source: SchemaGraph,
    target: SchemaGraph,
    scripter: DatabaseScripter,
    task: TaskInfo | None = None,
) -> CompareResult:
    """Classify every object of two mapped graphs and script the differences.

    Args:
        source: Mapped source graph
        target: Mapped target graph
        scripter: Scripter for the source dialect
        task: Optional descriptor for progress and cancellation

    Returns:
        CompareResult with the four buckets and the three full scripts

    Raises:
        ValueError: If a graph or the scripter is None
        EmptyDatabasesError: If neither graph holds a comparable object
        OperationCancelledError: If cancellation was requested
    """
    if source is None:
        raise ValueError("source graph is required")
    if target is None:
        raise ValueError("target graph is required")
    if scripter is None:
        raise ValueError("scripter is required")

    _script_objects(source, target, scripter, task)

    items_by_kind = {
        kind: _result_items(kind, _comparable(source, kind), _comparable(target, kind), scripter)
        for kind in BUCKET_KINDS + TABLE_CHILD_KINDS
    }

    def select(predicate, name_attr: str) -> list[CompareResultItem]:
        selected: list[CompareResultItem] = []
        for kind in BUCKET_KINDS:
            matching = [i for i in items_by_kind[kind] if predicate(i)]
            selected.extend(sorted(matching, key=lambda i: getattr(i, name_attr)))
        return selected

    different = select(_is_different, "source_item_name")
    only_source = select(_only_source, "source_item_name")
    only_target = select(_only_target, "target_item_name")
    same = select(_is_same, "source_item_name")
    logger.debug(f"Different items => {len(different)}")
    logger.debug(f"Only source items => {len(only_source)}")
    logger.debug(f"Only target items => {len(only_target)}")
    logger.debug(f"Same items => {len(same)}")

    return CompareResult(
        different_items=different,
        only_source_items=only_source,
        only_target_items=only_target,
        same_items=same,
        source_full_script=scripter.generate_full_create_script(source),
        target_full_script=scripter.generate_full_create_script(target),
        full_alter_script=_generate_full_alter_script(source, target, items_by_kind, scripter),
    )
