"""Dialect-agnostic DDL script generation.

``DatabaseScripter`` owns every algorithm shared by the dialects: full
create/drop/alter ordering, per-object create/drop/alter dispatch, the
child-object layout of table scripts and the column ordering policy.
Subclasses render the individual statements.

Usage:
    from schema_compare.scripters import create_scripter

    scripter = create_scripter(source_graph, project_options)
    print(scripter.generate_full_create_script(source_graph))
    print(scripter.generate_alter_script(source_graph.tables[0], True))
"""

import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from schema_compare.config.models import ProjectOptions
from schema_compare.schema.models import (
    Column,
    CompareDirection,
    CompareResultItem,
    Constraint,
    DatabaseObjectType,
    DataType,
    ForeignKey,
    Function,
    Index,
    PrimaryKey,
    Schema,
    SchemaGraph,
    SchemaObject,
    Sequence as DbSequence,
    StoredProcedure,
    Table,
    Trigger,
    View,
)

logger = logging.getLogger(__name__)

INDENT = "    "

# Section titles
LABEL_SCHEMAS = "Schemas"
LABEL_USER_DEFINED_TYPES = "User-Defined Types"
LABEL_SEQUENCES = "Sequences"
LABEL_TABLES = "Tables"
LABEL_PRIMARY_KEYS = "Primary Keys"
LABEL_FOREIGN_KEYS = "Foreign Keys"
LABEL_REFERENCING_FOREIGN_KEYS = "Referencing Foreign Keys"
LABEL_CONSTRAINTS = "Constraints"
LABEL_FUNCTIONS = "Functions"
LABEL_STORED_PROCEDURES = "Stored Procedures"
LABEL_VIEWS = "Views"
LABEL_INDEXES = "Indexes"
LABEL_TRIGGERS = "Triggers"
LABEL_PERIODS = "Periods"
LABEL_PERIOD = "Period"
LABEL_HISTORIES = "Histories"
LABEL_HISTORY = "History"


def by_name(items: Iterable[SchemaObject]) -> list:
    """Sort by (schema, name)."""
    return sorted(items, key=lambda x: (x.schema or "", x.name or ""))


def by_table(items: Iterable[SchemaObject]) -> list:
    """Sort table children by (table schema, table name, schema, name)."""
    return sorted(
        items,
        key=lambda x: (x.table_schema or "", x.table_name or "", x.schema or "", x.name or ""),
    )


@dataclass
class ObjectMap:
    """A titled group of objects scripted together."""

    title: str | None = None
    objects: Sequence[SchemaObject] = field(default_factory=list)


# ----------------------------------------------------------------------
# Script helper
# ----------------------------------------------------------------------


class ScriptHelper(ABC):
    """Dialect quoting and column rendering."""

    def __init__(self, options: ProjectOptions):
        self.options = options

    @staticmethod
    def script_comment(comment: str) -> str:
        return f"/****** {comment} ******/"

    def script_object_name(self, obj_or_schema: "SchemaObject | str | None", name: str | None = None) -> str:
        """Quote an object name.

        Accepts either an object (its schema and name are used) or an
        explicit schema and name pair.
        """
        if isinstance(obj_or_schema, SchemaObject):
            return self.quote_name(obj_or_schema.schema, obj_or_schema.name)
        return self.quote_name(obj_or_schema, name)

    def quote(self, name: str) -> str:
        """Quote a bare, schema-less identifier."""
        return self.quote_name(None, name)

    @abstractmethod
    def quote_name(self, schema: str | None, name: str) -> str:
        ...

    @abstractmethod
    def script_column(self, column: Column, script_default_constraint: bool = True) -> str:
        ...

    def script_commit_transaction(self) -> str:
        """Batch separator emitted before routines and views."""
        return ""


# ----------------------------------------------------------------------
# Scripter
# ----------------------------------------------------------------------


class DatabaseScripter(ABC):
    """Base class of the per-dialect scripters.

    Args:
        options: Project options (only ``options.scripting`` is used)
        helper: Dialect script helper
    """

    dialect_name = "This database"

    def __init__(self, options: ProjectOptions, helper: ScriptHelper):
        self.options = options
        self.helper = helper

    @property
    def indent(self) -> str:
        return INDENT

    def object_name(self, obj: SchemaObject) -> str:
        """Return the quoted, dialect-specific name of *obj*."""
        if obj is None:
            raise ValueError("obj is required")
        return self.helper.script_object_name(obj)

    # ------------------------------------------------------------------
    # Full scripts
    # ------------------------------------------------------------------

    def generate_full_create_script(self, graph: SchemaGraph) -> str:
        """Script every object of *graph* in dependency order."""
        if graph is None:
            raise ValueError("graph is required")

        comment = self.helper.script_comment
        sb = io.StringIO()

        if graph.schemas:
            sb.write(comment(LABEL_SCHEMAS) + "\n")
            for schema in sorted(graph.schemas, key=lambda x: x.name):
                sb.write(self.script_create_schema(schema))
            sb.write("\n")

        user_types = [t for t in graph.data_types if t.is_user_defined]
        if user_types:
            sb.write(comment(LABEL_USER_DEFINED_TYPES) + "\n")
            for data_type in by_name(user_types):
                sb.write(self.script_create_type(data_type) + "\n")
            sb.write("\n")

        if graph.sequences:
            sb.write(comment(LABEL_SEQUENCES) + "\n")
            for sequence in by_name(graph.sequences):
                sb.write(self.script_create_sequence(sequence) + "\n")
            sb.write("\n")

        if graph.tables:
            sb.write(comment(LABEL_TABLES) + "\n")
            for table in self.get_sorted_tables(graph.tables, drop_order=False):
                sb.write(self.script_create_table(table) + "\n")
            sb.write("\n")

        if graph.primary_keys:
            sb.write(comment(LABEL_PRIMARY_KEYS) + "\n")
            for primary_key in by_table(graph.primary_keys):
                sb.write(self.script_alter_table_add_primary_key(primary_key))
            sb.write("\n")

        if graph.foreign_keys:
            sb.write(comment(LABEL_FOREIGN_KEYS) + "\n")
            for foreign_key in by_table(graph.foreign_keys):
                sb.write(self.script_alter_table_add_foreign_key(foreign_key))
            sb.write("\n")

        if graph.constraints:
            sb.write(comment(LABEL_CONSTRAINTS) + "\n")
            for constraint in by_name(graph.constraints):
                sb.write(self.script_alter_table_add_constraint(constraint))
            sb.write("\n")

        if graph.functions:
            sb.write(comment(LABEL_FUNCTIONS) + "\n")
            for function in self.get_sorted_functions(graph.functions, drop_order=False):
                sb.write(self.helper.script_commit_transaction())
                sb.write(self.script_create_function(function))
                sb.write("\n")
            sb.write("\n")

        if graph.stored_procedures:
            sb.write(comment(LABEL_STORED_PROCEDURES) + "\n")
            for procedure in by_name(graph.stored_procedures):
                sb.write(self.helper.script_commit_transaction())
                sb.write(self.script_create_stored_procedure(procedure))
                sb.write("\n")
            sb.write("\n")

        if graph.views:
            sb.write(comment(LABEL_VIEWS) + "\n")
            for view in by_name(graph.views):
                sb.write(self.helper.script_commit_transaction())
                sb.write(self.script_create_view(view) + "\n")
            sb.write("\n")

        if graph.indexes:
            sb.write(comment(LABEL_INDEXES) + "\n")
            for index in self.get_sorted_indexes(graph.indexes):
                sb.write(self.script_create_index(index))
            sb.write("\n")

        if graph.triggers:
            sb.write(comment(LABEL_TRIGGERS) + "\n")
            for trigger in by_name(graph.triggers):
                sb.write(self.script_create_trigger(trigger) + "\n")
            sb.write("\n")

        period_tables = by_name(t for t in graph.tables if t.has_period)
        if period_tables:
            sb.write(comment(LABEL_PERIODS) + "\n")
            for table in period_tables:
                sb.write(self.script_alter_table_add_period(table) + "\n")

        history_tables = by_name(t for t in graph.tables if t.has_history_table)
        if history_tables:
            sb.write(comment(LABEL_HISTORIES) + "\n")
            for table in history_tables:
                sb.write(self.script_alter_table_add_history(table) + "\n")

        return sb.getvalue()

    def generate_full_drop_script(self, graph: SchemaGraph) -> str:
        """Script the removal of every object of *graph*, dependents first."""
        if graph is None:
            raise ValueError("graph is required")

        comment = self.helper.script_comment
        sb = io.StringIO()

        history_tables = by_name(t for t in graph.tables if t.has_history_table)
        if history_tables:
            sb.write(comment(LABEL_HISTORIES) + "\n")
            for table in history_tables:
                sb.write(self.script_alter_table_drop_history(table) + "\n")

        period_tables = by_name(t for t in graph.tables if t.has_period)
        if period_tables:
            sb.write(comment(LABEL_PERIODS) + "\n")
            for table in period_tables:
                sb.write(self.script_alter_table_drop_period(table) + "\n")

        if graph.triggers:
            sb.write(comment(LABEL_TRIGGERS) + "\n")
            for trigger in by_name(graph.triggers):
                sb.write(self.script_drop_trigger(trigger))
            sb.write("\n")

        # Foreign keys go before indexes: MySQL refuses to drop an index a foreign key needs
        if graph.foreign_keys:
            sb.write(comment(LABEL_FOREIGN_KEYS) + "\n")
            for foreign_key in by_table(graph.foreign_keys):
                sb.write(self.script_alter_table_drop_foreign_key(foreign_key))
            sb.write("\n")

        if graph.indexes:
            sb.write(comment(LABEL_INDEXES) + "\n")
            for index in by_name(graph.indexes):
                sb.write(self.script_drop_index(index))
            sb.write("\n")

        if graph.primary_keys:
            sb.write(comment(LABEL_PRIMARY_KEYS) + "\n")
            for primary_key in by_table(graph.primary_keys):
                sb.write(self.script_alter_table_drop_primary_key(primary_key))
            sb.write("\n")

        if graph.views:
            sb.write(comment(LABEL_VIEWS) + "\n")
            for view in by_name(graph.views):
                sb.write(self.script_drop_view(view))
            sb.write("\n")

        if graph.functions:
            sb.write(comment(LABEL_FUNCTIONS) + "\n")
            for function in self.get_sorted_functions(graph.functions, drop_order=True):
                sb.write(self.script_drop_function(function))
            sb.write("\n")

        if graph.stored_procedures:
            sb.write(comment(LABEL_STORED_PROCEDURES) + "\n")
            for procedure in by_name(graph.stored_procedures):
                sb.write(self.script_drop_stored_procedure(procedure))
            sb.write("\n")

        if graph.constraints or any(c.default_constraint_name for t in graph.tables for c in t.columns):
            sb.write(comment(LABEL_CONSTRAINTS) + "\n")
            for constraint in graph.constraints:
                sb.write(self.script_alter_table_drop_constraint(constraint))
            for table in by_name(graph.tables):
                for constraint in self._default_constraints(table):
                    sb.write(self.script_alter_table_drop_constraint(constraint))
            sb.write("\n")

        if graph.tables:
            sb.write(comment(LABEL_TABLES) + "\n")
            for table in self.get_sorted_tables(graph.tables, drop_order=True):
                sb.write(self.script_drop_table(table))
            sb.write("\n")

        user_types = [t for t in graph.data_types if t.is_user_defined]
        if user_types:
            sb.write(comment(LABEL_USER_DEFINED_TYPES) + "\n")
            for data_type in by_name(user_types):
                sb.write(self.script_drop_type(data_type))
            sb.write("\n")

        if graph.sequences:
            sb.write(comment(LABEL_SEQUENCES) + "\n")
            for sequence in by_name(s for s in graph.sequences if not s.is_auto_generated):
                sb.write(self.script_drop_sequence(sequence))
            sb.write("\n")

        if graph.schemas:
            sb.write(comment(LABEL_SCHEMAS) + "\n")
            for schema in sorted(graph.schemas, key=lambda x: x.name):
                sb.write(self.script_drop_schema(schema))
            sb.write("\n")

        return sb.getvalue()

    def generate_full_alter_script(
        self,
        different_items: Sequence[CompareResultItem],
        only_source: SchemaGraph,
        only_target: SchemaGraph,
    ) -> str:
        """Script the migration of the target toward the source.

        Drops what exists only in the target, alters what differs, then
        creates what exists only in the source.
        """
        sb = io.StringIO()
        sb.write(self.generate_full_drop_script(only_target))

        def of_kind(kind: DatabaseObjectType, key: Callable) -> list[SchemaObject]:
            items = [i for i in different_items if i.item_type == kind]
            items.sort(key=lambda i: key(i.source_item))
            return [i.source_item or i.target_item for i in items]

        def name_key(x):
            return (x.schema or "", x.name or "")

        # Table children sort by owning table first
        def child_key(x):
            return (x.table_schema or "", x.table_name or "", x.schema or "", x.name or "")

        items: list[SchemaObject] = []
        items += of_kind(DatabaseObjectType.SCHEMA, lambda x: x.name or "")
        items += of_kind(DatabaseObjectType.TRIGGER, child_key)
        items += of_kind(DatabaseObjectType.TABLE, name_key)
        items += of_kind(DatabaseObjectType.PRIMARY_KEY, child_key)
        items += of_kind(DatabaseObjectType.CONSTRAINT, child_key)
        items += of_kind(DatabaseObjectType.INDEX, name_key)
        items += of_kind(DatabaseObjectType.FOREIGN_KEY, child_key)
        items += of_kind(DatabaseObjectType.VIEW, name_key)
        items += of_kind(DatabaseObjectType.FUNCTION, name_key)
        items += of_kind(DatabaseObjectType.STORED_PROCEDURE, name_key)
        items += of_kind(DatabaseObjectType.SEQUENCE, name_key)
        items += of_kind(DatabaseObjectType.DATA_TYPE, name_key)
        for item in items:
            sb.write(self.generate_alter_script(item, False))

        sb.write(self.generate_full_create_script(only_source))
        return sb.getvalue()

    # ------------------------------------------------------------------
    # Per-object scripts
    # ------------------------------------------------------------------

    def generate_create_script(self, obj: SchemaObject, include_children: bool = False) -> str:
        """Script the creation of *obj*, optionally with its child objects."""
        kind = obj.kind

        if kind == DatabaseObjectType.SCHEMA:
            return self.script_create_schema(obj)

        if kind == DatabaseObjectType.TABLE:
            if not include_children:
                return self.script_create_table(obj)

            maps = [
                ObjectMap(objects=[obj]),
                ObjectMap(LABEL_PRIMARY_KEYS, by_name(obj.primary_keys)),
                ObjectMap(LABEL_FOREIGN_KEYS, by_name(obj.foreign_keys)),
                ObjectMap(LABEL_CONSTRAINTS, by_name(obj.constraints)),
                ObjectMap(LABEL_TRIGGERS, by_name(obj.triggers)),
                ObjectMap(LABEL_INDEXES, self.get_sorted_indexes(obj.indexes)),
            ]
            sb = io.StringIO()
            sb.write(self._object_map_script(maps, self.generate_create_script))

            if obj.has_period:
                if sb.tell():
                    sb.write("\n")
                sb.write(self.helper.script_comment(LABEL_PERIOD) + "\n")
                sb.write(self.script_alter_table_add_period(obj))

            if obj.has_history_table:
                if sb.tell():
                    sb.write("\n")
                sb.write(self.helper.script_comment(LABEL_HISTORY) + "\n")
                sb.write(self.script_alter_table_add_history(obj))

            return sb.getvalue()

        if kind == DatabaseObjectType.VIEW:
            if not include_children:
                return self.script_create_view(obj)

            maps = [
                ObjectMap(objects=[obj]),
                ObjectMap(LABEL_INDEXES, self.get_sorted_indexes(obj.indexes)),
            ]
            return self._object_map_script(maps, self.generate_create_script)

        if kind == DatabaseObjectType.PRIMARY_KEY:
            return self.script_alter_table_add_primary_key(obj)
        if kind == DatabaseObjectType.INDEX:
            return self.script_create_index(obj)
        if kind == DatabaseObjectType.FOREIGN_KEY:
            return self.script_alter_table_add_foreign_key(obj)
        if kind == DatabaseObjectType.CONSTRAINT:
            return self.script_alter_table_add_constraint(obj)
        if kind == DatabaseObjectType.FUNCTION:
            return self.script_create_function(obj)
        if kind == DatabaseObjectType.SEQUENCE:
            return self.script_create_sequence(obj)
        if kind == DatabaseObjectType.STORED_PROCEDURE:
            return self.script_create_stored_procedure(obj)
        if kind == DatabaseObjectType.TRIGGER:
            return self.script_create_trigger(obj)
        if kind == DatabaseObjectType.DATA_TYPE:
            return self.script_create_type(obj)
        if kind == DatabaseObjectType.COLUMN:
            return self.helper.script_column(obj)
        raise NotImplementedError(f"Cannot script the creation of a {kind.name}")

    def generate_drop_script(self, obj: SchemaObject, include_children: bool = False) -> str:
        """Script the removal of *obj*, optionally with its child objects first."""
        kind = obj.kind

        if kind == DatabaseObjectType.SCHEMA:
            return self.script_drop_schema(obj)

        if kind == DatabaseObjectType.TABLE:
            if not include_children:
                return self.script_drop_table(obj)

            maps = [
                ObjectMap(LABEL_INDEXES, self.get_sorted_indexes(obj.indexes)),
                ObjectMap(LABEL_REFERENCING_FOREIGN_KEYS, by_name(obj.referencing_foreign_keys)),
                ObjectMap(LABEL_PRIMARY_KEYS, by_name(obj.primary_keys)),
                ObjectMap(LABEL_FOREIGN_KEYS, by_name(obj.foreign_keys)),
                ObjectMap(LABEL_CONSTRAINTS, by_name(obj.constraints) + self._default_constraints(obj)),
                ObjectMap(LABEL_TRIGGERS, by_name(obj.triggers)),
                ObjectMap(objects=[obj]),
            ]
            sb = io.StringIO()

            if obj.has_history_table:
                sb.write(self.helper.script_comment(LABEL_HISTORY) + "\n")
                sb.write(self.script_alter_table_drop_history(obj) + "\n")

            if obj.has_period:
                sb.write(self.helper.script_comment(LABEL_PERIOD) + "\n")
                sb.write(self.script_alter_table_drop_period(obj) + "\n")

            sb.write(self._object_map_script(maps, self.generate_drop_script))
            return sb.getvalue()

        if kind == DatabaseObjectType.VIEW:
            if not include_children:
                return self.script_drop_view(obj)

            maps = [
                ObjectMap(LABEL_INDEXES, self.get_sorted_indexes(obj.indexes)),
                ObjectMap(objects=[obj]),
            ]
            return self._object_map_script(maps, self.generate_drop_script)

        if kind == DatabaseObjectType.PRIMARY_KEY:
            return self.script_alter_table_drop_primary_key(obj)
        if kind == DatabaseObjectType.INDEX:
            return self.script_drop_index(obj)
        if kind == DatabaseObjectType.FOREIGN_KEY:
            return self.script_alter_table_drop_foreign_key(obj)
        if kind == DatabaseObjectType.CONSTRAINT:
            return self.script_alter_table_drop_constraint(obj)
        if kind == DatabaseObjectType.FUNCTION:
            return self.script_drop_function(obj)
        if kind == DatabaseObjectType.SEQUENCE:
            return self.script_drop_sequence(obj)
        if kind == DatabaseObjectType.STORED_PROCEDURE:
            return self.script_drop_stored_procedure(obj)
        if kind == DatabaseObjectType.TRIGGER:
            return self.script_drop_trigger(obj)
        if kind == DatabaseObjectType.DATA_TYPE:
            return self.script_drop_type(obj)
        raise NotImplementedError(f"Cannot script the removal of a {kind.name}")

    def generate_alter_script(self, obj: SchemaObject, include_children: bool = False) -> str:
        """Script what turns the target version of *obj* into the source one.

        A target-side object is dropped; an unmapped source object is
        created; identical create scripts produce an empty string.
        """
        if obj is None:
            raise ValueError("obj is required")

        if obj.direction == CompareDirection.TARGET:
            return self.generate_drop_script(obj, include_children)

        target = obj.mapped
        if target is None:
            return self.generate_create_script(obj, include_children)

        if obj.create_script == target.create_script:
            return ""

        kind = obj.kind
        if kind == DatabaseObjectType.SCHEMA:
            return self.script_alter_schema(obj)
        if kind == DatabaseObjectType.TABLE:
            if include_children:
                return self._alter_table_and_children(obj)
            return self.script_alter_table(obj)
        if kind == DatabaseObjectType.VIEW:
            return self.script_alter_view(obj, target)
        if kind == DatabaseObjectType.PRIMARY_KEY:
            return self.script_alter_primary_key(obj, target)
        if kind == DatabaseObjectType.INDEX:
            return self.script_alter_index(obj, target)
        if kind == DatabaseObjectType.FOREIGN_KEY:
            return self.script_alter_foreign_key(obj, target)
        if kind == DatabaseObjectType.CONSTRAINT:
            return self.script_alter_constraint(obj, target)
        if kind == DatabaseObjectType.FUNCTION:
            return self.script_alter_function(obj, target)
        if kind == DatabaseObjectType.SEQUENCE:
            return self.script_alter_sequence(obj, target)
        if kind == DatabaseObjectType.STORED_PROCEDURE:
            return self.script_alter_stored_procedure(obj, target)
        if kind == DatabaseObjectType.TRIGGER:
            return self.script_alter_trigger(obj, target)
        if kind == DatabaseObjectType.DATA_TYPE:
            return self.script_alter_type(obj, target)
        raise NotImplementedError(f"Cannot script the alteration of a {kind.name}")

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def get_sorted_table_columns(self, table: Table) -> list[Column]:
        """Order the columns of *table* for scripting.

        Columns follow ordinal position, or name when
        ``order_column_alphabetically`` is set.  A target-side table with a
        mapped counterpart lists the columns it shares with it first, in the
        counterpart's order, unless ``ignore_reference_column_order`` is set.
        """
        if table is None:
            raise ValueError("table is required")

        columns = self._plain_column_order(table)

        reference = table.mapped if table.direction != CompareDirection.SOURCE else None
        if reference is None or self.options.scripting.ignore_reference_column_order:
            return columns

        sorted_columns = []
        for reference_column in self._plain_column_order(reference):
            wanted = reference_column.name.casefold()
            for column in columns:
                if column.name.casefold() == wanted:
                    sorted_columns.append(column)
                    columns.remove(column)
                    break

        sorted_columns.extend(columns)
        return sorted_columns

    def _plain_column_order(self, table: Table) -> list[Column]:
        if self.options.scripting.order_column_alphabetically:
            return sorted(table.columns, key=lambda x: x.name)
        return self.order_columns_by_ordinal_position(table)

    def order_columns_by_ordinal_position(self, table: Table) -> list[Column]:
        return sorted(table.columns, key=lambda x: x.ordinal_position)

    def get_sorted_tables(self, tables: Sequence[Table], drop_order: bool) -> list[Table]:
        """Tables in creation order (or removal order when *drop_order*)."""
        return by_name(tables)

    def get_sorted_functions(self, functions: Sequence[Function], drop_order: bool) -> list[Function]:
        return by_name(functions)

    def get_sorted_indexes(self, indexes: Sequence[Index]) -> list[Index]:
        return by_name(indexes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _object_map_script(
        self,
        maps: Iterable[ObjectMap],
        script: Callable[[SchemaObject, bool], str],
    ) -> str:
        sb = io.StringIO()
        additional_empty_line = False
        for object_map in maps:
            if not object_map.objects:
                continue

            if additional_empty_line and sb.tell():
                sb.write("\n")

            if object_map.title:
                sb.write(self.helper.script_comment(object_map.title) + "\n")

            for item in object_map.objects:
                sb.write(script(item, False))

            additional_empty_line = True

        return sb.getvalue()

    def _alter_table_and_children(self, table: Table) -> str:
        target: Table = table.mapped

        def unmapped(items):
            return [x for x in items if x.mapped is None]

        def changed(items):
            return [x for x in items if x.mapped is None or x.create_script != x.mapped.create_script]

        maps = [
            # Drop what is gone first
            ObjectMap(LABEL_PRIMARY_KEYS, by_name(unmapped(target.primary_keys))),
            ObjectMap(LABEL_FOREIGN_KEYS, by_name(unmapped(target.foreign_keys))),
            ObjectMap(LABEL_CONSTRAINTS, by_name(unmapped(target.constraints))),
            ObjectMap(LABEL_TRIGGERS, by_name(unmapped(target.triggers))),
            ObjectMap(LABEL_INDEXES, unmapped(self.get_sorted_indexes(target.indexes))),
            ObjectMap(objects=[table]),
            ObjectMap(LABEL_PRIMARY_KEYS, by_name(changed(table.primary_keys))),
            ObjectMap(LABEL_FOREIGN_KEYS, by_name(changed(table.foreign_keys))),
            ObjectMap(LABEL_CONSTRAINTS, by_name(changed(table.constraints))),
            ObjectMap(LABEL_TRIGGERS, by_name(changed(table.triggers))),
            ObjectMap(LABEL_INDEXES, changed(self.get_sorted_indexes(table.indexes))),
        ]
        return self._object_map_script(maps, self.generate_alter_script)

    @staticmethod
    def _default_constraints(table: Table) -> list[Constraint]:
        """Named column default constraints, as synthetic constraint objects."""
        columns = sorted(
            (c for c in table.columns if c.default_constraint_name),
            key=lambda c: c.default_constraint_name,
        )
        return [
            Constraint(
                name=c.default_constraint_name,
                table_schema=table.schema,
                table_name=table.name,
                graph=table.graph,
            )
            for c in columns
        ]

    def _unsupported(self, what: str):
        raise NotImplementedError(f"{self.dialect_name} doesn't support {what}")

    # ------------------------------------------------------------------
    # Statement renderers
    # ------------------------------------------------------------------

    @abstractmethod
    def script_create_schema(self, schema: Schema) -> str: ...

    @abstractmethod
    def script_drop_schema(self, schema: Schema) -> str: ...

    @abstractmethod
    def script_alter_schema(self, schema: Schema) -> str: ...

    @abstractmethod
    def script_create_table(self, table: Table) -> str: ...

    @abstractmethod
    def script_drop_table(self, table: Table) -> str: ...

    @abstractmethod
    def script_alter_table(self, table: Table) -> str: ...

    @abstractmethod
    def script_alter_table_add_primary_key(self, primary_key: PrimaryKey) -> str: ...

    @abstractmethod
    def script_alter_table_drop_primary_key(self, primary_key: PrimaryKey) -> str: ...

    def script_alter_primary_key(self, source: PrimaryKey, target: PrimaryKey) -> str:
        return self.script_alter_table_drop_primary_key(target) + self.script_alter_table_add_primary_key(source)

    @abstractmethod
    def script_alter_table_add_foreign_key(self, foreign_key: ForeignKey) -> str: ...

    @abstractmethod
    def script_alter_table_drop_foreign_key(self, foreign_key: ForeignKey) -> str: ...

    def script_alter_foreign_key(self, source: ForeignKey, target: ForeignKey) -> str:
        return self.script_alter_table_drop_foreign_key(target) + self.script_alter_table_add_foreign_key(source)

    @abstractmethod
    def script_alter_table_add_constraint(self, constraint: Constraint) -> str: ...

    @abstractmethod
    def script_alter_table_drop_constraint(self, constraint: Constraint) -> str: ...

    def script_alter_constraint(self, source: Constraint, target: Constraint) -> str:
        return self.script_alter_table_drop_constraint(target) + self.script_alter_table_add_constraint(source)

    def script_alter_table_add_period(self, table: Table) -> str:
        self._unsupported("periods")

    def script_alter_table_drop_period(self, table: Table) -> str:
        self._unsupported("periods")

    def script_alter_table_add_history(self, table: Table) -> str:
        self._unsupported("the history")

    def script_alter_table_drop_history(self, table: Table) -> str:
        self._unsupported("the history")

    @abstractmethod
    def script_create_index(self, index: Index) -> str: ...

    @abstractmethod
    def script_drop_index(self, index: Index) -> str: ...

    def script_alter_index(self, source: Index, target: Index) -> str:
        return self.script_drop_index(target) + self.script_create_index(source)

    @abstractmethod
    def script_create_view(self, view: View) -> str: ...

    @abstractmethod
    def script_drop_view(self, view: View) -> str: ...

    def script_alter_view(self, source: View, target: View) -> str:
        return self.script_drop_view(target) + self.script_create_view(source)

    @abstractmethod
    def script_create_function(self, function: Function) -> str: ...

    @abstractmethod
    def script_drop_function(self, function: Function) -> str: ...

    def script_alter_function(self, source: Function, target: Function) -> str:
        return self.script_drop_function(target) + self.script_create_function(source)

    @abstractmethod
    def script_create_stored_procedure(self, procedure: StoredProcedure) -> str: ...

    @abstractmethod
    def script_drop_stored_procedure(self, procedure: StoredProcedure) -> str: ...

    def script_alter_stored_procedure(self, source: StoredProcedure, target: StoredProcedure) -> str:
        return self.script_drop_stored_procedure(target) + self.script_create_stored_procedure(source)

    @abstractmethod
    def script_create_trigger(self, trigger: Trigger) -> str: ...

    @abstractmethod
    def script_drop_trigger(self, trigger: Trigger) -> str: ...

    def script_alter_trigger(self, source: Trigger, target: Trigger) -> str:
        return self.script_drop_trigger(target) + self.script_create_trigger(source)

    @abstractmethod
    def script_create_sequence(self, sequence: DbSequence) -> str: ...

    @abstractmethod
    def script_drop_sequence(self, sequence: DbSequence) -> str: ...

    @abstractmethod
    def script_alter_sequence(self, source: DbSequence, target: DbSequence) -> str: ...

    @abstractmethod
    def script_create_type(self, data_type: DataType) -> str: ...

    @abstractmethod
    def script_drop_type(self, data_type: DataType) -> str: ...

    def script_alter_type(self, source: DataType, target: DataType) -> str:
        return self.script_drop_type(target) + self.script_create_type(source)
