"""Schema object model and comparison result models.

This module contains schema-domain models:
- Enums: DatabaseObjectType, DatabaseType, CompareDirection
- Object model: SchemaObject and one dataclass per object kind
  (Schema, Table, Column, Constraint, ForeignKey, Index, PrimaryKey,
  Trigger, View, Function, StoredProcedure, Sequence, DataType, User)
- SchemaGraph: one fetched database, owning every object
- Result models: CompareResultItemScripts, CompareResultItem, CompareResult

Every kind is a single dataclass whose dialect-specific attributes are
plain optional fields; the dialect itself is a tag on the owning
``SchemaGraph``.  Objects compare by identity.

Usage:
    from schema_compare.schema.models import SchemaGraph, Table, Column

    graph = SchemaGraph(dialect=DatabaseType.POSTGRESQL)
    users = graph.add(Table(schema="public", name="users"))
    graph.add(Column(name="id", data_type="integer", ordinal_position=1), owner=users)
"""

import weakref
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Enums
# ============================================================================


class DatabaseObjectType(IntEnum):
    """Kind tag of a schema object."""

    SCHEMA = 0
    TABLE = 1
    COLUMN = 2
    PRIMARY_KEY = 3
    FOREIGN_KEY = 4
    INDEX = 5
    CONSTRAINT = 6
    TRIGGER = 7
    VIEW = 8
    FUNCTION = 9
    STORED_PROCEDURE = 10
    DATA_TYPE = 11
    SEQUENCE = 12
    USER = 13


class DatabaseType(str, Enum):
    """Database engine dialect."""

    MICROSOFT_SQL = "mssql"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"


class CompareDirection(str, Enum):
    """Side of the comparison a graph was fetched for."""

    SOURCE = "source"
    TARGET = "target"


# Kinds whose alter is always synthesized as drop + create
_ALTER_UNSUPPORTED: dict[DatabaseType, frozenset[DatabaseObjectType]] = {
    DatabaseType.MYSQL: frozenset(
        {
            DatabaseObjectType.FUNCTION,
            DatabaseObjectType.STORED_PROCEDURE,
            DatabaseObjectType.TRIGGER,
        }
    ),
    DatabaseType.POSTGRESQL: frozenset(
        {DatabaseObjectType.FUNCTION, DatabaseObjectType.TRIGGER}
    ),
}


# ============================================================================
# Object Model
# ============================================================================


@dataclass(eq=False)
class SchemaObject:
    """Attributes shared by every schema object.

    The mapped counterpart is held through a weak reference: the two
    graphs of a comparison never own each other's objects.

    Example:
        >>> table = Table(schema="public", name="users")
        >>> table.key
        (<DatabaseObjectType.TABLE: 1>, 'public', 'users')
        >>> table.mapped is None
        True
    """

    kind: ClassVar[DatabaseObjectType]

    name: str = ""
    schema: str = ""
    graph: "SchemaGraph | None" = field(default=None, repr=False)
    create_script: str = field(default="", repr=False)
    alter_script: str = field(default="", repr=False)
    _mapped_ref: "weakref.ref[SchemaObject] | None" = field(
        default=None, init=False, repr=False
    )

    @property
    def key(self) -> tuple[DatabaseObjectType, str, str]:
        """Identity key used for matching within one graph."""
        return (self.kind, self.schema, self.name)

    @property
    def mapped(self) -> "SchemaObject | None":
        """Counterpart in the other graph, set by the mapper."""
        if self._mapped_ref is None:
            return None
        return self._mapped_ref()

    @mapped.setter
    def mapped(self, other: "SchemaObject | None") -> None:
        self._mapped_ref = weakref.ref(other) if other is not None else None

    @property
    def alter_supported(self) -> bool:
        """False when an alter of this kind must be drop + create."""
        if self.graph is None:
            return True
        return self.kind not in _ALTER_UNSUPPORTED.get(self.graph.dialect, frozenset())

    @property
    def direction(self) -> "CompareDirection | None":
        """Direction of the owning graph, if any."""
        return self.graph.direction if self.graph is not None else None


@dataclass(eq=False)
class Schema(SchemaObject):
    """A database schema (namespace).

    For schemas ``name`` carries the schema identity and ``schema`` is
    usually empty.
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.SCHEMA

    owner: str = ""


@dataclass(eq=False)
class Column(SchemaObject):
    """A table column.

    ``is_nullable``, precision and collation fields are common; the rest
    are populated by the dialect that knows them:

    - PostgreSQL: ``udt_name``, ``interval_type``
    - MySQL: ``column_type``, ``extra``, ``generation_expression``
    - T-SQL: identity, computed, rowguid and alias type fields,
      ``default_constraint_name``
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.COLUMN

    table_schema: str = ""
    table_name: str = ""
    ordinal_position: int = 0
    data_type: str = ""
    column_default: str | None = None
    is_nullable: bool = True
    character_max_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    datetime_precision: int | None = None
    character_set_name: str | None = None
    collation_name: str | None = None
    default_constraint_name: str | None = None
    # PostgreSQL
    udt_name: str | None = None
    interval_type: str | None = None
    # MySQL
    column_type: str = ""
    extra: str = ""
    generation_expression: str = ""
    # T-SQL
    is_identity: bool = False
    identity_seed: int = 1
    identity_increment: int = 1
    is_computed: bool = False
    definition: str = ""
    is_row_guid_col: bool = False
    user_defined_data_type: str | None = None
    user_defined_data_type_schema: str | None = None


@dataclass(eq=False)
class Constraint(SchemaObject):
    """A table constraint (CHECK / UNIQUE); base of keys and indexes."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.CONSTRAINT

    table_schema: str = ""
    table_name: str = ""
    column_names: list[str] = field(default_factory=list)
    constraint_type: str = ""
    definition: str = ""


@dataclass(eq=False)
class ForeignKey(Constraint):
    """A foreign key with its ordered referenced columns."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.FOREIGN_KEY

    referenced_table_schema: str = ""
    referenced_table_name: str = ""
    referenced_column_names: list[str] = field(default_factory=list)
    update_rule: str = "NO ACTION"
    delete_rule: str = "NO ACTION"
    # PostgreSQL
    match_option: str = "NONE"
    is_deferrable: bool = False
    is_initially_deferred: bool = False
    # T-SQL
    disabled: bool = False


@dataclass(eq=False)
class Index(Constraint):
    """An index on a table or view.

    ``index_type`` is dialect specific: ``btree``/``gist``/``hash`` for
    PostgreSQL, ``FULLTEXT``/``SPATIAL``/``HASH`` (or empty) for MySQL,
    ``CLUSTERED``/``NONCLUSTERED``/``XML``/``SPATIAL`` for T-SQL.
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.INDEX

    column_descending: list[bool] = field(default_factory=list)
    included_columns: list[str] = field(default_factory=list)
    index_type: str = ""
    is_unique: bool = False
    filter_definition: str | None = None


@dataclass(eq=False)
class PrimaryKey(Index):
    """A primary key; ``type_description`` is the T-SQL CLUSTERED/NONCLUSTERED flavor."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.PRIMARY_KEY

    type_description: str = "CLUSTERED"


@dataclass(eq=False)
class Trigger(SchemaObject):
    """A trigger with its full definition text."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.TRIGGER

    table_schema: str = ""
    table_name: str = ""
    definition: str = ""


@dataclass(eq=False)
class Table(SchemaObject):
    """A table owning its columns, keys, indexes, constraints and triggers.

    ``referencing_foreign_keys`` holds foreign keys of *other* tables that
    point at this one.  PostgreSQL tables may inherit from a parent;
    T-SQL tables may be system-versioned.
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.TABLE

    columns: list[Column] = field(default_factory=list)
    primary_keys: list[PrimaryKey] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    referencing_foreign_keys: list[ForeignKey] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)
    triggers: list[Trigger] = field(default_factory=list)
    modify_date: str | None = None
    # PostgreSQL
    inherited_table_schema: str | None = None
    inherited_table_name: str | None = None
    # MySQL
    engine: str | None = None
    table_character_set: str | None = None
    # T-SQL
    has_period: bool = False
    period_name: str | None = None
    period_start_column: str | None = None
    period_end_column: str | None = None
    has_history_table: bool = False
    history_table_schema: str | None = None
    history_table_name: str | None = None

    def child_collection(self, kind: DatabaseObjectType) -> list:
        """Local collection holding children of *kind*."""
        collections = {
            DatabaseObjectType.COLUMN: self.columns,
            DatabaseObjectType.PRIMARY_KEY: self.primary_keys,
            DatabaseObjectType.FOREIGN_KEY: self.foreign_keys,
            DatabaseObjectType.INDEX: self.indexes,
            DatabaseObjectType.CONSTRAINT: self.constraints,
            DatabaseObjectType.TRIGGER: self.triggers,
        }
        if kind not in collections:
            raise ValueError(f"A table does not own objects of kind {kind.name}")
        return collections[kind]


@dataclass(eq=False)
class View(SchemaObject):
    """A view; ``check_option`` is the PostgreSQL CHECK OPTION (``NONE`` when unset)."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.VIEW

    view_definition: str = ""
    indexes: list[Index] = field(default_factory=list)
    check_option: str = "NONE"

    def child_collection(self, kind: DatabaseObjectType) -> list:
        if kind != DatabaseObjectType.INDEX:
            raise ValueError(f"A view does not own objects of kind {kind.name}")
        return self.indexes


@dataclass(eq=False)
class Function(SchemaObject):
    """A function.

    MySQL and T-SQL keep the full text in ``definition``.  PostgreSQL keeps
    only the body there and describes the signature through type ids that
    resolve against the graph's data types.
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.FUNCTION

    definition: str = ""
    # PostgreSQL
    external_language: str = "plpgsql"
    security_type: str = "INVOKER"
    cost: float = 100
    rows: float = 0
    is_strict: bool = False
    return_set: bool = False
    volatile: str = "v"
    return_type: int = 0
    arg_types: list[int] = field(default_factory=list)
    all_arg_types: list[int] | None = None
    arg_modes: list[str] | None = None
    arg_names: list[str] | None = None
    is_aggregate: bool = False
    aggregate_transition_function: str = ""
    aggregate_transition_type: int = 0
    aggregate_final_function: str = ""
    aggregate_initial_value: str | None = None


@dataclass(eq=False)
class StoredProcedure(SchemaObject):
    """A stored procedure with its full definition text."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.STORED_PROCEDURE

    definition: str = ""


@dataclass(eq=False)
class Sequence(SchemaObject):
    """A sequence.

    ``is_auto_generated`` marks sequences owned by identity/serial columns,
    which are never dropped explicitly.
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.SEQUENCE

    data_type: str = "bigint"
    start_value: int = 1
    increment: int = 1
    min_value: int = 1
    max_value: int = 9223372036854775807
    is_cycling: bool = False
    is_auto_generated: bool = False
    # PostgreSQL
    cache: int = 1
    # T-SQL
    is_cached: bool = True


@dataclass(eq=False)
class DataType(SchemaObject):
    """A data type.

    Built-in types (``is_user_defined`` False) are kept in the graph so
    PostgreSQL type ids can be resolved; they are never scripted.

    PostgreSQL ``type_category`` is one of ``base``, ``enum``,
    ``composite``, ``range`` or ``domain``.  T-SQL alias types use the
    ``system_type_name``/length/precision fields.
    """

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.DATA_TYPE

    is_user_defined: bool = False
    # PostgreSQL
    type_id: int = 0
    type_category: str = "base"
    is_array: bool = False
    array_type_id: int | None = None
    labels: list[str] = field(default_factory=list)
    attribute_names: list[str] = field(default_factory=list)
    attribute_type_ids: list[int] = field(default_factory=list)
    sub_type_id: int = 0
    canonical: str | None = None
    sub_type_diff: str | None = None
    base_type_id: int = 0
    not_null: bool = False
    constraint_name: str | None = None
    constraint_definition: str | None = None
    # T-SQL
    system_type_name: str = ""
    max_length: int = 0
    precision: int = 0
    scale: int = 0
    is_nullable: bool = True


@dataclass(eq=False)
class User(SchemaObject):
    """A database user or role (fetched for reference, never compared)."""

    kind: ClassVar[DatabaseObjectType] = DatabaseObjectType.USER

    user_type: str = ""
    default_schema_name: str | None = None
    host: str | None = None
    is_superuser: bool = False


# ============================================================================
# Schema Graph
# ============================================================================


# Graph-level collection attribute per kind (columns live only in tables)
_GRAPH_COLLECTIONS: dict[DatabaseObjectType, str] = {
    DatabaseObjectType.SCHEMA: "schemas",
    DatabaseObjectType.TABLE: "tables",
    DatabaseObjectType.VIEW: "views",
    DatabaseObjectType.FUNCTION: "functions",
    DatabaseObjectType.STORED_PROCEDURE: "stored_procedures",
    DatabaseObjectType.DATA_TYPE: "data_types",
    DatabaseObjectType.SEQUENCE: "sequences",
    DatabaseObjectType.USER: "users",
    DatabaseObjectType.INDEX: "indexes",
    DatabaseObjectType.CONSTRAINT: "constraints",
    DatabaseObjectType.PRIMARY_KEY: "primary_keys",
    DatabaseObjectType.FOREIGN_KEY: "foreign_keys",
    DatabaseObjectType.TRIGGER: "triggers",
}


@dataclass(eq=False)
class SchemaGraph:
    """One fetched database.

    Second-level objects (indexes, constraints, primary keys, foreign keys,
    triggers) appear once in their owner's local collection and once in
    the matching global collection here.

    Example:
        >>> graph = SchemaGraph(dialect=DatabaseType.POSTGRESQL)
        >>> table = graph.add(Table(schema="public", name="users"))
        >>> pk = graph.add(PrimaryKey(name="users_pkey", column_names=["id"]), owner=table)
        >>> graph.primary_keys == [pk] and table.primary_keys == [pk]
        True
    """

    dialect: DatabaseType = DatabaseType.POSTGRESQL
    direction: CompareDirection = CompareDirection.SOURCE
    name: str = ""
    server_version: tuple[int, ...] = ()

    schemas: list[Schema] = field(default_factory=list)
    tables: list[Table] = field(default_factory=list)
    views: list[View] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    stored_procedures: list[StoredProcedure] = field(default_factory=list)
    data_types: list[DataType] = field(default_factory=list)
    sequences: list[Sequence] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)
    primary_keys: list[PrimaryKey] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    triggers: list[Trigger] = field(default_factory=list)

    def collection(self, kind: DatabaseObjectType) -> list:
        """Graph-level collection holding objects of *kind*."""
        if kind not in _GRAPH_COLLECTIONS:
            raise ValueError(f"Objects of kind {kind.name} live in their table")
        return getattr(self, _GRAPH_COLLECTIONS[kind])

    def add(self, obj: SchemaObject, owner: "Table | View | None" = None) -> SchemaObject:
        """Register *obj* in this graph and, optionally, in its owner.

        Args:
            obj: Object to register.  Its ``graph`` is set to this graph.
            owner: Table or view owning *obj*.  Required for columns.

        Returns:
            The registered object, for chaining.

        Raises:
            ValueError: If a column is added without an owner, or the owner
                cannot hold objects of that kind.
        """
        obj.graph = self
        if owner is not None:
            owner.child_collection(obj.kind).append(obj)
            if hasattr(obj, "table_name") and not obj.table_name:
                obj.table_schema = owner.schema
                obj.table_name = owner.name
        elif obj.kind == DatabaseObjectType.COLUMN:
            raise ValueError("A column must be added with its owning table")

        if obj.kind != DatabaseObjectType.COLUMN:
            self.collection(obj.kind).append(obj)
        return obj

    def find_table(self, schema: str | None, name: str | None) -> Table | None:
        """Return the table with the given schema and name, if present."""
        for table in self.tables:
            if table.schema == (schema or "") and table.name == name:
                return table
        return None

    def find_data_type(self, type_id: int) -> DataType | None:
        """Return the PostgreSQL data type with the given type id, if present."""
        for data_type in self.data_types:
            if data_type.type_id == type_id:
                return data_type
        return None

    def link_referencing_foreign_keys(self) -> None:
        """Fill every table's ``referencing_foreign_keys`` from the global FK list."""
        for table in self.tables:
            table.referencing_foreign_keys = [
                fk
                for fk in self.foreign_keys
                if fk.referenced_table_schema == table.schema
                and fk.referenced_table_name == table.name
            ]

    def iter_objects(self) -> Iterator[SchemaObject]:
        """Yield every object of the graph, table columns included."""
        for attr in _GRAPH_COLLECTIONS.values():
            yield from getattr(self, attr)
        for table in self.tables:
            yield from table.columns

    @property
    def object_count(self) -> int:
        """Number of objects in the graph, table columns included."""
        return sum(1 for _ in self.iter_objects())


# ============================================================================
# Compare Result Models
# ============================================================================


class CompareResultItemScripts(BaseModel):
    """Per-item scripts shown next to a result item."""

    source_create_script: str = ""
    target_create_script: str = ""
    alter_script: str = ""


class CompareResultItem(BaseModel):
    """A matched pair, or a single unmatched object, with its scripts.

    Example:
        >>> item = CompareResultItem(item_type=DatabaseObjectType.TABLE)
        >>> item.equal
        True
    """

    item_type: DatabaseObjectType
    source_item: Any = None  # SchemaObject, passed through unvalidated
    target_item: Any = None  # SchemaObject, passed through unvalidated
    source_item_name: str = ""
    target_item_name: str = ""
    scripts: CompareResultItemScripts = Field(default_factory=CompareResultItemScripts)

    @property
    def equal(self) -> bool:
        """True when both sides render the same create script."""
        return self.scripts.source_create_script == self.scripts.target_create_script


class CompareResult(BaseModel):
    """Outcome of one comparison run.

    Immutable once built; a new run produces a new result.

    Example:
        >>> result = CompareResult()
        >>> result.item_count
        0
        >>> result.format_report()
        'Schemas identical (0 objects compared)'
    """

    model_config = ConfigDict(frozen=True)

    different_items: list[CompareResultItem] = Field(default_factory=list)
    only_source_items: list[CompareResultItem] = Field(default_factory=list)
    only_target_items: list[CompareResultItem] = Field(default_factory=list)
    same_items: list[CompareResultItem] = Field(default_factory=list)
    source_full_script: str = ""
    target_full_script: str = ""
    full_alter_script: str = ""

    @property
    def item_count(self) -> int:
        """Number of classified top-level items."""
        return (
            len(self.different_items)
            + len(self.only_source_items)
            + len(self.only_target_items)
            + len(self.same_items)
        )

    @property
    def has_differences(self) -> bool:
        """True if any item is different or present on one side only."""
        return bool(self.different_items or self.only_source_items or self.only_target_items)

    def format_report(self) -> str:
        """Format the result as a human-readable report."""
        if not self.has_differences:
            return f"Schemas identical ({self.item_count} objects compared)"

        lines = ["Schema differences:"]

        if self.different_items:
            lines.append(f"\n  Different ({len(self.different_items)}):")
            for item in self.different_items:
                lines.append(f"    ~ {item.source_item_name}")

        if self.only_source_items:
            lines.append(f"\n  Only in source ({len(self.only_source_items)}):")
            for item in self.only_source_items:
                lines.append(f"    + {item.source_item_name}")

        if self.only_target_items:
            lines.append(f"\n  Only in target ({len(self.only_target_items)}):")
            for item in self.only_target_items:
                lines.append(f"    - {item.target_item_name}")

        if self.same_items:
            lines.append(f"\n  Identical: {len(self.same_items)}")

        return "\n".join(lines)
