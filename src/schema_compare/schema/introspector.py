"""PostgreSQL schema introspection via pg_catalog and information_schema.

This module queries a live database and builds a ``SchemaGraph``:
- Schemas, tables (with inheritance) and columns
- Primary keys, foreign keys, check/unique/exclusion constraints
- Indexes, triggers and views
- Functions and aggregates
- Data types (built-in, enum, composite, range, domain) and sequences

Uses psycopg (v3) for PostgreSQL connections.  Rows are fetched as dicts
and mapped field by field onto the object model.
"""

import logging
from typing import Any

import psycopg
from psycopg import Connection, sql
from psycopg.rows import dict_row

from schema_compare.adapters.base import MetadataShapeError
from schema_compare.schema.models import (
    Column,
    CompareDirection,
    Constraint,
    DatabaseType,
    DataType,
    ForeignKey,
    Function,
    Index,
    PrimaryKey,
    Schema,
    SchemaGraph,
    Sequence,
    Table,
    Trigger,
    View,
)
from schema_compare.tasks import TaskInfo

logger = logging.getLogger(__name__)


# Namespaces that hold catalog objects, never user objects
def _user_namespace(column: str) -> str:
    return f"{column} <> 'information_schema' AND left({column}, 3) <> 'pg_'"


_FOREIGN_KEY_ACTIONS = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

_FOREIGN_KEY_MATCH = {"s": "NONE", "f": "FULL", "p": "PARTIAL"}

_CONSTRAINT_TYPES = {"c": "CHECK", "u": "UNIQUE", "x": "EXCLUDE"}

# Built-in vs user-defined type split
_USER_DEFINED_TYPE = """(
    (t.typrelid = 0 OR c.relkind = 'c')
    AND NOT EXISTS (SELECT 1
                    FROM pg_catalog.pg_type el
                    WHERE el.oid = t.typelem AND el.typarray = t.oid)
    AND n.nspname <> 'pg_catalog'
    AND n.nspname <> 'information_schema'
    AND pg_catalog.pg_type_is_visible(t.oid)
)"""

_TYPE_SELECT = """
    SELECT n.nspname AS schema,
           t.typname AS name,
           t.oid AS type_id,
           t.typcategory = 'A' AS is_array,
           CASE WHEN t.typcategory = 'A' THEN t.typelem END AS array_type_id
"""

_TYPE_FROM = """
    FROM pg_catalog.pg_type t
    JOIN pg_catalog.pg_namespace n ON t.typnamespace = n.oid
    LEFT JOIN pg_catalog.pg_class c ON c.oid = t.typrelid
"""


def _field(row: dict[str, Any], name: str) -> Any:
    """Return a column of *row*, raising MetadataShapeError when absent."""
    try:
        return row[name]
    except KeyError:
        raise MetadataShapeError(
            f"Catalog row is missing column '{name}' (got: {', '.join(row)})"
        ) from None


def _parse_server_version(version: int) -> tuple[int, ...]:
    """Split libpq's integer server version (``160002``, ``90605``) into a tuple."""
    if version >= 100000:
        return (version // 10000, version % 10000)
    return (version // 10000, version // 100 % 100, version % 100)


class SchemaIntrospector:
    """Introspects a PostgreSQL database into a ``SchemaGraph``.

    Uses pg_catalog (and information_schema where it is enough) for the
    extraction.  Works with any PostgreSQL database (RDS, Supabase, local).

    Usage:
        with SchemaIntrospector(database_url) as introspector:
            graph = introspector.introspect()
            print(graph.server_version, len(graph.tables))
    """

    def __init__(self, database_url: str):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
        """
        self._database_url = database_url
        self._conn: Connection | None = None
        self._server_version: tuple[int, ...] = ()

    def __enter__(self) -> "SchemaIntrospector":
        """Context manager entry - opens connection."""
        # Append connect_timeout if not already in URL
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout=10"

        self._conn = psycopg.connect(url, row_factory=dict_row)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def introspect(
        self,
        task: TaskInfo | None = None,
        direction: CompareDirection = CompareDirection.SOURCE,
    ) -> SchemaGraph:
        """Introspect the full database schema.

        Args:
            task: Optional descriptor for progress and cancellation
            direction: Side of the comparison the graph is fetched for

        Returns:
            SchemaGraph with every supported object kind

        Raises:
            RuntimeError: If the introspector is not connected
            MetadataShapeError: If a catalog row has an unexpected shape
            OperationCancelledError: If cancellation was requested
        """
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use with statement.")

        def step(percentage: float, message: str | None = None) -> None:
            if task is None:
                return
            task.raise_if_cancelled()
            task.percentage = percentage
            if message:
                task.message = message

        self._server_version = _parse_server_version(self._conn.info.server_version)
        graph = SchemaGraph(
            dialect=DatabaseType.POSTGRESQL,
            direction=direction,
            name=self._conn.info.dbname,
            server_version=self._server_version,
        )
        logger.info(
            f"Introspecting database '{graph.name}' on '{self._conn.info.host}' "
            f"(server {'.'.join(map(str, graph.server_version))})"
        )

        step(12, "Retrieving schemas")
        for schema in self._get_schemas():
            graph.add(schema)

        step(16, "Retrieving tables")
        tables: dict[tuple[str, str], Table] = {}
        for table in self._get_tables():
            tables[(table.schema, table.name)] = graph.add(table)

        step(24, "Retrieving columns")
        for row in self._get_columns():
            owner = tables.get((_field(row, "table_schema"), _field(row, "table_name")))
            if owner is not None:
                graph.add(self._column_from_row(row), owner=owner)

        step(28, "Retrieving primary keys")
        for primary_key in self._get_primary_keys():
            self._add_table_child(graph, tables, primary_key)

        step(32, "Retrieving foreign keys")
        for foreign_key in self._get_foreign_keys():
            self._add_table_child(graph, tables, foreign_key)

        step(40, "Retrieving constraints")
        for constraint in self._get_constraints():
            self._add_table_child(graph, tables, constraint)

        step(48, "Retrieving triggers")
        for trigger in self._get_triggers():
            self._add_table_child(graph, tables, trigger)

        step(56, "Retrieving views")
        views: dict[tuple[str, str], View] = {}
        for view in self._get_views():
            views[(view.schema, view.name)] = graph.add(view)

        step(64, "Retrieving indexes")
        for index in self._get_indexes():
            key = (index.table_schema, index.table_name)
            owner = tables.get(key) or views.get(key)
            if owner is None:
                logger.debug(f"Skipping index {index.name}: {key} was not retrieved")
                continue
            graph.add(index, owner=owner)

        step(72, "Retrieving functions")
        for function in self._get_functions():
            graph.add(function)

        step(88, "Retrieving data types")
        for data_type in self._get_data_types():
            graph.add(data_type)

        step(96, "Retrieving sequences")
        for sequence in self._get_sequences():
            graph.add(sequence)

        graph.link_referencing_foreign_keys()
        step(100, "Done")

        logger.debug(f"Introspected {graph.object_count} objects from '{graph.name}'")
        return graph

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def _query(self, query: str | sql.Composed, params: tuple | None = None) -> list[dict[str, Any]]:
        with self._conn.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    @staticmethod
    def _add_table_child(graph: SchemaGraph, tables: dict[tuple[str, str], Table], obj) -> None:
        owner = tables.get((obj.table_schema, obj.table_name))
        if owner is None:
            logger.debug(f"Skipping {obj.kind.name.lower()} {obj.name}: table was not retrieved")
            return
        graph.add(obj, owner=owner)

    # ------------------------------------------------------------------
    # Schemas, tables, columns
    # ------------------------------------------------------------------

    def _get_schemas(self) -> list[Schema]:
        query = f"""
            SELECT n.nspname AS name, r.rolname AS owner
            FROM pg_catalog.pg_namespace n
            JOIN pg_catalog.pg_roles r ON r.oid = n.nspowner
            WHERE {_user_namespace("n.nspname")}
            ORDER BY n.nspname
        """
        return [
            Schema(name=_field(row, "name"), owner=_field(row, "owner"))
            for row in self._query(query)
        ]

    def _get_tables(self) -> list[Table]:
        query = f"""
            SELECT nsp.nspname AS schema,
                   cls.relname AS name,
                   ihnsp.nspname AS inherited_table_schema,
                   ihcls.relname AS inherited_table_name
            FROM pg_catalog.pg_class cls
            JOIN pg_catalog.pg_namespace nsp ON nsp.oid = cls.relnamespace
            LEFT JOIN pg_catalog.pg_inherits ih ON ih.inhrelid = cls.oid
            LEFT JOIN pg_catalog.pg_class ihcls ON ih.inhparent = ihcls.oid
            LEFT JOIN pg_catalog.pg_namespace ihnsp ON ihnsp.oid = ihcls.relnamespace
            WHERE cls.relkind IN ('r', 'p') AND {_user_namespace("nsp.nspname")}
            ORDER BY nsp.nspname, cls.relname
        """
        return [
            Table(
                schema=_field(row, "schema"),
                name=_field(row, "name"),
                inherited_table_schema=_field(row, "inherited_table_schema"),
                inherited_table_name=_field(row, "inherited_table_name"),
            )
            for row in self._query(query)
        ]

    def _get_columns(self) -> list[dict[str, Any]]:
        query = f"""
            SELECT table_schema,
                   table_name,
                   column_name,
                   ordinal_position,
                   column_default,
                   is_nullable = 'YES' AS is_nullable,
                   data_type,
                   character_maximum_length,
                   numeric_precision,
                   numeric_scale,
                   datetime_precision,
                   interval_type,
                   character_set_name,
                   collation_name,
                   udt_name
            FROM information_schema.columns
            WHERE {_user_namespace("table_schema")}
            ORDER BY table_schema, table_name, ordinal_position
        """
        return self._query(query)

    @staticmethod
    def _column_from_row(row: dict[str, Any]) -> Column:
        return Column(
            schema=_field(row, "table_schema"),
            name=_field(row, "column_name"),
            ordinal_position=_field(row, "ordinal_position"),
            column_default=_field(row, "column_default"),
            is_nullable=_field(row, "is_nullable"),
            data_type=_field(row, "data_type"),
            character_max_length=_field(row, "character_maximum_length"),
            numeric_precision=_field(row, "numeric_precision"),
            numeric_scale=_field(row, "numeric_scale"),
            datetime_precision=_field(row, "datetime_precision"),
            interval_type=_field(row, "interval_type"),
            character_set_name=_field(row, "character_set_name"),
            collation_name=_field(row, "collation_name"),
            udt_name=_field(row, "udt_name"),
        )

    # ------------------------------------------------------------------
    # Keys, constraints, indexes, triggers
    # ------------------------------------------------------------------

    def _index_rows(self, primary: bool) -> list[dict[str, Any]]:
        # Indexes backing a constraint are scripted through the constraint
        query = f"""
            SELECT ni.nspname AS schema,
                   ci.relname AS name,
                   nt.nspname AS table_schema,
                   ct.relname AS table_name,
                   ARRAY(SELECT a.attname
                         FROM unnest(i.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
                         JOIN pg_catalog.pg_attribute a
                              ON a.attrelid = i.indrelid AND a.attnum = k.attnum
                         ORDER BY k.ord) AS column_names,
                   ARRAY(SELECT (i.indoption[k.ord::int4 - 1] & 1) = 1
                         FROM unnest(i.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
                         WHERE k.attnum > 0
                         ORDER BY k.ord) AS column_descending,
                   i.indisunique AS is_unique,
                   am.amname AS index_type
            FROM pg_catalog.pg_index i
            JOIN pg_catalog.pg_class ct ON i.indrelid = ct.oid
            JOIN pg_catalog.pg_class ci ON i.indexrelid = ci.oid
            JOIN pg_catalog.pg_namespace nt ON ct.relnamespace = nt.oid
            JOIN pg_catalog.pg_namespace ni ON ci.relnamespace = ni.oid
            JOIN pg_catalog.pg_am am ON ci.relam = am.oid
            WHERE i.indisprimary = %s
              AND {_user_namespace("nt.nspname")}
              AND (i.indisprimary OR NOT EXISTS (
                  SELECT 1 FROM pg_catalog.pg_constraint con
                  WHERE con.conindid = i.indexrelid AND con.contype IN ('u', 'x')))
            ORDER BY nt.nspname, ct.relname, ci.relname
        """
        return self._query(query, (primary,))

    def _get_primary_keys(self) -> list[PrimaryKey]:
        return [
            PrimaryKey(
                schema=_field(row, "schema"),
                name=_field(row, "name"),
                table_schema=_field(row, "table_schema"),
                table_name=_field(row, "table_name"),
                column_names=list(_field(row, "column_names")),
                column_descending=list(_field(row, "column_descending")),
                constraint_type="PRIMARY KEY",
                is_unique=True,
                index_type=_field(row, "index_type"),
            )
            for row in self._index_rows(primary=True)
        ]

    def _get_indexes(self) -> list[Index]:
        return [
            Index(
                schema=_field(row, "schema"),
                name=_field(row, "name"),
                table_schema=_field(row, "table_schema"),
                table_name=_field(row, "table_name"),
                column_names=list(_field(row, "column_names")),
                column_descending=list(_field(row, "column_descending")),
                constraint_type="UNIQUE" if _field(row, "is_unique") else "INDEX",
                is_unique=_field(row, "is_unique"),
                index_type=_field(row, "index_type"),
            )
            for row in self._index_rows(primary=False)
        ]

    def _get_foreign_keys(self) -> list[ForeignKey]:
        query = f"""
            SELECT nc.nspname AS schema,
                   c.conname AS name,
                   nt.nspname AS table_schema,
                   ct.relname AS table_name,
                   nr.nspname AS referenced_table_schema,
                   cr.relname AS referenced_table_name,
                   ARRAY(SELECT a.attname
                         FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ord)
                         JOIN pg_catalog.pg_attribute a
                              ON a.attrelid = c.conrelid AND a.attnum = k.attnum
                         ORDER BY k.ord) AS column_names,
                   ARRAY(SELECT a.attname
                         FROM unnest(c.confkey) WITH ORDINALITY AS k(attnum, ord)
                         JOIN pg_catalog.pg_attribute a
                              ON a.attrelid = c.confrelid AND a.attnum = k.attnum
                         ORDER BY k.ord) AS referenced_column_names,
                   c.confmatchtype::text AS match_type,
                   c.confupdtype::text AS update_type,
                   c.confdeltype::text AS delete_type,
                   c.condeferrable AS is_deferrable,
                   c.condeferred AS is_initially_deferred
            FROM pg_catalog.pg_constraint c
            JOIN pg_catalog.pg_class ct ON ct.oid = c.conrelid
            JOIN pg_catalog.pg_namespace nt ON nt.oid = ct.relnamespace
            JOIN pg_catalog.pg_namespace nc ON nc.oid = c.connamespace
            JOIN pg_catalog.pg_class cr ON cr.oid = c.confrelid
            JOIN pg_catalog.pg_namespace nr ON nr.oid = cr.relnamespace
            WHERE c.contype = 'f' AND {_user_namespace("nt.nspname")}
            ORDER BY nt.nspname, ct.relname, c.conname
        """
        foreign_keys = []
        for row in self._query(query):
            try:
                match_option = _FOREIGN_KEY_MATCH[_field(row, "match_type")]
                update_rule = _FOREIGN_KEY_ACTIONS[_field(row, "update_type")]
                delete_rule = _FOREIGN_KEY_ACTIONS[_field(row, "delete_type")]
            except KeyError as e:
                raise MetadataShapeError(
                    f"Foreign key {row.get('name')} has an unknown action code {e}"
                ) from None

            foreign_keys.append(
                ForeignKey(
                    schema=_field(row, "schema"),
                    name=_field(row, "name"),
                    table_schema=_field(row, "table_schema"),
                    table_name=_field(row, "table_name"),
                    column_names=list(_field(row, "column_names")),
                    constraint_type="FOREIGN KEY",
                    referenced_table_schema=_field(row, "referenced_table_schema"),
                    referenced_table_name=_field(row, "referenced_table_name"),
                    referenced_column_names=list(_field(row, "referenced_column_names")),
                    match_option=match_option,
                    update_rule=update_rule,
                    delete_rule=delete_rule,
                    is_deferrable=_field(row, "is_deferrable"),
                    is_initially_deferred=_field(row, "is_initially_deferred"),
                )
            )
        return foreign_keys

    def _get_constraints(self) -> list[Constraint]:
        query = f"""
            SELECT nc.nspname AS schema,
                   c.conname AS name,
                   nt.nspname AS table_schema,
                   ct.relname AS table_name,
                   ARRAY(SELECT a.attname
                         FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ord)
                         JOIN pg_catalog.pg_attribute a
                              ON a.attrelid = c.conrelid AND a.attnum = k.attnum
                         ORDER BY k.ord) AS column_names,
                   c.contype::text AS constraint_type,
                   pg_catalog.pg_get_constraintdef(c.oid) AS definition
            FROM pg_catalog.pg_constraint c
            JOIN pg_catalog.pg_class ct ON c.conrelid = ct.oid
            JOIN pg_catalog.pg_namespace nc ON c.connamespace = nc.oid
            JOIN pg_catalog.pg_namespace nt ON ct.relnamespace = nt.oid
            WHERE c.contype IN ('c', 'u', 'x') AND c.contypid = 0
              AND {_user_namespace("nt.nspname")}
            ORDER BY nt.nspname, ct.relname, c.conname
        """
        return [
            Constraint(
                schema=_field(row, "schema"),
                name=_field(row, "name"),
                table_schema=_field(row, "table_schema"),
                table_name=_field(row, "table_name"),
                column_names=list(_field(row, "column_names") or []),
                constraint_type=_CONSTRAINT_TYPES.get(_field(row, "constraint_type"), ""),
                definition=_field(row, "definition"),
            )
            for row in self._query(query)
        ]

    def _get_triggers(self) -> list[Trigger]:
        query = f"""
            SELECT nt.nspname AS schema,
                   t.tgname AS name,
                   ct.relname AS table_name,
                   pg_catalog.pg_get_triggerdef(t.oid) AS definition
            FROM pg_catalog.pg_trigger t
            JOIN pg_catalog.pg_class ct ON t.tgrelid = ct.oid
            JOIN pg_catalog.pg_namespace nt ON ct.relnamespace = nt.oid
            WHERE t.tgisinternal = false AND {_user_namespace("nt.nspname")}
            ORDER BY nt.nspname, ct.relname, t.tgname
        """
        triggers = []
        for row in self._query(query):
            definition = _field(row, "definition")
            if not definition or not definition.strip():
                continue
            triggers.append(
                Trigger(
                    schema=_field(row, "schema"),
                    name=_field(row, "name"),
                    table_schema=_field(row, "schema"),
                    table_name=_field(row, "table_name"),
                    definition=definition.lstrip("\r\n"),
                )
            )
        return triggers

    # ------------------------------------------------------------------
    # Views and routines
    # ------------------------------------------------------------------

    def _get_views(self) -> list[View]:
        query = f"""
            SELECT table_schema AS schema,
                   table_name AS name,
                   view_definition,
                   check_option
            FROM information_schema.views
            WHERE {_user_namespace("table_schema")}
            ORDER BY table_schema, table_name
        """
        views = []
        for row in self._query(query):
            definition = _field(row, "view_definition")
            if not definition or not definition.strip():
                continue
            views.append(
                View(
                    schema=_field(row, "schema"),
                    name=_field(row, "name"),
                    view_definition=definition.lstrip("\r\n"),
                    check_option=_field(row, "check_option") or "NONE",
                )
            )
        return views

    def _get_functions(self) -> list[Function]:
        # prokind replaced proisagg in PostgreSQL 11
        if self._server_version >= (11,):
            is_aggregate = "p.prokind = 'a'"
        else:
            is_aggregate = "p.proisagg"

        query = f"""
            SELECT n.nspname AS schema,
                   p.proname AS name,
                   p.prosrc AS definition,
                   upper(l.lanname) AS external_language,
                   CASE WHEN p.prosecdef THEN 'DEFINER' ELSE 'INVOKER' END AS security_type,
                   p.procost AS cost,
                   p.prorows AS rows,
                   p.proisstrict AS is_strict,
                   p.proretset AS return_set,
                   p.provolatile::text AS volatile,
                   p.prorettype::int8 AS return_type,
                   p.proargtypes::oid[]::int8[] AS arg_types,
                   p.proallargtypes::int8[] AS all_arg_types,
                   p.proargmodes::text[] AS arg_modes,
                   p.proargnames AS arg_names,
                   {is_aggregate} AS is_aggregate,
                   a.aggtransfn::regproc::name AS aggregate_transition_function,
                   a.aggtranstype::int8 AS aggregate_transition_type,
                   CASE WHEN a.aggfinalfn::regproc::oid = 0 THEN NULL
                        ELSE a.aggfinalfn::regproc::name END AS aggregate_final_function,
                   a.agginitval AS aggregate_initial_value
            FROM pg_catalog.pg_namespace n
            JOIN pg_catalog.pg_proc p ON n.oid = p.pronamespace
            JOIN pg_catalog.pg_language l ON p.prolang = l.oid
            LEFT JOIN pg_catalog.pg_aggregate a ON p.oid = a.aggfnoid
            WHERE {_user_namespace("n.nspname")}
              AND ({is_aggregate} OR upper(l.lanname) <> 'INTERNAL')
            ORDER BY n.nspname, p.proname
        """
        functions = []
        for row in self._query(query):
            definition = _field(row, "definition")
            if not definition or not definition.strip():
                continue
            functions.append(
                Function(
                    schema=_field(row, "schema"),
                    name=_field(row, "name"),
                    definition=definition.lstrip("\r\n"),
                    external_language=_field(row, "external_language"),
                    security_type=_field(row, "security_type"),
                    cost=_field(row, "cost"),
                    rows=_field(row, "rows"),
                    is_strict=_field(row, "is_strict"),
                    return_set=_field(row, "return_set"),
                    volatile=_field(row, "volatile"),
                    return_type=_field(row, "return_type"),
                    arg_types=list(_field(row, "arg_types") or []),
                    all_arg_types=_field(row, "all_arg_types"),
                    arg_modes=_field(row, "arg_modes"),
                    arg_names=_field(row, "arg_names"),
                    is_aggregate=bool(_field(row, "is_aggregate")),
                    aggregate_transition_function=_field(row, "aggregate_transition_function") or "",
                    aggregate_transition_type=_field(row, "aggregate_transition_type") or 0,
                    aggregate_final_function=_field(row, "aggregate_final_function") or "",
                    aggregate_initial_value=_field(row, "aggregate_initial_value"),
                )
            )
        return functions

    # ------------------------------------------------------------------
    # Data types and sequences
    # ------------------------------------------------------------------

    def _get_data_types(self) -> list[DataType]:
        built_in = self._query(
            f"{_TYPE_SELECT}{_TYPE_FROM} WHERE {_USER_DEFINED_TYPE} = false"
        )
        enums = self._query(
            f"""{_TYPE_SELECT},
                   array_agg(e.enumlabel::text ORDER BY e.enumsortorder) AS labels
            {_TYPE_FROM}
            JOIN pg_catalog.pg_enum e ON e.enumtypid = t.oid
            WHERE {_USER_DEFINED_TYPE} = true AND t.typtype = 'e'
            GROUP BY n.nspname, t.typname, t.oid, t.typcategory, t.typelem
            """
        )
        composites = self._query(
            f"""{_TYPE_SELECT},
                   array_agg(a.attname::text ORDER BY a.attnum) AS attribute_names,
                   array_agg(a.atttypid::int8 ORDER BY a.attnum) AS attribute_type_ids
            {_TYPE_FROM}
            JOIN pg_catalog.pg_attribute a
                 ON a.attrelid = t.typrelid AND a.attnum > 0 AND NOT a.attisdropped
            WHERE {_USER_DEFINED_TYPE} = true AND t.typtype = 'c'
            GROUP BY n.nspname, t.typname, t.oid, t.typcategory, t.typelem
            """
        )
        ranges = self._query(
            f"""{_TYPE_SELECT},
                   r.rngsubtype::int8 AS sub_type_id,
                   CASE WHEN r.rngcanonical::regproc::oid = 0 THEN NULL
                        ELSE r.rngcanonical::regproc::name END AS canonical,
                   CASE WHEN r.rngsubdiff::regproc::oid = 0 THEN NULL
                        ELSE r.rngsubdiff::regproc::name END AS sub_type_diff
            {_TYPE_FROM}
            JOIN pg_catalog.pg_range r ON r.rngtypid = t.oid
            WHERE {_USER_DEFINED_TYPE} = true AND t.typtype = 'r'
            """
        )
        domains = self._query(
            f"""{_TYPE_SELECT},
                   t.typbasetype::int8 AS base_type_id,
                   t.typnotnull AS not_null,
                   co.conname AS constraint_name,
                   pg_catalog.pg_get_constraintdef(co.oid, true) AS constraint_definition
            {_TYPE_FROM}
            LEFT JOIN pg_catalog.pg_constraint co ON t.oid = co.contypid
            WHERE {_USER_DEFINED_TYPE} = true AND t.typtype = 'd'
            """
        )

        def common(row: dict[str, Any], user_defined: bool, category: str) -> dict[str, Any]:
            return {
                "schema": _field(row, "schema"),
                "name": _field(row, "name"),
                "type_id": _field(row, "type_id"),
                "is_array": _field(row, "is_array"),
                "array_type_id": _field(row, "array_type_id"),
                "is_user_defined": user_defined,
                "type_category": category,
            }

        types = [DataType(**common(row, False, "base")) for row in built_in]
        types += [
            DataType(**common(row, True, "enum"), labels=list(_field(row, "labels")))
            for row in enums
        ]
        types += [
            DataType(
                **common(row, True, "composite"),
                attribute_names=list(_field(row, "attribute_names")),
                attribute_type_ids=list(_field(row, "attribute_type_ids")),
            )
            for row in composites
        ]
        types += [
            DataType(
                **common(row, True, "range"),
                sub_type_id=_field(row, "sub_type_id"),
                canonical=_field(row, "canonical"),
                sub_type_diff=_field(row, "sub_type_diff"),
            )
            for row in ranges
        ]
        types += [
            DataType(
                **common(row, True, "domain"),
                base_type_id=_field(row, "base_type_id"),
                not_null=_field(row, "not_null"),
                constraint_name=_field(row, "constraint_name"),
                constraint_definition=_field(row, "constraint_definition"),
            )
            for row in domains
        ]
        return types

    def _get_sequences(self) -> list[Sequence]:
        has_catalog = self._server_version >= (10,)
        query = f"""
            SELECT s.sequence_schema AS schema,
                   s.sequence_name AS name,
                   s.data_type,
                   s.start_value::int8 AS start_value,
                   s.increment::int8 AS increment,
                   s.minimum_value::int8 AS min_value,
                   s.maximum_value::int8 AS max_value,
                   s.cycle_option = 'YES' AS is_cycling,
                   EXISTS (SELECT 1
                           FROM pg_catalog.pg_depend d
                           WHERE d.classid = 'pg_catalog.pg_class'::regclass
                             AND d.objid = cls.oid
                             AND d.deptype IN ('a', 'i')) AS is_auto_generated
                   {", ps.seqcache AS cache" if has_catalog else ""}
            FROM information_schema.sequences s
            JOIN pg_catalog.pg_namespace nsp ON nsp.nspname = s.sequence_schema
            JOIN pg_catalog.pg_class cls
                 ON cls.relnamespace = nsp.oid AND cls.relname = s.sequence_name
            {"JOIN pg_catalog.pg_sequence ps ON ps.seqrelid = cls.oid" if has_catalog else ""}
            WHERE {_user_namespace("s.sequence_schema")}
            ORDER BY s.sequence_schema, s.sequence_name
        """
        sequences = []
        for row in self._query(query):
            sequence = Sequence(
                schema=_field(row, "schema"),
                name=_field(row, "name"),
                data_type=_field(row, "data_type"),
                start_value=_field(row, "start_value"),
                increment=_field(row, "increment"),
                min_value=_field(row, "min_value"),
                max_value=_field(row, "max_value"),
                is_cycling=_field(row, "is_cycling"),
                is_auto_generated=_field(row, "is_auto_generated"),
            )
            if has_catalog:
                sequence.cache = _field(row, "cache")
            else:
                # Before PostgreSQL 10 the cache size lives in the sequence relation
                cache_query = sql.SQL("SELECT cache_value FROM {}").format(
                    sql.Identifier(sequence.schema, sequence.name)
                )
                sequence.cache = _field(self._query(cache_query)[0], "cache_value")
            sequences.append(sequence)
        return sequences
