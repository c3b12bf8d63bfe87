"""Tests for SchemaIntrospector.

The psycopg connection is a MagicMock; catalog queries are replaced by
canned rows so graph assembly and row mapping run offline.
"""

from unittest.mock import MagicMock, patch

import pytest

from schema_compare.adapters.base import MetadataShapeError
from schema_compare.schema.introspector import (
    SchemaIntrospector,
    _field,
    _parse_server_version,
)
from schema_compare.schema.models import (
    CompareDirection,
    DatabaseType,
    ForeignKey,
    Index,
    PrimaryKey,
    Schema,
    Table,
    View,
)
from schema_compare.tasks import OperationCancelledError, TaskInfo

GETTERS = (
    "_get_schemas",
    "_get_tables",
    "_get_columns",
    "_get_primary_keys",
    "_get_foreign_keys",
    "_get_constraints",
    "_get_triggers",
    "_get_views",
    "_get_indexes",
    "_get_functions",
    "_get_data_types",
    "_get_sequences",
)


def _column_row(table: str, name: str, position: int) -> dict:
    return {
        "table_schema": "public",
        "table_name": table,
        "column_name": name,
        "ordinal_position": position,
        "column_default": None,
        "is_nullable": False,
        "data_type": "integer",
        "character_maximum_length": None,
        "numeric_precision": 32,
        "numeric_scale": 0,
        "datetime_precision": None,
        "interval_type": None,
        "character_set_name": None,
        "collation_name": None,
        "udt_name": "int4",
    }


@pytest.fixture
def introspector() -> SchemaIntrospector:
    """Introspector on a fake connection with every catalog getter empty."""
    inst = SchemaIntrospector("postgresql://u:p@h/app")
    inst._conn = MagicMock()
    inst._conn.info.server_version = 160002
    inst._conn.info.dbname = "app"
    inst._conn.info.host = "h"
    for name in GETTERS:
        setattr(inst, name, MagicMock(return_value=[]))
    return inst


# ============================================================================
# Test: Helpers
# ============================================================================


class TestHelpers:
    """Row access and version parsing."""

    def test_field_returns_value(self) -> None:
        assert _field({"name": "users"}, "name") == "users"

    def test_field_missing_raises(self) -> None:
        with pytest.raises(MetadataShapeError, match="missing column 'schema'"):
            _field({"name": "users"}, "schema")

    @pytest.mark.parametrize(
        "version,expected",
        [(160002, (16, 2)), (100000, (10, 0)), (90605, (9, 6, 5))],
    )
    def test_parse_server_version(self, version: int, expected: tuple) -> None:
        assert _parse_server_version(version) == expected


# ============================================================================
# Test: Connection lifecycle
# ============================================================================


class TestConnection:
    """Context manager behavior."""

    def test_enter_appends_connect_timeout(self) -> None:
        with patch("schema_compare.schema.introspector.psycopg.connect") as connect:
            with SchemaIntrospector("postgresql://u:p@h/app") as introspector:
                assert introspector._conn is connect.return_value

        assert connect.call_args.args[0] == "postgresql://u:p@h/app?connect_timeout=10"
        connect.return_value.close.assert_called_once_with()

    def test_existing_timeout_kept(self) -> None:
        with patch("schema_compare.schema.introspector.psycopg.connect") as connect:
            with SchemaIntrospector("postgresql://u:p@h/app?connect_timeout=3"):
                pass

        assert connect.call_args.args[0] == "postgresql://u:p@h/app?connect_timeout=3"

    def test_introspect_without_connection(self) -> None:
        with pytest.raises(RuntimeError, match="not connected"):
            SchemaIntrospector("postgresql://u:p@h/app").introspect()


# ============================================================================
# Test: Graph assembly
# ============================================================================


class TestIntrospect:
    """Assembly of catalog results into a SchemaGraph."""

    def test_graph_header(self, introspector: SchemaIntrospector) -> None:
        graph = introspector.introspect(direction=CompareDirection.TARGET)

        assert graph.dialect == DatabaseType.POSTGRESQL
        assert graph.direction == CompareDirection.TARGET
        assert graph.name == "app"
        assert graph.server_version == (16, 2)

    def test_tables_and_children(self, introspector: SchemaIntrospector) -> None:
        introspector._get_schemas.return_value = [Schema(name="public")]
        introspector._get_tables.return_value = [
            Table(schema="public", name="users"),
            Table(schema="public", name="orders"),
        ]
        introspector._get_columns.return_value = [
            _column_row("users", "id", 1),
            _column_row("orders", "id", 1),
            _column_row("orders", "user_id", 2),
            _column_row("dropped_meanwhile", "id", 1),
        ]
        introspector._get_primary_keys.return_value = [
            PrimaryKey(schema="public", name="users_pkey", table_schema="public", table_name="users",
                       column_names=["id"]),
        ]
        introspector._get_foreign_keys.return_value = [
            ForeignKey(schema="public", name="orders_user_fk", table_schema="public", table_name="orders",
                       column_names=["user_id"], referenced_table_schema="public",
                       referenced_table_name="users", referenced_column_names=["id"]),
        ]

        graph = introspector.introspect()

        users, orders = graph.tables
        assert [c.name for c in orders.columns] == ["id", "user_id"]
        assert orders.columns[1].udt_name == "int4"
        assert users.primary_keys[0].name == "users_pkey"
        assert graph.primary_keys == users.primary_keys
        assert users.referencing_foreign_keys == orders.foreign_keys
        assert len(graph.schemas) == 1

    def test_orphan_children_are_skipped(self, introspector: SchemaIntrospector) -> None:
        introspector._get_primary_keys.return_value = [
            PrimaryKey(schema="public", name="gone_pkey", table_schema="public", table_name="gone"),
        ]
        introspector._get_indexes.return_value = [
            Index(schema="public", name="ix_gone", table_schema="public", table_name="gone"),
        ]

        graph = introspector.introspect()

        assert graph.primary_keys == []
        assert graph.indexes == []

    def test_index_on_view(self, introspector: SchemaIntrospector) -> None:
        introspector._get_views.return_value = [View(schema="public", name="totals", view_definition=" SELECT 1;")]
        introspector._get_indexes.return_value = [
            Index(schema="public", name="ix_totals", table_schema="public", table_name="totals",
                  column_names=["id"]),
        ]

        graph = introspector.introspect()

        assert graph.views[0].indexes == graph.indexes
        assert len(graph.indexes) == 1

    def test_progress_and_cancellation(self, introspector: SchemaIntrospector) -> None:
        task = TaskInfo("Retrieve source database")
        introspector.introspect(task)
        assert task.percentage == 100
        assert task.message == "Done"

        cancelled = TaskInfo("Retrieve source database")
        cancelled.cancel_event.set()
        with pytest.raises(OperationCancelledError):
            introspector.introspect(cancelled)
        introspector._get_tables.assert_called_once_with()


# ============================================================================
# Test: Row mapping
# ============================================================================


class TestRowMapping:
    """Catalog rows mapped onto model objects."""

    def _fk_row(self, **overrides) -> dict:
        row = {
            "schema": "public",
            "name": "orders_user_fk",
            "table_schema": "public",
            "table_name": "orders",
            "referenced_table_schema": "public",
            "referenced_table_name": "users",
            "column_names": ["user_id"],
            "referenced_column_names": ["id"],
            "match_type": "f",
            "update_type": "c",
            "delete_type": "n",
            "is_deferrable": True,
            "is_initially_deferred": False,
        }
        row.update(overrides)
        return row

    def test_foreign_key_codes(self) -> None:
        introspector = SchemaIntrospector("postgresql://u:p@h/app")
        with patch.object(SchemaIntrospector, "_query", return_value=[self._fk_row()]):
            (fk,) = introspector._get_foreign_keys()

        assert fk.match_option == "FULL"
        assert fk.update_rule == "CASCADE"
        assert fk.delete_rule == "SET NULL"
        assert fk.is_deferrable is True
        assert fk.referenced_column_names == ["id"]

    def test_unknown_foreign_key_code(self) -> None:
        introspector = SchemaIntrospector("postgresql://u:p@h/app")
        with patch.object(SchemaIntrospector, "_query", return_value=[self._fk_row(update_type="z")]):
            with pytest.raises(MetadataShapeError, match="unknown action code"):
                introspector._get_foreign_keys()

    def test_missing_column_in_row(self) -> None:
        introspector = SchemaIntrospector("postgresql://u:p@h/app")
        with patch.object(SchemaIntrospector, "_query", return_value=[{"name": "public"}]):
            with pytest.raises(MetadataShapeError, match="owner"):
                introspector._get_schemas()

    def test_index_rows_map_uniqueness(self) -> None:
        row = {
            "schema": "public",
            "name": "ux_users_email",
            "table_schema": "public",
            "table_name": "users",
            "column_names": ["email"],
            "column_descending": [True],
            "is_unique": True,
            "index_type": "btree",
        }
        introspector = SchemaIntrospector("postgresql://u:p@h/app")
        with patch.object(SchemaIntrospector, "_query", return_value=[row]) as query:
            (index,) = introspector._get_indexes()

        assert index.constraint_type == "UNIQUE"
        assert index.column_descending == [True]
        assert query.call_args.args[1] == (False,)
