"""Tests for the PostgreSQL schema provider.

The SQLAlchemy engine and the introspector are patched; no database is
contacted.
"""

from unittest.mock import MagicMock, patch

from schema_compare.adapters.base import SchemaProvider
from schema_compare.adapters.postgres import (
    PostgresSchemaProvider,
    create_engine_pooled,
    normalize_url,
)
from schema_compare.schema.models import SchemaGraph
from schema_compare.tasks import TaskInfo


class TestNormalizeUrl:
    """URL scheme normalization."""

    def test_postgres_scheme(self) -> None:
        assert normalize_url("postgres://u:p@h/db") == "postgresql://u:p@h/db"

    def test_driver_scheme(self) -> None:
        assert normalize_url("postgresql+psycopg://u:p@h/db") == "postgresql://u:p@h/db"

    def test_plain_scheme_unchanged(self) -> None:
        assert normalize_url("postgresql://u:p@h/db") == "postgresql://u:p@h/db"


class TestCreateEnginePooled:
    """Engine defaults."""

    def test_defaults_and_timeout(self) -> None:
        with patch("schema_compare.adapters.postgres.create_engine") as create_engine:
            create_engine_pooled("postgresql+psycopg://u:p@h/db")

        url, kwargs = create_engine.call_args.args[0], create_engine.call_args.kwargs
        assert url == "postgresql+psycopg://u:p@h/db?connect_timeout=5"
        assert kwargs["pool_pre_ping"] is True
        assert kwargs["pool_size"] == 5

    def test_existing_query_and_overrides(self) -> None:
        with patch("schema_compare.adapters.postgres.create_engine") as create_engine:
            create_engine_pooled("postgresql+psycopg://u:p@h/db?sslmode=require", pool_size=1)

        assert create_engine.call_args.args[0] == "postgresql+psycopg://u:p@h/db?sslmode=require&connect_timeout=5"
        assert create_engine.call_args.kwargs["pool_size"] == 1


class TestPostgresSchemaProvider:
    """Fetching and listing through patched collaborators."""

    def test_satisfies_protocol(self) -> None:
        with patch("schema_compare.adapters.postgres.create_engine"):
            provider: SchemaProvider = PostgresSchemaProvider("postgres://u:p@h/db")
        assert callable(provider.fetch_schema)
        assert callable(provider.list_databases)

    def test_engine_uses_psycopg_driver(self) -> None:
        with patch("schema_compare.adapters.postgres.create_engine") as create_engine:
            PostgresSchemaProvider("postgres://u:p@h/db")
        assert create_engine.call_args.args[0].startswith("postgresql+psycopg://u:p@h/db")

    def test_fetch_schema_uses_introspector(self) -> None:
        graph = SchemaGraph(name="db")
        task = TaskInfo("Retrieve source database")

        with patch("schema_compare.adapters.postgres.create_engine"), patch(
            "schema_compare.adapters.postgres.SchemaIntrospector"
        ) as introspector_class:
            introspector = introspector_class.return_value.__enter__.return_value
            introspector.introspect.return_value = graph

            result = PostgresSchemaProvider("postgresql+psycopg://u:p@h/db").fetch_schema(task)

        assert result is graph
        introspector_class.assert_called_once_with("postgresql://u:p@h/db")
        introspector.introspect.assert_called_once_with(task)
        assert task.message == "Connecting"

    def test_list_databases(self) -> None:
        with patch("schema_compare.adapters.postgres.create_engine") as create_engine:
            conn = MagicMock()
            conn.execute.return_value.fetchall.return_value = [("app",), ("postgres",)]
            create_engine.return_value.connect.return_value.__enter__.return_value = conn

            provider = PostgresSchemaProvider("postgresql://u:p@h/db")
            databases = provider.list_databases()

        assert databases == ["app", "postgres"]
        assert "datistemplate = FALSE" in str(conn.execute.call_args.args[0])

    def test_close_disposes_engine(self) -> None:
        with patch("schema_compare.adapters.postgres.create_engine") as create_engine:
            provider = PostgresSchemaProvider("postgresql://u:p@h/db")
            provider.close()
        create_engine.return_value.dispose.assert_called_once_with()
