"""Tests for CompareService orchestration.

Providers are in-memory fakes returning prebuilt graphs, so the full
fetch, filter, map and compare pipeline runs without a database.
"""

import threading
from unittest.mock import MagicMock

import pytest

from schema_compare.config.models import FilterClause, FilteringOptions, ProjectOptions
from schema_compare.schema.comparator import EmptyDatabasesError
from schema_compare.schema.models import (
    Column,
    CompareDirection,
    DatabaseType,
    SchemaGraph,
    Table,
)
from schema_compare.scripters import create_scripter
from schema_compare.services.compare import CompareService
from schema_compare.tasks import OperationCancelledError, TaskInfo, TaskStatus

TIMEOUT = 5


class FakeProvider:
    """SchemaProvider returning a graph built on each fetch."""

    def __init__(self, tables: list[str], databases: list[str] | None = None):
        self.tables = tables
        self.databases = databases or []
        self.fetched = 0

    def fetch_schema(self, task: TaskInfo | None = None) -> SchemaGraph:
        self.fetched += 1
        graph = SchemaGraph(dialect=DatabaseType.POSTGRESQL, name="app", server_version=(16, 0))
        for name in self.tables:
            table = graph.add(Table(schema="public", name=name))
            graph.add(Column(name="id", data_type="integer", is_nullable=False, ordinal_position=1), owner=table)
        if task is not None:
            task.percentage = 100
        return graph

    def list_databases(self) -> list[str]:
        return self.databases


class FailingProvider(FakeProvider):
    def fetch_schema(self, task: TaskInfo | None = None) -> SchemaGraph:
        raise ConnectionError("could not connect to server")


class BlockingProvider(FakeProvider):
    """Waits for cancellation, then observes it."""

    def __init__(self):
        super().__init__([])
        self.started = threading.Event()

    def fetch_schema(self, task: TaskInfo | None = None) -> SchemaGraph:
        self.started.set()
        task.cancel_event.wait(TIMEOUT)
        task.raise_if_cancelled()
        return super().fetch_schema(task)


class GatedProvider(FakeProvider):
    """Holds the fetch until the test opens the gate."""

    def __init__(self, tables: list[str]):
        super().__init__(tables)
        self.started = threading.Event()
        self.gate = threading.Event()

    def fetch_schema(self, task: TaskInfo | None = None) -> SchemaGraph:
        self.started.set()
        self.gate.wait(TIMEOUT)
        return super().fetch_schema(task)


# ============================================================================
# Test: Successful runs
# ============================================================================


class TestCompareRun:
    """End-to-end runs over fake providers."""

    def test_compare_produces_result(self) -> None:
        service = CompareService(
            ProjectOptions(),
            FakeProvider(["users", "orders"]),
            FakeProvider(["users", "legacy"]),
        )

        service.start_compare()

        assert service.wait(TIMEOUT) is True
        result = service.result
        assert [i.source_item_name for i in result.only_source_items] == ['"public"."orders"']
        assert [i.target_item_name for i in result.only_target_items] == ['"public"."legacy"']
        assert [i.source_item_name for i in result.same_items] == ['"public"."users"']

    def test_task_infos_in_stage_order(self) -> None:
        service = CompareService(ProjectOptions(), FakeProvider(["a"]), FakeProvider(["a"]))
        service.start_compare()
        service.wait(TIMEOUT)

        names = [i.name for i in service.task_infos]
        assert names == [
            "Retrieve source database",
            "Retrieve target database",
            "Mapping database objects",
            "Database comparison",
        ]
        assert all(i.status == TaskStatus.SUCCEEDED for i in service.task_infos)

    def test_graph_directions_are_set(self) -> None:
        service = CompareService(ProjectOptions(), FakeProvider(["a"]), FakeProvider(["b"]))
        service.start_compare()
        service.wait(TIMEOUT)

        assert service.result.only_source_items[0].source_item.direction == CompareDirection.SOURCE
        assert service.result.only_target_items[0].target_item.direction == CompareDirection.TARGET

    def test_filtering_is_applied_to_both_sides(self) -> None:
        options = ProjectOptions(
            filtering=FilteringOptions(
                include=False,
                clauses=[FilterClause(object_type="TABLE", operator="begins_with", value="tmp_")],
            )
        )
        service = CompareService(options, FakeProvider(["users", "tmp_a"]), FakeProvider(["users", "tmp_b"]))

        service.start_compare()
        service.wait(TIMEOUT)

        assert service.result.has_differences is False
        assert service.result.item_count == 1

    def test_scripter_factory_is_used(self) -> None:
        calls = []

        def factory(graph, options):
            calls.append(graph.direction)
            return create_scripter(graph, options)

        service = CompareService(ProjectOptions(), FakeProvider(["a"]), FakeProvider(["a"]), scripter_factory=factory)
        service.start_compare()
        service.wait(TIMEOUT)

        assert calls == [CompareDirection.SOURCE]

    def test_rerun_replaces_result(self) -> None:
        source = FakeProvider(["a"])
        service = CompareService(ProjectOptions(), source, FakeProvider(["a"]))

        service.start_compare()
        service.wait(TIMEOUT)
        first = service.result
        service.start_compare()
        service.wait(TIMEOUT)

        assert service.result is not first
        assert source.fetched == 2


# ============================================================================
# Test: Failures
# ============================================================================


class TestCompareFailures:
    """Faults and cancellation surface from wait()."""

    def test_fetch_failure_is_raised_by_wait(self) -> None:
        service = CompareService(ProjectOptions(), FailingProvider([]), FakeProvider(["a"]))
        service.start_compare()

        with pytest.raises(ConnectionError, match="could not connect"):
            service.wait(TIMEOUT)

        statuses = [i.status for i in service.task_infos]
        assert statuses[0] == TaskStatus.FAULTED
        assert statuses[2:] == [TaskStatus.CANCELLED, TaskStatus.CANCELLED]
        assert service.result is None

    def test_empty_databases_error(self) -> None:
        service = CompareService(ProjectOptions(), FakeProvider([]), FakeProvider([]))
        service.start_compare()

        with pytest.raises(EmptyDatabasesError):
            service.wait(TIMEOUT)

    def test_abort_raises_cancelled(self) -> None:
        source = BlockingProvider()
        service = CompareService(ProjectOptions(), source, FakeProvider(["a"]))
        service.start_compare()
        assert source.started.wait(TIMEOUT)

        service.abort()

        with pytest.raises(OperationCancelledError):
            service.wait(TIMEOUT)
        assert service.result is None

    def test_wait_timeout_returns_false(self) -> None:
        source = BlockingProvider()
        service = CompareService(ProjectOptions(), source, FakeProvider(["a"]))
        service.start_compare()
        assert source.started.wait(TIMEOUT)

        assert service.wait(timeout=0.01) is False
        assert service.is_running is True

        service.abort()
        with pytest.raises(OperationCancelledError):
            service.wait(TIMEOUT)

    def test_start_while_running_raises(self) -> None:
        """A rejected restart leaves the running comparison intact."""
        source = GatedProvider(["a", "b"])
        target = FakeProvider(["a"])
        service = CompareService(ProjectOptions(), source, target)
        service.start_compare()
        assert source.started.wait(TIMEOUT)

        with pytest.raises(RuntimeError, match="already running"):
            service.start_compare()

        source.gate.set()
        assert service.wait(TIMEOUT) is True
        assert [i.source_item_name for i in service.result.only_source_items] == ['"public"."b"']
        assert source.fetched == 1
        assert target.fetched == 1

    def test_missing_options_raises(self) -> None:
        with pytest.raises(ValueError, match="project_options"):
            CompareService(None, FakeProvider([]), FakeProvider([]))


class TestListDatabases:
    """Database listing through a provider."""

    def test_lists_provider_databases(self) -> None:
        service = CompareService(ProjectOptions(), FakeProvider([]), FakeProvider([]))
        assert service.list_databases(FakeProvider([], ["app", "app_test"])) == ["app", "app_test"]

    def test_delegates_to_provider(self) -> None:
        provider = MagicMock()
        provider.list_databases.return_value = ["postgres"]
        service = CompareService(ProjectOptions(), provider, provider)

        assert service.list_databases(provider) == ["postgres"]
        provider.list_databases.assert_called_once_with()

    def test_missing_provider_raises(self) -> None:
        service = CompareService(ProjectOptions(), FakeProvider([]), FakeProvider([]))
        with pytest.raises(ValueError):
            service.list_databases(None)
