"""Comparison orchestrator.

Runs one comparison as four task units on a ``TaskRunner``: fetching the
source and the target (in parallel), mapping, then comparing.  Observers
poll ``task_infos`` while the run is in progress.

Usage:
    from schema_compare.services.compare import CompareService

    service = CompareService(options, source_provider, target_provider)
    service.start_compare()
    service.wait()
    print(service.result.format_report())
"""

import logging
from collections.abc import Callable

from schema_compare.adapters.base import SchemaProvider
from schema_compare.config.models import ProjectOptions
from schema_compare.schema.comparator import compare_graphs
from schema_compare.schema.filter import perform_filter
from schema_compare.schema.mapper import perform_mapping
from schema_compare.schema.models import CompareDirection, CompareResult, SchemaGraph
from schema_compare.scripters.base import DatabaseScripter
from schema_compare.scripters.factory import create_scripter
from schema_compare.tasks import (
    OperationCancelledError,
    TaskInfo,
    TaskRunner,
    TaskStatus,
    TaskWork,
)

logger = logging.getLogger(__name__)

ScripterFactory = Callable[[SchemaGraph, ProjectOptions], DatabaseScripter]


class CompareService:
    """Drive the fetch, filter, map and compare stages of one comparison.

    One service instance runs one comparison at a time.  Each run owns
    its pair of graphs and its result.

    Args:
        project_options: Scripting and filtering options
        source_provider: Provider bound to the source database
        target_provider: Provider bound to the target database
        scripter_factory: Builds the scripter for the source graph
        runner: Task runner (default: a new ``TaskRunner``)

    Example:
        service = CompareService(ProjectOptions(), source, target)
        service.start_compare()
        while not service.wait(timeout=0.5):
            for info in service.task_infos:
                print(info.name, info.percentage)
        result = service.result
    """

    def __init__(
        self,
        project_options: ProjectOptions,
        source_provider: SchemaProvider,
        target_provider: SchemaProvider,
        scripter_factory: ScripterFactory = create_scripter,
        runner: TaskRunner | None = None,
    ) -> None:
        if project_options is None:
            raise ValueError("project_options is required")

        self.project_options = project_options
        self.source_provider = source_provider
        self.target_provider = target_provider
        self._scripter_factory = scripter_factory
        self._runner = runner or TaskRunner()

        self._source: SchemaGraph | None = None
        self._target: SchemaGraph | None = None
        self._result: CompareResult | None = None

    @property
    def result(self) -> CompareResult | None:
        """Result of the last successful run, None until one finishes."""
        return self._result

    @property
    def task_infos(self) -> tuple[TaskInfo, ...]:
        """Snapshot of the descriptors of the current run."""
        return self._runner.current_task_infos

    @property
    def is_running(self) -> bool:
        return self._runner.is_running

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    def start_compare(self) -> None:
        """Queue the comparison stages and start them in the background.

        Raises:
            RuntimeError: If a comparison is already running
        """
        if self._runner.is_running:
            raise RuntimeError("A comparison is already running")

        self._source = None
        self._target = None
        self._result = None

        self._runner.execute_tasks(
            [
                TaskWork(TaskInfo("Retrieve source database"), True, self._fetch_source),
                TaskWork(TaskInfo("Retrieve target database"), True, self._fetch_target),
                TaskWork(TaskInfo("Mapping database objects"), False, self._map),
                TaskWork(TaskInfo("Database comparison"), False, self._compare),
            ]
        )
        logger.info("Comparison started")

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the run to finish and surface its first failure.

        Args:
            timeout: Seconds to wait, or None to wait until done

        Returns:
            True when the run finished, False on timeout

        Raises:
            Exception: The first exception recorded by a faulted unit
            OperationCancelledError: If the run was cancelled
        """
        if not self._runner.wait(timeout):
            return False

        infos = self.task_infos
        for info in infos:
            if info.status == TaskStatus.FAULTED and info.exception is not None:
                raise info.exception

        for info in infos:
            if info.status == TaskStatus.CANCELLED:
                if isinstance(info.exception, OperationCancelledError):
                    raise info.exception
                raise OperationCancelledError(f"Task '{info.name}' was cancelled")

        return True

    def abort(self) -> None:
        """Request cooperative cancellation of the current run."""
        self._runner.abort()

    def list_databases(self, provider: SchemaProvider) -> list[str]:
        """List the databases visible to *provider*."""
        if provider is None:
            raise ValueError("provider is required")
        return provider.list_databases()

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _fetch(self, provider: SchemaProvider, direction: CompareDirection, task: TaskInfo) -> SchemaGraph:
        graph = provider.fetch_schema(task)
        graph.direction = direction
        perform_filter(graph, self.project_options.filtering)
        logger.debug(f"Fetched {direction.value} database '{graph.name}' ({graph.object_count} objects)")
        return graph

    def _fetch_source(self, task: TaskInfo) -> None:
        self._source = self._fetch(self.source_provider, CompareDirection.SOURCE, task)

    def _fetch_target(self, task: TaskInfo) -> None:
        self._target = self._fetch(self.target_provider, CompareDirection.TARGET, task)

    def _map(self, task: TaskInfo) -> None:
        perform_mapping(self._source, self._target, task)

    def _compare(self, task: TaskInfo) -> None:
        scripter = self._scripter_factory(self._source, self.project_options)
        self._result = compare_graphs(self._source, self._target, scripter, task)
        logger.info(
            f"Comparison finished: {len(self._result.different_items)} different, "
            f"{len(self._result.only_source_items)} only in source, "
            f"{len(self._result.only_target_items)} only in target"
        )
