"""Cancellable, progress-reporting units of work.

A comparison run is split into task units. Each unit carries a
``TaskInfo`` descriptor that observers may poll from any thread while the
unit's own thread mutates it.  Cancellation is cooperative: work calls
``TaskInfo.raise_if_cancelled()`` at coarse checkpoints.

Usage:
    from schema_compare.tasks import TaskInfo, TaskRunner, TaskWork

    def fetch(info: TaskInfo) -> None:
        info.raise_if_cancelled()
        info.percentage = 50

    runner = TaskRunner()
    runner.execute_tasks([
        TaskWork(TaskInfo("Fetch source"), run_in_parallel=True, work=fetch),
        TaskWork(TaskInfo("Fetch target"), run_in_parallel=True, work=fetch),
    ])
    runner.wait()
"""

import logging
import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

logger = logging.getLogger(__name__)


class OperationCancelledError(Exception):
    """Raised by work that observed a cancellation request."""

    pass


class TaskStatus(str, Enum):
    """Lifecycle of a task unit."""

    CREATED = "created"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAULTED = "faulted"
    CANCELLED = "cancelled"

    @property
    def is_final(self) -> bool:
        return self in (TaskStatus.SUCCEEDED, TaskStatus.FAULTED, TaskStatus.CANCELLED)


class TaskInfo:
    """Thread-safe descriptor of one task unit.

    Every field is read and written under a per-descriptor lock, so a
    polling observer always sees a consistent value.

    Args:
        name: Human label shown to observers.
        cancel_event: Shared cancellation signal.  The runner replaces it
            with its own event when the unit is queued.

    Example:
        >>> info = TaskInfo("Mapping")
        >>> info.status
        <TaskStatus.CREATED: 'created'>
        >>> info.percentage = 140
        >>> info.percentage
        100.0
    """

    def __init__(self, name: str, cancel_event: threading.Event | None = None):
        self._lock = threading.Lock()
        self.id = uuid.uuid4()
        self.name = name
        self._status = TaskStatus.CREATED
        self._message = ""
        self._percentage = 0.0
        self._start_time: datetime | None = None
        self._complete_time: datetime | None = None
        self._exception: BaseException | None = None
        self._cancel_event = cancel_event or threading.Event()

    def __repr__(self) -> str:
        return f"TaskInfo(name={self.name!r}, status={self.status.value}, percentage={self.percentage:.0f})"

    @property
    def status(self) -> TaskStatus:
        with self._lock:
            return self._status

    @status.setter
    def status(self, value: TaskStatus) -> None:
        with self._lock:
            self._status = value

    @property
    def message(self) -> str:
        with self._lock:
            return self._message

    @message.setter
    def message(self, value: str) -> None:
        with self._lock:
            self._message = value

    @property
    def percentage(self) -> float:
        with self._lock:
            return self._percentage

    @percentage.setter
    def percentage(self, value: float) -> None:
        with self._lock:
            self._percentage = min(100.0, max(0.0, float(value)))

    @property
    def start_time(self) -> datetime | None:
        with self._lock:
            return self._start_time

    @property
    def complete_time(self) -> datetime | None:
        with self._lock:
            return self._complete_time

    @property
    def exception(self) -> BaseException | None:
        with self._lock:
            return self._exception

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancel_event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._cancel_event.is_set():
            raise OperationCancelledError(f"Task '{self.name}' was cancelled")

    def mark_running(self) -> None:
        with self._lock:
            self._status = TaskStatus.RUNNING
            self._start_time = datetime.now(timezone.utc)

    def mark_finished(self, status: TaskStatus, exception: BaseException | None = None) -> None:
        """Record a final status, its cause and the completion time."""
        with self._lock:
            self._status = status
            self._exception = exception
            if status == TaskStatus.SUCCEEDED:
                self._percentage = 100.0
            self._complete_time = datetime.now(timezone.utc)

    def attach(self, cancel_event: threading.Event) -> None:
        self._cancel_event = cancel_event


@dataclass
class TaskWork:
    """A queued unit: its descriptor, its scheduling flag and the work itself."""

    info: TaskInfo
    run_in_parallel: bool
    work: Callable[[TaskInfo], None]


def perform_task(task: TaskWork) -> None:
    """Run one unit and record its outcome on the descriptor.

    Never raises: success, cancellation and failure all end up on
    ``task.info``.
    """
    info = task.info
    info.mark_running()
    logger.debug(f"Task '{info.name}' started")
    try:
        info.raise_if_cancelled()
        task.work(info)
    except OperationCancelledError as e:
        logger.debug(f"Task '{info.name}' cancelled")
        info.mark_finished(TaskStatus.CANCELLED, e)
    except Exception as e:
        logger.error(f"Task '{info.name}' failed: {e}", exc_info=True)
        info.mark_finished(TaskStatus.FAULTED, e)
    else:
        logger.debug(f"Task '{info.name}' succeeded")
        info.mark_finished(TaskStatus.SUCCEEDED)


class TaskRunner:
    """Execute task units on background threads.

    Consecutive units flagged ``run_in_parallel`` run concurrently.  A
    sequential unit first waits for every running unit; if any of them
    faulted or was cancelled, it and all remaining units are marked
    cancelled and nothing more runs.

    Usage:
        runner = TaskRunner()
        runner.execute_tasks(works)
        for info in runner.current_task_infos:
            print(info.name, info.status, info.percentage)
        runner.wait()
    """

    def __init__(self) -> None:
        self._cancel_event = threading.Event()
        self._task_infos: tuple[TaskInfo, ...] = ()
        self._thread: threading.Thread | None = None

    @property
    def current_task_infos(self) -> tuple[TaskInfo, ...]:
        """Snapshot of the descriptors of the current run."""
        return self._task_infos

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def execute_tasks(self, works: Sequence[TaskWork]) -> None:
        """Start executing *works* in order on a coordinator thread.

        Raises:
            RuntimeError: If a previous run is still in progress.
        """
        if self.is_running:
            raise RuntimeError("Task runner is already executing tasks")

        self._cancel_event = threading.Event()
        for task in works:
            task.info.attach(self._cancel_event)
        self._task_infos = tuple(task.info for task in works)

        self._thread = threading.Thread(
            target=self._process_queue,
            args=(list(works),),
            name="task-runner",
            daemon=True,
        )
        self._thread.start()

    def abort(self) -> None:
        """Request cooperative cancellation of every unit of the current run."""
        logger.debug("Abort requested")
        self._cancel_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the current run to finish.

        Returns:
            True if the run finished (or none was started), False on timeout.
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _process_queue(self, works: list[TaskWork]) -> None:
        running: list[tuple[TaskWork, threading.Thread]] = []

        for index, task in enumerate(works):
            if not task.run_in_parallel and running:
                finished = self._join_all(running)
                running = []
                if any(t.info.status in (TaskStatus.FAULTED, TaskStatus.CANCELLED) for t in finished):
                    self._cancel_not_executed(works[index:])
                    return

            thread = threading.Thread(
                target=perform_task,
                args=(task,),
                name=f"task-{task.info.name}",
                daemon=True,
            )
            thread.start()
            running.append((task, thread))

        self._join_all(running)

    @staticmethod
    def _join_all(running: list[tuple[TaskWork, threading.Thread]]) -> list[TaskWork]:
        for _, thread in running:
            thread.join()
        return [task for task, _ in running]

    @staticmethod
    def _cancel_not_executed(works: list[TaskWork]) -> None:
        for task in works:
            task.info.mark_finished(
                TaskStatus.CANCELLED,
                OperationCancelledError("operation not executed"),
            )
