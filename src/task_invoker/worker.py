"""Queue worker that dispatches task messages to registered handlers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from task_invoker.invoker import (
    DefaultInvoker,
    HandlerRegistry,
    Invoker,
    InvokerError,
    Task,
    UnknownHandlerError,
)
from task_invoker.invoker.values import to_dynamic
from task_invoker.transport import Channel, Connection, TransportError

logger = logging.getLogger(__name__)


class TaskStatus(str, Enum):
    """Terminal state of one dispatched task."""

    SUCCEEDED = "succeeded"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(slots=True)
class TaskOutcome:
    """Result of dispatching one task."""

    task_id: str
    name: str
    status: TaskStatus
    results: list[Any] = field(default_factory=list)
    error: str | None = None
    error_kind: str | None = None

    def to_message(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "name": self.name,
            "status": self.status.value,
            "results": to_dynamic(self.results),
            "error": self.error,
            "error_kind": self.error_kind,
        }


@dataclass(slots=True)
class WorkerRunSummary:
    """Aggregate worker counters for CLI reporting."""

    processed: int = 0
    succeeded: int = 0
    rejected: int = 0
    failed: int = 0
    idle_polls: int = 0


class TaskWorker:
    """Consumes task messages from a queue and invokes their handlers.

    Conversion and arity errors reject the task before the handler runs.
    Exceptions raised by a handler, and results that cannot be published, fail
    the task here so one bad task does not stop the worker.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        connection: Connection,
        registry: HandlerRegistry,
        invoker: Invoker | None = None,
        task_queue: str = "tasks",
        result_queue: str | None = None,
        worker_id: str = "worker-1",
    ) -> None:
        self.connection = connection
        self.registry = registry
        self.invoker = invoker or DefaultInvoker()
        self.task_queue = task_queue
        self.result_queue = result_queue
        self.worker_id = worker_id

    def submit(self, name: str, *args: Any) -> Task:
        """Compose a task and publish it to the task queue."""

        task = self.invoker.compose_task(name, *args)
        channel = self.connection.channel()
        try:
            channel.publish(self.task_queue, task.to_message())
        finally:
            self.connection.release_channel(channel)
        logger.debug("Submitted task %s (%s)", task.id, task.name)
        return task

    def run_once(self) -> TaskOutcome | None:
        """Process at most one task; ``None`` when the queue is empty."""

        channel = self.connection.channel()
        try:
            message = channel.get(self.task_queue)
            if message is None:
                return None
            outcome = self._dispatch(message)
            if self.result_queue:
                outcome = self._publish_outcome(channel, self.result_queue, outcome)
            return outcome
        finally:
            self.connection.release_channel(channel)

    def run(self, *, max_tasks: int | None = None) -> WorkerRunSummary:
        """Drain the task queue, or stop after ``max_tasks`` tasks."""

        summary = WorkerRunSummary()
        while max_tasks is None or summary.processed < max_tasks:
            outcome = self.run_once()
            if outcome is None:
                summary.idle_polls += 1
                break
            summary.processed += 1
            if outcome.status is TaskStatus.SUCCEEDED:
                summary.succeeded += 1
            elif outcome.status is TaskStatus.REJECTED:
                summary.rejected += 1
            else:
                summary.failed += 1
        logger.info(
            "Worker %s processed=%d succeeded=%d rejected=%d failed=%d",
            self.worker_id,
            summary.processed,
            summary.succeeded,
            summary.rejected,
            summary.failed,
        )
        return summary

    def _dispatch(self, message: dict[str, Any]) -> TaskOutcome:
        try:
            task = Task.from_message(message)
        except (TypeError, ValueError) as error:
            logger.warning("Rejected malformed task message: %s", error)
            return TaskOutcome(
                task_id=str(message.get("id", "")) if isinstance(message, dict) else "",
                name=str(message.get("name", "")) if isinstance(message, dict) else "",
                status=TaskStatus.REJECTED,
                error=str(error),
                error_kind="malformed_message",
            )

        try:
            registered = self.registry.resolve(task.name)
        except UnknownHandlerError as error:
            logger.warning("Rejected task %s: %s", task.id, error)
            return _rejected(task, error=str(error), error_kind="unknown_handler")

        try:
            call = self.invoker.bind(registered.handler, task.args)
        except InvokerError as error:
            logger.warning("Rejected task %s (%s): %s", task.id, task.name, error)
            return _rejected(task, error=str(error), error_kind=error.kind.value)

        try:
            results = call()
        except Exception as error:  # noqa: BLE001
            logger.exception("Handler %s failed for task %s", task.name, task.id)
            return TaskOutcome(
                task_id=task.id,
                name=task.name,
                status=TaskStatus.FAILED,
                error=f"{type(error).__name__}: {error}",
                error_kind="handler_error",
            )

        return TaskOutcome(
            task_id=task.id,
            name=task.name,
            status=TaskStatus.SUCCEEDED,
            results=results,
        )

    def _publish_outcome(
        self,
        channel: Channel,
        queue: str,
        outcome: TaskOutcome,
    ) -> TaskOutcome:
        try:
            channel.publish(queue, outcome.to_message())
        except TransportError:
            raise
        except Exception as error:  # noqa: BLE001
            logger.exception(
                "Results of task %s (%s) cannot be published",
                outcome.task_id,
                outcome.name,
            )
            outcome = TaskOutcome(
                task_id=outcome.task_id,
                name=outcome.name,
                status=TaskStatus.FAILED,
                error=f"{type(error).__name__}: {error}",
                error_kind="result_not_serializable",
            )
            channel.publish(queue, outcome.to_message())
        return outcome


def _rejected(task: Task, *, error: str, error_kind: str) -> TaskOutcome:
    return TaskOutcome(
        task_id=task.id,
        name=task.name,
        status=TaskStatus.REJECTED,
        error=error,
        error_kind=error_kind,
    )
