"""Controllers for task-invoker CLI commands."""

from __future__ import annotations

import importlib
import json
from dataclasses import dataclass, field
from typing import Any

from task_invoker.config import Settings
from task_invoker.invoker import (
    DefaultInvoker,
    HandlerRegistry,
    HandlerSignatureError,
    Invoker,
    InvokerError,
    describe_handler,
)
from task_invoker.invoker.values import to_dynamic
from task_invoker.transport import InMemoryConnection
from task_invoker.worker import TaskStatus, TaskWorker


@dataclass(slots=True)
class ComposeCommand:
    """CLI input for task composition."""

    name: str
    raw_args: tuple[str, ...] = ()


@dataclass(slots=True)
class InvokeCommand:
    """CLI input for direct handler invocation."""

    target: str
    raw_args: tuple[str, ...] = ()


@dataclass(slots=True)
class DescribeCommand:
    """CLI input for handler signature inspection."""

    target: str


@dataclass(slots=True)
class DispatchCommand:
    """CLI input for a queue round trip through a handler registry."""

    registry: str
    name: str
    raw_args: tuple[str, ...] = ()


@dataclass(slots=True)
class CommandResult:
    """Output lines plus success flag for the CLI layer."""

    lines: list[str] = field(default_factory=list)
    success: bool = True


class InvokerCliController:
    """Executes CLI commands against the invoker."""

    def __init__(self, invoker: Invoker | None = None) -> None:
        self.invoker = invoker or DefaultInvoker()

    def compose(self, command: ComposeCommand) -> CommandResult:
        task = self.invoker.compose_task(command.name, *parse_json_args(command.raw_args))
        return CommandResult(lines=[_dumps(task.to_message())])

    def invoke(self, command: InvokeCommand) -> CommandResult:
        handler = load_target(command.target)
        if not callable(handler):
            raise ValueError(f"Target {command.target!r} is not callable")
        args = parse_json_args(command.raw_args)
        try:
            results = self.invoker.invoke(handler, args)
        except InvokerError as error:
            return CommandResult(lines=[f"{error.kind.value}: {error}"], success=False)
        return CommandResult(lines=[_dumps(to_dynamic(results))])

    def describe(self, command: DescribeCommand) -> CommandResult:
        handler = load_target(command.target)
        if not callable(handler):
            raise ValueError(f"Target {command.target!r} is not callable")
        try:
            signature = describe_handler(handler)
        except HandlerSignatureError as error:
            return CommandResult(lines=[str(error)], success=False)
        lines = [signature.render()]
        lines.extend(
            f"  args[{index}] {parameter.name}"
            for index, parameter in enumerate(signature.parameters)
        )
        return CommandResult(lines=lines)

    def dispatch(self, command: DispatchCommand, settings: Settings) -> CommandResult:
        registry = load_target(command.registry)
        if not isinstance(registry, HandlerRegistry):
            raise ValueError(f"Target {command.registry!r} is not a HandlerRegistry")

        connection = InMemoryConnection(max_idle_channels=settings.transport.channel_pool_size)
        result_queue = settings.transport.result_queue or None
        worker = TaskWorker(
            connection=connection,
            registry=registry,
            invoker=self.invoker,
            task_queue=settings.transport.task_queue,
            result_queue=result_queue,
            worker_id=settings.worker.worker_id,
        )
        try:
            worker.submit(command.name, *parse_json_args(command.raw_args))
            outcome = worker.run_once()
        finally:
            connection.close()

        if outcome is None:
            return CommandResult(lines=["No task was dispatched."], success=False)
        return CommandResult(
            lines=[_dumps(outcome.to_message())],
            success=outcome.status is TaskStatus.SUCCEEDED,
        )


def parse_json_args(raw_args: tuple[str, ...]) -> list[Any]:
    """Decode each CLI argument as one JSON document."""

    values: list[Any] = []
    for index, raw in enumerate(raw_args):
        try:
            values.append(json.loads(raw))
        except json.JSONDecodeError as error:
            raise ValueError(f"Invalid JSON for argument #{index}: {raw!r}") from error
    return values


def load_target(target: str) -> Any:
    """Import ``package.module:attribute``."""

    module_name, separator, attribute = target.partition(":")
    if not separator or not module_name or not attribute:
        raise ValueError(f"Expected target in 'module:attribute' form, got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as error:
        raise ValueError(f"Cannot import module {module_name!r}: {error}") from error
    value: Any = module
    for part in attribute.split("."):
        try:
            value = getattr(value, part)
        except AttributeError as error:
            raise ValueError(f"Module {module_name!r} has no attribute {attribute!r}") from error
    return value


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, default=repr)
