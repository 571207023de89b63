"""Argument marshaling and dispatch engine.

Dynamic values arrive from a transport as plain decoded data: ``None``,
scalars, lists and string-keyed mappings. Before a handler can run, each
argument is reconciled against the handler's annotated parameter type:

- descriptors: build-once shape of every parameter and dataclass field.
- converter: recursive, all-or-nothing conversion of one value.
- engine: arity check, per-argument conversion in order into a bound call,
  native call.
- task: immutable task records composed for submission.
- registry: task name to handler lookup for workers.
"""

from task_invoker.invoker.converter import convert
from task_invoker.invoker.descriptors import (
    HandlerSignature,
    describe,
    describe_handler,
    embedded,
    keyed,
)
from task_invoker.invoker.engine import BoundCall, DefaultInvoker, Invoker, new_default_invoker
from task_invoker.invoker.errors import (
    ArgumentCountMismatchError,
    ConversionError,
    ErrorKind,
    HandlerSignatureError,
    InvalidNilForNonOptionalError,
    InvokerError,
    MissingMapKeyError,
    UnconvertibleKindError,
    UnknownHandlerError,
    UnsupportedElementKindError,
)
from task_invoker.invoker.ref import Ref
from task_invoker.invoker.registry import HandlerRegistry, RegisteredHandler
from task_invoker.invoker.task import Task, compose_task
from task_invoker.invoker.values import ValueKind, classify_value, to_dynamic

__all__ = [
    "ArgumentCountMismatchError",
    "BoundCall",
    "ConversionError",
    "DefaultInvoker",
    "ErrorKind",
    "HandlerRegistry",
    "HandlerSignature",
    "HandlerSignatureError",
    "InvalidNilForNonOptionalError",
    "Invoker",
    "InvokerError",
    "MissingMapKeyError",
    "Ref",
    "RegisteredHandler",
    "Task",
    "UnconvertibleKindError",
    "UnknownHandlerError",
    "UnsupportedElementKindError",
    "ValueKind",
    "classify_value",
    "compose_task",
    "convert",
    "describe",
    "describe_handler",
    "embedded",
    "keyed",
    "new_default_invoker",
    "to_dynamic",
]
