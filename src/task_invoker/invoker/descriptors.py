"""Build-once type descriptors derived from handler annotations.

A descriptor is the static shape a dynamic value must be converted into.
Descriptors are built from Python annotations once per handler signature
(or per dataclass) and shared read-only afterwards:

- ``ScalarType``: ``bool``, ``int``, ``float``, ``str``, ``bytes``, enums and
  any other plain class accepted by instance check.
- ``AnyType``: ``Any``/``object``/missing annotation, passes values through.
- ``OptionalType``: ``T | None`` (unboxed) or ``Ref[T]`` (boxed).
- ``SequenceType``: ``list[T]``, ``Sequence[T]``, ``tuple[T, ...]``.
- ``MappingType``: ``dict[K, V]``, ``Mapping[K, V]``.
- ``RecordType``: dataclasses, with a field table built from dataclass metadata.
- ``UnsupportedType``: callables, iterators, queues, unions and fixed tuples.
"""

from __future__ import annotations

import asyncio
import collections.abc
import dataclasses
import inspect
import queue
import threading
import types
import typing
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Union

from task_invoker.invoker.errors import HandlerSignatureError
from task_invoker.invoker.ref import Ref

FIELD_KEY = "key"
FIELD_EMBEDDED = "embedded"

_SEQUENCE_ORIGINS: dict[Any, type] = {
    list: list,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
}
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)
_UNSUPPORTED_ORIGINS: dict[Any, str] = {
    collections.abc.Callable: "callable",
    collections.abc.Iterator: "iterator",
    collections.abc.Iterable: "iterable",
    collections.abc.Generator: "generator",
    collections.abc.AsyncIterator: "async_iterator",
    collections.abc.Awaitable: "awaitable",
    collections.abc.Coroutine: "coroutine",
    set: "set",
    frozenset: "set",
    type: "type",
}
_CHANNEL_TYPES: tuple[type, ...] = (queue.Queue, queue.SimpleQueue, asyncio.Queue)


@dataclass(frozen=True, slots=True)
class ScalarType:
    """Scalar or plain-class target."""

    python_type: type


@dataclass(frozen=True, slots=True)
class AnyType:
    """Target that accepts any value unchanged."""


@dataclass(frozen=True, slots=True)
class OptionalType:
    """Optional slot; ``boxed`` targets wrap the converted value in ``Ref``."""

    element: TypeDescriptor
    boxed: bool = False


@dataclass(frozen=True, slots=True)
class SequenceType:
    """Ordered homogeneous sequence."""

    element: TypeDescriptor
    container: type = list


@dataclass(frozen=True, slots=True)
class MappingType:
    """Key-value mapping."""

    key: TypeDescriptor
    value: TypeDescriptor


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One record field: lookup key, nested descriptor and setting rules."""

    name: str
    key: str
    descriptor: TypeDescriptor
    embedded: bool = False
    settable: bool = True


@dataclass(slots=True, eq=False)
class RecordType:
    """Dataclass target; ``fields`` is filled once while the descriptor is built."""

    python_type: type
    fields: tuple[FieldDescriptor, ...] = ()


@dataclass(frozen=True, slots=True)
class UnsupportedType:
    """Target shape without a conversion rule."""

    kind: str
    python_type: type | None = None


TypeDescriptor = Union[  # noqa: UP007
    ScalarType,
    AnyType,
    OptionalType,
    SequenceType,
    MappingType,
    RecordType,
    UnsupportedType,
]


@dataclass(frozen=True, slots=True)
class ParameterDescriptor:
    """Positional handler parameter."""

    name: str
    descriptor: TypeDescriptor


@dataclass(frozen=True, slots=True)
class HandlerSignature:
    """Parameter and result descriptors of one handler."""

    name: str
    parameters: tuple[ParameterDescriptor, ...]
    results: tuple[TypeDescriptor, ...]
    unpack_results: bool = False

    @property
    def arity(self) -> int:
        return len(self.parameters)

    def pack_results(self, returned: object) -> list[Any]:
        """Turn the handler's native return value into an ordered result list."""

        if not self.results:
            return []
        if self.unpack_results:
            return list(typing.cast(tuple, returned))
        return [returned]

    def render(self) -> str:
        params = ", ".join(
            f"{parameter.name}: {render_descriptor(parameter.descriptor)}"
            for parameter in self.parameters
        )
        results = ", ".join(render_descriptor(result) for result in self.results)
        return f"{self.name}({params}) -> ({results})"


_RECORD_CACHE: dict[type, RecordType] = {}
_RECORD_LOCK = threading.RLock()


def describe(annotation: Any) -> TypeDescriptor:
    """Build the descriptor for one annotation."""

    if annotation is Any or annotation is object or annotation is inspect.Parameter.empty:
        return AnyType()
    if isinstance(annotation, typing.TypeVar):
        return AnyType()

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is typing.Annotated:
        return describe(args[0])

    if origin is Union or origin is types.UnionType:
        return _describe_union(annotation, args)
    if origin is Ref or annotation is Ref:
        element = describe(args[0]) if args else AnyType()
        return OptionalType(element=element, boxed=True)
    if origin in _SEQUENCE_ORIGINS or annotation in _SEQUENCE_ORIGINS:
        element = describe(args[0]) if args else AnyType()
        return SequenceType(element=element, container=list)
    if origin is tuple or annotation is tuple:
        return _describe_tuple(annotation, args)
    if origin in _MAPPING_ORIGINS or annotation in _MAPPING_ORIGINS:
        key, value = (describe(args[0]), describe(args[1])) if args else (AnyType(), AnyType())
        return MappingType(key=key, value=value)
    if origin in _UNSUPPORTED_ORIGINS:
        return UnsupportedType(kind=_UNSUPPORTED_ORIGINS[origin], python_type=origin)
    if annotation in _UNSUPPORTED_ORIGINS:
        return UnsupportedType(kind=_UNSUPPORTED_ORIGINS[annotation], python_type=annotation)
    if origin is not None:
        return UnsupportedType(kind=str(origin))

    if not isinstance(annotation, type):
        return UnsupportedType(kind=repr(annotation))
    if dataclasses.is_dataclass(annotation):
        return _describe_record(annotation)
    if issubclass(annotation, _CHANNEL_TYPES):
        return UnsupportedType(kind="channel", python_type=annotation)
    return ScalarType(python_type=annotation)


def _describe_union(annotation: Any, args: tuple[Any, ...]) -> TypeDescriptor:
    members = [arg for arg in args if arg is not type(None)]
    if len(members) == len(args):
        return UnsupportedType(kind=f"union {annotation!r}")
    if len(members) == 1:
        return OptionalType(element=describe(members[0]))
    return OptionalType(element=UnsupportedType(kind=f"union {annotation!r}"))


def _describe_tuple(annotation: Any, args: tuple[Any, ...]) -> TypeDescriptor:
    if not args:
        return SequenceType(element=AnyType(), container=tuple)
    if len(args) == 2 and args[1] is Ellipsis:  # noqa: PLR2004
        return SequenceType(element=describe(args[0]), container=tuple)
    return UnsupportedType(kind=f"fixed tuple {annotation!r}", python_type=tuple)


def _describe_record(cls: type) -> RecordType:
    with _RECORD_LOCK:
        cached = _RECORD_CACHE.get(cls)
        if cached is not None:
            return cached
        record = RecordType(python_type=cls)
        # Registered before the fields are described so self-referencing records resolve.
        _RECORD_CACHE[cls] = record
        try:
            record.fields = tuple(_describe_fields(cls))
        except Exception:
            del _RECORD_CACHE[cls]
            raise
        return record


def _describe_fields(cls: type) -> list[FieldDescriptor]:
    try:
        hints = typing.get_type_hints(cls)
    except NameError as error:
        raise HandlerSignatureError(
            f"Cannot resolve field annotations of {cls.__qualname__}: {error}",
        ) from error

    descriptors: list[FieldDescriptor] = []
    for record_field in dataclasses.fields(cls):
        embedded = bool(record_field.metadata.get(FIELD_EMBEDDED, False))
        descriptors.append(
            FieldDescriptor(
                name=record_field.name,
                key=field_key(record_field),
                descriptor=describe(hints.get(record_field.name, Any)),
                embedded=embedded,
                settable=record_field.init,
            ),
        )
    return descriptors


def field_key(record_field: dataclasses.Field[Any]) -> str:
    """Resolve the mapping key of a dataclass field; ``"-"`` falls back to the name."""

    key = str(record_field.metadata.get(FIELD_KEY, "")).strip()
    if not key or key == "-":
        return record_field.name
    return key


def keyed(key: str, **kwargs: Any) -> Any:
    """``dataclasses.field`` with an explicit mapping key."""

    metadata = {**kwargs.pop("metadata", {}), FIELD_KEY: key}
    return field(metadata=metadata, **kwargs)


def embedded(**kwargs: Any) -> Any:
    """``dataclasses.field`` whose own fields are promoted into the parent mapping."""

    metadata = {**kwargs.pop("metadata", {}), FIELD_EMBEDDED: True}
    return field(metadata=metadata, **kwargs)


def describe_handler(handler: Callable[..., Any]) -> HandlerSignature:
    """Describe a handler's positional parameters and results, once per handler.

    Unhashable callables cannot be cached and are described on every call.
    """

    try:
        hash(handler)
    except TypeError:
        return _build_handler_signature(handler)
    return _cached_handler_signature(handler)


@lru_cache(maxsize=1024)
def _cached_handler_signature(handler: Callable[..., Any]) -> HandlerSignature:
    return _build_handler_signature(handler)


def _build_handler_signature(handler: Callable[..., Any]) -> HandlerSignature:
    name = getattr(handler, "__qualname__", None) or repr(handler)
    try:
        signature = inspect.signature(handler, eval_str=True)
    except NameError as error:
        raise HandlerSignatureError(
            f"Cannot resolve annotations of handler {name}: {error}",
        ) from error
    except (TypeError, ValueError) as error:
        raise HandlerSignatureError(f"Cannot inspect handler {name}: {error}") from error

    parameters: list[ParameterDescriptor] = []
    for parameter in signature.parameters.values():
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            parameters.append(
                ParameterDescriptor(
                    name=parameter.name,
                    descriptor=describe(parameter.annotation),
                ),
            )
        elif (
            parameter.kind is inspect.Parameter.KEYWORD_ONLY
            and parameter.default is inspect.Parameter.empty
        ):
            raise HandlerSignatureError(
                f"Handler {name} has required keyword-only parameter {parameter.name!r}",
            )

    results, unpack_results = _describe_results(signature.return_annotation)
    return HandlerSignature(
        name=name,
        parameters=tuple(parameters),
        results=results,
        unpack_results=unpack_results,
    )


def _describe_results(annotation: Any) -> tuple[tuple[TypeDescriptor, ...], bool]:
    """Result descriptors plus whether a fixed tuple is unpacked into them."""

    if annotation is inspect.Signature.empty:
        return (AnyType(),), False
    if annotation is None or annotation is type(None):
        return (), False
    if typing.get_origin(annotation) is tuple:
        args = typing.get_args(annotation)
        if args and Ellipsis not in args:
            return tuple(describe(arg) for arg in args), True
    return (describe(annotation),), False


def render_descriptor(descriptor: TypeDescriptor) -> str:  # noqa: PLR0911
    """Human-readable descriptor name used in errors and CLI output."""

    if isinstance(descriptor, ScalarType):
        return descriptor.python_type.__name__
    if isinstance(descriptor, AnyType):
        return "Any"
    if isinstance(descriptor, OptionalType):
        inner = render_descriptor(descriptor.element)
        return f"Ref[{inner}]" if descriptor.boxed else f"{inner} | None"
    if isinstance(descriptor, SequenceType):
        inner = render_descriptor(descriptor.element)
        if descriptor.container is tuple:
            return f"tuple[{inner}, ...]"
        return f"list[{inner}]"
    if isinstance(descriptor, MappingType):
        return f"dict[{render_descriptor(descriptor.key)}, {render_descriptor(descriptor.value)}]"
    if isinstance(descriptor, RecordType):
        return descriptor.python_type.__name__
    return f"<unsupported {descriptor.kind}>"
