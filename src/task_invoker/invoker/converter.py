"""Recursive conversion of dynamic values into declared parameter types."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from task_invoker.invoker.descriptors import (
    AnyType,
    MappingType,
    OptionalType,
    RecordType,
    ScalarType,
    SequenceType,
    TypeDescriptor,
    UnsupportedType,
    render_descriptor,
)
from task_invoker.invoker.errors import (
    ErrorKind,
    InvalidNilForNonOptionalError,
    MissingMapKeyError,
    UnconvertibleKindError,
    UnsupportedElementKindError,
)
from task_invoker.invoker.ref import Ref
from task_invoker.invoker.values import classify_value


def convert(value: Any, target: TypeDescriptor, *, path: str = "value") -> Any:  # noqa: PLR0911
    """Convert one dynamic value against one descriptor, or raise ``ConversionError``.

    The input is never mutated; containers and records are always rebuilt.
    """

    if value is None:
        if isinstance(target, (OptionalType, AnyType)):
            return None
        raise InvalidNilForNonOptionalError(
            message=f"Can't pass nil for non-optional {render_descriptor(target)}",
            kind=ErrorKind.INVALID_NIL_FOR_NON_OPTIONAL,
            path=path,
        )

    if isinstance(target, AnyType):
        return value
    if isinstance(target, ScalarType):
        return _convert_scalar(value, target, path)
    if isinstance(target, OptionalType):
        return _convert_optional(value, target, path)
    if isinstance(target, SequenceType):
        return _convert_sequence(value, target, path)
    if isinstance(target, MappingType):
        return _convert_mapping(value, target, path)
    if isinstance(target, RecordType):
        return _convert_record(value, target, path)
    if (
        isinstance(target, UnsupportedType)
        and target.python_type is not None
        and isinstance(value, target.python_type)
    ):
        return value
    raise UnsupportedElementKindError(
        message=f"Unsupported element type: {render_descriptor(target)}",
        kind=ErrorKind.UNSUPPORTED_ELEMENT_KIND,
        path=path,
    )


def _convert_scalar(value: Any, target: ScalarType, path: str) -> Any:  # noqa: PLR0911
    python_type = target.python_type
    if type(value) is python_type:
        return value
    if issubclass(python_type, Enum):
        if isinstance(value, python_type):
            return value
        try:
            return python_type(value)
        except (TypeError, ValueError) as error:
            raise _unconvertible(value, target, path) from error
    if isinstance(value, bool) and python_type is not bool:
        raise _unconvertible(value, target, path)
    if python_type is float and isinstance(value, int):
        try:
            return float(value)
        except OverflowError as error:
            raise _unconvertible(value, target, path) from error
    if python_type is int and isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise _unconvertible(value, target, path)
    if python_type is bytes and isinstance(value, bytearray):
        return bytes(value)
    if python_type is bytes and isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, python_type):
        return value
    raise _unconvertible(value, target, path)


def _convert_optional(value: Any, target: OptionalType, path: str) -> Any:
    if not target.boxed:
        return convert(value, target.element, path=path)
    inner = value.value if isinstance(value, Ref) else value
    return Ref(convert(inner, target.element, path=path))


def _convert_sequence(value: Any, target: SequenceType, path: str) -> Any:
    if not isinstance(value, (list, tuple)):
        raise _unconvertible(value, target, path)
    converted = [
        convert(item, target.element, path=f"{path}[{index}]") for index, item in enumerate(value)
    ]
    if target.container is tuple:
        return tuple(converted)
    return converted


def _convert_mapping(value: Any, target: MappingType, path: str) -> dict[Any, Any]:
    if not isinstance(value, Mapping):
        raise _unconvertible(value, target, path)
    converted: dict[Any, Any] = {}
    for key, item in value.items():
        item_path = f"{path}[{key!r}]"
        converted[convert(key, target.key, path=item_path)] = convert(
            item,
            target.value,
            path=item_path,
        )
    return converted


def _convert_record(value: Any, target: RecordType, path: str) -> Any:
    if isinstance(value, target.python_type):
        return value
    if not isinstance(value, Mapping):
        raise _unconvertible(value, target, path)

    kwargs: dict[str, Any] = {}
    for record_field in target.fields:
        if not record_field.settable:
            continue
        field_path = f"{path}.{record_field.name}"
        if record_field.embedded:
            kwargs[record_field.name] = convert(value, record_field.descriptor, path=field_path)
            continue
        if record_field.key not in value:
            raise MissingMapKeyError(
                message=(
                    f"Missing key {record_field.key!r} for field "
                    f"{target.python_type.__name__}.{record_field.name}"
                ),
                kind=ErrorKind.MISSING_MAP_KEY,
                path=field_path,
                key=record_field.key,
                field_name=record_field.name,
            )
        kwargs[record_field.name] = convert(
            value[record_field.key],
            record_field.descriptor,
            path=field_path,
        )
    return target.python_type(**kwargs)


def _unconvertible(value: Any, target: TypeDescriptor, path: str) -> UnconvertibleKindError:
    kind = classify_value(value).value
    return UnconvertibleKindError(
        message=(
            f"Only matching values are convertible to {render_descriptor(target)}, "
            f"got {kind} {type(value).__name__}"
        ),
        kind=ErrorKind.UNCONVERTIBLE_KIND,
        path=path,
    )
