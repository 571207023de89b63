"""Dynamic value classification and wrapping."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from enum import Enum
from typing import Any

from task_invoker.invoker.descriptors import RecordType, describe
from task_invoker.invoker.ref import Ref

SCALAR_TYPES: tuple[type, ...] = (bool, int, float, str, bytes)


class ValueKind(str, Enum):
    """Shape of a dynamic value as seen by the converter."""

    NIL = "nil"
    SCALAR = "scalar"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OPAQUE = "opaque"


def classify_value(value: object) -> ValueKind:
    if value is None:
        return ValueKind.NIL
    if isinstance(value, Enum):
        return ValueKind.OPAQUE
    if isinstance(value, SCALAR_TYPES):
        return ValueKind.SCALAR
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    return ValueKind.OPAQUE


def to_dynamic(value: Any) -> Any:
    """Wrap a native value as a dynamic value suitable for a task message.

    Dataclasses become mappings keyed by their field keys, with embedded
    fields promoted into the parent mapping. ``Ref`` boxes are unwrapped and
    enums are replaced by their values. Anything else without visible
    structure passes through unchanged.
    """

    if isinstance(value, Enum):
        return to_dynamic(value.value)
    if value is None or isinstance(value, SCALAR_TYPES):
        return value
    if isinstance(value, Ref):
        return to_dynamic(value.value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _record_to_mapping(value)
    if isinstance(value, (list, tuple)):
        return [to_dynamic(item) for item in value]
    if isinstance(value, Mapping):
        return {key: to_dynamic(item) for key, item in value.items()}
    return value


def _record_to_mapping(value: Any) -> dict[str, Any]:
    record = describe(type(value))
    if not isinstance(record, RecordType):
        raise TypeError(f"Expected dataclass instance, got {type(value).__qualname__}")
    mapping: dict[str, Any] = {}
    for record_field in record.fields:
        if not record_field.settable:
            continue
        item = getattr(value, record_field.name)
        if record_field.embedded:
            nested = to_dynamic(item)
            if isinstance(nested, Mapping):
                mapping.update(nested)
            continue
        mapping[record_field.key] = to_dynamic(item)
    return mapping
