"""Error taxonomy for argument conversion and handler dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Normalized error kinds reported by the invoker."""

    ARGUMENT_COUNT_MISMATCH = "argument_count_mismatch"
    INVALID_NIL_FOR_NON_OPTIONAL = "invalid_nil_for_non_optional"
    UNCONVERTIBLE_KIND = "unconvertible_kind"
    MISSING_MAP_KEY = "missing_map_key"
    UNSUPPORTED_ELEMENT_KIND = "unsupported_element_kind"


@dataclass(slots=True)
class InvokerError(Exception):
    """Base error raised before a handler is called."""

    message: str
    kind: ErrorKind
    path: str = ""

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} (at {self.path})"
        return self.message


@dataclass(slots=True)
class ArgumentCountMismatchError(InvokerError):
    """Argument list length differs from handler arity."""

    expected: int = 0
    actual: int = 0


@dataclass(slots=True)
class ConversionError(InvokerError):
    """A dynamic value could not be converted to the declared type."""


@dataclass(slots=True)
class InvalidNilForNonOptionalError(ConversionError):
    """None offered where a non-optional value is required."""


@dataclass(slots=True)
class UnconvertibleKindError(ConversionError):
    """Source value shape is incompatible with the target type."""


@dataclass(slots=True)
class MissingMapKeyError(ConversionError):
    """Record field lookup key is absent from the source mapping."""

    key: str = ""
    field_name: str = ""


@dataclass(slots=True)
class UnsupportedElementKindError(ConversionError):
    """Target type has no conversion rule."""


class HandlerSignatureError(TypeError):
    """Handler signature cannot be described for dispatch."""


class UnknownHandlerError(KeyError):
    """No handler is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown handler: {self.name!r}"
