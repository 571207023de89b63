"""Explicit pointer box used for multi-level optional parameters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ref(Generic[T]):
    """Boxed reference to a value; ``Ref[Ref[int]]`` nests indirection levels."""

    value: T

    def unwrap(self) -> object:
        """Follow every nested box down to the innermost value."""

        current: object = self
        while isinstance(current, Ref):
            current = current.value
        return current
