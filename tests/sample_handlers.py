"""Handlers and records shared by tests and CLI invocations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from task_invoker.invoker import HandlerRegistry, Ref, embedded, keyed


class Color(str, Enum):
    RED = "red"
    GREEN = "green"


@dataclass(slots=True)
class Point:
    x: int
    y: int


@dataclass(slots=True)
class Audit:
    created_by: str
    revision: int


@dataclass(slots=True)
class Document:
    title: str = keyed("doc_title")
    tags: list[str] = keyed("tags")
    audit: Audit = embedded()
    color: Color = keyed("-")
    revision_count: int = field(init=False, default=0)


@dataclass(slots=True)
class Node:
    value: int
    children: list[Node]


def add(a: int, b: int) -> int:
    return a + b


def greet(name: str) -> str:
    return f"Hello, {name}!"


def split(total: int, parts: int) -> tuple[int, int]:
    return divmod(total, parts)


def noop() -> None:
    return None


def explode(message: str) -> None:
    raise RuntimeError(message)


def count_items(items: list[str] | None) -> int:
    return len(items or [])


def deref(value: Ref[Ref[int]]) -> int:
    return value.unwrap()  # type: ignore[return-value]


def centroid(points: list[Point]) -> Point:
    return Point(
        x=sum(point.x for point in points) // len(points),
        y=sum(point.y for point in points) // len(points),
    )


def describe_document(document: Document) -> str:
    return f"{document.title} by {document.audit.created_by} ({document.color.value})"


REGISTRY = HandlerRegistry()
REGISTRY.register("add", add)
REGISTRY.register("greet", greet)
REGISTRY.register("explode", explode)
REGISTRY.register("centroid", centroid)
REGISTRY.register("describe_document", describe_document)
