from __future__ import annotations

import dataclasses

import allure
import pytest

import sample_handlers
from sample_handlers import Audit, Color, Document, Point
from task_invoker.invoker import DefaultInvoker, Ref, Task, compose_task, to_dynamic

pytestmark = [
    allure.epic("Dispatch Engine"),
    allure.feature("Task Composition"),
]


def test_task_identifiers_are_unique() -> None:
    ids = {compose_task("add", 1, 2).id for _ in range(10_000)}
    assert len(ids) == 10_000


def test_compose_task_bundles_name_and_args() -> None:
    task = compose_task("greet", "ann")
    assert task.name == "greet"
    assert task.args == ("ann",)
    assert task.id


def test_compose_task_rejects_empty_name() -> None:
    with pytest.raises(ValueError, match="non-empty"):
        compose_task("  ")


def test_task_is_immutable() -> None:
    task = compose_task("add", 1, 2)
    with pytest.raises(dataclasses.FrozenInstanceError):
        task.name = "other"  # type: ignore[misc]


def test_task_args_are_detached_from_caller_values() -> None:
    items = ["a", "b"]
    task = compose_task("count_items", items)
    items.append("c")
    assert task.args == (["a", "b"],)


def test_native_arguments_become_dynamic_values() -> None:
    document = Document(
        title="Report",
        tags=["q1"],
        audit=Audit(created_by="ann", revision=2),
        color=Color.GREEN,
    )
    task = compose_task("describe_document", document, Ref(Point(x=1, y=2)), None)
    assert task.args == (
        {
            "doc_title": "Report",
            "tags": ["q1"],
            "created_by": "ann",
            "revision": 2,
            "color": "green",
        },
        {"x": 1, "y": 2},
        None,
    )


def test_composed_record_converts_back_on_invoke() -> None:
    document = Document(
        title="Report",
        tags=[],
        audit=Audit(created_by="ann", revision=1),
        color=Color.RED,
    )
    task = compose_task("describe_document", document)
    results = DefaultInvoker().invoke(sample_handlers.describe_document, task.args)
    assert results == ["Report by ann (red)"]


def test_to_dynamic_passes_opaque_values_through() -> None:
    marker = object()
    assert to_dynamic(marker) is marker
    assert to_dynamic((1, (2, 3))) == [1, [2, 3]]


def test_message_round_trip() -> None:
    task = compose_task("add", 3, 4)
    message = task.to_message()
    assert message == {"id": task.id, "name": "add", "args": [3, 4]}
    assert Task.from_message(message) == task


@pytest.mark.parametrize(
    ("raw", "error", "match"),
    [
        ({"name": "add", "args": []}, ValueError, "task.id"),
        ({"id": "1", "name": "", "args": []}, ValueError, "task.name"),
        ({"id": "1", "name": "add", "args": "3,4"}, TypeError, "task.args"),
        (["not", "a", "mapping"], TypeError, "object"),
    ],
)
def test_from_message_validates_shape(raw: object, error: type[Exception], match: str) -> None:
    with pytest.raises(error, match=match):
        Task.from_message(raw)  # type: ignore[arg-type]
