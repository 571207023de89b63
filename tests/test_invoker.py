from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import allure
import pytest

import sample_handlers
from sample_handlers import Point
from task_invoker.invoker import (
    ArgumentCountMismatchError,
    DefaultInvoker,
    ErrorKind,
    HandlerRegistry,
    InvalidNilForNonOptionalError,
    Ref,
    UnconvertibleKindError,
    new_default_invoker,
)

pytestmark = [
    allure.epic("Dispatch Engine"),
    allure.feature("Invocation"),
]


def test_add_end_to_end(invoker: DefaultInvoker) -> None:
    assert invoker.invoke(sample_handlers.add, [3, 4]) == [7]


def test_add_with_missing_argument(invoker: DefaultInvoker) -> None:
    with pytest.raises(ArgumentCountMismatchError) as caught:
        invoker.invoke(sample_handlers.add, [3])
    assert caught.value.kind is ErrorKind.ARGUMENT_COUNT_MISMATCH
    assert caught.value.expected == 2
    assert caught.value.actual == 1


def test_greet_with_nil(invoker: DefaultInvoker) -> None:
    with pytest.raises(InvalidNilForNonOptionalError) as caught:
        invoker.invoke(sample_handlers.greet, [None])
    assert caught.value.path == "args[0]"


@pytest.mark.parametrize("args", [[], [1], [1, 2, 3], [1, 2, 3, 4, 5]])
def test_arity_mismatch_never_calls_handler(invoker: DefaultInvoker, args: list[int]) -> None:
    calls: list[tuple[int, int]] = []

    def handler(a: int, b: int) -> None:
        calls.append((a, b))

    with pytest.raises(ArgumentCountMismatchError):
        invoker.invoke(handler, args)
    assert calls == []


def test_first_conversion_error_aborts_call(invoker: DefaultInvoker) -> None:
    calls: list[object] = []

    def handler(count: int, point: Point) -> None:
        calls.append((count, point))

    with pytest.raises(UnconvertibleKindError) as caught:
        invoker.invoke(handler, ["three", {}])
    assert caught.value.path == "args[0]"
    assert calls == []


def test_handler_fault_propagates_untouched(invoker: DefaultInvoker) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        invoker.invoke(sample_handlers.explode, ["boom"])


def test_multiple_results_are_unpacked(invoker: DefaultInvoker) -> None:
    assert invoker.invoke(sample_handlers.split, [7, 2]) == [3, 1]


def test_none_result_yields_no_values(invoker: DefaultInvoker) -> None:
    assert invoker.invoke(sample_handlers.noop, []) == []


def test_unannotated_handler_returns_single_value(invoker: DefaultInvoker) -> None:
    assert invoker.invoke(lambda value: value, [{"raw": True}]) == [{"raw": True}]


def test_records_and_optionals(invoker: DefaultInvoker) -> None:
    points = [{"x": 0, "y": 0}, {"x": 4, "y": 2}]
    assert invoker.invoke(sample_handlers.centroid, [points]) == [Point(x=2, y=1)]
    assert invoker.invoke(sample_handlers.count_items, [None]) == [0]
    assert invoker.invoke(sample_handlers.count_items, [["a", "b"]]) == [2]
    assert invoker.invoke(sample_handlers.deref, [9]) == [9]
    assert invoker.invoke(sample_handlers.deref, [Ref(Ref(9))]) == [9]


def test_single_element_tuple_result_is_unpacked(invoker: DefaultInvoker) -> None:
    def single() -> tuple[int]:
        return (5,)

    assert invoker.invoke(single, []) == [5]


def test_bind_converts_without_calling(invoker: DefaultInvoker) -> None:
    calls: list[tuple[int, int]] = []

    def handler(a: int, b: int) -> int:
        calls.append((a, b))
        return a + b

    call = invoker.bind(handler, [1, 2.0])
    assert call.frame == (1, 2)
    assert calls == []
    assert call() == [3]
    assert calls == [(1, 2)]

    with pytest.raises(UnconvertibleKindError):
        invoker.bind(handler, [1, "two"])


def test_unhashable_callable_handler(invoker: DefaultInvoker) -> None:
    class Scaler:
        def __init__(self, factor: int) -> None:
            self.factor = factor

        def __eq__(self, other: object) -> bool:
            return isinstance(other, Scaler) and other.factor == self.factor

        def __call__(self, value: int) -> int:
            return value * self.factor

    registry = HandlerRegistry()
    registry.register("scale", Scaler(3))

    assert invoker.invoke(registry.resolve("scale").handler, [2.0]) == [6]


def test_bound_method_handler(invoker: DefaultInvoker) -> None:
    class Counter:
        def __init__(self) -> None:
            self.total = 0

        def bump(self, amount: int) -> int:
            self.total += amount
            return self.total

    counter = Counter()
    assert invoker.invoke(counter.bump, [2.0]) == [2]
    assert invoker.invoke(counter.bump, [3]) == [5]


def test_concurrent_invocations_are_independent(invoker: DefaultInvoker) -> None:
    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda n: invoker.invoke(sample_handlers.add, [n, n]), range(200)))
    assert results == [[2 * n] for n in range(200)]


def test_factory_and_task_composition() -> None:
    invoker = new_default_invoker()
    assert isinstance(invoker, DefaultInvoker)
    task = invoker.compose_task("add", 3, 4)
    assert task.name == "add"
    assert task.args == (3, 4)
    assert invoker.invoke(sample_handlers.add, task.args) == [7]
