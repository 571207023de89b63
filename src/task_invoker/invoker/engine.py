"""Invoker: convert dynamic arguments, call the handler, pack its results."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from task_invoker.invoker.converter import convert
from task_invoker.invoker.descriptors import HandlerSignature, describe_handler
from task_invoker.invoker.errors import ArgumentCountMismatchError, ErrorKind
from task_invoker.invoker.task import Task, compose_task

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BoundCall:
    """Handler with a fully converted call frame, not yet called."""

    handler: Callable[..., Any]
    signature: HandlerSignature
    frame: tuple[Any, ...]

    def __call__(self) -> list[Any]:
        logger.debug("Invoking %s with %d argument(s)", self.signature.name, len(self.frame))
        returned = self.handler(*self.frame)
        return self.signature.pack_results(returned)


class Invoker(Protocol):
    """Dispatch contract consumed by workers."""

    def bind(self, handler: Callable[..., Any], args: Sequence[Any]) -> BoundCall:
        """Check arity and convert ``args`` without calling ``handler``."""
        raise NotImplementedError

    def invoke(self, handler: Callable[..., Any], args: Sequence[Any]) -> list[Any]:
        """Call ``handler`` with ``args`` converted to its declared parameter types."""
        raise NotImplementedError

    def compose_task(self, name: str, *args: Any) -> Task:
        """Build an immutable task describing a call to the handler named ``name``."""
        raise NotImplementedError


class DefaultInvoker:
    """Stateless invoker; safe to share between threads."""

    def bind(self, handler: Callable[..., Any], args: Sequence[Any]) -> BoundCall:
        signature = describe_handler(handler)
        return BoundCall(
            handler=handler,
            signature=signature,
            frame=tuple(self._build_call_frame(signature, args)),
        )

    def invoke(self, handler: Callable[..., Any], args: Sequence[Any]) -> list[Any]:
        return self.bind(handler, args)()

    def compose_task(self, name: str, *args: Any) -> Task:
        return compose_task(name, *args)

    @staticmethod
    def _build_call_frame(signature: HandlerSignature, args: Sequence[Any]) -> list[Any]:
        if len(args) != signature.arity:
            raise ArgumentCountMismatchError(
                message=(
                    f"Parameter count mismatch for {signature.name}: "
                    f"got {len(args)}, expected {signature.arity}"
                ),
                kind=ErrorKind.ARGUMENT_COUNT_MISMATCH,
                expected=signature.arity,
                actual=len(args),
            )
        return [
            convert(arg, parameter.descriptor, path=f"args[{index}]")
            for index, (arg, parameter) in enumerate(zip(args, signature.parameters, strict=True))
        ]


def new_default_invoker() -> Invoker:
    return DefaultInvoker()
