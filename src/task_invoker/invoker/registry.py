"""Name-to-handler table with signatures described at registration time."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from task_invoker.invoker.descriptors import HandlerSignature, describe_handler
from task_invoker.invoker.errors import UnknownHandlerError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True, slots=True)
class RegisteredHandler:
    """Resolved handler with its build-once signature."""

    name: str
    handler: Callable[..., Any]
    signature: HandlerSignature


class HandlerRegistry:
    """Maps task names to callables."""

    def __init__(self) -> None:
        self._handlers: dict[str, RegisteredHandler] = {}
        self._lock = threading.Lock()

    def register(self, name: str, handler: Callable[..., Any]) -> RegisteredHandler:
        """Register ``handler`` under ``name``; the name must be unused."""

        normalized = name.strip()
        if not normalized:
            raise ValueError("Handler name must be a non-empty string")
        if not callable(handler):
            raise TypeError(f"Handler for {normalized!r} is not callable")
        registered = RegisteredHandler(
            name=normalized,
            handler=handler,
            signature=describe_handler(handler),
        )
        with self._lock:
            if normalized in self._handlers:
                raise ValueError(f"Handler already registered: {normalized!r}")
            self._handlers[normalized] = registered
        logger.debug("Registered handler %s as %s", registered.signature.name, normalized)
        return registered

    def handler(self, name: str | None = None) -> Callable[[F], F]:
        """Decorator form of :meth:`register`; defaults to the function name."""

        def decorator(func: F) -> F:
            self.register(name or func.__name__, func)
            return func

        return decorator

    def resolve(self, name: str) -> RegisteredHandler:
        with self._lock:
            registered = self._handlers.get(name)
        if registered is None:
            raise UnknownHandlerError(name)
        return registered

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._handlers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._handlers

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)
