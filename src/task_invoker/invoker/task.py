"""Immutable task records submitted to the transport."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from task_invoker.invoker.values import to_dynamic


@dataclass(frozen=True, slots=True)
class Task:
    """Requested unit of work: unique id, handler name and dynamic arguments."""

    id: str
    name: str
    args: tuple[Any, ...] = ()

    def to_message(self) -> dict[str, Any]:
        """Serialize the task for a transport channel."""

        return {"id": self.id, "name": self.name, "args": list(self.args)}

    @classmethod
    def from_message(cls, raw: Mapping[str, Any]) -> Task:
        """Deserialize and validate a task message."""

        if not isinstance(raw, Mapping):
            raise TypeError("task message must be an object")
        task_id = raw.get("id")
        name = raw.get("name")
        args = raw.get("args", [])
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValueError("task.id must be a non-empty string")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("task.name must be a non-empty string")
        if not isinstance(args, (list, tuple)):
            raise TypeError("task.args must be an array")
        return cls(id=task_id, name=name, args=tuple(args))


def compose_task(name: str, *args: Any) -> Task:
    """Bundle a handler name and arguments into a task with a fresh identifier."""

    if not isinstance(name, str) or not name.strip():
        raise ValueError("Task name must be a non-empty string")
    return Task(
        id=str(uuid4()),
        name=name,
        args=tuple(to_dynamic(arg) for arg in args),
    )
