"""Transport boundary: connections, pooled channels and queues."""

from task_invoker.transport.base import (
    Channel,
    Connection,
    TransportClosedError,
    TransportError,
)
from task_invoker.transport.memory import InMemoryConnection, MemoryChannel

__all__ = [
    "Channel",
    "Connection",
    "InMemoryConnection",
    "MemoryChannel",
    "TransportClosedError",
    "TransportError",
]
