"""In-process transport with a bounded channel reuse pool."""

from __future__ import annotations

import copy
import logging
import threading
from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from task_invoker.transport.base import TransportClosedError

logger = logging.getLogger(__name__)


class MemoryChannel:
    """Channel over the queues of one :class:`InMemoryConnection`."""

    def __init__(self, connection: InMemoryConnection, channel_id: int) -> None:
        self.channel_id = channel_id
        self._connection = connection
        self.closed = False

    def publish(self, queue: str, message: dict[str, Any]) -> None:
        self._ensure_open()
        self._connection._push(queue, copy.deepcopy(message))  # noqa: SLF001

    def get(self, queue: str) -> dict[str, Any] | None:
        self._ensure_open()
        return self._connection._pop(queue)  # noqa: SLF001

    def close(self) -> None:
        self.closed = True

    def _ensure_open(self) -> None:
        if self.closed:
            raise TransportClosedError(f"Channel {self.channel_id} is closed")


class InMemoryConnection:
    """Connection keeping named FIFO queues in memory.

    Released channels go back to an idle pool of at most ``max_idle_channels``
    entries; channels beyond that are closed.
    """

    def __init__(self, *, max_idle_channels: int = 8) -> None:
        if max_idle_channels < 0:
            raise ValueError("max_idle_channels must be >= 0")
        self.max_idle_channels = max_idle_channels
        self._lock = threading.Lock()
        self._queues: dict[str, deque[dict[str, Any]]] = {}
        self._idle: list[MemoryChannel] = []
        self._leased: dict[int, MemoryChannel] = {}
        self._next_channel_id = 1
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def open_channels(self) -> int:
        with self._lock:
            return len(self._idle) + len(self._leased)

    @property
    def idle_channels(self) -> int:
        with self._lock:
            return len(self._idle)

    def channel(self) -> MemoryChannel:
        with self._lock:
            if self._closed:
                raise TransportClosedError("Connection is closed")
            if self._idle:
                channel = self._idle.pop()
            else:
                channel = MemoryChannel(self, self._next_channel_id)
                self._next_channel_id += 1
                logger.debug("Opened channel %d", channel.channel_id)
            self._leased[channel.channel_id] = channel
            return channel

    def release_channel(self, channel: MemoryChannel) -> None:
        with self._lock:
            if self._closed:
                channel.close()
                return
            leased = self._leased.pop(channel.channel_id, None)
            if leased is not channel:
                if leased is not None:
                    self._leased[leased.channel_id] = leased
                logger.warning("Ignoring release of channel %d not leased here", channel.channel_id)
                return
            if len(self._idle) >= self.max_idle_channels:
                channel.close()
                logger.debug("Closed channel %d on release", channel.channel_id)
                return
            self._idle.append(channel)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            channels = [*self._idle, *self._leased.values()]
            self._idle.clear()
            self._leased.clear()
        for channel in channels:
            channel.close()
        logger.info("Connection closed (%d channel(s))", len(channels))

    @contextmanager
    def leased_channel(self) -> Iterator[MemoryChannel]:
        """Acquire a channel for the duration of a ``with`` block."""

        channel = self.channel()
        try:
            yield channel
        finally:
            self.release_channel(channel)

    def queue_depth(self, queue: str) -> int:
        with self._lock:
            return len(self._queues.get(queue, ()))

    def _push(self, queue: str, message: dict[str, Any]) -> None:
        with self._lock:
            if self._closed:
                raise TransportClosedError("Connection is closed")
            self._queues.setdefault(queue, deque()).append(message)

    def _pop(self, queue: str) -> dict[str, Any] | None:
        with self._lock:
            if self._closed:
                raise TransportClosedError("Connection is closed")
            pending = self._queues.get(queue)
            if not pending:
                return None
            return pending.popleft()
