"""Transport contracts consumed by task workers."""

from __future__ import annotations

from typing import Any, Protocol


class TransportError(RuntimeError):
    """Transport operation failed."""


class TransportClosedError(TransportError):
    """Connection or channel used after close."""


class Channel(Protocol):
    """Sub-channel of a connection used to publish and fetch messages."""

    channel_id: int

    def publish(self, queue: str, message: dict[str, Any]) -> None:
        """Append a message to the named queue."""
        raise NotImplementedError

    def get(self, queue: str) -> dict[str, Any] | None:
        """Pop the oldest message from the named queue, or ``None`` when empty."""
        raise NotImplementedError


class Connection(Protocol):
    """Broker connection handing out reusable channels."""

    def channel(self) -> Channel:
        """Acquire a channel, reusing a released one when available."""
        raise NotImplementedError

    def release_channel(self, channel: Channel) -> None:
        """Return a channel to the reuse pool."""
        raise NotImplementedError

    def close(self) -> None:
        """Close the connection and every channel; idempotent."""
        raise NotImplementedError
