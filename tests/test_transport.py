from __future__ import annotations

import threading

import allure
import pytest

from task_invoker.transport import InMemoryConnection, TransportClosedError

pytestmark = [
    allure.epic("Transport"),
    allure.feature("Channel Pool"),
]


def test_acquire_release_cycles_then_close() -> None:
    conn = InMemoryConnection()
    channel_ids = set()
    for _ in range(100):
        channel = conn.channel()
        try:
            channel_ids.add(channel.channel_id)
        finally:
            conn.release_channel(channel)

    assert channel_ids == {1}
    conn.close()
    assert conn.closed
    assert conn.open_channels == 0


def test_leased_channel_context_returns_channel_to_pool(connection: InMemoryConnection) -> None:
    with connection.leased_channel() as channel:
        assert connection.idle_channels == 0
    assert connection.idle_channels == 1
    with connection.leased_channel() as reused:
        assert reused is channel


def test_idle_pool_is_bounded(connection: InMemoryConnection) -> None:
    channels = [connection.channel() for _ in range(3)]
    for channel in channels:
        connection.release_channel(channel)
    assert connection.idle_channels == 2
    assert connection.open_channels == 2
    assert channels[2].closed


def test_close_is_idempotent_and_closes_leased_channels() -> None:
    conn = InMemoryConnection()
    leased = conn.channel()
    conn.close()
    conn.close()
    assert leased.closed
    conn.release_channel(leased)
    with pytest.raises(TransportClosedError):
        conn.channel()
    with pytest.raises(TransportClosedError):
        leased.publish("tasks", {})


def test_queues_are_fifo(connection: InMemoryConnection) -> None:
    with connection.leased_channel() as channel:
        channel.publish("tasks", {"n": 1})
        channel.publish("tasks", {"n": 2})
        assert connection.queue_depth("tasks") == 2
        assert channel.get("tasks") == {"n": 1}
        assert channel.get("tasks") == {"n": 2}
        assert channel.get("tasks") is None
        assert channel.get("other") is None


def test_published_message_is_copied(connection: InMemoryConnection) -> None:
    message = {"args": [1]}
    with connection.leased_channel() as channel:
        channel.publish("tasks", message)
        message["args"].append(2)
        assert channel.get("tasks") == {"args": [1]}


def test_release_of_foreign_channel_is_ignored(connection: InMemoryConnection) -> None:
    other = InMemoryConnection()
    foreign = other.channel()
    connection.release_channel(foreign)
    assert connection.idle_channels == 0
    other.close()


def test_concurrent_acquire_release(connection: InMemoryConnection) -> None:
    errors: list[BaseException] = []

    def churn() -> None:
        try:
            for _ in range(100):
                with connection.leased_channel() as channel:
                    channel.publish("tasks", {"ok": True})
        except BaseException as error:  # noqa: BLE001
            errors.append(error)

    threads = [threading.Thread(target=churn) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert connection.queue_depth("tasks") == 800
    assert connection.idle_channels <= connection.max_idle_channels


def test_negative_pool_size_is_rejected() -> None:
    with pytest.raises(ValueError, match="max_idle_channels"):
        InMemoryConnection(max_idle_channels=-1)
