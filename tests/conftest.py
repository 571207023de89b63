"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from task_invoker.invoker import DefaultInvoker
from task_invoker.transport import InMemoryConnection


@pytest.fixture()
def invoker() -> DefaultInvoker:
    return DefaultInvoker()


@pytest.fixture()
def connection() -> Iterator[InMemoryConnection]:
    conn = InMemoryConnection(max_idle_channels=2)
    yield conn
    conn.close()
