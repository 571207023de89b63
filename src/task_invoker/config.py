"""Runtime configuration for the transport, worker and CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(slots=True)
class TransportSettings:
    """Channel pool and queue naming settings."""

    channel_pool_size: int = 8
    task_queue: str = "tasks"
    result_queue: str = ""


@dataclass(slots=True)
class WorkerSettings:
    """Task worker settings."""

    worker_id: str = "worker-1"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    log_level: str = "WARNING"
    transport: TransportSettings = field(default_factory=TransportSettings)
    worker: WorkerSettings = field(default_factory=WorkerSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults for local use."""

        return cls(
            log_level=os.getenv("TASK_INVOKER_LOG_LEVEL", "WARNING").strip().upper(),
            transport=TransportSettings(
                channel_pool_size=_env_int("TASK_INVOKER_CHANNEL_POOL_SIZE", 8),
                task_queue=os.getenv("TASK_INVOKER_TASK_QUEUE", "tasks").strip(),
                result_queue=os.getenv("TASK_INVOKER_RESULT_QUEUE", "").strip(),
            ),
            worker=WorkerSettings(
                worker_id=os.getenv("TASK_INVOKER_WORKER_ID", "worker-1").strip(),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"TASK_INVOKER_LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}: "
                f"{self.log_level!r}",
            )
        if self.transport.channel_pool_size < 0:
            raise ValueError("TASK_INVOKER_CHANNEL_POOL_SIZE must be >= 0.")
        if not self.transport.task_queue:
            raise ValueError("TASK_INVOKER_TASK_QUEUE must be a non-empty string.")
        if self.transport.result_queue == self.transport.task_queue:
            raise ValueError("TASK_INVOKER_RESULT_QUEUE must differ from TASK_INVOKER_TASK_QUEUE.")
        if not self.worker.worker_id:
            raise ValueError("TASK_INVOKER_WORKER_ID must be a non-empty string.")

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {raw!r}") from error
