from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class LoopConfig:
    min_interval_ms: int = 1
    dispatch_retry_ms: int = 1
    dispatch_queue_size: int = 32
    drain_poll_ms: int = 250
    worker_thread_name: str = "loop-timer"
    log_level: str = "INFO"


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got: {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be > 0, got: {value}")
    return value


def _get_log_level(name: str, default: str) -> str:
    raw = os.getenv(name, default).strip().upper() or default
    if not isinstance(logging.getLevelName(raw), int):
        raise ConfigError(f"{name} must be a logging level name, got: {raw!r}")
    return raw


def load_config(env_file: str | None = ".env") -> LoopConfig:
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    return LoopConfig(
        min_interval_ms=_get_int("LOOP_MIN_INTERVAL_MS", 1),
        dispatch_retry_ms=_get_int("LOOP_DISPATCH_RETRY_MS", 1),
        dispatch_queue_size=_get_int("LOOP_DISPATCH_QUEUE_SIZE", 32),
        drain_poll_ms=_get_int("LOOP_DRAIN_POLL_MS", 250),
        worker_thread_name=os.getenv("LOOP_WORKER_THREAD_NAME", "loop-timer").strip() or "loop-timer",
        log_level=_get_log_level("LOOP_LOG_LEVEL", "INFO"),
    )
