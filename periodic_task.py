from __future__ import annotations

import math
from typing import Any, Callable, Protocol

from error_reporting import ErrorSink, report_error

MIN_INTERVAL_MS = 1
MAX_INTERVAL_SEC = 1e9
MAX_INTERVAL_MS = int(MAX_INTERVAL_SEC * 1000)


class TimerState(Protocol):
    interval_ms: int

    @property
    def is_running(self) -> bool: ...


def interval_to_millis(value: Any, minimum_ms: int = MIN_INTERVAL_MS) -> int:
    if isinstance(value, (str, bytes, bytearray)):
        return minimum_ms
    try:
        seconds = float(value)
    except (TypeError, ValueError, OverflowError):
        return minimum_ms
    if not math.isfinite(seconds) or seconds <= 0.0:
        return minimum_ms
    return max(minimum_ms, int(min(seconds, MAX_INTERVAL_SEC) * 1000.0))


class PeriodicTask:
    """Runs the action, then stores the next delay from the interval provider."""

    def __init__(
        self,
        action: Callable[[], Any],
        interval_provider: Callable[[], Any],
        error_sink: ErrorSink | None = None,
        min_interval_ms: int = MIN_INTERVAL_MS,
    ):
        self.action = action
        self.interval_provider = interval_provider
        self.error_sink = error_sink
        self.min_interval_ms = max(1, int(min_interval_ms))
        self.cycles = 0
        self.action_errors = 0
        self.interval_errors = 0

    def run(self, timer: TimerState) -> None:
        if not timer.is_running:
            return
        action = self.action
        interval_provider = self.interval_provider
        if action is None or interval_provider is None:
            return

        self.cycles += 1
        try:
            action()
        except Exception as exc:
            self.action_errors += 1
            report_error(self.error_sink, "action", exc)

        try:
            value = interval_provider()
        except Exception as exc:
            self.interval_errors += 1
            report_error(self.error_sink, "interval provider", exc)
            return

        timer.interval_ms = interval_to_millis(value, self.min_interval_ms)

    def release(self) -> None:
        self.action = None
        self.interval_provider = None
