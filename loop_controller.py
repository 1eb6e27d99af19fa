from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from config import LoopConfig
from dispatcher import MainThreadDispatcher, get_default_dispatcher
from error_reporting import ErrorSink
from periodic_task import PeriodicTask
from sleep_timer import SleepTimer

LOG = logging.getLogger("loopmod")


class LoopNotInitializedError(RuntimeError):
    pass


class LoopStartError(RuntimeError):
    pass


class LoopController:
    """Runs ``action`` on the main thread, re-timed by ``interval_provider``.

    ``interval_provider`` returns the delay in seconds before the next run
    and is consulted after every action. ``start`` and ``stop`` are
    idempotent; ``stop`` blocks until the worker thread has exited.
    """

    def __init__(
        self,
        action: Callable[[], Any],
        interval_provider: Callable[[], Any],
        *,
        dispatcher: MainThreadDispatcher | None = None,
        error_sink: ErrorSink | None = None,
        config: LoopConfig | None = None,
    ):
        if not callable(action):
            raise TypeError("action must be callable")
        if not callable(interval_provider):
            raise TypeError("interval_provider must be callable")

        self.config = config or LoopConfig()
        self._dispatcher = dispatcher or get_default_dispatcher()
        self._task = PeriodicTask(
            action,
            interval_provider,
            error_sink=error_sink,
            min_interval_ms=self.config.min_interval_ms,
        )
        self._lock = threading.Lock()
        self._timer: SleepTimer | None = None
        self._closed = False

    @property
    def is_running(self) -> bool:
        timer = self._timer
        return timer is not None and timer.is_running

    @property
    def interval_ms(self) -> int | None:
        timer = self._timer
        if timer is None:
            return None
        return timer.interval_ms

    @property
    def task(self) -> PeriodicTask:
        return self._task

    @property
    def dispatcher(self) -> MainThreadDispatcher:
        return self._dispatcher

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                if self._timer.is_running:
                    return
                self._reap_timer()

            if self._closed or self._task.action is None or self._task.interval_provider is None:
                raise LoopNotInitializedError("Loop is not properly initialized")

            timer = SleepTimer(
                self._dispatcher,
                self._task.run,
                interval_ms=self.config.min_interval_ms,
                retry_delay_ms=self.config.dispatch_retry_ms,
                name=self.config.worker_thread_name,
            )
            self._timer = timer
            try:
                timer.start()
            except Exception as exc:
                self._timer = None
                raise LoopStartError(f"Failed to create thread: {exc}") from exc
            LOG.info("Loop started (worker %s)", timer.name)

    def stop(self) -> None:
        timer = self._timer
        if timer is not None and timer.thread is threading.current_thread():
            # Work dispatched synchronously on the worker; the thread exits on its own.
            timer.request_stop()
            return

        with self._lock:
            if self._timer is None:
                return
            self._timer.request_stop()
            self._reap_timer()
            LOG.info("Loop stopped")

    def _reap_timer(self) -> None:
        timer = self._timer
        if timer is None:
            return
        timer.request_stop()
        timer.join()
        self._timer = None

    def close(self) -> None:
        self.stop()
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._task.release()

    def __enter__(self) -> "LoopController":
        self.start()
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_lock", None) is None:
            return
        try:
            self.close()
        except Exception:
            LOG.exception("Failed to tear down loop")
