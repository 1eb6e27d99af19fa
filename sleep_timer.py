from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from dispatcher import DispatchError, MainThreadDispatcher

LOG = logging.getLogger("loopmod")

MIN_SLEEP_MS = 1
MAX_WAIT_SEC = min(threading.TIMEOUT_MAX, 3600.0)


class SleepTimer:
    """Background thread that sleeps, then asks the dispatcher to run ``work``."""

    def __init__(
        self,
        dispatcher: MainThreadDispatcher,
        work: Callable[["SleepTimer"], None],
        interval_ms: int = MIN_SLEEP_MS,
        retry_delay_ms: int = 1,
        name: str = "loop-timer",
    ):
        self._dispatcher = dispatcher
        self._work = work
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.interval_ms = max(MIN_SLEEP_MS, int(interval_ms))
        self.retry_delay_ms = max(1, int(retry_delay_ms))
        self.name = name
        self.dispatch_count = 0
        self.dispatch_failures = 0

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and not self._stop_event.is_set()

    @property
    def thread(self) -> threading.Thread | None:
        return self._thread

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("SleepTimer can only be started once")
        thread = threading.Thread(target=self._run, daemon=True, name=self.name)
        self._thread = thread
        try:
            thread.start()
        except Exception:
            self._stop_event.set()
            self._thread = None
            raise

    def request_stop(self) -> None:
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> bool:
        thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            return False
        thread.join(timeout)
        return not thread.is_alive()

    def _sleep(self, ms: int) -> bool:
        # Event.wait rejects timeouts above TIMEOUT_MAX, so long intervals are slept in slices.
        deadline = time.monotonic() + ms / 1000.0
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return self._stop_event.is_set()
            if self._stop_event.wait(min(remaining, MAX_WAIT_SEC)):
                return True

    def _dispatch(self) -> None:
        try:
            self._dispatcher.enqueue(self._dispatched_work)
        except DispatchError as exc:
            self.dispatch_failures += 1
            LOG.debug("Dispatch failed, retrying in %d ms: %s", self.retry_delay_ms, exc)
            self._stop_event.wait(self.retry_delay_ms / 1000.0)
            return
        self.dispatch_count += 1

    def _dispatched_work(self) -> None:
        self._work(self)

    def _run(self) -> None:
        LOG.debug("Worker %s started", self.name)
        try:
            if not self._stop_event.is_set():
                self._dispatch()

            while not self._stop_event.is_set():
                if self._sleep(self.interval_ms or MIN_SLEEP_MS):
                    break
                self._dispatch()
        except Exception:
            LOG.exception("Unhandled exception in worker %s", self.name)
            self._stop_event.set()
        LOG.debug("Worker %s exited", self.name)
