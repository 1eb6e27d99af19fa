from __future__ import annotations

import asyncio
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable

from error_reporting import ErrorSink, report_error

LOG = logging.getLogger("loopmod")

Work = Callable[[], None]

DEFAULT_QUEUE_SIZE = 32


class DispatchError(Exception):
    pass


class MainThreadDispatcher(ABC):
    """Transports zero-argument work onto the host's main thread.

    ``enqueue`` must return without waiting for the work to run. When the
    work cannot be accepted it raises ``DispatchError`` instead of dropping it.
    """

    @abstractmethod
    def enqueue(self, work: Work) -> None:
        raise NotImplementedError


class QueueDispatcher(MainThreadDispatcher):
    """Bounded FIFO drained by the owner thread through ``run_pending``."""

    def __init__(
        self,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        owner: threading.Thread | None = None,
        error_sink: ErrorSink | None = None,
    ):
        if maxsize <= 0:
            raise ValueError("maxsize must be > 0")
        self._queue: queue.Queue[Work] = queue.Queue(maxsize=maxsize)
        self._owner = owner or threading.main_thread()
        self._error_sink = error_sink
        self._closed = threading.Event()

    @property
    def owner(self) -> threading.Thread:
        return self._owner

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def enqueue(self, work: Work) -> None:
        if self._closed.is_set():
            raise DispatchError("Dispatcher is shutting down")
        try:
            self._queue.put_nowait(work)
        except queue.Full as exc:
            raise DispatchError(f"Dispatch queue is full ({self._queue.maxsize} pending)") from exc

    def run_pending(self, max_items: int | None = None, timeout: float = 0.0) -> int:
        if threading.current_thread() is not self._owner:
            raise RuntimeError(
                f"run_pending must be called from {self._owner.name}, "
                f"not {threading.current_thread().name}"
            )

        executed = 0
        wait_for = max(0.0, timeout)
        while max_items is None or executed < max_items:
            try:
                if wait_for > 0 and executed == 0:
                    work = self._queue.get(timeout=wait_for)
                else:
                    work = self._queue.get_nowait()
            except queue.Empty:
                break

            try:
                work()
            except Exception as exc:
                report_error(self._error_sink, "dispatched work", exc)
            finally:
                self._queue.task_done()
            executed += 1
        return executed

    def run_until(
        self,
        stop_event: threading.Event,
        poll_sec: float = 0.25,
        timeout: float | None = None,
    ) -> int:
        deadline = None if timeout is None else time.monotonic() + max(0.0, timeout)
        executed = 0
        while not stop_event.is_set():
            wait_for = poll_sec
            if deadline is not None:
                wait_for = min(poll_sec, deadline - time.monotonic())
                if wait_for <= 0:
                    break
            executed += self.run_pending(timeout=wait_for)
        return executed

    def close(self) -> None:
        self._closed.set()
        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            discarded += 1
        if discarded:
            LOG.debug("Discarded %d pending dispatches on close", discarded)


class AsyncioDispatcher(MainThreadDispatcher):
    """Hands work to an asyncio event loop running on the main thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop, error_sink: ErrorSink | None = None):
        self._loop = loop
        self._error_sink = error_sink

    def _guarded(self, work: Work) -> Work:
        def _run() -> None:
            try:
                work()
            except Exception as exc:
                report_error(self._error_sink, "dispatched work", exc)

        return _run

    def enqueue(self, work: Work) -> None:
        if self._loop.is_closed():
            raise DispatchError("Event loop is closed")
        try:
            self._loop.call_soon_threadsafe(self._guarded(work))
        except RuntimeError as exc:
            raise DispatchError(f"Event loop rejected work: {exc}") from exc


_default_dispatcher: QueueDispatcher | None = None
_default_lock = threading.Lock()


def get_default_dispatcher() -> QueueDispatcher:
    global _default_dispatcher
    with _default_lock:
        if _default_dispatcher is None:
            _default_dispatcher = QueueDispatcher()
        return _default_dispatcher


def run_pending(max_items: int | None = None, timeout: float = 0.0) -> int:
    """Drain the process-wide dispatcher. Call from the main thread."""
    return get_default_dispatcher().run_pending(max_items=max_items, timeout=timeout)

