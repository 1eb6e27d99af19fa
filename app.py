from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import threading
import time
from typing import Callable

from config import ConfigError, LoopConfig, load_config
from dispatcher import AsyncioDispatcher, QueueDispatcher
from loop_controller import LoopController

LOG = logging.getLogger("loopmod")
BACKEND_QUEUE = "queue"
BACKEND_ASYNCIO = "asyncio"


class TickCounter:
    def __init__(self):
        self.count = 0

    def __call__(self) -> None:
        self.count += 1
        LOG.info("tick %d on %s", self.count, threading.current_thread().name)


def _constant_interval(interval_sec: float) -> Callable[[], float]:
    def _provider() -> float:
        return interval_sec

    return _provider


def _deadline(duration_sec: float | None) -> float | None:
    if duration_sec is None:
        return None
    return time.monotonic() + max(0.0, duration_sec)


def _expired(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def _wait_for(deadline: float | None, poll_sec: float) -> float:
    if deadline is None:
        return poll_sec
    return max(0.0, min(poll_sec, deadline - time.monotonic()))


def run_queue_host(
    config: LoopConfig,
    stop_event: threading.Event,
    interval_sec: float,
    duration_sec: float | None,
) -> int:
    dispatcher = QueueDispatcher(maxsize=config.dispatch_queue_size)
    counter = TickCounter()
    loop = LoopController(counter, _constant_interval(interval_sec), dispatcher=dispatcher, config=config)
    loop.start()
    try:
        dispatcher.run_until(stop_event, poll_sec=config.drain_poll_ms / 1000.0, timeout=duration_sec)
    finally:
        loop.close()
        dispatcher.close()
    return counter.count


def run_asyncio_host(
    config: LoopConfig,
    stop_event: threading.Event,
    interval_sec: float,
    duration_sec: float | None,
) -> int:
    counter = TickCounter()
    poll_sec = config.drain_poll_ms / 1000.0

    async def _main() -> None:
        dispatcher = AsyncioDispatcher(asyncio.get_running_loop())
        loop = LoopController(counter, _constant_interval(interval_sec), dispatcher=dispatcher, config=config)
        deadline = _deadline(duration_sec)
        loop.start()
        try:
            while not stop_event.is_set() and not _expired(deadline):
                await asyncio.sleep(_wait_for(deadline, poll_sec))
        finally:
            loop.close()

    asyncio.run(_main())
    return counter.count


def run_demo(config: LoopConfig, backend: str, interval_sec: float, duration_sec: float | None) -> int:
    stop_event = threading.Event()

    def _stop_handler(_signum, _frame):
        stop_event.set()

    signal.signal(signal.SIGINT, _stop_handler)
    signal.signal(signal.SIGTERM, _stop_handler)

    if backend == BACKEND_ASYNCIO:
        ticks = run_asyncio_host(config, stop_event, interval_sec, duration_sec)
    else:
        ticks = run_queue_host(config, stop_event, interval_sec, duration_sec)
    LOG.info("Loop finished after %d ticks", ticks)
    return ticks


def _positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got: {raw!r}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got: {value}")
    return value


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Main-thread periodic loop")
    parser.add_argument("--env-file", default=".env", help="Path to the .env file")
    subparsers = parser.add_subparsers(dest="command", required=True)
    run_parser = subparsers.add_parser("run", help="Run a ticking loop on the main thread")
    run_parser.add_argument("--interval", type=_positive_float, default=1.0, help="Seconds between ticks")
    run_parser.add_argument("--duration", type=_positive_float, default=None, help="Stop after this many seconds")
    run_parser.add_argument(
        "--backend",
        choices=(BACKEND_QUEUE, BACKEND_ASYNCIO),
        default=BACKEND_QUEUE,
        help="Main-thread dispatch mechanism",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    try:
        config = load_config(args.env_file)
    except ConfigError as exc:
        raise SystemExit(f"Config error: {exc}")
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(message)s")

    if args.command == "run":
        run_demo(config, args.backend, args.interval, args.duration)
        return
    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    main()
