"""Main-thread periodic loop with a background sleep timer.

    import loopmod

    loop = loopmod.Loop(tick, lambda: 0.5)
    loop.start()
    while running:
        loopmod.run_pending(timeout=0.1)
    loop.stop()
"""
from __future__ import annotations

from config import ConfigError, LoopConfig, load_config
from dispatcher import (
    AsyncioDispatcher,
    DispatchError,
    MainThreadDispatcher,
    QueueDispatcher,
    get_default_dispatcher,
    run_pending,
)
from error_reporting import ErrorSink, log_error
from loop_controller import LoopController, LoopNotInitializedError, LoopStartError

Loop = LoopController

__all__ = [
    "AsyncioDispatcher",
    "ConfigError",
    "DispatchError",
    "ErrorSink",
    "Loop",
    "LoopConfig",
    "LoopController",
    "LoopNotInitializedError",
    "LoopStartError",
    "MainThreadDispatcher",
    "QueueDispatcher",
    "get_default_dispatcher",
    "load_config",
    "log_error",
    "run_pending",
]
