from __future__ import annotations

import logging
from typing import Callable

LOG = logging.getLogger("loopmod")

ErrorSink = Callable[[str, BaseException], None]


def log_error(context: str, exc: BaseException) -> None:
    LOG.error("Error in %s: %s", context, exc, exc_info=(type(exc), exc, exc.__traceback__))


def report_error(sink: ErrorSink | None, context: str, exc: BaseException) -> None:
    """Hand an error to the sink; a failing sink is logged, never raised."""
    try:
        (sink or log_error)(context, exc)
    except Exception:
        LOG.exception("Error sink failed while reporting %s error", context)
