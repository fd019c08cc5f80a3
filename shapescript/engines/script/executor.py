"""
Script time budget.

watchdog(timeout) aborts a long-running script by raising
ExecutionStoppedError inside it (signal.SIGALRM, Unix main thread only).
Elsewhere it is a no-op, and the same fault may be injected by an
external supervisor; the evaluator only catches and reports it.
"""

import logging
import signal
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

_log = logging.getLogger(__name__)


class ExecutionStoppedError(TimeoutError):
    """Raised inside a running script when its time budget is exceeded."""

    pass


def watchdog_available() -> bool:
    return hasattr(signal, "SIGALRM") and threading.current_thread() is threading.main_thread()


@contextmanager
def watchdog(timeout_sec: int | None) -> Iterator[None]:
    """Arm SIGALRM for timeout_sec seconds around the block; no-op if disabled or unavailable."""
    if timeout_sec is None or timeout_sec <= 0 or not watchdog_available():
        yield
        return

    def _handler(signum: int, frame: Any) -> None:
        _log.warning("Script execution stopped after %ss", timeout_sec)
        raise ExecutionStoppedError()

    old = signal.signal(signal.SIGALRM, _handler)
    try:
        signal.alarm(timeout_sec)
        try:
            yield
        finally:
            signal.alarm(0)
    finally:
        signal.signal(signal.SIGALRM, old)
