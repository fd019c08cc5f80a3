"""
Log module for shape scripts: print() capture plus log.info/warn/error/debug.

Everything a script prints or logs lands in the per-call buffer that the
evaluator returns as ``log``; log.* calls are also forwarded to Python logging.
"""

import logging
from types import SimpleNamespace
from typing import Any

logger = logging.getLogger("shapescript.script")


class PrintCollector:
    """Target of RestrictedPython's print rewriting (``_print_``)."""

    def __init__(self, buffer: list[str]) -> None:
        self._buffer = buffer

    def __call__(self, _getattr_: Any = None) -> "PrintCollector":
        # RestrictedPython calls _print_(_getattr_) once per function frame.
        return self

    def _call_print(self, *objects: Any, **kwargs: Any) -> None:
        sep = kwargs.get("sep")
        end = kwargs.get("end")
        sep = " " if sep is None else str(sep)
        end = "\n" if end is None else str(end)
        self._buffer.append(sep.join(str(o) for o in objects) + end)


def make_log_module(
    *,
    buffer: list[str],
    logger_instance: logging.Logger | None = None,
    extra: dict[str, Any] | None = None,
) -> Any:
    """Build the `log` object: info, warn, error, debug. extra is passed to logger as context."""
    log = logger_instance or logger
    ext = extra or {}

    def _log(level: int, msg: str, *args: Any) -> None:
        text = str(msg) % args if args else str(msg)
        buffer.append(f"{logging.getLevelName(level)}: {text}\n")
        log.log(level, text, extra=ext or None)

    def info(msg: str, *args: Any) -> None:
        _log(logging.INFO, msg, *args)

    def warn(msg: str, *args: Any) -> None:
        _log(logging.WARNING, msg, *args)

    def error(msg: str, *args: Any) -> None:
        _log(logging.ERROR, msg, *args)

    def debug(msg: str, *args: Any) -> None:
        _log(logging.DEBUG, msg, *args)

    return SimpleNamespace(info=info, warn=warn, error=error, debug=debug)
