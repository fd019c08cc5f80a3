"""
Fault reports and their translation into script-author-visible text.

Internal locations look like ``(<cmd>#N)`` where N counts lines of the
augmented script. add_error_line() maps N back to the author's line by
subtracting the injected header and quotes that line.
"""

from __future__ import annotations

import re
import traceback
from collections.abc import Iterable

# Filename scripts are compiled under; tracebacks and markers use it.
SCRIPT_FILENAME = "<cmd>"

# Known internal fault types and what the script author sees instead.
ERROR_REMAP: dict[str, str] = {
    "ExecutionStoppedError": "Execution time exceeded.",
}

_CMD_MARKER_RE = re.compile(r"\s*\(?" + re.escape(SCRIPT_FILENAME) + r"#(\d+)\)?")


class FaultReport:
    """One fault or warning raised while a script ran."""

    __slots__ = ("message", "line")

    def __init__(self, message: str, line: int | None = None) -> None:
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.message} ({SCRIPT_FILENAME}#{self.line})"

    def __repr__(self) -> str:
        return f"FaultReport({self.message!r}, line={self.line})"


def fault_from_exception(exc: BaseException) -> FaultReport:
    """
    Describe exc, locating it at the innermost frame that ran script code.

    Faults listed in ERROR_REMAP are described by type alone, so one injected
    with a message is still remapped.
    """
    name = type(exc).__name__
    text = str(exc)
    message = f"{name}: {text}" if text and name not in ERROR_REMAP else name
    line: int | None = None
    for frame in traceback.extract_tb(exc.__traceback__):
        if frame.filename == SCRIPT_FILENAME:
            line = frame.lineno
    if line is None and isinstance(exc, SyntaxError) and exc.filename == SCRIPT_FILENAME:
        line = exc.lineno
    return FaultReport(message, line)


def add_error_line(msg: str, script: str, header_lines: int) -> str:
    """
    Rewrite the first ``<cmd>#N`` marker in msg into the script author's line.

    - script: the author's script, without the injected header.
    - N - header_lines > 0: marker replaced by "Script Line(V): <text of line V>".
    - otherwise the fault is inside the header: marker dropped, no line reference.
    """
    m = _CMD_MARKER_RE.search(msg)
    if m is None:
        return msg
    stripped = msg[: m.start()] + msg[m.end() :]
    visible = int(m.group(1)) - header_lines
    if visible <= 0:
        return stripped
    lines = script.splitlines()
    text = lines[visible - 1] if visible <= len(lines) else ""
    return f"{stripped}\nScript Line({visible}): {text}"


def translate_fault(report: FaultReport, script: str, header_lines: int) -> str:
    remap = ERROR_REMAP.get(report.message)
    if remap is not None:
        return remap
    return add_error_line(str(report), script, header_lines)


def format_reports(
    reports: Iterable[FaultReport], script: str, header_lines: int
) -> str | None:
    """Joined, translated report text; None when there is nothing to report."""
    out = "".join(translate_fault(r, script, header_lines) + "\n" for r in reports)
    return out or None


class ErrorCollector:
    """Collects FaultReports for the duration of one evaluation call."""

    def __init__(self) -> None:
        self._reports: list[FaultReport] = []

    @property
    def reports(self) -> list[FaultReport]:
        return list(self._reports)

    def clear(self) -> None:
        self._reports.clear()

    def add(self, report: FaultReport) -> None:
        self._reports.append(report)

    def showwarning(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: object = None,
        line: str | None = None,
    ) -> None:
        """warnings.showwarning replacement: record the warning as a report."""
        self.add(
            FaultReport(
                f"{category.__name__}: {message}",
                lineno if filename == SCRIPT_FILENAME else None,
            )
        )

    def __len__(self) -> int:
        return len(self._reports)
