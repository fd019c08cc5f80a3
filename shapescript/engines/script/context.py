"""
ExecutionContext: the persistent sandbox a job's script lives in.

Holds the RestrictedPython globals, the shared ``args`` container handed to
every handler, the injected header line count, and the per-call error
collector and log buffer. Created once per evaluator, reused by every
re-evaluation, released by reset().
"""

import logging
import warnings
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from shapescript.core.config import settings
from shapescript.engines.diagnostics import ErrorCollector
from shapescript.engines.errors import InvalidStateError

from .executor import watchdog
from .imports import ScriptImports
from .modules import PrintCollector, make_log_module
from .sandbox import SCRIPT_FILENAME, build_restricted_globals, compile_script

_log = logging.getLogger(__name__)


class ExecutionContext:
    """
    Sandbox environment + shared argument container.

    Not thread-safe; one evaluation call at a time.
    """

    def __init__(
        self,
        imports: ScriptImports,
        *,
        timeout: int | None = None,
    ) -> None:
        self._imports = imports
        self._timeout = timeout
        self._globals: dict[str, Any] | None = None
        self._log_buffer: list[str] = []
        self.args: dict[str, Any] = {}
        self.header_lines: int | None = None
        self.errors = ErrorCollector()

    @classmethod
    def create(
        cls,
        imports: ScriptImports | None = None,
        *,
        timeout: int | None = None,
    ) -> "ExecutionContext":
        """Build the sandbox globals once; the context is ready to run()."""
        ctx = cls(
            imports or ScriptImports(),
            timeout=settings.SCRIPT_EXEC_TIMEOUT if timeout is None else timeout,
        )
        ctx._globals = build_restricted_globals(
            {
                "_print_": PrintCollector(ctx._log_buffer),
                "log": make_log_module(buffer=ctx._log_buffer),
            },
            import_hook=ctx._imports.guarded_import,
        )
        return ctx

    @property
    def alive(self) -> bool:
        return self._globals is not None

    def _require_globals(self) -> dict[str, Any]:
        if self._globals is None:
            raise InvalidStateError("Execution context has been released")
        return self._globals

    def bind_header(self, header_lines: int) -> None:
        """Record the header line count; it may never change for this context."""
        if self.header_lines is None:
            self.header_lines = header_lines
        elif self.header_lines != header_lines:
            raise InvalidStateError(
                f"Script header changed from {self.header_lines} to {header_lines} lines"
                " since the execution context was created"
            )

    # ------------------------------------------------------------------
    # Engine surface: run / resolve_handler / invoke / read_global
    # ------------------------------------------------------------------

    def run(self, augmented_script: str) -> None:
        """Compile and execute the whole script body in the sandbox globals."""
        g = self._require_globals()
        code = compile_script(augmented_script, SCRIPT_FILENAME)
        with watchdog(self._timeout):
            exec(code, g)  # noqa: S102 - RestrictedPython compiled code

    def resolve_handler(self, name: str) -> Callable[..., Any] | None:
        fn = self._require_globals().get(name)
        return fn if callable(fn) else None

    def invoke(self, handler: Callable[..., Any], *args: Any) -> Any:
        self._require_globals()
        with watchdog(self._timeout):
            return handler(*args)

    def read_global(self, name: str) -> Any:
        return self._require_globals().get(name)

    # ------------------------------------------------------------------
    # Call scope
    # ------------------------------------------------------------------

    @contextmanager
    def session(self) -> Iterator["ExecutionContext"]:
        """
        Scope one evaluation call: clear the previous call's log and reports,
        route Python warnings into the collector, and restore warning state on exit.
        """
        self._require_globals()
        self._log_buffer.clear()
        self.errors.clear()
        with warnings.catch_warnings():
            warnings.simplefilter("always")
            warnings.showwarning = self.errors.showwarning
            yield self

    def log_text(self) -> str | None:
        text = "".join(self._log_buffer)
        return text or None

    def snapshot(self) -> tuple[dict[str, Any], dict[str, Any], int | None]:
        return dict(self._require_globals()), dict(self.args), self.header_lines

    def restore(self, state: tuple[dict[str, Any], dict[str, Any], int | None]) -> None:
        g, args, header_lines = state
        current = self._require_globals()
        current.clear()
        current.update(g)
        self.args.clear()
        self.args.update(args)
        self.header_lines = header_lines

    def reset(self) -> None:
        """Release sandbox resources; the context cannot be used afterwards."""
        if self._globals is not None:
            self._globals.clear()
        self._globals = None
        self.args.clear()
        self._log_buffer.clear()
        self.errors.clear()
        self.header_lines = None
        _log.debug("Execution context released")
