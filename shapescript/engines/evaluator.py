"""
ShapeEvaluator: full evaluation and incremental re-evaluation of shape scripts.

eval_script() runs the whole script, rebuilds the parameter schema from
``uiParams`` and calls ``main(args)``. reeval_script() reuses the execution
context of the last full evaluation and only calls the ``onChange`` handler
of each changed parameter, running ``main`` at most once per call.

Every call either completes or leaves the context, args, schema and
retained Shape exactly as they were; faults come back as failed EvalResults.
"""

import logging
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from pydantic import BaseModel, ConfigDict

from shapescript.core.config import settings
from shapescript.core.param_type import coerce_params, extract_parameters
from shapescript.engines.diagnostics import fault_from_exception, format_reports, translate_fault
from shapescript.engines.errors import (
    EvaluationError,
    HandlerNotFoundError,
    InvalidStateError,
    ScriptCompileError,
    ScriptRuntimeError,
    UnknownParameterError,
)
from shapescript.engines.script import ExecutionContext, ScriptImports
from shapescript.geometry import Bounds, Shape
from shapescript.models import MAIN_HANDLER, Parameter

_log = logging.getLogger(__name__)


class EvalResult(BaseModel):
    """Outcome of one evaluation call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data_source: Any = None
    log: str | None = None
    error: str | None = None
    params: dict[str, Parameter] | None = None
    elapsed_ms: int = 0

    @classmethod
    def failure(cls, error: str, t0: float, log: str | None = None) -> "EvalResult":
        return cls(success=False, error=error, log=log, elapsed_ms=_elapsed_ms(t0))


def _elapsed_ms(t0: float) -> int:
    return int((time.monotonic() - t0) * 1000)


class ShapeEvaluator:
    """
    Evaluates one job's script. Not reentrant: callers serialise calls on an
    instance (one evaluator per job).
    """

    def __init__(
        self,
        imports: ScriptImports | None = None,
        *,
        timeout: int | None = None,
        params_variable: str | None = None,
    ) -> None:
        self._imports = imports or ScriptImports()
        self._timeout = timeout
        self._params_variable = params_variable or settings.SCRIPT_PARAMS_VARIABLE
        self._context: ExecutionContext | None = None
        self._params: dict[str, Parameter] = {}
        self._shape: Shape | None = None

    @property
    def context(self) -> ExecutionContext | None:
        return self._context

    @property
    def params(self) -> dict[str, Parameter]:
        return dict(self._params)

    @property
    def shape(self) -> Shape | None:
        return self._shape

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def eval_script(
        self,
        script: str,
        bounds: Bounds,
        named_params: Mapping[str, str] | None = None,
    ) -> EvalResult:
        """
        Run the whole script and call main(args).

        - bounds: set in place to the resulting Shape's bounds on success.
        - named_params: name -> JSON-encoded override, applied after the schema is read.
        """
        t0 = time.monotonic()
        _log.debug("eval_script(bounds=%s, params=%s)", bounds, list(named_params or ()))
        created = self._context is None
        ctx = self._context or ExecutionContext.create(self._imports, timeout=self._timeout)
        try:
            with ctx.session(), self._rollback(ctx):
                self._eval(ctx, script, named_params)
                result = self._success(ctx, script, bounds, t0)
        except EvaluationError as e:
            _log.info("Script evaluation failed: %s", e)
            return self._abort(ctx, str(e), t0, release=created)
        except Exception as e:
            _log.exception("Unexpected fault during script evaluation")
            return self._abort(ctx, self._describe(e, script), t0, release=created)
        self._context = ctx
        return result

    def reeval_script(
        self,
        script: str,
        bounds: Bounds,
        named_params: Mapping[str, str] | None = None,
    ) -> EvalResult:
        """
        Re-run only the onChange handlers of the changed parameters against
        the context of the last full evaluation.
        """
        t0 = time.monotonic()
        _log.debug("reeval_script(bounds=%s, params=%s)", bounds, list(named_params or ()))
        ctx = self._context
        if ctx is None or not ctx.alive:
            return EvalResult.failure(
                str(InvalidStateError("Cannot reeval before a full evaluation")), t0
            )
        try:
            with ctx.session(), self._rollback(ctx):
                self._reeval(ctx, script, named_params or {})
                return self._success(ctx, script, bounds, t0)
        except EvaluationError as e:
            _log.info("Script re-evaluation failed: %s", e)
            return self._abort(ctx, str(e), t0)
        except Exception as e:
            _log.exception("Unexpected fault during script re-evaluation")
            return self._abort(ctx, self._describe(e, script), t0)

    def clear_job(self) -> None:
        """Release the execution context; the next call must be a full evaluation."""
        if self._context is not None:
            self._context.reset()
        self._context = None
        self._params = {}
        self._shape = None

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _eval(
        self,
        ctx: ExecutionContext,
        script: str,
        named_params: Mapping[str, str] | None,
    ) -> None:
        augmented, header_lines = self._imports.augment(script)
        ctx.bind_header(header_lines)

        try:
            ctx.run(augmented)
        except Exception as e:
            _log.debug("Script failed to evaluate", exc_info=True)
            raise ScriptCompileError(f"Script failed to evaluate: {str(e) or type(e).__name__}") from e

        params = extract_parameters(ctx.read_global(self._params_variable))

        if named_params:
            wrapped = coerce_params(params, named_params)
            for key, value in wrapped.items():
                _log.debug("Adding arg: %s -> %r", key, value)
                ctx.args[key] = value

        main = ctx.resolve_handler(MAIN_HANDLER)
        if main is None:
            raise HandlerNotFoundError("Cannot find main function")

        self._shape = self._as_shape(self._invoke(ctx, main, script))
        self._params = params

    def _reeval(
        self,
        ctx: ExecutionContext,
        script: str,
        named_params: Mapping[str, str],
    ) -> None:
        _, header_lines = self._imports.augment(script)
        ctx.bind_header(header_lines)

        wrapped = coerce_params(self._params, named_params)
        for key, value in wrapped.items():
            _log.debug("Changing arg: %s -> %r", key, value)
            ctx.args[key] = value

        main_called = False
        for name in named_params:
            param = self._params.get(name)
            if param is None:
                raise UnknownParameterError(f"Cannot find parameter: {name}")
            on_change = param.on_change
            if main_called and on_change == MAIN_HANDLER:
                continue
            handler = ctx.resolve_handler(on_change)
            if handler is None:
                raise HandlerNotFoundError(f"Cannot find onChange function: {on_change}")

            result = self._invoke(ctx, handler, script)
            if on_change == MAIN_HANDLER:
                main_called = True
                self._shape = self._as_shape(result)

    def _invoke(self, ctx: ExecutionContext, handler: Callable[..., Any], script: str) -> Any:
        try:
            return ctx.invoke(handler, ctx.args)
        except Exception as e:
            _log.debug("Script handler raised", exc_info=True)
            raise ScriptRuntimeError(self._describe(e, script)) from e

    def _describe(self, exc: BaseException, script: str) -> str:
        # The bound header always equals the allow-list header
        return translate_fault(fault_from_exception(exc), script, self._imports.header_lines)

    @staticmethod
    def _abort(ctx: ExecutionContext, error: str, t0: float, *, release: bool = False) -> EvalResult:
        """Failed result carrying the log collected so far; release drops a context made by this call."""
        log_text = ctx.log_text()
        if release:
            ctx.reset()
        return EvalResult.failure(error, t0, log_text)

    @staticmethod
    def _as_shape(value: Any) -> Shape:
        if not isinstance(value, Shape):
            raise ScriptRuntimeError(
                f"main must return a Shape, got {type(value).__name__}"
            )
        return value

    def _success(
        self, ctx: ExecutionContext, script: str, bounds: Bounds, t0: float
    ) -> EvalResult:
        shape = self._shape
        if shape is None:
            raise InvalidStateError("No shape has been produced")
        error = format_reports(ctx.errors.reports, script, ctx.header_lines or 0)
        bounds.set(shape.bounds)
        _log.debug("Evaluation done: data_source=%s bounds=%s", shape.data_source, bounds)
        return EvalResult(
            success=True,
            data_source=shape.data_source,
            log=ctx.log_text(),
            error=error,
            params={name: p.model_copy(deep=True) for name, p in self._params.items()},
            elapsed_ms=_elapsed_ms(t0),
        )

    @contextmanager
    def _rollback(self, ctx: ExecutionContext) -> Iterator[None]:
        """Restore context, args, schema, parameter values and Shape if anything in the call raises."""
        ctx_state = ctx.snapshot()
        params = self._params
        values = {name: dict(p.__dict__) for name, p in params.items()}
        shape = self._shape
        try:
            yield
        except Exception:
            ctx.restore(ctx_state)
            for name, p in params.items():
                p.__dict__.update(values[name])
            self._params = params
            self._shape = shape
            raise
