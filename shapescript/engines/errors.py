"""
Evaluation faults.

Every structural or script fault raised while evaluating is an
EvaluationError; ShapeEvaluator turns them into failed EvalResults.
Value decode faults (ParamTypeError) never leave coercion.
"""


class EvaluationError(ValueError):
    """Base for faults that fail an evaluation call."""

    pass


class InvalidStateError(EvaluationError):
    """Re-evaluation without a live execution context, or a stale context."""

    pass


class ScriptCompileError(EvaluationError):
    """The script body failed to compile or run."""

    pass


class UnsupportedParameterTypeError(EvaluationError):
    """The parameter declaration uses an unknown type or shape."""

    pass


class HandlerNotFoundError(EvaluationError):
    pass


class UnknownParameterError(EvaluationError):
    pass


class ScriptRuntimeError(EvaluationError):
    """A handler raised; the message is already translated for the script author."""

    pass
