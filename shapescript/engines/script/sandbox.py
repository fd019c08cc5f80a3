"""
RestrictedPython sandbox for shape scripts.

Allowed: the RestrictedPython safe builtins plus the common container and
iteration helpers (list, dict, set, min, max, sum, enumerate, ...), imports
from the capability allow-list only, and the context objects (log).

Blocked: open, exec, eval, compile, getattr on private names, and any import
outside the allow-list.
"""

import builtins
import operator
import re
import warnings
from typing import Any, Callable

from RestrictedPython import compile_restricted_exec
from RestrictedPython.Eval import default_guarded_getitem, default_guarded_getiter
from RestrictedPython.Guards import (
    full_write_guard,
    guarded_iter_unpack_sequence,
    guarded_unpack_sequence,
    safe_builtins,
    safer_getattr,
)

from shapescript.engines.diagnostics import SCRIPT_FILENAME

_PRINTED_WARNING = "never reads 'printed'"
_WARNING_LINE_RE = re.compile(r"^Line (\d+): (.*)$", re.DOTALL)

_EXTRA_BUILTINS = (
    "list",
    "dict",
    "set",
    "frozenset",
    "min",
    "max",
    "sum",
    "abs",
    "enumerate",
    "reversed",
    "map",
    "filter",
    "any",
    "all",
)

_INPLACE_OPS: dict[str, Callable[[Any, Any], Any]] = {
    "+=": operator.iadd,
    "-=": operator.isub,
    "*=": operator.imul,
    "/=": operator.itruediv,
    "//=": operator.ifloordiv,
    "%=": operator.imod,
    "**=": operator.ipow,
}


def _inplacevar(op: str, x: Any, y: Any) -> Any:
    fn = _INPLACE_OPS.get(op)
    if fn is None:
        raise SyntaxError(f"Operator {op} is not allowed")
    return fn(x, y)


def _apply(f: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    return f(*args, **kwargs)


def _make_safe_builtins(import_hook: Callable[..., Any] | None) -> dict[str, Any]:
    """safe_builtins + common helpers; __import__ only through the allow-list hook."""
    safe = dict(safe_builtins)
    for name in _EXTRA_BUILTINS:
        safe[name] = getattr(builtins, name)
    if import_hook is not None:
        safe["__import__"] = import_hook
    return safe


def _make_guard_globals() -> dict[str, Any]:
    """Guards required by RestrictedPython's rewritten bytecode."""
    return {
        "_getattr_": safer_getattr,
        "_getiter_": default_guarded_getiter,
        "_getitem_": default_guarded_getitem,
        "_iter_unpack_sequence_": guarded_iter_unpack_sequence,
        "_unpack_sequence_": guarded_unpack_sequence,
        "_write_": full_write_guard,
        "_inplacevar_": _inplacevar,
        "_apply_": _apply,
        "__metaclass__": type,
    }


def compile_script(script: str, filename: str = SCRIPT_FILENAME) -> Any:
    """
    Compile script with RestrictedPython. Raises SyntaxError on failure.

    Compiler warnings are re-issued as SyntaxWarnings located at their script
    line; the "never reads 'printed'" notice is dropped since print output
    is collected by the print collector.

    Returns a code object suitable for exec(bytecode, globals).
    """
    result = compile_restricted_exec(script, filename)
    if result.errors:
        raise SyntaxError("; ".join(result.errors))
    if result.code is None:
        raise SyntaxError("RestrictedPython: compile failed")
    for warning in result.warnings:
        if _PRINTED_WARNING in warning:
            continue
        m = _WARNING_LINE_RE.match(warning)
        if m is None:
            warnings.warn(warning, SyntaxWarning, stacklevel=2)
        else:
            warnings.warn_explicit(m.group(2), SyntaxWarning, filename, int(m.group(1)))
    return result.code


def build_restricted_globals(
    context_dict: dict[str, Any],
    *,
    import_hook: Callable[..., Any] | None = None,
) -> dict[str, Any]:
    """
    Build the globals dict for exec(compiled, globals): safe builtins, guards
    and context objects. import_hook becomes the sandbox's __import__.
    """
    g: dict[str, Any] = {
        "__builtins__": _make_safe_builtins(import_hook),
        "__name__": "shapescript",
    }
    g.update(_make_guard_globals())
    g.update(context_dict)
    return g
