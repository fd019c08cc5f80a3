"""
Script engine (Python, RestrictedPython) for shape scripts.

Exports: ExecutionContext, ScriptImports, ExecutionStoppedError, compile_script, build_restricted_globals.
"""

from .context import ExecutionContext
from .executor import ExecutionStoppedError
from .imports import ScriptImports
from .sandbox import build_restricted_globals, compile_script

__all__ = [
    "ExecutionContext",
    "ExecutionStoppedError",
    "ScriptImports",
    "compile_script",
    "build_restricted_globals",
]
