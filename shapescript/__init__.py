"""
shapescript: sandboxed evaluation of parametric shape scripts.
"""

from shapescript.engines.evaluator import EvalResult, ShapeEvaluator
from shapescript.geometry import Bounds, Shape

__all__ = [
    "Bounds",
    "EvalResult",
    "Shape",
    "ShapeEvaluator",
]
