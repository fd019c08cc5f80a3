"""
Evaluation engine: sandboxed script runs and incremental re-evaluation.

See engines.evaluator.ShapeEvaluator.
"""
