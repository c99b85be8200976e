"""
KPI expression engine.

Components:
    parse_expression: Recursive-descent parser producing an immutable AST
    KpiEvaluator: Evaluates KPIs against an aggregate scope with tagged results
    build_kpi_scope: Sums delta rows into the read-only evaluation scope
"""

from api.engine.kpi.evaluator import (
    KPI_METRIC_PATHS,
    KpiEvaluator,
    build_kpi_scope,
    evaluate_expression,
    validate_kpi,
)
from api.engine.kpi.parser import (
    ExpressionError,
    ExpressionEvaluationError,
    ExpressionSyntaxError,
    parse_expression,
)

__all__ = [
    "KPI_METRIC_PATHS",
    "KpiEvaluator",
    "build_kpi_scope",
    "evaluate_expression",
    "validate_kpi",
    "ExpressionError",
    "ExpressionEvaluationError",
    "ExpressionSyntaxError",
    "parse_expression",
]
