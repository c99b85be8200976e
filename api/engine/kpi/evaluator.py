"""
KPI Evaluator.

Evaluates parsed KPI expressions against an aggregate metric scope built from
the delta-adjusted article set and compares the result with the KPI target.

Result semantics:
    number  -> achieved iff value >= target_value
    boolean -> achieved iff value is true (target_value is not consulted)
    error   -> achieved is None; the failure message is reported

A failing KPI never affects the evaluation of any other KPI.
"""

import math
from types import MappingProxyType
from typing import Any, Mapping, Sequence, Union

import structlog

from api.engine.kpi.parser import (
    BinaryOp,
    BooleanLiteral,
    ExpressionError,
    ExpressionEvaluationError,
    Node,
    NumberLiteral,
    UnaryOp,
    Variable,
    iter_variables,
    parse_expression,
)
from api.models.enums import KpiResultType
from api.models.kpis import Kpi, KpiEvaluation, KpiValidation
from api.models.rollup import ArticleDelta

logger = structlog.get_logger()

Value = Union[float, bool]

# Metric paths a KPI expression may reference
KPI_SCOPE_SHAPE: dict[str, tuple[str, ...]] = {
    "note_data": ("views", "likes", "comments"),
    "x_preliminary_data": ("impressions", "likes", "replies", "retweets", "quotes"),
    "x_confirmed_data": ("impressions", "likes", "engagements"),
}

KPI_METRIC_PATHS: tuple[str, ...] = tuple(
    f"{group}.{field}" for group, fields in KPI_SCOPE_SHAPE.items() for field in fields
)


def build_kpi_scope(articles: Sequence[ArticleDelta]) -> Mapping[str, Mapping[str, float]]:
    """
    Aggregate per-article deltas into the read-only KPI scope.

    Publishing-platform deltas fill ``note_data``; the precedence-resolved
    social impression and like deltas fill ``x_confirmed_data``. Every other
    field is 0.
    """
    scope = {group: {field: 0.0 for field in fields} for group, fields in KPI_SCOPE_SHAPE.items()}
    for article in articles:
        scope["note_data"]["views"] += article.note_views_change
        scope["note_data"]["likes"] += article.note_likes_change
        scope["note_data"]["comments"] += article.note_comments_change
        scope["x_confirmed_data"]["impressions"] += article.x_impressions_change
        scope["x_confirmed_data"]["likes"] += article.x_likes_change
    return MappingProxyType({k: MappingProxyType(v) for k, v in scope.items()})


# =============================================================================
# AST interpretation
# =============================================================================


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _require_number(value: Value, op: str) -> float:
    if not _is_number(value):
        raise ExpressionEvaluationError(f"Operator '{op}' requires numeric operands")
    return float(value)


def _truthy(value: Value, op: str) -> bool:
    if isinstance(value, bool):
        return value
    if _is_number(value):
        return value != 0
    raise ExpressionEvaluationError(f"Operator '{op}' requires boolean or numeric operands")


def _finite(value: float) -> float:
    if not math.isfinite(value):
        raise ExpressionEvaluationError("Expression produced a non-finite number")
    return value


def _lookup(variable: Variable, scope: Mapping[str, Any]) -> float:
    current: Any = scope
    for part in variable.path:
        if not isinstance(current, Mapping) or part not in current:
            raise ExpressionEvaluationError(f"Unknown variable '{variable.dotted}'")
        current = current[part]
    if not _is_number(current):
        raise ExpressionEvaluationError(f"Variable '{variable.dotted}' is not a number")
    return _finite(float(current))


def evaluate_node(node: Node, scope: Mapping[str, Any]) -> Value:
    """
    Interpret an AST node against ``scope``.

    Both operands of every binary operator are evaluated (no short-circuit),
    so an unknown variable is always reported.

    Raises:
        ExpressionEvaluationError: On unknown variables, type mismatches and
            non-finite arithmetic
    """
    if isinstance(node, NumberLiteral):
        return _finite(node.value)
    if isinstance(node, BooleanLiteral):
        return node.value
    if isinstance(node, Variable):
        return _lookup(node, scope)
    if isinstance(node, UnaryOp):
        operand = evaluate_node(node.operand, scope)
        if node.op == "!":
            return not _truthy(operand, "!")
        number = _require_number(operand, node.op)
        return -number if node.op == "-" else number
    if isinstance(node, BinaryOp):
        left = evaluate_node(node.left, scope)
        right = evaluate_node(node.right, scope)
        return _binary(node.op, left, right)
    raise ExpressionEvaluationError(f"Unsupported expression node {type(node).__name__}")


def _binary(op: str, left: Value, right: Value) -> Value:
    if op == "&&":
        return _truthy(left, op) and _truthy(right, op)
    if op == "||":
        return _truthy(left, op) or _truthy(right, op)

    if op in ("==", "!="):
        same_kind = isinstance(left, bool) == isinstance(right, bool)
        if not same_kind:
            raise ExpressionEvaluationError(f"Cannot compare boolean with number using '{op}'")
        return (left == right) if op == "==" else (left != right)

    a = _require_number(left, op)
    b = _require_number(right, op)
    if op == ">":
        return a > b
    if op == "<":
        return a < b
    if op == ">=":
        return a >= b
    if op == "<=":
        return a <= b
    if op == "+":
        return _finite(a + b)
    if op == "-":
        return _finite(a - b)
    if op == "*":
        return _finite(a * b)
    if op == "/":
        if b == 0:
            raise ExpressionEvaluationError("Division by zero")
        return _finite(a / b)
    raise ExpressionEvaluationError(f"Unsupported operator '{op}'")


def evaluate_expression(expression: str, scope: Mapping[str, Any]) -> Value:
    """
    Parse and evaluate an expression.

    Raises:
        ExpressionError: Syntax or evaluation failure
    """
    node = parse_expression(expression)
    try:
        return evaluate_node(node, scope)
    except RecursionError as e:
        raise ExpressionEvaluationError("Expression is too complex to evaluate") from e


# =============================================================================
# KPI evaluation
# =============================================================================


class KpiEvaluator:
    """
    Evaluates KPIs against an aggregate scope, one tagged result per KPI.

    Example:
        >>> scope = build_kpi_scope(delta_articles)
        >>> results = KpiEvaluator().evaluate_all(kpis, scope)
        >>> [r.achieved for r in results]
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def evaluate(self, kpi: Kpi, scope: Mapping[str, Any]) -> KpiEvaluation:
        """
        Evaluate a single KPI.

        Never raises for a malformed expression; the failure is returned as
        a result tagged ``error``.
        """
        base = {
            "kpi_id": kpi.id,
            "kpi_name": kpi.kpi_name,
            "expression": kpi.expression,
            "target_value": kpi.target_value,
        }
        try:
            value = evaluate_expression(kpi.expression, scope)
        except ExpressionError as e:
            self.logger.warning(
                "kpi_evaluation_failed",
                kpi_id=kpi.id,
                expression=kpi.expression,
                error=str(e),
            )
            return KpiEvaluation(**base, result_type=KpiResultType.ERROR, error=str(e))

        if isinstance(value, bool):
            return KpiEvaluation(
                **base,
                result_type=KpiResultType.BOOLEAN,
                boolean_value=value,
                achieved=value,
            )
        return KpiEvaluation(
            **base,
            result_type=KpiResultType.NUMBER,
            numeric_value=value,
            achieved=value >= kpi.target_value,
        )

    def evaluate_all(self, kpis: Sequence[Kpi], scope: Mapping[str, Any]) -> list[KpiEvaluation]:
        """Evaluate every KPI independently, preserving input order."""
        results = [self.evaluate(kpi, scope) for kpi in kpis]
        self.logger.info(
            "kpis_evaluated",
            kpi_count=len(results),
            achieved=sum(1 for r in results if r.achieved),
            errors=sum(1 for r in results if r.is_error),
        )
        return results

    def validate(self, kpi_name: str, expression: str) -> KpiValidation:
        """
        Check a KPI draft before it is saved.

        Requires a name and an expression, a syntactically valid expression,
        and only known metric paths.
        """
        errors = []
        if not kpi_name or not kpi_name.strip():
            errors.append("KPI name is required")
        if not expression or not expression.strip():
            errors.append("Expression is required")
            return KpiValidation(valid=False, errors=errors)

        try:
            node = parse_expression(expression)
        except ExpressionError as e:
            errors.append(str(e))
            return KpiValidation(valid=False, errors=errors)

        paths = list(dict.fromkeys(v.dotted for v in iter_variables(node)))
        for path in paths:
            if path not in KPI_METRIC_PATHS:
                errors.append(f"Unknown metric path '{path}'")

        return KpiValidation(valid=not errors, errors=errors, referenced_paths=paths)


def validate_kpi(kpi_name: str, expression: str) -> KpiValidation:
    """Validate a KPI draft; see ``KpiEvaluator.validate``."""
    return KpiEvaluator().validate(kpi_name, expression)
