"""
KPI router.

Wired to:
- KpiEvaluator for evaluation against the period delta scope
- KPI validation and metric path hints for the KPI editor
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.engine.kpi import KPI_METRIC_PATHS, build_kpi_scope, validate_kpi
from api.engine.rollup import DashboardRollupEngine
from api.routers.dashboard import DashboardRequest, get_rollup_engine
from api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class KpiDraft(BaseModel):
    """A KPI as typed into the editor, before it is saved."""

    model_config = ConfigDict(populate_by_name=True)

    kpi_name: str = Field(default="", alias="kpiName")
    expression: str = ""


@router.post("/evaluate")
async def evaluate_kpis(
    request: DashboardRequest,
    engine: DashboardRollupEngine = Depends(get_rollup_engine),
):
    """
    Evaluate the request's KPIs against the aggregated period deltas.
    A failing KPI is returned as an error result; others are unaffected.
    """
    query = request.to_query()
    deltas = engine.delta_calculator.compute(
        request.filtered_articles(), query.start_date, query.end_date
    )
    scope = build_kpi_scope(deltas)
    results = engine.kpi_evaluator.evaluate_all(request.kpis, scope)

    logger.info("kpi_evaluation_request", kpis=len(request.kpis))

    return {
        "success": True,
        "data": {
            "scope": {group: dict(fields) for group, fields in scope.items()},
            "results": [r.model_dump(mode="json") for r in results],
        },
    }


@router.post("/validate")
async def validate_kpi_draft(draft: KpiDraft):
    """Check a KPI draft's name, syntax and metric paths."""
    validation = validate_kpi(draft.kpi_name, draft.expression)
    return {"success": True, "data": validation.model_dump(mode="json")}


@router.get("/metric-paths")
async def list_metric_paths():
    """Metric paths a KPI expression may reference."""
    return {
        "success": True,
        "data": {"paths": list(KPI_METRIC_PATHS), "count": len(KPI_METRIC_PATHS)},
    }
