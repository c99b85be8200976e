"""
Dashboard router.

Stateless: every request carries the article set, the classification tags
and the active filter. Wired to:
- DashboardRollupEngine for the full rollup
- TimeSeriesReconstructor, ArticleDeltaCalculator and FunnelCalculator for
  single views
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.config import default_date_range, get_settings
from api.engine.filters import filter_articles
from api.engine.rollup import DashboardRollupEngine
from api.models.articles import Article, Classification, SecondaryClassification
from api.models.kpis import Kpi
from api.models.rollup import DashboardQuery
from api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class DashboardRequest(BaseModel):
    """Article set, tags, KPIs and filter for one dashboard query."""

    model_config = ConfigDict(populate_by_name=True)

    articles: list[Article] = Field(default_factory=list)
    classifications: list[Classification] = Field(default_factory=list)
    secondary_classifications: list[SecondaryClassification] = Field(
        default_factory=list, alias="secondaryClassifications"
    )
    kpis: list[Kpi] = Field(default_factory=list)
    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")
    selected_classification_ids: list[str] = Field(
        default_factory=list, alias="selectedClassificationIds"
    )
    selected_secondary_ids: list[str] = Field(
        default_factory=list, alias="selectedSecondaryIds"
    )

    def to_query(self) -> DashboardQuery:
        """Resolve the query, defaulting the range to month-to-date."""
        default_start, default_end = default_date_range()
        return DashboardQuery(
            start_date=self.start_date or default_start,
            end_date=self.end_date or default_end,
            selected_classification_ids=self.selected_classification_ids,
            selected_secondary_ids=self.selected_secondary_ids,
        )

    def filtered_articles(self) -> list[Article]:
        """Articles passing both classification axes."""
        return filter_articles(
            self.articles,
            self.selected_classification_ids,
            self.selected_secondary_ids,
        )


def get_rollup_engine() -> DashboardRollupEngine:
    """Rollup engine configured from settings."""
    return DashboardRollupEngine.from_settings(get_settings())


@router.post("/rollup")
async def dashboard_rollup(
    request: DashboardRequest,
    engine: DashboardRollupEngine = Depends(get_rollup_engine),
):
    """
    Compute every dashboard view for the given filter and range.
    Uses DashboardRollupEngine end to end.
    """
    query = request.to_query()
    logger.info(
        "dashboard_rollup_request",
        articles=len(request.articles),
        start=query.start_date.isoformat(),
        end=query.end_date.isoformat(),
    )

    rollup = engine.compute(
        request.articles,
        request.classifications,
        request.secondary_classifications,
        request.kpis,
        query,
    )
    return {"success": True, "data": rollup.model_dump(mode="json")}


@router.post("/timeseries")
async def dashboard_timeseries(
    request: DashboardRequest,
    engine: DashboardRollupEngine = Depends(get_rollup_engine),
):
    """Forward-filled daily totals with spike flags."""
    query = request.to_query()
    rows = engine.reconstructor.reconstruct(
        request.filtered_articles(), query.start_date, query.end_date
    )
    return {
        "success": True,
        "data": {
            "rows": [row.model_dump(mode="json") for row in rows],
            "count": len(rows),
        },
    }


@router.post("/articles")
async def dashboard_articles(
    request: DashboardRequest,
    engine: DashboardRollupEngine = Depends(get_rollup_engine),
):
    """Per-article period deltas with the top performer flagged."""
    query = request.to_query()
    rows = engine.delta_calculator.compute(
        request.filtered_articles(), query.start_date, query.end_date
    )
    top = next((row.id for row in rows if row.is_top_performer), None)
    return {
        "success": True,
        "data": {
            "articles": [row.model_dump(mode="json") for row in rows],
            "count": len(rows),
            "top_performer_id": top,
        },
    }


@router.post("/funnel")
async def dashboard_funnel(
    request: DashboardRequest,
    engine: DashboardRollupEngine = Depends(get_rollup_engine),
):
    """Funnel stages and conversion rates over the period deltas."""
    query = request.to_query()
    deltas = engine.delta_calculator.compute(
        request.filtered_articles(), query.start_date, query.end_date
    )
    funnel = engine.funnel_calculator.compute(deltas, request.classifications)
    return {"success": True, "data": funnel.model_dump(mode="json")}
