"""
Derived dashboard models.

Every model here is ephemeral: recomputed on each query from the article set,
the active filter and the date range, and never persisted.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .articles import Article, LifetimeXTotals
from .enums import Channel, FunnelStageName
from .kpis import KpiEvaluation


class DashboardQuery(BaseModel):
    """
    Active filter and date range for one rollup.

    Empty selections mean "no filter" on that axis.
    """

    model_config = ConfigDict(populate_by_name=True)

    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    selected_classification_ids: list[str] = Field(
        default_factory=list, alias="selectedClassificationIds"
    )
    selected_secondary_ids: list[str] = Field(
        default_factory=list, alias="selectedSecondaryIds"
    )


class DailyTotalsRow(BaseModel):
    """Forward-filled totals across the filtered articles for one date."""

    day: date
    note_views: float = 0.0
    note_likes: float = 0.0
    x_impressions: float = 0.0
    x_likes: float = 0.0
    note_views_is_spike: bool = False
    note_likes_is_spike: bool = False
    x_impressions_is_spike: bool = False
    x_likes_is_spike: bool = False


class ArticleDelta(Article):
    """
    An article restricted to a date range, with start-to-end deltas.

    ``daily_snapshots`` holds only the snapshots inside the range;
    ``lifetime_x`` is summed over the full history.
    """

    note_views_change: float = 0.0
    note_likes_change: float = 0.0
    note_comments_change: float = 0.0
    x_impressions_change: float = 0.0
    x_likes_change: float = 0.0
    lifetime_x: LifetimeXTotals = Field(default_factory=LifetimeXTotals)
    is_top_performer: bool = False


class CategoryTotal(BaseModel):
    """Latest-value totals for one primary classification."""

    classification_id: str
    name: str
    article_count: int = 0
    note_views: float = 0.0
    note_likes: float = 0.0
    x_impressions: float = 0.0
    x_likes: float = 0.0
    note_views_is_above_average: bool = False
    note_likes_is_above_average: bool = False
    x_impressions_is_above_average: bool = False
    x_likes_is_above_average: bool = False


class SecondaryCategoryCount(BaseModel):
    """Number of filtered articles carrying a secondary tag."""

    secondary_classification_id: str
    name: str
    article_count: int


class SecondaryCategoryLikeRate(BaseModel):
    """Like rate (likes per 100 views) for a secondary tag."""

    secondary_classification_id: str
    name: str
    views: float
    likes: float
    like_rate: float


class FunnelStage(BaseModel):
    """One non-empty funnel stage."""

    stage: FunnelStageName
    label: str
    value: float


class FunnelRates(BaseModel):
    """Stage-to-stage conversion percentages (not clamped)."""

    attraction_rate: float = 0.0
    inducement_rate: float = 0.0
    sales_rate: float = 0.0
    dominant_channel: Channel = Channel.X


class FunnelResult(BaseModel):
    """Funnel stages (zero stages omitted) with conversion rates."""

    stages: list[FunnelStage] = Field(default_factory=list)
    rates: FunnelRates = Field(default_factory=FunnelRates)

    def stage_value(self, stage: FunnelStageName) -> float:
        """Value of a stage, 0 when the stage was omitted."""
        for s in self.stages:
            if s.stage == stage:
                return s.value
        return 0.0


class ArticleInventoryRow(BaseModel):
    """Latest known values of one article for the data management table."""

    id: str
    title: str
    url: str
    publication_date: Optional[date] = None
    classification_id: str = ""
    secondary_classification_id: Optional[str] = None
    is_active: bool = True
    latest_snapshot_date: Optional[date] = None
    note_views: float = 0.0
    note_comments: float = 0.0
    note_likes: float = 0.0
    note_sales: float = 0.0
    lifetime_x: LifetimeXTotals = Field(default_factory=LifetimeXTotals)


class DashboardRollup(BaseModel):
    """
    Everything the presentation layer renders for one query.

    Attributes:
        query: The filter and range the rollup was computed for
        daily_totals: One row per date with spike flags
        articles: Delta-adjusted articles with the top performer flagged
        category_totals: Primary classification totals with above-average flags
        secondary_category_counts: Article counts per secondary tag
        secondary_category_like_rates: Like rates per secondary tag
        funnel: Funnel stages and rates
        kpi_results: One tagged result per KPI
    """

    query: DashboardQuery
    daily_totals: list[DailyTotalsRow] = Field(default_factory=list)
    articles: list[ArticleDelta] = Field(default_factory=list)
    category_totals: list[CategoryTotal] = Field(default_factory=list)
    secondary_category_counts: list[SecondaryCategoryCount] = Field(default_factory=list)
    secondary_category_like_rates: list[SecondaryCategoryLikeRate] = Field(default_factory=list)
    funnel: FunnelResult = Field(default_factory=FunnelResult)
    kpi_results: list[KpiEvaluation] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_single_top_performer(self) -> "DashboardRollup":
        """At most one article may be flagged as top performer."""
        if sum(1 for a in self.articles if a.is_top_performer) > 1:
            raise ValueError("At most one article can be the top performer")
        return self
