"""
Dashboard Rollup Engine: one query in, every dashboard view out.

Pipeline:
    articles -> filter (both axes)
        -> time series (spike flags)
        -> deltas (top performer) -> funnel, KPI scope -> KPI results
        -> category totals (above-average flags), secondary counts, like rates

Every stage receives the filter result and the date range explicitly; no
stage reads shared state, so a rollup is a pure function of its inputs.
"""

from typing import Optional, Sequence

import structlog

from api.config import DEFAULT_PROPOSAL_CLASSIFICATION_NAME, Settings
from api.engine.categories import CategoryAggregator
from api.engine.deltas import ArticleDeltaCalculator
from api.engine.filters import filter_articles
from api.engine.funnel import FunnelCalculator
from api.engine.kpi import KpiEvaluator, build_kpi_scope
from api.engine.outliers import OutlierDetector
from api.engine.timeseries import TimeSeriesReconstructor
from api.models.articles import Article, Classification, SecondaryClassification
from api.models.kpis import Kpi
from api.models.rollup import DashboardQuery, DashboardRollup

logger = structlog.get_logger()


class DashboardRollupEngine:
    """
    Orchestrates the rollup components for a single dashboard query.

    Attributes:
        reconstructor: Daily series builder
        delta_calculator: Per-article period deltas
        category_aggregator: Primary and secondary classification views
        funnel_calculator: Five-stage funnel
        kpi_evaluator: KPI expression evaluator

    Example:
        >>> engine = DashboardRollupEngine.from_settings(get_settings())
        >>> rollup = engine.compute(articles, classifications, tags, kpis, query)
        >>> rollup.funnel.rates.attraction_rate
    """

    def __init__(
        self,
        spike_stddev_multiplier: float = 2.0,
        above_average_multiplier: float = 1.5,
        proposal_classification_name: str = DEFAULT_PROPOSAL_CLASSIFICATION_NAME,
    ):
        detector = OutlierDetector(
            spike_stddev_multiplier=spike_stddev_multiplier,
            above_average_multiplier=above_average_multiplier,
        )
        self.reconstructor = TimeSeriesReconstructor(detector)
        self.delta_calculator = ArticleDeltaCalculator()
        self.category_aggregator = CategoryAggregator(detector)
        self.funnel_calculator = FunnelCalculator(proposal_classification_name)
        self.kpi_evaluator = KpiEvaluator()
        self.logger = structlog.get_logger()

    @classmethod
    def from_settings(cls, settings: Settings) -> "DashboardRollupEngine":
        """Build an engine from application settings."""
        return cls(
            spike_stddev_multiplier=settings.spike_stddev_multiplier,
            above_average_multiplier=settings.above_average_multiplier,
            proposal_classification_name=settings.proposal_classification_name,
        )

    def compute(
        self,
        articles: Sequence[Article],
        classifications: Sequence[Classification],
        secondary_classifications: Sequence[SecondaryClassification],
        kpis: Optional[Sequence[Kpi]],
        query: DashboardQuery,
    ) -> DashboardRollup:
        """
        Compute the full dashboard rollup.

        Args:
            articles: All articles with their full snapshot history
            classifications: Primary classification tags
            secondary_classifications: Secondary classification tags
            kpis: KPI definitions to evaluate (may be empty)
            query: Filter selections and date range

        Returns:
            DashboardRollup with every derived view
        """
        start, end = query.start_date, query.end_date
        filtered = filter_articles(
            articles,
            query.selected_classification_ids,
            query.selected_secondary_ids,
        )

        daily_totals = self.reconstructor.reconstruct(filtered, start, end)
        deltas = self.delta_calculator.compute(filtered, start, end)

        category_totals = self.category_aggregator.primary_totals(filtered, classifications, end)
        secondary_counts = self.category_aggregator.secondary_counts(
            filtered, secondary_classifications
        )
        like_rates = self.category_aggregator.secondary_like_rates(
            filtered, secondary_classifications, end
        )

        funnel = self.funnel_calculator.compute(deltas, classifications)
        kpi_results = self.kpi_evaluator.evaluate_all(kpis or [], build_kpi_scope(deltas))

        self.logger.info(
            "dashboard_rollup_computed",
            start=start.isoformat(),
            end=end.isoformat(),
            total_articles=len(articles),
            filtered_articles=len(filtered),
            visible_articles=len(deltas),
            kpis=len(kpi_results),
        )

        return DashboardRollup(
            query=query,
            daily_totals=daily_totals,
            articles=deltas,
            category_totals=category_totals,
            secondary_category_counts=secondary_counts,
            secondary_category_like_rates=like_rates,
            funnel=funnel,
            kpi_results=kpi_results,
        )
